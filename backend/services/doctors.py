"""
Doctor roster.

Admin doctors form the global roster (assigned_mr_id empty, or pointing at
the MR they were handed to). Doctors an MR adds go to that MR's personal
roster. An MR sees the global roster plus their own.
"""

import logging
import re
import uuid
from typing import Optional, Dict, Any, List

from config import db, now_iso
from models.auth import Role
from services.errors import NotFoundError, ForbiddenError, ValidationError
from services.permissions import is_admin, is_mr

logger = logging.getLogger("doctors")


def _visible_to(user: Dict[str, Any]) -> dict:
    if is_admin(user):
        return {}
    return {"$or": [
        {"assigned_mr_id": user["id"]},
        {"assigned_mr_id": None},
        {"assigned_mr_id": {"$exists": False}},
    ]}


async def _get_or_raise(doctor_id: str) -> Dict[str, Any]:
    doctor = await db.doctors.find_one({"id": doctor_id}, {"_id": 0})
    if not doctor:
        raise NotFoundError("Doctor not found")
    return doctor


def _ensure_can_edit(doctor: Dict[str, Any], user: Dict[str, Any]):
    if is_mr(user) and doctor.get("assigned_mr_id") != user["id"]:
        raise ForbiddenError("You can only edit doctors in your own roster")


async def list_doctors(
    user: Dict[str, Any],
    search: Optional[str] = None,
    place: Optional[str] = None,
    specialization: Optional[str] = None,
    include_inactive: bool = False,
) -> List[Dict[str, Any]]:
    clauses = [_visible_to(user)]
    if not include_inactive:
        clauses.append({"is_active": {"$ne": False}})
    if place:
        clauses.append({"place": {"$regex": re.escape(place), "$options": "i"}})
    if specialization:
        clauses.append({"specialization": {"$regex": re.escape(specialization), "$options": "i"}})
    if search:
        pattern = re.escape(search)
        clauses.append({"$or": [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"place": {"$regex": pattern, "$options": "i"}},
            {"specialization": {"$regex": pattern, "$options": "i"}},
        ]})

    query = {"$and": [c for c in clauses if c]} if any(clauses) else {}
    return await db.doctors.find(query, {"_id": 0}).sort("name", 1).to_list(5000)


async def get_doctor(doctor_id: str, user: Dict[str, Any]) -> Dict[str, Any]:
    doctor = await _get_or_raise(doctor_id)
    owner = doctor.get("assigned_mr_id")
    if is_mr(user) and owner and owner != user["id"]:
        raise ForbiddenError("This doctor belongs to another MR's roster")
    return doctor


async def create_doctor(data: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
    """data: DoctorCreate.model_dump(). An MR's doctor always lands in their own roster."""
    if is_mr(user):
        assigned = user["id"]
    else:
        assigned = data.get("assigned_mr_id") or None
        if assigned:
            mr = await db.users.find_one({"id": assigned, "role": Role.MR.value}, {"_id": 0, "id": 1})
            if not mr:
                raise ValidationError("assigned_mr_id does not reference an MR")

    now = now_iso()
    doctor = {
        "id": str(uuid.uuid4()),
        "name": data["name"],
        "place": data["place"],
        "qualification": data.get("qualification") or "",
        "specialization": data.get("specialization") or "",
        "phone": data.get("phone") or "",
        "email": data.get("email") or "",
        "assigned_mr_id": assigned,
        "is_active": True,
        "created_by": user["id"],
        "created_at": now,
        "updated_at": now,
    }
    await db.doctors.insert_one(doctor)
    doctor.pop("_id", None)
    logger.info(f"[DOCTOR] created {doctor['id']} by {user.get('email')} roster={assigned or 'global'}")
    return doctor


async def update_doctor(doctor_id: str, changes: Dict[str, Any], user: Dict[str, Any]) -> Dict[str, Any]:
    doctor = await _get_or_raise(doctor_id)
    _ensure_can_edit(doctor, user)

    changes = {k: v for k, v in changes.items() if v is not None}
    if is_mr(user):
        # An MR cannot hand a doctor over to someone else
        changes.pop("assigned_mr_id", None)
    for field in ("name", "place"):
        if field in changes and not str(changes[field]).strip():
            raise ValidationError(f"Doctor {field} is required")

    changes["updated_at"] = now_iso()
    await db.doctors.update_one({"id": doctor_id}, {"$set": changes})
    return await _get_or_raise(doctor_id)


async def deactivate_doctor(doctor_id: str, user: Dict[str, Any]):
    doctor = await _get_or_raise(doctor_id)
    _ensure_can_edit(doctor, user)
    await db.doctors.update_one(
        {"id": doctor_id},
        {"$set": {"is_active": False, "updated_at": now_iso()}}
    )
    logger.info(f"[DOCTOR] deactivated {doctor_id} by {user.get('email')}")
