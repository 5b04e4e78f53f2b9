"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Pharma Field Sales - Targets & Achievements                                 ║
║                                                                              ║
║  A target = quota for one MR over one period (visits / sales / territory)    ║
║                                                                              ║
║  Achievements are NOT incremented on write. They are recomputed on read      ║
║  from the visit reports inside the period, then written back with            ║
║  last_updated (read-then-write, last reader wins).                           ║
║                                                                              ║
║  Percentages are derived, never stored: achieved / target * 100,             ║
║  and 0 when the target value is 0.                                           ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import logging
import uuid
from datetime import timedelta, time
from typing import Optional, Dict, Any, List

from config import db, now_iso, parse_datetime
from models.auth import Role
from models.target import TargetStatus
from models.visit import SUCCESS_VISIT_STATUSES, OrderStatus
from services.api_response import as_list
from services.errors import ValidationError, NotFoundError, ForbiddenError
from services.permissions import is_mr
from services.sequences import next_code

logger = logging.getLogger("targets")

EMPTY_ACHIEVEMENTS = {
    "visits_completed": 0,
    "sales_achieved": 0.0,
    "orders_completed": 0,
    "new_doctors_added": 0,
    "last_updated": None,
}


# ════════════════════════════════════════════════════════════════════════════
# PERCENTAGES
# ════════════════════════════════════════════════════════════════════════════

def percentage(achieved, target) -> float:
    """achieved / target * 100, rounded to 2 decimals; 0 when target is 0."""
    if not target:
        return 0.0
    return round((achieved or 0) / target * 100, 2)


def achievement_percentages(target: Dict[str, Any]) -> Dict[str, float]:
    achievements = target.get("achievements") or {}
    visit_targets = target.get("visit_targets") or {}
    sales_targets = target.get("sales_targets") or {}
    return {
        "visits": percentage(achievements.get("visits_completed"), visit_targets.get("total_visits")),
        "sales": percentage(achievements.get("sales_achieved"), sales_targets.get("total_sales_value")),
        "orders": percentage(achievements.get("orders_completed"), sales_targets.get("total_orders")),
    }


# ════════════════════════════════════════════════════════════════════════════
# ACHIEVEMENT COMPUTATION
# ════════════════════════════════════════════════════════════════════════════

def period_bounds(period: Dict[str, Any]) -> Dict[str, str]:
    """
    ISO bounds of a target period. An end date at midnight covers that
    whole day.
    """
    start = parse_datetime(period["start_date"])
    end = parse_datetime(period["end_date"])
    if end.time() == time(0, 0):
        return {"$gte": start.isoformat(), "$lt": (end + timedelta(days=1)).isoformat()}
    return {"$gte": start.isoformat(), "$lte": end.isoformat()}


def _in_bounds(value: str, bounds: Dict[str, str]) -> bool:
    if value < bounds["$gte"]:
        return False
    if "$lt" in bounds:
        return value < bounds["$lt"]
    return value <= bounds["$lte"]


async def compute_achievements(target: Dict[str, Any]) -> Dict[str, Any]:
    mr_id = target["mr_id"]
    bounds = period_bounds(target["period"])

    visits = await db.visit_reports.find(
        {"mr_id": mr_id, "visit_date": bounds},
        {"_id": 0, "status": 1, "orders": 1}
    ).to_list(10000)

    visits_completed = 0
    orders_completed = 0
    sales_achieved = 0.0
    for visit in visits:
        if visit.get("status") in SUCCESS_VISIT_STATUSES:
            visits_completed += 1
        for order in as_list(visit.get("orders")):
            if isinstance(order, dict) and order.get("status") == OrderStatus.DELIVERED.value:
                orders_completed += 1
                sales_achieved += order.get("total_amount") or 0

    # A doctor is "new" when this MR's first ever visit to them is inside the period
    first_visits = {}
    history = await db.visit_reports.find(
        {"mr_id": mr_id}, {"_id": 0, "doctor_id": 1, "visit_date": 1}
    ).to_list(10000)
    for visit in history:
        doctor_id = visit.get("doctor_id")
        visit_date = visit.get("visit_date")
        if not doctor_id or not visit_date:
            continue
        if doctor_id not in first_visits or visit_date < first_visits[doctor_id]:
            first_visits[doctor_id] = visit_date
    new_doctors = sum(1 for first in first_visits.values() if _in_bounds(first, bounds))

    return {
        "visits_completed": visits_completed,
        "sales_achieved": sales_achieved,
        "orders_completed": orders_completed,
        "new_doctors_added": new_doctors,
        "last_updated": now_iso(),
    }


async def refresh_achievements(target: Dict[str, Any]) -> Dict[str, Any]:
    """Recomputes, persists and returns the target with its percentages."""
    achievements = await compute_achievements(target)
    await db.targets.update_one({"id": target["id"]}, {"$set": {"achievements": achievements}})
    refreshed = dict(target)
    refreshed["achievements"] = achievements
    refreshed["percentages"] = achievement_percentages(refreshed)
    return refreshed


# ════════════════════════════════════════════════════════════════════════════
# CRUD
# ════════════════════════════════════════════════════════════════════════════

async def _get_or_raise(target_id: str) -> Dict[str, Any]:
    target = await db.targets.find_one({"id": target_id}, {"_id": 0})
    if not target:
        raise NotFoundError("Target not found")
    return target


async def _ensure_single_active(mr_id: str, period: Dict[str, Any], exclude_id: Optional[str] = None):
    """One Active target per MR / period type / start date."""
    query = {
        "mr_id": mr_id,
        "period.type": period["type"],
        "period.start_date": period["start_date"],
        "status": TargetStatus.ACTIVE.value,
    }
    if exclude_id:
        query["id"] = {"$ne": exclude_id}
    duplicate = await db.targets.find_one(query, {"_id": 0, "target_id": 1})
    if duplicate:
        raise ValidationError(
            f"An active {period['type']} target already exists for this MR and period "
            f"({duplicate.get('target_id')})"
        )


async def create_target(data: Dict[str, Any], admin: Dict[str, Any]) -> Dict[str, Any]:
    """
    data: TargetCreate.model_dump(mode="json")

    Raises NotFoundError for an unknown MR, ValidationError when an Active
    target already covers the same MR / period type / start date.
    """
    mr = await db.users.find_one({"id": data["mr_id"]}, {"_id": 0, "id": 1, "role": 1})
    if not mr:
        raise NotFoundError("MR not found")
    if mr.get("role") != Role.MR.value:
        raise ValidationError("Targets can only be assigned to MRs")

    period = data["period"]
    await _ensure_single_active(data["mr_id"], period)

    now = now_iso()
    target = {
        "id": str(uuid.uuid4()),
        "target_id": await next_code("target"),
        "mr_id": data["mr_id"],
        "assigned_by": admin["id"],
        "period": period,
        "visit_targets": data.get("visit_targets") or {},
        "sales_targets": data.get("sales_targets") or {},
        "territory_targets": data.get("territory_targets") or {},
        "achievements": dict(EMPTY_ACHIEVEMENTS),
        "status": TargetStatus.ACTIVE.value,
        "notes": data.get("notes") or "",
        "created_at": now,
        "updated_at": now,
    }
    await db.targets.insert_one(target)
    target.pop("_id", None)

    logger.info(f"[TARGET] {target['target_id']} created for MR {data['mr_id']} by {admin.get('email')}")
    return target


async def list_targets(
    user: Dict[str, Any],
    mr_id: Optional[str] = None,
    status: Optional[str] = None,
    year: Optional[int] = None,
) -> List[Dict[str, Any]]:
    query = {}
    if is_mr(user):
        query["mr_id"] = user["id"]
    elif mr_id:
        query["mr_id"] = mr_id
    if status:
        query["status"] = status
    if year:
        query["period.year"] = year

    targets = await db.targets.find(query, {"_id": 0}).sort("created_at", -1).to_list(1000)
    for target in targets:
        target["percentages"] = achievement_percentages(target)
    return targets


async def update_target(target_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
    current = await _get_or_raise(target_id)
    changes = {k: v for k, v in changes.items() if v is not None}
    if not changes:
        raise ValidationError("Nothing to update")

    if changes.get("status") == TargetStatus.ACTIVE.value and current.get("status") != TargetStatus.ACTIVE.value:
        await _ensure_single_active(current["mr_id"], current["period"], exclude_id=target_id)

    changes["updated_at"] = now_iso()
    await db.targets.update_one({"id": target_id}, {"$set": changes})
    logger.info(f"[TARGET] {target_id} updated fields={sorted(changes)}")

    target = await _get_or_raise(target_id)
    target["percentages"] = achievement_percentages(target)
    return target


async def delete_target(target_id: str):
    await _get_or_raise(target_id)
    await db.targets.delete_one({"id": target_id})
    logger.info(f"[TARGET] {target_id} deleted")


async def get_targets_for_mr(mr_id: str, user: Dict[str, Any]) -> List[Dict[str, Any]]:
    """All targets of one MR, achievements recomputed on read."""
    if is_mr(user) and user["id"] != mr_id:
        raise ForbiddenError("You can only view your own targets")

    targets = await db.targets.find({"mr_id": mr_id}, {"_id": 0}).sort("created_at", -1).to_list(1000)
    return [await refresh_achievements(t) for t in targets]
