"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Pharma Field Sales - MR Access Request Workflow                             ║
║                                                                              ║
║  pending -> approved   (User created, temp password emailed)                 ║
║  pending -> rejected   (rejection emailed)                                   ║
║  approved / rejected are TERMINAL                                            ║
║                                                                              ║
║  RULES:                                                                      ║
║  - approval yields exactly one new User AND the status flip, or neither      ║
║  - a pending request is never deleted, it must be processed first            ║
║  - a failed email never undoes a committed approval/rejection                ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

import asyncio
import logging
import uuid
from typing import Optional

from config import db, now_iso, validate_email, normalize_phone_in, generate_temp_password
from email_service import email_service
from models.auth import Role
from models.mr_request import MRRequestStatus
from services import users as user_service
from services.errors import ValidationError, NotFoundError, InvalidStateError

logger = logging.getLogger("mr_requests")

EMAIL_WARNING = "Notification email could not be delivered"


async def _get_or_raise(request_id: str) -> dict:
    request = await db.mr_requests.find_one({"id": request_id}, {"_id": 0})
    if not request:
        raise NotFoundError("MR request not found")
    return request


def _ensure_pending(request: dict):
    if request.get("status") != MRRequestStatus.PENDING.value:
        raise InvalidStateError(
            f"Request has already been processed (status: {request.get('status')})"
        )


# ════════════════════════════════════════════════════════════════════════════
# SUBMISSION (public)
# ════════════════════════════════════════════════════════════════════════════

async def submit_request(
    name: str,
    email: str,
    phone: str,
    area: str,
    experience: Optional[str] = ""
) -> dict:
    """
    Creates a pending request. Does not create a User.
    The "application received" email is sent by the caller, off the
    request path (see notify_application_received).
    """
    if not name or not name.strip() or not area or not area.strip():
        raise ValidationError("Please provide all required fields")

    email = (email or "").lower().strip()
    if not validate_email(email):
        raise ValidationError("Invalid email address")

    valid, phone_or_error = normalize_phone_in(phone)
    if not valid:
        raise ValidationError(phone_or_error)

    if await db.mr_requests.find_one({"email": email, "status": MRRequestStatus.PENDING.value}):
        raise ValidationError("An application with this email is already pending")

    if await user_service.find_by_email(email):
        raise ValidationError("An account with this email already exists")

    now = now_iso()
    request = {
        "id": str(uuid.uuid4()),
        "name": name.strip(),
        "email": email,
        "phone": phone_or_error,
        "area": area.strip(),
        "experience": (experience or "").strip(),
        "status": MRRequestStatus.PENDING.value,
        "processed_at": None,
        "processed_by": None,
        "rejection_reason": None,
        "linked_user_id": None,
        "created_at": now,
        "updated_at": now,
    }
    await db.mr_requests.insert_one(request)
    request.pop("_id", None)

    logger.info(f"[MR_REQUEST] submitted {request['id']} email={email}")
    return request


def notify_application_received(request: dict) -> bool:
    """Blocking send; schedule it as a background task."""
    return email_service.send_application_received_email(
        request["name"], request["email"], request["phone"], request["area"]
    )


# ════════════════════════════════════════════════════════════════════════════
# ADMIN DECISIONS
# ════════════════════════════════════════════════════════════════════════════

async def approve_request(request_id: str, admin: dict) -> dict:
    """
    Approves a pending request.

    Steps (compensated, no cross-document transaction needed):
    1. insert the User (first_login=True, random temp password)
    2. flip the request with a conditional update on status=pending
    3. if step 2 does not land, delete the User from step 1 and fail

    Returns {"request", "user", "credentials": {email, temp_password}, "email_sent"}.
    The plaintext password exists only in this return value and the email.
    """
    request = await _get_or_raise(request_id)
    _ensure_pending(request)

    if await user_service.find_by_email(request["email"]):
        raise InvalidStateError("A user with this email already exists")

    temp_password = generate_temp_password()

    new_user = await user_service.create_user(
        name=request["name"],
        email=request["email"],
        password=temp_password,
        role=Role.MR.value,
        phone=request.get("phone", ""),
        territory=request.get("area", ""),
        region=request.get("area", ""),
        city=request.get("area", ""),
        first_login=True,
        created_by=admin.get("id"),
    )

    now = now_iso()
    try:
        result = await db.mr_requests.update_one(
            {"id": request_id, "status": MRRequestStatus.PENDING.value},
            {"$set": {
                "status": MRRequestStatus.APPROVED.value,
                "processed_at": now,
                "processed_by": admin.get("id"),
                "linked_user_id": new_user["id"],
                "updated_at": now,
            }}
        )
    except Exception:
        logger.exception(f"[MR_REQUEST] status flip failed for {request_id}, removing user {new_user['id']}")
        await user_service.delete_user(new_user["id"])
        raise

    if result.matched_count == 0:
        await user_service.delete_user(new_user["id"])
        raise InvalidStateError("Request was processed concurrently")

    logger.info(f"[MR_REQUEST] approved {request_id} -> user {new_user['id']} by {admin.get('email')}")

    email_sent = await asyncio.to_thread(
        email_service.send_approval_email, request["email"], request["name"], temp_password
    )
    if not email_sent:
        logger.warning(f"[MR_REQUEST] approval email to {request['email']} failed")

    return {
        "request": await _get_or_raise(request_id),
        "user": new_user,
        "credentials": {
            "email": request["email"],
            "temp_password": temp_password,
        },
        "email_sent": email_sent,
    }


async def reject_request(request_id: str, admin: dict, reason: Optional[str] = None) -> dict:
    request = await _get_or_raise(request_id)
    _ensure_pending(request)

    now = now_iso()
    result = await db.mr_requests.update_one(
        {"id": request_id, "status": MRRequestStatus.PENDING.value},
        {"$set": {
            "status": MRRequestStatus.REJECTED.value,
            "processed_at": now,
            "processed_by": admin.get("id"),
            "rejection_reason": reason,
            "updated_at": now,
        }}
    )
    if result.matched_count == 0:
        raise InvalidStateError("Request was processed concurrently")

    logger.info(f"[MR_REQUEST] rejected {request_id} by {admin.get('email')}")

    email_sent = await asyncio.to_thread(
        email_service.send_rejection_email, request["email"], request["name"], reason or ""
    )
    if not email_sent:
        logger.warning(f"[MR_REQUEST] rejection email to {request['email']} failed")

    return {"request": await _get_or_raise(request_id), "email_sent": email_sent}


async def delete_request(request_id: str):
    """Only processed (approved/rejected) requests may be deleted."""
    request = await _get_or_raise(request_id)
    if request.get("status") == MRRequestStatus.PENDING.value:
        raise InvalidStateError("Pending requests must be approved or rejected before deletion")
    await db.mr_requests.delete_one({"id": request_id})
    logger.info(f"[MR_REQUEST] deleted {request_id}")


# ════════════════════════════════════════════════════════════════════════════
# READS
# ════════════════════════════════════════════════════════════════════════════

async def list_requests(status: Optional[str] = None) -> list:
    query = {}
    if status:
        query["status"] = status
    return await db.mr_requests.find(query, {"_id": 0}).sort("created_at", -1).to_list(1000)


async def get_request(request_id: str) -> dict:
    return await _get_or_raise(request_id)
