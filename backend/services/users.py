"""
User accounts (MRs and Admins).

Shared by the Admin user CRUD routes and by MR-request approval, which is
the only path that creates a User from public input.
"""

import logging
import uuid
from typing import Optional

from config import db, hash_password, now_iso
from models.auth import Role
from services.errors import ValidationError, NotFoundError, ForbiddenError
from services.sequences import next_code

logger = logging.getLogger("users")

PUBLIC_PROJECTION = {"_id": 0, "password": 0}


async def get_user(user_id: str) -> dict:
    user = await db.users.find_one({"id": user_id}, PUBLIC_PROJECTION)
    if not user:
        raise NotFoundError("User not found")
    return user


async def find_by_email(email: str) -> Optional[dict]:
    return await db.users.find_one({"email": email.lower().strip()}, PUBLIC_PROJECTION)


async def create_user(
    name: str,
    email: str,
    password: str,
    role: str = Role.MR.value,
    employee_id: Optional[str] = None,
    territory: str = "",
    region: str = "",
    phone: str = "",
    city: str = "",
    first_login: bool = False,
    created_by: Optional[str] = None,
) -> dict:
    """
    Inserts a user and returns it without the password hash.

    MRs without an explicit employee id get the next MR### number.
    Raises ValidationError when the email or employee id is taken.
    """
    email = email.lower().strip()
    if await db.users.find_one({"email": email}, {"_id": 0, "id": 1}):
        raise ValidationError("A user with this email already exists")

    if employee_id:
        if await db.users.find_one({"employee_id": employee_id}, {"_id": 0, "id": 1}):
            raise ValidationError(f"Employee id {employee_id} is already used")
    elif role == Role.MR.value:
        employee_id = await next_code("employee_id")

    now = now_iso()
    user = {
        "id": str(uuid.uuid4()),
        "name": name,
        "email": email,
        "password": hash_password(password),
        "role": role,
        "employee_id": employee_id,
        "territory": territory or "",
        "region": region or "",
        "phone": phone or "",
        "city": city or "",
        "first_login": first_login,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
        "created_by": created_by,
    }
    if not employee_id:
        # Keep the key absent so the sparse unique index skips it
        user.pop("employee_id")

    await db.users.insert_one(user)
    logger.info(f"[USER] created {user['id']} role={role} email={email}")

    user.pop("password", None)
    user.pop("_id", None)
    return user


async def list_users(role: Optional[str] = None, is_active: Optional[bool] = None) -> list:
    query = {}
    if role:
        query["role"] = role
    if is_active is not None:
        query["is_active"] = is_active
    return await db.users.find(query, PUBLIC_PROJECTION).sort("name", 1).to_list(1000)


async def update_user(user_id: str, changes: dict) -> dict:
    await get_user(user_id)

    if changes.get("employee_id"):
        clash = await db.users.find_one(
            {"employee_id": changes["employee_id"], "id": {"$ne": user_id}},
            {"_id": 0, "id": 1}
        )
        if clash:
            raise ValidationError(f"Employee id {changes['employee_id']} is already used")

    changes["updated_at"] = now_iso()
    await db.users.update_one({"id": user_id}, {"$set": changes})
    return await get_user(user_id)


async def deactivate_user(user_id: str, acting_user_id: str):
    if user_id == acting_user_id:
        raise ForbiddenError("You cannot deactivate your own account")
    await get_user(user_id)
    await db.users.update_one(
        {"id": user_id},
        {"$set": {"is_active": False, "deactivated_at": now_iso(), "updated_at": now_iso()}}
    )
    await db.sessions.delete_many({"user_id": user_id})
    logger.info(f"[USER] deactivated {user_id} by {acting_user_id}")


async def delete_user(user_id: str):
    """Hard delete, used only to undo a half-finished approval."""
    await db.users.delete_one({"id": user_id})
