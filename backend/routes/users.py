"""
Pharma Field Sales - Routes Users
Admin-only CRUD over MR and Admin accounts.
"""

from fastapi import APIRouter, Depends
from typing import Optional

from models.auth import UserCreate, UserUpdate
from services import users as user_service
from services.api_response import ok
from services.permissions import require_admin

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("")
async def list_users(
    role: Optional[str] = None,
    is_active: Optional[bool] = None,
    admin: dict = Depends(require_admin)
):
    users = await user_service.list_users(role=role, is_active=is_active)
    return ok({"count": len(users), "users": users})


@router.get("/{user_id}")
async def get_user(user_id: str, admin: dict = Depends(require_admin)):
    return ok(await user_service.get_user(user_id))


@router.post("", status_code=201)
async def create_user(data: UserCreate, admin: dict = Depends(require_admin)):
    user = await user_service.create_user(
        name=data.name,
        email=data.email,
        password=data.password,
        role=data.role.value,
        employee_id=data.employee_id,
        territory=data.territory,
        region=data.region,
        phone=data.phone,
        city=data.city,
        created_by=admin["id"],
    )
    return ok(user, message="User created")


@router.put("/{user_id}")
async def update_user(user_id: str, data: UserUpdate, admin: dict = Depends(require_admin)):
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if changes.get("is_active") is False:
        await user_service.deactivate_user(user_id, admin["id"])
        changes.pop("is_active")
    user = await user_service.update_user(user_id, changes)
    return ok(user, message="User updated")


@router.delete("/{user_id}")
async def deactivate_user(user_id: str, admin: dict = Depends(require_admin)):
    """Soft delete: the account is deactivated and its sessions dropped."""
    await user_service.deactivate_user(user_id, admin["id"])
    return ok(message="User deactivated")
