"""
Pharma Field Sales - Routes Targets
"""

from fastapi import APIRouter, Depends
from typing import Optional

from models.target import TargetCreate, TargetUpdate
from services import targets as target_service
from services.api_response import ok
from services.permissions import require_admin, require_any_role

router = APIRouter(prefix="/targets", tags=["Targets"])


@router.get("")
async def list_targets(
    mr: Optional[str] = None,
    status: Optional[str] = None,
    year: Optional[int] = None,
    user: dict = Depends(require_any_role)
):
    targets = await target_service.list_targets(user, mr_id=mr, status=status, year=year)
    return ok({"count": len(targets), "targets": targets})


@router.post("", status_code=201)
async def create_target(data: TargetCreate, admin: dict = Depends(require_admin)):
    target = await target_service.create_target(data.model_dump(mode="json"), admin)
    return ok(target, message=f"Target {target['target_id']} created")


@router.get("/{mr_id}")
async def get_targets_for_mr(mr_id: str, user: dict = Depends(require_any_role)):
    """Targets of one MR, achievements recomputed from visits and orders."""
    targets = await target_service.get_targets_for_mr(mr_id, user)
    return ok({"count": len(targets), "targets": targets})


@router.put("/{target_id}")
async def update_target(target_id: str, data: TargetUpdate, admin: dict = Depends(require_admin)):
    changes = data.model_dump(mode="json", exclude_unset=True)
    return ok(await target_service.update_target(target_id, changes), message="Target updated")


@router.delete("/{target_id}")
async def delete_target(target_id: str, admin: dict = Depends(require_admin)):
    await target_service.delete_target(target_id)
    return ok(message="Target deleted")
