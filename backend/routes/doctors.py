"""
Pharma Field Sales - Routes Doctors
"""

from fastapi import APIRouter, Depends
from typing import Optional

from models.doctor import DoctorCreate, DoctorUpdate
from services import doctors as doctor_service
from services.api_response import ok
from services.permissions import require_any_role

router = APIRouter(prefix="/doctors", tags=["Doctors"])


@router.get("")
async def list_doctors(
    search: Optional[str] = None,
    place: Optional[str] = None,
    specialization: Optional[str] = None,
    include_inactive: bool = False,
    user: dict = Depends(require_any_role)
):
    doctors = await doctor_service.list_doctors(
        user, search=search, place=place, specialization=specialization,
        include_inactive=include_inactive,
    )
    return ok({"count": len(doctors), "doctors": doctors})


@router.get("/{doctor_id}")
async def get_doctor(doctor_id: str, user: dict = Depends(require_any_role)):
    return ok(await doctor_service.get_doctor(doctor_id, user))


@router.post("", status_code=201)
async def create_doctor(data: DoctorCreate, user: dict = Depends(require_any_role)):
    doctor = await doctor_service.create_doctor(data.model_dump(), user)
    return ok(doctor, message="Doctor added")


@router.put("/{doctor_id}")
async def update_doctor(doctor_id: str, data: DoctorUpdate, user: dict = Depends(require_any_role)):
    doctor = await doctor_service.update_doctor(doctor_id, data.model_dump(exclude_unset=True), user)
    return ok(doctor, message="Doctor updated")


@router.delete("/{doctor_id}")
async def delete_doctor(doctor_id: str, user: dict = Depends(require_any_role)):
    await doctor_service.deactivate_doctor(doctor_id, user)
    return ok(message="Doctor deactivated")
