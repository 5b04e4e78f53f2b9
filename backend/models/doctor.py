"""
Pharma Field Sales - Doctor roster
A doctor belongs to the global roster (assigned_mr_id empty) or to one
MR's personal roster.
"""

from typing import Optional
from pydantic import BaseModel, field_validator

from config import validate_email


class DoctorCreate(BaseModel):
    name: str
    place: str
    qualification: Optional[str] = ""
    specialization: Optional[str] = ""
    phone: Optional[str] = ""
    email: Optional[str] = ""
    assigned_mr_id: Optional[str] = None

    @field_validator("name", "place")
    @classmethod
    def not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v):
        if v and not validate_email(v):
            raise ValueError(f"Invalid email: {v}")
        return v.lower().strip() if v else v


class DoctorUpdate(BaseModel):
    name: Optional[str] = None
    place: Optional[str] = None
    qualification: Optional[str] = None
    specialization: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    assigned_mr_id: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v):
        if v and not validate_email(v):
            raise ValueError(f"Invalid email: {v}")
        return v.lower().strip() if v else v
