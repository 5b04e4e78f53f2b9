"""
Pharma Field Sales - Auth & user models
Two roles: MR (field representative) and Admin.
"""

from enum import Enum
from pydantic import BaseModel, field_validator
from typing import Optional

from config import validate_email, normalize_phone_in


class Role(str, Enum):
    MR = "MR"
    ADMIN = "Admin"


VALID_ROLES = [r.value for r in Role]

MIN_PASSWORD_LENGTH = 8


def _check_phone(v):
    if v is None or v == "":
        return v
    valid, result = normalize_phone_in(v)
    if not valid:
        raise ValueError(result)
    return result


class UserLogin(BaseModel):
    email: str
    password: str


class PasswordChange(BaseModel):
    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v):
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v


class UserCreate(BaseModel):
    name: str
    email: str
    password: str
    role: Role = Role.MR
    employee_id: Optional[str] = None
    territory: Optional[str] = ""
    region: Optional[str] = ""
    phone: Optional[str] = ""
    city: Optional[str] = ""

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v):
        if not validate_email(v):
            raise ValueError(f"Invalid email: {v}")
        return v.lower().strip()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if len(v) < MIN_PASSWORD_LENGTH:
            raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _check_phone(v)


class UserUpdate(BaseModel):
    name: Optional[str] = None
    employee_id: Optional[str] = None
    territory: Optional[str] = None
    region: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _check_phone(v)
