"""
Pharma Field Sales - MR access requests

A public applicant asks for portal access; an Admin approves (a User is
created) or rejects. pending -> approved | rejected, both terminal.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel


class MRRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


VALID_MR_REQUEST_STATUSES = [s.value for s in MRRequestStatus]


class MRRequestSubmit(BaseModel):
    """
    Public application form. Email and phone formats are checked by the
    workflow service so the same rules apply to every caller.
    """
    name: str
    email: str
    phone: str
    area: str
    experience: Optional[str] = ""


class MRRequestReject(BaseModel):
    reason: Optional[str] = None
