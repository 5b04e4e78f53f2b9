"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Pharma Field Sales - Visit reports and embedded orders                      ║
║                                                                              ║
║  A visit report = one MR / doctor interaction                                ║
║  - products discussed (ordered list of product ids)                          ║
║  - zero or more orders embedded in the report                                ║
║                                                                              ║
║  RULE: every order snapshots unit_price and total_amount at creation,        ║
║        they are never recomputed from the current product price              ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class VisitStatus(str, Enum):
    PENDING = "Pending"        # draft, still editable by the MR
    SUBMITTED = "Submitted"
    COMPLETED = "Completed"
    APPROVED = "Approved"
    REJECTED = "Rejected"


# Statuses that count as a successful visit in achievements
SUCCESS_VISIT_STATUSES = {VisitStatus.COMPLETED.value, VisitStatus.APPROVED.value}


class OrderStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


VALID_ORDER_STATUSES = [s.value for s in OrderStatus]


class OrderType(str, Enum):
    DOCTOR = "Doctor Order"
    STOCKIST = "Stockist Order"
    SAMPLE = "Sample Order"


class OrderLineCreate(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)
    order_type: OrderType = OrderType.DOCTOR
    notes: Optional[str] = ""


class VisitCreate(BaseModel):
    """
    Example:
    {
        "doctor_id": "5b1c...",
        "products_discussed": ["a1f0...", "c93e..."],
        "notes": "Interested in the new syrup, asked for samples",
        "visit_date": "2026-03-14",
        "orders": [{"product_id": "a1f0...", "quantity": 3}]
    }
    """
    doctor_id: str
    products_discussed: List[str] = []
    notes: str
    visit_date: Optional[str] = None
    orders: Optional[List[OrderLineCreate]] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderReplaceItem(BaseModel):
    """
    One element of a whole-array orders replacement. Only `status` is
    applied, the rest identifies the stored order.
    """
    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    product_id: Optional[str] = None
    quantity: Optional[int] = None
    status: OrderStatus


class OrdersReplace(BaseModel):
    orders: List[OrderReplaceItem]


class VisitReject(BaseModel):
    reason: Optional[str] = None
