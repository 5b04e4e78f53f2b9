"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  Pharma Field Sales - Models Package                                         ║
║                                                                              ║
║  Exports every request model for easy import                                 ║
║  from models import VisitCreate, OrderStatus, TargetCreate, etc.             ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

# Auth / users
from .auth import (
    Role,
    VALID_ROLES,
    UserLogin,
    UserCreate,
    UserUpdate,
    PasswordChange,
)

# MR access requests
from .mr_request import (
    MRRequestStatus,
    VALID_MR_REQUEST_STATUSES,
    MRRequestSubmit,
    MRRequestReject,
)

# Master data
from .doctor import DoctorCreate, DoctorUpdate
from .product import (
    BasicInfo,
    MedicalInfo,
    BusinessInfo,
    ProductCreate,
    ProductUpdate,
    ProductImport,
)

# Visits & orders
from .visit import (
    VisitStatus,
    SUCCESS_VISIT_STATUSES,
    OrderStatus,
    VALID_ORDER_STATUSES,
    OrderType,
    OrderLineCreate,
    VisitCreate,
    OrderStatusUpdate,
    OrderReplaceItem,
    OrdersReplace,
    VisitReject,
)

# Targets
from .target import (
    PeriodType,
    TargetStatus,
    TargetPeriod,
    TargetCreate,
    TargetUpdate,
)

__all__ = [
    # Auth
    "Role",
    "VALID_ROLES",
    "UserLogin",
    "UserCreate",
    "UserUpdate",
    "PasswordChange",
    # MR requests
    "MRRequestStatus",
    "VALID_MR_REQUEST_STATUSES",
    "MRRequestSubmit",
    "MRRequestReject",
    # Doctors
    "DoctorCreate",
    "DoctorUpdate",
    # Products
    "BasicInfo",
    "MedicalInfo",
    "BusinessInfo",
    "ProductCreate",
    "ProductUpdate",
    "ProductImport",
    # Visits & orders
    "VisitStatus",
    "SUCCESS_VISIT_STATUSES",
    "OrderStatus",
    "VALID_ORDER_STATUSES",
    "OrderType",
    "OrderLineCreate",
    "VisitCreate",
    "OrderStatusUpdate",
    "OrderReplaceItem",
    "OrdersReplace",
    "VisitReject",
    # Targets
    "PeriodType",
    "TargetStatus",
    "TargetPeriod",
    "TargetCreate",
    "TargetUpdate",
]
