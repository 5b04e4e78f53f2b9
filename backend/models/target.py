"""
Pharma Field Sales - MR targets
A period-scoped quota per MR with achievement counters.
"""

from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator

from config import parse_datetime


class PeriodType(str, Enum):
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    HALF_YEARLY = "Half-Yearly"
    YEARLY = "Yearly"


class TargetStatus(str, Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class TargetPeriod(BaseModel):
    type: PeriodType
    start_date: str
    end_date: str
    month: Optional[int] = Field(default=None, ge=1, le=12)
    quarter: Optional[int] = Field(default=None, ge=1, le=4)
    year: int

    @field_validator("start_date", "end_date")
    @classmethod
    def iso_date(cls, v):
        try:
            return parse_datetime(v).isoformat()
        except ValueError:
            raise ValueError(f"Invalid date: {v}")

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class VisitTargets(BaseModel):
    total_visits: int = Field(default=0, ge=0)
    new_doctor_visits: int = Field(default=0, ge=0)
    follow_up_visits: int = Field(default=0, ge=0)
    daily_visit_target: int = Field(default=0, ge=0)


class ProductWiseTarget(BaseModel):
    product_id: str
    target_quantity: int = Field(default=0, ge=0)
    target_value: float = Field(default=0.0, ge=0)


class SalesTargets(BaseModel):
    total_sales_value: float = Field(default=0.0, ge=0)
    total_orders: int = Field(default=0, ge=0)
    new_customer_orders: int = Field(default=0, ge=0)
    product_wise_targets: List[ProductWiseTarget] = []


class TerritoryTargets(BaseModel):
    doctor_coverage: float = Field(default=0.0, ge=0, le=100)      # %
    market_penetration: float = Field(default=0.0, ge=0, le=100)   # %
    new_doctor_acquisition: int = Field(default=0, ge=0)


class TargetCreate(BaseModel):
    mr_id: str
    period: TargetPeriod
    visit_targets: VisitTargets = Field(default_factory=VisitTargets)
    sales_targets: SalesTargets = Field(default_factory=SalesTargets)
    territory_targets: TerritoryTargets = Field(default_factory=TerritoryTargets)
    notes: Optional[str] = ""


class TargetUpdate(BaseModel):
    visit_targets: Optional[VisitTargets] = None
    sales_targets: Optional[SalesTargets] = None
    territory_targets: Optional[TerritoryTargets] = None
    status: Optional[TargetStatus] = None
    notes: Optional[str] = None
