"""
Pharma Field Sales - Product catalog

Nested shape:
{
    "product_id": "PROD0001",          # optional, unique when present
    "basic_info": {"name": "Paracip 500", "category": "Analgesic"},
    "medical_info": {"composition": "Paracetamol 500mg", "dosage_form": "Tablet"},
    "business_info": {"mrp": 32.5}
}
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


class BasicInfo(BaseModel):
    name: str
    category: str = ""

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Product name is required")
        return v.strip()


class MedicalInfo(BaseModel):
    composition: str = ""
    dosage_form: str = ""


class BusinessInfo(BaseModel):
    mrp: float = Field(default=0.0, ge=0)


class ProductCreate(BaseModel):
    product_id: Optional[str] = None
    basic_info: BasicInfo
    medical_info: MedicalInfo = Field(default_factory=MedicalInfo)
    business_info: BusinessInfo = Field(default_factory=BusinessInfo)

    @field_validator("product_id")
    @classmethod
    def blank_product_id_is_none(cls, v):
        # "" would collide under the sparse unique index, null does not
        if v is None or not v.strip():
            return None
        return v.strip().upper()


class BasicInfoUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None


class MedicalInfoUpdate(BaseModel):
    composition: Optional[str] = None
    dosage_form: Optional[str] = None


class BusinessInfoUpdate(BaseModel):
    mrp: Optional[float] = Field(default=None, ge=0)


class ProductUpdate(BaseModel):
    product_id: Optional[str] = None
    basic_info: Optional[BasicInfoUpdate] = None
    medical_info: Optional[MedicalInfoUpdate] = None
    business_info: Optional[BusinessInfoUpdate] = None
    is_active: Optional[bool] = None

    @field_validator("product_id")
    @classmethod
    def normalize_product_id(cls, v):
        if v is None or not v.strip():
            return None
        return v.strip().upper()


class ProductImport(BaseModel):
    """Raw CSV text, first line is the header."""
    content: str
