# backend/schemas/supplier.py
from pydantic import BaseModel, Field
from typing import Optional

class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1)
    tax_number: Optional[str] = None
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    is_active: bool = True

class SupplierCreate(SupplierBase):
    # Open a SUPPLIER current account for the new supplier
    create_current_account: bool = False

class SupplierUpdate(BaseModel):
    name: Optional[str] = None
    tax_number: Optional[str] = None
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    is_active: Optional[bool] = None

class SupplierResponse(SupplierBase):
    id: int

    class Config:
        from_attributes = True
