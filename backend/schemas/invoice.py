# backend/schemas/invoice.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Optional

from models.invoice import InvoiceType, InvoiceStatus

# Line input; every amount is computed server side
class InvoiceItemCreate(BaseModel):
    material_id: int
    warehouse_id: int
    quantity: float = Field(..., gt=0)
    unit_price: float = Field(..., ge=0)
    tax_rate: float = Field(0, ge=0, le=100)
    discount1_rate: float = Field(0, ge=0, le=100)
    discount2_rate: float = Field(0, ge=0, le=100)

class InvoiceCreate(BaseModel):
    invoice_number: str = Field(..., min_length=1)
    type: InvoiceType
    status: InvoiceStatus = InvoiceStatus.PENDING
    supplier_id: Optional[int] = None
    current_account_id: Optional[int] = None
    date: datetime
    due_date: Optional[datetime] = None
    notes: Optional[str] = None
    create_stock_movements: bool = True
    items: List[InvoiceItemCreate] = Field(..., min_length=1)

class InvoiceUpdate(InvoiceCreate):
    pass

# Schema for updating invoice status
class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus
    payment_date: Optional[datetime] = None

class InvoiceItemResponse(BaseModel):
    id: int
    material_id: int
    warehouse_id: int
    quantity: float
    unit_price: float
    tax_rate: float
    discount1_rate: float
    discount2_rate: float
    discount1_amount: float
    discount2_amount: float
    total_discount_amount: float
    subtotal_amount: float
    net_amount: float
    tax_amount: float
    total_amount: float

    model_config = ConfigDict(from_attributes=True)

class InvoiceResponse(BaseModel):
    id: int
    invoice_number: str
    type: InvoiceType
    status: InvoiceStatus
    supplier_id: Optional[int] = None
    supplier_name: Optional[str] = None
    current_account_id: Optional[int] = None
    date: datetime
    due_date: Optional[datetime] = None
    payment_date: Optional[datetime] = None
    subtotal_amount: float
    total_discount_amount: float
    total_tax_amount: float
    total_amount: float
    notes: Optional[str] = None
    items: List[InvoiceItemResponse] = []

    model_config = ConfigDict(from_attributes=True)
