# backend/schemas/expense.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Optional

from models.expense import PaymentStatus, ExpenseBatchStatus

# --- Hierarchy ---
class ExpenseMainCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    code: Optional[str] = None

class ExpenseSubCategoryCreate(BaseModel):
    main_category_id: int
    name: str = Field(..., min_length=1)

class ExpenseItemCreate(BaseModel):
    sub_category_id: int
    name: str = Field(..., min_length=1)
    is_recurring: bool = False
    default_amount: Optional[float] = Field(None, ge=0)

class ExpenseItemResponse(BaseModel):
    id: int
    sub_category_id: int
    name: str
    is_recurring: bool
    default_amount: Optional[float] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

class ExpenseSubCategoryResponse(BaseModel):
    id: int
    main_category_id: int
    name: str
    is_active: bool
    items: List[ExpenseItemResponse] = []

    model_config = ConfigDict(from_attributes=True)

class ExpenseMainCategoryResponse(BaseModel):
    id: int
    name: str
    code: Optional[str] = None
    is_active: bool
    sub_categories: List[ExpenseSubCategoryResponse] = []

    model_config = ConfigDict(from_attributes=True)

# --- Single expenses ---
class ExpenseCreate(BaseModel):
    expense_item_id: int
    description: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    date: datetime
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_date: Optional[datetime] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None

class ExpenseUpdate(BaseModel):
    expense_item_id: Optional[int] = None
    description: Optional[str] = None
    amount: Optional[float] = Field(None, gt=0)
    date: Optional[datetime] = None
    payment_status: Optional[PaymentStatus] = None
    payment_date: Optional[datetime] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None

class ExpenseResponse(BaseModel):
    id: int
    expense_item_id: int
    description: str
    amount: float
    date: datetime
    payment_status: PaymentStatus
    payment_date: Optional[datetime] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

# --- Batches ---
class ExpenseBatchItemCreate(BaseModel):
    expense_item_id: int
    description: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_date: Optional[datetime] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None

class ExpenseBatchCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    period_year: int = Field(..., ge=2000, le=2100)
    period_month: int = Field(..., ge=1, le=12)
    entry_date: Optional[datetime] = None
    items: List[ExpenseBatchItemCreate] = Field(..., min_length=1)

class ExpenseBatchUpdate(ExpenseBatchCreate):
    pass

class ExpenseBatchStatusUpdate(BaseModel):
    status: ExpenseBatchStatus

class ExpenseBatchItemResponse(BaseModel):
    id: int
    expense_item_id: int
    description: str
    amount: float
    payment_status: PaymentStatus
    payment_date: Optional[datetime] = None
    invoice_number: Optional[str] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class ExpenseBatchResponse(BaseModel):
    id: int
    batch_number: str
    name: str
    description: Optional[str] = None
    period_year: int
    period_month: int
    entry_date: datetime
    total_amount: float
    status: ExpenseBatchStatus
    user_id: Optional[int] = None
    items: List[ExpenseBatchItemResponse] = []

    model_config = ConfigDict(from_attributes=True)
