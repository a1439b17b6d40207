# backend/schemas/current_account.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Optional

from models.current_account import AccountType, TransactionType, PaymentMethod, PaymentState

class CurrentAccountCreate(BaseModel):
    name: str = Field(..., min_length=1)
    type: AccountType = AccountType.SUPPLIER
    supplier_id: Optional[int] = None
    opening_balance: float = 0
    credit_limit: float = Field(0, ge=0)
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    tax_number: Optional[str] = None
    is_active: bool = True

# Opening balance is fixed once the account exists
class CurrentAccountUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[AccountType] = None
    supplier_id: Optional[int] = None
    credit_limit: Optional[float] = Field(None, ge=0)
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    tax_number: Optional[str] = None
    is_active: Optional[bool] = None

class Aging(BaseModel):
    current: float = 0
    days_30: float = 0
    days_60: float = 0
    days_90: float = 0

class CurrentAccountResponse(BaseModel):
    id: int
    code: str
    name: str
    type: AccountType
    supplier_id: Optional[int] = None
    opening_balance: float
    current_balance: float
    credit_limit: float
    contact_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    tax_number: Optional[str] = None
    is_active: bool
    last_activity_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class CurrentAccountSummary(CurrentAccountResponse):
    aging: Aging
    last_transaction_date: Optional[datetime] = None

# Manual entry; amount sign follows the type (DEBT +, CREDIT/PAYMENT -)
class TransactionCreate(BaseModel):
    type: TransactionType
    amount: float = Field(..., gt=0)
    transaction_date: Optional[datetime] = None
    description: Optional[str] = None
    reference_number: Optional[str] = None

class TransactionResponse(BaseModel):
    id: int
    current_account_id: int
    transaction_date: datetime
    type: TransactionType
    amount: float
    description: Optional[str] = None
    reference_number: Optional[str] = None
    balance_before: float
    balance_after: float
    invoice_id: Optional[int] = None
    payment_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

class AccountStatement(BaseModel):
    account: CurrentAccountResponse
    opening_balance: float
    transactions: List[TransactionResponse]
    total_debt: float
    total_credit: float
    closing_balance: float

# --- Payments ---
class PaymentCreate(BaseModel):
    current_account_id: int
    amount: float = Field(..., gt=0)
    payment_date: Optional[datetime] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    currency: str = "TRY"
    reference_number: Optional[str] = None
    description: Optional[str] = None
    status: PaymentState = PaymentState.COMPLETED

class PaymentStatusUpdate(BaseModel):
    status: PaymentState

class PaymentResponse(BaseModel):
    id: int
    payment_number: str
    current_account_id: int
    payment_date: datetime
    amount: float
    payment_method: PaymentMethod
    currency: str
    reference_number: Optional[str] = None
    description: Optional[str] = None
    status: PaymentState
    user_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)
