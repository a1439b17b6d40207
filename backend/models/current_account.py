# backend/models/current_account.py
import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship
from database import Base

class AccountType(str, enum.Enum):
    SUPPLIER = "SUPPLIER"
    CUSTOMER = "CUSTOMER"
    BOTH = "BOTH"

class TransactionType(str, enum.Enum):
    DEBT = "DEBT"
    CREDIT = "CREDIT"
    PAYMENT = "PAYMENT"
    ADJUSTMENT = "ADJUSTMENT"

class PaymentMethod(str, enum.Enum):
    CASH = "CASH"
    BANK_TRANSFER = "BANK_TRANSFER"
    CREDIT_CARD = "CREDIT_CARD"
    CHECK = "CHECK"
    OTHER = "OTHER"

class PaymentState(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

# Supplier/customer ledger (CAR001...). Positive balance means money owed to the counterparty.
class CurrentAccount(Base):
    __tablename__ = "current_accounts"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False, index=True)
    type = Column(Enum(AccountType), default=AccountType.SUPPLIER, nullable=False)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True)

    opening_balance = Column(Float, nullable=False, default=0)
    current_balance = Column(Float, nullable=False, default=0)
    credit_limit = Column(Float, nullable=False, default=0)

    contact_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    email = Column(String, nullable=True)
    address = Column(String, nullable=True)
    tax_number = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_activity_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    supplier = relationship("Supplier")
    transactions = relationship("CurrentAccountTransaction", back_populates="current_account", cascade="all, delete-orphan")
    payments = relationship("Payment", back_populates="current_account")

# One entry on an account; amount is signed and balance snapshots are rewritten on recalculation
class CurrentAccountTransaction(Base):
    __tablename__ = "current_account_transactions"

    id = Column(Integer, primary_key=True, index=True)
    current_account_id = Column(Integer, ForeignKey("current_accounts.id"), nullable=False, index=True)
    transaction_date = Column(DateTime, nullable=False, default=datetime.now, index=True)
    type = Column(Enum(TransactionType), nullable=False)
    amount = Column(Float, nullable=False)
    description = Column(String, nullable=True)
    reference_number = Column(String, nullable=True)
    balance_before = Column(Float, nullable=False, default=0)
    balance_after = Column(Float, nullable=False, default=0)

    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    current_account = relationship("CurrentAccount", back_populates="transactions")

class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    payment_number = Column(String, unique=True, nullable=False, index=True)
    current_account_id = Column(Integer, ForeignKey("current_accounts.id"), nullable=False, index=True)
    payment_date = Column(DateTime, nullable=False, default=datetime.now)
    amount = Column(Float, nullable=False)
    payment_method = Column(Enum(PaymentMethod), default=PaymentMethod.CASH, nullable=False)
    currency = Column(String, nullable=False, default="TRY")
    reference_number = Column(String, nullable=True)
    description = Column(String, nullable=True)
    status = Column(Enum(PaymentState), default=PaymentState.PENDING, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    current_account = relationship("CurrentAccount", back_populates="payments")
