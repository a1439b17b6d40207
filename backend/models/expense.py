# backend/models/expense.py
import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship
from database import Base

class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"

class ExpenseBatchStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PROCESSED = "PROCESSED"

# Three-level expense hierarchy: main category -> sub category -> item
class ExpenseMainCategory(Base):
    __tablename__ = "expense_main_categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    code = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    sub_categories = relationship("ExpenseSubCategory", back_populates="main_category", cascade="all, delete-orphan")

class ExpenseSubCategory(Base):
    __tablename__ = "expense_sub_categories"

    id = Column(Integer, primary_key=True, index=True)
    main_category_id = Column(Integer, ForeignKey("expense_main_categories.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    main_category = relationship("ExpenseMainCategory", back_populates="sub_categories")
    items = relationship("ExpenseItem", back_populates="sub_category", cascade="all, delete-orphan")

class ExpenseItem(Base):
    __tablename__ = "expense_items"

    id = Column(Integer, primary_key=True, index=True)
    sub_category_id = Column(Integer, ForeignKey("expense_sub_categories.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    is_recurring = Column(Boolean, default=False, nullable=False)
    default_amount = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    sub_category = relationship("ExpenseSubCategory", back_populates="items")

# A single expense entry outside any batch
class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    expense_item_id = Column(Integer, ForeignKey("expense_items.id"), nullable=False, index=True)
    description = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    date = Column(DateTime, nullable=False, default=datetime.now, index=True)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    payment_date = Column(DateTime, nullable=True)
    invoice_number = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    expense_item = relationship("ExpenseItem")

# Monthly batch entry of expenses (EB-YYYY-MM-NNN)
class ExpenseBatch(Base):
    __tablename__ = "expense_batches"

    id = Column(Integer, primary_key=True, index=True)
    batch_number = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String, nullable=True)
    period_year = Column(Integer, nullable=False)
    period_month = Column(Integer, nullable=False)
    entry_date = Column(DateTime, nullable=False, default=datetime.now, index=True)
    total_amount = Column(Float, nullable=False, default=0)
    status = Column(Enum(ExpenseBatchStatus), default=ExpenseBatchStatus.DRAFT, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship("ExpenseBatchItem", back_populates="batch", cascade="all, delete-orphan")

class ExpenseBatchItem(Base):
    __tablename__ = "expense_batch_items"

    id = Column(Integer, primary_key=True, index=True)
    batch_id = Column(Integer, ForeignKey("expense_batches.id"), nullable=False, index=True)
    expense_item_id = Column(Integer, ForeignKey("expense_items.id"), nullable=False)
    description = Column(String, nullable=False)
    amount = Column(Float, nullable=False)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    payment_date = Column(DateTime, nullable=True)
    invoice_number = Column(String, nullable=True)
    notes = Column(String, nullable=True)

    batch = relationship("ExpenseBatch", back_populates="items")
    expense_item = relationship("ExpenseItem")
