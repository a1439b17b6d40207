from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, func, Enum
from sqlalchemy.orm import relationship
from database import Base
import enum

class InvoiceType(str, enum.Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    RETURN = "RETURN"

# Enum for invoice workflow states
class InvoiceStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"

# Purchase, sale or return invoice. Totals are computed from the lines on save.
class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, index=True)
    invoice_number = Column(String, unique=True, nullable=False, index=True)
    type = Column(Enum(InvoiceType), nullable=False, index=True)
    status = Column(Enum(InvoiceStatus), default=InvoiceStatus.PENDING, nullable=False)

    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True)
    current_account_id = Column(Integer, ForeignKey("current_accounts.id"), nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    date = Column(DateTime, nullable=False, index=True)
    due_date = Column(DateTime, nullable=True)
    payment_date = Column(DateTime, nullable=True)

    subtotal_amount = Column(Float, nullable=False, default=0)
    total_discount_amount = Column(Float, nullable=False, default=0)
    total_tax_amount = Column(Float, nullable=False, default=0)
    total_amount = Column(Float, nullable=False, default=0)
    notes = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    supplier = relationship("Supplier")
    current_account = relationship("CurrentAccount")
    items = relationship("InvoiceItem", back_populates="invoice", cascade="all, delete-orphan")

    @property
    def supplier_name(self):
        return self.supplier.name if self.supplier else None

# Represents a line item on an invoice
class InvoiceItem(Base):
    __tablename__ = "invoice_items"
    id = Column(Integer, primary_key=True, index=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    quantity = Column(Float, nullable=False)
    unit_price = Column(Float, nullable=False)
    tax_rate = Column(Float, nullable=False, default=0)
    discount1_rate = Column(Float, nullable=False, default=0)
    discount2_rate = Column(Float, nullable=False, default=0)
    discount1_amount = Column(Float, nullable=False, default=0)
    discount2_amount = Column(Float, nullable=False, default=0)
    total_discount_amount = Column(Float, nullable=False, default=0)
    subtotal_amount = Column(Float, nullable=False, default=0)
    tax_amount = Column(Float, nullable=False, default=0)
    total_amount = Column(Float, nullable=False, default=0)

    invoice = relationship("Invoice", back_populates="items")
    material = relationship("Material")
    warehouse = relationship("Warehouse")

    @property
    def net_amount(self):
        return (self.subtotal_amount or 0) - (self.total_discount_amount or 0)
