# backend/models/stock.py
import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship
from database import Base

# Movement classification stored on every ledger row
class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"
    WASTE = "WASTE"
    TRANSFER = "TRANSFER"

# Append-only ledger row. stock_after = stock_before + quantity for the same
# (material, warehouse) pair; the database does not enforce it, the ledger does.
class StockMovement(Base):
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Signed: positive increases stock, negative decreases it
    quantity = Column(Float, nullable=False)
    type = Column(String, nullable=False, index=True)

    unit_cost = Column(Float, nullable=False, default=0)
    total_cost = Column(Float, nullable=False, default=0)
    stock_before = Column(Float, nullable=False, default=0)
    stock_after = Column(Float, nullable=False, default=0)

    reason = Column(String, nullable=True, index=True)
    date = Column(DateTime, nullable=False, default=datetime.now, index=True)

    # Source document, at most one is set
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True, index=True)
    open_production_id = Column(Integer, ForeignKey("open_productions.id"), nullable=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.id"), nullable=True, index=True)
    transfer_id = Column(Integer, ForeignKey("warehouse_transfers.id"), nullable=True, index=True)
    stock_count_id = Column(Integer, ForeignKey("stock_counts.id"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    material = relationship("Material")
    warehouse = relationship("Warehouse")
    user = relationship("User")


class TransferStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"

# Request to move stock between two warehouses; stock only moves on approval
class WarehouseTransfer(Base):
    __tablename__ = "warehouse_transfers"

    id = Column(Integer, primary_key=True, index=True)
    from_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    to_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    quantity = Column(Float, nullable=False)
    reason = Column(String, nullable=True)
    status = Column(Enum(TransferStatus), default=TransferStatus.PENDING, nullable=False)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    request_date = Column(DateTime, nullable=False, default=datetime.now)
    approved_date = Column(DateTime, nullable=True)

    from_warehouse = relationship("Warehouse", foreign_keys=[from_warehouse_id])
    to_warehouse = relationship("Warehouse", foreign_keys=[to_warehouse_id])
    material = relationship("Material")
