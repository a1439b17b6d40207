# backend/models/stock_count.py
import enum
from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, DateTime, Enum, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database import Base

class StockCountStatus(str, enum.Enum):
    PLANNING = "PLANNING"
    IN_PROGRESS = "IN_PROGRESS"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

# Physical count of one warehouse. system_stock on the items is the ledger
# quantity at cutoff_datetime; approval books the differences as ADJUSTMENT rows.
class StockCount(Base):
    __tablename__ = "stock_counts"

    id = Column(Integer, primary_key=True, index=True)
    count_number = Column(String, unique=True, nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    status = Column(Enum(StockCountStatus), default=StockCountStatus.PLANNING, nullable=False)

    count_date = Column(DateTime, nullable=False)
    count_time = Column(String, nullable=False, default="23:59")
    cutoff_datetime = Column(DateTime, nullable=False)
    notes = Column(String, nullable=True)

    counted_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    warehouse = relationship("Warehouse")
    items = relationship("StockCountItem", back_populates="stock_count", cascade="all, delete-orphan",
                         order_by="StockCountItem.id")

    @property
    def warehouse_name(self):
        return self.warehouse.name if self.warehouse else None

    @property
    def item_count(self):
        return len(self.items)

    @property
    def completed_item_count(self):
        return sum(1 for item in self.items if item.is_completed)

class StockCountItem(Base):
    __tablename__ = "stock_count_items"
    __table_args__ = (UniqueConstraint("stock_count_id", "material_id", name="uq_stock_count_material"),)

    id = Column(Integer, primary_key=True, index=True)
    stock_count_id = Column(Integer, ForeignKey("stock_counts.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)

    system_stock = Column(Float, nullable=False, default=0)
    counted_stock = Column(Float, nullable=False, default=0)
    # counted_stock - system_stock
    difference = Column(Float, nullable=False, default=0)
    reason = Column(String, nullable=True)

    is_completed = Column(Boolean, default=False, nullable=False)
    is_manually_added = Column(Boolean, default=False, nullable=False)
    counted_at = Column(DateTime, nullable=True)

    stock_count = relationship("StockCount", back_populates="items")
    material = relationship("Material")

    @property
    def material_name(self):
        return self.material.name if self.material else None

    @property
    def unit(self):
        return self.material.unit if self.material else None
