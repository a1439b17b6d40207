# backend/models/production.py
import enum
from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship
from database import Base

class OpenProductionStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CANCELLED = "CANCELLED"

# "Produce X by consuming Y, Z": consumption OUT movements in one warehouse,
# one production IN movement in another
class OpenProduction(Base):
    __tablename__ = "open_productions"

    id = Column(Integer, primary_key=True, index=True)
    production_date = Column(DateTime, nullable=False, default=datetime.now, index=True)

    produced_material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    produced_quantity = Column(Float, nullable=False)
    production_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)
    consumption_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False)

    total_cost = Column(Float, nullable=False, default=0)
    status = Column(Enum(OpenProductionStatus), default=OpenProductionStatus.PENDING, nullable=False)
    notes = Column(String, nullable=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    produced_material = relationship("Material")
    production_warehouse = relationship("Warehouse", foreign_keys=[production_warehouse_id])
    consumption_warehouse = relationship("Warehouse", foreign_keys=[consumption_warehouse_id])
    user = relationship("User")
    items = relationship("OpenProductionItem", back_populates="open_production", cascade="all, delete-orphan")

    @property
    def unit_cost(self):
        if not self.produced_quantity:
            return 0.0
        return (self.total_cost or 0) / self.produced_quantity

# One consumed ingredient, costed at the time the production was (re)applied
class OpenProductionItem(Base):
    __tablename__ = "open_production_items"

    id = Column(Integer, primary_key=True, index=True)
    open_production_id = Column(Integer, ForeignKey("open_productions.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    quantity = Column(Float, nullable=False)
    unit_cost = Column(Float, nullable=False, default=0)
    total_cost = Column(Float, nullable=False, default=0)
    notes = Column(String, nullable=True)

    open_production = relationship("OpenProduction", back_populates="items")
    material = relationship("Material")
