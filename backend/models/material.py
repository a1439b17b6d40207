# backend/models/material.py
from sqlalchemy import (
    Column, Integer, String, Float, Boolean, ForeignKey, DateTime, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from database import Base

# Model Material
# A stocked item (flour, olive oil, dough...). current_stock and average_cost
# are denormalized totals across all warehouses and are kept in step by the
# ledger (utils/ledger.py), never edited directly by the CRUD endpoints.
class Material(Base):
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    code = Column(String, unique=True, nullable=True, index=True)
    description = Column(String, nullable=True)
    unit = Column(String, nullable=False, default="kg")

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    default_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True)

    current_stock = Column(Float, nullable=False, default=0)
    average_cost = Column(Float, nullable=False, default=0)
    last_purchase_price = Column(Float, nullable=True)
    min_stock_level = Column(Float, nullable=False, default=0)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    category = relationship("Category", back_populates="materials")
    default_warehouse = relationship("Warehouse")
    stocks = relationship("MaterialStock", back_populates="material")


# Current quantity and weighted average cost of one material in one warehouse.
# Created lazily on the first movement into a warehouse and never deleted.
class MaterialStock(Base):
    __tablename__ = "material_stocks"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)

    current_stock = Column(Float, nullable=False, default=0)
    available_stock = Column(Float, nullable=False, default=0)
    reserved_stock = Column(Float, nullable=False, default=0)
    average_cost = Column(Float, nullable=False, default=0)
    last_updated = Column(DateTime, nullable=True)

    material = relationship("Material", back_populates="stocks")
    warehouse = relationship("Warehouse", back_populates="stocks")

    __table_args__ = (
        UniqueConstraint("material_id", "warehouse_id", name="uq_material_stock_material_warehouse"),
    )
