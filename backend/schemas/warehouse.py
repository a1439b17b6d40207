# backend/schemas/warehouse.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

# Base schema for warehouse data
class WarehouseBase(BaseModel):
    name: str = Field(..., min_length=1)
    type: Optional[str] = "GENERAL"
    location: Optional[str] = None
    description: Optional[str] = None
    is_active: bool = True

class WarehouseCreate(WarehouseBase):
    pass

# Schema for partial warehouse updates
class WarehouseUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

class WarehouseResponse(WarehouseBase):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

# One material's stock inside a warehouse
class WarehouseStockRow(BaseModel):
    material_id: int
    material_name: str
    material_code: Optional[str] = None
    unit: str
    current_stock: float
    available_stock: float
    average_cost: float
    stock_value: float
