# backend/schemas/material.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional
from datetime import datetime

# --- Categories ---
class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    parent_id: Optional[int] = None

class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    parent_id: Optional[int] = None

class CategoryResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    parent_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

# --- Materials ---
class MaterialBase(BaseModel):
    name: str = Field(..., min_length=1)
    code: Optional[str] = None
    description: Optional[str] = None
    unit: str = "kg"
    category_id: Optional[int] = None
    default_warehouse_id: Optional[int] = None
    min_stock_level: float = Field(0, ge=0)
    is_active: bool = True

class MaterialCreate(MaterialBase):
    # Starting cost basis before the first purchase
    average_cost: float = Field(0, ge=0)

# Stock and average cost are ledger-owned and cannot be edited here
class MaterialUpdate(BaseModel):
    name: Optional[str] = None
    code: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None
    category_id: Optional[int] = None
    default_warehouse_id: Optional[int] = None
    min_stock_level: Optional[float] = Field(None, ge=0)

class MaterialResponse(MaterialBase):
    id: int
    current_stock: float
    average_cost: float
    last_purchase_price: Optional[float] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

# Per-warehouse stock of a material
class MaterialStockResponse(BaseModel):
    id: int
    material_id: int
    warehouse_id: int
    current_stock: float
    available_stock: float
    reserved_stock: float
    average_cost: float
    last_updated: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class MaterialDetail(MaterialResponse):
    stocks: List[MaterialStockResponse] = []
