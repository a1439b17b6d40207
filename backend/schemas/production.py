# backend/schemas/production.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Optional

from models.production import OpenProductionStatus

# One consumed material
class OpenProductionItemCreate(BaseModel):
    material_id: int
    quantity: float = Field(..., gt=0)
    notes: Optional[str] = None

class OpenProductionCreate(BaseModel):
    production_date: Optional[datetime] = None
    produced_material_id: int
    produced_quantity: float = Field(..., gt=0)
    production_warehouse_id: int
    consumption_warehouse_id: int
    notes: Optional[str] = None
    items: List[OpenProductionItemCreate] = Field(..., min_length=1)

# Full replacement of a PENDING production
class OpenProductionUpdate(OpenProductionCreate):
    pass

class OpenProductionStatusUpdate(BaseModel):
    status: OpenProductionStatus

class OpenProductionItemResponse(BaseModel):
    id: int
    material_id: int
    quantity: float
    unit_cost: float
    total_cost: float
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class OpenProductionResponse(BaseModel):
    id: int
    production_date: datetime
    produced_material_id: int
    produced_quantity: float
    production_warehouse_id: int
    consumption_warehouse_id: int
    total_cost: float
    unit_cost: float
    status: OpenProductionStatus
    notes: Optional[str] = None
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OpenProductionItemResponse] = []

    model_config = ConfigDict(from_attributes=True)
