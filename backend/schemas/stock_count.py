# backend/schemas/stock_count.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import date, datetime
from typing import List, Optional

from models.stock_count import StockCountStatus

class StockCountCreate(BaseModel):
    warehouse_id: int
    count_date: date
    # Local time of day the count reflects; movements up to that minute are included
    count_time: str = Field("23:59", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    notes: Optional[str] = None

class StockCountStatusUpdate(BaseModel):
    status: StockCountStatus
    notes: Optional[str] = None

class StockCountItemAdd(BaseModel):
    material_id: int

class StockCountItemUpdate(BaseModel):
    counted_stock: float = Field(..., ge=0)
    reason: Optional[str] = None

class StockCountItemResponse(BaseModel):
    id: int
    material_id: int
    material_name: Optional[str] = None
    unit: Optional[str] = None
    system_stock: float
    counted_stock: float
    difference: float
    reason: Optional[str] = None
    is_completed: bool
    is_manually_added: bool
    counted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class StockCountResponse(BaseModel):
    id: int
    count_number: str
    warehouse_id: int
    warehouse_name: Optional[str] = None
    status: StockCountStatus
    count_date: datetime
    count_time: str
    cutoff_datetime: datetime
    notes: Optional[str] = None
    counted_by: Optional[int] = None
    approved_by: Optional[int] = None
    approved_date: Optional[datetime] = None
    item_count: int
    completed_item_count: int
    items: List[StockCountItemResponse] = []

    model_config = ConfigDict(from_attributes=True)
