# backend/schemas/stock.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import List, Optional, Literal

from models.stock import TransferStatus

# Types a manual adjustment may record
AdjustmentType = Literal["ADJUSTMENT", "WASTE"]

# Schema for returning ledger rows
class StockMovementResponse(BaseModel):
    id: int
    material_id: int
    warehouse_id: int
    user_id: Optional[int] = None
    quantity: float
    type: str
    unit_cost: float
    total_cost: float
    stock_before: float
    stock_after: float
    reason: Optional[str] = None
    date: datetime
    invoice_id: Optional[int] = None
    open_production_id: Optional[int] = None
    sale_id: Optional[int] = None
    transfer_id: Optional[int] = None
    stock_count_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

# Manual stock correction. WASTE is always recorded as a decrease.
class StockAdjustmentCreate(BaseModel):
    material_id: int
    warehouse_id: int
    quantity: float
    type: AdjustmentType = "ADJUSTMENT"
    unit_cost: Optional[float] = Field(None, ge=0)
    reason: Optional[str] = None
    date: Optional[datetime] = None

# --- Transfers ---
class TransferCreate(BaseModel):
    from_warehouse_id: int
    to_warehouse_id: int
    material_id: int
    quantity: float = Field(..., gt=0)
    reason: Optional[str] = None

class TransferResponse(BaseModel):
    id: int
    from_warehouse_id: int
    to_warehouse_id: int
    material_id: int
    quantity: float
    reason: Optional[str] = None
    status: TransferStatus
    user_id: Optional[int] = None
    approved_by: Optional[int] = None
    request_date: datetime
    approved_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

# --- Consistency ---
class ConsistencyRow(BaseModel):
    material_id: int
    material_name: str
    movement_total: float
    warehouse_total: float
    material_stock: float
    consistent: bool

class ConsistencyReport(BaseModel):
    checked: int
    inconsistent: int
    rows: List[ConsistencyRow]

# --- Average cost rebuild ---
class CostRebuildRow(BaseModel):
    material_id: int
    material_name: str
    material_code: Optional[str] = None
    old_cost: float
    new_cost: float
    movement_count: int
    updated: bool
