# backend/schemas/sale.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional

class SaleCreate(BaseModel):
    sales_item_id: Optional[int] = None
    # Required when no sales item is given
    item_name: Optional[str] = None
    quantity: float = Field(..., gt=0)
    unit_price: Optional[float] = Field(None, ge=0)
    date: Optional[datetime] = None
    customer_name: Optional[str] = None
    notes: Optional[str] = None
    # Consume recipe ingredients right away
    process_stock: bool = True

class SaleUpdate(SaleCreate):
    pass

class SaleResponse(BaseModel):
    id: int
    date: datetime
    sales_item_id: Optional[int] = None
    item_name: str
    quantity: float
    unit_price: float
    total_price: float
    recipe_id: Optional[int] = None
    portion_ratio: float
    total_cost: float
    gross_profit: float
    profit_margin: float
    stock_processed: bool
    customer_name: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)
