# schemas/reports.py
from datetime import datetime
from typing import Dict, List, Optional
from pydantic import BaseModel

# Materials at or below their minimum level
class LowStockItem(BaseModel):
    material_id: int
    name: str
    code: Optional[str] = None
    unit: str
    current_stock: float
    min_stock_level: float

# --- Stock extract ---
class StockExtractRecord(BaseModel):
    material_id: int
    material_name: str
    material_code: Optional[str] = None
    unit: str
    category_id: Optional[int] = None
    category_name: str
    main_category_id: Optional[int] = None
    main_category_name: str
    warehouse_id: int
    warehouse_name: str

    opening_stock: float
    purchase_in: float
    transfer_in: float
    production_in: float
    adjustment_in: float
    return_out: float
    transfer_out: float
    consumption_out: float
    adjustment_out: float
    total_in: float
    total_out: float
    closing_stock: float

    # Present when report_type == "amount"
    opening_stock_amount: Optional[float] = None
    purchase_in_amount: Optional[float] = None
    transfer_in_amount: Optional[float] = None
    production_in_amount: Optional[float] = None
    adjustment_in_amount: Optional[float] = None
    return_out_amount: Optional[float] = None
    transfer_out_amount: Optional[float] = None
    consumption_out_amount: Optional[float] = None
    adjustment_out_amount: Optional[float] = None
    closing_stock_amount: Optional[float] = None

class StockExtractSummary(BaseModel):
    total_materials: int
    total_warehouses: int
    total_records: int

class StockExtractReport(BaseModel):
    period: Dict[str, str]
    report_type: str
    records: List[StockExtractRecord]
    summary: StockExtractSummary

# --- Profit and loss ---
class RevenueLine(BaseModel):
    id: int
    number: str
    amount: float
    date: datetime
    type: str

class Revenue(BaseModel):
    total_revenue: float
    sales_invoices: float
    product_sales: float
    other_revenue: float
    breakdown: List[RevenueLine]

class CogsLine(BaseModel):
    material_id: int
    material_name: str
    category_name: str
    quantity: float
    unit_cost: float
    total_cost: float

class Cogs(BaseModel):
    total_cogs: float
    material_consumption: float
    breakdown: List[CogsLine]

class AmountShare(BaseModel):
    amount: float
    percentage: float

class ExpenseCategoryLine(BaseModel):
    category: str
    amount: float
    percentage: float

class ExpenseItemLine(BaseModel):
    name: str
    amount: float
    percentage: float

class ExpenseSubCategoryLine(ExpenseItemLine):
    items: List[ExpenseItemLine]

class ExpenseMainCategoryLine(BaseModel):
    main_category: str
    amount: float
    percentage: float
    sub_categories: List[ExpenseSubCategoryLine]

class OperatingExpenses(BaseModel):
    total_expenses: float
    salaries: float
    rent: float
    utilities: float
    marketing: float
    other: float
    breakdown: List[ExpenseCategoryLine]
    detailed_breakdown: Optional[List[ExpenseMainCategoryLine]] = None

class WarehouseProfit(BaseModel):
    warehouse_id: int
    warehouse_name: str
    revenue: float
    cogs: float
    gross_profit: float
    gross_profit_percentage: float

class ProfitLossReport(BaseModel):
    period: Dict[str, str]
    revenue: Revenue
    cogs: Cogs
    gross_profit: AmountShare
    operating_expenses: OperatingExpenses
    net_profit: AmountShare
    warehouse_breakdown: Optional[List[WarehouseProfit]] = None
