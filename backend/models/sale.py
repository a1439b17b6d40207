# backend/models/sale.py
from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, DateTime, func
from sqlalchemy.orm import relationship
from database import Base

# A product sale; when mapped to a recipe it consumes ingredients through the ledger
class Sale(Base):
    __tablename__ = "sales"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(DateTime, nullable=False, default=datetime.now, index=True)
    sales_item_id = Column(Integer, ForeignKey("sales_items.id"), nullable=True)
    item_name = Column(String, nullable=False)

    quantity = Column(Float, nullable=False)
    unit_price = Column(Float, nullable=False)
    total_price = Column(Float, nullable=False)

    recipe_id = Column(Integer, ForeignKey("recipes.id"), nullable=True)
    portion_ratio = Column(Float, nullable=False, default=1)
    total_cost = Column(Float, nullable=False, default=0)
    gross_profit = Column(Float, nullable=False, default=0)
    profit_margin = Column(Float, nullable=False, default=0)
    stock_processed = Column(Boolean, default=False, nullable=False)

    customer_name = Column(String, nullable=True)
    notes = Column(String, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    sales_item = relationship("SalesItem")
    recipe = relationship("Recipe")
    user = relationship("User")
