# backend/models/recipe.py
from sqlalchemy import Column, Integer, String, Float, Boolean, ForeignKey, DateTime, UniqueConstraint, func
from sqlalchemy.orm import relationship
from database import Base

# A recipe consumes its ingredients from `warehouse_id` (or each material's default warehouse)
class Recipe(Base):
    __tablename__ = "recipes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=True)
    servings = Column(Float, nullable=False, default=1)

    total_cost = Column(Float, nullable=False, default=0)
    cost_per_serving = Column(Float, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    warehouse = relationship("Warehouse")
    ingredients = relationship("RecipeIngredient", back_populates="recipe", cascade="all, delete-orphan")
    mappings = relationship("RecipeMapping", back_populates="recipe", cascade="all, delete-orphan")

class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"

    id = Column(Integer, primary_key=True, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    quantity = Column(Float, nullable=False)
    unit_cost = Column(Float, nullable=False, default=0)
    total_cost = Column(Float, nullable=False, default=0)
    notes = Column(String, nullable=True)

    recipe = relationship("Recipe", back_populates="ingredients")
    material = relationship("Material")

# A menu item sold at the till
class SalesItem(Base):
    __tablename__ = "sales_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(String, nullable=True)
    price = Column(Float, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    mappings = relationship("RecipeMapping", back_populates="sales_item", cascade="all, delete-orphan")

# Links a sales item to the recipe whose ingredients a sale consumes.
# portion_ratio scales the recipe (0.5 = half portion).
class RecipeMapping(Base):
    __tablename__ = "recipe_mappings"

    id = Column(Integer, primary_key=True, index=True)
    sales_item_id = Column(Integer, ForeignKey("sales_items.id"), nullable=False, index=True)
    recipe_id = Column(Integer, ForeignKey("recipes.id"), nullable=False, index=True)
    portion_ratio = Column(Float, nullable=False, default=1)
    priority = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, default=True, nullable=False)

    sales_item = relationship("SalesItem", back_populates="mappings")
    recipe = relationship("Recipe", back_populates="mappings")

    __table_args__ = (
        UniqueConstraint("sales_item_id", "recipe_id", name="uq_recipe_mapping_item_recipe"),
    )
