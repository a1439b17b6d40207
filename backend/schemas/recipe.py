# backend/schemas/recipe.py
from pydantic import BaseModel, Field, ConfigDict
from typing import List, Optional

# --- Recipes ---
class RecipeIngredientCreate(BaseModel):
    material_id: int
    quantity: float = Field(..., gt=0)
    notes: Optional[str] = None

class RecipeCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    warehouse_id: Optional[int] = None
    servings: float = Field(1, gt=0)
    is_active: bool = True
    ingredients: List[RecipeIngredientCreate] = []

class RecipeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    warehouse_id: Optional[int] = None
    servings: Optional[float] = Field(None, gt=0)
    is_active: Optional[bool] = None
    # When given, replaces every ingredient
    ingredients: Optional[List[RecipeIngredientCreate]] = None

class RecipeIngredientResponse(BaseModel):
    id: int
    material_id: int
    quantity: float
    unit_cost: float
    total_cost: float
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class RecipeResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    warehouse_id: Optional[int] = None
    servings: float
    total_cost: float
    cost_per_serving: float
    is_active: bool
    ingredients: List[RecipeIngredientResponse] = []

    model_config = ConfigDict(from_attributes=True)

# --- Sales items ---
class SalesItemCreate(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: float = Field(0, ge=0)
    is_active: bool = True

class SalesItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    is_active: Optional[bool] = None

class SalesItemResponse(SalesItemCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)

# --- Recipe mappings ---
class RecipeMappingCreate(BaseModel):
    sales_item_id: int
    recipe_id: int
    portion_ratio: float = Field(1, gt=0)
    priority: int = 1
    is_active: bool = True

class RecipeMappingUpdate(BaseModel):
    portion_ratio: Optional[float] = Field(None, gt=0)
    priority: Optional[int] = None
    is_active: Optional[bool] = None

class RecipeMappingResponse(RecipeMappingCreate):
    id: int

    model_config = ConfigDict(from_attributes=True)
