# backend/routes/recipes.py
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from database import get_db
from models.material import Material
from models.recipe import Recipe, RecipeIngredient, SalesItem, RecipeMapping
from models.sale import Sale
from models.users import User
from models.warehouse import Warehouse
from schemas.common import ApiResponse
from schemas.recipe import (
    RecipeCreate, RecipeUpdate, RecipeResponse,
    SalesItemCreate, SalesItemUpdate, SalesItemResponse,
    RecipeMappingCreate, RecipeMappingUpdate, RecipeMappingResponse,
)
from utils.audit import write_log, client_ip
from utils.costing import recalculate_recipe_costs
from utils.lookups import get_or_404, ensure_exists
from utils.tokenJWT import get_current_user, role_required, ADMIN, MANAGER

router = APIRouter(tags=["Recipes"])


# =========================
# Recipes
# =========================

def _load_recipe(db: Session, recipe_id: int) -> Recipe:
    recipe = db.query(Recipe).options(selectinload(Recipe.ingredients)).filter(Recipe.id == recipe_id).first()
    if not recipe:
        raise HTTPException(status_code=404, detail="Recipe not found")
    return recipe


def _set_ingredients(db: Session, recipe: Recipe, ingredients):
    recipe.ingredients.clear()
    db.flush()
    for item in ingredients:
        ensure_exists(db, Material, item.material_id, "Material")
        recipe.ingredients.append(RecipeIngredient(material_id=item.material_id, quantity=item.quantity, notes=item.notes))
    db.flush()


@router.get("/recipes", response_model=ApiResponse[List[RecipeResponse]])
def list_recipes(
    q: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Recipe).options(selectinload(Recipe.ingredients))
    if q:
        query = query.filter(Recipe.name.ilike(f"%{q}%"))
    if is_active is not None:
        query = query.filter(Recipe.is_active.is_(is_active))
    return {"success": True, "data": query.order_by(Recipe.name).all()}


@router.post("/recipes", response_model=ApiResponse[RecipeResponse])
def create_recipe(
    payload: RecipeCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    if payload.warehouse_id is not None:
        ensure_exists(db, Warehouse, payload.warehouse_id, "Warehouse")

    recipe = Recipe(**payload.model_dump(exclude={"ingredients"}))
    db.add(recipe)
    db.flush()
    _set_ingredients(db, recipe, payload.ingredients)
    recalculate_recipe_costs(db, recipe)
    db.commit()
    db.refresh(recipe)

    write_log(db, user_id=current_user.id, action="RECIPE_CREATE", resource="recipes",
              entity_id=recipe.id, ip=client_ip(request), meta={"name": recipe.name, "total_cost": recipe.total_cost})
    return {"success": True, "data": recipe, "message": "Recipe created"}


@router.get("/recipes/{recipe_id}", response_model=ApiResponse[RecipeResponse])
def get_recipe(recipe_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"success": True, "data": _load_recipe(db, recipe_id)}


@router.put("/recipes/{recipe_id}", response_model=ApiResponse[RecipeResponse])
def update_recipe(
    recipe_id: int,
    payload: RecipeUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    recipe = _load_recipe(db, recipe_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"ingredients"})
    if changes.get("warehouse_id") is not None:
        ensure_exists(db, Warehouse, changes["warehouse_id"], "Warehouse")

    for field, value in changes.items():
        setattr(recipe, field, value)
    if payload.ingredients is not None:
        _set_ingredients(db, recipe, payload.ingredients)
    recalculate_recipe_costs(db, recipe)
    db.commit()
    db.refresh(recipe)

    write_log(db, user_id=current_user.id, action="RECIPE_UPDATE", resource="recipes",
              entity_id=recipe.id, ip=client_ip(request), meta={"total_cost": recipe.total_cost})
    return {"success": True, "data": recipe, "message": "Recipe updated"}


@router.delete("/recipes/{recipe_id}", response_model=ApiResponse[None])
def delete_recipe(
    recipe_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    recipe = _load_recipe(db, recipe_id)
    if db.query(Sale.id).filter(Sale.recipe_id == recipe.id).first():
        raise HTTPException(status_code=400, detail="Recipe is referenced by sales; deactivate it instead")

    db.delete(recipe)
    db.commit()

    write_log(db, user_id=current_user.id, action="RECIPE_DELETE", resource="recipes",
              entity_id=recipe_id, ip=client_ip(request))
    return {"success": True, "message": "Recipe deleted"}


@router.post("/recipes/recalculate-all-costs", response_model=ApiResponse[dict])
def recalculate_all_recipe_costs(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    recipes = db.query(Recipe).options(selectinload(Recipe.ingredients)).all()
    for recipe in recipes:
        recalculate_recipe_costs(db, recipe)
    db.commit()

    write_log(db, user_id=current_user.id, action="RECIPE_RECALCULATE_ALL", resource="recipes",
              ip=client_ip(request), meta={"count": len(recipes)})
    return {"success": True, "data": {"updated": len(recipes)}, "message": f"{len(recipes)} recipes recalculated"}


@router.post("/recipes/{recipe_id}/recalculate-costs", response_model=ApiResponse[RecipeResponse])
def recalculate_recipe(
    recipe_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    recipe = _load_recipe(db, recipe_id)
    recalculate_recipe_costs(db, recipe)
    db.commit()
    db.refresh(recipe)

    write_log(db, user_id=current_user.id, action="RECIPE_RECALCULATE", resource="recipes",
              entity_id=recipe.id, ip=client_ip(request), meta={"total_cost": recipe.total_cost})
    return {"success": True, "data": recipe}


# =========================
# Sales items
# =========================

@router.get("/sales-items", response_model=ApiResponse[List[SalesItemResponse]])
def list_sales_items(
    q: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(SalesItem)
    if q:
        query = query.filter(SalesItem.name.ilike(f"%{q}%"))
    if is_active is not None:
        query = query.filter(SalesItem.is_active.is_(is_active))
    return {"success": True, "data": query.order_by(SalesItem.name).all()}


@router.post("/sales-items", response_model=ApiResponse[SalesItemResponse])
def create_sales_item(
    payload: SalesItemCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    item = SalesItem(**payload.model_dump())
    db.add(item)
    db.commit()
    db.refresh(item)

    write_log(db, user_id=current_user.id, action="SALES_ITEM_CREATE", resource="sales_items",
              entity_id=item.id, ip=client_ip(request), meta={"name": item.name, "price": item.price})
    return {"success": True, "data": item, "message": "Sales item created"}


@router.put("/sales-items/{item_id}", response_model=ApiResponse[SalesItemResponse])
def update_sales_item(
    item_id: int,
    payload: SalesItemUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    item = get_or_404(db, SalesItem, item_id, "Sales item")
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(item, field, value)
    db.commit()
    db.refresh(item)

    write_log(db, user_id=current_user.id, action="SALES_ITEM_UPDATE", resource="sales_items",
              entity_id=item.id, ip=client_ip(request), meta={"fields": sorted(changes)})
    return {"success": True, "data": item, "message": "Sales item updated"}


# =========================
# Recipe mappings
# =========================

@router.get("/recipe-mappings", response_model=ApiResponse[List[RecipeMappingResponse]])
def list_mappings(
    sales_item_id: Optional[int] = Query(None),
    recipe_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(RecipeMapping)
    if sales_item_id is not None:
        query = query.filter(RecipeMapping.sales_item_id == sales_item_id)
    if recipe_id is not None:
        query = query.filter(RecipeMapping.recipe_id == recipe_id)
    return {"success": True, "data": query.order_by(RecipeMapping.sales_item_id, RecipeMapping.priority.desc()).all()}


@router.post("/recipe-mappings", response_model=ApiResponse[RecipeMappingResponse])
def create_mapping(
    payload: RecipeMappingCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    ensure_exists(db, SalesItem, payload.sales_item_id, "Sales item")
    ensure_exists(db, Recipe, payload.recipe_id, "Recipe")
    duplicate = db.query(RecipeMapping).filter(
        RecipeMapping.sales_item_id == payload.sales_item_id,
        RecipeMapping.recipe_id == payload.recipe_id,
    ).first()
    if duplicate:
        raise HTTPException(status_code=400, detail="This sales item is already mapped to the recipe")

    mapping = RecipeMapping(**payload.model_dump())
    db.add(mapping)
    db.commit()
    db.refresh(mapping)

    write_log(db, user_id=current_user.id, action="RECIPE_MAPPING_CREATE", resource="recipe_mappings",
              entity_id=mapping.id, ip=client_ip(request),
              meta={"sales_item_id": mapping.sales_item_id, "recipe_id": mapping.recipe_id})
    return {"success": True, "data": mapping, "message": "Mapping created"}


@router.put("/recipe-mappings/{mapping_id}", response_model=ApiResponse[RecipeMappingResponse])
def update_mapping(
    mapping_id: int,
    payload: RecipeMappingUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    mapping = get_or_404(db, RecipeMapping, mapping_id, "Recipe mapping")
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(mapping, field, value)
    db.commit()
    db.refresh(mapping)

    write_log(db, user_id=current_user.id, action="RECIPE_MAPPING_UPDATE", resource="recipe_mappings",
              entity_id=mapping.id, ip=client_ip(request), meta={"fields": sorted(changes)})
    return {"success": True, "data": mapping}


@router.delete("/recipe-mappings/{mapping_id}", response_model=ApiResponse[None])
def delete_mapping(
    mapping_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    mapping = get_or_404(db, RecipeMapping, mapping_id, "Recipe mapping")
    db.delete(mapping)
    db.commit()

    write_log(db, user_id=current_user.id, action="RECIPE_MAPPING_DELETE", resource="recipe_mappings",
              entity_id=mapping_id, ip=client_ip(request))
    return {"success": True, "message": "Mapping deleted"}
