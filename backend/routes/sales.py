# backend/routes/sales.py
import logging
from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from models.recipe import Recipe, RecipeMapping, SalesItem
from models.sale import Sale
from models.stock import StockMovement, MovementType
from models.users import User
from schemas.common import ApiResponse
from schemas.sale import SaleCreate, SaleUpdate, SaleResponse
from utils.audit import write_log, client_ip
from utils.dates import day_range
from utils.ledger import apply_movement, current_unit_cost, reverse_movements, purge_movements
from utils.lookups import get_or_404, ensure_exists
from utils.pagination import paginate
from utils.tokenJWT import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sales", tags=["Sales"])


def _active_mapping(db: Session, sales_item_id: Optional[int]) -> Optional[RecipeMapping]:
    """Highest priority active mapping of the sales item to an active recipe."""
    if sales_item_id is None:
        return None
    return db.query(RecipeMapping).join(Recipe, RecipeMapping.recipe_id == Recipe.id).filter(
        RecipeMapping.sales_item_id == sales_item_id,
        RecipeMapping.is_active.is_(True),
        Recipe.is_active.is_(True),
    ).order_by(RecipeMapping.priority.desc(), RecipeMapping.id).first()


def _price_sale(db: Session, sale: Sale, payload: SaleCreate):
    sales_item = None
    if payload.sales_item_id is not None:
        sales_item = ensure_exists(db, SalesItem, payload.sales_item_id, "Sales item")

    item_name = payload.item_name or (sales_item.name if sales_item else None)
    if not item_name:
        raise HTTPException(status_code=400, detail="Either sales_item_id or item_name is required")
    unit_price = payload.unit_price
    if unit_price is None:
        if sales_item is None:
            raise HTTPException(status_code=400, detail="unit_price is required without a sales item")
        unit_price = sales_item.price

    sale.sales_item_id = payload.sales_item_id
    sale.item_name = item_name
    sale.quantity = payload.quantity
    sale.unit_price = unit_price
    sale.total_price = payload.quantity * unit_price
    sale.customer_name = payload.customer_name
    sale.notes = payload.notes
    if payload.date is not None:
        sale.date = payload.date

    mapping = _active_mapping(db, payload.sales_item_id)
    if mapping is not None:
        sale.recipe_id = mapping.recipe_id
        sale.portion_ratio = mapping.portion_ratio
        sale.total_cost = (mapping.recipe.total_cost or 0.0) * mapping.portion_ratio * payload.quantity
    else:
        sale.recipe_id = None
        sale.portion_ratio = 1.0
        sale.total_cost = 0.0

    sale.gross_profit = sale.total_price - sale.total_cost
    sale.profit_margin = (sale.gross_profit / sale.total_price) * 100 if sale.total_price else 0.0


def _consume_ingredients(db: Session, sale: Sale, user_id: int, reason: str) -> int:
    """Post OUT movements for the recipe behind the sale; returns how many were written."""
    if sale.recipe_id is None:
        return 0
    recipe = db.get(Recipe, sale.recipe_id)
    written = 0
    for ingredient in recipe.ingredients:
        material = ingredient.material
        warehouse_id = recipe.warehouse_id or material.default_warehouse_id
        if warehouse_id is None:
            logger.warning("Sale #%s: ingredient '%s' has no warehouse, skipped", sale.id, material.name)
            continue
        quantity = ingredient.quantity * sale.portion_ratio * sale.quantity
        if quantity <= 0:
            continue
        apply_movement(
            db,
            material_id=material.id,
            warehouse_id=warehouse_id,
            quantity=-quantity,
            movement_type=MovementType.OUT,
            unit_cost=current_unit_cost(db, material, warehouse_id),
            reason=reason,
            user_id=user_id,
            date=sale.date,
            sale_id=sale.id,
        )
        written += 1
    sale.stock_processed = True
    return written


def _sale_movements(db: Session, sale_id: int):
    return db.query(StockMovement).filter(StockMovement.sale_id == sale_id).order_by(StockMovement.id).all()


@router.get("", response_model=ApiResponse[List[SaleResponse]])
def list_sales(
    search: Optional[str] = Query(None, description="Item or customer name"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    has_recipe: Optional[bool] = Query(None, description="Only sales with (true) or without (false) a recipe"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Sale)
    if search:
        like = f"%{search}%"
        query = query.filter((Sale.item_name.ilike(like)) | (Sale.customer_name.ilike(like)))

    start, end = day_range(date_from, date_to)
    if start:
        query = query.filter(Sale.date >= start)
    if end:
        query = query.filter(Sale.date <= end)
    if has_recipe is True:
        query = query.filter(Sale.recipe_id.isnot(None))
    elif has_recipe is False:
        query = query.filter(Sale.recipe_id.is_(None))

    query = query.order_by(Sale.date.desc(), Sale.id.desc())
    sales, pagination = paginate(query, page, page_size)
    return {"success": True, "data": sales, "pagination": pagination}


@router.post("", response_model=ApiResponse[SaleResponse])
def create_sale(
    payload: SaleCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        sale = Sale(date=payload.date or datetime.now(), user_id=current_user.id, stock_processed=False)
        _price_sale(db, sale, payload)
        db.add(sale)
        db.flush()

        consumed = 0
        if payload.process_stock:
            consumed = _consume_ingredients(db, sale, current_user.id, f"Sale #{sale.id}")
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(sale)

    write_log(db, user_id=current_user.id, action="SALE_CREATE", resource="sales", entity_id=sale.id,
              ip=client_ip(request),
              meta={"total_price": sale.total_price, "recipe_id": sale.recipe_id, "movements": consumed})
    return {"success": True, "data": sale, "message": "Sale recorded"}


@router.get("/{sale_id}", response_model=ApiResponse[SaleResponse])
def get_sale(sale_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"success": True, "data": get_or_404(db, Sale, sale_id, "Sale")}


@router.put("/{sale_id}", response_model=ApiResponse[SaleResponse])
def update_sale(
    sale_id: int,
    payload: SaleUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sale = get_or_404(db, Sale, sale_id, "Sale")
    consume = sale.stock_processed or payload.process_stock

    try:
        reverse_movements(
            db,
            _sale_movements(db, sale.id),
            reason=f"Sale #{sale.id} edit reversal",
            user_id=current_user.id,
            date=sale.date,
            sale_id=sale.id,
        )
        sale.stock_processed = False
        _price_sale(db, sale, payload)
        db.flush()
        if consume:
            _consume_ingredients(db, sale, current_user.id, f"Sale #{sale.id} (edited)")
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(sale)

    write_log(db, user_id=current_user.id, action="SALE_UPDATE", resource="sales", entity_id=sale.id,
              ip=client_ip(request), meta={"total_price": sale.total_price})
    return {"success": True, "data": sale, "message": "Sale updated"}


@router.post("/{sale_id}/process-stock", response_model=ApiResponse[SaleResponse])
def process_sale_stock(
    sale_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sale = get_or_404(db, Sale, sale_id, "Sale")
    if sale.stock_processed:
        raise HTTPException(status_code=400, detail="Stock for this sale was already processed")
    if sale.recipe_id is None:
        raise HTTPException(status_code=400, detail="Sale has no recipe to consume")

    try:
        written = _consume_ingredients(db, sale, current_user.id, f"Sale #{sale.id}")
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(sale)

    write_log(db, user_id=current_user.id, action="SALE_PROCESS_STOCK", resource="sales", entity_id=sale.id,
              ip=client_ip(request), meta={"movements": written})
    return {"success": True, "data": sale, "message": f"{written} ingredient movements posted"}


@router.delete("/{sale_id}", response_model=ApiResponse[None])
def delete_sale(
    sale_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sale = get_or_404(db, Sale, sale_id, "Sale")
    try:
        removed = purge_movements(db, _sale_movements(db, sale.id))
        db.delete(sale)
        db.commit()
    except Exception:
        db.rollback()
        raise

    write_log(db, user_id=current_user.id, action="SALE_DELETE", resource="sales", entity_id=sale_id,
              ip=client_ip(request), meta={"movements_removed": removed})
    return {"success": True, "message": "Sale deleted"}
