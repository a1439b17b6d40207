# backend/routes/production.py
import logging
from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from database import get_db
from models.material import Material
from models.production import OpenProduction, OpenProductionItem, OpenProductionStatus
from models.stock import StockMovement, MovementType
from models.users import User
from models.warehouse import Warehouse
from schemas.common import ApiResponse
from schemas.production import (
    OpenProductionCreate, OpenProductionUpdate, OpenProductionStatusUpdate, OpenProductionResponse,
)
from utils.audit import write_log, client_ip
from utils.dates import day_range
from utils.ledger import apply_movement, current_unit_cost, reverse_movements, purge_movements
from utils.lookups import get_or_404, ensure_exists
from utils.pagination import paginate
from utils.tokenJWT import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/production/open", tags=["Production"])


def _validate(db: Session, payload: OpenProductionCreate):
    ensure_exists(db, Material, payload.produced_material_id, "Produced material")
    ensure_exists(db, Warehouse, payload.production_warehouse_id, "Production warehouse")
    ensure_exists(db, Warehouse, payload.consumption_warehouse_id, "Consumption warehouse")
    for item in payload.items:
        ensure_exists(db, Material, item.material_id, "Material")


def _apply_production(db: Session, production: OpenProduction, payload: OpenProductionCreate, user_id: int, reason: str):
    """Cost the items at today's averages, consume them and book the produced quantity."""
    lines = []
    for item in payload.items:
        material = db.get(Material, item.material_id)
        unit_cost = current_unit_cost(db, material, production.consumption_warehouse_id)
        lines.append(OpenProductionItem(
            material_id=material.id,
            quantity=item.quantity,
            unit_cost=unit_cost,
            total_cost=unit_cost * item.quantity,
            notes=item.notes,
        ))
    production.items.extend(lines)
    production.total_cost = sum(line.total_cost for line in lines)
    db.flush()

    for line in lines:
        apply_movement(
            db,
            material_id=line.material_id,
            warehouse_id=production.consumption_warehouse_id,
            quantity=-line.quantity,
            movement_type=MovementType.OUT,
            unit_cost=line.unit_cost,
            reason=reason,
            user_id=user_id,
            date=production.production_date,
            open_production_id=production.id,
        )

    apply_movement(
        db,
        material_id=production.produced_material_id,
        warehouse_id=production.production_warehouse_id,
        quantity=production.produced_quantity,
        movement_type=MovementType.IN,
        unit_cost=production.unit_cost,
        reason=reason,
        user_id=user_id,
        date=production.production_date,
        open_production_id=production.id,
    )


def _production_movements(db: Session, production_id: int):
    return db.query(StockMovement).filter(StockMovement.open_production_id == production_id).order_by(StockMovement.id).all()


def _load(db: Session, production_id: int) -> OpenProduction:
    production = db.query(OpenProduction).options(selectinload(OpenProduction.items)).filter(
        OpenProduction.id == production_id
    ).first()
    if not production:
        raise HTTPException(status_code=404, detail="Open production not found")
    return production


def _require_pending(production: OpenProduction, action: str):
    if production.status != OpenProductionStatus.PENDING:
        raise HTTPException(
            status_code=400,
            detail=f"Only PENDING productions can be {action} (current status: {production.status.value})",
        )


@router.get("", response_model=ApiResponse[List[OpenProductionResponse]])
def list_productions(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    status: Optional[OpenProductionStatus] = Query(None),
    search: Optional[str] = Query(None, description="Produced material name or notes"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(OpenProduction).options(selectinload(OpenProduction.items))

    start, end = day_range(date_from, date_to)
    if start:
        query = query.filter(OpenProduction.production_date >= start)
    if end:
        query = query.filter(OpenProduction.production_date <= end)
    if status is not None:
        query = query.filter(OpenProduction.status == status)
    if search:
        like = f"%{search}%"
        query = query.join(Material, OpenProduction.produced_material_id == Material.id).filter(
            (Material.name.ilike(like)) | (OpenProduction.notes.ilike(like))
        )

    query = query.order_by(OpenProduction.production_date.desc(), OpenProduction.id.desc())
    productions, pagination = paginate(query, page, page_size)
    return {"success": True, "data": productions, "pagination": pagination}


@router.post("", response_model=ApiResponse[OpenProductionResponse])
def create_production(
    payload: OpenProductionCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    _validate(db, payload)

    try:
        production = OpenProduction(
            production_date=payload.production_date or datetime.now(),
            produced_material_id=payload.produced_material_id,
            produced_quantity=payload.produced_quantity,
            production_warehouse_id=payload.production_warehouse_id,
            consumption_warehouse_id=payload.consumption_warehouse_id,
            notes=payload.notes,
            status=OpenProductionStatus.PENDING,
            user_id=current_user.id,
        )
        db.add(production)
        db.flush()

        _apply_production(db, production, payload, current_user.id, f"Open production #{production.id}")
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(production)

    logger.info("Open production #%s created: %s x material %s, cost %.4f",
                production.id, production.produced_quantity, production.produced_material_id, production.total_cost)
    write_log(db, user_id=current_user.id, action="PRODUCTION_CREATE", resource="open_production",
              entity_id=production.id, ip=client_ip(request),
              meta={"total_cost": production.total_cost, "items": len(production.items)})
    return {"success": True, "data": production, "message": "Open production created"}


@router.get("/{production_id}", response_model=ApiResponse[OpenProductionResponse])
def get_production(production_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"success": True, "data": _load(db, production_id)}


@router.put("/{production_id}", response_model=ApiResponse[OpenProductionResponse])
def update_production(
    production_id: int,
    payload: OpenProductionUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    production = _load(db, production_id)
    _require_pending(production, "edited")
    _validate(db, payload)

    try:
        # 1. Undo whatever this production still has on the ledger
        reverse_movements(
            db,
            _production_movements(db, production.id),
            reason=f"Open production #{production.id} edit reversal",
            user_id=current_user.id,
            date=production.production_date,
            open_production_id=production.id,
        )

        # 2. Replace header and items
        production.items.clear()
        db.flush()
        production.production_date = payload.production_date or production.production_date
        production.produced_material_id = payload.produced_material_id
        production.produced_quantity = payload.produced_quantity
        production.production_warehouse_id = payload.production_warehouse_id
        production.consumption_warehouse_id = payload.consumption_warehouse_id
        production.notes = payload.notes

        # 3. Re-apply with fresh costs
        _apply_production(db, production, payload, current_user.id, f"Open production #{production.id} (edited)")
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(production)

    write_log(db, user_id=current_user.id, action="PRODUCTION_UPDATE", resource="open_production",
              entity_id=production.id, ip=client_ip(request), meta={"total_cost": production.total_cost})
    return {"success": True, "data": production, "message": "Open production updated"}


# Status changes carry no stock effect
@router.patch("/{production_id}/status", response_model=ApiResponse[OpenProductionResponse])
def update_production_status(
    production_id: int,
    payload: OpenProductionStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    production = _load(db, production_id)
    old_status = production.status
    production.status = payload.status
    db.commit()
    db.refresh(production)

    write_log(db, user_id=current_user.id, action="PRODUCTION_STATUS", resource="open_production",
              entity_id=production.id, ip=client_ip(request),
              meta={"old": old_status.value, "new": production.status.value})
    return {"success": True, "data": production, "message": f"Status set to {production.status.value}"}


@router.delete("/{production_id}", response_model=ApiResponse[None])
def delete_production(
    production_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    production = _load(db, production_id)
    _require_pending(production, "deleted")

    try:
        # Restore stock and drop every ledger row of this production
        removed = purge_movements(db, _production_movements(db, production.id))
        db.delete(production)
        db.commit()
    except Exception:
        db.rollback()
        raise

    write_log(db, user_id=current_user.id, action="PRODUCTION_DELETE", resource="open_production",
              entity_id=production_id, ip=client_ip(request), meta={"movements_removed": removed})
    return {"success": True, "message": "Open production deleted"}
