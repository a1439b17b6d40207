# backend/routes/stock.py
import logging
from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func
from sqlalchemy.orm import Session
from typing import Optional, List, Literal

from config import settings
from database import get_db
from models.material import Material, MaterialStock
from models.stock import StockMovement, MovementType, WarehouseTransfer, TransferStatus
from models.users import User
from models.warehouse import Warehouse
from schemas.common import ApiResponse
import schemas.stock as stock_schemas
from utils.audit import write_log, client_ip
from utils.dates import day_range
from utils.ledger import apply_movement, current_unit_cost, rebuild_average_costs
from utils.lookups import get_or_404, ensure_exists
from utils.pagination import paginate
from utils.tokenJWT import get_current_user, role_required, ADMIN, MANAGER

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stock", tags=["Stock"])


@router.get("/movements", response_model=ApiResponse[List[stock_schemas.StockMovementResponse]])
def list_movements(
    material_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None),
    type: Optional[str] = Query(None),
    invoice_id: Optional[int] = Query(None),
    open_production_id: Optional[int] = Query(None),
    sale_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(StockMovement)

    if material_id is not None:
        query = query.filter(StockMovement.material_id == material_id)
    if warehouse_id is not None:
        query = query.filter(StockMovement.warehouse_id == warehouse_id)
    if type:
        query = query.filter(StockMovement.type == type.upper())
    if invoice_id is not None:
        query = query.filter(StockMovement.invoice_id == invoice_id)
    if open_production_id is not None:
        query = query.filter(StockMovement.open_production_id == open_production_id)
    if sale_id is not None:
        query = query.filter(StockMovement.sale_id == sale_id)

    start, end = day_range(date_from, date_to)
    if start:
        query = query.filter(StockMovement.date >= start)
    if end:
        query = query.filter(StockMovement.date <= end)

    if order == "desc":
        query = query.order_by(StockMovement.date.desc(), StockMovement.id.desc())
    else:
        query = query.order_by(StockMovement.date.asc(), StockMovement.id.asc())

    movements, pagination = paginate(query, page, page_size)
    return {"success": True, "data": movements, "pagination": pagination}


@router.post("/adjust", response_model=ApiResponse[stock_schemas.StockMovementResponse])
def adjust_stock(
    payload: stock_schemas.StockAdjustmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    material = ensure_exists(db, Material, payload.material_id, "Material")
    ensure_exists(db, Warehouse, payload.warehouse_id, "Warehouse")
    if payload.quantity == 0:
        raise HTTPException(status_code=400, detail="Quantity cannot be zero")

    # Waste always leaves the warehouse
    quantity = -abs(payload.quantity) if payload.type == "WASTE" else payload.quantity
    unit_cost = payload.unit_cost if quantity > 0 else None
    if unit_cost is None:
        unit_cost = current_unit_cost(db, material, payload.warehouse_id)

    try:
        movement = apply_movement(
            db,
            material_id=material.id,
            warehouse_id=payload.warehouse_id,
            quantity=quantity,
            movement_type=payload.type,
            unit_cost=unit_cost,
            reason=payload.reason or f"Manual {payload.type.lower()}",
            user_id=current_user.id,
            date=payload.date,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(movement)

    write_log(db, user_id=current_user.id, action="STOCK_ADJUSTMENT", resource="stock",
              entity_id=movement.id, ip=client_ip(request),
              meta={"material_id": material.id, "warehouse_id": payload.warehouse_id,
                    "quantity": quantity, "type": payload.type})
    return {"success": True, "data": movement, "message": "Stock adjusted"}


# =========================
# Warehouse transfers
# =========================

@router.get("/transfers", response_model=ApiResponse[List[stock_schemas.TransferResponse]])
def list_transfers(
    status: Optional[TransferStatus] = Query(None),
    material_id: Optional[int] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(WarehouseTransfer)
    if status is not None:
        query = query.filter(WarehouseTransfer.status == status)
    if material_id is not None:
        query = query.filter(WarehouseTransfer.material_id == material_id)
    query = query.order_by(WarehouseTransfer.request_date.desc(), WarehouseTransfer.id.desc())

    transfers, pagination = paginate(query, page, page_size)
    return {"success": True, "data": transfers, "pagination": pagination}


@router.post("/transfers", response_model=ApiResponse[stock_schemas.TransferResponse])
def create_transfer(
    payload: stock_schemas.TransferCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if payload.from_warehouse_id == payload.to_warehouse_id:
        raise HTTPException(status_code=400, detail="Source and destination warehouse must differ")
    ensure_exists(db, Warehouse, payload.from_warehouse_id, "Warehouse")
    ensure_exists(db, Warehouse, payload.to_warehouse_id, "Warehouse")
    ensure_exists(db, Material, payload.material_id, "Material")

    transfer = WarehouseTransfer(**payload.model_dump(), user_id=current_user.id, status=TransferStatus.PENDING)
    db.add(transfer)
    db.commit()
    db.refresh(transfer)

    write_log(db, user_id=current_user.id, action="TRANSFER_CREATE", resource="transfers",
              entity_id=transfer.id, ip=client_ip(request),
              meta={"material_id": transfer.material_id, "quantity": transfer.quantity})
    return {"success": True, "data": transfer, "message": "Transfer requested"}


def _pending_transfer(db: Session, transfer_id: int) -> WarehouseTransfer:
    transfer = get_or_404(db, WarehouseTransfer, transfer_id, "Transfer")
    if transfer.status != TransferStatus.PENDING:
        raise HTTPException(status_code=400, detail=f"Transfer is {transfer.status.value}, only PENDING transfers can change")
    return transfer


# Approval moves the stock: OUT of the source at its average cost, IN to the destination at that cost
@router.post("/transfers/{transfer_id}/approve", response_model=ApiResponse[stock_schemas.TransferResponse])
def approve_transfer(
    transfer_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    transfer = _pending_transfer(db, transfer_id)
    material = db.get(Material, transfer.material_id)
    unit_cost = current_unit_cost(db, material, transfer.from_warehouse_id)
    now = datetime.now()
    reason = transfer.reason or f"Transfer #{transfer.id}"

    try:
        apply_movement(
            db, material_id=material.id, warehouse_id=transfer.from_warehouse_id,
            quantity=-transfer.quantity, movement_type=MovementType.TRANSFER, unit_cost=unit_cost,
            reason=reason, user_id=current_user.id, date=now, transfer_id=transfer.id,
        )
        apply_movement(
            db, material_id=material.id, warehouse_id=transfer.to_warehouse_id,
            quantity=transfer.quantity, movement_type=MovementType.TRANSFER, unit_cost=unit_cost,
            reason=reason, user_id=current_user.id, date=now, transfer_id=transfer.id,
        )
        transfer.status = TransferStatus.APPROVED
        transfer.approved_by = current_user.id
        transfer.approved_date = now
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(transfer)

    write_log(db, user_id=current_user.id, action="TRANSFER_APPROVE", resource="transfers",
              entity_id=transfer.id, ip=client_ip(request), meta={"unit_cost": unit_cost})
    return {"success": True, "data": transfer, "message": "Transfer approved"}


@router.post("/transfers/{transfer_id}/cancel", response_model=ApiResponse[stock_schemas.TransferResponse])
def cancel_transfer(
    transfer_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    transfer = _pending_transfer(db, transfer_id)
    transfer.status = TransferStatus.CANCELLED
    db.commit()
    db.refresh(transfer)

    write_log(db, user_id=current_user.id, action="TRANSFER_CANCEL", resource="transfers",
              entity_id=transfer.id, ip=client_ip(request))
    return {"success": True, "data": transfer, "message": "Transfer cancelled"}


# =========================
# Consistency
# =========================

def _movement_totals(db: Session):
    rows = db.query(
        StockMovement.material_id, StockMovement.warehouse_id, func.sum(StockMovement.quantity)
    ).group_by(StockMovement.material_id, StockMovement.warehouse_id).all()
    return {(m, w): total or 0.0 for m, w, total in rows}


def _consistency_rows(db: Session):
    per_pair = _movement_totals(db)
    stocks = db.query(MaterialStock).all()

    rows = []
    for material in db.query(Material).order_by(Material.name).all():
        movement_total = sum(v for (m, _w), v in per_pair.items() if m == material.id)
        warehouse_total = sum(s.current_stock for s in stocks if s.material_id == material.id)
        consistent = (
            abs(movement_total - warehouse_total) <= settings.STOCK_TOLERANCE
            and abs(movement_total - (material.current_stock or 0.0)) <= settings.STOCK_TOLERANCE
        )
        rows.append({
            "material_id": material.id,
            "material_name": material.name,
            "movement_total": movement_total,
            "warehouse_total": warehouse_total,
            "material_stock": material.current_stock or 0.0,
            "consistent": consistent,
        })
    return rows


@router.get("/consistency", response_model=ApiResponse[stock_schemas.ConsistencyReport])
def check_consistency(db: Session = Depends(get_db), current_user: User = Depends(role_required(ADMIN, MANAGER))):
    rows = _consistency_rows(db)
    bad = [r for r in rows if not r["consistent"]]
    if bad:
        logger.warning("Stock consistency check: %d of %d materials out of step", len(bad), len(rows))
    return {"success": True, "data": {"checked": len(rows), "inconsistent": len(bad), "rows": rows}}


# Rewrites MaterialStock and Material quantities from the movement ledger
@router.post("/consistency/fix", response_model=ApiResponse[stock_schemas.ConsistencyReport])
def fix_consistency(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN)),
):
    per_pair = _movement_totals(db)
    existing = {(s.material_id, s.warehouse_id): s for s in db.query(MaterialStock).all()}
    fixed = 0

    for key, stock in existing.items():
        target = per_pair.get(key, 0.0)
        if abs(stock.current_stock - target) > settings.STOCK_TOLERANCE:
            fixed += 1
        stock.available_stock = target - (stock.reserved_stock or 0.0)
        stock.current_stock = target
    for (material_id, warehouse_id), total in per_pair.items():
        if (material_id, warehouse_id) not in existing:
            db.add(MaterialStock(material_id=material_id, warehouse_id=warehouse_id,
                                 current_stock=total, available_stock=total))
            fixed += 1

    for material in db.query(Material).all():
        material.current_stock = sum(v for (m, _w), v in per_pair.items() if m == material.id)
    db.commit()

    logger.info("Stock consistency fix rewrote %d warehouse rows", fixed)
    write_log(db, user_id=current_user.id, action="STOCK_CONSISTENCY_FIX", resource="stock",
              ip=client_ip(request), meta={"fixed_rows": fixed})

    rows = _consistency_rows(db)
    return {
        "success": True,
        "data": {"checked": len(rows), "inconsistent": sum(1 for r in rows if not r["consistent"]), "rows": rows},
        "message": f"{fixed} warehouse stock rows rewritten",
    }


# =========================
# Average cost rebuild
# =========================

@router.post("/recalculate-costs", response_model=ApiResponse[List[stock_schemas.CostRebuildRow]])
def recalculate_costs(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    try:
        results = rebuild_average_costs(db)
        db.commit()
    except Exception:
        db.rollback()
        raise

    updated = sum(1 for r in results if r["updated"])
    write_log(db, user_id=current_user.id, action="STOCK_RECALCULATE_COSTS", resource="stock",
              ip=client_ip(request), meta={"materials": len(results), "updated": updated})
    return {"success": True, "data": results, "message": f"{updated}/{len(results)} material average costs updated"}
