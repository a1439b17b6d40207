# backend/routes/stock_counts.py
import logging
from datetime import date, datetime, time
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from database import get_db
from models.material import Material
from models.stock import MovementType
from models.stock_count import StockCount, StockCountItem, StockCountStatus
from models.users import User
from models.warehouse import Warehouse
from schemas.common import ApiResponse
from schemas.stock_count import (
    StockCountCreate, StockCountStatusUpdate, StockCountItemAdd, StockCountItemUpdate, StockCountResponse,
)
from utils.audit import write_log, client_ip
from utils.ledger import EPSILON, apply_movement, current_unit_cost, stock_at
from utils.lookups import ensure_exists
from utils.numbering import next_number
from utils.pagination import paginate
from utils.tokenJWT import get_current_user, role_required, ADMIN, MANAGER

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stock-counts", tags=["Stock Counts"])

# Counting is still open in these states
OPEN_STATES = (StockCountStatus.PLANNING, StockCountStatus.IN_PROGRESS)


def _load_count(db: Session, count_id: int) -> StockCount:
    count = db.query(StockCount).options(
        selectinload(StockCount.items).selectinload(StockCountItem.material)
    ).filter(StockCount.id == count_id).first()
    if not count:
        raise HTTPException(status_code=404, detail="Stock count not found")
    return count


def _require(count: StockCount, states, action: str):
    if count.status not in states:
        allowed = ", ".join(s.value for s in states)
        raise HTTPException(
            status_code=400,
            detail=f"Stock count is {count.status.value}; it can be {action} only when {allowed}",
        )


def _counted_materials(db: Session, warehouse_id: int, cutoff: datetime) -> dict:
    """Ledger stock at the cutoff for every material held in, or defaulting to, the warehouse."""
    system = stock_at(db, warehouse_id, cutoff)
    defaults = db.query(Material.id).filter(
        Material.default_warehouse_id == warehouse_id,
        Material.is_active.is_(True),
    ).all()
    for (material_id,) in defaults:
        system.setdefault(material_id, 0.0)
    return system


@router.get("", response_model=ApiResponse[List[StockCountResponse]])
def list_counts(
    warehouse_id: Optional[int] = Query(None),
    status: Optional[StockCountStatus] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(StockCount).options(selectinload(StockCount.items))
    if warehouse_id is not None:
        query = query.filter(StockCount.warehouse_id == warehouse_id)
    if status is not None:
        query = query.filter(StockCount.status == status)

    query = query.order_by(StockCount.count_date.desc(), StockCount.id.desc())
    counts, pagination = paginate(query, page, page_size)
    return {"success": True, "data": counts, "pagination": pagination}


@router.post("", response_model=ApiResponse[StockCountResponse])
def create_count(
    payload: StockCountCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_exists(db, Warehouse, payload.warehouse_id, "Warehouse")
    if payload.count_date > date.today():
        raise HTTPException(status_code=400, detail="Count date cannot be in the future")

    hour, minute = (int(part) for part in payload.count_time.split(":"))
    cutoff = datetime.combine(payload.count_date, time(hour, minute, 59, 999999))

    try:
        count = StockCount(
            count_number=next_number(db, StockCount.count_number, f"{date.today().isoformat()}-", 3),
            warehouse_id=payload.warehouse_id,
            status=StockCountStatus.PLANNING,
            count_date=datetime.combine(payload.count_date, time.min),
            count_time=payload.count_time,
            cutoff_datetime=cutoff,
            notes=payload.notes,
            counted_by=current_user.id,
        )
        db.add(count)
        for material_id, system_stock in sorted(_counted_materials(db, payload.warehouse_id, cutoff).items()):
            count.items.append(StockCountItem(
                material_id=material_id,
                system_stock=system_stock,
                counted_stock=0.0,
                difference=-system_stock,
            ))
        db.commit()
    except Exception:
        db.rollback()
        raise
    count = _load_count(db, count.id)

    logger.info("Stock count %s opened for warehouse %s with %d items",
                count.count_number, count.warehouse_id, count.item_count)
    write_log(db, user_id=current_user.id, action="STOCK_COUNT_CREATE", resource="stock_counts",
              entity_id=count.id, ip=client_ip(request),
              meta={"count_number": count.count_number, "items": count.item_count})
    return {"success": True, "data": count, "message": f"Stock count {count.count_number} created"}


@router.get("/{count_id}", response_model=ApiResponse[StockCountResponse])
def get_count(count_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"success": True, "data": _load_count(db, count_id)}


# Any status except COMPLETED, which only approval sets
@router.patch("/{count_id}/status", response_model=ApiResponse[StockCountResponse])
def update_count_status(
    count_id: int,
    payload: StockCountStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    count = _load_count(db, count_id)
    if count.status == StockCountStatus.COMPLETED:
        raise HTTPException(status_code=400, detail="Completed stock counts cannot change")
    if payload.status == StockCountStatus.COMPLETED:
        raise HTTPException(status_code=400, detail="Use the approve endpoint to complete a stock count")

    old_status = count.status
    count.status = payload.status
    if payload.notes is not None:
        count.notes = payload.notes
    db.commit()
    count = _load_count(db, count_id)

    write_log(db, user_id=current_user.id, action="STOCK_COUNT_STATUS", resource="stock_counts",
              entity_id=count.id, ip=client_ip(request), meta={"old": old_status.value, "new": count.status.value})
    return {"success": True, "data": count, "message": f"Status set to {count.status.value}"}


@router.delete("/{count_id}", response_model=ApiResponse[None])
def delete_count(
    count_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    count = _load_count(db, count_id)
    _require(count, (StockCountStatus.PLANNING, StockCountStatus.CANCELLED), "deleted")
    number = count.count_number
    db.delete(count)
    db.commit()

    write_log(db, user_id=current_user.id, action="STOCK_COUNT_DELETE", resource="stock_counts",
              entity_id=count_id, ip=client_ip(request), meta={"count_number": number})
    return {"success": True, "message": "Stock count deleted"}


@router.post("/{count_id}/items", response_model=ApiResponse[StockCountResponse])
def add_count_item(
    count_id: int,
    payload: StockCountItemAdd,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    count = _load_count(db, count_id)
    _require(count, OPEN_STATES, "extended")
    ensure_exists(db, Material, payload.material_id, "Material")
    if any(item.material_id == payload.material_id for item in count.items):
        raise HTTPException(status_code=400, detail="Material is already on this count")

    system_stock = stock_at(db, count.warehouse_id, count.cutoff_datetime, [payload.material_id]).get(
        payload.material_id, 0.0
    )
    count.items.append(StockCountItem(
        material_id=payload.material_id,
        system_stock=system_stock,
        counted_stock=0.0,
        difference=-system_stock,
        is_manually_added=True,
    ))
    db.commit()
    count = _load_count(db, count_id)

    write_log(db, user_id=current_user.id, action="STOCK_COUNT_ADD_ITEM", resource="stock_counts",
              entity_id=count.id, ip=client_ip(request), meta={"material_id": payload.material_id})
    return {"success": True, "data": count, "message": "Material added to count"}


@router.put("/{count_id}/items/{item_id}", response_model=ApiResponse[StockCountResponse])
def record_counted_quantity(
    count_id: int,
    item_id: int,
    payload: StockCountItemUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    count = _load_count(db, count_id)
    _require(count, OPEN_STATES, "counted")
    item = next((i for i in count.items if i.id == item_id), None)
    if item is None:
        raise HTTPException(status_code=404, detail="Stock count item not found")

    item.counted_stock = payload.counted_stock
    item.difference = payload.counted_stock - item.system_stock
    item.reason = payload.reason
    item.is_completed = True
    item.counted_at = datetime.now()
    if count.status == StockCountStatus.PLANNING:
        count.status = StockCountStatus.IN_PROGRESS
    db.commit()
    count = _load_count(db, count_id)

    write_log(db, user_id=current_user.id, action="STOCK_COUNT_ITEM", resource="stock_counts",
              entity_id=count.id, ip=client_ip(request),
              meta={"item_id": item_id, "counted": payload.counted_stock})
    return {"success": True, "data": count, "message": "Counted quantity recorded"}


# Refreshes system stock from the ledger, e.g. after backdated documents
@router.post("/{count_id}/recalculate", response_model=ApiResponse[StockCountResponse])
def recalculate_count(
    count_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    count = _load_count(db, count_id)
    _require(count, OPEN_STATES + (StockCountStatus.PENDING_APPROVAL,), "recalculated")

    system = stock_at(db, count.warehouse_id, count.cutoff_datetime, [i.material_id for i in count.items])
    for item in count.items:
        item.system_stock = system.get(item.material_id, 0.0)
        item.difference = item.counted_stock - item.system_stock
    db.commit()
    return {"success": True, "data": _load_count(db, count_id)}


@router.post("/{count_id}/approve", response_model=ApiResponse[StockCountResponse])
def approve_count(
    count_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    count = _load_count(db, count_id)
    _require(count, (StockCountStatus.PENDING_APPROVAL,), "approved")

    adjustments = 0
    try:
        for item in count.items:
            if abs(item.difference) <= EPSILON:
                continue
            material = item.material
            apply_movement(
                db,
                material_id=material.id,
                warehouse_id=count.warehouse_id,
                quantity=item.difference,
                movement_type=MovementType.ADJUSTMENT,
                unit_cost=current_unit_cost(db, material, count.warehouse_id),
                reason=item.reason or f"Stock count {count.count_number}",
                user_id=current_user.id,
                date=count.cutoff_datetime,
                stock_count_id=count.id,
            )
            adjustments += 1
        count.status = StockCountStatus.COMPLETED
        count.approved_by = current_user.id
        count.approved_date = datetime.now()
        db.commit()
    except Exception:
        db.rollback()
        raise
    count = _load_count(db, count_id)

    logger.info("Stock count %s approved: %d adjustments", count.count_number, adjustments)
    write_log(db, user_id=current_user.id, action="STOCK_COUNT_APPROVE", resource="stock_counts",
              entity_id=count.id, ip=client_ip(request), meta={"adjustments": adjustments})
    return {"success": True, "data": count, "message": f"Stock count approved, {adjustments} adjustments posted"}
