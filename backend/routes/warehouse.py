# backend/routes/warehouse.py
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session, joinedload
from typing import List, Optional

from database import get_db
from models.material import MaterialStock
from models.stock import StockMovement
from models.users import User
from models.warehouse import Warehouse
from schemas.common import ApiResponse
from schemas.warehouse import (
    WarehouseCreate, WarehouseUpdate, WarehouseResponse, WarehouseStockRow,
)
from utils.audit import write_log, client_ip
from utils.lookups import get_or_404
from utils.tokenJWT import get_current_user, role_required, ADMIN, MANAGER

router = APIRouter(prefix="/warehouses", tags=["Warehouses"])


@router.get("", response_model=ApiResponse[List[WarehouseResponse]])
def list_warehouses(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Warehouse)
    if not include_inactive:
        query = query.filter(Warehouse.is_active.is_(True))
    return {"success": True, "data": query.order_by(Warehouse.name).all()}


@router.post("", response_model=ApiResponse[WarehouseResponse])
def create_warehouse(
    payload: WarehouseCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    if db.query(Warehouse).filter(Warehouse.name == payload.name).first():
        raise HTTPException(status_code=400, detail="Warehouse name already exists")

    warehouse = Warehouse(**payload.model_dump())
    db.add(warehouse)
    db.commit()
    db.refresh(warehouse)

    write_log(db, user_id=current_user.id, action="WAREHOUSE_CREATE", resource="warehouses",
              entity_id=warehouse.id, ip=client_ip(request), meta={"name": warehouse.name})
    return {"success": True, "data": warehouse, "message": "Warehouse created"}


@router.get("/{warehouse_id}", response_model=ApiResponse[WarehouseResponse])
def get_warehouse(warehouse_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"success": True, "data": get_or_404(db, Warehouse, warehouse_id, "Warehouse")}


@router.put("/{warehouse_id}", response_model=ApiResponse[WarehouseResponse])
def update_warehouse(
    warehouse_id: int,
    payload: WarehouseUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    warehouse = get_or_404(db, Warehouse, warehouse_id, "Warehouse")
    changes = payload.model_dump(exclude_unset=True)

    if "name" in changes and changes["name"] != warehouse.name:
        if db.query(Warehouse).filter(Warehouse.name == changes["name"]).first():
            raise HTTPException(status_code=400, detail="Warehouse name already exists")

    for field, value in changes.items():
        setattr(warehouse, field, value)
    db.commit()
    db.refresh(warehouse)

    write_log(db, user_id=current_user.id, action="WAREHOUSE_UPDATE", resource="warehouses",
              entity_id=warehouse.id, ip=client_ip(request), meta={"fields": sorted(changes)})
    return {"success": True, "data": warehouse, "message": "Warehouse updated"}


# Warehouses with ledger history are deactivated instead of removed
@router.delete("/{warehouse_id}", response_model=ApiResponse[WarehouseResponse])
def delete_warehouse(
    warehouse_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    warehouse = get_or_404(db, Warehouse, warehouse_id, "Warehouse")
    has_history = db.query(StockMovement.id).filter(StockMovement.warehouse_id == warehouse.id).first() is not None

    if has_history:
        warehouse.is_active = False
        message = "Warehouse has stock history and was deactivated"
    else:
        db.query(MaterialStock).filter(MaterialStock.warehouse_id == warehouse.id).delete()
        db.delete(warehouse)
        message = "Warehouse deleted"
    db.commit()

    write_log(db, user_id=current_user.id, action="WAREHOUSE_DELETE", resource="warehouses",
              entity_id=warehouse_id, ip=client_ip(request), meta={"deactivated": has_history})
    return {"success": True, "data": warehouse if has_history else None, "message": message}


# Current stock of every material held in the warehouse
@router.get("/{warehouse_id}/stock", response_model=ApiResponse[List[WarehouseStockRow]])
def warehouse_stock(
    warehouse_id: int,
    q: Optional[str] = Query(None),
    only_positive: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    get_or_404(db, Warehouse, warehouse_id, "Warehouse")
    stocks = db.query(MaterialStock).options(joinedload(MaterialStock.material)).filter(
        MaterialStock.warehouse_id == warehouse_id
    ).all()

    rows = []
    for s in stocks:
        if only_positive and s.current_stock <= 0:
            continue
        if q and q.lower() not in s.material.name.lower():
            continue
        rows.append({
            "material_id": s.material_id,
            "material_name": s.material.name,
            "material_code": s.material.code,
            "unit": s.material.unit,
            "current_stock": s.current_stock,
            "available_stock": s.available_stock,
            "average_cost": s.average_cost,
            "stock_value": s.current_stock * s.average_cost,
        })
    rows.sort(key=lambda r: r["material_name"])
    return {"success": True, "data": rows}
