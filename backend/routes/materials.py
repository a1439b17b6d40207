# backend/routes/materials.py
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session, joinedload
from typing import List, Optional, Literal

from database import get_db
from models.category import Category
from models.material import Material, MaterialStock
from models.stock import StockMovement
from models.users import User
from models.warehouse import Warehouse
from schemas.common import ApiResponse
from schemas.material import (
    MaterialCreate, MaterialUpdate, MaterialResponse, MaterialDetail, MaterialStockResponse,
)
from utils.audit import write_log, client_ip
from utils.lookups import get_or_404, ensure_exists
from utils.pagination import paginate
from utils.tokenJWT import get_current_user, role_required, ADMIN, MANAGER

router = APIRouter(prefix="/materials", tags=["Materials"])


def _check_references(db: Session, category_id: Optional[int], warehouse_id: Optional[int]):
    if category_id is not None:
        ensure_exists(db, Category, category_id, "Category")
    if warehouse_id is not None:
        ensure_exists(db, Warehouse, warehouse_id, "Warehouse")


def _check_code_free(db: Session, code: Optional[str], material_id: Optional[int] = None):
    if not code:
        return
    query = db.query(Material).filter(Material.code == code)
    if material_id is not None:
        query = query.filter(Material.id != material_id)
    if query.first():
        raise HTTPException(status_code=400, detail=f"Material code '{code}' already exists")


@router.get("", response_model=ApiResponse[List[MaterialResponse]])
def list_materials(
    q: Optional[str] = Query(None, description="Search by name or code"),
    category_id: Optional[int] = Query(None),
    warehouse_id: Optional[int] = Query(None, description="Only materials with stock rows in this warehouse"),
    is_active: Optional[bool] = Query(None),
    low_stock: bool = Query(False),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    sort_by: Literal["name", "code", "current_stock", "average_cost"] = "name",
    order: Literal["asc", "desc"] = "asc",
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Material)

    if q:
        like = f"%{q}%"
        query = query.filter((Material.name.ilike(like)) | (Material.code.ilike(like)))
    if category_id is not None:
        sub_ids = [c.id for c in db.query(Category.id).filter(Category.parent_id == category_id).all()]
        query = query.filter(Material.category_id.in_([category_id] + sub_ids))
    if warehouse_id is not None:
        query = query.filter(Material.stocks.any(MaterialStock.warehouse_id == warehouse_id))
    if is_active is not None:
        query = query.filter(Material.is_active.is_(is_active))
    if low_stock:
        query = query.filter(Material.current_stock <= Material.min_stock_level)

    col = getattr(Material, sort_by)
    query = query.order_by(col.asc() if order == "asc" else col.desc(), Material.id)

    materials, pagination = paginate(query, page, page_size)
    return {"success": True, "data": materials, "pagination": pagination}


@router.post("", response_model=ApiResponse[MaterialResponse])
def create_material(
    payload: MaterialCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    _check_code_free(db, payload.code)
    _check_references(db, payload.category_id, payload.default_warehouse_id)

    material = Material(**payload.model_dump(), current_stock=0)
    db.add(material)
    db.commit()
    db.refresh(material)

    write_log(db, user_id=current_user.id, action="MATERIAL_CREATE", resource="materials",
              entity_id=material.id, ip=client_ip(request), meta={"name": material.name, "code": material.code})
    return {"success": True, "data": material, "message": "Material created"}


@router.get("/{material_id}", response_model=ApiResponse[MaterialDetail])
def get_material(material_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    material = db.query(Material).options(joinedload(Material.stocks)).filter(Material.id == material_id).first()
    if not material:
        raise HTTPException(status_code=404, detail="Material not found")
    return {"success": True, "data": material}


@router.get("/{material_id}/stock", response_model=ApiResponse[List[MaterialStockResponse]])
def material_stock(material_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    get_or_404(db, Material, material_id, "Material")
    stocks = db.query(MaterialStock).filter(MaterialStock.material_id == material_id).order_by(MaterialStock.warehouse_id).all()
    return {"success": True, "data": stocks}


@router.put("/{material_id}", response_model=ApiResponse[MaterialResponse])
def update_material(
    material_id: int,
    payload: MaterialUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    material = get_or_404(db, Material, material_id, "Material")
    changes = payload.model_dump(exclude_unset=True)

    if "code" in changes:
        _check_code_free(db, changes["code"], material.id)
    _check_references(db, changes.get("category_id"), changes.get("default_warehouse_id"))

    for field, value in changes.items():
        setattr(material, field, value)
    db.commit()
    db.refresh(material)

    write_log(db, user_id=current_user.id, action="MATERIAL_UPDATE", resource="materials",
              entity_id=material.id, ip=client_ip(request), meta={"fields": sorted(changes)})
    return {"success": True, "data": material, "message": "Material updated"}


@router.patch("/{material_id}/toggle-active", response_model=ApiResponse[MaterialResponse])
def toggle_material(
    material_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    material = get_or_404(db, Material, material_id, "Material")
    material.is_active = not material.is_active
    db.commit()
    db.refresh(material)

    write_log(db, user_id=current_user.id, action="MATERIAL_TOGGLE", resource="materials",
              entity_id=material.id, ip=client_ip(request), meta={"is_active": material.is_active})
    return {"success": True, "data": material}


# Materials referenced by the ledger are only deactivated
@router.delete("/{material_id}", response_model=ApiResponse[None])
def delete_material(
    material_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    material = get_or_404(db, Material, material_id, "Material")
    if db.query(StockMovement.id).filter(StockMovement.material_id == material.id).first():
        material.is_active = False
        message = "Material has stock history and was deactivated"
    else:
        db.query(MaterialStock).filter(MaterialStock.material_id == material.id).delete()
        db.delete(material)
        message = "Material deleted"
    db.commit()

    write_log(db, user_id=current_user.id, action="MATERIAL_DELETE", resource="materials",
              entity_id=material_id, ip=client_ip(request), meta={"result": message})
    return {"success": True, "message": message}
