# backend/routes/categories.py
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from typing import List

from database import get_db
from models.category import Category
from models.material import Material
from models.users import User
from schemas.common import ApiResponse
from schemas.material import CategoryCreate, CategoryUpdate, CategoryResponse
from utils.audit import write_log, client_ip
from utils.lookups import get_or_404, ensure_exists
from utils.tokenJWT import get_current_user, role_required, ADMIN, MANAGER

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=ApiResponse[List[CategoryResponse]])
def list_categories(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    categories = db.query(Category).order_by(Category.parent_id.isnot(None), Category.name).all()
    return {"success": True, "data": categories}


@router.post("", response_model=ApiResponse[CategoryResponse])
def create_category(
    payload: CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    if payload.parent_id is not None:
        parent = ensure_exists(db, Category, payload.parent_id, "Parent category")
        # Two levels only: main and sub
        if parent.parent_id is not None:
            raise HTTPException(status_code=400, detail="A sub category cannot have children")

    category = Category(**payload.model_dump())
    db.add(category)
    db.commit()
    db.refresh(category)

    write_log(db, user_id=current_user.id, action="CATEGORY_CREATE", resource="categories",
              entity_id=category.id, ip=client_ip(request), meta={"name": category.name})
    return {"success": True, "data": category, "message": "Category created"}


@router.put("/{category_id}", response_model=ApiResponse[CategoryResponse])
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    category = get_or_404(db, Category, category_id, "Category")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("parent_id") == category.id:
        raise HTTPException(status_code=400, detail="A category cannot be its own parent")

    for field, value in changes.items():
        setattr(category, field, value)
    db.commit()
    db.refresh(category)

    write_log(db, user_id=current_user.id, action="CATEGORY_UPDATE", resource="categories",
              entity_id=category.id, ip=client_ip(request), meta={"fields": sorted(changes)})
    return {"success": True, "data": category, "message": "Category updated"}


@router.delete("/{category_id}", response_model=ApiResponse[None])
def delete_category(
    category_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    category = get_or_404(db, Category, category_id, "Category")
    if db.query(Category.id).filter(Category.parent_id == category.id).first():
        raise HTTPException(status_code=400, detail="Category has sub categories")
    if db.query(Material.id).filter(Material.category_id == category.id).first():
        raise HTTPException(status_code=400, detail="Category is used by materials")

    db.delete(category)
    db.commit()

    write_log(db, user_id=current_user.id, action="CATEGORY_DELETE", resource="categories",
              entity_id=category_id, ip=client_ip(request))
    return {"success": True, "message": "Category deleted"}
