# backend/routes/suppliers.py
from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from models.current_account import CurrentAccount, AccountType
from models.supplier import Supplier
from models.users import User
from schemas.common import ApiResponse
from schemas.supplier import SupplierCreate, SupplierUpdate, SupplierResponse
from utils.audit import write_log, client_ip
from utils.lookups import get_or_404
from utils.numbering import next_number
from utils.tokenJWT import get_current_user, role_required, ADMIN, MANAGER

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])


@router.get("", response_model=ApiResponse[List[SupplierResponse]])
def list_suppliers(
    q: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Supplier)
    if q:
        like = f"%{q}%"
        query = query.filter((Supplier.name.ilike(like)) | (Supplier.tax_number.ilike(like)))
    return {"success": True, "data": query.order_by(Supplier.name).all()}


@router.post("", response_model=ApiResponse[SupplierResponse])
def create_supplier(
    payload: SupplierCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    supplier = Supplier(**payload.model_dump(exclude={"create_current_account"}))
    db.add(supplier)
    db.flush()

    account_code = None
    if payload.create_current_account:
        account = CurrentAccount(
            code=next_number(db, CurrentAccount.code, "CAR", 3),
            name=supplier.name,
            type=AccountType.SUPPLIER,
            supplier_id=supplier.id,
            contact_name=supplier.contact_name,
            phone=supplier.phone,
            email=supplier.email,
            address=supplier.address,
            tax_number=supplier.tax_number,
        )
        db.add(account)
        account_code = account.code

    db.commit()
    db.refresh(supplier)

    write_log(db, user_id=current_user.id, action="SUPPLIER_CREATE", resource="suppliers",
              entity_id=supplier.id, ip=client_ip(request),
              meta={"name": supplier.name, "current_account": account_code})
    return {"success": True, "data": supplier, "message": "Supplier created"}


@router.get("/{supplier_id}", response_model=ApiResponse[SupplierResponse])
def get_supplier(supplier_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"success": True, "data": get_or_404(db, Supplier, supplier_id, "Supplier")}


@router.put("/{supplier_id}", response_model=ApiResponse[SupplierResponse])
def update_supplier(
    supplier_id: int,
    payload: SupplierUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    supplier = get_or_404(db, Supplier, supplier_id, "Supplier")
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(supplier, field, value)
    db.commit()
    db.refresh(supplier)

    write_log(db, user_id=current_user.id, action="SUPPLIER_UPDATE", resource="suppliers",
              entity_id=supplier.id, ip=client_ip(request), meta={"fields": sorted(changes)})
    return {"success": True, "data": supplier, "message": "Supplier updated"}
