# backend/routes/expenses.py
from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from database import get_db
from models.expense import (
    ExpenseMainCategory, ExpenseSubCategory, ExpenseItem, Expense,
    ExpenseBatch, ExpenseBatchItem, ExpenseBatchStatus, PaymentStatus,
)
from models.users import User
from schemas.common import ApiResponse
from schemas.expense import (
    ExpenseMainCategoryCreate, ExpenseSubCategoryCreate, ExpenseItemCreate,
    ExpenseMainCategoryResponse, ExpenseSubCategoryResponse, ExpenseItemResponse,
    ExpenseCreate, ExpenseUpdate, ExpenseResponse,
    ExpenseBatchCreate, ExpenseBatchUpdate, ExpenseBatchStatusUpdate, ExpenseBatchResponse,
)
from utils.audit import write_log, client_ip
from utils.dates import day_range
from utils.lookups import get_or_404, ensure_exists
from utils.numbering import next_number
from utils.pagination import paginate
from utils.tokenJWT import get_current_user, role_required, ADMIN, MANAGER

router = APIRouter(tags=["Expenses"])


# =========================
# Hierarchy
# =========================

@router.get("/expense-categories", response_model=ApiResponse[List[ExpenseMainCategoryResponse]])
def expense_hierarchy(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    mains = db.query(ExpenseMainCategory).options(
        selectinload(ExpenseMainCategory.sub_categories).selectinload(ExpenseSubCategory.items)
    ).order_by(ExpenseMainCategory.name).all()
    return {"success": True, "data": mains}


@router.post("/expense-categories", response_model=ApiResponse[ExpenseMainCategoryResponse])
def create_main_category(
    payload: ExpenseMainCategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    if db.query(ExpenseMainCategory).filter(ExpenseMainCategory.name == payload.name).first():
        raise HTTPException(status_code=400, detail="Main category already exists")
    main = ExpenseMainCategory(**payload.model_dump())
    db.add(main)
    db.commit()
    db.refresh(main)

    write_log(db, user_id=current_user.id, action="EXPENSE_CATEGORY_CREATE", resource="expense_categories",
              entity_id=main.id, ip=client_ip(request), meta={"name": main.name})
    return {"success": True, "data": main}


@router.post("/expense-sub-categories", response_model=ApiResponse[ExpenseSubCategoryResponse])
def create_sub_category(
    payload: ExpenseSubCategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    ensure_exists(db, ExpenseMainCategory, payload.main_category_id, "Main category")
    sub = ExpenseSubCategory(**payload.model_dump())
    db.add(sub)
    db.commit()
    db.refresh(sub)

    write_log(db, user_id=current_user.id, action="EXPENSE_SUBCATEGORY_CREATE", resource="expense_categories",
              entity_id=sub.id, ip=client_ip(request), meta={"name": sub.name})
    return {"success": True, "data": sub}


@router.post("/expense-items", response_model=ApiResponse[ExpenseItemResponse])
def create_expense_item(
    payload: ExpenseItemCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    ensure_exists(db, ExpenseSubCategory, payload.sub_category_id, "Sub category")
    item = ExpenseItem(**payload.model_dump())
    db.add(item)
    db.commit()
    db.refresh(item)

    write_log(db, user_id=current_user.id, action="EXPENSE_ITEM_CREATE", resource="expense_categories",
              entity_id=item.id, ip=client_ip(request), meta={"name": item.name})
    return {"success": True, "data": item}


# =========================
# Single expenses
# =========================

@router.get("/expenses", response_model=ApiResponse[List[ExpenseResponse]])
def list_expenses(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    expense_item_id: Optional[int] = Query(None),
    main_category_id: Optional[int] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
    search: Optional[str] = Query(None, description="Description or invoice number"),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Expense)

    start, end = day_range(date_from, date_to)
    if start:
        query = query.filter(Expense.date >= start)
    if end:
        query = query.filter(Expense.date <= end)
    if expense_item_id is not None:
        query = query.filter(Expense.expense_item_id == expense_item_id)
    if main_category_id is not None:
        query = query.join(ExpenseItem).join(ExpenseSubCategory).filter(
            ExpenseSubCategory.main_category_id == main_category_id
        )
    if payment_status is not None:
        query = query.filter(Expense.payment_status == payment_status)
    if search:
        like = f"%{search}%"
        query = query.filter((Expense.description.ilike(like)) | (Expense.invoice_number.ilike(like)))

    query = query.order_by(Expense.date.desc(), Expense.id.desc())
    expenses, pagination = paginate(query, page, page_size)
    return {"success": True, "data": expenses, "pagination": pagination}


@router.post("/expenses", response_model=ApiResponse[ExpenseResponse])
def create_expense(
    payload: ExpenseCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    ensure_exists(db, ExpenseItem, payload.expense_item_id, "Expense item")
    expense = Expense(**payload.model_dump(), user_id=current_user.id)
    db.add(expense)
    db.commit()
    db.refresh(expense)

    write_log(db, user_id=current_user.id, action="EXPENSE_CREATE", resource="expenses", entity_id=expense.id,
              ip=client_ip(request), meta={"amount": expense.amount})
    return {"success": True, "data": expense, "message": "Expense created"}


@router.get("/expenses/{expense_id}", response_model=ApiResponse[ExpenseResponse])
def get_expense(expense_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"success": True, "data": get_or_404(db, Expense, expense_id, "Expense")}


@router.put("/expenses/{expense_id}", response_model=ApiResponse[ExpenseResponse])
def update_expense(
    expense_id: int,
    payload: ExpenseUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    expense = get_or_404(db, Expense, expense_id, "Expense")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("expense_item_id") is not None:
        ensure_exists(db, ExpenseItem, changes["expense_item_id"], "Expense item")
    for field, value in changes.items():
        setattr(expense, field, value)
    db.commit()
    db.refresh(expense)

    write_log(db, user_id=current_user.id, action="EXPENSE_UPDATE", resource="expenses", entity_id=expense.id,
              ip=client_ip(request), meta={"fields": sorted(changes)})
    return {"success": True, "data": expense, "message": "Expense updated"}


@router.delete("/expenses/{expense_id}", response_model=ApiResponse[None])
def delete_expense(
    expense_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    expense = get_or_404(db, Expense, expense_id, "Expense")
    db.delete(expense)
    db.commit()

    write_log(db, user_id=current_user.id, action="EXPENSE_DELETE", resource="expenses", entity_id=expense_id,
              ip=client_ip(request))
    return {"success": True, "message": "Expense deleted"}


# =========================
# Expense batches
# =========================

def _load_batch(db: Session, batch_id: int) -> ExpenseBatch:
    batch = db.query(ExpenseBatch).options(selectinload(ExpenseBatch.items)).filter(ExpenseBatch.id == batch_id).first()
    if not batch:
        raise HTTPException(status_code=404, detail="Expense batch not found")
    return batch


def _require_draft(batch: ExpenseBatch, action: str):
    if batch.status != ExpenseBatchStatus.DRAFT:
        raise HTTPException(
            status_code=400,
            detail=f"Only DRAFT batches can be {action} (current status: {batch.status.value})",
        )


def _set_batch_items(db: Session, batch: ExpenseBatch, items):
    batch.items.clear()
    db.flush()
    for item in items:
        ensure_exists(db, ExpenseItem, item.expense_item_id, "Expense item")
        batch.items.append(ExpenseBatchItem(**item.model_dump()))
    batch.total_amount = sum(i.amount for i in batch.items)


@router.get("/expense-batches", response_model=ApiResponse[List[ExpenseBatchResponse]])
def list_batches(
    period_year: Optional[int] = Query(None),
    period_month: Optional[int] = Query(None, ge=1, le=12),
    status: Optional[ExpenseBatchStatus] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(ExpenseBatch).options(selectinload(ExpenseBatch.items))
    if period_year is not None:
        query = query.filter(ExpenseBatch.period_year == period_year)
    if period_month is not None:
        query = query.filter(ExpenseBatch.period_month == period_month)
    if status is not None:
        query = query.filter(ExpenseBatch.status == status)

    query = query.order_by(ExpenseBatch.entry_date.desc(), ExpenseBatch.id.desc())
    batches, pagination = paginate(query, page, page_size)
    return {"success": True, "data": batches, "pagination": pagination}


@router.post("/expense-batches", response_model=ApiResponse[ExpenseBatchResponse])
def create_batch(
    payload: ExpenseBatchCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    prefix = f"EB-{payload.period_year}-{payload.period_month:02d}-"
    batch = ExpenseBatch(
        batch_number=next_number(db, ExpenseBatch.batch_number, prefix, 3),
        name=payload.name,
        description=payload.description,
        period_year=payload.period_year,
        period_month=payload.period_month,
        entry_date=payload.entry_date or datetime.now(),
        status=ExpenseBatchStatus.DRAFT,
        user_id=current_user.id,
    )
    db.add(batch)
    try:
        _set_batch_items(db, batch, payload.items)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(batch)

    write_log(db, user_id=current_user.id, action="EXPENSE_BATCH_CREATE", resource="expense_batches",
              entity_id=batch.id, ip=client_ip(request),
              meta={"batch_number": batch.batch_number, "total": batch.total_amount})
    return {"success": True, "data": batch, "message": f"Batch {batch.batch_number} created"}


@router.get("/expense-batches/{batch_id}", response_model=ApiResponse[ExpenseBatchResponse])
def get_batch(batch_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"success": True, "data": _load_batch(db, batch_id)}


@router.put("/expense-batches/{batch_id}", response_model=ApiResponse[ExpenseBatchResponse])
def update_batch(
    batch_id: int,
    payload: ExpenseBatchUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    batch = _load_batch(db, batch_id)
    _require_draft(batch, "edited")

    batch.name = payload.name
    batch.description = payload.description
    batch.period_year = payload.period_year
    batch.period_month = payload.period_month
    if payload.entry_date is not None:
        batch.entry_date = payload.entry_date
    try:
        _set_batch_items(db, batch, payload.items)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(batch)

    write_log(db, user_id=current_user.id, action="EXPENSE_BATCH_UPDATE", resource="expense_batches",
              entity_id=batch.id, ip=client_ip(request), meta={"total": batch.total_amount})
    return {"success": True, "data": batch, "message": "Batch updated"}


# Any status may follow any other
@router.patch("/expense-batches/{batch_id}/status", response_model=ApiResponse[ExpenseBatchResponse])
def update_batch_status(
    batch_id: int,
    payload: ExpenseBatchStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    batch = _load_batch(db, batch_id)
    old_status = batch.status
    batch.status = payload.status
    db.commit()
    db.refresh(batch)

    write_log(db, user_id=current_user.id, action="EXPENSE_BATCH_STATUS", resource="expense_batches",
              entity_id=batch.id, ip=client_ip(request), meta={"old": old_status.value, "new": batch.status.value})
    return {"success": True, "data": batch, "message": f"Status set to {batch.status.value}"}


@router.delete("/expense-batches/{batch_id}", response_model=ApiResponse[None])
def delete_batch(
    batch_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    batch = _load_batch(db, batch_id)
    _require_draft(batch, "deleted")
    number = batch.batch_number
    db.delete(batch)
    db.commit()

    write_log(db, user_id=current_user.id, action="EXPENSE_BATCH_DELETE", resource="expense_batches",
              entity_id=batch_id, ip=client_ip(request), meta={"batch_number": number})
    return {"success": True, "message": "Batch deleted"}
