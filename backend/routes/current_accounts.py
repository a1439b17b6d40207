# backend/routes/current_accounts.py
from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from database import get_db
from models.current_account import CurrentAccount, CurrentAccountTransaction, AccountType, TransactionType
from models.supplier import Supplier
from models.users import User
from schemas.common import ApiResponse
from schemas.current_account import (
    CurrentAccountCreate, CurrentAccountUpdate, CurrentAccountResponse, CurrentAccountSummary,
    TransactionCreate, TransactionResponse, AccountStatement,
)
from utils.audit import write_log, client_ip
from utils.balances import (
    OPENING_DESCRIPTION, post_transaction, account_aging, account_statement,
    recalculate_account_balance, recalculate_all_balances,
)
from utils.dates import day_range
from utils.lookups import get_or_404, ensure_exists
from utils.numbering import next_number
from utils.pagination import paginate
from utils.tokenJWT import get_current_user, role_required, ADMIN, MANAGER

router = APIRouter(prefix="/current-accounts", tags=["Current Accounts"])

SIGNS = {
    TransactionType.DEBT: 1,
    TransactionType.CREDIT: -1,
    TransactionType.PAYMENT: -1,
    TransactionType.ADJUSTMENT: 1,
}


def _load_account(db: Session, account_id: int) -> CurrentAccount:
    account = db.query(CurrentAccount).options(selectinload(CurrentAccount.transactions)).filter(
        CurrentAccount.id == account_id
    ).first()
    if not account:
        raise HTTPException(status_code=404, detail="Current account not found")
    return account


def _summary(account: CurrentAccount, now: datetime) -> dict:
    data = CurrentAccountResponse.model_validate(account).model_dump()
    # real-time balance from the transactions, independent of the stored snapshot
    data["current_balance"] = sum(t.amount or 0.0 for t in account.transactions)
    data["aging"] = account_aging(account.transactions, now)
    data["last_transaction_date"] = max((t.transaction_date for t in account.transactions), default=None)
    return data


@router.get("", response_model=ApiResponse[List[CurrentAccountSummary]])
def list_accounts(
    search: Optional[str] = Query(None, description="Code or name"),
    type: Optional[AccountType] = Query(None),
    is_active: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    query = db.query(CurrentAccount).options(selectinload(CurrentAccount.transactions))
    if search:
        like = f"%{search}%"
        query = query.filter((CurrentAccount.code.ilike(like)) | (CurrentAccount.name.ilike(like)))
    if type is not None:
        query = query.filter(CurrentAccount.type == type)
    if is_active is not None:
        query = query.filter(CurrentAccount.is_active.is_(is_active))

    query = query.order_by(CurrentAccount.code)
    accounts, pagination = paginate(query, page, page_size)
    now = datetime.now()
    return {"success": True, "data": [_summary(a, now) for a in accounts], "pagination": pagination}


@router.post("", response_model=ApiResponse[CurrentAccountResponse])
def create_account(
    payload: CurrentAccountCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    if payload.supplier_id is not None:
        ensure_exists(db, Supplier, payload.supplier_id, "Supplier")

    try:
        account = CurrentAccount(
            code=next_number(db, CurrentAccount.code, "CAR", 3),
            current_balance=0.0,
            **payload.model_dump(),
        )
        db.add(account)
        db.flush()

        if payload.opening_balance:
            post_transaction(
                db,
                account,
                transaction_type=TransactionType.ADJUSTMENT,
                amount=payload.opening_balance,
                description=OPENING_DESCRIPTION,
                user_id=current_user.id,
            )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(account)

    write_log(db, user_id=current_user.id, action="ACCOUNT_CREATE", resource="current_accounts",
              entity_id=account.id, ip=client_ip(request),
              meta={"code": account.code, "opening_balance": account.opening_balance})
    return {"success": True, "data": account, "message": f"Account {account.code} created"}


@router.post("/recalculate-balances", response_model=ApiResponse[dict])
def recalculate_balances(
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    try:
        result = recalculate_all_balances(db)
        db.commit()
    except Exception:
        db.rollback()
        raise

    write_log(db, user_id=current_user.id, action="ACCOUNT_RECALCULATE", resource="current_accounts",
              ip=client_ip(request), meta=result)
    return {"success": True, "data": result, "message": "Balances recalculated"}


@router.get("/{account_id}", response_model=ApiResponse[CurrentAccountSummary])
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    return {"success": True, "data": _summary(_load_account(db, account_id), datetime.now())}


@router.put("/{account_id}", response_model=ApiResponse[CurrentAccountResponse])
def update_account(
    account_id: int,
    payload: CurrentAccountUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    account = get_or_404(db, CurrentAccount, account_id, "Current account")
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("supplier_id") is not None:
        ensure_exists(db, Supplier, changes["supplier_id"], "Supplier")
    for field, value in changes.items():
        setattr(account, field, value)
    db.commit()
    db.refresh(account)

    write_log(db, user_id=current_user.id, action="ACCOUNT_UPDATE", resource="current_accounts",
              entity_id=account.id, ip=client_ip(request), meta={"fields": sorted(changes)})
    return {"success": True, "data": account, "message": "Account updated"}


# Accounts carry history, so deleting only deactivates
@router.delete("/{account_id}", response_model=ApiResponse[None])
def deactivate_account(
    account_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    account = get_or_404(db, CurrentAccount, account_id, "Current account")
    account.is_active = False
    db.commit()

    write_log(db, user_id=current_user.id, action="ACCOUNT_DEACTIVATE", resource="current_accounts",
              entity_id=account.id, ip=client_ip(request))
    return {"success": True, "message": "Account deactivated"}


@router.get("/{account_id}/transactions", response_model=ApiResponse[List[TransactionResponse]])
def list_transactions(
    account_id: int,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    type: Optional[TransactionType] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    get_or_404(db, CurrentAccount, account_id, "Current account")
    query = db.query(CurrentAccountTransaction).filter(CurrentAccountTransaction.current_account_id == account_id)

    start, end = day_range(date_from, date_to)
    if start:
        query = query.filter(CurrentAccountTransaction.transaction_date >= start)
    if end:
        query = query.filter(CurrentAccountTransaction.transaction_date <= end)
    if type is not None:
        query = query.filter(CurrentAccountTransaction.type == type)

    query = query.order_by(CurrentAccountTransaction.transaction_date.desc(), CurrentAccountTransaction.id.desc())
    rows, pagination = paginate(query, page, page_size)
    return {"success": True, "data": rows, "pagination": pagination}


@router.post("/{account_id}/transactions", response_model=ApiResponse[TransactionResponse])
def add_transaction(
    account_id: int,
    payload: TransactionCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    account = _load_account(db, account_id)
    if not account.is_active:
        raise HTTPException(status_code=400, detail="Account is inactive")

    try:
        tx = post_transaction(
            db,
            account,
            transaction_type=payload.type,
            amount=SIGNS[payload.type] * payload.amount,
            description=payload.description,
            reference_number=payload.reference_number,
            transaction_date=payload.transaction_date,
            user_id=current_user.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(tx)

    write_log(db, user_id=current_user.id, action="ACCOUNT_TRANSACTION", resource="current_accounts",
              entity_id=account.id, ip=client_ip(request),
              meta={"type": payload.type.value, "amount": tx.amount, "balance": account.current_balance})
    return {"success": True, "data": tx, "message": "Transaction recorded"}


@router.get("/{account_id}/statement", response_model=ApiResponse[AccountStatement])
def get_statement(
    account_id: int,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    account = _load_account(db, account_id)
    start, end = day_range(date_from, date_to)
    statement = account_statement(account, start, end)
    statement["account"] = account
    return {"success": True, "data": statement}


@router.post("/{account_id}/recalculate", response_model=ApiResponse[CurrentAccountResponse])
def recalculate_one(
    account_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    account = _load_account(db, account_id)
    recalculate_account_balance(db, account)
    db.commit()
    db.refresh(account)
    return {"success": True, "data": account}
