# backend/routes/payments.py
from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from typing import List, Optional

from database import get_db
from models.current_account import (
    CurrentAccount, CurrentAccountTransaction, Payment, PaymentMethod, PaymentState, TransactionType,
)
from models.users import User
from schemas.common import ApiResponse
from schemas.current_account import PaymentCreate, PaymentStatusUpdate, PaymentResponse
from utils.audit import write_log, client_ip
from utils.balances import post_transaction, remove_transactions
from utils.dates import day_range
from utils.lookups import get_or_404, ensure_exists
from utils.numbering import next_number
from utils.pagination import paginate
from utils.tokenJWT import role_required, ADMIN, MANAGER

router = APIRouter(prefix="/payments", tags=["Payments"])


def _post_payment(db: Session, payment: Payment, account: CurrentAccount, user_id: int):
    post_transaction(
        db,
        account,
        transaction_type=TransactionType.PAYMENT,
        amount=-payment.amount,
        description=payment.description or f"Payment {payment.payment_number}",
        reference_number=payment.payment_number,
        transaction_date=payment.payment_date,
        payment_id=payment.id,
        user_id=user_id,
    )


def _payment_transactions(db: Session, payment_id: int):
    return db.query(CurrentAccountTransaction).filter(CurrentAccountTransaction.payment_id == payment_id).all()


@router.get("", response_model=ApiResponse[List[PaymentResponse]])
def list_payments(
    current_account_id: Optional[int] = Query(None),
    status: Optional[PaymentState] = Query(None),
    payment_method: Optional[PaymentMethod] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    query = db.query(Payment)
    if current_account_id is not None:
        query = query.filter(Payment.current_account_id == current_account_id)
    if status is not None:
        query = query.filter(Payment.status == status)
    if payment_method is not None:
        query = query.filter(Payment.payment_method == payment_method)

    start, end = day_range(date_from, date_to)
    if start:
        query = query.filter(Payment.payment_date >= start)
    if end:
        query = query.filter(Payment.payment_date <= end)

    query = query.order_by(Payment.payment_date.desc(), Payment.id.desc())
    payments, pagination = paginate(query, page, page_size)
    return {"success": True, "data": payments, "pagination": pagination}


@router.post("", response_model=ApiResponse[PaymentResponse])
def create_payment(
    payload: PaymentCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    account = ensure_exists(db, CurrentAccount, payload.current_account_id, "Current account")
    if not account.is_active:
        raise HTTPException(status_code=400, detail="Account is inactive")

    payment_date = payload.payment_date or datetime.now()
    try:
        payment = Payment(
            payment_number=next_number(db, Payment.payment_number, f"PAY-{payment_date.year}-", 5),
            current_account_id=account.id,
            payment_date=payment_date,
            amount=payload.amount,
            payment_method=payload.payment_method,
            currency=payload.currency,
            reference_number=payload.reference_number,
            description=payload.description,
            status=payload.status,
            user_id=current_user.id,
        )
        db.add(payment)
        db.flush()

        if payment.status == PaymentState.COMPLETED:
            _post_payment(db, payment, account, current_user.id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(payment)

    write_log(db, user_id=current_user.id, action="PAYMENT_CREATE", resource="payments", entity_id=payment.id,
              ip=client_ip(request),
              meta={"payment_number": payment.payment_number, "amount": payment.amount, "status": payment.status.value})
    return {"success": True, "data": payment, "message": f"Payment {payment.payment_number} recorded"}


@router.get("/{payment_id}", response_model=ApiResponse[PaymentResponse])
def get_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    return {"success": True, "data": get_or_404(db, Payment, payment_id, "Payment")}


@router.patch("/{payment_id}/status", response_model=ApiResponse[PaymentResponse])
def update_payment_status(
    payment_id: int,
    payload: PaymentStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    payment = get_or_404(db, Payment, payment_id, "Payment")
    old_status = payment.status
    account = payment.current_account

    try:
        posted = _payment_transactions(db, payment.id)
        if payload.status == PaymentState.COMPLETED and not posted:
            _post_payment(db, payment, account, current_user.id)
        elif payload.status != PaymentState.COMPLETED and posted:
            remove_transactions(db, account, posted)
        payment.status = payload.status
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(payment)

    write_log(db, user_id=current_user.id, action="PAYMENT_STATUS", resource="payments", entity_id=payment.id,
              ip=client_ip(request), meta={"old": old_status.value, "new": payment.status.value})
    return {"success": True, "data": payment, "message": f"Status set to {payment.status.value}"}
