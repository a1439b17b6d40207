# backend/routes/invoice.py
import logging
from datetime import date, datetime
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from database import get_db
from models.current_account import CurrentAccount, CurrentAccountTransaction, TransactionType
from models.invoice import Invoice, InvoiceItem, InvoiceType, InvoiceStatus
from models.material import Material
from models.stock import StockMovement, MovementType
from models.supplier import Supplier
from models.users import User
from models.warehouse import Warehouse
from schemas.common import ApiResponse
from schemas.invoice import InvoiceCreate, InvoiceUpdate, InvoiceStatusUpdate, InvoiceResponse
from utils.audit import write_log, client_ip
from utils.balances import post_transaction, remove_transactions
from utils.dates import day_range
from utils.ledger import apply_movement, current_unit_cost, purge_movements
from utils.lookups import ensure_exists
from utils.pagination import paginate
from utils.tokenJWT import get_current_user, role_required, ADMIN, MANAGER

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Invoices"])


def compute_line(item) -> dict:
    """Line amounts: two successive discounts on the gross subtotal, tax on what remains."""
    subtotal = item.quantity * item.unit_price
    discount1 = subtotal * item.discount1_rate / 100
    discount2 = (subtotal - discount1) * item.discount2_rate / 100
    net = subtotal - discount1 - discount2
    tax = net * item.tax_rate / 100
    return {
        "subtotal_amount": subtotal,
        "discount1_amount": discount1,
        "discount2_amount": discount2,
        "total_discount_amount": discount1 + discount2,
        "tax_amount": tax,
        "total_amount": net + tax,
    }


def _load_invoice(db: Session, invoice_id: int) -> Invoice:
    invoice = db.query(Invoice).options(selectinload(Invoice.items)).filter(Invoice.id == invoice_id).first()
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


def _resolve_account(db: Session, payload: InvoiceCreate) -> Optional[CurrentAccount]:
    if payload.current_account_id is not None:
        return ensure_exists(db, CurrentAccount, payload.current_account_id, "Current account")
    if payload.supplier_id is not None:
        return db.query(CurrentAccount).filter(
            CurrentAccount.supplier_id == payload.supplier_id,
            CurrentAccount.is_active.is_(True),
        ).first()
    return None


def _validate(db: Session, payload: InvoiceCreate, invoice_id: Optional[int] = None):
    duplicate = db.query(Invoice).filter(Invoice.invoice_number == payload.invoice_number)
    if invoice_id is not None:
        duplicate = duplicate.filter(Invoice.id != invoice_id)
    if duplicate.first():
        raise HTTPException(status_code=400, detail=f"Invoice number '{payload.invoice_number}' already exists")
    if payload.supplier_id is not None:
        ensure_exists(db, Supplier, payload.supplier_id, "Supplier")
    for item in payload.items:
        ensure_exists(db, Material, item.material_id, "Material")
        ensure_exists(db, Warehouse, item.warehouse_id, "Warehouse")


def _fill_invoice(db: Session, invoice: Invoice, payload: InvoiceCreate, account: Optional[CurrentAccount]):
    invoice.invoice_number = payload.invoice_number
    invoice.type = payload.type
    invoice.status = payload.status
    invoice.supplier_id = payload.supplier_id
    invoice.current_account_id = account.id if account else None
    invoice.date = payload.date
    invoice.due_date = payload.due_date
    invoice.notes = payload.notes

    invoice.items.clear()
    db.flush()
    for item in payload.items:
        invoice.items.append(InvoiceItem(
            material_id=item.material_id,
            warehouse_id=item.warehouse_id,
            quantity=item.quantity,
            unit_price=item.unit_price,
            tax_rate=item.tax_rate,
            discount1_rate=item.discount1_rate,
            discount2_rate=item.discount2_rate,
            **compute_line(item),
        ))

    invoice.subtotal_amount = sum(i.subtotal_amount for i in invoice.items)
    invoice.total_discount_amount = sum(i.total_discount_amount for i in invoice.items)
    invoice.total_tax_amount = sum(i.tax_amount for i in invoice.items)
    invoice.total_amount = sum(i.total_amount for i in invoice.items)
    db.flush()


def _post_stock(db: Session, invoice: Invoice, user_id: int) -> int:
    """PURCHASE books stock in at the net unit price; SALE and RETURN take it out at average cost."""
    reason = f"Invoice {invoice.invoice_number}"
    for item in invoice.items:
        if invoice.type == InvoiceType.PURCHASE:
            unit_cost = item.net_amount / item.quantity
            apply_movement(
                db, material_id=item.material_id, warehouse_id=item.warehouse_id, quantity=item.quantity,
                movement_type=MovementType.IN, unit_cost=unit_cost, reason=reason, user_id=user_id,
                date=invoice.date, invoice_id=invoice.id,
            )
            db.get(Material, item.material_id).last_purchase_price = unit_cost
        else:
            material = db.get(Material, item.material_id)
            apply_movement(
                db, material_id=item.material_id, warehouse_id=item.warehouse_id, quantity=-item.quantity,
                movement_type=MovementType.OUT, unit_cost=current_unit_cost(db, material, item.warehouse_id),
                reason=reason, user_id=user_id, date=invoice.date, invoice_id=invoice.id,
            )
    return len(invoice.items)


def _post_account(db: Session, invoice: Invoice, account: Optional[CurrentAccount], user_id: int):
    if account is None:
        return
    if invoice.type == InvoiceType.RETURN:
        tx_type, amount = TransactionType.CREDIT, -invoice.total_amount
    else:
        tx_type, amount = TransactionType.DEBT, invoice.total_amount
    post_transaction(
        db, account,
        transaction_type=tx_type,
        amount=amount,
        description=f"{invoice.type.value.title()} invoice {invoice.invoice_number}",
        reference_number=invoice.invoice_number,
        transaction_date=invoice.date,
        invoice_id=invoice.id,
        user_id=user_id,
    )


def _undo_invoice_effects(db: Session, invoice: Invoice) -> int:
    removed = purge_movements(
        db, db.query(StockMovement).filter(StockMovement.invoice_id == invoice.id).all()
    )
    transactions = db.query(CurrentAccountTransaction).filter(CurrentAccountTransaction.invoice_id == invoice.id).all()
    by_account = {}
    for tx in transactions:
        by_account.setdefault(tx.current_account_id, []).append(tx)
    for account_id, rows in by_account.items():
        remove_transactions(db, db.get(CurrentAccount, account_id), rows)
    return removed


@router.get("/invoices", response_model=ApiResponse[List[InvoiceResponse]])
def list_invoices(
    type: Optional[InvoiceType] = Query(None),
    status: Optional[InvoiceStatus] = Query(None),
    supplier_id: Optional[int] = Query(None),
    current_account_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None, description="Invoice number"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = db.query(Invoice).options(selectinload(Invoice.items))

    if type is not None:
        query = query.filter(Invoice.type == type)
    if status is not None:
        query = query.filter(Invoice.status == status)
    if supplier_id is not None:
        query = query.filter(Invoice.supplier_id == supplier_id)
    if current_account_id is not None:
        query = query.filter(Invoice.current_account_id == current_account_id)
    if search:
        query = query.filter(Invoice.invoice_number.ilike(f"%{search}%"))

    start, end = day_range(date_from, date_to)
    if start:
        query = query.filter(Invoice.date >= start)
    if end:
        query = query.filter(Invoice.date <= end)

    query = query.order_by(Invoice.date.desc(), Invoice.id.desc())
    invoices, pagination = paginate(query, page, page_size)
    return {"success": True, "data": invoices, "pagination": pagination}


@router.post("/invoices", response_model=ApiResponse[InvoiceResponse])
def create_invoice(
    payload: InvoiceCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    _validate(db, payload)
    account = _resolve_account(db, payload)

    try:
        invoice = Invoice(user_id=current_user.id)
        db.add(invoice)
        _fill_invoice(db, invoice, payload, account)

        movements = _post_stock(db, invoice, current_user.id) if payload.create_stock_movements else 0
        _post_account(db, invoice, account, current_user.id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(invoice)

    logger.info("Invoice %s (%s) created: total=%.2f, %d stock movements",
                invoice.invoice_number, invoice.type.value, invoice.total_amount, movements)
    write_log(db, user_id=current_user.id, action="INVOICE_CREATE", resource="invoices", entity_id=invoice.id,
              ip=client_ip(request),
              meta={"number": invoice.invoice_number, "type": invoice.type.value, "total": invoice.total_amount})
    return {"success": True, "data": invoice, "message": "Invoice created"}


@router.get("/invoices/{invoice_id}", response_model=ApiResponse[InvoiceResponse])
def get_invoice(invoice_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return {"success": True, "data": _load_invoice(db, invoice_id)}


# Replaces header and lines; the old stock and account effects are undone first
@router.put("/invoices/{invoice_id}", response_model=ApiResponse[InvoiceResponse])
def update_invoice(
    invoice_id: int,
    payload: InvoiceUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    invoice = _load_invoice(db, invoice_id)
    _validate(db, payload, invoice.id)
    account = _resolve_account(db, payload)

    try:
        _undo_invoice_effects(db, invoice)
        _fill_invoice(db, invoice, payload, account)
        if payload.create_stock_movements:
            _post_stock(db, invoice, current_user.id)
        _post_account(db, invoice, account, current_user.id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(invoice)

    write_log(db, user_id=current_user.id, action="INVOICE_UPDATE", resource="invoices", entity_id=invoice.id,
              ip=client_ip(request), meta={"number": invoice.invoice_number, "total": invoice.total_amount})
    return {"success": True, "data": invoice, "message": "Invoice updated"}


@router.patch("/invoices/{invoice_id}/status", response_model=ApiResponse[InvoiceResponse])
def update_invoice_status(
    invoice_id: int,
    payload: InvoiceStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    invoice = _load_invoice(db, invoice_id)
    old_status = invoice.status
    invoice.status = payload.status
    if payload.status == InvoiceStatus.PAID:
        invoice.payment_date = payload.payment_date or invoice.payment_date or datetime.now()
    db.commit()
    db.refresh(invoice)

    write_log(db, user_id=current_user.id, action="INVOICE_STATUS", resource="invoices", entity_id=invoice.id,
              ip=client_ip(request), meta={"old": old_status.value, "new": invoice.status.value})
    return {"success": True, "data": invoice, "message": f"Status set to {invoice.status.value}"}


@router.delete("/invoices/{invoice_id}", response_model=ApiResponse[None])
def delete_invoice(
    invoice_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ADMIN, MANAGER)),
):
    invoice = _load_invoice(db, invoice_id)
    number = invoice.invoice_number

    try:
        removed = _undo_invoice_effects(db, invoice)
        db.delete(invoice)
        db.commit()
    except Exception:
        db.rollback()
        raise

    write_log(db, user_id=current_user.id, action="INVOICE_DELETE", resource="invoices", entity_id=invoice_id,
              ip=client_ip(request), meta={"number": number, "movements_removed": removed})
    return {"success": True, "message": "Invoice deleted"}
