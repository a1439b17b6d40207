# backend/utils/balances.py
"""Current account balances: replay, aging and transaction posting.

Balances are signed; a positive balance is money owed to the counterparty.
The opening balance is stored as the account's first transaction, so a replay
always starts from zero.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from models.current_account import CurrentAccount, CurrentAccountTransaction, TransactionType

logger = logging.getLogger(__name__)

OPENING_DESCRIPTION = "Opening balance"


def _ordered(transactions: Iterable[CurrentAccountTransaction]):
    return sorted(transactions, key=lambda t: (t.transaction_date, t.id or 0))


def recalculate_account_balance(db: Session, account: CurrentAccount) -> float:
    """Replay every transaction in date order, rewriting the balance snapshots."""
    running = 0.0
    for tx in _ordered(account.transactions):
        tx.balance_before = running
        running += tx.amount or 0.0
        tx.balance_after = running
    account.current_balance = running
    if account.transactions:
        account.last_activity_date = max(t.transaction_date for t in account.transactions)
    db.flush()
    logger.debug("Account %s recalculated: balance=%s (%d transactions)",
                 account.code, running, len(account.transactions))
    return running


def recalculate_all_balances(db: Session) -> dict:
    accounts = db.query(CurrentAccount).all()
    processed = 0
    for account in accounts:
        recalculate_account_balance(db, account)
        processed += len(account.transactions)
    logger.info("Recalculated %d current accounts (%d transactions)", len(accounts), processed)
    return {"updated_accounts": len(accounts), "transactions_processed": processed}


def post_transaction(
    db: Session,
    account: CurrentAccount,
    *,
    transaction_type: TransactionType,
    amount: float,
    description: Optional[str] = None,
    reference_number: Optional[str] = None,
    transaction_date: Optional[datetime] = None,
    invoice_id: Optional[int] = None,
    payment_id: Optional[int] = None,
    user_id: Optional[int] = None,
) -> CurrentAccountTransaction:
    """Append a signed transaction and bring every snapshot of the account up to date."""
    tx = CurrentAccountTransaction(
        current_account_id=account.id,
        transaction_date=transaction_date or datetime.now(),
        type=transaction_type,
        amount=amount,
        description=description,
        reference_number=reference_number,
        invoice_id=invoice_id,
        payment_id=payment_id,
        user_id=user_id,
    )
    account.transactions.append(tx)
    db.flush()
    recalculate_account_balance(db, account)
    return tx


def remove_transactions(db: Session, account: CurrentAccount, transactions) -> None:
    for tx in list(transactions):
        account.transactions.remove(tx)
    db.flush()
    recalculate_account_balance(db, account)


def account_aging(transactions: Iterable[CurrentAccountTransaction], now: Optional[datetime] = None) -> dict:
    """Split DEBT amounts by age: 0-30, 31-60, 61-90 and over 90 days."""
    now = now or datetime.now()
    aging = {"current": 0.0, "days_30": 0.0, "days_60": 0.0, "days_90": 0.0}
    for tx in transactions:
        if tx.type != TransactionType.DEBT:
            continue
        days = (now - tx.transaction_date).days
        if days <= 30:
            aging["current"] += tx.amount
        elif days <= 60:
            aging["days_30"] += tx.amount
        elif days <= 90:
            aging["days_60"] += tx.amount
        else:
            aging["days_90"] += tx.amount
    return aging


def account_statement(account: CurrentAccount, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
    """Opening balance before ``start``, the rows inside the range and the closing balance."""
    opening = 0.0
    rows = []
    for tx in _ordered(account.transactions):
        if start and tx.transaction_date < start:
            opening += tx.amount or 0.0
        elif end and tx.transaction_date > end:
            continue
        else:
            rows.append(tx)

    total_debt = sum(t.amount for t in rows if t.amount > 0)
    total_credit = -sum(t.amount for t in rows if t.amount < 0)
    return {
        "opening_balance": opening,
        "transactions": rows,
        "total_debt": total_debt,
        "total_credit": total_credit,
        "closing_balance": opening + total_debt - total_credit,
    }
