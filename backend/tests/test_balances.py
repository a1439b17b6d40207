from datetime import datetime, timedelta

import pytest

from models.current_account import CurrentAccount, CurrentAccountTransaction, TransactionType
from utils.balances import (
    account_aging, account_statement, post_transaction, recalculate_account_balance, recalculate_all_balances,
    remove_transactions,
)


@pytest.fixture
def account(db):
    acc = CurrentAccount(code="CAR001", name="Fresh Farms")
    db.add(acc)
    db.commit()
    return acc


def test_post_transaction_keeps_running_snapshots(db, account):
    post_transaction(db, account, transaction_type=TransactionType.DEBT, amount=100,
                     transaction_date=datetime(2025, 1, 1))
    tx = post_transaction(db, account, transaction_type=TransactionType.PAYMENT, amount=-40,
                          transaction_date=datetime(2025, 1, 5))
    assert tx.balance_before == pytest.approx(100)
    assert tx.balance_after == pytest.approx(60)
    assert account.current_balance == pytest.approx(60)
    assert account.last_activity_date == datetime(2025, 1, 5)


def test_backdated_transaction_rewrites_later_snapshots(db, account):
    later = post_transaction(db, account, transaction_type=TransactionType.DEBT, amount=50,
                             transaction_date=datetime(2025, 2, 1))
    post_transaction(db, account, transaction_type=TransactionType.DEBT, amount=20,
                     transaction_date=datetime(2025, 1, 1))
    assert later.balance_before == pytest.approx(20)
    assert later.balance_after == pytest.approx(70)


def test_remove_transactions_rebalances(db, account):
    keep = post_transaction(db, account, transaction_type=TransactionType.DEBT, amount=80)
    drop = post_transaction(db, account, transaction_type=TransactionType.CREDIT, amount=-30)
    remove_transactions(db, account, [drop])
    assert account.current_balance == pytest.approx(80)
    assert db.query(CurrentAccountTransaction).count() == 1
    assert keep.balance_after == pytest.approx(80)


def test_recalculate_fixes_tampered_balance(db, account):
    post_transaction(db, account, transaction_type=TransactionType.DEBT, amount=10)
    account.current_balance = 999
    db.flush()
    assert recalculate_account_balance(db, account) == pytest.approx(10)

    result = recalculate_all_balances(db)
    assert result == {"updated_accounts": 1, "transactions_processed": 1}


def test_aging_buckets_only_debts():
    now = datetime(2025, 6, 30)

    def tx(days, amount, kind=TransactionType.DEBT):
        return CurrentAccountTransaction(type=kind, amount=amount, transaction_date=now - timedelta(days=days))

    aging = account_aging([
        tx(5, 100), tx(30, 10), tx(31, 200), tx(75, 300), tx(120, 400),
        tx(3, -50, TransactionType.PAYMENT),
    ], now)
    assert aging == {"current": 110, "days_30": 200, "days_60": 300, "days_90": 400}


def test_statement_opening_and_closing(db, account):
    post_transaction(db, account, transaction_type=TransactionType.DEBT, amount=100,
                     transaction_date=datetime(2025, 1, 10))
    post_transaction(db, account, transaction_type=TransactionType.DEBT, amount=60,
                     transaction_date=datetime(2025, 2, 10))
    post_transaction(db, account, transaction_type=TransactionType.PAYMENT, amount=-90,
                     transaction_date=datetime(2025, 2, 20))
    post_transaction(db, account, transaction_type=TransactionType.DEBT, amount=5,
                     transaction_date=datetime(2025, 3, 5))

    statement = account_statement(account, datetime(2025, 2, 1), datetime(2025, 2, 28, 23, 59))
    assert statement["opening_balance"] == pytest.approx(100)
    assert len(statement["transactions"]) == 2
    assert statement["total_debt"] == pytest.approx(60)
    assert statement["total_credit"] == pytest.approx(90)
    assert statement["closing_balance"] == pytest.approx(70)
