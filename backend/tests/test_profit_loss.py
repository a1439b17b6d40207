from datetime import datetime

import pytest

from models.expense import (
    Expense, ExpenseBatch, ExpenseBatchItem, ExpenseItem, ExpenseMainCategory, ExpenseSubCategory,
)
from models.invoice import Invoice, InvoiceType
from models.sale import Sale
from models.stock import MovementType
from utils.ledger import apply_movement
from utils.profit_loss import build_profit_loss, calculate_operating_expenses, percentage

START = datetime(2025, 3, 1)
END = datetime(2025, 3, 31, 23, 59, 59)


def _expense_item(db, main_name, sub_name, item_name):
    main = db.query(ExpenseMainCategory).filter(ExpenseMainCategory.name == main_name).first()
    if main is None:
        main = ExpenseMainCategory(name=main_name)
        db.add(main)
        db.flush()
    sub = ExpenseSubCategory(main_category_id=main.id, name=sub_name)
    db.add(sub)
    db.flush()
    item = ExpenseItem(sub_category_id=sub.id, name=item_name)
    db.add(item)
    db.flush()
    return item


def test_percentage_handles_zero_base():
    assert percentage(5, 0) == 0.0
    assert percentage(25, 200) == pytest.approx(12.5)


def test_operating_expenses_buckets_and_detail(db):
    wages = _expense_item(db, "Personnel Expenses", "Salaries", "Kitchen Staff")
    rent = _expense_item(db, "Fixed Expenses", "Rent", "Restaurant Rent")
    bank = _expense_item(db, "Other Expenses", "Bank", "Card Commissions")
    db.add_all([
        Expense(expense_item_id=wages.id, description="March wages", amount=3000, date=datetime(2025, 3, 28)),
        Expense(expense_item_id=bank.id, description="POS fees", amount=100, date=datetime(2025, 3, 30)),
        # Outside the period
        Expense(expense_item_id=wages.id, description="Feb wages", amount=2800, date=datetime(2025, 2, 28)),
    ])
    batch = ExpenseBatch(batch_number="EB-2025-03-001", name="March fixed", period_year=2025, period_month=3,
                         entry_date=datetime(2025, 3, 1, 9))
    batch.items.append(ExpenseBatchItem(expense_item_id=rent.id, description="Rent", amount=900))
    db.add(batch)
    db.commit()

    result = calculate_operating_expenses(db, START, END, report_type="detailed")
    assert result["total_expenses"] == pytest.approx(4000)
    assert result["salaries"] == pytest.approx(3000)
    assert result["rent"] == pytest.approx(900)
    assert result["utilities"] == 0
    assert result["other"] == pytest.approx(100)

    personnel = next(m for m in result["detailed_breakdown"] if m["main_category"] == "Personnel Expenses")
    assert personnel["percentage"] == pytest.approx(75)
    assert personnel["sub_categories"][0]["items"][0]["name"] == "Kitchen Staff"


def test_summary_has_no_detailed_breakdown(db):
    assert "detailed_breakdown" not in calculate_operating_expenses(db, START, END)


def test_profit_and_loss_totals(db, materials, warehouses):
    flour, store = materials["flour"], warehouses["store"]
    db.add(Invoice(invoice_number="S-1", type=InvoiceType.SALE, date=datetime(2025, 3, 10), total_amount=500))
    db.add(Invoice(invoice_number="P-1", type=InvoiceType.PURCHASE, date=datetime(2025, 3, 10), total_amount=999))
    db.add(Sale(date=datetime(2025, 3, 12), item_name="Pizza", quantity=10, unit_price=50, total_price=500))
    apply_movement(db, material_id=flour.id, warehouse_id=store.id, quantity=50,
                   movement_type=MovementType.IN, unit_cost=2, date=datetime(2025, 2, 1))
    apply_movement(db, material_id=flour.id, warehouse_id=store.id, quantity=-20,
                   movement_type=MovementType.OUT, date=datetime(2025, 3, 12))
    db.commit()

    report = build_profit_loss(db, START, END)
    assert report["revenue"]["total_revenue"] == pytest.approx(1000)
    assert report["revenue"]["sales_invoices"] == pytest.approx(500)
    assert report["revenue"]["product_sales"] == pytest.approx(500)
    assert {line["type"] for line in report["revenue"]["breakdown"]} == {"INVOICE", "PRODUCT_SALE"}

    assert report["cogs"]["total_cogs"] == pytest.approx(40)
    assert report["cogs"]["breakdown"][0]["unit_cost"] == pytest.approx(2)
    assert report["cogs"]["breakdown"][0]["category_name"] == "Dry Goods"

    assert report["gross_profit"]["amount"] == pytest.approx(960)
    assert report["gross_profit"]["percentage"] == pytest.approx(96)
    assert report["net_profit"]["amount"] == pytest.approx(960)
    assert "warehouse_breakdown" not in report


def test_warehouse_breakdown_with_several_warehouses(db, materials, warehouses):
    flour = materials["flour"]
    apply_movement(db, material_id=flour.id, warehouse_id=warehouses["kitchen"].id, quantity=-5,
                   movement_type=MovementType.OUT, unit_cost=3, date=datetime(2025, 3, 3))
    db.commit()

    ids = [warehouses["kitchen"].id, warehouses["store"].id]
    report = build_profit_loss(db, START, END, warehouse_ids=ids)
    rows = {r["warehouse_id"]: r for r in report["warehouse_breakdown"]}
    assert rows[warehouses["kitchen"].id]["cogs"] == pytest.approx(15)
    assert rows[warehouses["store"].id]["cogs"] == 0
    assert rows[warehouses["kitchen"].id]["gross_profit_percentage"] == 0.0
