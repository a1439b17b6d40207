from datetime import datetime

import pytest

from models.stock import MovementType
from utils.ledger import apply_movement
from utils.stock_extract import build_stock_extract, classify_movement, close_row, empty_row, add_movement


@pytest.mark.parametrize("movement_type,invoice_id,quantity,expected", [
    ("IN", 7, 5, "purchase_in"),
    ("IN", None, 5, "production_in"),
    ("OUT", None, -5, "consumption_out"),
    ("OUT", 7, -5, "consumption_out"),
    ("TRANSFER", None, 3, "transfer_in"),
    ("TRANSFER", None, -3, "transfer_out"),
    ("ADJUSTMENT", None, 2, "adjustment_in"),
    ("ADJUSTMENT", None, -2, "adjustment_out"),
    ("WASTE", None, -1, "adjustment_out"),
    ("SOMETHING", None, 1, "adjustment_in"),
    ("IN", None, 0, None),
])
def test_classify_movement(movement_type, invoice_id, quantity, expected):
    assert classify_movement(movement_type, invoice_id, quantity) == expected


def test_close_row_balances_opening_and_buckets():
    row = empty_row()
    row["opening_stock"] = 10
    add_movement(row, "IN", 1, 5, 2.0)
    add_movement(row, "OUT", None, -3, 2.0)
    add_movement(row, "WASTE", None, -1, 2.0)
    close_row(row)

    assert row["total_in"] == 5
    assert row["total_out"] == 4
    assert row["closing_stock"] == 11
    assert row["consumption_out_amount"] == pytest.approx(6.0)
    assert row["return_out"] == 0


def _move(db, material, warehouse, qty, movement_type, when, cost=None, invoice_id=None):
    apply_movement(db, material_id=material.id, warehouse_id=warehouse.id, quantity=qty,
                   movement_type=movement_type, unit_cost=cost, date=when, invoice_id=invoice_id)


def test_extract_splits_opening_and_period(db, materials, warehouses):
    flour, store = materials["flour"], warehouses["store"]
    _move(db, flour, store, 10, MovementType.ADJUSTMENT, datetime(2025, 1, 5), cost=2.0)
    _move(db, flour, store, 6, MovementType.IN, datetime(2025, 2, 3), cost=2.0)
    _move(db, flour, store, -4, MovementType.OUT, datetime(2025, 2, 10))
    # After the period: ignored entirely
    _move(db, flour, store, -1, MovementType.OUT, datetime(2025, 3, 2))

    report = build_stock_extract(db, datetime(2025, 2, 1), datetime(2025, 2, 28, 23, 59, 59))
    assert report["summary"]["total_records"] == 1
    record = report["records"][0]
    assert record["opening_stock"] == pytest.approx(10)
    assert record["production_in"] == pytest.approx(6)
    assert record["consumption_out"] == pytest.approx(4)
    assert record["closing_stock"] == pytest.approx(12)
    assert record["category_name"] == "Flour & Grains"
    assert record["main_category_name"] == "Dry Goods"
    assert "opening_stock_amount" not in record


def test_extract_amount_mode_and_filters(db, materials, warehouses):
    flour, dough = materials["flour"], materials["dough"]
    _move(db, flour, warehouses["store"], 10, MovementType.ADJUSTMENT, datetime(2025, 2, 2), cost=3.0)
    _move(db, dough, warehouses["kitchen"], 4, MovementType.IN, datetime(2025, 2, 2), cost=1.5)

    report = build_stock_extract(
        db, datetime(2025, 2, 1), datetime(2025, 2, 28),
        warehouse_ids=[warehouses["store"].id], report_type="amount",
    )
    assert [r["material_name"] for r in report["records"]] == ["Flour"]
    assert report["records"][0]["adjustment_in_amount"] == pytest.approx(30)
    assert report["records"][0]["closing_stock_amount"] == pytest.approx(30)


def test_extract_category_filter_includes_sub_categories(db, materials, warehouses):
    main = materials["flour"].category.parent
    _move(db, materials["flour"], warehouses["store"], 2, MovementType.ADJUSTMENT, datetime(2025, 2, 2), cost=1)
    _move(db, materials["dough"], warehouses["kitchen"], 2, MovementType.ADJUSTMENT, datetime(2025, 2, 2), cost=1)

    report = build_stock_extract(db, datetime(2025, 2, 1), datetime(2025, 2, 28), category_ids=[main.id])
    assert {r["material_name"] for r in report["records"]} == {"Flour"}


def test_extract_drops_rows_without_activity(db, materials, warehouses):
    report = build_stock_extract(db, datetime(2025, 2, 1), datetime(2025, 2, 28))
    assert report["records"] == []
    assert report["summary"] == {"total_materials": 0, "total_warehouses": 0, "total_records": 0}
