import pytest

from config import settings
from models.stock import MovementType, StockMovement
from utils.ledger import (
    StockError, apply_movement, get_stock_row, net_effect, purge_movements, reverse_movements, weighted_average,
)


def _receive(db, material, warehouse, qty, cost, **kw):
    return apply_movement(db, material_id=material.id, warehouse_id=warehouse.id, quantity=qty,
                          movement_type=MovementType.IN, unit_cost=cost, reason="test", **kw)


def test_weighted_average_basic():
    assert weighted_average(10, 5, 5, 8) == pytest.approx(6)


def test_weighted_average_ignores_negative_base():
    # -4 on hand carries no cost basis: the receipt sets the average alone
    assert weighted_average(-4, 3, 10, 7) == pytest.approx(7)


def test_weighted_average_keeps_previous_when_pool_empty():
    assert weighted_average(0, 4.5, 0, 10) == pytest.approx(4.5)


def test_receipts_reweight_and_issues_keep_average(db, materials, warehouses):
    flour, store = materials["flour"], warehouses["store"]

    _receive(db, flour, store, 10, 5)
    _receive(db, flour, store, 5, 8)
    stock = get_stock_row(db, flour.id, store.id)
    assert stock.current_stock == pytest.approx(15)
    assert stock.average_cost == pytest.approx(6)

    out = apply_movement(db, material_id=flour.id, warehouse_id=store.id, quantity=-3,
                         movement_type=MovementType.OUT, reason="test")
    assert out.unit_cost == pytest.approx(6)
    assert out.total_cost == pytest.approx(-18)
    assert out.stock_before == pytest.approx(15)
    assert out.stock_after == pytest.approx(12)

    db.refresh(flour)
    assert stock.current_stock == pytest.approx(12)
    assert stock.average_cost == pytest.approx(6)
    assert flour.current_stock == pytest.approx(12)
    assert flour.average_cost == pytest.approx(6)


def test_zero_quantity_rejected(db, materials, warehouses):
    with pytest.raises(StockError):
        apply_movement(db, material_id=materials["flour"].id, warehouse_id=warehouses["store"].id,
                       quantity=0, movement_type=MovementType.IN)


def test_negative_stock_allowed_by_default(db, materials, warehouses):
    movement = apply_movement(db, material_id=materials["salt"].id, warehouse_id=warehouses["store"].id,
                              quantity=-2, movement_type=MovementType.OUT)
    assert movement.stock_after == pytest.approx(-2)


def test_negative_stock_blocked_when_disabled(db, materials, warehouses, monkeypatch):
    monkeypatch.setattr(settings, "ALLOW_NEGATIVE_STOCK", False)
    with pytest.raises(StockError):
        apply_movement(db, material_id=materials["salt"].id, warehouse_id=warehouses["store"].id,
                       quantity=-2, movement_type=MovementType.OUT)


def test_material_total_spans_warehouses(db, materials, warehouses):
    flour = materials["flour"]
    _receive(db, flour, warehouses["store"], 10, 2)
    _receive(db, flour, warehouses["kitchen"], 4, 2)
    db.refresh(flour)
    assert flour.current_stock == pytest.approx(14)


def test_net_effect_groups_by_material_and_warehouse(db, materials, warehouses):
    flour, store = materials["flour"], warehouses["store"]
    rows = [_receive(db, flour, store, 10, 2), _receive(db, flour, store, 5, 4)]
    effect = net_effect(rows)
    assert effect[(flour.id, store.id)] == (pytest.approx(15), pytest.approx(40))


def test_reverse_twice_only_undoes_what_is_left(db, materials, warehouses):
    flour, store = materials["flour"], warehouses["store"]
    first = [_receive(db, flour, store, 10, 5)]
    reversal = reverse_movements(db, first, reason="undo")
    assert len(reversal) == 1
    assert reversal[0].quantity == pytest.approx(-10)
    assert reversal[0].type == MovementType.OUT.value

    # Original and reversal already net to zero
    again = reverse_movements(db, first + reversal, reason="undo again")
    assert again == []
    assert get_stock_row(db, flour.id, store.id).current_stock == pytest.approx(0)


def test_purge_restores_stock_and_deletes_rows(db, materials, warehouses):
    flour, store = materials["flour"], warehouses["store"]
    _receive(db, flour, store, 20, 1)
    issued = apply_movement(db, material_id=flour.id, warehouse_id=store.id, quantity=-8,
                            movement_type=MovementType.OUT)
    removed = purge_movements(db, [issued])

    assert removed == 1
    assert get_stock_row(db, flour.id, store.id).current_stock == pytest.approx(20)
    assert db.query(StockMovement).count() == 1
