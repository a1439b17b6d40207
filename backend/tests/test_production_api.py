import pytest

from models.stock import MovementType, StockMovement
from utils.ledger import apply_movement, get_stock_row


@pytest.fixture
def stocked(db, materials, warehouses):
    apply_movement(db, material_id=materials["flour"].id, warehouse_id=warehouses["store"].id,
                   quantity=10, movement_type=MovementType.IN, unit_cost=2.0, reason="Opening stock")
    apply_movement(db, material_id=materials["salt"].id, warehouse_id=warehouses["store"].id,
                   quantity=1, movement_type=MovementType.IN, unit_cost=1.0, reason="Opening stock")
    db.commit()
    return materials


def _payload(materials, warehouses, flour_qty=4, produced=2):
    return {
        "produced_material_id": materials["dough"].id,
        "produced_quantity": produced,
        "production_warehouse_id": warehouses["kitchen"].id,
        "consumption_warehouse_id": warehouses["store"].id,
        "items": [
            {"material_id": materials["flour"].id, "quantity": flour_qty},
            {"material_id": materials["salt"].id, "quantity": 0.5},
        ],
    }


def _qty(db, material, warehouse):
    row = get_stock_row(db, material.id, warehouse.id)
    db.refresh(row)
    return row.current_stock


def test_create_costs_items_and_moves_stock(client, db, admin_headers, stocked, warehouses):
    res = client.post("/production/open", json=_payload(stocked, warehouses), headers=admin_headers)
    assert res.status_code == 200
    data = res.json()["data"]
    assert data["status"] == "PENDING"
    assert data["total_cost"] == pytest.approx(8.5)
    assert data["unit_cost"] == pytest.approx(4.25)

    assert _qty(db, stocked["flour"], warehouses["store"]) == pytest.approx(6)
    assert _qty(db, stocked["dough"], warehouses["kitchen"]) == pytest.approx(2)
    dough_stock = get_stock_row(db, stocked["dough"].id, warehouses["kitchen"].id)
    assert dough_stock.average_cost == pytest.approx(4.25)

    movements = db.query(StockMovement).filter(StockMovement.open_production_id == data["id"]).all()
    assert sorted(m.type for m in movements) == ["IN", "OUT", "OUT"]
    assert all(m.reason == f"Open production #{data['id']}" for m in movements)


def test_delete_pending_restores_stock(client, db, admin_headers, stocked, warehouses):
    created = client.post("/production/open", json=_payload(stocked, warehouses), headers=admin_headers).json()["data"]

    res = client.delete(f"/production/open/{created['id']}", headers=admin_headers)
    assert res.status_code == 200
    assert _qty(db, stocked["flour"], warehouses["store"]) == pytest.approx(10)
    assert _qty(db, stocked["dough"], warehouses["kitchen"]) == pytest.approx(0)
    assert db.query(StockMovement).filter(StockMovement.open_production_id == created["id"]).count() == 0


def test_edit_reverses_then_reapplies(client, db, admin_headers, stocked, warehouses):
    created = client.post("/production/open", json=_payload(stocked, warehouses), headers=admin_headers).json()["data"]

    res = client.put(f"/production/open/{created['id']}",
                     json=_payload(stocked, warehouses, flour_qty=6, produced=3), headers=admin_headers)
    assert res.status_code == 200
    assert _qty(db, stocked["flour"], warehouses["store"]) == pytest.approx(4)
    assert _qty(db, stocked["dough"], warehouses["kitchen"]) == pytest.approx(3)

    # A second edit only undoes what the first edit left in place
    client.put(f"/production/open/{created['id']}",
               json=_payload(stocked, warehouses, flour_qty=1, produced=1), headers=admin_headers)
    assert _qty(db, stocked["flour"], warehouses["store"]) == pytest.approx(9)
    assert _qty(db, stocked["dough"], warehouses["kitchen"]) == pytest.approx(1)


def test_only_pending_can_change(client, admin_headers, stocked, warehouses):
    created = client.post("/production/open", json=_payload(stocked, warehouses), headers=admin_headers).json()["data"]
    res = client.patch(f"/production/open/{created['id']}/status", json={"status": "APPROVED"}, headers=admin_headers)
    assert res.json()["data"]["status"] == "APPROVED"

    res = client.delete(f"/production/open/{created['id']}", headers=admin_headers)
    assert res.status_code == 400
    res = client.put(f"/production/open/{created['id']}", json=_payload(stocked, warehouses), headers=admin_headers)
    assert res.status_code == 400


def test_unknown_material_rejected(client, admin_headers, stocked, warehouses):
    payload = _payload(stocked, warehouses)
    payload["items"][0]["material_id"] = 9999
    res = client.post("/production/open", json=payload, headers=admin_headers)
    assert res.status_code == 400


def test_empty_items_rejected(client, admin_headers, stocked, warehouses):
    payload = _payload(stocked, warehouses)
    payload["items"] = []
    assert client.post("/production/open", json=payload, headers=admin_headers).status_code == 400
