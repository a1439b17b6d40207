from datetime import date, datetime, timedelta

import pytest

from models.stock import StockMovement
from utils.ledger import get_stock_row


def _adjust(client, headers, material, warehouse, quantity, when=None, **extra):
    body = {"material_id": material.id, "warehouse_id": warehouse.id, "quantity": quantity, **extra}
    if when is not None:
        body["date"] = when.isoformat()
    return client.post("/stock/adjust", json=body, headers=headers)


def _open_count(client, headers, warehouse, day=None):
    return client.post("/stock-counts", json={
        "warehouse_id": warehouse.id, "count_date": (day or date.today()).isoformat(),
    }, headers=headers)


def _item(count, material):
    return next(i for i in count["items"] if i["material_id"] == material.id)


def test_open_count_snapshots_ledger_stock(client, admin_headers, materials, warehouses):
    _adjust(client, admin_headers, materials["flour"], warehouses["store"], 10, unit_cost=5)

    res = _open_count(client, admin_headers, warehouses["store"])
    assert res.status_code == 200
    count = res.json()["data"]
    assert count["count_number"] == f"{date.today().isoformat()}-001"
    assert count["status"] == "PLANNING"
    assert count["warehouse_name"] == "Main Store"

    # flour has movements here, salt defaults to this warehouse, dough lives in the kitchen
    assert {i["material_id"] for i in count["items"]} == {materials["flour"].id, materials["salt"].id}
    flour = _item(count, materials["flour"])
    assert flour["system_stock"] == pytest.approx(10)
    assert flour["difference"] == pytest.approx(-10)

    second = _open_count(client, admin_headers, warehouses["store"]).json()["data"]
    assert second["count_number"].endswith("-002")


def test_cutoff_excludes_later_movements(client, admin_headers, materials, warehouses):
    now = datetime.now()
    _adjust(client, admin_headers, materials["flour"], warehouses["store"], 10, now - timedelta(days=3), unit_cost=5)
    _adjust(client, admin_headers, materials["flour"], warehouses["store"], 5, unit_cost=5)

    count = _open_count(client, admin_headers, warehouses["store"], date.today() - timedelta(days=1)).json()["data"]
    assert _item(count, materials["flour"])["system_stock"] == pytest.approx(10)


def test_future_count_date_rejected(client, admin_headers, warehouses):
    res = _open_count(client, admin_headers, warehouses["store"], date.today() + timedelta(days=1))
    assert res.status_code == 400


def test_count_and_approve_posts_adjustments(client, db, admin_headers, staff_headers, materials, warehouses):
    flour, salt, store = materials["flour"], materials["salt"], warehouses["store"]
    _adjust(client, admin_headers, flour, store, 10, unit_cost=5)
    count = _open_count(client, staff_headers, store).json()["data"]

    res = client.put(f"/stock-counts/{count['id']}/items/{_item(count, flour)['id']}",
                     json={"counted_stock": 8}, headers=staff_headers)
    count = res.json()["data"]
    assert count["status"] == "IN_PROGRESS"
    assert _item(count, flour)["difference"] == pytest.approx(-2)
    assert _item(count, flour)["is_completed"] is True

    count = client.put(f"/stock-counts/{count['id']}/items/{_item(count, salt)['id']}",
                       json={"counted_stock": 3, "reason": "found a sack"}, headers=staff_headers).json()["data"]
    assert count["completed_item_count"] == 2

    # approval needs the count submitted first
    assert client.post(f"/stock-counts/{count['id']}/approve", headers=admin_headers).status_code == 400
    client.patch(f"/stock-counts/{count['id']}/status", json={"status": "PENDING_APPROVAL"}, headers=staff_headers)
    assert client.post(f"/stock-counts/{count['id']}/approve", headers=staff_headers).status_code == 403

    res = client.post(f"/stock-counts/{count['id']}/approve", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["status"] == "COMPLETED"

    flour_row = get_stock_row(db, flour.id, store.id)
    salt_row = get_stock_row(db, salt.id, store.id)
    db.refresh(flour_row)
    db.refresh(salt_row)
    assert flour_row.current_stock == pytest.approx(8)
    assert flour_row.average_cost == pytest.approx(5)
    assert salt_row.current_stock == pytest.approx(3)

    movements = db.query(StockMovement).filter(StockMovement.stock_count_id == count["id"]).all()
    assert sorted(m.quantity for m in movements) == [-2, 3]
    assert {m.type for m in movements} == {"ADJUSTMENT"}
    assert {m.reason for m in movements} == {f"Stock count {count['count_number']}", "found a sack"}


def test_completed_count_is_frozen(client, admin_headers, materials, warehouses):
    count = _open_count(client, admin_headers, warehouses["store"]).json()["data"]
    client.patch(f"/stock-counts/{count['id']}/status", json={"status": "PENDING_APPROVAL"}, headers=admin_headers)
    client.post(f"/stock-counts/{count['id']}/approve", headers=admin_headers)

    item_id = count["items"][0]["id"]
    assert client.put(f"/stock-counts/{count['id']}/items/{item_id}", json={"counted_stock": 1},
                      headers=admin_headers).status_code == 400
    assert client.patch(f"/stock-counts/{count['id']}/status", json={"status": "PLANNING"},
                        headers=admin_headers).status_code == 400
    assert client.delete(f"/stock-counts/{count['id']}", headers=admin_headers).status_code == 400


def test_completed_only_through_approval(client, admin_headers, warehouses, materials):
    count = _open_count(client, admin_headers, warehouses["store"]).json()["data"]
    res = client.patch(f"/stock-counts/{count['id']}/status", json={"status": "COMPLETED"}, headers=admin_headers)
    assert res.status_code == 400


def test_add_material_by_hand(client, admin_headers, materials, warehouses):
    _adjust(client, admin_headers, materials["dough"], warehouses["store"], 2, unit_cost=3)
    count = _open_count(client, admin_headers, warehouses["store"]).json()["data"]
    # dough was moved here, so it is already listed
    assert any(i["material_id"] == materials["dough"].id for i in count["items"])
    assert client.post(f"/stock-counts/{count['id']}/items", json={"material_id": materials["dough"].id},
                       headers=admin_headers).status_code == 400

    kitchen_count = _open_count(client, admin_headers, warehouses["kitchen"]).json()["data"]
    res = client.post(f"/stock-counts/{kitchen_count['id']}/items", json={"material_id": materials["flour"].id},
                      headers=admin_headers)
    assert res.status_code == 200
    added = _item(res.json()["data"], materials["flour"])
    assert added["is_manually_added"] is True
    assert added["system_stock"] == pytest.approx(0)


def test_recalculate_picks_up_backdated_movements(client, admin_headers, materials, warehouses):
    flour, store = materials["flour"], warehouses["store"]
    yesterday = date.today() - timedelta(days=1)
    count = _open_count(client, admin_headers, store, yesterday).json()["data"]
    assert _item(count, flour)["system_stock"] == pytest.approx(0)

    _adjust(client, admin_headers, flour, store, 6, datetime.now() - timedelta(days=2), unit_cost=4)
    count = client.post(f"/stock-counts/{count['id']}/recalculate", headers=admin_headers).json()["data"]
    assert _item(count, flour)["system_stock"] == pytest.approx(6)
    assert _item(count, flour)["difference"] == pytest.approx(-6)


def test_delete_planning_count(client, admin_headers, warehouses, materials):
    count = _open_count(client, admin_headers, warehouses["store"]).json()["data"]
    assert client.delete(f"/stock-counts/{count['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/stock-counts/{count['id']}", headers=admin_headers).status_code == 404
