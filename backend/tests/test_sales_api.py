import pytest

from models.stock import MovementType, StockMovement
from utils.ledger import apply_movement, get_stock_row


@pytest.fixture
def menu(client, db, admin_headers, materials, warehouses):
    apply_movement(db, material_id=materials["flour"].id, warehouse_id=warehouses["store"].id,
                   quantity=10, movement_type=MovementType.IN, unit_cost=2.0)
    db.commit()

    recipe = client.post("/recipes", json={
        "name": "Focaccia",
        "warehouse_id": warehouses["store"].id,
        "servings": 2,
        "ingredients": [{"material_id": materials["flour"].id, "quantity": 0.2}],
    }, headers=admin_headers).json()["data"]
    item = client.post("/sales-items", json={"name": "Focaccia", "price": 6.0}, headers=admin_headers).json()["data"]
    mapping = client.post("/recipe-mappings", json={
        "sales_item_id": item["id"], "recipe_id": recipe["id"],
    }, headers=admin_headers).json()["data"]
    return {"recipe": recipe, "item": item, "mapping": mapping}


def _flour(db, materials, warehouses):
    row = get_stock_row(db, materials["flour"].id, warehouses["store"].id)
    db.refresh(row)
    return row.current_stock


def test_recipe_costs_from_warehouse_average(menu):
    recipe = menu["recipe"]
    assert recipe["total_cost"] == pytest.approx(0.4)
    assert recipe["cost_per_serving"] == pytest.approx(0.2)


def test_duplicate_mapping_rejected(client, admin_headers, menu):
    res = client.post("/recipe-mappings", json={
        "sales_item_id": menu["item"]["id"], "recipe_id": menu["recipe"]["id"],
    }, headers=admin_headers)
    assert res.status_code == 400


def test_sale_prices_and_consumes_ingredients(client, db, staff_headers, menu, materials, warehouses):
    res = client.post("/sales", json={"sales_item_id": menu["item"]["id"], "quantity": 3}, headers=staff_headers)
    assert res.status_code == 200
    sale = res.json()["data"]
    assert sale["item_name"] == "Focaccia"
    assert sale["total_price"] == pytest.approx(18)
    assert sale["total_cost"] == pytest.approx(1.2)
    assert sale["gross_profit"] == pytest.approx(16.8)
    assert sale["profit_margin"] == pytest.approx(16.8 / 18 * 100)
    assert sale["stock_processed"] is True
    assert _flour(db, materials, warehouses) == pytest.approx(9.4)


def test_sale_without_processing_then_process_once(client, db, admin_headers, menu, materials, warehouses):
    sale = client.post("/sales", json={
        "sales_item_id": menu["item"]["id"], "quantity": 1, "process_stock": False,
    }, headers=admin_headers).json()["data"]
    assert sale["stock_processed"] is False
    assert _flour(db, materials, warehouses) == pytest.approx(10)

    res = client.post(f"/sales/{sale['id']}/process-stock", headers=admin_headers)
    assert res.status_code == 200
    assert _flour(db, materials, warehouses) == pytest.approx(9.8)

    again = client.post(f"/sales/{sale['id']}/process-stock", headers=admin_headers)
    assert again.status_code == 400


def test_unmapped_sale_has_zero_cost(client, admin_headers, menu):
    sale = client.post("/sales", json={"item_name": "Water", "quantity": 2, "unit_price": 0},
                       headers=admin_headers).json()["data"]
    assert sale["recipe_id"] is None
    assert sale["total_cost"] == 0
    assert sale["profit_margin"] == 0


def test_edit_and_delete_sale_keep_stock_in_step(client, db, admin_headers, menu, materials, warehouses):
    sale = client.post("/sales", json={"sales_item_id": menu["item"]["id"], "quantity": 2},
                       headers=admin_headers).json()["data"]
    assert _flour(db, materials, warehouses) == pytest.approx(9.6)

    client.put(f"/sales/{sale['id']}", json={"sales_item_id": menu["item"]["id"], "quantity": 5},
               headers=admin_headers)
    assert _flour(db, materials, warehouses) == pytest.approx(9.0)

    res = client.delete(f"/sales/{sale['id']}", headers=admin_headers)
    assert res.status_code == 200
    assert _flour(db, materials, warehouses) == pytest.approx(10)
    assert db.query(StockMovement).filter(StockMovement.sale_id == sale["id"]).count() == 0


def test_highest_priority_mapping_wins(client, admin_headers, menu, materials, warehouses):
    big = client.post("/recipes", json={
        "name": "Focaccia XL",
        "warehouse_id": warehouses["store"].id,
        "ingredients": [{"material_id": materials["flour"].id, "quantity": 0.5}],
    }, headers=admin_headers).json()["data"]
    client.post("/recipe-mappings", json={
        "sales_item_id": menu["item"]["id"], "recipe_id": big["id"], "priority": 5,
    }, headers=admin_headers)

    sale = client.post("/sales", json={"sales_item_id": menu["item"]["id"], "quantity": 1},
                       headers=admin_headers).json()["data"]
    assert sale["recipe_id"] == big["id"]
