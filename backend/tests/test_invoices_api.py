from types import SimpleNamespace

import pytest

from models.current_account import CurrentAccount
from models.stock import StockMovement
from routes.invoice import compute_line
from utils.ledger import get_stock_row


def test_compute_line_applies_discounts_in_sequence():
    line = compute_line(SimpleNamespace(quantity=10, unit_price=5, discount1_rate=10, discount2_rate=10, tax_rate=20))
    assert line["subtotal_amount"] == pytest.approx(50)
    assert line["discount1_amount"] == pytest.approx(5)
    assert line["discount2_amount"] == pytest.approx(4.5)
    assert line["total_discount_amount"] == pytest.approx(9.5)
    assert line["tax_amount"] == pytest.approx(8.1)
    assert line["total_amount"] == pytest.approx(48.6)


@pytest.fixture
def supplier(client, admin_headers):
    return client.post("/suppliers", json={"name": "Mill & Co", "create_current_account": True},
                       headers=admin_headers).json()["data"]


def _purchase(materials, warehouses, supplier, number="INV-001", qty=10, price=5):
    return {
        "invoice_number": number,
        "type": "PURCHASE",
        "supplier_id": supplier["id"],
        "date": "2025-04-02T10:00:00",
        "items": [{
            "material_id": materials["flour"].id, "warehouse_id": warehouses["store"].id,
            "quantity": qty, "unit_price": price, "discount1_rate": 10, "discount2_rate": 10, "tax_rate": 20,
        }],
    }


def _account(db, supplier):
    account = db.query(CurrentAccount).filter(CurrentAccount.supplier_id == supplier["id"]).one()
    db.refresh(account)
    return account


def test_purchase_books_stock_and_debt(client, db, admin_headers, materials, warehouses, supplier):
    res = client.post("/invoices", json=_purchase(materials, warehouses, supplier), headers=admin_headers)
    assert res.status_code == 200
    invoice = res.json()["data"]
    assert invoice["total_amount"] == pytest.approx(48.6)
    assert invoice["supplier_name"] == "Mill & Co"
    assert invoice["items"][0]["net_amount"] == pytest.approx(40.5)

    stock = get_stock_row(db, materials["flour"].id, warehouses["store"].id)
    assert stock.current_stock == pytest.approx(10)
    assert stock.average_cost == pytest.approx(4.05)
    db.refresh(materials["flour"])
    assert materials["flour"].last_purchase_price == pytest.approx(4.05)

    account = _account(db, supplier)
    assert account.code == "CAR001"
    assert account.current_balance == pytest.approx(48.6)


def test_duplicate_invoice_number_rejected(client, admin_headers, materials, warehouses, supplier):
    client.post("/invoices", json=_purchase(materials, warehouses, supplier), headers=admin_headers)
    res = client.post("/invoices", json=_purchase(materials, warehouses, supplier), headers=admin_headers)
    assert res.status_code == 400


def test_update_replaces_effects(client, db, admin_headers, materials, warehouses, supplier):
    invoice = client.post("/invoices", json=_purchase(materials, warehouses, supplier),
                          headers=admin_headers).json()["data"]
    res = client.put(f"/invoices/{invoice['id']}", json=_purchase(materials, warehouses, supplier, qty=4),
                     headers=admin_headers)
    assert res.status_code == 200

    stock = get_stock_row(db, materials["flour"].id, warehouses["store"].id)
    db.refresh(stock)
    assert stock.current_stock == pytest.approx(4)
    assert db.query(StockMovement).filter(StockMovement.invoice_id == invoice["id"]).count() == 1
    assert _account(db, supplier).current_balance == pytest.approx(res.json()["data"]["total_amount"])


def test_return_credits_the_account_and_issues_stock(client, db, admin_headers, materials, warehouses, supplier):
    client.post("/invoices", json=_purchase(materials, warehouses, supplier), headers=admin_headers)
    ret = _purchase(materials, warehouses, supplier, number="RET-001", qty=2)
    ret["type"] = "RETURN"
    res = client.post("/invoices", json=ret, headers=admin_headers)
    assert res.status_code == 200

    stock = get_stock_row(db, materials["flour"].id, warehouses["store"].id)
    db.refresh(stock)
    assert stock.current_stock == pytest.approx(8)
    assert _account(db, supplier).current_balance == pytest.approx(48.6 - res.json()["data"]["total_amount"])


def test_delete_invoice_undoes_everything(client, db, admin_headers, materials, warehouses, supplier):
    invoice = client.post("/invoices", json=_purchase(materials, warehouses, supplier),
                          headers=admin_headers).json()["data"]
    assert client.delete(f"/invoices/{invoice['id']}", headers=admin_headers).status_code == 200

    stock = get_stock_row(db, materials["flour"].id, warehouses["store"].id)
    db.refresh(stock)
    assert stock.current_stock == pytest.approx(0)
    assert _account(db, supplier).current_balance == pytest.approx(0)


def test_mark_paid_sets_payment_date(client, admin_headers, materials, warehouses, supplier):
    invoice = client.post("/invoices", json=_purchase(materials, warehouses, supplier),
                          headers=admin_headers).json()["data"]
    res = client.patch(f"/invoices/{invoice['id']}/status", json={"status": "PAID"}, headers=admin_headers)
    assert res.json()["data"]["status"] == "PAID"
    assert res.json()["data"]["payment_date"] is not None


def test_invoice_without_stock_movements(client, db, admin_headers, materials, warehouses, supplier):
    payload = _purchase(materials, warehouses, supplier)
    payload["create_stock_movements"] = False
    client.post("/invoices", json=payload, headers=admin_headers)
    assert db.query(StockMovement).count() == 0
