import pytest


@pytest.fixture
def expense_items(client, admin_headers):
    main = client.post("/expense-categories", json={"name": "Fixed Expenses"}, headers=admin_headers).json()["data"]
    sub = client.post("/expense-sub-categories", json={"main_category_id": main["id"], "name": "Rent"},
                      headers=admin_headers).json()["data"]
    rent = client.post("/expense-items", json={"sub_category_id": sub["id"], "name": "Restaurant Rent",
                                               "is_recurring": True}, headers=admin_headers).json()["data"]
    insurance = client.post("/expense-items", json={"sub_category_id": sub["id"], "name": "Insurance"},
                            headers=admin_headers).json()["data"]
    return {"rent": rent, "insurance": insurance}


def _batch(expense_items, amounts=(1200, 80)):
    keys = ["rent", "insurance"]
    return {
        "name": "April fixed costs",
        "period_year": 2025,
        "period_month": 4,
        "items": [
            {"expense_item_id": expense_items[k]["id"], "description": k, "amount": a}
            for k, a in zip(keys, amounts)
        ],
    }


def test_hierarchy_is_nested(client, admin_headers, expense_items):
    res = client.get("/expense-categories", headers=admin_headers)
    tree = res.json()["data"]
    assert tree[0]["name"] == "Fixed Expenses"
    assert {i["name"] for i in tree[0]["sub_categories"][0]["items"]} == {"Restaurant Rent", "Insurance"}


def test_duplicate_main_category(client, admin_headers, expense_items):
    res = client.post("/expense-categories", json={"name": "Fixed Expenses"}, headers=admin_headers)
    assert res.status_code == 400


def test_expense_crud_and_filter(client, admin_headers, expense_items):
    res = client.post("/expenses", json={
        "expense_item_id": expense_items["rent"]["id"], "description": "April rent",
        "amount": 1200, "date": "2025-04-01T09:00:00",
    }, headers=admin_headers)
    assert res.status_code == 200
    expense = res.json()["data"]
    assert expense["payment_status"] == "PENDING"

    res = client.put(f"/expenses/{expense['id']}", json={"payment_status": "PAID"}, headers=admin_headers)
    assert res.json()["data"]["payment_status"] == "PAID"

    listed = client.get("/expenses", params={"payment_status": "PAID"}, headers=admin_headers).json()
    assert [e["id"] for e in listed["data"]] == [expense["id"]]

    assert client.delete(f"/expenses/{expense['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/expenses/{expense['id']}", headers=admin_headers).status_code == 404


def test_expense_with_unknown_item(client, admin_headers, expense_items):
    res = client.post("/expenses", json={
        "expense_item_id": 999, "description": "x", "amount": 5, "date": "2025-04-01T09:00:00",
    }, headers=admin_headers)
    assert res.status_code == 400


def test_batch_numbering_and_total(client, admin_headers, expense_items):
    first = client.post("/expense-batches", json=_batch(expense_items), headers=admin_headers).json()["data"]
    second = client.post("/expense-batches", json=_batch(expense_items, (10, 20)), headers=admin_headers).json()["data"]

    assert first["batch_number"] == "EB-2025-04-001"
    assert second["batch_number"] == "EB-2025-04-002"
    assert first["status"] == "DRAFT"
    assert first["total_amount"] == pytest.approx(1280)
    assert len(first["items"]) == 2


def test_batch_update_recomputes_total(client, admin_headers, expense_items):
    batch = client.post("/expense-batches", json=_batch(expense_items), headers=admin_headers).json()["data"]
    res = client.put(f"/expense-batches/{batch['id']}", json=_batch(expense_items, (1000, 50)),
                     headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["total_amount"] == pytest.approx(1050)
    assert len(res.json()["data"]["items"]) == 2


def test_only_draft_batches_change(client, admin_headers, expense_items):
    batch = client.post("/expense-batches", json=_batch(expense_items), headers=admin_headers).json()["data"]
    res = client.patch(f"/expense-batches/{batch['id']}/status", json={"status": "APPROVED"}, headers=admin_headers)
    assert res.json()["data"]["status"] == "APPROVED"

    assert client.put(f"/expense-batches/{batch['id']}", json=_batch(expense_items),
                      headers=admin_headers).status_code == 400
    assert client.delete(f"/expense-batches/{batch['id']}", headers=admin_headers).status_code == 400

    client.patch(f"/expense-batches/{batch['id']}/status", json={"status": "DRAFT"}, headers=admin_headers)
    assert client.delete(f"/expense-batches/{batch['id']}", headers=admin_headers).status_code == 200


def test_staff_cannot_record_expenses(client, staff_headers, expense_items):
    res = client.post("/expense-batches", json=_batch(expense_items), headers=staff_headers)
    assert res.status_code == 403
