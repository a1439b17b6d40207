import pytest

PERIOD = {"start_date": "2025-02-01", "end_date": "2025-02-28"}


@pytest.fixture
def stocked(client, admin_headers, materials, warehouses):
    for material, warehouse, qty, when in [
        (materials["flour"], warehouses["store"], 10, "2025-02-03T08:00:00"),
        (materials["salt"], warehouses["store"], 4, "2025-02-04T08:00:00"),
        (materials["dough"], warehouses["kitchen"], 2, "2025-02-05T08:00:00"),
    ]:
        client.post("/stock/adjust", json={
            "material_id": material.id, "warehouse_id": warehouse.id, "quantity": qty,
            "unit_cost": 1.5, "date": when,
        }, headers=admin_headers)
    return materials


def test_stock_extract_json(client, staff_headers, stocked):
    res = client.get("/reports/stock-extract", params=PERIOD, headers=staff_headers)
    assert res.status_code == 200
    report = res.json()["data"]
    assert report["report_type"] == "quantity"
    assert report["summary"]["total_records"] == 3
    flour = [r for r in report["records"] if r["material_name"] == "Flour"][0]
    assert flour["adjustment_in"] == pytest.approx(10)
    assert flour["closing_stock"] == pytest.approx(10)
    assert flour["closing_stock_amount"] is None


def test_stock_extract_accepts_comma_separated_ids(client, staff_headers, stocked, warehouses):
    ids = f"{warehouses['store'].id},{warehouses['kitchen'].id}"
    res = client.get("/reports/stock-extract", params={**PERIOD, "warehouse_ids": ids}, headers=staff_headers)
    assert res.json()["data"]["summary"]["total_records"] == 3

    res = client.get("/reports/stock-extract",
                     params={**PERIOD, "warehouse_ids": str(warehouses["kitchen"].id), "report_type": "amount"},
                     headers=staff_headers)
    records = res.json()["data"]["records"]
    assert [r["material_name"] for r in records] == ["Dough"]
    assert records[0]["closing_stock_amount"] == pytest.approx(3)


def test_stock_extract_bad_ids(client, staff_headers, stocked):
    res = client.get("/reports/stock-extract", params={**PERIOD, "category_ids": "1,x"}, headers=staff_headers)
    assert res.status_code == 400
    assert res.json()["success"] is False


def test_reversed_period_rejected(client, admin_headers):
    params = {"start_date": "2025-03-01", "end_date": "2025-02-01"}
    assert client.get("/reports/stock-extract", params=params, headers=admin_headers).status_code == 400
    assert client.get("/reports/profit-loss", params=params, headers=admin_headers).status_code == 400


def test_stock_extract_pdf(client, staff_headers, stocked):
    res = client.get("/reports/stock-extract/pdf", params=PERIOD, headers=staff_headers)
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert "stock_extract_2025-02-01_2025-02-28.pdf" in res.headers["content-disposition"]
    assert res.content.startswith(b"%PDF")


def test_low_stock(client, db, staff_headers, stocked):
    stocked["flour"].min_stock_level = 5
    stocked["salt"].min_stock_level = 5
    db.commit()

    rows = client.get("/reports/low-stock", headers=staff_headers).json()["data"]
    names = [r["name"] for r in rows]
    assert "Salt" in names
    assert "Flour" not in names


def test_profit_loss_requires_manager(client, staff_headers, admin_headers):
    assert client.get("/reports/profit-loss", params=PERIOD, headers=staff_headers).status_code == 403

    res = client.get("/reports/profit-loss", params={**PERIOD, "report_type": "detailed"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["net_profit"]["amount"] == pytest.approx(0)
