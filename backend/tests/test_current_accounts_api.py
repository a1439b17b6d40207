from datetime import datetime, timedelta

import pytest


@pytest.fixture
def account(client, admin_headers):
    res = client.post("/current-accounts", json={"name": "Dairy Farm", "opening_balance": 100},
                      headers=admin_headers)
    assert res.status_code == 200
    return res.json()["data"]


def _tx(client, headers, account_id, tx_type, amount, when=None):
    body = {"type": tx_type, "amount": amount}
    if when is not None:
        body["transaction_date"] = when.isoformat()
    return client.post(f"/current-accounts/{account_id}/transactions", json=body, headers=headers)


def test_create_assigns_code_and_opening_balance(client, admin_headers, account):
    assert account["code"] == "CAR001"
    assert account["current_balance"] == pytest.approx(100)

    second = client.post("/current-accounts", json={"name": "Butcher"}, headers=admin_headers).json()["data"]
    assert second["code"] == "CAR002"
    assert second["current_balance"] == pytest.approx(0)

    txs = client.get(f"/current-accounts/{account['id']}/transactions", headers=admin_headers).json()["data"]
    assert [(t["type"], t["description"]) for t in txs] == [("ADJUSTMENT", "Opening balance")]


def test_transaction_signs_follow_type(client, admin_headers, account):
    assert _tx(client, admin_headers, account["id"], "DEBT", 50).json()["data"]["amount"] == pytest.approx(50)
    credit = _tx(client, admin_headers, account["id"], "CREDIT", 30).json()["data"]
    assert credit["amount"] == pytest.approx(-30)
    assert credit["balance_before"] == pytest.approx(150)
    assert credit["balance_after"] == pytest.approx(120)

    data = client.get(f"/current-accounts/{account['id']}", headers=admin_headers).json()["data"]
    assert data["current_balance"] == pytest.approx(120)


def test_list_includes_aging(client, admin_headers, account):
    now = datetime.now()
    _tx(client, admin_headers, account["id"], "DEBT", 40, now - timedelta(days=45))
    _tx(client, admin_headers, account["id"], "DEBT", 70, now - timedelta(days=120))
    _tx(client, admin_headers, account["id"], "DEBT", 10)

    rows = client.get("/current-accounts", headers=admin_headers).json()["data"]
    aging = rows[0]["aging"]
    assert aging["current"] == pytest.approx(10)
    assert aging["days_30"] == pytest.approx(40)
    assert aging["days_60"] == pytest.approx(0)
    assert aging["days_90"] == pytest.approx(70)


def test_statement_totals(client, admin_headers, account):
    _tx(client, admin_headers, account["id"], "DEBT", 80)
    _tx(client, admin_headers, account["id"], "PAYMENT", 50)

    statement = client.get(f"/current-accounts/{account['id']}/statement", headers=admin_headers).json()["data"]
    assert statement["account"]["code"] == "CAR001"
    assert statement["closing_balance"] == pytest.approx(130)
    assert len(statement["transactions"]) == 3


def test_inactive_account_rejects_transactions(client, admin_headers, account):
    assert client.delete(f"/current-accounts/{account['id']}", headers=admin_headers).status_code == 200
    assert _tx(client, admin_headers, account["id"], "DEBT", 5).status_code == 400
    assert client.get(f"/current-accounts/{account['id']}", headers=admin_headers).json()["data"]["is_active"] is False


def test_payment_numbering_and_cancel(client, admin_headers, account):
    body = {"current_account_id": account["id"], "amount": 40, "payment_date": "2025-05-10T12:00:00"}
    first = client.post("/payments", json=body, headers=admin_headers).json()["data"]
    second = client.post("/payments", json=body, headers=admin_headers).json()["data"]
    assert first["payment_number"] == "PAY-2025-00001"
    assert second["payment_number"] == "PAY-2025-00002"

    balance = client.get(f"/current-accounts/{account['id']}", headers=admin_headers).json()["data"]["current_balance"]
    assert balance == pytest.approx(20)

    res = client.patch(f"/payments/{first['id']}/status", json={"status": "CANCELLED"}, headers=admin_headers)
    assert res.json()["data"]["status"] == "CANCELLED"
    balance = client.get(f"/current-accounts/{account['id']}", headers=admin_headers).json()["data"]["current_balance"]
    assert balance == pytest.approx(60)

    client.patch(f"/payments/{first['id']}/status", json={"status": "COMPLETED"}, headers=admin_headers)
    balance = client.get(f"/current-accounts/{account['id']}", headers=admin_headers).json()["data"]["current_balance"]
    assert balance == pytest.approx(20)


def test_pending_payment_does_not_post(client, admin_headers, account):
    client.post("/payments", json={"current_account_id": account["id"], "amount": 40, "status": "PENDING"},
                headers=admin_headers)
    balance = client.get(f"/current-accounts/{account['id']}", headers=admin_headers).json()["data"]["current_balance"]
    assert balance == pytest.approx(100)


def test_recalculate_repairs_snapshot(client, db, admin_headers, account):
    from models.current_account import CurrentAccount

    _tx(client, admin_headers, account["id"], "DEBT", 25)
    row = db.get(CurrentAccount, account["id"])
    row.current_balance = 999
    db.commit()

    res = client.post("/current-accounts/recalculate-balances", headers=admin_headers)
    assert res.json()["data"] == {"updated_accounts": 1, "transactions_processed": 2}
    db.refresh(row)
    assert row.current_balance == pytest.approx(125)


def test_staff_cannot_see_accounts(client, staff_headers, account):
    assert client.get("/current-accounts", headers=staff_headers).status_code == 403
