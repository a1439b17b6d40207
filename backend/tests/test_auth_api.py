def test_first_user_is_admin_and_next_is_staff(client, admin_headers, staff_headers):
    me = client.get("/me", headers=admin_headers).json()["data"]
    assert me["role"] == "ADMIN"
    me = client.get("/me", headers=staff_headers).json()["data"]
    assert me["role"] == "STAFF"


def test_duplicate_registration_rejected(client, admin_headers):
    res = client.post("/register", json={
        "email": "OWNER@restaurant.io", "password": "secret123", "first_name": "A", "last_name": "B",
    })
    assert res.status_code == 400
    assert res.json() == {"success": False, "error": "Email already registered"}


def test_wrong_password_is_401(client, admin_headers):
    res = client.post("/login", json={"email": "owner@restaurant.io", "password": "nope-nope"})
    assert res.status_code == 401
    assert res.json()["success"] is False


def test_missing_token_is_401(client):
    res = client.get("/warehouses")
    assert res.status_code == 401
    assert res.json()["error"] == "Could not validate credentials"


def test_validation_errors_use_envelope(client):
    res = client.post("/register", json={"email": "not-an-email", "password": "x"})
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["error"]


def test_staff_cannot_manage_master_data(client, staff_headers):
    res = client.post("/warehouses", json={"name": "Bar"}, headers=staff_headers)
    assert res.status_code == 403


def test_admin_changes_role_and_actions_are_logged(client, admin_headers, staff_headers):
    users = client.get("/users", headers=admin_headers).json()
    staff = next(u for u in users["data"] if u["email"] == "cook@restaurant.io")
    res = client.put(f"/users/{staff['id']}/role", json={"role": "MANAGER"}, headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["data"]["role"] == "MANAGER"

    logs = client.get("/logs", params={"resource": "auth"}, headers=admin_headers).json()["data"]
    assert any(entry["action"] == "REGISTER" for entry in logs)
