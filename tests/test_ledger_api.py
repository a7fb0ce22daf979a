from conftest import add_expense, add_user, auth_headers


def test_register_creates_default_alert_settings_and_logs_in(client, store):
    response = client.post("/api/auth/register", json={"email": "ana@example.com", "password": "secret123"})
    assert response.status_code == 201
    user_id = response.json()["user_id"]

    settings = store.users[user_id]["alerts_settings"]
    assert settings["enabled"] is True
    assert settings["period_days"] == 30

    login = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["access_token"]

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["email"] == "ana@example.com"


def test_login_with_wrong_password(client):
    client.post("/api/auth/register", json={"email": "ana@example.com", "password": "secret123"})

    response = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "nope"})

    assert response.status_code == 401


def test_transaction_crud(client, store):
    add_user(store, "u1")
    headers = auth_headers("u1")

    created = client.post(
        "/api/transactions/",
        json={"amount": 42.5, "category_id": "food", "date": "2026-10-18T09:30:00Z", "title": "Lunch"},
        headers=headers,
    )
    assert created.status_code == 201
    transaction_id = created.json()["transaction_id"]
    assert created.json()["kind"] == "expense"

    updated = client.put(f"/api/transactions/{transaction_id}", json={"amount": 50}, headers=headers)
    assert updated.json()["amount"] == 50

    listed = client.get("/api/transactions/?kind=expense", headers=headers).json()
    assert [t["transaction_id"] for t in listed] == [transaction_id]

    assert client.get(f"/api/transactions/{transaction_id}", headers=auth_headers("u2")).status_code == 404
    assert client.delete(f"/api/transactions/{transaction_id}", headers=headers).status_code == 204
    assert client.get(f"/api/transactions/{transaction_id}", headers=headers).status_code == 404


def test_transaction_validation(client, store):
    add_user(store, "u1")
    headers = auth_headers("u1")

    assert client.post("/api/transactions/", json={"amount": -5}, headers=headers).status_code == 422
    assert client.post("/api/transactions/", json={"amount": 5, "date": "tomorrow"}, headers=headers).status_code == 400
    assert store.list_transactions("u1") == []


def test_transaction_update_rejects_nulls_before_saving(client, store):
    add_user(store, "u1")
    headers = auth_headers("u1")
    add_expense(store, "u1", 300, days_ago=2, transaction_id="t1")

    for body in ({"date": None}, {"amount": None}):
        assert client.put("/api/transactions/t1", json=body, headers=headers).status_code == 422

    stored = store.get_transaction("u1", "t1")
    assert stored["amount"] == 300
    assert stored["date"] is not None

    run = client.post("/api/alerts/run", json={"absolute_min": 50}, headers=headers).json()
    assert all(detector["status"] == "ok" for detector in run["detectors"].values())


def test_goal_update_rejects_nulls_before_saving(client, store):
    add_user(store, "u1")
    headers = auth_headers("u1")
    goal_id = client.post(
        "/api/goals/",
        json={"title": "Save", "start_date": "2026-10-20", "end_date": "2026-10-27"},
        headers=headers,
    ).json()["goal_id"]

    for body in ({"title": None}, {"status": None}, {"start_date": None}):
        assert client.put(f"/api/goals/{goal_id}", json=body, headers=headers).status_code == 422

    assert client.get("/api/goals/", headers=headers).json()[0]["title"] == "Save"


def test_goal_crud(client, store):
    add_user(store, "u1")
    headers = auth_headers("u1")

    created = client.post(
        "/api/goals/",
        json={"title": "Run a 10k", "start_date": "2026-10-20", "end_date": "2026-10-27"},
        headers=headers,
    )
    assert created.status_code == 201
    goal_id = created.json()["goal_id"]
    assert created.json()["status"] == "pending"

    updated = client.put(f"/api/goals/{goal_id}", json={"status": "done"}, headers=headers)
    assert updated.json()["status"] == "done"

    assert client.put(f"/api/goals/{goal_id}", json={"start_date": "soon"}, headers=headers).status_code == 400
    assert client.post("/api/goals/", json={"title": "x", "start_date": "bad", "end_date": "2026-10-27"}, headers=headers).status_code == 422
    assert client.delete(f"/api/goals/{goal_id}", headers=headers).status_code == 204
    assert client.get("/api/goals/", headers=headers).json() == []


def test_health(client):
    body = client.get("/api/health").json()

    assert body["status"] == "healthy"
    assert client.get("/api/status").json()["overall_status"] == "healthy"
