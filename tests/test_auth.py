def test_register_and_login(client):
    resp = client.post(
        "/auth/register",
        json={"username": "alice", "email": "alice@mailbox.org", "password": "secret123"},
    )
    assert resp.status_code == 201
    user = resp.json()["data"]
    assert user["username"] == "alice"
    assert "password_hash" not in user

    resp = client.post("/auth/login", json={"email": "alice@mailbox.org", "password": "secret123"})
    assert resp.status_code == 200
    assert resp.json()["data"]["id"] == user["id"]
    assert "password_hash" not in resp.json()["data"]


def test_login_rejects_wrong_password(client, make_user):
    make_user("bob")
    resp = client.post("/auth/login", json={"email": "bob@mailbox.org", "password": "wrong-one"})
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "message": "Invalid credentials", "data": None}


def test_register_rejects_duplicates(client, make_user):
    make_user("carol")
    resp = client.post(
        "/auth/register",
        json={"username": "carol", "email": "other@mailbox.org", "password": "secret123"},
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Username already in use"


def test_unknown_route_uses_envelope(client):
    resp = client.get("/nowhere")
    assert resp.status_code == 404
    assert resp.json()["success"] is False
