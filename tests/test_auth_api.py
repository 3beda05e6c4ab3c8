def test_register_returns_token_and_user(client, register):
    user, headers = register("Neha@Mail.com", name="Neha Patel")
    assert user["email"] == "neha@mail.com"
    assert user["role"] == "user"

    r = client.get("/api/auth/me", headers=headers)
    assert r.status_code == 200
    me = r.json()["user"]
    assert me["id"] == user["id"]
    assert "password_hash" not in me


def test_register_as_driver(register):
    user, _ = register("driver@mail.com", role="driver")
    assert user["role"] == "driver"


def test_public_registration_cannot_create_admin(client):
    r = client.post("/api/auth/register",
                    json={"name": "Mallory", "email": "m@mail.com", "password": "secret123", "role": "admin"})
    assert r.status_code == 400
    assert r.json()["errors"] == [{"field": "role", "message": "Invalid role specified"}]


def test_register_reports_all_problems(client):
    r = client.post("/api/auth/register", json={"name": "X", "email": "bad"})
    assert r.status_code == 400
    assert [e["field"] for e in r.json()["errors"]] == ["name", "email", "password"]


def test_duplicate_email(client, register):
    register("dup@mail.com")
    r = client.post("/api/auth/register",
                    json={"name": "Again", "email": "DUP@mail.com", "password": "secret123"})
    assert r.status_code == 400
    assert r.json()["kind"] == "DuplicateEmail"


def test_login(client, register):
    register("login@mail.com", password="pa55word")
    r = client.post("/api/auth/login", json={"email": "LOGIN@mail.com", "password": "pa55word"})
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["email"] == "login@mail.com"
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['token']}"}).json()["user"]
    assert me["last_login"] is not None


def test_login_failures_are_invalid_credential(client, register):
    register("login@mail.com", password="pa55word")
    for body in ({"email": "login@mail.com", "password": "wrong1"},
                 {"email": "ghost@mail.com", "password": "pa55word"},
                 {"email": "login@mail.com", "password": "pa55word", "role": "driver"}):
        r = client.post("/api/auth/login", json=body)
        assert r.status_code == 401, body
        assert r.json()["kind"] == "InvalidCredential"


def test_login_missing_fields(client):
    r = client.post("/api/auth/login", json={})
    assert r.status_code == 400
    assert r.json()["kind"] == "ValidationFailed"


def test_me_requires_token(client):
    r = client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.json()["kind"] == "NotAuthenticated"


def test_update_profile_ignores_role_and_email(client, register):
    user, headers = register("self@mail.com", name="Old Name")
    r = client.put("/api/auth/update-profile",
                   json={"name": "New Name", "phone": "9000000000"}, headers=headers)
    assert r.status_code == 200
    updated = r.json()["user"]
    assert updated["name"] == "New Name"
    assert updated["phone"] == "9000000000"
    assert updated["role"] == "user"
    assert updated["email"] == "self@mail.com"


def test_change_password(client, register):
    _, headers = register("pw@mail.com", password="first-pass")

    r = client.put("/api/auth/change-password",
                   json={"current_password": "nope", "new_password": "second-pass"}, headers=headers)
    assert r.status_code == 401
    assert r.json()["detail"] == "Current password is incorrect"

    r = client.put("/api/auth/change-password",
                   json={"current_password": "first-pass", "new_password": "123"}, headers=headers)
    assert r.status_code == 400

    r = client.put("/api/auth/change-password",
                   json={"current_password": "first-pass", "new_password": "second-pass"}, headers=headers)
    assert r.status_code == 200

    assert client.post("/api/auth/login",
                       json={"email": "pw@mail.com", "password": "first-pass"}).status_code == 401
    assert client.post("/api/auth/login",
                       json={"email": "pw@mail.com", "password": "second-pass"}).status_code == 200


def test_logout(client, register):
    _, headers = register("bye@mail.com")
    r = client.post("/api/auth/logout", headers=headers)
    assert r.status_code == 200
    assert client.post("/api/auth/logout").status_code == 401


def test_root_and_health(client):
    assert client.get("/").json()["endpoints"]["buses"] == "/api/buses"
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "running"
