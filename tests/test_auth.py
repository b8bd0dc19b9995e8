import auth
from conftest import make_user


def register(client, email="reader@example.com", password="secret123"):
    return client.post("/api/auth/register", json={"name": "Reader", "email": email, "password": password})


def test_register_login_me_logout(client):
    r = register(client)
    assert r.status_code == 201
    body = r.json()
    assert body["data"]["role"] == "customer"
    assert "password_hash" not in body["data"]

    r = client.post("/api/auth/login", json={"email": "READER@example.com", "password": "secret123"})
    assert r.status_code == 200
    headers = {"Authorization": f"Bearer {r.json()['token']}"}

    me = client.get("/api/auth/me", headers=headers)
    assert me.json()["data"]["email"] == "reader@example.com"

    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_register_duplicate_email(client):
    register(client)
    r = register(client)
    assert r.status_code == 400
    assert r.json() == {"success": False, "message": "User already exists"}


def test_register_validation(client):
    assert register(client, password="123").status_code == 400
    assert register(client, email="not-an-email").status_code == 400


def test_login_wrong_password(client):
    register(client)
    r = client.post("/api/auth/login", json={"email": "reader@example.com", "password": "wrong-pass"})
    assert r.status_code == 401
    assert r.json()["success"] is False


def test_inactive_user_is_rejected(client, db):
    _, headers = make_user(db, is_active=False)
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_missing_or_malformed_token(client):
    assert client.get("/api/auth/me").status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Token abc"}).status_code == 401
    assert client.get("/api/auth/me", headers={"Authorization": "Bearer unknown"}).status_code == 401


def test_bootstrap_admin_can_log_in(client):
    r = client.post("/api/auth/login", json={"email": auth.ADMIN_EMAIL, "password": auth.ADMIN_PASSWORD})
    assert r.status_code == 200
    assert r.json()["data"]["role"] == "admin"


def test_password_hashing():
    hashed = auth.hash_password("secret123")
    assert hashed != auth.hash_password("secret123")
    assert auth.verify_password("secret123", hashed)
    assert not auth.verify_password("secret124", hashed)
    assert not auth.verify_password("secret123", "garbage")
