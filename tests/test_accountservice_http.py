import logging
from datetime import datetime, timezone

from fastapi.testclient import TestClient

from components.accountservice import AccountConfig, create_app

MOCK_AUTH = {"Authorization": "Bearer faketoken_user1"}
FIXED_NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def _client(**cfg):
    cfg.setdefault("bcrypt_rounds", 4)
    cfg.setdefault("jwt_secret", "test-access")
    cfg.setdefault("jwt_refresh_secret", "test-refresh")
    app = create_app(AccountConfig(**cfg), now=lambda: FIXED_NOW)
    return TestClient(app)


def _ts(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _signup_body(email="alice@example.com", password="secret123"):
    return {
        "email": email,
        "password": password,
        "name": "Alice",
        "dateOfBirth": "1990-10-18",
        "gender": "female",
        "address": "1 Main St",
        "subscribeToNewsletter": True,
    }


def test_health():
    c = _client()
    r = c.get("/")
    assert r.status_code == 200
    assert r.json()["message"]
    assert "timestamp" in r.json()
    assert r.headers["x-request-id"]


def test_request_id_is_echoed():
    c = _client()
    r = c.get("/", headers={"x-request-id": "req-123"})
    assert r.headers["x-request-id"] == "req-123"


def test_signup_login_refresh_flow():
    c = _client()
    r = c.post("/auth/signup", json=_signup_body())
    assert r.status_code == 201, r.text
    body = r.json()
    assert set(body) == {"user", "accessToken", "refreshToken"}
    user = body["user"]
    assert user["email"] == "alice@example.com"
    assert user["dateOfBirth"] == "1990-10-18"
    assert user["subscribeToNewsletter"] is True
    assert "password" not in user and "passwordHash" not in user

    r = c.post("/auth/login", json={"email": "alice@example.com", "password": "secret123"})
    assert r.status_code == 200
    login = r.json()
    assert login["user"]["id"] == user["id"]

    r = c.post("/auth/refresh-token", json={"refreshToken": login["refreshToken"]})
    assert r.status_code == 200
    refreshed = r.json()
    assert refreshed["accessToken"] != login["accessToken"]
    assert refreshed["refreshToken"] != login["refreshToken"]

    # the original refresh token is still accepted
    r = c.post("/auth/refresh-token", json={"refreshToken": login["refreshToken"]})
    assert r.status_code == 200


def test_signup_duplicate_is_conflict():
    c = _client()
    assert c.post("/auth/signup", json=_signup_body()).status_code == 201
    r = c.post("/auth/signup", json=_signup_body())
    assert r.status_code == 409
    assert r.json() == {
        "statusCode": 409,
        "message": "User with this email already exists",
        "error": "Conflict",
    }


def test_signup_validation_errors():
    c = _client()
    body = _signup_body(password="123")
    body["gender"] = "unknown"
    body["extra"] = "nope"
    r = c.post("/auth/signup", json=body)
    assert r.status_code == 422
    payload = r.json()
    assert payload["statusCode"] == 422
    assert payload["error"] == "Unprocessable Entity"
    assert isinstance(payload["message"], list)
    joined = " ".join(payload["message"])
    assert "password" in joined and "gender" in joined and "extra" in joined


def test_login_failure_messages_are_uniform():
    c = _client()
    c.post("/auth/signup", json=_signup_body())
    r1 = c.post("/auth/login", json={"email": "alice@example.com", "password": "wrong-pass"})
    r2 = c.post("/auth/login", json={"email": "ghost@example.com", "password": "secret123"})
    assert r1.status_code == r2.status_code == 401
    assert r1.json() == r2.json() == {
        "statusCode": 401,
        "message": "Invalid credentials",
        "error": "Unauthorized",
    }


def test_refresh_with_bad_token():
    c = _client()
    r = c.post("/auth/refresh-token", json={"refreshToken": "garbage"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid refresh token"


def test_change_password_requires_guard():
    c = _client()
    user = c.post("/auth/signup", json=_signup_body()).json()["user"]
    body = {"userId": user["id"], "currentPassword": "secret123", "newPassword": "brandnew1"}

    r = c.post("/auth/change-password", json=body)
    assert r.status_code == 401
    assert r.json()["message"] == "Missing or invalid authorization header"

    r = c.post("/auth/change-password", json=body, headers={"Authorization": "Bearer invalidtoken"})
    assert r.status_code == 401
    assert r.json()["message"] == "Invalid token"

    r = c.post("/auth/change-password", json=body, headers=MOCK_AUTH)
    assert r.status_code == 200
    assert r.json() == {"message": "Password changed successfully"}

    assert c.post("/auth/login", json={"email": "alice@example.com", "password": "secret123"}).status_code == 401
    assert c.post("/auth/login", json={"email": "alice@example.com", "password": "brandnew1"}).status_code == 200


def test_change_password_wrong_current_and_unknown_user():
    c = _client()
    user = c.post("/auth/signup", json=_signup_body()).json()["user"]
    r = c.post(
        "/auth/change-password",
        json={"userId": user["id"], "currentPassword": "nope-nope", "newPassword": "brandnew1"},
        headers=MOCK_AUTH,
    )
    assert r.status_code == 401
    assert r.json()["message"] == "Current password is incorrect"

    r = c.post(
        "/auth/change-password",
        json={"userId": "missing", "currentPassword": "secret123", "newPassword": "brandnew1"},
        headers=MOCK_AUTH,
    )
    assert r.status_code == 404
    assert r.json()["error"] == "Not Found"


def test_users_crud():
    c = _client()
    assert c.get("/users").status_code == 401

    r = c.post("/users", json=_signup_body(), headers=MOCK_AUTH)
    assert r.status_code == 201
    created = r.json()
    assert "accessToken" not in created
    uid = created["id"]

    r = c.get("/users", headers=MOCK_AUTH)
    assert [u["id"] for u in r.json()] == [uid]

    r = c.get(f"/users/{uid}", headers=MOCK_AUTH)
    assert r.status_code == 200
    assert r.json()["email"] == "alice@example.com"

    r = c.patch(f"/users/{uid}", json={"address": "2 Side St"}, headers=MOCK_AUTH)
    assert r.status_code == 200
    patched = r.json()
    assert patched["address"] == "2 Side St"
    assert patched["name"] == "Alice"
    assert _ts(patched["updatedAt"]) > _ts(created["updatedAt"])

    r = c.patch(f"/users/{uid}", json={"address": None}, headers=MOCK_AUTH)
    assert r.status_code == 422

    r = c.delete(f"/users/{uid}", headers=MOCK_AUTH)
    assert r.status_code == 204
    assert r.content == b""

    r = c.get(f"/users/{uid}", headers=MOCK_AUTH)
    assert r.status_code == 404
    assert r.json() == {"statusCode": 404, "message": "User not found", "error": "Not Found"}

    assert c.delete(f"/users/{uid}", headers=MOCK_AUTH).status_code == 404


def test_profile_with_mock_identity_has_no_record():
    c = _client()
    r = c.get("/users/profile", headers=MOCK_AUTH)
    assert r.status_code == 404


def test_empty_bearer_passes_guard():
    c = _client()
    r = c.get("/users", headers={"Authorization": "Bearer "})
    assert r.status_code == 200
    assert r.json() == []


def test_jwt_mode_profile_uses_token_identity():
    c = _client(guard_mode="jwt")
    body = c.post("/auth/signup", json=_signup_body()).json()

    r = c.get("/users/profile", headers={"Authorization": f"Bearer {body['accessToken']}"})
    assert r.status_code == 200, r.text
    profile = r.json()
    assert profile["id"] == body["user"]["id"]
    assert profile["age"] == 35  # born 1990-10-18, today 2026-10-17

    assert c.get("/users", headers=MOCK_AUTH).status_code == 401
    assert c.get("/users", headers={"Authorization": "Bearer "}).status_code == 401
    assert c.get("/users", headers={"Authorization": f"Bearer {body['refreshToken']}"}).status_code == 401


def test_signup_rejects_padded_email_so_login_stays_consistent():
    c = _client()
    r = c.post("/auth/signup", json=_signup_body(email="  bob@example.com "))
    assert r.status_code == 422
    assert any("email" in m for m in r.json()["message"])

    r = c.post("/auth/login", json={"email": "  bob@example.com ", "password": "secret123"})
    assert r.status_code == 401

    assert c.post("/auth/signup", json=_signup_body(email="bob@example.com")).status_code == 201
    r = c.post("/auth/login", json={"email": "bob@example.com", "password": "secret123"})
    assert r.status_code == 200


def test_update_rejects_blank_address():
    c = _client()
    uid = c.post("/users", json=_signup_body(), headers=MOCK_AUTH).json()["id"]

    for blank in ("", "   "):
        r = c.patch(f"/users/{uid}", json={"address": blank}, headers=MOCK_AUTH)
        assert r.status_code == 422
        assert any("address" in m for m in r.json()["message"])

    r = c.patch(f"/users/{uid}", json={"address": "  2 Side St "}, headers=MOCK_AUTH)
    assert r.status_code == 200
    assert r.json()["address"] == "2 Side St"


def test_request_log_carries_guard_identity(caplog):
    c = _client()
    caplog.set_level(logging.INFO, logger="accountservice.http")

    c.get("/users", headers=MOCK_AUTH)
    c.get("/")

    ends = [
        rec for rec in caplog.records
        if rec.name == "accountservice.http" and rec.getMessage().startswith("request.end")
    ]
    assert [rec.user_id for rec in ends] == ["user1", None]
    assert "path=/users" in ends[0].getMessage()
    assert ends[0].status == 200
