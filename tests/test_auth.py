from datetime import datetime, timedelta, timezone

import mongomock
import pytest
from jose import jwt
from pymongo.errors import OperationFailure

from config import get_settings
from security import hash_token
from tests.support import API, PASSWORD, token_from


def _register(client, **overrides):
    payload = {"name": "Ada Obi", "email": "ada@example.com", "password": PASSWORD}
    payload.update(overrides)
    return client.post(f"{API}/auth/register", json=payload)


def test_register_user_sends_verification_email(client, db, mailer):
    resp = _register(client, email="Ada@Example.com")
    assert resp.status_code == 201
    body = resp.json()
    assert "Ada Obi registered successfully" in body["message"]
    assert "seller_id" not in body["data"]

    stored = db["user"].find_one({"email": "ada@example.com"})
    assert stored["role"] == "user"
    assert stored["is_verified"] is False
    assert stored["password_hash"] != PASSWORD

    assert len(mailer.outbox) == 1
    email = mailer.outbox[0]
    assert email.to == "ada@example.com"
    assert email.subject == "TradeLink Email Verification"
    raw = token_from(email.body, "verify-email")
    assert "http://testserver/api/v1/auth/verify-email/" in email.body
    # Only the hash of the emailed token is stored
    assert stored["verification_token"] == hash_token(raw)
    assert stored["verification_token"] != raw


def test_register_seller_creates_store_profile(client, db):
    resp = _register(client, role="seller", store_name="Ada Fabrics", phone="0801")
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert resp.json()["message"].startswith("Ada Fabrics registered successfully")

    seller = db["seller"].find_one({"user_id": data["user_id"]})
    assert str(seller["_id"]) == data["seller_id"]
    assert seller["store_name"] == "Ada Fabrics"
    assert seller["description"] == "No description provided"
    assert seller["email"] == "ada@example.com"
    assert db["user"].find_one({"email": "ada@example.com"})["role"] == "seller"


def test_register_unknown_role_falls_back_to_user(client, db):
    assert _register(client, role="admin").status_code == 201
    assert db["user"].find_one({"email": "ada@example.com"})["role"] == "user"


def test_register_seller_requires_store_name(client, db):
    resp = _register(client, role="seller")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Store name is required for seller"
    assert db["user"].count_documents({}) == 0


def test_register_missing_fields(client):
    resp = client.post(f"{API}/auth/register", json={"email": "ada@example.com"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["message"].startswith("Invalid request")
    assert {e["field"] for e in body["errors"]} >= {"name", "password"}


def test_register_rejects_bad_email_and_short_password(client):
    assert _register(client, email="not-an-email").status_code == 400
    resp = _register(client, password="abc")
    assert resp.status_code == 400
    assert "at least 6 characters" in resp.json()["message"]


def test_register_duplicate_email(client):
    assert _register(client).status_code == 201
    resp = _register(client, email="ADA@example.com")
    assert resp.status_code == 400
    assert resp.json()["message"] == "User already exists"


def test_login_requires_verified_email(client):
    _register(client)
    resp = client.post(f"{API}/auth/login", json={"email": "ada@example.com", "password": PASSWORD})
    assert resp.status_code == 403
    assert resp.json()["message"] == "Please verify your email before logging in"


def test_verify_then_login(client, mailer):
    user_id = _register(client).json()["data"]["user_id"]
    token = token_from(mailer.outbox[-1].body, "verify-email")

    resp = client.get(f"{API}/auth/verify-email/{token}")
    assert resp.status_code == 200
    # Tokens are single use
    assert client.get(f"{API}/auth/verify-email/{token}").status_code == 400

    resp = client.post(f"{API}/auth/login", json={"email": "ADA@example.com", "password": PASSWORD})
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["user_id"] == user_id
    assert data["role"] == "user"
    assert data["name"] == "Ada Obi"
    assert "Authorization" in resp.cookies

    settings = get_settings()
    claims = jwt.decode(data["token"], settings.secret_key, algorithms=[settings.jwt_algorithm])
    assert claims["sub"] == user_id
    assert claims["role"] == "user"
    expires = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
    assert timedelta(hours=7) < expires - datetime.now(timezone.utc) <= timedelta(hours=8)


def test_login_returns_seller_id_for_sellers(client, mailer):
    data = _register(client, role="seller", store_name="Ada Fabrics").json()["data"]
    client.get(f"{API}/auth/verify-email/{token_from(mailer.outbox[-1].body, 'verify-email')}")
    resp = client.post(f"{API}/auth/login", json={"email": "ada@example.com", "password": PASSWORD})
    assert resp.json()["data"]["seller_id"] == data["seller_id"]


def test_login_rejects_bad_credentials(client, make_account):
    account = make_account()
    resp = client.post(f"{API}/auth/login", json={"email": account["email"], "password": "wrong-pass"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid email or password"
    resp = client.post(f"{API}/auth/login", json={"email": "ghost@example.com", "password": PASSWORD})
    assert resp.status_code == 400
    assert client.post(f"{API}/auth/login", json={"email": account["email"]}).status_code == 400


def test_verify_rejects_unknown_and_expired_tokens(client, db, mailer):
    assert client.get(f"{API}/auth/verify-email/deadbeef").status_code == 400

    _register(client)
    token = token_from(mailer.outbox[-1].body, "verify-email")
    db["user"].update_one(
        {"email": "ada@example.com"},
        {"$set": {"verification_expire": datetime.now(timezone.utc) - timedelta(minutes=1)}},
    )
    resp = client.get(f"{API}/auth/verify-email/{token}")
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid or expired verification token"


def test_resend_verification(client, mailer):
    assert client.post(f"{API}/auth/resend-verification", json={"email": "ghost@example.com"}).status_code == 404

    _register(client)
    old_token = token_from(mailer.outbox[-1].body, "verify-email")
    resp = client.post(f"{API}/auth/resend-verification", json={"email": "ada@example.com"})
    assert resp.status_code == 200
    assert len(mailer.outbox) == 2
    new_token = token_from(mailer.outbox[-1].body, "verify-email")
    assert new_token != old_token

    assert client.get(f"{API}/auth/verify-email/{old_token}").status_code == 400
    assert client.get(f"{API}/auth/verify-email/{new_token}").status_code == 200

    resp = client.post(f"{API}/auth/resend-verification", json={"email": "ada@example.com"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Email already verified"


def test_forgot_and_reset_password(client, db, mailer, make_account):
    account = make_account()
    assert client.post(f"{API}/auth/forgot-password", json={"email": ""}).status_code == 400
    assert client.post(f"{API}/auth/forgot-password", json={"email": "ghost@example.com"}).status_code == 404

    resp = client.post(f"{API}/auth/forgot-password", json={"email": account["email"]})
    assert resp.status_code == 200
    assert mailer.outbox[-1].subject == "TradeLink Password Reset"
    token = token_from(mailer.outbox[-1].body, "reset-password")
    stored = db["user"].find_one({"email": account["email"]})
    assert stored["reset_password_token"] == hash_token(token)

    resp = client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "N3wPassword"})
    assert resp.status_code == 200
    assert client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "Other123"}).status_code == 400

    old = client.post(f"{API}/auth/login", json={"email": account["email"], "password": PASSWORD})
    assert old.status_code == 400
    new = client.post(f"{API}/auth/login", json={"email": account["email"], "password": "N3wPassword"})
    assert new.status_code == 200


def test_reset_password_rejects_expired_token(client, db, mailer, make_account):
    account = make_account()
    client.post(f"{API}/auth/forgot-password", json={"email": account["email"]})
    token = token_from(mailer.outbox[-1].body, "reset-password")
    db["user"].update_one(
        {"email": account["email"]},
        {"$set": {"reset_password_expire": datetime.now(timezone.utc) - timedelta(seconds=1)}},
    )
    resp = client.post(f"{API}/auth/reset-password", json={"token": token, "new_password": "N3wPassword"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid or expired reset token"


def test_reset_password_requires_fields(client):
    assert client.post(f"{API}/auth/reset-password", json={"token": "abc"}).status_code == 400


def test_logout(client, user):
    assert client.post(f"{API}/auth/logout").status_code == 401
    resp = client.post(f"{API}/auth/logout", headers=user["headers"])
    assert resp.status_code == 200
    assert resp.json()["message"] == "Logout successful"


def test_register_rejects_blank_name(client, db):
    resp = _register(client, name="   ")
    assert resp.status_code == 400
    assert db["user"].count_documents({}) == 0


def test_register_invalid_store_leaves_no_account(client, db):
    resp = _register(client, role="seller", store_name="S" * 121)
    assert resp.status_code == 400
    assert db["user"].count_documents({}) == 0
    assert db["seller"].count_documents({}) == 0

    assert _register(client, role="seller", store_name="Ada Fabrics").status_code == 201


def test_register_removes_user_when_store_insert_fails(client, db, monkeypatch):
    real_insert = mongomock.collection.Collection.insert_one

    def insert_one(self, document, *args, **kwargs):
        if self.name == "seller":
            raise OperationFailure("write failed")
        return real_insert(self, document, *args, **kwargs)

    monkeypatch.setattr(mongomock.collection.Collection, "insert_one", insert_one)
    with pytest.raises(OperationFailure):
        _register(client, role="seller", store_name="Ada Fabrics")
    assert db["user"].count_documents({}) == 0
