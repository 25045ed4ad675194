"""
Shared fixtures: an app wired to mongomock and the in-memory mailer and media store.
"""

from __future__ import annotations

import itertools

import mongomock
import pytest
from fastapi.testclient import TestClient

from database import ensure_indexes, get_db
from mailer import InMemoryMailer, get_mailer
from main import create_app
from media import InMemoryMediaStore, get_media_store
from tests.support import API, PASSWORD, token_from


@pytest.fixture
def db():
    database = mongomock.MongoClient(tz_aware=True)["tradelink_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def mailer():
    return InMemoryMailer()


@pytest.fixture
def media():
    return InMemoryMediaStore()


@pytest.fixture
def client(db, mailer, media):
    app = create_app()
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_media_store] = lambda: media
    return TestClient(app)


@pytest.fixture
def make_account(client, mailer):
    """Register, verify and log in an account; returns ids and auth headers."""
    counter = itertools.count(1)

    def _make(role: str = "user", verify: bool = True, **extra):
        n = next(counter)
        email = f"{role}{n}@example.com"
        payload = {"name": f"{role.title()} Number {n}", "email": email, "password": PASSWORD}
        if role == "seller":
            payload.update(role="seller", store_name=f"Store {n}")
        payload.update(extra)

        resp = client.post(f"{API}/auth/register", json=payload)
        assert resp.status_code == 201, resp.text
        account = {"email": email, **resp.json()["data"]}
        if not verify:
            return account

        token = token_from(mailer.outbox[-1].body, "verify-email")
        assert client.get(f"{API}/auth/verify-email/{token}").status_code == 200
        login = client.post(f"{API}/auth/login", json={"email": email, "password": PASSWORD})
        assert login.status_code == 200, login.text
        # Login sets an auth cookie; tests authenticate explicitly with headers
        client.cookies.clear()

        data = login.json()["data"]
        account.update(token=data["token"], headers={"Authorization": f"Bearer {data['token']}"})
        return account

    return _make


@pytest.fixture
def seller(make_account):
    return make_account("seller")


@pytest.fixture
def user(make_account):
    return make_account("user")
