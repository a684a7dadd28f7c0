import os

os.environ["JWT_SECRET"] = "test-secret"
os.environ["ADMIN_PASSWORD"] = "correct horse battery"
os.environ.pop("ADMIN_PASSWORD_HASH", None)
os.environ.pop("APP_ENV", None)

import mongomock
import pytest
from fastapi.testclient import TestClient

import auth
import database
import main
import ratelimit

ADMIN_PASSWORD = "correct horse battery"


@pytest.fixture(autouse=True)
def mongo(monkeypatch):
    db = mongomock.MongoClient()["portfolio_test"]
    monkeypatch.setattr(database, "db", db)
    database.ensure_indexes()
    return db


@pytest.fixture(autouse=True)
def reset_rate_limits():
    ratelimit.limiter.reset()
    yield
    ratelimit.limiter.reset()


@pytest.fixture
def client():
    return TestClient(main.app)


@pytest.fixture
def token():
    return auth.create_access_token()


@pytest.fixture
def admin_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def create(client, admin_headers):
    def _create(collection, **fields):
        resp = client.post(f"/api/{collection}", json=fields, headers=admin_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()
    return _create
