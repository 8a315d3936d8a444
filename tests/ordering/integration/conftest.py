import jwt
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api import archive_router, order_router, register_ordering_exception_handlers

_SECRET = "integration-secret-for-order-api-tests"


@pytest.fixture(autouse=True)
def _jwt_secret(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", _SECRET)
    monkeypatch.setenv("JWT_ALGORITHM", "HS256")


@pytest.fixture()
def client():
    app = FastAPI()
    app.include_router(order_router)
    app.include_router(archive_router)
    register_ordering_exception_handlers(app)
    return TestClient(app)


def _headers(sub, role, token_type="access", secret=_SECRET):
    token = jwt.encode({"sub": sub, "role": role, "type": token_type}, secret, algorithm="HS256")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin():
    return _headers("admin-1", "admin")


@pytest.fixture()
def moderator():
    return _headers("mod-1", "moderator")


@pytest.fixture()
def customer():
    return _headers("cust-001", "user")


@pytest.fixture()
def auth_headers():
    return _headers
