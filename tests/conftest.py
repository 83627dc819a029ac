"""
Shared fixtures.

Every test gets a fresh app on the in-memory store (no MongoDB needed) and an
httpx AsyncClient talking to it through ASGITransport.
"""

import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Keep the module-level app in main.py off any real database.
os.environ["DATABASE_URL"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

from config import Settings  # noqa: E402
from main import create_app  # noqa: E402


@pytest.fixture
def settings():
    return Settings(secret_key="test-secret", token_expire_minutes=60)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def stores(app):
    return app.state.stores


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def register(client):
    """Sign up and log in an account; returns its bearer headers."""

    async def _register(name="Ann", email="ann@example.com", password="pw", role=None):
        body = {"name": name, "email": email, "password": password}
        if role:
            body["role"] = role
        resp = await client.post("/api/signup", json=body)
        assert resp.status_code == 201, resp.text
        resp = await client.post("/api/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}

    return _register
