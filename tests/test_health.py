"""Health endpoint and startup tests."""

import pytest

from chatgate.auth import password


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["server"] == "ok"
    assert data["user_store"] == "ok"
    assert "version" in data


@pytest.mark.asyncio
async def test_startup_builds_the_dummy_hash(app, monkeypatch):
    monkeypatch.setattr(password, "_dummy_hash", None)
    async with app.router.lifespan_context(app):
        assert password._dummy_hash is not None
        assert password._dummy_hash.startswith("$2b$")
