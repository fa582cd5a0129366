"""Health endpoint tests."""

from contextlib import asynccontextmanager

import pytest


class _FakeConnection:
    async def execute(self, statement):
        return None


class _FakeEngine:
    def __init__(self, fail: bool = False):
        self.fail = fail

    @asynccontextmanager
    async def connect(self):
        if self.fail:
            raise ConnectionRefusedError("connection refused")
        yield _FakeConnection()


@pytest.mark.asyncio
async def test_health_returns_ok(client, monkeypatch):
    """Health endpoint should return server status and version."""
    monkeypatch.setattr("passgate.api.health.get_engine", lambda: _FakeEngine())
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["server"] == "ok"
    assert "version" in data
    assert data["postgres"] == "ok"
    assert data["redis"] == "disabled"
    assert data["status"] == "healthy"


@pytest.mark.asyncio
async def test_health_reports_database_down(client, monkeypatch):
    monkeypatch.setattr("passgate.api.health.get_engine", lambda: _FakeEngine(fail=True))
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["postgres"].startswith("error")
    assert data["status"] == "degraded"
