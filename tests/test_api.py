"""Tests for the internal API — scan trigger, signals snapshot, status."""

import asyncio
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from app.aggregator import SNAPSHOT_KEY, build_aggregate
from app.api.auth import is_authorized
from app.api.routers import configure_routers, reset_scan_status, update_scan_status
from app.errors import PersistenceError
from app.main import app
from app.repos.store import MemoryStore

client = TestClient(app)

_NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


# ── Helpers ──────────────────────────────────────────────────────────────


class FakeEngine:
    """Duck-typed engine whose run_once returns a canned aggregate."""

    def __init__(self, error: Exception | None = None) -> None:
        self.calls = 0
        self._error = error

    async def run_once(self):
        self.calls += 1
        if self._error is not None:
            raise self._error
        aggregate = build_aggregate([], symbol_count=3, generated_at=_NOW)
        return aggregate


class BrokenStore:
    async def set(self, key, value):
        raise PersistenceError("down")

    async def get(self, key):
        raise PersistenceError("down")


@pytest.fixture(autouse=True)
def _reset():
    reset_scan_status()
    yield
    configure_routers()
    reset_scan_status()


# ── /api/scan ────────────────────────────────────────────────────────────


class TestScanTrigger:
    def test_open_when_no_secret(self):
        engine = FakeEngine()
        configure_routers(engine=engine, store=MemoryStore())
        resp = client.get("/api/scan")
        assert resp.status_code == 200
        assert resp.json() == {
            "ok": True,
            "count": 0,
            "updated": _NOW.isoformat(),
            "errors": 0,
            "persisted": False,
        }
        assert engine.calls == 1

    def test_unauthorized_does_no_work(self):
        engine = FakeEngine()
        configure_routers(engine=engine, store=MemoryStore(), cron_secret="s3cret")
        resp = client.get("/api/scan")
        assert resp.status_code == 401
        assert resp.json() == {"error": "Unauthorized"}
        resp = client.get("/api/scan", headers={"Authorization": "Bearer wrong"})
        assert resp.status_code == 401
        assert engine.calls == 0

    def test_bearer_header(self):
        engine = FakeEngine()
        configure_routers(engine=engine, store=MemoryStore(), cron_secret="s3cret")
        resp = client.get("/api/scan", headers={"Authorization": "Bearer s3cret"})
        assert resp.status_code == 200
        assert engine.calls == 1

    def test_query_secret(self):
        engine = FakeEngine()
        configure_routers(engine=engine, store=MemoryStore(), cron_secret="s3cret")
        resp = client.get("/api/scan", params={"secret": "s3cret"})
        assert resp.status_code == 200

    def test_cycle_failure_is_500(self):
        configure_routers(engine=FakeEngine(RuntimeError("scan blew up")), store=MemoryStore())
        resp = client.get("/api/scan")
        assert resp.status_code == 500
        assert resp.json() == {"error": "scan blew up"}

    def test_no_engine(self):
        configure_routers(store=MemoryStore())
        assert client.get("/api/scan").status_code == 503


class TestIsAuthorized:
    def test_matrix(self):
        assert is_authorized("", None, None) is True
        assert is_authorized("x", "Bearer x", None) is True
        assert is_authorized("x", None, "x") is True
        assert is_authorized("x", "x", None) is False
        assert is_authorized("x", None, None) is False
        assert is_authorized("x", "Bearer y", "y") is False


# ── /api/signals ─────────────────────────────────────────────────────────


class TestSignalsEndpoint:
    def test_initializing_before_first_scan(self):
        configure_routers(store=MemoryStore())
        resp = client.get("/api/signals")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "initializing"
        assert data["generated_at"] is None
        assert data["timeframes"] == {}
        assert resp.headers["access-control-allow-origin"] == "*"
        assert resp.headers["cache-control"] == "no-store"

    def test_returns_persisted_snapshot(self):
        store = MemoryStore()
        asyncio.run(store.set(
            SNAPSHOT_KEY,
            build_aggregate([], symbol_count=42, generated_at=_NOW).to_dict(),
        ))
        configure_routers(store=store)
        resp = client.get("/api/signals")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["symbol_count"] == 42
        assert data["generated_at"] == _NOW.isoformat()

    def test_store_failure_is_500(self):
        configure_routers(store=BrokenStore())
        resp = client.get("/api/signals")
        assert resp.status_code == 500
        assert resp.headers["cache-control"] == "no-store"

    def test_no_store(self):
        configure_routers()
        assert client.get("/api/signals").status_code == 503


# ── /status, /health ─────────────────────────────────────────────────────


class TestStatusEndpoints:
    def test_health(self):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    def test_status_defaults(self):
        data = client.get("/status").json()
        assert data["running"] is False
        assert data["cycle_count"] == 0
        assert data["last_error"] is None

    def test_status_reflects_updates(self):
        update_scan_status(running=True, cycle_count=4, last_signal_count=7)
        data = client.get("/status").json()
        assert data["running"] is True
        assert data["cycle_count"] == 4
        assert data["last_signal_count"] == 7
