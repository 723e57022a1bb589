"""Internal API routers — /api/scan, /api/signals, /status endpoints.

No detection logic. Delegates to the scan engine, the snapshot store,
and shared status state.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Header, Query
from fastapi.responses import JSONResponse

from app.aggregator import load_snapshot
from app.api.auth import is_authorized
from app.errors import PersistenceError

logger = logging.getLogger("wavescan")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_DEFAULT_SCAN_STATUS: dict = {
    "running": False,
    "cycle_count": 0,
    "last_cycle_at": None,
    "last_signal_count": 0,
    "last_error_count": 0,
    "last_persisted": None,
    "last_error": None,
}

_scan_status: dict = {**_DEFAULT_SCAN_STATUS}

_engine = None  # Set via configure_routers()
_store = None  # Set via configure_routers()
_cron_secret: str = ""  # Set via configure_routers()

_SIGNALS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Cache-Control": "no-store",
}


def configure_routers(
    engine=None,
    store=None,
    cron_secret: str = "",
) -> None:
    """Inject dependencies from the application startup.

    Args:
        engine: A ``ScanEngine`` instance (or duck-type for tests).
        store: A ``SignalStore`` the snapshot is read from.
        cron_secret: Shared trigger secret; empty leaves /api/scan open.
    """
    global _engine, _store, _cron_secret  # noqa: PLW0603
    _engine = engine
    _store = store
    _cron_secret = cron_secret


def update_scan_status(**fields) -> None:
    """Update individual fields of the scan status dict."""
    _scan_status.update(fields)


def reset_scan_status() -> None:
    """Restore the status dict to its defaults."""
    _scan_status.clear()
    _scan_status.update(_DEFAULT_SCAN_STATUS)


# ── Endpoints ────────────────────────────────────────────────────────────


@router.get("/api/scan")
async def trigger_scan(
    authorization: Optional[str] = Header(default=None),
    secret: Optional[str] = Query(default=None),
):
    """Run one scan cycle and persist the snapshot.

    Rejected with 401 before any work when a secret is configured and
    neither the bearer header nor the ``secret`` query parameter matches.
    """
    if not is_authorized(_cron_secret, authorization, secret):
        logger.warning("Rejected unauthorized scan trigger")
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})

    if _engine is None:
        return JSONResponse(status_code=503, content={"error": "Scanner not configured"})

    try:
        aggregate = await _engine.run_once()
    except Exception as exc:
        logger.error("Scan cycle failed: %s", exc, exc_info=True)
        update_scan_status(last_error=str(exc))
        return JSONResponse(status_code=500, content={"error": str(exc)})

    return {
        "ok": True,
        "count": aggregate.signal_count,
        "updated": aggregate.generated_at.isoformat(),
        "errors": aggregate.error_count,
        "persisted": aggregate.persisted,
    }


@router.get("/api/signals")
async def get_signals():
    """Return the latest persisted snapshot.

    ``status`` is ``"ok"`` for a stored snapshot and ``"initializing"``
    before the first scan has been written.
    """
    if _store is None:
        return JSONResponse(
            status_code=503,
            content={"error": "Store not configured"},
            headers=_SIGNALS_HEADERS,
        )
    try:
        snapshot = await load_snapshot(_store)
    except PersistenceError as exc:
        logger.error("Snapshot read failed: %s", exc)
        return JSONResponse(
            status_code=500, content={"error": str(exc)}, headers=_SIGNALS_HEADERS
        )
    return JSONResponse(content=snapshot, headers=_SIGNALS_HEADERS)


@router.get("/status")
async def get_status():
    """Return scan engine status for the dashboard."""
    return dict(_scan_status)
