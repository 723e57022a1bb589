"""Signal store — key/value persistence for scan snapshots.

Three interchangeable backends satisfy ``SignalStore``:

* ``MemoryStore``  — process-local dict, for development and tests.
* ``KVRestStore``  — Redis-compatible KV REST API (bearer-token auth).
* ``SQLiteStore``  — single-file ``kv_store`` table.

``get`` returns ``None`` when the key is absent, which callers treat as
"not yet initialized" rather than an error.  Backend failures raise
``PersistenceError``.
"""

import asyncio
import json
import logging
import sqlite3
from typing import Any, Optional, Protocol, runtime_checkable

import httpx

from app.config import Config
from app.errors import PersistenceError
from app.repos.db import get_connection, init_db

logger = logging.getLogger("wavescan.store")


@runtime_checkable
class SignalStore(Protocol):
    """Best-effort key/value cache."""

    async def set(self, key: str, value: Any) -> None:
        ...

    async def get(self, key: str) -> Optional[Any]:
        ...


class MemoryStore:
    """In-memory store. Values are JSON round-tripped to mimic real backends."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    async def set(self, key: str, value: Any) -> None:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Value for '{key}' is not serializable: {exc}") from exc

    async def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None


class KVRestStore:
    """Client for a Redis-compatible KV REST API.

    Args:
        url: REST endpoint base, e.g. ``https://example.upstash.io``.
        token: Bearer token for the endpoint.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, url: str, token: str, timeout: float = 10.0) -> None:
        self._url = url.rstrip("/")
        self._headers = {"Authorization": f"Bearer {token}"}
        self._timeout = timeout

    async def set(self, key: str, value: Any) -> None:
        """Write *value* as a JSON string under *key*."""
        try:
            payload = json.dumps(value)
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    f"{self._url}/set/{key}",
                    headers=self._headers,
                    content=payload,
                    timeout=self._timeout,
                )
            resp.raise_for_status()
        except (httpx.HTTPError, TypeError, ValueError) as exc:
            raise PersistenceError(f"KV set '{key}' failed: {exc}") from exc

    async def get(self, key: str) -> Optional[Any]:
        """Read and JSON-decode *key*; ``None`` when the key is absent."""
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.get(
                    f"{self._url}/get/{key}",
                    headers=self._headers,
                    timeout=self._timeout,
                )
            resp.raise_for_status()
            result = resp.json().get("result")
        except (httpx.HTTPError, ValueError, AttributeError) as exc:
            raise PersistenceError(f"KV get '{key}' failed: {exc}") from exc

        if result is None:
            return None
        try:
            return json.loads(result)
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"KV value for '{key}' is not JSON") from exc


class SQLiteStore:
    """Data access layer over the ``kv_store`` table.

    Args:
        db_path: Path to the SQLite database file.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        init_db(db_path)

    def _write(self, key: str, payload: str) -> None:
        conn = get_connection(self._db_path)
        try:
            conn.execute(
                """
                INSERT INTO kv_store (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now')
                """,
                (key, payload),
            )
            conn.commit()
        finally:
            conn.close()

    def _read(self, key: str) -> Optional[str]:
        conn = get_connection(self._db_path)
        try:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None
        finally:
            conn.close()

    async def set(self, key: str, value: Any) -> None:
        try:
            await asyncio.to_thread(self._write, key, json.dumps(value))
        except (sqlite3.Error, OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"SQLite set '{key}' failed: {exc}") from exc

    async def get(self, key: str) -> Optional[Any]:
        try:
            raw = await asyncio.to_thread(self._read, key)
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceError(f"SQLite get '{key}' failed: {exc}") from exc
        return json.loads(raw) if raw is not None else None


def create_store(config: Config) -> SignalStore:
    """Instantiate the backend selected by ``config.store_backend``."""
    if config.store_backend == "kv":
        logger.info("Using KV REST store at %s", config.kv_rest_api_url)
        return KVRestStore(config.kv_rest_api_url, config.kv_rest_api_token)
    if config.store_backend == "sqlite":
        logger.info("Using SQLite store at %s", config.db_path)
        return SQLiteStore(config.db_path)
    logger.info("Using in-memory store")
    return MemoryStore()
