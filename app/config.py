"""WaveScan — application configuration.

Loads .env variables into a typed config object.
Validates backend-specific variables on startup.
"""

import json
import os
import pathlib
from dataclasses import dataclass

from dotenv import load_dotenv

from app.models.scan_config import DEFAULT_SCAN_GROUPS, DEFAULT_SYMBOLS, ScanGroup


_BACKEND_REQUIRED_VARS: dict[str, list[str]] = {
    "memory": [],
    "sqlite": [],
    "kv": ["KV_REST_API_URL", "KV_REST_API_TOKEN"],
}

_DEFAULT_MARKET_DATA_URL = "https://query1.finance.yahoo.com"


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    cron_secret: str  # empty = open invocation
    store_backend: str  # "memory", "kv" or "sqlite"
    kv_rest_api_url: str
    kv_rest_api_token: str
    db_path: str
    log_level: str
    port: int
    scan_interval_seconds: int
    max_concurrency: int
    fetch_timeout_seconds: float
    symbols: tuple[str, ...]
    market_data_url: str = _DEFAULT_MARKET_DATA_URL

    @property
    def auth_required(self) -> bool:
        """Return ``True`` when scan triggers must present the shared secret."""
        return bool(self.cron_secret)


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` naming the missing variable(s) when the selected
    store backend needs credentials that are absent, or when the backend
    name is unknown.
    """
    load_dotenv(dotenv_path=env_path)

    backend = os.environ.get("STORE_BACKEND", "memory").strip().lower()
    if backend not in _BACKEND_REQUIRED_VARS:
        raise ValueError(
            f"Unknown STORE_BACKEND '{backend}'. "
            f"Available: {', '.join(_BACKEND_REQUIRED_VARS)}"
        )

    missing = [v for v in _BACKEND_REQUIRED_VARS[backend] if not os.environ.get(v)]
    if missing:
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    raw_symbols = os.environ.get("SCAN_SYMBOLS", "")
    symbols = tuple(s.strip().upper() for s in raw_symbols.split(",") if s.strip())

    return Config(
        cron_secret=os.environ.get("CRON_SECRET", ""),
        store_backend=backend,
        kv_rest_api_url=os.environ.get("KV_REST_API_URL", "").rstrip("/"),
        kv_rest_api_token=os.environ.get("KV_REST_API_TOKEN", ""),
        db_path=os.environ.get("DB_PATH", "data/wavescan.db"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        port=int(os.environ.get("PORT", "8080")),
        scan_interval_seconds=int(os.environ.get("SCAN_INTERVAL_SECONDS", "300")),
        max_concurrency=int(os.environ.get("MAX_CONCURRENCY", "5")),
        fetch_timeout_seconds=float(os.environ.get("FETCH_TIMEOUT_SECONDS", "20")),
        symbols=symbols or DEFAULT_SYMBOLS,
        market_data_url=os.environ.get(
            "MARKET_DATA_URL", _DEFAULT_MARKET_DATA_URL
        ).rstrip("/"),
    )


def load_scan_groups(path: str | pathlib.Path | None = None) -> list[ScanGroup]:
    """Load scan groups from ``scan.json``.

    Falls back to the built-in groups when the file does not exist.  Each
    entry in the ``groups`` array maps directly onto ``ScanGroup`` fields;
    disabled groups are filtered out.

    Raises ``ValueError`` if the file exists but has no ``groups`` list.
    """
    if path is None:
        path = pathlib.Path(__file__).resolve().parent.parent / "scan.json"
    path = pathlib.Path(path)

    if not path.exists():
        return [g for g in DEFAULT_SCAN_GROUPS if g.enabled]

    data = json.loads(path.read_text(encoding="utf-8"))
    raw_groups = data.get("groups")
    if not isinstance(raw_groups, list):
        raise ValueError(f"{path} must contain a 'groups' list")

    groups = [ScanGroup(**entry) for entry in raw_groups]
    return [g for g in groups if g.enabled]
