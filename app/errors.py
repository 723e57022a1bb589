"""Error taxonomy — typed per-symbol failures and the exceptions behind them."""

from dataclasses import dataclass
from enum import Enum


class ErrorKind(str, Enum):
    """Category of a non-fatal failure recorded during a scan cycle."""

    FETCH_FAILURE = "fetch_failure"
    INSUFFICIENT_HISTORY = "insufficient_history"
    AUTH_FAILURE = "auth_failure"
    PERSISTENCE_FAILURE = "persistence_failure"


@dataclass(frozen=True)
class ScanError:
    """A failure isolated to one symbol (or to the persistence step)."""

    symbol: str
    kind: ErrorKind
    message: str

    def to_dict(self) -> dict:
        return {"symbol": self.symbol, "kind": self.kind.value, "message": self.message}


class MarketDataError(Exception):
    """Raised by the market data provider on HTTP or payload failures."""


class PersistenceError(Exception):
    """Raised by a signal store when a read or write cannot complete."""
