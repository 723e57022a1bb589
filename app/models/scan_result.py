"""Scan result dataclasses — per-group results and the per-cycle aggregate."""

from dataclasses import dataclass, field
from datetime import datetime

from app.errors import ScanError
from app.strategy.models import Signal


@dataclass(frozen=True)
class ScanResult:
    """Signals and failures for one strategy on one timeframe."""

    strategy: str
    interval: str
    signals: tuple[Signal, ...]
    errors: tuple[ScanError, ...]
    symbol_count: int
    generated_at: datetime

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict:
        return {
            "signals": [s.to_dict() for s in self.signals],
            "error_count": self.error_count,
            "errors": [e.to_dict() for e in self.errors],
            "symbol_count": self.symbol_count,
            "generated_at": self.generated_at.isoformat(),
        }


@dataclass(frozen=True)
class AggregateResult:
    """Every ScanResult of one cycle under a single generation timestamp."""

    results: tuple[ScanResult, ...]
    generated_at: datetime
    symbol_count: int
    persisted: bool = field(default=False, compare=False)

    @property
    def signal_count(self) -> int:
        return sum(len(r.signals) for r in self.results)

    @property
    def error_count(self) -> int:
        return sum(r.error_count for r in self.results)

    def get(self, interval: str, strategy: str) -> ScanResult | None:
        for r in self.results:
            if r.interval == interval and r.strategy == strategy:
                return r
        return None

    def to_dict(self) -> dict:
        """Render the snapshot persisted for the dashboard."""
        timeframes: dict[str, dict] = {}
        for r in self.results:
            timeframes.setdefault(r.interval, {})[r.strategy] = r.to_dict()
        return {
            "status": "ok",
            "generated_at": self.generated_at.isoformat(),
            "symbol_count": self.symbol_count,
            "signal_count": self.signal_count,
            "error_count": self.error_count,
            "timeframes": timeframes,
        }
