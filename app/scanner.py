"""ScanOrchestrator — runs every scan group across the symbol universe.

Each ``ScanGroup`` (strategy × timeframe) fans out one task per symbol.
Tasks share a single semaphore so the number of in-flight market data
requests stays bounded across all groups.  A symbol's fetch failure or
short history is recorded as a ``ScanError`` and never aborts the group;
results are merged only after every task of the group has finished.
An unexpected exception fails the group only after its siblings settle.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Protocol

import httpx

from app.errors import ErrorKind, MarketDataError, ScanError
from app.market.models import Candle
from app.models.scan_config import ScanGroup, TuningConfig
from app.models.scan_result import ScanResult
from app.strategy.base import StrategySpec
from app.strategy.models import Signal
from app.strategy.registry import get_strategy

logger = logging.getLogger("wavescan.scanner")


class MarketDataProvider(Protocol):
    """Anything that can fetch an oldest-first candle series."""

    async def fetch_candles(
        self, symbol: str, interval: str, range: str
    ) -> list[Candle]:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _raise_first_failure(outcomes: list) -> list:
    """Re-raise the first exception once every task has settled.

    Expected per-symbol failures are already folded into ``ScanError``
    records, so anything left here is a programming error.
    """
    for outcome in outcomes:
        if isinstance(outcome, BaseException):
            raise outcome
    return outcomes


class ScanOrchestrator:
    """Fan-out / fan-in scanner for one or many scan groups.

    Args:
        provider: Market data provider (``YahooChartClient`` or a fake).
        symbols: Symbol universe, scanned in this order.
        groups: Scan groups to run each cycle.
        tuning: Detector parameters shared by every group.
        max_concurrency: Maximum in-flight fetches across all groups.
        fetch_timeout: Seconds before a fetch counts as a failure.
        clock: Returns "now"; injectable for deterministic cutoffs.
    """

    def __init__(
        self,
        provider: MarketDataProvider,
        symbols: list[str] | tuple[str, ...],
        groups: list[ScanGroup] | tuple[ScanGroup, ...],
        tuning: Optional[TuningConfig] = None,
        max_concurrency: int = 5,
        fetch_timeout: float = 20.0,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._provider = provider
        self._symbols = list(symbols)
        self._groups = list(groups)
        self._tuning = tuning or TuningConfig()
        self._fetch_timeout = fetch_timeout
        self._clock = clock
        self._semaphore = asyncio.Semaphore(max_concurrency)

        # Resolve strategies up front so a typo fails at startup.
        for group in self._groups:
            get_strategy(group.strategy)

    # ── Public API ───────────────────────────────────────────────────────

    @property
    def symbols(self) -> list[str]:
        return list(self._symbols)

    @property
    def groups(self) -> list[ScanGroup]:
        return list(self._groups)

    @property
    def tuning(self) -> TuningConfig:
        return self._tuning

    async def scan_all(self) -> list[ScanResult]:
        """Run every group concurrently and return results in group order."""
        now = self._clock()
        results = await asyncio.gather(
            *(self.scan_group(g, now=now) for g in self._groups),
            return_exceptions=True,
        )
        return _raise_first_failure(results)

    async def scan_group(
        self,
        group: ScanGroup,
        now: Optional[datetime] = None,
    ) -> ScanResult:
        """Scan the symbol universe for one strategy / timeframe.

        Signals are accumulated in symbol order; final ordering is left to
        the aggregator.
        """
        spec = get_strategy(group.strategy)
        now = now or self._clock()
        since = now - timedelta(days=group.days_back)

        outcomes = _raise_first_failure(
            await asyncio.gather(
                *(self._scan_symbol(spec, group, sym, since) for sym in self._symbols),
                return_exceptions=True,
            )
        )

        signals: list[Signal] = []
        errors: list[ScanError] = []
        for found, error in outcomes:
            signals.extend(found)
            if error is not None:
                errors.append(error)

        logger.info(
            "Group '%s': %d signal(s), %d error(s) across %d symbol(s)",
            group.name, len(signals), len(errors), len(self._symbols),
        )
        return ScanResult(
            strategy=group.strategy,
            interval=group.interval,
            signals=tuple(signals),
            errors=tuple(errors),
            symbol_count=len(self._symbols),
            generated_at=now,
        )

    # ── Per-symbol task ──────────────────────────────────────────────────

    async def _fetch(self, symbol: str, group: ScanGroup) -> list[Candle]:
        async with self._semaphore:
            return await asyncio.wait_for(
                self._provider.fetch_candles(symbol, group.interval, group.range),
                timeout=self._fetch_timeout,
            )

    async def _scan_symbol(
        self,
        spec: StrategySpec,
        group: ScanGroup,
        symbol: str,
        since: datetime,
    ) -> tuple[list[Signal], Optional[ScanError]]:
        """Fetch and evaluate one symbol; failures come back as a ``ScanError``."""
        try:
            candles = await self._fetch(symbol, group)
        except asyncio.TimeoutError:
            message = f"fetch timed out after {self._fetch_timeout:.0f}s"
            return [], self._record(symbol, group, ErrorKind.FETCH_FAILURE, message)
        except (MarketDataError, httpx.HTTPError) as exc:
            return [], self._record(symbol, group, ErrorKind.FETCH_FAILURE, str(exc))

        min_bars = spec.min_bars(self._tuning)
        if len(candles) < min_bars:
            message = f"{len(candles)} bar(s), need {min_bars}"
            return [], self._record(
                symbol, group, ErrorKind.INSUFFICIENT_HISTORY, message
            )

        signals = spec.detect(
            symbol, candles, self._tuning, interval=group.interval, since=since
        )
        return signals, None

    @staticmethod
    def _record(
        symbol: str, group: ScanGroup, kind: ErrorKind, message: str
    ) -> ScanError:
        logger.warning("Group '%s' — %s %s: %s", group.name, symbol, kind.value, message)
        return ScanError(symbol=symbol, kind=kind, message=message)
