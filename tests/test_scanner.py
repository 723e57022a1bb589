"""Tests for the scan orchestrator — fan-out, partial failure, cutoffs, concurrency."""

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from app.errors import ErrorKind, MarketDataError
from app.market.models import Candle
from app.models.scan_config import ScanGroup, TuningConfig
from app.scanner import ScanOrchestrator


# ── Helpers ──────────────────────────────────────────────────────────────

_NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def _ramp(n: int = 230, end: datetime = _NOW, step: timedelta = timedelta(days=1)) -> list[Candle]:
    """Rising daily series whose last bar lands on *end*."""
    start = end - step * (n - 1)
    return [
        Candle(
            timestamp=start + step * i,
            high=100.0 + i + 0.5,
            low=100.0 + i - 0.5,
            close=100.0 + i,
            volume=1000,
        )
        for i in range(n)
    ]


class FakeProvider:
    """Serves canned series; a value that is an exception is raised instead."""

    def __init__(self, series: dict, delay: float = 0.0, delays: dict | None = None) -> None:
        self._series = series
        self._delay = delay
        self._delays = delays or {}
        self.calls: list[tuple[str, str, str]] = []
        self.completed: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_candles(self, symbol: str, interval: str, range: str) -> list[Candle]:
        self.calls.append((symbol, interval, range))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self._delays.get(symbol, self._delay)
            if delay:
                await asyncio.sleep(delay)
            value = self._series[symbol]
            if isinstance(value, BaseException):
                raise value
            self.completed.append(symbol)
            return value
        finally:
            self.in_flight -= 1


_BREAKOUT_1D = ScanGroup(strategy="breakout", interval="1d", range="2y", days_back=400)
_WAVETREND_1H = ScanGroup(strategy="wavetrend", interval="1h", range="1mo", days_back=2)


def _orchestrator(provider, symbols, groups=(_BREAKOUT_1D,), **kwargs) -> ScanOrchestrator:
    return ScanOrchestrator(
        provider=provider,
        symbols=symbols,
        groups=list(groups),
        clock=lambda: _NOW,
        **kwargs,
    )


# ── Tests ────────────────────────────────────────────────────────────────


class TestScanGroup:
    @pytest.mark.asyncio
    async def test_collects_signals_per_symbol(self):
        provider = FakeProvider({"AAPL": _ramp(), "MSFT": _ramp()})
        result = await _orchestrator(provider, ["AAPL", "MSFT"]).scan_group(_BREAKOUT_1D)

        assert result.strategy == "breakout"
        assert result.interval == "1d"
        assert result.symbol_count == 2
        assert result.error_count == 0
        assert [s.symbol for s in result.signals] == ["AAPL", "MSFT"]
        assert ("AAPL", "1d", "2y") in provider.calls

    @pytest.mark.asyncio
    async def test_fetch_failure_is_isolated(self):
        healthy = {"AAPL": _ramp(), "MSFT": _ramp()}
        baseline = await _orchestrator(
            FakeProvider(healthy), ["AAPL", "MSFT"]
        ).scan_group(_BREAKOUT_1D)

        provider = FakeProvider({**healthy, "BAD": MarketDataError("BAD: HTTP 404")})
        result = await _orchestrator(
            provider, ["AAPL", "BAD", "MSFT"]
        ).scan_group(_BREAKOUT_1D)

        assert len(result.signals) == len(baseline.signals)
        assert result.error_count == 1
        error = result.errors[0]
        assert error.symbol == "BAD"
        assert error.kind is ErrorKind.FETCH_FAILURE
        assert "404" in error.message

    @pytest.mark.asyncio
    async def test_http_error_counts_as_fetch_failure(self):
        provider = FakeProvider({"NET": httpx.ConnectError("refused")})
        result = await _orchestrator(provider, ["NET"]).scan_group(_BREAKOUT_1D)
        assert result.errors[0].kind is ErrorKind.FETCH_FAILURE

    @pytest.mark.asyncio
    async def test_insufficient_history(self):
        provider = FakeProvider({"ARM": _ramp(40), "AAPL": _ramp()})
        result = await _orchestrator(provider, ["ARM", "AAPL"]).scan_group(_BREAKOUT_1D)

        assert result.error_count == 1
        assert result.errors[0].symbol == "ARM"
        assert result.errors[0].kind is ErrorKind.INSUFFICIENT_HISTORY
        assert "need 60" in result.errors[0].message
        assert [s.symbol for s in result.signals] == ["AAPL"]

    @pytest.mark.asyncio
    async def test_wavetrend_minimum_is_thirty_bars(self):
        short = _ramp(29, step=timedelta(hours=1))
        enough = _ramp(30, step=timedelta(hours=1))
        provider = FakeProvider({"A": short, "B": enough})
        result = await _orchestrator(
            provider, ["A", "B"], groups=[_WAVETREND_1H]
        ).scan_group(_WAVETREND_1H)
        assert [e.symbol for e in result.errors] == ["A"]

    @pytest.mark.asyncio
    async def test_empty_series_is_insufficient_history(self):
        provider = FakeProvider({"AI": []})
        result = await _orchestrator(provider, ["AI"]).scan_group(_BREAKOUT_1D)
        assert result.errors[0].kind is ErrorKind.INSUFFICIENT_HISTORY

    @pytest.mark.asyncio
    async def test_timeout_is_fetch_failure(self):
        provider = FakeProvider({"SLOW": _ramp()}, delay=0.5)
        result = await _orchestrator(
            provider, ["SLOW"], fetch_timeout=0.05
        ).scan_group(_BREAKOUT_1D)
        assert result.errors[0].kind is ErrorKind.FETCH_FAILURE
        assert "timed out" in result.errors[0].message

    @pytest.mark.asyncio
    async def test_recency_cutoff_after_dedup(self):
        """The ramp's first breakout is 29 days old; later ones never replace it."""
        provider = FakeProvider({"AAPL": _ramp()})
        recent = ScanGroup(strategy="breakout", interval="1d", range="2y", days_back=10)
        result = await _orchestrator(provider, ["AAPL"], groups=[recent]).scan_group(recent)
        assert result.signals == ()
        assert result.error_count == 0

    @pytest.mark.asyncio
    async def test_recency_window_covering_first_breakout(self):
        provider = FakeProvider({"AAPL": _ramp()})
        window = ScanGroup(strategy="breakout", interval="1d", range="2y", days_back=30)
        result = await _orchestrator(provider, ["AAPL"], groups=[window]).scan_group(window)

        (signal,) = result.signals
        assert signal.timestamp == _NOW - timedelta(days=29)

    @pytest.mark.asyncio
    async def test_unexpected_exception_propagates(self):
        provider = FakeProvider({"BUG": RuntimeError("programming error")})
        with pytest.raises(RuntimeError):
            await _orchestrator(provider, ["BUG"]).scan_group(_BREAKOUT_1D)

    @pytest.mark.asyncio
    async def test_unexpected_exception_waits_for_siblings(self):
        provider = FakeProvider(
            {"BUG": RuntimeError("programming error"), "A": _ramp(), "B": _ramp()},
            delays={"A": 0.05, "B": 0.05},
        )
        with pytest.raises(RuntimeError):
            await _orchestrator(provider, ["BUG", "A", "B"]).scan_group(_BREAKOUT_1D)
        assert provider.in_flight == 0
        assert sorted(provider.completed) == ["A", "B"]

    @pytest.mark.asyncio
    async def test_bounded_concurrency(self):
        symbols = [f"S{i}" for i in range(12)]
        provider = FakeProvider({s: _ramp() for s in symbols}, delay=0.01)
        await _orchestrator(provider, symbols, max_concurrency=3).scan_group(_BREAKOUT_1D)
        assert provider.max_in_flight <= 3
        assert len(provider.calls) == 12


class TestScanAll:
    @pytest.mark.asyncio
    async def test_runs_every_group_in_order(self):
        series = {"AAPL": _ramp(), "BAD": MarketDataError("boom")}
        provider = FakeProvider(series)
        results = await _orchestrator(
            provider, ["AAPL", "BAD"], groups=[_WAVETREND_1H, _BREAKOUT_1D]
        ).scan_all()

        assert [(r.strategy, r.interval) for r in results] == [
            ("wavetrend", "1h"),
            ("breakout", "1d"),
        ]
        assert all(r.error_count == 1 for r in results)
        assert all(r.generated_at == _NOW for r in results)

    def test_unknown_strategy_rejected_at_construction(self):
        with pytest.raises(KeyError, match="Unknown strategy"):
            _orchestrator(FakeProvider({}), ["AAPL"], groups=[
                ScanGroup(strategy="nope", interval="1d", range="1y"),
            ])

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            _orchestrator(FakeProvider({}), ["AAPL"], max_concurrency=0)

    def test_tuning_defaults(self):
        orch = _orchestrator(FakeProvider({}), ["AAPL"])
        assert orch.tuning == TuningConfig()
        assert orch.symbols == ["AAPL"]
