"""WaveTrend oscillator — crossover detection at overbought / oversold extremes.

The oscillator measures how far typical price has stretched from its own
EWMA, normalised by the smoothed absolute deviation:

    ap  = (high + low + close) / 3
    esa = EWMA(ap, n1)
    d   = EWMA(|ap - esa|, n1)
    ci  = (ap - esa) / (0.015 × d)
    wt1 = EWMA(ci, n2)
    wt2 = SMA(wt1, 4)

A **buy** fires when wt1 crosses above wt2 while wt1 is at or below the
oversold level; a **sell** fires when wt1 crosses below wt2 while wt1 is at
or above the overbought level.  RSI is attached for information only.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.market.models import Candle
from app.models.scan_config import TuningConfig
from app.strategy.indicators import EPSILON, ewma, rolling_average, rsi, sma
from app.strategy.models import Signal

STRATEGY_NAME = "wavetrend"


@dataclass(frozen=True)
class WaveTrendResult:
    """Oscillator lines plus the indices of qualifying crossovers."""

    wt1: list[float]
    wt2: list[Optional[float]]
    buys: list[int]
    sells: list[int]


def wavetrend_lines(
    highs: list[float],
    lows: list[float],
    closes: list[float],
    n1: int = 10,
    n2: int = 21,
) -> tuple[list[float], list[Optional[float]]]:
    """Compute the wt1 / wt2 oscillator lines."""
    ap = [(h + l + c) / 3 for h, l, c in zip(highs, lows, closes)]
    esa = ewma(ap, n1)
    d = ewma([abs(v - e) for v, e in zip(ap, esa)], n1)
    ci = [(v - e) / (0.015 * max(dev, EPSILON)) for v, e, dev in zip(ap, esa, d)]
    wt1 = ewma(ci, n2)
    wt2 = sma(wt1, 4)
    return wt1, wt2


def find_crossovers(
    wt1: list[float],
    wt2: list[Optional[float]],
    nsc: float = 53.0,
    nsv: float = -53.0,
) -> tuple[list[int], list[int]]:
    """Return ``(buys, sells)`` — indices of gated wt1/wt2 crossings.

    Index 0 is never eligible (the cross test needs a previous sample), and
    neither is any index where wt2 is undefined at ``i`` or ``i - 1``.
    """
    buys: list[int] = []
    sells: list[int] = []
    for i in range(1, len(wt1)):
        cur, prev = wt2[i], wt2[i - 1]
        if cur is None or prev is None:
            continue
        if wt1[i] > cur and wt1[i - 1] <= prev and wt1[i] <= nsv:
            buys.append(i)
        if wt1[i] < cur and wt1[i - 1] >= prev and wt1[i] >= nsc:
            sells.append(i)
    return buys, sells


def calculate_wavetrend(
    highs: list[float],
    lows: list[float],
    closes: list[float],
    n1: int = 10,
    n2: int = 21,
    nsc: float = 53.0,
    nsv: float = -53.0,
) -> WaveTrendResult:
    """Build the oscillator and detect gated crossovers in one pass."""
    wt1, wt2 = wavetrend_lines(highs, lows, closes, n1, n2)
    buys, sells = find_crossovers(wt1, wt2, nsc, nsv)
    return WaveTrendResult(wt1=wt1, wt2=wt2, buys=buys, sells=sells)


def detect_wavetrend_signals(
    symbol: str,
    candles: list[Candle],
    tuning: TuningConfig,
    interval: str = "",
    since: Optional[datetime] = None,
) -> list[Signal]:
    """Turn every qualifying crossover in *candles* into a ``Signal``.

    Args:
        symbol: Ticker the series belongs to.
        candles: Series ordered oldest-first.
        tuning: Detector parameters.
        interval: Timeframe label copied onto each signal.
        since: Drop signals whose bar is older than this instant.

    Returns:
        Signals in ascending index order, buys and sells interleaved.
    """
    if len(candles) < 2:
        return []

    highs = [c.high for c in candles]
    lows = [c.low for c in candles]
    closes = [c.close for c in candles]
    volumes = [float(c.volume) for c in candles]

    result = calculate_wavetrend(
        highs, lows, closes,
        tuning.wt_n1, tuning.wt_n2, tuning.wt_nsc, tuning.wt_nsv,
    )
    rsi_values = rsi(closes, tuning.rsi_period)
    volume_avg = rolling_average(volumes, tuning.volume_avg_period)

    recent = volumes[-tuning.volume_recent_bars:]
    recent_avg = sum(recent) / len(recent)
    high_volume = recent_avg >= tuning.volume_threshold

    hits = [(i, "buy") for i in result.buys] + [(i, "sell") for i in result.sells]
    hits.sort()

    signals: list[Signal] = []
    for i, kind in hits:
        candle = candles[i]
        if since is not None and candle.timestamp < since:
            continue
        value = rsi_values[i]
        if value is None:
            confirmed = False
        elif kind == "buy":
            confirmed = value < tuning.rsi_oversold
        else:
            confirmed = value > tuning.rsi_overbought
        signals.append(
            Signal(
                symbol=symbol,
                type=kind,
                strategy=STRATEGY_NAME,
                interval=interval,
                timestamp=candle.timestamp,
                price=candle.close,
                volume=candle.volume,
                average_volume=recent_avg,
                high_volume=high_volume,
                volume_confirmed=volumes[i] > volume_avg[i],
                rsi=value,
                rsi_confirmed=confirmed,
            )
        )
    return signals
