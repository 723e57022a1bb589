"""Technical indicators — EWMA, SMA, RSI, EMA, ATR, rolling windows. Pure functions, no I/O.

Every function returns a list aligned index-for-index with its input.
Values that are not yet defined (lookback window still filling) are
``None`` rather than a fabricated number.
"""

from typing import Optional


EPSILON = 1e-10

Series = list[Optional[float]]


def ewma(series: list[float], span: int) -> list[float]:
    """Exponentially weighted moving average.

    Seeded with the first value, then
        ``r[i] = a × series[i] + (1 - a) × r[i-1]``
    where ``a = 2 / (span + 1)``.
    """
    if not series:
        return []
    alpha = 2.0 / (span + 1)
    result = [series[0]]
    for i in range(1, len(series)):
        result.append(alpha * series[i] + (1 - alpha) * result[i - 1])
    return result


def ema(series: list[float], span: int) -> list[float]:
    """Exponential moving average of raw closes.

    Same recurrence as :func:`ewma`; kept as its own entry point because the
    breakout detector seeds from the raw close rather than typical price.
    """
    return ewma(series, span)


def sma(series: Series, n: int) -> Series:
    """Simple moving average over a full trailing window of *n* values.

    ``None`` for indices ``< n - 1`` and for any window that contains an
    undefined value.
    """
    out: Series = [None] * len(series)
    for i in range(n - 1, len(series)):
        window = series[i - n + 1 : i + 1]
        if any(v is None for v in window):
            continue
        out[i] = sum(window) / n
    return out


# ── RSI ──────────────────────────────────────────────────────────────────


def rsi(closes: list[float], period: int = 14) -> Series:
    """Calculate Wilder's Relative Strength Index.

    Algorithm (Wilder-smoothed):
        1. delta = close[i] - close[i-1]
        2. Seed average gain/loss = sum of the first *period* gains/losses
           divided by *period*; the first RSI lands on index *period*.
        3. Subsequent: avg = (prev_avg × (period-1) + current) / period
        4. RSI = 100 - 100 / (1 + avg_gain / max(avg_loss, ε))

    Entries before index *period* are ``None``; a series shorter than
    ``period + 1`` yields all ``None``.
    """
    out: Series = [None] * len(closes)
    if len(closes) < period + 1:
        return out

    avg_gain = 0.0
    avg_loss = 0.0
    for i in range(1, period + 1):
        delta = closes[i] - closes[i - 1]
        if delta > 0:
            avg_gain += delta
        else:
            avg_loss -= delta
    avg_gain /= period
    avg_loss /= period
    out[period] = _rsi_from_avgs(avg_gain, avg_loss)

    for i in range(period + 1, len(closes)):
        delta = closes[i] - closes[i - 1]
        avg_gain = (avg_gain * (period - 1) + max(delta, 0.0)) / period
        avg_loss = (avg_loss * (period - 1) + max(-delta, 0.0)) / period
        out[i] = _rsi_from_avgs(avg_gain, avg_loss)

    return out


def _rsi_from_avgs(avg_gain: float, avg_loss: float) -> float:
    return 100.0 - 100.0 / (1.0 + avg_gain / max(avg_loss, EPSILON))


# ── Volatility ───────────────────────────────────────────────────────────


def atr(highs: list[float], lows: list[float], period: int = 14) -> Series:
    """Average True Range approximated from the bar range.

    True range is ``high - low`` per bar (no previous-close gap component).
    Each defined value is the simple mean of the trailing *period* ranges.
    """
    ranges = [h - l for h, l in zip(highs, lows)]
    return sma(ranges, period)


# ── Rolling windows ──────────────────────────────────────────────────────


def rolling_average(values: list[float], n: int) -> list[float]:
    """Trailing mean with the window clipped at the series start.

    Unlike :func:`sma`, partial windows are allowed, so every index has a
    value.
    """
    out: list[float] = []
    for i in range(len(values)):
        window = values[max(0, i - n + 1) : i + 1]
        out.append(sum(window) / len(window))
    return out


def rolling_high(values: list[float], n: int) -> Series:
    """Highest value of the trailing *n*-bar window, ``None`` until full."""
    out: Series = [None] * len(values)
    for i in range(n - 1, len(values)):
        out[i] = max(values[i - n + 1 : i + 1])
    return out


def rolling_low(values: list[float], n: int) -> Series:
    """Lowest value of the trailing *n*-bar window, ``None`` until full."""
    out: Series = [None] * len(values)
    for i in range(n - 1, len(values)):
        out[i] = min(values[i - n + 1 : i + 1])
    return out
