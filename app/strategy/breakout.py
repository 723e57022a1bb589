"""Breakout detection — channel breaks confirmed by EMA alignment, volume and RSI.

Evaluated on long (daily-like) series.  For each bar past the EMA200 warm-up:

* **Buy** candidate: close breaks above the prior 20-bar high while
  EMA20 > EMA50 > EMA200.
* **Sell** candidate: close breaks below the prior 20-bar low while
  EMA20 < EMA50 < EMA200.

Candidates are scored additively (high volume, RSI confirmation, trend
alignment; 20 points each) and emitted only at or above the confidence
floor.  Trend alignment is also the entry gate, so it always contributes.
"""

from datetime import datetime
from typing import Optional

from app.market.models import Candle
from app.models.scan_config import TuningConfig
from app.strategy.frame import build_indicator_frame
from app.strategy.models import Signal, SignalType, TrendSnapshot

STRATEGY_NAME = "breakout"


def _score(
    kind: SignalType,
    high_volume: bool,
    rsi_value: Optional[float],
    aligned: bool,
    tuning: TuningConfig,
) -> int:
    score = 0
    if high_volume:
        score += tuning.confidence_step
    if rsi_value is not None:
        if kind == "buy" and rsi_value > tuning.breakout_rsi_buy:
            score += tuning.confidence_step
        elif kind == "sell" and rsi_value < tuning.breakout_rsi_sell:
            score += tuning.confidence_step
    if aligned:
        score += tuning.confidence_step
    return score


def scan_breakouts(
    symbol: str,
    candles: list[Candle],
    tuning: TuningConfig,
    interval: str = "",
) -> list[Signal]:
    """Return every qualifying breakout over the full history, oldest first.

    Series shorter than ``breakout_min_bars`` yield nothing; bars before
    ``breakout_warmup`` are never evaluated.
    """
    if len(candles) < tuning.breakout_min_bars:
        return []

    frame = build_indicator_frame(candles, tuning)
    signals: list[Signal] = []

    for i in range(max(tuning.breakout_warmup, 1), len(candles)):
        candle = candles[i]
        atr_value = frame.atr[i]
        if atr_value is None or atr_value <= 0:
            continue

        prev_high = frame.high20[i - 1]
        prev_low = frame.low20[i - 1]
        if prev_high is None or prev_low is None:
            continue

        e20, e50, e200 = frame.ema20[i], frame.ema50[i], frame.ema200[i]
        close = candle.close
        volume_avg = frame.volume_avg[i]
        high_volume = candle.volume > tuning.breakout_volume_multiplier * volume_avg

        if close > prev_high and e20 > e50 > e200:
            kind: SignalType = "buy"
            aligned = e20 > e50 > e200
        elif close < prev_low and e20 < e50 < e200:
            kind = "sell"
            aligned = e20 < e50 < e200
        else:
            continue

        rsi_value = frame.rsi[i]
        confidence = _score(kind, high_volume, rsi_value, aligned, tuning)
        if confidence < tuning.min_confidence:
            continue

        if kind == "buy":
            take_profit = close + tuning.take_profit_atr * atr_value
            stop_loss = close - tuning.stop_loss_atr * atr_value
            rsi_confirmed = rsi_value is not None and rsi_value > tuning.breakout_rsi_buy
        else:
            take_profit = close - tuning.take_profit_atr * atr_value
            stop_loss = close + tuning.stop_loss_atr * atr_value
            rsi_confirmed = rsi_value is not None and rsi_value < tuning.breakout_rsi_sell

        signals.append(
            Signal(
                symbol=symbol,
                type=kind,
                strategy=STRATEGY_NAME,
                interval=interval,
                timestamp=candle.timestamp,
                price=close,
                volume=candle.volume,
                average_volume=volume_avg,
                high_volume=high_volume,
                volume_confirmed=candle.volume > volume_avg,
                rsi=rsi_value,
                rsi_confirmed=rsi_confirmed,
                confidence=confidence,
                take_profit=take_profit,
                stop_loss=stop_loss,
                trend=TrendSnapshot(ema20=e20, ema50=e50, ema200=e200),
            )
        )

    return signals


def dedupe_breakouts(signals: list[Signal]) -> list[Signal]:
    """Keep the first signal seen per ``(symbol, type)``.

    *signals* must be in chronological order, so the survivor is the
    earliest qualifying breakout for that symbol and direction.
    """
    seen: set[tuple[str, str]] = set()
    kept: list[Signal] = []
    for s in signals:
        key = (s.symbol, s.type)
        if key in seen:
            continue
        seen.add(key)
        kept.append(s)
    return kept


def rank_breakouts(signals: list[Signal]) -> list[Signal]:
    """Order by descending confidence, then most recent first."""
    return sorted(
        signals,
        key=lambda s: (s.confidence or 0, s.timestamp),
        reverse=True,
    )


def detect_breakout_signals(
    symbol: str,
    candles: list[Candle],
    tuning: TuningConfig,
    interval: str = "",
    since: Optional[datetime] = None,
) -> list[Signal]:
    """Scan, deduplicate, and rank breakouts for one symbol.

    Deduplication runs over the whole series; a survivor older than *since*
    is then dropped rather than replaced by a later breakout.
    """
    kept = dedupe_breakouts(scan_breakouts(symbol, candles, tuning, interval=interval))
    if since is not None:
        kept = [s for s in kept if s.timestamp >= since]
    return rank_breakouts(kept)
