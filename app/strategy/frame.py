"""Indicator frame assembly — every series-aligned indicator for one symbol."""

from app.market.models import Candle
from app.models.scan_config import TuningConfig
from app.strategy.indicators import (
    atr,
    ema,
    rolling_average,
    rolling_high,
    rolling_low,
    rsi,
)
from app.strategy.models import IndicatorFrame
from app.strategy.wavetrend import wavetrend_lines


def build_indicator_frame(candles: list[Candle], tuning: TuningConfig) -> IndicatorFrame:
    """Compute the indicator frame for *candles*.

    Every list in the returned frame has ``len(candles)`` entries.
    """
    highs = [c.high for c in candles]
    lows = [c.low for c in candles]
    closes = [c.close for c in candles]
    volumes = [float(c.volume) for c in candles]

    wt1, wt2 = wavetrend_lines(highs, lows, closes, tuning.wt_n1, tuning.wt_n2)

    return IndicatorFrame(
        wt1=wt1,
        wt2=wt2,
        rsi=rsi(closes, tuning.rsi_period),
        ema20=ema(closes, tuning.ema_fast),
        ema50=ema(closes, tuning.ema_mid),
        ema200=ema(closes, tuning.ema_slow),
        atr=atr(highs, lows, tuning.atr_period),
        high20=rolling_high(highs, tuning.channel_period),
        low20=rolling_low(lows, tuning.channel_period),
        volume_avg=rolling_average(volumes, tuning.breakout_volume_period),
    )
