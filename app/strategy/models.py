"""Strategy data models — typed representations for detector inputs and outputs."""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

SignalType = Literal["buy", "sell"]


@dataclass(frozen=True)
class IndicatorFrame:
    """Indicator values aligned index-for-index with a candle series.

    ``None`` marks indices where an indicator's lookback window has not
    filled yet.
    """

    wt1: list[float]
    wt2: list[Optional[float]]
    rsi: list[Optional[float]]
    ema20: list[float]
    ema50: list[float]
    ema200: list[float]
    atr: list[Optional[float]]
    high20: list[Optional[float]]
    low20: list[Optional[float]]
    volume_avg: list[float]

    def __len__(self) -> int:
        return len(self.wt1)


@dataclass(frozen=True)
class TrendSnapshot:
    """EMA values at the bar a breakout signal fired on."""

    ema20: float
    ema50: float
    ema200: float

    def to_dict(self) -> dict:
        return {
            "ema20": round(self.ema20, 2),
            "ema50": round(self.ema50, 2),
            "ema200": round(self.ema200, 2),
        }


@dataclass(frozen=True)
class Signal:
    """A trade signal produced by a detector."""

    symbol: str
    type: SignalType
    strategy: str  # "wavetrend" or "breakout"
    interval: str
    timestamp: datetime
    price: float
    volume: int
    average_volume: float
    high_volume: bool
    volume_confirmed: bool
    rsi: Optional[float] = None
    rsi_confirmed: bool = False
    confidence: Optional[int] = None
    take_profit: Optional[float] = None
    stop_loss: Optional[float] = None
    trend: Optional[TrendSnapshot] = None

    @property
    def timestamp_ms(self) -> int:
        return int(self.timestamp.timestamp() * 1000)

    def to_dict(self) -> dict:
        """Render the dashboard representation of this signal."""
        return {
            "symbol": self.symbol,
            "type": self.type,
            "strategy": self.strategy,
            "interval": self.interval,
            "date": self.timestamp.strftime("%Y-%m-%d %H:%M"),
            "timestamp": self.timestamp.isoformat(),
            "timestamp_ms": self.timestamp_ms,
            "price": round(self.price, 2),
            "volume": int(round(self.volume)),
            "average_volume": int(round(self.average_volume)),
            "high_volume": self.high_volume,
            "volume_confirmed": self.volume_confirmed,
            "rsi": round(self.rsi, 1) if self.rsi is not None else None,
            "rsi_confirmed": self.rsi_confirmed,
            "confidence": self.confidence,
            "take_profit": (
                round(self.take_profit, 2) if self.take_profit is not None else None
            ),
            "stop_loss": (
                round(self.stop_loss, 2) if self.stop_loss is not None else None
            ),
            "trend": self.trend.to_dict() if self.trend is not None else None,
        }
