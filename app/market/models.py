"""Market data models — typed representation of provider candles."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Candle:
    """A single price/volume bar.

    Series are ordered oldest-first with unique timestamps; spacing is not
    assumed to be regular.
    """

    timestamp: datetime  # bar open time, UTC
    high: float
    low: float
    close: float
    volume: int
