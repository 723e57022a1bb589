"""Detector protocol and per-strategy descriptor.

Defines the interface every signal detector must implement.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol, runtime_checkable

from app.market.models import Candle
from app.models.scan_config import TuningConfig
from app.strategy.models import Signal


@runtime_checkable
class DetectorProtocol(Protocol):
    """Callable that turns one symbol's candle series into signals."""

    def __call__(
        self,
        symbol: str,
        candles: list[Candle],
        tuning: TuningConfig,
        interval: str = "",
        since: Optional[datetime] = None,
    ) -> list[Signal]:
        ...


@dataclass(frozen=True)
class StrategySpec:
    """Bundles a detector with its history requirement and result ordering.

    The orchestrator only talks to ``StrategySpec`` so it doesn't need to
    know which indicators a strategy uses.
    """

    name: str
    detect: DetectorProtocol
    min_bars: Callable[[TuningConfig], int]
    order: Callable[[list[Signal]], list[Signal]]
