"""Strategy registry — maps strategy names to detector descriptors.

Used by the scan orchestrator to resolve ``ScanGroup.strategy``.
"""

from app.strategy.base import StrategySpec
from app.strategy.breakout import detect_breakout_signals, rank_breakouts
from app.strategy.models import Signal
from app.strategy.wavetrend import detect_wavetrend_signals


def _newest_first(signals: list[Signal]) -> list[Signal]:
    return sorted(signals, key=lambda s: s.timestamp, reverse=True)


STRATEGY_REGISTRY: dict[str, StrategySpec] = {
    "wavetrend": StrategySpec(
        name="wavetrend",
        detect=detect_wavetrend_signals,
        min_bars=lambda t: t.wt_min_bars,
        order=_newest_first,
    ),
    "breakout": StrategySpec(
        name="breakout",
        detect=detect_breakout_signals,
        min_bars=lambda t: t.breakout_min_bars,
        order=rank_breakouts,
    ),
}


def get_strategy(name: str) -> StrategySpec:
    """Look up a strategy by registry key.

    Raises ``KeyError`` if the strategy name is not registered.
    """
    if name not in STRATEGY_REGISTRY:
        raise KeyError(
            f"Unknown strategy '{name}'. "
            f"Available: {', '.join(STRATEGY_REGISTRY.keys())}"
        )
    return STRATEGY_REGISTRY[name]
