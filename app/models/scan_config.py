"""Scan configuration dataclasses.

``TuningConfig`` carries every numeric knob of the detectors; ``ScanGroup``
describes one strategy × timeframe combination run in each cycle.
"""

from dataclasses import dataclass


DEFAULT_SYMBOLS: tuple[str, ...] = (
    # Mega-cap tech
    "AAPL", "MSFT", "NVDA", "META", "GOOGL", "AMZN", "TSLA", "AVGO",
    # Semiconductors
    "AMD", "QCOM", "INTC", "MU", "TXN", "ASML", "LRCX", "AMAT",
    # Software / cloud
    "CRM", "ADBE", "ORCL", "NOW", "SNOW", "DDOG", "CRWD", "ZS", "NET", "PANW",
    # Consumer / e-commerce
    "NFLX", "SHOP", "ABNB", "PYPL", "RBLX",
    # AI / speculative
    "PLTR", "AI", "ARM", "SMCI", "MSTR",
    # Fintech / crypto-adjacent
    "COIN", "HOOD", "SOFI",
    # Infrastructure
    "DELL", "HPQ", "CSCO",
)


@dataclass(frozen=True)
class TuningConfig:
    """Immutable detector parameters passed into every detector call."""

    # WaveTrend
    wt_n1: int = 10
    wt_n2: int = 21
    wt_nsc: float = 53.0  # overbought gate for sells
    wt_nsv: float = -53.0  # oversold gate for buys
    wt_min_bars: int = 30

    # RSI
    rsi_period: int = 14
    rsi_oversold: float = 30.0
    rsi_overbought: float = 70.0

    # Volume (WaveTrend signals)
    volume_threshold: float = 500_000
    volume_recent_bars: int = 5
    volume_avg_period: int = 10

    # Breakout
    breakout_min_bars: int = 60
    breakout_warmup: int = 200
    ema_fast: int = 20
    ema_mid: int = 50
    ema_slow: int = 200
    atr_period: int = 14
    channel_period: int = 20
    breakout_volume_period: int = 20
    breakout_volume_multiplier: float = 1.5
    breakout_rsi_buy: float = 60.0
    breakout_rsi_sell: float = 40.0
    confidence_step: int = 20
    min_confidence: int = 40
    take_profit_atr: float = 3.0
    stop_loss_atr: float = 1.5


@dataclass(frozen=True)
class ScanGroup:
    """One strategy evaluated on one timeframe across the symbol universe.

    ``range`` is passed through to the market data provider unchanged;
    ``days_back`` is the recency cutoff applied to emitted signals.
    """

    strategy: str  # strategy registry key, e.g. "wavetrend"
    interval: str  # provider interval, e.g. "1h"
    range: str  # provider range, e.g. "1mo"
    days_back: float = 2.0
    enabled: bool = True

    @property
    def name(self) -> str:
        """Stable identifier, e.g. ``"wavetrend:1h"``."""
        return f"{self.strategy}:{self.interval}"


DEFAULT_SCAN_GROUPS: tuple[ScanGroup, ...] = (
    ScanGroup(strategy="wavetrend", interval="15m", range="5d", days_back=1),
    ScanGroup(strategy="wavetrend", interval="1h", range="1mo", days_back=2),
    ScanGroup(strategy="wavetrend", interval="1d", range="1y", days_back=10),
    ScanGroup(strategy="breakout", interval="1d", range="2y", days_back=5),
)
