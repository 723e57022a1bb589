"""Result aggregation — order, assemble, and persist one scan cycle.

The aggregator is the single fan-in point: it receives the independent
``ScanResult`` of every group, applies each strategy's ordering, stamps one
generation time, and writes the snapshot to the store in a single call.
"""

import dataclasses
import logging
from datetime import datetime, timezone
from typing import Optional

from app.errors import PersistenceError
from app.models.scan_result import AggregateResult, ScanResult
from app.repos.store import SignalStore
from app.strategy.registry import get_strategy

logger = logging.getLogger("wavescan")

SNAPSHOT_KEY = "signals_snapshot"


def initializing_snapshot() -> dict:
    """Payload served before the first scan has been persisted."""
    return {
        "status": "initializing",
        "generated_at": None,
        "symbol_count": 0,
        "signal_count": 0,
        "error_count": 0,
        "timeframes": {},
    }


def order_result(result: ScanResult) -> ScanResult:
    """Return *result* with signals in its strategy's display order.

    WaveTrend: newest first.  Breakout: confidence, then newest first.
    """
    spec = get_strategy(result.strategy)
    return dataclasses.replace(result, signals=tuple(spec.order(list(result.signals))))


def build_aggregate(
    results: list[ScanResult],
    symbol_count: int,
    generated_at: Optional[datetime] = None,
) -> AggregateResult:
    """Assemble the cycle's ``AggregateResult`` under one timestamp."""
    generated_at = generated_at or datetime.now(timezone.utc)
    return AggregateResult(
        results=tuple(order_result(r) for r in results),
        generated_at=generated_at,
        symbol_count=symbol_count,
    )


async def persist_aggregate(
    store: SignalStore,
    aggregate: AggregateResult,
    key: str = SNAPSHOT_KEY,
) -> AggregateResult:
    """Write *aggregate* to *store*; failures are logged, never raised.

    Returns the aggregate with ``persisted`` reflecting the outcome.
    """
    try:
        await store.set(key, aggregate.to_dict())
    except PersistenceError as exc:
        logger.warning("Snapshot write failed (result still returned): %s", exc)
        return dataclasses.replace(aggregate, persisted=False)

    logger.info(
        "Snapshot persisted: %d signal(s), %d error(s)",
        aggregate.signal_count, aggregate.error_count,
    )
    return dataclasses.replace(aggregate, persisted=True)


async def load_snapshot(store: SignalStore, key: str = SNAPSHOT_KEY) -> dict:
    """Read the latest snapshot, or the initializing payload if absent."""
    data = await store.get(key)
    if data is None:
        return initializing_snapshot()
    return {**data, "status": "ok"}
