"""WaveScan — scan cycle engine (orchestration loop).

Connects the orchestrator, aggregator, and store into a single polling loop.
Orchestrator scans → aggregator orders and stamps → store persists.
"""

import asyncio
import logging
from datetime import datetime, timezone

from app.aggregator import build_aggregate, persist_aggregate
from app.api.routers import update_scan_status
from app.models.scan_result import AggregateResult
from app.repos.store import SignalStore
from app.scanner import ScanOrchestrator

logger = logging.getLogger("wavescan.engine")


class ScanEngine:
    """Runs one scan cycle per call, or a periodic loop of them.

    Args:
        orchestrator: Configured ``ScanOrchestrator``.
        store: Snapshot store the finished aggregate is written to.
        poll_interval: Seconds between cycles in :meth:`run`.
    """

    def __init__(
        self,
        orchestrator: ScanOrchestrator,
        store: SignalStore,
        poll_interval: int = 300,
    ) -> None:
        self._orchestrator = orchestrator
        self._store = store
        self._poll_interval = poll_interval
        self._running: bool = False
        self._cycle_count: int = 0
        # One producer at a time: scheduler and manual triggers share it.
        self._cycle_lock = asyncio.Lock()

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def running(self) -> bool:
        return self._running

    def stop(self) -> None:
        """Signal the loop to stop after the current cycle."""
        self._running = False

    # ── Single cycle ─────────────────────────────────────────────────────

    async def run_once(self) -> AggregateResult:
        """Execute one full scan cycle and persist the snapshot.

        Per-symbol failures are folded into the result; persistence failures
        are logged.  Anything else propagates to the caller.
        """
        async with self._cycle_lock:
            started = datetime.now(timezone.utc)
            results = await self._orchestrator.scan_all()
            aggregate = build_aggregate(
                results, symbol_count=len(self._orchestrator.symbols)
            )
            aggregate = await persist_aggregate(self._store, aggregate)
            self._cycle_count += 1

            elapsed = (datetime.now(timezone.utc) - started).total_seconds()
            logger.info(
                "Cycle %d complete in %.1fs: %d signal(s), %d error(s), persisted=%s",
                self._cycle_count, elapsed, aggregate.signal_count,
                aggregate.error_count, aggregate.persisted,
            )
            update_scan_status(
                cycle_count=self._cycle_count,
                last_cycle_at=aggregate.generated_at.isoformat(),
                last_signal_count=aggregate.signal_count,
                last_error_count=aggregate.error_count,
                last_persisted=aggregate.persisted,
                last_error=None,
            )
            return aggregate

    # ── Polling loop ─────────────────────────────────────────────────────

    async def run(
        self,
        poll_interval: int | None = None,
        max_cycles: int = 0,
    ) -> list[AggregateResult]:
        """Run scan cycles until stopped, starting with one immediately.

        Args:
            poll_interval: Seconds between cycles. Defaults to the
                           constructor value.
            max_cycles: Stop after this many cycles (0 = unlimited).

        Returns:
            List of aggregates from the cycles that succeeded.
        """
        if poll_interval is None:
            poll_interval = self._poll_interval
        self._running = True
        update_scan_status(running=True)
        results: list[AggregateResult] = []
        cycle = 0

        while self._running:
            cycle += 1
            try:
                results.append(await self.run_once())
            except Exception as exc:
                logger.error("Cycle %d failed: %s", cycle, exc, exc_info=True)
                update_scan_status(last_error=str(exc))

            if max_cycles > 0 and cycle >= max_cycles:
                break

            # Interruptible sleep: checks _running every second
            for _ in range(poll_interval):
                if not self._running:
                    break
                await asyncio.sleep(1)

        self._running = False
        update_scan_status(running=False)
        return results
