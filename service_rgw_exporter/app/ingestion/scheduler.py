"""
Periodic refresh loop for the exporter.
"""

import asyncio
import random
from typing import Optional

from rgw_shared.errors import EnumerationError
from rgw_shared.logging import get_logger, set_pass_id
from rgw_shared.metrics import MetricsCollector
from .builder import SnapshotBuilder
from .models import Snapshot
from .registry import MetricRegistry


class RefreshScheduler:
    """Builds and publishes a Snapshot every ``interval_seconds``, forever.

    A failed pass leaves the registry untouched and is retried on the next
    tick. The loop runs as its own asyncio task and only talks to the
    scrape path through the registry.
    """

    def __init__(
        self,
        builder: SnapshotBuilder,
        registry: MetricRegistry,
        interval_seconds: float = 60.0,
        jitter_seconds: float = 0.0,
        metrics: Optional[MetricsCollector] = None
    ):
        self.builder = builder
        self.registry = registry
        self.interval_seconds = interval_seconds
        self.jitter_seconds = jitter_seconds
        self.metrics = metrics
        self.logger = get_logger("rgw_exporter.scheduler")

        self.refresh_task: Optional[asyncio.Task] = None
        self.running = False
        self.last_error: Optional[str] = None

    async def start(self):
        """Start the refresh loop."""
        self.running = True
        self.refresh_task = asyncio.create_task(self._refresh_loop())
        self.logger.info(
            "Refresh scheduler started",
            interval_seconds=self.interval_seconds,
            jitter_seconds=self.jitter_seconds
        )

    async def stop(self):
        """Stop the refresh loop."""
        self.running = False
        if self.refresh_task:
            self.refresh_task.cancel()
            try:
                await self.refresh_task
            except asyncio.CancelledError:
                pass
            self.refresh_task = None

        self.logger.info("Refresh scheduler stopped")

    async def run_once(self) -> Optional[Snapshot]:
        """Run one pass and publish it. Returns the published Snapshot, or None on failure."""
        set_pass_id()
        return await self._run_pass()

    async def _run_pass(self) -> Optional[Snapshot]:
        try:
            if self.metrics:
                with self.metrics.time_operation("refresh_duration_seconds"):
                    snapshot = await self.builder.build()
            else:
                snapshot = await self.builder.build()
        except EnumerationError as e:
            self._record_failure(e.message)
            self.logger.error(
                "Refresh pass aborted, keeping previous snapshot",
                resource=e.resource,
                error=e.cause.code,
                message=e.cause.message
            )
            return None
        except Exception as e:
            self._record_failure(str(e))
            self.logger.error("Refresh pass failed unexpectedly", error=str(e), exc_info=True)
            return None

        if not self.registry.publish(snapshot):
            self._record_failure("stale snapshot")
            return None

        self.last_error = None
        if self.metrics:
            self.metrics.record_refresh("success")
        return snapshot

    def _record_failure(self, message: str):
        self.last_error = message
        if self.metrics:
            self.metrics.record_refresh("failed")

    def _next_delay(self) -> float:
        if self.jitter_seconds <= 0:
            return self.interval_seconds
        return self.interval_seconds + random.uniform(0, self.jitter_seconds)

    async def _refresh_loop(self):
        """Refresh, sleep, repeat."""
        while self.running:
            await self.run_once()
            await asyncio.sleep(self._next_delay())
