"""
Snapshot assembly for the exporter.
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar

from rgw_shared.errors import EntityFetchError, EnumerationError, UpstreamError
from rgw_shared.logging import get_logger
from rgw_shared.metrics import MetricsCollector
from ..admin.fetchers import EntityFetchers
from .models import SkippedEntity, Snapshot

RecordT = TypeVar("RecordT")


class SnapshotBuilder:
    """Runs one full refresh pass and returns an immutable Snapshot.

    A pass enumerates users and buckets, then fetches bucket stats per
    bucket and user stats, user quota and default bucket quota per user.
    If either enumeration fails the pass raises EnumerationError. A failed
    per-entity fetch only drops that record and is listed in
    ``Snapshot.skipped``. Passes never overlap.
    """

    def __init__(
        self,
        fetchers: EntityFetchers,
        max_concurrency: int = 16,
        metrics: Optional[MetricsCollector] = None
    ):
        self.fetchers = fetchers
        self.max_concurrency = max_concurrency
        self.metrics = metrics
        self.logger = get_logger("rgw_exporter.builder")

        self._lock = asyncio.Lock()
        self._sequence = 0

    async def build(self) -> Snapshot:
        """Run a refresh pass."""
        async with self._lock:
            return await self._build()

    async def _build(self) -> Snapshot:
        started = time.monotonic()

        users = await self._enumerate("users", self.fetchers.list_users)
        buckets = await self._enumerate("buckets", self.fetchers.list_buckets)

        self.logger.debug("Enumerated entities", users=len(users), buckets=len(buckets))

        semaphore = asyncio.Semaphore(self.max_concurrency)
        skipped: List[SkippedEntity] = []

        bucket_stats, user_stats, user_quotas, bucket_quotas = await asyncio.gather(
            self._collect("bucket_stats", buckets, self.fetchers.get_bucket_stats, semaphore, skipped),
            self._collect("user_stats", users, self.fetchers.get_user_stats, semaphore, skipped),
            self._collect("user_quota", users, self.fetchers.get_user_quota, semaphore, skipped),
            self._collect("bucket_quota", users, self.fetchers.get_bucket_quota, semaphore, skipped),
        )

        self._sequence += 1
        snapshot = Snapshot(
            sequence=self._sequence,
            buckets=bucket_stats,
            users=user_stats,
            user_quotas=tuple(quota.normalized() for quota in user_quotas),
            bucket_quotas=tuple(quota.normalized() for quota in bucket_quotas),
            skipped=tuple(skipped),
            completed_at=datetime.now(timezone.utc),
            duration_seconds=time.monotonic() - started,
        )

        self.logger.info(
            "Snapshot built",
            sequence=snapshot.sequence,
            buckets=len(snapshot.buckets),
            users=len(snapshot.users),
            skipped=len(snapshot.skipped),
            duration_seconds=round(snapshot.duration_seconds, 3)
        )
        return snapshot

    async def _enumerate(self, resource: str, fetch: Callable[[], Awaitable[List[str]]]) -> List[str]:
        try:
            identifiers = await fetch()
        except UpstreamError as e:
            raise EnumerationError(resource, e) from e

        # Preserve upstream order, drop duplicates
        return list(dict.fromkeys(identifiers))

    async def _collect(
        self,
        kind: str,
        identifiers: List[str],
        fetch: Callable[[str], Awaitable[RecordT]],
        semaphore: asyncio.Semaphore,
        skipped: List[SkippedEntity]
    ) -> Tuple[RecordT, ...]:
        """Fetch one record per identifier, omitting the ones that fail."""

        async def guarded(entity_id: str) -> Optional[RecordT]:
            try:
                return await self._fetch_one(kind, entity_id, fetch, semaphore)
            except EntityFetchError as e:
                self.logger.warning(
                    "Skipping entity",
                    kind=kind,
                    entity_id=entity_id,
                    error=e.cause.code,
                    message=e.cause.message
                )
                skipped.append(SkippedEntity(kind=kind, entity_id=entity_id, error_code=e.cause.code))
                if self.metrics:
                    self.metrics.record_entity_fetch_error(kind)
                return None

        results = await asyncio.gather(*(guarded(entity_id) for entity_id in identifiers))
        return tuple(record for record in results if record is not None)

    async def _fetch_one(
        self,
        kind: str,
        entity_id: str,
        fetch: Callable[[str], Awaitable[RecordT]],
        semaphore: asyncio.Semaphore
    ) -> RecordT:
        async with semaphore:
            try:
                return await fetch(entity_id)
            except UpstreamError as e:
                raise EntityFetchError(kind, entity_id, e) from e
            except Exception as e:
                # Anything else still only costs this one entity
                cause = UpstreamError(
                    f"Unexpected {type(e).__name__}: {e}",
                    {"error": type(e).__name__},
                    code="UNEXPECTED_ERROR"
                )
                raise EntityFetchError(kind, entity_id, cause) from e
