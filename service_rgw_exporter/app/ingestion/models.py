"""
Records and snapshots published by the exporter.

Every type here is frozen: once a Snapshot is handed to the registry it is
shared by any number of concurrent scrapes and must never change.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Tuple

# Published in place of a zero max_size_kb, which the admin API uses for "no limit".
UNBOUNDED_SIZE_KB = -1


class QuotaScope(str, Enum):
    """Quota types as understood by the admin API's quota-type parameter."""
    USER = "user"
    BUCKET = "bucket"


def normalize_max_size_kb(max_size_kb: int) -> int:
    """Map the upstream "unlimited" sentinel (0) to UNBOUNDED_SIZE_KB."""
    if max_size_kb == 0:
        return UNBOUNDED_SIZE_KB
    return max_size_kb


@dataclass(frozen=True)
class BucketRecord:
    """Usage of a single bucket."""
    bucket: str
    owner: str
    num_objects: int
    size_kb_actual: int
    num_shards: int


@dataclass(frozen=True)
class UserRecord:
    """Aggregate usage of a single user."""
    owner: str
    num_objects: int
    size_kb_actual: int


@dataclass(frozen=True)
class QuotaRecord:
    """A user quota or an owner's default bucket quota."""
    owner: str
    scope: QuotaScope
    enabled: bool
    max_size_kb: int
    max_objects: int

    def normalized(self) -> "QuotaRecord":
        """Copy with the unlimited size sentinel replaced."""
        return QuotaRecord(
            owner=self.owner,
            scope=self.scope,
            enabled=self.enabled,
            max_size_kb=normalize_max_size_kb(self.max_size_kb),
            max_objects=self.max_objects,
        )


@dataclass(frozen=True)
class SkippedEntity:
    """An entity left out of a snapshot because its fetch failed."""
    kind: str
    entity_id: str
    error_code: str


@dataclass(frozen=True)
class Snapshot:
    """One complete, point-in-time view produced by a refresh pass."""
    sequence: int
    buckets: Tuple[BucketRecord, ...] = ()
    users: Tuple[UserRecord, ...] = ()
    user_quotas: Tuple[QuotaRecord, ...] = ()
    bucket_quotas: Tuple[QuotaRecord, ...] = ()
    skipped: Tuple[SkippedEntity, ...] = ()
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_seconds: float = 0.0

    def summary(self) -> dict:
        return {
            "sequence": self.sequence,
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": round(self.duration_seconds, 3),
            "buckets": len(self.buckets),
            "users": len(self.users),
            "user_quotas": len(self.user_quotas),
            "bucket_quotas": len(self.bucket_quotas),
            "skipped": [
                {"kind": s.kind, "entity_id": s.entity_id, "error": s.error_code}
                for s in self.skipped
            ],
        }
