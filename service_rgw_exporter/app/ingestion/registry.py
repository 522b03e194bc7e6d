"""
Holder of the currently published Snapshot.
"""

import time
from typing import Optional

from rgw_shared.logging import get_logger
from .models import Snapshot


class MetricRegistry:
    """Publishes Snapshots to concurrent readers by reference swap.

    ``publish`` rebinds a single attribute to a fully built, frozen
    Snapshot, so a reader calling ``current()`` gets either the previous
    Snapshot or the new one, never a cleared or half-filled view. A reader
    keeps whatever reference it obtained for as long as it needs it.

    Publishing is single-writer (the refresh scheduler). Sequences only move
    forward; a Snapshot that is not newer than the current one is refused.
    """

    def __init__(self):
        self.logger = get_logger("rgw_exporter.registry")
        self._current: Optional[Snapshot] = None
        self._published_at: Optional[float] = None

    def publish(self, snapshot: Snapshot) -> bool:
        """Make ``snapshot`` the visible one. Returns False if it was refused as stale."""
        current = self._current
        if current is not None and snapshot.sequence <= current.sequence:
            self.logger.warning(
                "Refusing to publish stale snapshot",
                sequence=snapshot.sequence,
                current_sequence=current.sequence
            )
            return False

        self._current = snapshot
        self._published_at = time.time()

        self.logger.info(
            "Snapshot published",
            sequence=snapshot.sequence,
            buckets=len(snapshot.buckets),
            users=len(snapshot.users)
        )
        return True

    def current(self) -> Optional[Snapshot]:
        """The Snapshot visible at call time, or None before the first publish."""
        return self._current

    @property
    def has_snapshot(self) -> bool:
        return self._current is not None

    def age_seconds(self) -> Optional[float]:
        """Seconds since the last publish."""
        if self._published_at is None:
            return None
        return time.time() - self._published_at
