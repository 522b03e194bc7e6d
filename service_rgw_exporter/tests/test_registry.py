"""
Unit tests for MetricRegistry.
"""

import threading

import pytest

from service_rgw_exporter.app.exporters.prometheus import render_families
from service_rgw_exporter.app.ingestion.models import BucketRecord, QuotaRecord, QuotaScope, Snapshot, UserRecord
from service_rgw_exporter.app.ingestion.registry import MetricRegistry


def make_snapshot(sequence: int, buckets: int = 3, users: int = 2) -> Snapshot:
    """Snapshot whose every numeric value equals its sequence number."""
    owners = [f"user{i}" for i in range(users)]
    return Snapshot(
        sequence=sequence,
        buckets=tuple(
            BucketRecord(f"bucket{i}", owners[i % users], sequence, sequence, sequence)
            for i in range(buckets)
        ),
        users=tuple(UserRecord(owner, sequence, sequence) for owner in owners),
        user_quotas=tuple(QuotaRecord(owner, QuotaScope.USER, True, sequence, sequence) for owner in owners),
        bucket_quotas=tuple(QuotaRecord(owner, QuotaScope.BUCKET, True, sequence, sequence) for owner in owners),
    )


class TestMetricRegistry:
    """Test cases for MetricRegistry."""

    @pytest.fixture
    def registry(self):
        """Create MetricRegistry instance."""
        return MetricRegistry()

    def test_empty_registry(self, registry):
        """Test state before the first publish."""
        assert registry.current() is None
        assert registry.has_snapshot is False
        assert registry.age_seconds() is None

    def test_publish_replaces_current(self, registry):
        """Test that publish makes the new snapshot visible."""
        first = make_snapshot(1)
        second = make_snapshot(2)

        assert registry.publish(first) is True
        assert registry.current() is first
        assert registry.publish(second) is True
        assert registry.current() is second
        assert registry.age_seconds() >= 0

    def test_held_reference_survives_publish(self, registry):
        """Test that a reader's snapshot is unaffected by a later publish."""
        registry.publish(make_snapshot(1, buckets=2))
        held = registry.current()

        registry.publish(make_snapshot(2, buckets=5))

        assert held.sequence == 1
        assert len(held.buckets) == 2
        assert registry.current().sequence == 2

    @pytest.mark.parametrize("stale_sequence", [1, 2])
    def test_stale_snapshot_is_refused(self, registry, stale_sequence):
        """Test that visible state never moves backwards."""
        current = make_snapshot(2)
        registry.publish(current)

        assert registry.publish(make_snapshot(stale_sequence)) is False
        assert registry.current() is current

    def test_concurrent_readers_see_one_pass(self, registry):
        """Test that every render during publishing reflects a single snapshot."""
        registry.publish(make_snapshot(1))
        stop = threading.Event()
        errors = []
        renders = []

        def reader():
            while not stop.is_set():
                families = render_families(registry.current())
                values = {
                    sample.value
                    for family in families
                    if family.name.startswith("cephrgw_") and "timestamp" not in family.name
                    and "enabled" not in family.name
                    for sample in family.samples
                }
                if len(values) != 1:
                    errors.append(values)
                renders.append(values)

        def writer():
            for sequence in range(2, 300):
                registry.publish(make_snapshot(sequence, buckets=sequence % 7 + 1))
            stop.set()

        threads = [threading.Thread(target=reader) for _ in range(4)]
        for thread in threads:
            thread.start()
        writer()
        for thread in threads:
            thread.join(timeout=10)

        assert errors == []
        assert renders
        assert registry.current().sequence == 299
