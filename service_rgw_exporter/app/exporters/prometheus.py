"""
Prometheus exposition of the published Snapshot.
"""

from typing import Callable, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from ..ingestion.models import Snapshot
from ..ingestion.registry import MetricRegistry

# (metric name, help text, value getter)
GaugeSpec = Tuple[str, str, Callable[[object], float]]


class RecordSet(NamedTuple):
    """Gauges rendered from one of the Snapshot's record tuples."""
    attribute: str
    labels: Sequence[str]
    label_values: Callable[[object], List[str]]
    gauges: Sequence[GaugeSpec]


def _enabled(record) -> float:
    return 1.0 if record.enabled else 0.0


RECORD_SETS = (
    RecordSet("buckets", ("bucket", "owner"), lambda r: [r.bucket, r.owner], (
        ("cephrgw_bucket_num_objects", "Ceph radosgw bucket num objects from admin api",
         lambda r: r.num_objects),
        ("cephrgw_bucket_size_kb", "Ceph radosgw bucket size kb from admin api",
         lambda r: r.size_kb_actual),
        ("cephrgw_bucket_num_shards", "Ceph radosgw bucket num shards from admin api",
         lambda r: r.num_shards),
    )),
    RecordSet("users", ("owner",), lambda r: [r.owner], (
        ("cephrgw_user_num_objects", "Ceph radosgw user num objects from admin api",
         lambda r: r.num_objects),
        ("cephrgw_user_size_kb", "Ceph radosgw user size kb from admin api",
         lambda r: r.size_kb_actual),
    )),
    RecordSet("user_quotas", ("owner",), lambda r: [r.owner], (
        ("cephrgw_quota_user_enabled", "Ceph radosgw user quota enabled from admin api",
         _enabled),
        ("cephrgw_quota_user_max_size_kb", "Ceph radosgw user quota max size kb from admin api",
         lambda r: r.max_size_kb),
        ("cephrgw_quota_user_max_objects", "Ceph radosgw user quota max objects from admin api",
         lambda r: r.max_objects),
    )),
    RecordSet("bucket_quotas", ("owner",), lambda r: [r.owner], (
        ("cephrgw_quota_bucket_enabled", "Ceph radosgw bucket quota enabled from admin api",
         _enabled),
        ("cephrgw_quota_bucket_max_size_kb", "Ceph radosgw bucket quota max size kb from admin api",
         lambda r: r.max_size_kb),
        ("cephrgw_quota_bucket_max_objects", "Ceph radosgw bucket quota max objects from admin api",
         lambda r: r.max_objects),
    )),
)

SNAPSHOT_TIMESTAMP = "cephrgw_snapshot_completed_timestamp_seconds"
SNAPSHOT_TIMESTAMP_HELP = "Completion time of the published snapshot"


class SnapshotCollector(Collector):
    """Renders the registry's current Snapshot on every scrape.

    ``collect`` reads ``MetricRegistry.current()`` exactly once and builds
    every family from that one reference, so a scrape that overlaps a
    publish still reports a single pass.
    """

    def __init__(self, registry: MetricRegistry):
        self.registry = registry

    def describe(self) -> Iterator[GaugeMetricFamily]:
        for record_set in RECORD_SETS:
            for name, documentation, _ in record_set.gauges:
                yield GaugeMetricFamily(name, documentation, labels=record_set.labels)
        yield GaugeMetricFamily(SNAPSHOT_TIMESTAMP, SNAPSHOT_TIMESTAMP_HELP)

    def collect(self) -> Iterator[GaugeMetricFamily]:
        return iter(render_families(self.registry.current()))


def render_families(snapshot: Optional[Snapshot]) -> List[GaugeMetricFamily]:
    """Build all gauge families for ``snapshot`` (empty families when None).

    Each record tuple is walked once, filling all of its gauges together.
    """
    families: List[GaugeMetricFamily] = []
    for record_set in RECORD_SETS:
        set_families = [
            GaugeMetricFamily(name, documentation, labels=record_set.labels)
            for name, documentation, _ in record_set.gauges
        ]
        if snapshot is not None:
            for record in getattr(snapshot, record_set.attribute):
                label_values = record_set.label_values(record)
                for family, (_, _, value) in zip(set_families, record_set.gauges):
                    family.add_metric(label_values, float(value(record)))
        families.extend(set_families)

    if snapshot is not None:
        families.append(GaugeMetricFamily(
            SNAPSHOT_TIMESTAMP,
            SNAPSHOT_TIMESTAMP_HELP,
            value=snapshot.completed_at.timestamp()
        ))
    return families
