"""
Ceph RGW exporter service package.

Polls the radosgw admin API on a fixed interval, assembles per-bucket and
per-user usage and quota figures into an immutable snapshot, and serves the
latest snapshot to Prometheus via the `/metrics` endpoint.

Structure:
- app.main: FastAPI service, lifespan wiring and the command line entry point.
- app.admin: signed admin API client and typed entity fetchers.
- app.ingestion: snapshot model, builder, registry and refresh scheduler.
- app.exporters: Prometheus rendering of the published snapshot.
"""
