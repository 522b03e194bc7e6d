"""
Shared utilities for the Ceph RGW exporter.

This package aggregates the building blocks the exporter service uses:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request/pass correlation
- metrics: Prometheus metrics about the exporter itself
- errors: Canonical error types and responses
- retry: Backoff helper for admin API calls
- base_service: FastAPI service skeleton (health, metrics, lifespan)

Do not import from service_* packages into rgw_shared/.
"""
