"""
Ceph RGW exporter service.
"""

import argparse
import sys
from typing import Any, Dict, List, Optional, Tuple

import httpx
from botocore.credentials import Credentials
from fastapi.responses import JSONResponse

from rgw_shared.base_service import BaseService, VERSION
from rgw_shared.config import DEFAULT_PORT, ExporterConfig, get_config
from rgw_shared.errors import ConfigurationError
from rgw_shared.retry import RetryConfig

from .admin.client import AdminClient, load_credentials
from .admin.fetchers import EntityFetchers
from .exporters.prometheus import SnapshotCollector
from .ingestion.builder import SnapshotBuilder
from .ingestion.registry import MetricRegistry
from .ingestion.scheduler import RefreshScheduler


class ExporterService(BaseService):
    """Exporter service implementation."""

    def __init__(
        self,
        config: ExporterConfig,
        credentials: Optional[Credentials] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if not config.endpoint:
            raise ConfigurationError("Admin API endpoint is not configured")

        super().__init__(config.service_name, config)

        # Initialize components
        self.client = AdminClient(
            config.endpoint,
            credentials if credentials is not None else load_credentials(),
            region=config.region,
            timeout=config.fetch_timeout_seconds,
            retry_config=RetryConfig(
                max_attempts=config.fetch_retries + 1,
                base_delay=config.retry_base_delay_seconds
            ),
            transport=transport
        )
        self.fetchers = EntityFetchers(self.client)
        self.snapshots = MetricRegistry()
        self.builder = SnapshotBuilder(
            self.fetchers,
            max_concurrency=config.max_concurrency,
            metrics=self.metrics
        )
        self.scheduler = RefreshScheduler(
            self.builder,
            self.snapshots,
            interval_seconds=config.refresh_interval_seconds,
            jitter_seconds=config.refresh_jitter_seconds,
            metrics=self.metrics
        )

        self.registry.register(SnapshotCollector(self.snapshots))

        self._setup_exporter_routes()

    def _setup_exporter_routes(self):
        """Set up exporter-specific routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": self.service_name,
                "message": "Ceph radosgw usage and quota exporter",
                "version": VERSION,
                "endpoint": self.config.endpoint,
                "metrics_path": "/metrics"
            }

        @self.app.get("/snapshot")
        async def snapshot_summary():
            """Summary of the currently published snapshot."""
            snapshot = self.snapshots.current()
            if snapshot is None:
                return JSONResponse(
                    status_code=503,
                    content={"status": "starting", "message": "No snapshot published yet"}
                )
            return snapshot.summary()

    async def _check_dependencies(self) -> Dict[str, Any]:
        """Report refresh state."""
        snapshot = self.snapshots.current()
        age = self.snapshots.age_seconds()
        return {
            "scheduler": "ok" if self.scheduler.running else "stopped",
            "snapshot_sequence": snapshot.sequence if snapshot else None,
            "snapshot_age_seconds": round(age, 1) if age is not None else None,
            "last_error": self.scheduler.last_error
        }

    def _health_status(self) -> str:
        return "ok" if self.snapshots.has_snapshot else "starting"

    async def start(self):
        """Start exporter components."""
        await self.scheduler.start()
        self.logger.info("Exporter started", endpoint=self.config.endpoint)

    async def stop(self):
        """Stop exporter components."""
        await self.scheduler.stop()
        await self.client.close()
        self.logger.info("Exporter stopped")


def parse_listen_address(address: str) -> Tuple[str, int]:
    """Split ``[host]:port`` into (host, port); an empty host means all interfaces."""
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ValueError(f"listen address must be [host]:port, got {address!r}")
    try:
        port_number = int(port)
    except ValueError:
        raise ValueError(f"invalid port in listen address {address!r}")
    if not 0 < port_number < 65536:
        raise ValueError(f"port out of range in listen address {address!r}")
    return host.strip("[]") or "0.0.0.0", port_number


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="rgw-exporter",
        description="Export Ceph radosgw bucket/user usage and quotas to Prometheus."
    )
    parser.add_argument("endpoint", help="radosgw endpoint URL, e.g. http://rgw.example:8080")
    parser.add_argument(
        "--listen-address",
        default=f":{DEFAULT_PORT}",
        help="The address to listen on for exporter HTTP requests."
    )
    parser.add_argument("--interval", type=float, default=None, help="Refresh interval in seconds.")
    parser.add_argument("--log-level", default=None, help="Log level (debug, info, warning, error).")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ExporterConfig:
    host, port = parse_listen_address(args.listen_address)
    return get_config(
        endpoint=args.endpoint,
        host=host,
        port=port,
        refresh_interval_seconds=args.interval,
        log_level=args.log_level
    )


def create_app(config: Optional[ExporterConfig] = None, **kwargs):
    """Create exporter application."""
    service = ExporterService(config or get_config(), **kwargs)
    return service.app


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = build_config(args)
        service = ExporterService(config)
    except (ValueError, ConfigurationError) as e:
        print(f"rgw-exporter: {e}", file=sys.stderr)
        return 2

    service.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
