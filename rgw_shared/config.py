"""
Shared configuration management for the Ceph RGW exporter.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_PORT = 19128


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="RGW_EXPORTER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Listener
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=DEFAULT_PORT)


class ExporterConfig(BaseConfig):
    """Exporter configuration: admin API target and refresh tuning."""

    service_name: str = "rgw_exporter"

    # Admin API
    endpoint: Optional[str] = Field(default=None)
    region: str = Field(default="us-east-1")
    fetch_timeout_seconds: float = Field(default=30.0, gt=0)
    fetch_retries: int = Field(default=1, ge=0)
    retry_base_delay_seconds: float = Field(default=0.5, ge=0)

    # Refresh
    refresh_interval_seconds: float = Field(default=60.0, gt=0)
    refresh_jitter_seconds: float = Field(default=5.0, ge=0)
    max_concurrency: int = Field(default=16, ge=1)

    @field_validator("endpoint")
    @classmethod
    def _strip_endpoint(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().rstrip("/")
        return value or None


def get_config(**overrides) -> ExporterConfig:
    """Get exporter configuration, letting explicit values win over the environment."""
    overrides = {key: value for key, value in overrides.items() if value is not None}
    return ExporterConfig(**overrides)
