"""Configuration management for callhome."""

from functools import lru_cache
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from callhome.constants import (
    DEFAULT_SEND_TIMEOUT,
    DEFAULT_STATE_PATH,
    DEFAULT_TELEMETRY_URL,
    ENV_PREFIX,
)
from callhome.telemetry.models import ReportSchema

# Values of PERCONA_TELEMETRY_DISABLE that leave telemetry enabled
_ENABLED_VALUES = frozenset({"", "0", "false", "no", "off"})


class OptOutSettings(BaseSettings):
    """Just the opt-out flag.

    Read on its own so that a malformed unrelated variable cannot turn a
    disabled run into a failing one.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
        extra="ignore",
    )

    telemetry_disable: bool = Field(default=False, description="Disable telemetry entirely")

    @field_validator("telemetry_disable", mode="before")
    @classmethod
    def _parse_disable_flag(cls, value: Any) -> Any:
        # Any non-zero value disables, e.g. PERCONA_TELEMETRY_DISABLE=2
        if isinstance(value, str):
            return value.strip().lower() not in _ENABLED_VALUES
        return value


class Settings(OptOutSettings):
    """Settings loaded from ``PERCONA_*`` environment variables."""

    # Report metadata
    product_family: str | None = Field(default=None, description="Product family identifier")
    product_version: str | None = Field(default=None, description="Product version")
    operating_system: str | None = Field(default=None, description="Operating system name")
    deployment_method: str | None = Field(
        default=None, description="Deployment method or hardware architecture"
    )
    instance_id: str | None = Field(default=None, description="Externally supplied instance ID")

    # State and delivery
    telemetry_config_file_path: str = Field(
        default=DEFAULT_STATE_PATH, description="Path of the telemetry state file"
    )
    telemetry_url: str = Field(default=DEFAULT_TELEMETRY_URL, description="Telemetry endpoint")
    send_timeout: float = Field(
        default=DEFAULT_SEND_TIMEOUT, gt=0, description="Delivery timeout in seconds"
    )
    report_schema: ReportSchema = Field(
        default=ReportSchema.CALLHOME, description="Wire-format field naming convention"
    )

    # Application
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="WARNING", description="Logging level")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
