"""Runs one telemetry invocation end to end.

Lifecycle:
1. Exit immediately when telemetry is disabled (no file or network I/O)
2. Validate that every required value is present
3. Load the state file, creating it and persisting the instance ID if needed
4. Exit if this product family was already reported
5. Build the report and POST it once
6. Append the reported marker, whether or not delivery succeeded
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from callhome.constants import (
    DEFAULT_SEND_TIMEOUT,
    DEFAULT_STATE_PATH,
    DEFAULT_TELEMETRY_URL,
    INSTANCE_ID_KEY,
)
from callhome.errors import ConfigError, TransportError
from callhome.logging import get_logger
from callhome.telemetry.builder import ProductMetadata, ReportBuilder
from callhome.telemetry.identity import InstanceIdentity
from callhome.telemetry.models import ReportSchema
from callhome.telemetry.state import ReportStateStore
from callhome.telemetry.transport import ReportTransport

log = get_logger("callhome.telemetry.orchestrator")


class RunOutcome(str, Enum):
    DISABLED = "disabled"
    ALREADY_REPORTED = "already_reported"
    SENT = "sent"
    SEND_FAILED = "send_failed"


@dataclass
class RunConfig:
    """Everything one run needs; built by the CLI from flags and environment."""

    product_family: str | None = None
    product_version: str | None = None
    operating_system: str | None = None
    deployment: str | None = None
    instance_id: str | None = None
    state_path: str = DEFAULT_STATE_PATH
    url: str = DEFAULT_TELEMETRY_URL
    timeout: float = DEFAULT_SEND_TIMEOUT
    schema: ReportSchema = ReportSchema.CALLHOME
    disabled: bool = False

    def metadata(self) -> ProductMetadata:
        """Return the report metadata, checking required values.

        Raises:
            ConfigError: If a required value is missing or the product family
                cannot be stored as a state file key.
        """
        required = {
            "product family": self.product_family,
            "product version": self.product_version,
            "operating system": self.operating_system,
            "deployment": self.deployment,
        }
        for name, value in required.items():
            if not value:
                raise ConfigError(f"{name} is not provided")

        family = self.product_family.strip()  # type: ignore[union-attr]
        if not family or family == INSTANCE_ID_KEY or any(c in family for c in ":\r\n"):
            raise ConfigError(f"product family {self.product_family!r} is not usable")

        return ProductMetadata(
            product_family=family,
            product_version=self.product_version,  # type: ignore[arg-type]
            operating_system=self.operating_system,  # type: ignore[arg-type]
            deployment=self.deployment,  # type: ignore[arg-type]
        )


class Orchestrator:
    """Sequences state lookup, report building, delivery and marking."""

    def __init__(
        self,
        config: RunConfig,
        identity: InstanceIdentity | None = None,
        transport: ReportTransport | None = None,
    ) -> None:
        self._config = config
        self._identity = identity
        self._transport = transport

    def run(self) -> RunOutcome:
        """Execute the run.

        Raises:
            ConfigError: If a required value is missing (before any I/O).
            SerializationError: If the report cannot be encoded.
        """
        config = self._config
        if config.disabled:
            log.info("telemetry_disabled")
            return RunOutcome.DISABLED

        metadata = config.metadata()

        store = ReportStateStore(
            config.state_path,
            supplied_instance_id=config.instance_id,
            identity=self._identity,
        )
        instance_id, _ = store.load_or_init()

        if store.is_reported(metadata.product_family):
            log.info("product_already_reported", product_family=metadata.product_family)
            return RunOutcome.ALREADY_REPORTED

        message = ReportBuilder(config.schema).build_message(instance_id, metadata)
        transport = self._transport or ReportTransport(
            config.url, timeout=config.timeout, schema=config.schema
        )

        outcome = RunOutcome.SENT
        try:
            transport.send(message)
        except TransportError as exc:
            log.warning(
                "telemetry_send_failed",
                url=config.url,
                status=exc.status_code,
                error=str(exc),
            )
            outcome = RunOutcome.SEND_FAILED

        # Marked even when delivery failed: one attempt per product per host
        store.mark_reported(metadata.product_family)
        return outcome
