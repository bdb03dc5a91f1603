"""Assembles the single ``TelemetryReport`` sent by a run."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime

from callhome.telemetry.models import (
    ReportSchema,
    TelemetryMessage,
    TelemetryMetric,
    TelemetryReport,
    generate_uuid,
)

_NS_PER_SECOND = 1_000_000_000


@dataclass(frozen=True)
class ProductMetadata:
    """What is being reported. Content is passed through unvalidated."""

    product_family: str
    product_version: str
    operating_system: str
    deployment: str


def format_timestamp(ns: int) -> str:
    """Render nanoseconds since the epoch as RFC 3339 UTC, e.g.
    ``2023-09-15T10:36:53.123456789Z``."""
    seconds, fraction = divmod(ns, _NS_PER_SECOND)
    stamp = datetime.fromtimestamp(seconds, tz=UTC).strftime("%Y-%m-%dT%H:%M:%S")
    return f"{stamp}.{fraction:09d}Z"


class ReportBuilder:
    """Builds reports for one schema with strictly increasing timestamps."""

    def __init__(
        self,
        schema: ReportSchema = ReportSchema.CALLHOME,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        self._schema = schema
        self._clock = clock
        self._last_ns = 0

    def build(self, instance_id: str, metadata: ProductMetadata) -> TelemetryReport:
        version_key, os_key, deployment_key = self._schema.metric_keys
        metrics = [
            TelemetryMetric(key=version_key, value=metadata.product_version),
            TelemetryMetric(key=os_key, value=metadata.operating_system),
            TelemetryMetric(key=deployment_key, value=metadata.deployment),
        ]
        return TelemetryReport(
            id=self._new_report_id(instance_id),
            create_time=format_timestamp(self._now_ns()),
            instance_id=instance_id,
            product_family=metadata.product_family,
            metrics=metrics,
        )

    def build_message(self, instance_id: str, metadata: ProductMetadata) -> TelemetryMessage:
        return TelemetryMessage(reports=[self.build(instance_id, metadata)])

    def _now_ns(self) -> int:
        now = max(self._clock(), self._last_ns + 1)
        self._last_ns = now
        return now

    @staticmethod
    def _new_report_id(instance_id: str) -> str:
        report_id = generate_uuid()
        while report_id.lower() == instance_id.lower():
            report_id = generate_uuid()
        return report_id
