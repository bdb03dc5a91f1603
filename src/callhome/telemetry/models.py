"""Data models for outbound telemetry reports.

All models are plain dataclasses with to_dict/from_dict for serialisation.
The wire field names depend on the ``ReportSchema`` the endpoint expects.
"""

from __future__ import annotations

import base64
import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

_UUID_RE = re.compile(
    r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}"
)


def is_valid_uuid(value: str | None) -> bool:
    """Check that ``value`` has the 8-4-4-4-12 hex layout (any case)."""
    return value is not None and _UUID_RE.fullmatch(value) is not None


def generate_uuid() -> str:
    """Generate a random UUID4 string."""
    return str(uuid.uuid4())


# ------------------------------------------------------------------
# Report schema
# ------------------------------------------------------------------


class ReportSchema(str, Enum):
    """Field naming convention expected by the telemetry endpoint."""

    CALLHOME = "callhome"
    AGENT = "agent"

    @property
    def time_field(self) -> str:
        return "createTime" if self is ReportSchema.CALLHOME else "time"

    @property
    def family_field(self) -> str:
        return "product_family" if self is ReportSchema.CALLHOME else "productFamily"

    @property
    def metric_keys(self) -> tuple[str, str, str]:
        """Metric names for version, operating system and deployment, in order."""
        if self is ReportSchema.CALLHOME:
            return ("pillar_version", "OS", "deployment")
        return ("version", "osName", "hwArch")

    def encode_id(self, value: str) -> str:
        """Render a UUID string the way this schema sends identifiers."""
        if self is ReportSchema.CALLHOME:
            return value
        return base64.b64encode(uuid.UUID(value).bytes).decode("ascii")

    def decode_id(self, value: str) -> str:
        if self is ReportSchema.CALLHOME:
            return value
        return str(uuid.UUID(bytes=base64.b64decode(value)))


# ------------------------------------------------------------------
# Telemetry Report
# ------------------------------------------------------------------


@dataclass
class TelemetryMetric:
    """A single key/value metric entry."""

    key: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "value": self.value}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TelemetryMetric:
        return cls(key=str(data["key"]), value=str(data["value"]))


@dataclass
class TelemetryReport:
    """One telemetry event: host identity plus product metrics."""

    id: str
    create_time: str  # ISO-8601, UTC
    instance_id: str
    product_family: str
    metrics: list[TelemetryMetric] = field(default_factory=list)

    def to_dict(self, schema: ReportSchema = ReportSchema.CALLHOME) -> dict[str, Any]:
        return {
            "id": schema.encode_id(self.id),
            schema.time_field: self.create_time,
            "instanceId": schema.encode_id(self.instance_id),
            schema.family_field: self.product_family,
            "metrics": [m.to_dict() for m in self.metrics],
        }

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], schema: ReportSchema = ReportSchema.CALLHOME
    ) -> TelemetryReport:
        return cls(
            id=schema.decode_id(data["id"]),
            create_time=data[schema.time_field],
            instance_id=schema.decode_id(data["instanceId"]),
            product_family=data[schema.family_field],
            metrics=[TelemetryMetric.from_dict(m) for m in data.get("metrics", [])],
        )


@dataclass
class TelemetryMessage:
    """Envelope for the reports of one delivery; this tool always sends one."""

    reports: list[TelemetryReport] = field(default_factory=list)

    def to_dict(self, schema: ReportSchema = ReportSchema.CALLHOME) -> dict[str, Any]:
        return {"reports": [r.to_dict(schema) for r in self.reports]}

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], schema: ReportSchema = ReportSchema.CALLHOME
    ) -> TelemetryMessage:
        return cls(reports=[TelemetryReport.from_dict(r, schema) for r in data.get("reports", [])])
