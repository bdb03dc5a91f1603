"""Single-attempt HTTP delivery of a telemetry message.

There is no retry and no backoff: a failed POST is reported to the caller as
``TransportError`` and the report is simply lost.

``timeout`` is a deadline for the whole exchange, from connecting through
redirects to the response headers. The response body is never read.
"""

from __future__ import annotations

import asyncio
import json

import httpx

from callhome.constants import DEFAULT_SEND_TIMEOUT
from callhome.errors import SerializationError, TransportError
from callhome.logging import get_logger
from callhome.telemetry.models import ReportSchema, TelemetryMessage

log = get_logger("callhome.telemetry.transport")

HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}

# The agent collector expects anonymous requests to say so
AGENT_HEADERS = {**HEADERS, "Auth-Status": "0"}


def headers_for(schema: ReportSchema) -> dict[str, str]:
    """Return the request headers used for ``schema``."""
    return AGENT_HEADERS if schema is ReportSchema.AGENT else HEADERS


def serialize(message: TelemetryMessage, schema: ReportSchema = ReportSchema.CALLHOME) -> bytes:
    """Encode ``message`` as compact JSON."""
    try:
        return json.dumps(
            message.to_dict(schema), separators=(",", ":"), ensure_ascii=False
        ).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"cannot encode telemetry message: {exc}") from exc


class ReportTransport:
    """POSTs telemetry messages to the collection endpoint."""

    def __init__(
        self,
        url: str,
        timeout: float = DEFAULT_SEND_TIMEOUT,
        schema: ReportSchema = ReportSchema.CALLHOME,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._schema = schema
        self._transport = transport

    def send(self, message: TelemetryMessage) -> int:
        """POST ``message`` once.

        Returns:
            The HTTP status code of the accepted request.

        Raises:
            SerializationError: If the message cannot be encoded.
            TransportError: On a malformed URL, connection failure, timeout
                or non-2xx status.
        """
        body = serialize(message, self._schema)
        log.debug("telemetry_payload", url=self._url, payload=body.decode("utf-8"))

        try:
            status = asyncio.run(asyncio.wait_for(self._post(body), timeout=self._timeout))
        except TimeoutError as exc:
            raise TransportError(
                f"telemetry request timed out after {self._timeout:g}s"
            ) from exc
        # InvalidURL is not an HTTPError subclass
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TransportError(f"telemetry request failed: {exc}") from exc

        if not 200 <= status < 300:
            raise TransportError(f"telemetry endpoint returned {status}", status_code=status)
        log.info("telemetry_report_sent", status=status)
        return status

    async def _post(self, body: bytes) -> int:
        async with httpx.AsyncClient(
            timeout=self._timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            async with client.stream(
                "POST", self._url, content=body, headers=headers_for(self._schema)
            ) as resp:
                return resp.status_code
