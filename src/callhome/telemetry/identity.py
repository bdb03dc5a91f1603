"""Stable per-host instance identity.

An externally supplied UUID wins. Otherwise the identifier is read from the
machine's own stable IDs (DMI product UUID, systemd/dbus machine-id), and a
random UUID4 is generated when none of those are readable. Resolution never
fails: the caller persists whatever comes out so later runs reuse it.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from pathlib import Path

from callhome.constants import HOST_ID_PATHS
from callhome.errors import IdentityResolutionError
from callhome.logging import get_logger
from callhome.telemetry.models import generate_uuid, is_valid_uuid

log = get_logger("callhome.telemetry.identity")


class InstanceIdentity:
    """Resolves the identifier reported as ``instanceId`` for this host."""

    def __init__(self, host_id_paths: Sequence[str | Path] = HOST_ID_PATHS) -> None:
        self._host_id_paths = [Path(p) for p in host_id_paths]

    def resolve(self, supplied: str | None = None) -> str:
        """Return ``supplied`` if well formed, else a host-derived or random UUID."""
        if supplied:
            if is_valid_uuid(supplied):
                return supplied
            log.warning("instance_id_malformed", supplied=supplied)

        try:
            host_id = self.host_id()
            log.debug("instance_id_from_host", instance_id=host_id)
            return host_id
        except IdentityResolutionError as exc:
            log.debug("host_id_unavailable", error=str(exc))

        return generate_uuid()

    def host_id(self) -> str:
        """Read the first usable machine identifier.

        Raises:
            IdentityResolutionError: If no source yields a UUID.
        """
        for path in self._host_id_paths:
            try:
                raw = path.read_text(encoding="utf-8").strip()
            except OSError:
                continue
            normalized = _normalize(raw)
            if normalized is not None:
                return normalized
        raise IdentityResolutionError("no readable host identifier")


def _normalize(raw: str) -> str | None:
    """Turn a UUID or a 32-hex machine-id into canonical lowercase UUID form."""
    try:
        value = uuid.UUID(raw)
    except ValueError:
        return None
    # Zeroed or all-ones DMI UUIDs are placeholders, not identities
    if value.int in (0, (1 << 128) - 1):
        return None
    return str(value)
