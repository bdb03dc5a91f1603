"""File-backed ledger of the instance ID and already-reported product families.

The file holds one ``key:value`` pair per line::

    instanceId:6e5ff5d4-5617-11ee-8c99-0242ac120002
    PRODUCT_FAMILY_PS:1
    PRODUCT_FAMILY_PXB:1

The first line is (re)written only when the file is missing or its
``instanceId`` entry is not exactly one well-formed UUID. After that, product
markers are only ever appended.

There is no locking: two processes doing their first run at the same moment
can both see a product as unreported and both send.
"""

from __future__ import annotations

from pathlib import Path

from callhome.constants import INSTANCE_ID_KEY, REPORTED_MARKER
from callhome.errors import StateCorruption
from callhome.logging import get_logger
from callhome.telemetry.identity import InstanceIdentity
from callhome.telemetry.models import is_valid_uuid

log = get_logger("callhome.telemetry.state")


def parse_state(text: str) -> dict[str, str]:
    """Parse state file content into an ordered key/value mapping.

    Lines without a colon or with an empty key are skipped. Keys and values
    are trimmed and split on the first colon; later duplicates win.

    Raises:
        StateCorruption: If there is not exactly one well-formed instanceId.
    """
    entries: dict[str, str] = {}
    instance_ids: list[str] = []
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or not key:
            continue
        value = value.strip()
        if key == INSTANCE_ID_KEY:
            instance_ids.append(value)
        entries[key] = value

    if len(instance_ids) != 1:
        raise StateCorruption(f"expected one {INSTANCE_ID_KEY} entry, found {len(instance_ids)}")
    if not is_valid_uuid(instance_ids[0]):
        raise StateCorruption(f"malformed {INSTANCE_ID_KEY}: {instance_ids[0]!r}")
    return entries


class ReportStateStore:
    """Tracks which product families this host has already reported."""

    def __init__(
        self,
        path: str | Path,
        supplied_instance_id: str | None = None,
        identity: InstanceIdentity | None = None,
    ) -> None:
        self._path = Path(path)
        self._supplied_instance_id = supplied_instance_id
        self._identity = identity or InstanceIdentity()
        self._entries: dict[str, str] = {}

    @property
    def path(self) -> Path:
        return self._path

    @property
    def instance_id(self) -> str | None:
        return self._entries.get(INSTANCE_ID_KEY)

    @property
    def reported(self) -> set[str]:
        return {k for k in self._entries if k != INSTANCE_ID_KEY}

    # ------------------------------------------------------------------
    # Load / initialize
    # ------------------------------------------------------------------

    def load_or_init(self) -> tuple[str, set[str]]:
        """Load the state file, recreating it when missing or corrupt.

        Returns:
            The persisted instance ID and the set of reported product families.
        """
        try:
            self._entries = parse_state(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            log.debug("state_file_missing", path=str(self._path))
            self._initialize()
        except (StateCorruption, UnicodeDecodeError) as exc:
            log.warning("state_file_corrupt", path=str(self._path), error=str(exc))
            self._initialize()

        return self._entries[INSTANCE_ID_KEY], self.reported

    def _initialize(self) -> None:
        """Truncate the file down to a single instanceId line."""
        instance_id = self._identity.resolve(self._supplied_instance_id)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(f"{INSTANCE_ID_KEY}:{instance_id}\n", encoding="utf-8")
        self._entries = {INSTANCE_ID_KEY: instance_id}
        log.info("state_file_initialized", path=str(self._path), instance_id=instance_id)

    # ------------------------------------------------------------------
    # Markers
    # ------------------------------------------------------------------

    def is_reported(self, product_family: str) -> bool:
        key = product_family.strip()
        return key != INSTANCE_ID_KEY and key in self._entries

    def mark_reported(self, product_family: str) -> None:
        """Append a ``<product_family>:1`` line without touching existing content."""
        key = product_family.strip()
        with self._path.open("ab+") as fh:
            # A torn previous write may have left the last line unterminated
            fh.seek(0, 2)
            if fh.tell() > 0:
                fh.seek(-1, 2)
                if fh.read(1) != b"\n":
                    fh.write(b"\n")
            fh.write(f"{key}:{REPORTED_MARKER}\n".encode())
        self._entries[key] = REPORTED_MARKER
        log.info("product_marked_reported", product_family=key)
