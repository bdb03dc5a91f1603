"""Tests for the ReportStateStore file ledger."""

from __future__ import annotations

from pathlib import Path

import pytest

from callhome.errors import StateCorruption
from callhome.telemetry.identity import InstanceIdentity
from callhome.telemetry.models import is_valid_uuid
from callhome.telemetry.state import ReportStateStore, parse_state

INSTANCE_ID = "13f5fc62-35b4-4716-b3e6-96c761fc204d"
OTHER_ID = "6e5ff5d4-5617-11ee-8c99-0242ac120002"


def _store(path: Path, identity: InstanceIdentity, supplied: str | None = None):
    return ReportStateStore(path, supplied_instance_id=supplied, identity=identity)


# ---------------------------------------------------------------------------
# parse_state
# ---------------------------------------------------------------------------


class TestParseState:
    """Tests for the key:value line parser."""

    def test_parses_instance_and_products(self) -> None:
        text = f"instanceId:{INSTANCE_ID}\nPRODUCT_FAMILY_PS:1\nPRODUCT_FAMILY_PXB:1\n"
        entries = parse_state(text)
        assert entries == {
            "instanceId": INSTANCE_ID,
            "PRODUCT_FAMILY_PS": "1",
            "PRODUCT_FAMILY_PXB": "1",
        }
        assert list(entries) == ["instanceId", "PRODUCT_FAMILY_PS", "PRODUCT_FAMILY_PXB"]

    def test_trims_whitespace(self) -> None:
        entries = parse_state(f"  instanceId :  {INSTANCE_ID}  \n\tX : 1 \n")
        assert entries == {"instanceId": INSTANCE_ID, "X": "1"}

    def test_skips_lines_without_colon_or_key(self) -> None:
        entries = parse_state(f"garbage line\n\n:orphan\ninstanceId:{INSTANCE_ID}\n")
        assert entries == {"instanceId": INSTANCE_ID}

    def test_value_keeps_later_colons(self) -> None:
        entries = parse_state(f"instanceId:{INSTANCE_ID}\nnote:a:b\n")
        assert entries["note"] == "a:b"

    def test_missing_instance_id_is_corrupt(self) -> None:
        with pytest.raises(StateCorruption):
            parse_state("PRODUCT_FAMILY_PS:1\n")

    def test_malformed_instance_id_is_corrupt(self) -> None:
        with pytest.raises(StateCorruption, match="malformed"):
            parse_state("instanceId:not-a-uuid\n")

    def test_duplicate_instance_id_is_corrupt(self) -> None:
        with pytest.raises(StateCorruption):
            parse_state(f"instanceId:{INSTANCE_ID}\ninstanceId:{OTHER_ID}\n")


# ---------------------------------------------------------------------------
# load_or_init
# ---------------------------------------------------------------------------


class TestLoadOrInit:
    """Tests for ReportStateStore.load_or_init."""

    def test_creates_missing_file_and_parents(
        self, state_path: Path, no_host_identity: InstanceIdentity
    ) -> None:
        instance_id, reported = _store(state_path, no_host_identity).load_or_init()

        assert is_valid_uuid(instance_id)
        assert reported == set()
        assert state_path.read_text(encoding="utf-8") == f"instanceId:{instance_id}\n"

    def test_uses_supplied_id_on_creation(
        self, state_path: Path, no_host_identity: InstanceIdentity
    ) -> None:
        instance_id, _ = _store(state_path, no_host_identity, INSTANCE_ID).load_or_init()

        assert instance_id == INSTANCE_ID
        assert state_path.read_text(encoding="utf-8") == f"instanceId:{INSTANCE_ID}\n"

    def test_persisted_id_survives_reload(
        self, state_path: Path, no_host_identity: InstanceIdentity
    ) -> None:
        first, _ = _store(state_path, no_host_identity).load_or_init()
        second, _ = _store(state_path, no_host_identity).load_or_init()
        assert first == second

    def test_stored_id_wins_over_supplied(
        self, state_path: Path, no_host_identity: InstanceIdentity
    ) -> None:
        state_path.parent.mkdir(parents=True)
        state_path.write_text(f"instanceId:{INSTANCE_ID}\n", encoding="utf-8")

        instance_id, _ = _store(state_path, no_host_identity, OTHER_ID).load_or_init()

        assert instance_id == INSTANCE_ID

    def test_loads_reported_set(
        self, state_path: Path, no_host_identity: InstanceIdentity
    ) -> None:
        state_path.parent.mkdir(parents=True)
        state_path.write_text(f"instanceId:{INSTANCE_ID}\nA:1\nB:1\n", encoding="utf-8")

        store = _store(state_path, no_host_identity)
        instance_id, reported = store.load_or_init()

        assert instance_id == INSTANCE_ID
        assert reported == {"A", "B"}
        assert store.is_reported("A")
        assert not store.is_reported("C")

    def test_malformed_file_is_replaced_by_single_line(
        self, state_path: Path, no_host_identity: InstanceIdentity
    ) -> None:
        state_path.parent.mkdir(parents=True)
        state_path.write_text("X:1\nY:1\ninstanceId:spoiled\n", encoding="utf-8")

        store = _store(state_path, no_host_identity, INSTANCE_ID)
        instance_id, reported = store.load_or_init()

        assert instance_id == INSTANCE_ID
        assert reported == set()
        assert not store.is_reported("X")
        assert state_path.read_text(encoding="utf-8") == f"instanceId:{INSTANCE_ID}\n"

    def test_undecodable_file_is_reinitialized(
        self, state_path: Path, no_host_identity: InstanceIdentity
    ) -> None:
        state_path.parent.mkdir(parents=True)
        state_path.write_bytes(b"\xff\xfe\x00garbage")

        instance_id, _ = _store(state_path, no_host_identity, INSTANCE_ID).load_or_init()

        assert instance_id == INSTANCE_ID
        assert state_path.read_text(encoding="utf-8") == f"instanceId:{INSTANCE_ID}\n"

    def test_instance_id_key_is_never_a_product(
        self, state_path: Path, no_host_identity: InstanceIdentity
    ) -> None:
        store = _store(state_path, no_host_identity)
        store.load_or_init()
        assert store.is_reported("instanceId") is False


# ---------------------------------------------------------------------------
# mark_reported
# ---------------------------------------------------------------------------


class TestMarkReported:
    """Tests for the append-only marker write."""

    def test_appends_marker_line(
        self, state_path: Path, no_host_identity: InstanceIdentity
    ) -> None:
        store = _store(state_path, no_host_identity, INSTANCE_ID)
        store.load_or_init()

        store.mark_reported("PRODUCT_FAMILY_PS")

        assert state_path.read_text(encoding="utf-8") == (
            f"instanceId:{INSTANCE_ID}\nPRODUCT_FAMILY_PS:1\n"
        )
        assert store.is_reported("PRODUCT_FAMILY_PS")

    def test_preserves_existing_content(
        self, state_path: Path, no_host_identity: InstanceIdentity
    ) -> None:
        state_path.parent.mkdir(parents=True)
        original = f"instanceId : {INSTANCE_ID}\n# comment without colon\nA : 1\n"
        state_path.write_text(original, encoding="utf-8")

        store = _store(state_path, no_host_identity)
        store.load_or_init()
        store.mark_reported("B")

        assert state_path.read_text(encoding="utf-8") == original + "B:1\n"

    def test_terminates_torn_last_line(
        self, state_path: Path, no_host_identity: InstanceIdentity
    ) -> None:
        state_path.parent.mkdir(parents=True)
        state_path.write_text(f"instanceId:{INSTANCE_ID}\nA:1", encoding="utf-8")

        store = _store(state_path, no_host_identity)
        store.load_or_init()
        store.mark_reported("B")

        lines = state_path.read_text(encoding="utf-8").splitlines()
        assert lines == [f"instanceId:{INSTANCE_ID}", "A:1", "B:1"]

    def test_marker_visible_to_next_load(
        self, state_path: Path, no_host_identity: InstanceIdentity
    ) -> None:
        store = _store(state_path, no_host_identity)
        store.load_or_init()
        store.mark_reported("PRODUCT_FAMILY_PXC")

        _, reported = _store(state_path, no_host_identity).load_or_init()
        assert reported == {"PRODUCT_FAMILY_PXC"}
