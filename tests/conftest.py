"""Shared fixtures for the callhome test suite."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest
import structlog

from callhome.config import get_settings
from callhome.telemetry.identity import InstanceIdentity

INSTANCE_ID = "13f5fc62-35b4-4716-b3e6-96c761fc204d"


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch):
    """Strip PERCONA_* variables and drop cached settings around each test."""
    for key in list(os.environ):
        if key.upper().startswith("PERCONA_"):
            monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    original_handlers = logging.root.handlers[:]
    yield
    get_settings.cache_clear()
    # setup_logging binds whatever stderr was current; CliRunner swaps it out
    structlog.reset_defaults()
    logging.root.handlers[:] = original_handlers


@pytest.fixture()
def state_path(tmp_path: Path) -> Path:
    """A state file location that does not exist yet."""
    return tmp_path / "percona" / "telemetry_uuid"


@pytest.fixture()
def no_host_identity(tmp_path: Path) -> InstanceIdentity:
    """An identity resolver whose host sources are all missing."""
    return InstanceIdentity(host_id_paths=[tmp_path / "missing-machine-id"])
