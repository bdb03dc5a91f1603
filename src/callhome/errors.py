"""Exception hierarchy for callhome."""

from __future__ import annotations


class CallHomeError(Exception):
    """Base class for all callhome errors."""


class ConfigError(CallHomeError):
    """A required configuration value is missing."""


class IdentityResolutionError(CallHomeError):
    """A host identity source could not produce an identifier."""


class StateCorruption(CallHomeError):
    """The state file has no single well-formed instanceId entry."""


class TransportError(CallHomeError):
    """The report could not be delivered.

    ``status_code`` is set when the endpoint answered with a non-2xx status,
    and is ``None`` for connection failures and timeouts.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SerializationError(CallHomeError):
    """The outbound message could not be encoded as JSON."""
