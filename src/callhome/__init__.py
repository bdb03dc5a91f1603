"""callhome: one-time-per-product telemetry reporting for installed hosts."""

__version__ = "0.1.0"
