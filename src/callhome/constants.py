"""Centralized constants for callhome."""

# Environment
ENV_PREFIX = "PERCONA_"

# State file
DEFAULT_STATE_PATH = "/usr/local/percona/telemetry_uuid"
INSTANCE_ID_KEY = "instanceId"
REPORTED_MARKER = "1"

# Delivery
DEFAULT_TELEMETRY_URL = "https://check-dev.percona.com/v1/telemetry/GenericReport"
DEFAULT_SEND_TIMEOUT = 10

# Host identity sources, most stable first
HOST_ID_PATHS = (
    "/sys/class/dmi/id/product_uuid",
    "/etc/machine-id",
    "/var/lib/dbus/machine-id",
)
