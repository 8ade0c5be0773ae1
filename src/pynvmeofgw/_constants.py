"""Internal constants shared across the library."""

import errno

USER_AGENT = "pynvmeofgw"

#: Heartbeat period in seconds (same default as the monitor tick period).
DEFAULT_BEACON_PERIOD: float = 2.0

#: Per-request timeout for RPCs against the gateway and the monitor group service.
DEFAULT_RPC_TIMEOUT: float = 10.0

# ------------------------------------------------------------------
# Retry backoff for admission and ANA state pushes
# ------------------------------------------------------------------

DEFAULT_RETRY_INITIAL_DELAY: float = 0.05
DEFAULT_RETRY_MAX_DELAY: float = 5.0
DEFAULT_RETRY_FACTOR: float = 2.0
DEFAULT_RETRY_JITTER: float = 0.2

# ------------------------------------------------------------------
# Control plane (MQTT)
# ------------------------------------------------------------------

DEFAULT_CONTROL_PLANE_PORT = 1883
DEFAULT_MQTT_KEEPALIVE = 60
DEFAULT_CONNECT_TIMEOUT: float = 10.0
MAP_TOPIC_TEMPLATE = "nvmeof/{pool}/{group}/map"
BEACON_TOPIC_TEMPLATE = "nvmeof/{pool}/{group}/beacon"

# ------------------------------------------------------------------
# Gateway RPC endpoints
# ------------------------------------------------------------------

GET_SUBSYSTEMS_ENDPOINT = "/v1/get_subsystems"
SET_ANA_STATE_ENDPOINT = "/v1/set_ana_state"
SET_GROUP_ID_ENDPOINT = "/v1/set_group_id"

#: Status codes in an RPC reply that mean "the request itself is invalid".
REJECTED_STATUS_CODES: frozenset[int] = frozenset({errno.EINVAL})

#: set_group_id status meaning the gateway already holds the requested slot.
GROUP_ALREADY_CLAIMED_STATUS = errno.EEXIST

#: HTTP statuses in the 4xx range that are still worth retrying.
RETRYABLE_CLIENT_STATUSES: frozenset[int] = frozenset({408, 425, 429})
