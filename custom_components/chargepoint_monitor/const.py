"""Constants for ChargePoint Monitor integration.

This module contains all the constants used throughout the integration,
including the API endpoint, configuration keys, defaults and status values.
"""

DOMAIN = "chargepoint_monitor"

API_URL = "https://mc.chargepoint.com/map-prod/v3/station/info"
USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 11; IN2013) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/93.0.4577.82 Mobile Safari/537.36"
)

DEFAULT_POLL_INTERVAL_MIN = 5
DEFAULT_REQUEST_TIMEOUT = 10.0  # Seconds per device call
DEFAULT_COOLDOWN_MIN = 0
DEFAULT_MAX_PARALLEL = 1

STORAGE_VERSION = 1
STORAGE_KEY = f"{DOMAIN}.state"
STORAGE_SAVE_DELAY = 10

ERROR_CANNOT_CONNECT = "cannot_connect"
ERROR_TIMEOUT = "timeout_error"
ERROR_API_ERROR = "api_error"
ERROR_UNKNOWN = "unknown_error"

CONF_STATIONS = "stations"
CONF_CHANNELS = "channels"
CONF_SUBSCRIPTIONS = "subscriptions"
CONF_DEVICE_ID = "device_id"
CONF_DEVICE_ID2 = "device_id2"
CONF_ENABLED = "enabled"
CONF_NOTIFY_ON_AVAILABLE = "notify_on_available"
CONF_INSTANCE = "instance"
CONF_USER = "user"
CONF_LABEL = "label"
CONF_STATION = "station"
CONF_RECIPIENT = "recipient"
CONF_POLL_INTERVAL_MIN = "poll_interval_min"
CONF_COOLDOWN_MIN = "notify_cooldown_min"
CONF_SOC_THRESHOLD = "soc_threshold"
CONF_SOC_ENTITY = "soc_entity"
CONF_MAX_DISTANCE_M = "max_distance_m"
CONF_POSITION_ENTITY = "position_entity"
CONF_MAX_PARALLEL = "max_parallel"
CONF_LEGACY_STATUS_TRIGGER = "legacy_status_trigger"

# Normalized port and station statuses
STATUS_AVAILABLE = "available"
STATUS_IN_USE = "in_use"
STATUS_UNAVAILABLE = "unavailable"
STATUS_UNKNOWN = "unknown"
STATUS_DISABLED = "disabled"
STATUS_NO_DATA = "no_data"
STATUS_INITIALIZED = "initialized"

IN_USE_STATUSES = frozenset({"in_use", "charging", "occupied"})
UNAVAILABLE_STATUSES = frozenset({"unavailable", "out_of_service", "faulted", "offline"})

UNKNOWN_CITY = "Unknown"

NOTIFY_DOMAIN = "notify"

# Subscription selectors matching every station
WILDCARD_SELECTORS = frozenset({"*", "all", "__all__"})

# Eligibility reasons
REASON_NO_TRANSITION = "no_transition"
REASON_NO_SUBSCRIBERS = "no_subscribers"
REASON_NO_RECIPIENTS = "no_recipients"
REASON_ALREADY_NOTIFIED = "already_notified"
REASON_COOLDOWN = "cooldown"
REASON_SOC_UNAVAILABLE = "soc_unavailable"
REASON_SOC_ABOVE_THRESHOLD = "soc_above_threshold"
REASON_DISTANCE_UNAVAILABLE = "distance_unavailable"
REASON_DISTANCE_EXCEEDED = "distance_exceeded"

SERVICE_SEND_TEST_MESSAGE = "send_test_message"
SERVICE_RESET_NOTIFIED = "reset_notified"

NOTIFICATION_TITLE = "Charging station available"
TEST_MESSAGE = "ChargePoint Monitor test message"
