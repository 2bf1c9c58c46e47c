DOMAIN = "ifeel_shutters"

CONF_HOST = "host"
CONF_EMAIL = "email"
CONF_PASSWORD = "password"
DEFAULT_NAME = "i-feel hub"

PLATFORMS = ["cover"]

# The hub session cookie lives ~30 minutes, refresh well before that
AUTH_INTERVAL_SECONDS = 10 * 60
UNIT_LIST_INTERVAL_SECONDS = 5 * 60

UNIT_TYPE_SHUTTER = "shutter"

# Options
CONF_POLL_INTERVAL = "poll_interval"
CONF_MAX_POLL_TIME = "max_poll_time"
CONF_POLL_MODE = "poll_mode"
CONF_DEFERRED_DELAY = "deferred_delay"
CONF_RESYNC_EXTERNAL = "resync_external"

POLL_MODE_CONTINUOUS = "continuous"
POLL_MODE_DEFERRED = "deferred"
POLL_MODES = [POLL_MODE_CONTINUOUS, POLL_MODE_DEFERRED]

# Position polling tuning
DEFAULT_POLL_INTERVAL_SEC = 2.5
DEFAULT_MAX_POLL_TIME_SEC = 60.0
DEFAULT_DEFERRED_DELAY_SEC = 40.0
DEFAULT_RESYNC_EXTERNAL = True

POSITION_MIN = 0
POSITION_MAX = 100
