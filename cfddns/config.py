"""cfddns — Application-wide constants and path configuration."""

import os
from pathlib import Path

# ---------------------------------------------------------------------------
# Runtime state directory  (~/.cfddns/)
# ---------------------------------------------------------------------------
STATE_DIR = Path(os.environ.get("CFDDNS_HOME", Path.home() / ".cfddns"))
CONFIG_FILE = STATE_DIR / "config.json"
TOKEN_FILE = STATE_DIR / ".cloudflare_api_token"
LOG_FILE = STATE_DIR / "cf-ddns.log"
LOCK_DIR = STATE_DIR / "lock"
LOCK_FILE = LOCK_DIR / "cf-ddns.lock"

# ---------------------------------------------------------------------------
# Cloudflare API
# ---------------------------------------------------------------------------
CLOUDFLARE_API_BASE = "https://api.cloudflare.com/client/v4"
API_MAX_ATTEMPTS = 3
API_TIMEOUT_SECONDS = 30
RATE_LIMIT_ERROR_CODE = 10013

# Seconds to wait after a write before reading the record back
VERIFICATION_DELAY_SECONDS = 5

# Fallbacks used when a record's proxy/TTL settings cannot be read
DEFAULT_TTL = 1  # 1 = "automatic"
DEFAULT_PROXIED = False

# ---------------------------------------------------------------------------
# Public IP detection
# ---------------------------------------------------------------------------
DEFAULT_IP_SERVICES = (
    "https://api.ipify.org",
    "https://checkip.amazonaws.com",
    "https://ifconfig.me/ip",
    "https://api.ip.sb/ip",
    "https://ipv4.icanhazip.com",
)
IP_CONNECT_TIMEOUT_SECONDS = 5
IP_REQUEST_TIMEOUT_SECONDS = 10

# ---------------------------------------------------------------------------
# Configuration defaults and accepted ranges
# ---------------------------------------------------------------------------
DEFAULT_MAX_RETRIES = 3
MAX_RETRIES_RANGE = (1, 10)
DEFAULT_SLEEP_BETWEEN_RETRIES = 5
SLEEP_BETWEEN_RETRIES_RANGE = (1, 30)
DEFAULT_MAX_WAIT_FOR_NET = 300
MAX_WAIT_FOR_NET_RANGE = (60, 900)
DEFAULT_WAIT_INTERVAL = 10
DEFAULT_RUN_INTERVAL = "5min"
DEFAULT_LOG_MAX_LINES = 1000

# Sentinel subdomain meaning "the zone apex"
APEX_SENTINEL = "@"
