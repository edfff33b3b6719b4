"""Pure constants for the filings API client. No side effects at import time."""

# === API ===
DEFAULT_BASE_URL = "https://api.sec-api.io"
ENV_PREFIX = "SECAPI_"
API_KEY_PLACEHOLDER = "your_api_key_here"
MIN_API_KEY_LENGTH = 10

# === Timeouts (seconds) ===
DEFAULT_REQUEST_TIMEOUT = 30

# === Retry ===
DEFAULT_RETRY_MAX_ATTEMPTS = 5  # Retries after the first attempt
DEFAULT_RETRY_INITIAL_DELAY = 1.0
DEFAULT_RETRY_MAX_DELAY = 60.0
DEFAULT_RETRY_BACKOFF_FACTOR = 2
MIN_RETRY_BACKOFF_FACTOR = 2

# === Rate Limit ===
DEFAULT_RATE_LIMIT_THRESHOLD = 0.1  # Throttle below 10% remaining
DEFAULT_QUEUE_WAIT = 60.0  # Wait when exhausted and reset time unknown
DEFAULT_QUEUE_WAIT_WARNING_THRESHOLD = 300.0
RATE_LIMIT_LIMIT_HEADER = "x-ratelimit-limit"
RATE_LIMIT_REMAINING_HEADER = "x-ratelimit-remaining"
RATE_LIMIT_RESET_HEADER = "x-ratelimit-reset"

# === Query ===
DEFAULT_PAGE_SIZE = 50
DEFAULT_SORT = [{"filedAt": {"order": "desc"}}]
