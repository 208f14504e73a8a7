"""
Sync constants — scheduler defaults, retryable status codes, user messages.

Order sync constants.
Version: 1.0.0
"""

# Service label used in remote error messages
SHOPIFY_SERVICE: str = "Shopify"

# Shopify REST allows 2 requests/second; 1.8 keeps a safety margin
DEFAULT_REQUESTS_PER_SECOND: float = 1.8
DEFAULT_RATE_INTERVAL_SECONDS: float = 1.0
DEFAULT_CONCURRENCY: int = 2

# Retry policy
DEFAULT_MAX_RETRIES: int = 5
DEFAULT_INITIAL_BACKOFF_SECONDS: float = 1.0
DEFAULT_MAX_BACKOFF_SECONDS: float = 30.0
BACKOFF_JITTER_RATIO: float = 0.3

# HTTP status codes the scheduler treats as transient
RATE_LIMIT_STATUS_CODE: int = 429
TRANSIENT_STATUS_CODES: frozenset = frozenset({500, 502, 503, 504})
AUTH_STATUS_CODES: frozenset = frozenset({401, 403})

# Shopify maximum page size for orders.json
ORDERS_PAGE_SIZE: int = 250

# Seconds between SSE keep-alive comments
HEARTBEAT_INTERVAL_SECONDS: float = 30.0

# User-facing messages
MSG_ALREADY_IN_PROGRESS: str = "Sync already in progress"
MSG_FULL_SYNC_STARTED: str = "Full sync started"
MSG_INCREMENTAL_SYNC_STARTED: str = "Incremental sync started"
MSG_RESUMED_SYNC_STARTED: str = "Resuming interrupted sync"
MSG_CANCELLED_BY_USER: str = "Sync cancelled by user"
MSG_CANCELLED: str = "Sync cancelled"
MSG_NO_SYNC_IN_PROGRESS: str = "No sync in progress"
MSG_SHUTTING_DOWN: str = "Sync service is shutting down"
