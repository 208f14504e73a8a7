"""
Constants package — re-exports from domain-specific modules.

Centralized constants for the order sync service.

Usage:
    from order_sync.core.constants.sync import DEFAULT_MAX_RETRIES
    # or import everything:
    from order_sync.core.constants import sync
Version: 1.0.0
"""

from order_sync.core.constants import sync
from order_sync.core.constants.sync import (
    SHOPIFY_SERVICE,
    DEFAULT_REQUESTS_PER_SECOND,
    DEFAULT_RATE_INTERVAL_SECONDS,
    DEFAULT_CONCURRENCY,
    DEFAULT_MAX_RETRIES,
    DEFAULT_INITIAL_BACKOFF_SECONDS,
    DEFAULT_MAX_BACKOFF_SECONDS,
    BACKOFF_JITTER_RATIO,
    RATE_LIMIT_STATUS_CODE,
    TRANSIENT_STATUS_CODES,
    AUTH_STATUS_CODES,
    ORDERS_PAGE_SIZE,
    HEARTBEAT_INTERVAL_SECONDS,
    MSG_ALREADY_IN_PROGRESS,
    MSG_FULL_SYNC_STARTED,
    MSG_INCREMENTAL_SYNC_STARTED,
    MSG_RESUMED_SYNC_STARTED,
    MSG_CANCELLED_BY_USER,
    MSG_CANCELLED,
    MSG_NO_SYNC_IN_PROGRESS,
    MSG_SHUTTING_DOWN,
)

__all__ = [
    "sync",
    "SHOPIFY_SERVICE",
    "DEFAULT_REQUESTS_PER_SECOND",
    "DEFAULT_RATE_INTERVAL_SECONDS",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_INITIAL_BACKOFF_SECONDS",
    "DEFAULT_MAX_BACKOFF_SECONDS",
    "BACKOFF_JITTER_RATIO",
    "RATE_LIMIT_STATUS_CODE",
    "TRANSIENT_STATUS_CODES",
    "AUTH_STATUS_CODES",
    "ORDERS_PAGE_SIZE",
    "HEARTBEAT_INTERVAL_SECONDS",
    "MSG_ALREADY_IN_PROGRESS",
    "MSG_FULL_SYNC_STARTED",
    "MSG_INCREMENTAL_SYNC_STARTED",
    "MSG_RESUMED_SYNC_STARTED",
    "MSG_CANCELLED_BY_USER",
    "MSG_CANCELLED",
    "MSG_NO_SYNC_IN_PROGRESS",
    "MSG_SHUTTING_DOWN",
]
