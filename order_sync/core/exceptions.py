"""
Custom exception hierarchy for the order sync service.

Exceptions are categorized as:
- RetryableError: Transient remote errors that the request scheduler retries
- NonRetryableError: Permanent errors that surface to the sync engine at once

The scheduler only ever retries RetryableError subclasses; the sync engine
never retries on its own and turns anything that reaches it into the
durable "error" phase.
"""


class OrderSyncException(Exception):
    """Base exception for the order sync service."""
    pass


# ============================================
# RETRYABLE ERRORS - Retried by the scheduler
# ============================================
class RetryableError(OrderSyncException):
    """
    Base class for errors that should trigger retry.

    Use this for transient errors where retrying might succeed:
    - Rate limits (with the server's suggested delay)
    - 5xx responses from the remote API
    - Network timeouts and dropped connections
    """
    pass


class TransientRemoteError(RetryableError):
    """
    Server-side transient failure from a remote API (500/502/503/504).

    The remote service might recover, so the scheduler backs off and retries.
    """
    def __init__(self, service: str, message: str, status_code: int = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service} API error: {message}")


class RateLimitError(TransientRemoteError):
    """
    Rate limit exceeded (HTTP 429).

    retry_after carries the server-suggested wait in seconds, or None when
    the response did not include one.
    """
    def __init__(self, service: str, retry_after: float = None):
        self.retry_after = retry_after
        if retry_after is None:
            message = "rate limited"
        else:
            message = f"rate limited. Retry after {retry_after}s"
        super().__init__(service, message, status_code=429)


class ConnectionTimeoutError(TransientRemoteError):
    """Connection or timeout error - typically transient."""
    def __init__(self, service: str, message: str):
        super().__init__(service, message, status_code=None)


# ============================================
# NON-RETRYABLE ERRORS - No automatic retry
# ============================================
class NonRetryableError(OrderSyncException):
    """
    Base class for errors that should NOT trigger retry.

    Use this for permanent errors where retrying won't help:
    - 4xx responses other than 429
    - Storage write failures
    - User-initiated cancellation
    """
    pass


class PermanentRemoteError(NonRetryableError):
    """Remote API failure that will not go away by retrying."""
    def __init__(self, service: str, message: str, status_code: int = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service} API error: {message}")


class AuthenticationError(PermanentRemoteError):
    """
    API authentication failed (401/403).

    Needs configuration fix, not retry.
    """
    pass


class StorageError(NonRetryableError):
    """Reading or writing the order store or sync status store failed."""
    def __init__(self, table: str, message: str):
        self.table = table
        super().__init__(f"Storage error on {table}: {message}")


class SyncCancelledError(NonRetryableError):
    """A sync run observed a user cancellation request at a checkpoint."""
    pass
