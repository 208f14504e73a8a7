"""
Supabase client — lazy per-wrapper access to the order cache database.

The underlying supabase-py client is created on the first query, so the
service can boot (and serve /health) before credentials are configured.
Version: 1.0.0
"""
import logging
from typing import Optional

from supabase import create_client, Client

from order_sync.core.config import Settings

logger = logging.getLogger("supabase_client")


class SupabaseClient:
    """Supabase client wrapper using the official supabase-py SDK."""

    def __init__(self, settings: Settings) -> None:
        self._url = settings.supabase_url
        self._key = settings.supabase_service_role_key
        self._client: Optional[Client] = None

    @property
    def configured(self) -> bool:
        return bool(self._url and self._key)

    def get_client(self) -> Client:
        """
        Get or create this wrapper's Supabase client.

        Raises:
            RuntimeError: SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY is missing
        """
        if self._client is None:
            if not self.configured:
                raise RuntimeError(
                    "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set for Supabase access"
                )
            self._client = create_client(self._url, self._key)
            logger.info("supabase client initialized url=%s", self._url)
        return self._client

    @property
    def client(self) -> Client:
        """Property accessor for the Supabase client."""
        return self.get_client()
