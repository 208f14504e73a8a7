"""
Base store — shared Supabase client access for all stores.

Base Supabase store with shared CRUD helpers.

All domain-specific stores inherit from this class to get
standardised upsert / select / count primitives. PostgREST failures
are raised as StorageError so the sync engine can record them.
Version: 1.0.0
"""

import logging
from typing import Any, Dict, List

from postgrest.exceptions import APIError

from order_sync.core.config import settings
from order_sync.core.exceptions import StorageError
from order_sync.clients.supabase_client import SupabaseClient

logger = logging.getLogger("base_store")


class BaseStore:
    """Base class for all Supabase stores providing shared CRUD operations."""

    def __init__(self, supabase_client: SupabaseClient | None = None) -> None:
        self._supabase_client = supabase_client or SupabaseClient(settings)

    @property
    def _client(self):
        """Get the Supabase client instance."""
        return self._supabase_client.client

    async def _upsert(
        self, table: str, rows: List[Dict[str, Any]], on_conflict: str | None = None
    ) -> None:
        """Upsert rows into a table (insert or update on conflict)."""
        if not rows:
            return
        try:
            if on_conflict:
                self._client.table(table).upsert(rows, on_conflict=on_conflict).execute()
            else:
                self._client.table(table).upsert(rows).execute()
        except APIError as e:
            logger.info("supabase error table=%s detail=%s", table, str(e))
            raise StorageError(table, f"upsert failed: {e}")

    async def _select(
        self,
        table: str,
        columns: str = "*",
        filters: Dict[str, Any] | None = None,
        order_by: str | None = None,
        desc: bool = False,
        limit: int | None = None,
    ) -> List[Dict[str, Any]]:
        """Select rows from a table with optional filters, ordering and limit."""
        try:
            query = self._client.table(table).select(columns)
            if filters:
                for key, value in filters.items():
                    query = query.eq(key, value)
            if order_by:
                query = query.order(order_by, desc=desc)
            if limit is not None:
                query = query.limit(limit)
            response = query.execute()
            return response.data or []
        except APIError as e:
            logger.info("supabase error table=%s detail=%s", table, str(e))
            raise StorageError(table, f"select failed: {e}")

    async def _count(self, table: str, filters: Dict[str, Any] | None = None) -> int:
        """Exact row count for the filters."""
        try:
            query = self._client.table(table).select("*", count="exact", head=True)
            if filters:
                for key, value in filters.items():
                    query = query.eq(key, value)
            response = query.execute()
            return response.count or 0
        except APIError as e:
            logger.info("supabase error table=%s detail=%s", table, str(e))
            raise StorageError(table, f"count failed: {e}")
