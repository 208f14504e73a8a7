"""
Sync status store — durable per-shop sync state.

One row per shop holding the phase, progress counters and the resume
cursor. Only the sync engine writes it; updates are partial, so fields
that are not passed keep their stored value.

Expected table:
    order_sync_status(
        shop text primary key,
        phase text not null default 'idle',
        synced_count integer not null default 0,
        total_count integer,
        resume_cursor text,
        last_completed_at timestamptz,
        error_message text,
        last_order_id text,
        updated_at timestamptz
    )
Version: 1.0.0
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from order_sync.core.config import settings
from order_sync.clients.supabase_client import SupabaseClient
from order_sync.db.base_store import BaseStore
from order_sync.schemas.sync import SyncStatus

logger = logging.getLogger("sync_status_store")

_UPDATABLE_FIELDS = frozenset(SyncStatus.model_fields) - {"updated_at"}


def _to_column(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class SyncStatusStore(BaseStore):
    """Database operations for the per-shop order sync status."""

    def __init__(self, supabase_client: Optional[SupabaseClient] = None, table: Optional[str] = None):
        super().__init__(supabase_client)
        self._table = table or settings.sync_status_table

    async def get_status(self, shop: str) -> SyncStatus:
        """
        Get the stored status for a shop.

        Returns:
            SyncStatus, defaulting to idle with zero counters for unknown shops
        """
        rows = await self._select(self._table, filters={"shop": shop}, limit=1)
        if not rows:
            return SyncStatus()
        row = {key: value for key, value in rows[0].items() if key != "shop"}
        return SyncStatus.model_validate(row)

    async def update_status(self, shop: str, **fields: Any) -> None:
        """
        Partially update the status row, creating it when missing.

        Args:
            shop: Shop domain
            **fields: Any SyncStatus field except updated_at

        Raises:
            ValueError: On an unknown field name
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown sync status fields: {sorted(unknown)}")

        payload = {key: _to_column(value) for key, value in fields.items()}
        payload["shop"] = shop
        payload["updated_at"] = datetime.now(timezone.utc).isoformat()

        await self._upsert(self._table, [payload], on_conflict="shop")
        logger.debug(f"Sync status updated shop={shop} fields={sorted(fields)}")
