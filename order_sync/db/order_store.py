"""
Order store — durable, idempotent cache of synchronized Shopify orders.

Rows are keyed by (shop, order_id); repeated delivery of an order
overwrites the existing row, so replaying a page after a resume never
changes the final order count.

Expected table:
    shop_orders(
        shop text not null,
        order_id bigint not null,
        order_number bigint,
        created_at timestamptz,
        payload jsonb not null,
        synced_at timestamptz not null,
        primary key (shop, order_id)
    )
Version: 1.0.0
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from order_sync.core.config import settings
from order_sync.clients.supabase_client import SupabaseClient
from order_sync.db.base_store import BaseStore

logger = logging.getLogger("order_store")


class OrderStore(BaseStore):
    """Supabase-backed order cache used as the sync record store."""

    def __init__(self, supabase_client: Optional[SupabaseClient] = None, table: Optional[str] = None):
        super().__init__(supabase_client)
        self._table = table or settings.orders_table

    @staticmethod
    def _to_row(shop: str, order: Dict[str, Any], synced_at: str) -> Optional[Dict[str, Any]]:
        order_id = order.get("id")
        if order_id is None:
            return None
        return {
            "shop": shop,
            "order_id": int(order_id),
            "order_number": order.get("order_number"),
            "created_at": order.get("created_at"),
            "payload": order,
            "synced_at": synced_at,
        }

    async def upsert_orders(self, shop: str, orders: List[Dict[str, Any]]) -> int:
        """
        Insert or overwrite orders for a shop.

        Args:
            shop: Shop domain
            orders: Raw Shopify order payloads

        Returns:
            Number of rows written
        """
        synced_at = datetime.now(timezone.utc).isoformat()

        # One statement cannot touch the same key twice; last delivery wins
        rows_by_id: Dict[int, Dict[str, Any]] = {}
        for order in orders:
            row = self._to_row(shop, order, synced_at)
            if row is None:
                logger.warning(f"Skipping order without id for {shop}")
                continue
            rows_by_id[row["order_id"]] = row

        rows = list(rows_by_id.values())
        await self._upsert(self._table, rows, on_conflict="shop,order_id")
        logger.debug(f"Upserted {len(rows)} orders for {shop}")
        return len(rows)

    async def latest_order_id(self, shop: str) -> Optional[str]:
        """Highest stored order id for the shop, or None when the cache is empty."""
        rows = await self._select(
            self._table,
            columns="order_id",
            filters={"shop": shop},
            order_by="order_id",
            desc=True,
            limit=1,
        )
        if not rows:
            return None
        return str(rows[0]["order_id"])

    async def order_count(self, shop: str) -> int:
        return await self._count(self._table, filters={"shop": shop})

    async def list_orders(self, shop: str, limit: int = 250) -> List[Dict[str, Any]]:
        """Most recent cached orders, newest first."""
        rows = await self._select(
            self._table,
            columns="payload",
            filters={"shop": shop},
            order_by="order_id",
            desc=True,
            limit=limit,
        )
        return [row["payload"] for row in rows]
