"""
Pytest configuration and shared fixtures for order sync tests.

Provides in-memory store doubles, a scripted Shopify page source,
a fast scheduler, and a mocked Supabase table builder.
Version: 1.0.0
"""
import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest
from unittest.mock import MagicMock

from order_sync.schemas.sync import OrderPage, SyncStatus
from order_sync.services.order_sync_service import OrderSyncService
from order_sync.services.progress_hub import ProgressHub, SyncRegistry
from order_sync.utils.rate_limiter import RateLimitedScheduler


# ---------------------------------------------------------------------------
# Store doubles
# ---------------------------------------------------------------------------

class InMemoryOrderStore:
    """Order store double: idempotent upsert keyed by order id."""

    def __init__(self) -> None:
        self.orders: Dict[str, Dict[int, Dict[str, Any]]] = {}
        self.upsert_calls: List[Tuple[str, List[int]]] = []

    async def upsert_orders(self, shop: str, orders: List[Dict[str, Any]]) -> int:
        shop_orders = self.orders.setdefault(shop, {})
        ids = []
        for order in orders:
            shop_orders[int(order["id"])] = order
            ids.append(int(order["id"]))
        self.upsert_calls.append((shop, ids))
        return len(set(ids))

    async def latest_order_id(self, shop: str) -> Optional[str]:
        shop_orders = self.orders.get(shop)
        if not shop_orders:
            return None
        return str(max(shop_orders))

    async def order_count(self, shop: str) -> int:
        return len(self.orders.get(shop, {}))

    async def list_orders(self, shop: str, limit: int = 250) -> List[Dict[str, Any]]:
        shop_orders = self.orders.get(shop, {})
        return [shop_orders[key] for key in sorted(shop_orders, reverse=True)][:limit]


class InMemorySyncStatusStore:
    """Sync status store double with partial-update semantics."""

    def __init__(self) -> None:
        self.statuses: Dict[str, SyncStatus] = {}
        self.updates: List[Tuple[str, Dict[str, Any]]] = []

    async def get_status(self, shop: str) -> SyncStatus:
        return self.statuses.get(shop, SyncStatus())

    async def update_status(self, shop: str, **fields: Any) -> None:
        current = self.statuses.get(shop, SyncStatus())
        self.statuses[shop] = current.model_copy(update=fields)
        self.updates.append((shop, dict(fields)))


# ---------------------------------------------------------------------------
# Remote page source
# ---------------------------------------------------------------------------

def make_orders(*ids: int) -> List[Dict[str, Any]]:
    return [{"id": order_id, "order_number": 1000 + order_id} for order_id in ids]


class ScriptedPages:
    """
    Serves a fixed paginated collection.

    Page 1 is returned for cursor=None; later pages are addressed by the
    cursor "page-N". A page index listed in `gates` blocks until its
    asyncio.Event is set; a page index listed in `errors` raises instead.
    """

    def __init__(self, pages: List[List[Dict[str, Any]]]) -> None:
        self.pages = pages
        self.calls: List[Dict[str, Optional[str]]] = []
        self.gates: Dict[int, asyncio.Event] = {}
        self.entered: Dict[int, asyncio.Event] = {}
        self.errors: Dict[int, List[Exception]] = {}

    def gate(self, index: int) -> asyncio.Event:
        self.gates[index] = asyncio.Event()
        self.entered[index] = asyncio.Event()
        return self.gates[index]

    async def __call__(self, shop: str, cursor: Optional[str] = None, since_id: Optional[str] = None) -> OrderPage:
        self.calls.append({"shop": shop, "cursor": cursor, "since_id": since_id})
        index = 0 if cursor is None else int(cursor.split("-")[1]) - 1

        if index in self.entered:
            self.entered[index].set()
        if index in self.gates:
            await self.gates[index].wait()
        if self.errors.get(index):
            raise self.errors[index].pop(0)

        orders = self.pages[index]
        if cursor is None and since_id is not None:
            orders = [order for order in orders if order["id"] > int(since_id)]
        has_more = index + 1 < len(self.pages)
        next_cursor = f"page-{index + 2}" if has_more else None
        return OrderPage(orders=orders, next_cursor=next_cursor, has_more=has_more)

    @property
    def cursors(self) -> List[Optional[str]]:
        return [call["cursor"] for call in self.calls]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def order_store():
    return InMemoryOrderStore()


@pytest.fixture
def status_store():
    return InMemorySyncStatusStore()


@pytest.fixture
def scripted_pages():
    """Factory: scripted_pages([1, 2], [3]) serves pages of orders with those ids."""
    def _make(*id_pages):
        return ScriptedPages([make_orders(*ids) for ids in id_pages])
    return _make


@pytest.fixture
def three_pages(scripted_pages):
    """Remote collection of 3 pages sized 2, 2, 1."""
    return scripted_pages([1, 2], [3, 4], [5])


@pytest.fixture
def fast_scheduler():
    """Scheduler with a generous ceiling and near-zero backoff."""
    return RateLimitedScheduler(
        requests_per_second=1000,
        interval=0.01,
        concurrency=2,
        max_retries=2,
        initial_backoff=0.001,
        max_backoff=0.002,
    )


@pytest.fixture
def registry():
    return SyncRegistry()


@pytest.fixture
def hub(registry):
    return ProgressHub(registry)


@pytest.fixture
def make_service(fast_scheduler, status_store, order_store):
    """Build an OrderSyncService; a fresh registry models a process restart."""
    def _make(fetch_page, registry=None):
        if registry is None:
            registry = SyncRegistry()
        return OrderSyncService(
            fetch_page=fetch_page,
            scheduler=fast_scheduler,
            status_store=status_store,
            order_store=order_store,
            registry=registry,
            hub=ProgressHub(registry),
        )
    return _make


@pytest.fixture
def mock_supabase_table():
    """Build a chained mock table builder for Supabase."""
    mock_table = MagicMock()
    for method in ("select", "upsert", "eq", "order", "limit"):
        getattr(mock_table, method).return_value = mock_table
    mock_table.execute.return_value = MagicMock(data=[], count=0)
    return mock_table


@pytest.fixture
def mock_supabase_client(mock_supabase_table):
    """Mocked SupabaseClient whose .client.table() returns the chained builder."""
    client = MagicMock()
    client.client.table.return_value = mock_supabase_table
    return client
