"""
Unit tests for OrderStore and the BaseStore helpers it relies on.

Tests cover:
- upsert rows, conflict target and duplicate collapsing
- latest_order_id / order_count / list_orders queries
- APIError surfaces as StorageError

Version: 1.0.0
"""
import pytest

from postgrest.exceptions import APIError

from order_sync.core.exceptions import StorageError
from order_sync.db.order_store import OrderStore


pytestmark = pytest.mark.unit

SHOP = "test-store.myshopify.com"


@pytest.fixture
def store(mock_supabase_client):
    return OrderStore(supabase_client=mock_supabase_client, table="shop_orders")


class TestUpsertOrders:

    @pytest.mark.asyncio
    async def test_upserts_rows_keyed_by_shop_and_order(self, store, mock_supabase_client, mock_supabase_table):
        written = await store.upsert_orders(SHOP, [{"id": 11, "order_number": 1011}, {"id": 12}])

        assert written == 2
        mock_supabase_client.client.table.assert_called_with("shop_orders")
        rows = mock_supabase_table.upsert.call_args.args[0]
        assert mock_supabase_table.upsert.call_args.kwargs["on_conflict"] == "shop,order_id"
        assert [row["order_id"] for row in rows] == [11, 12]
        assert rows[0]["shop"] == SHOP
        assert rows[0]["order_number"] == 1011
        assert rows[0]["payload"] == {"id": 11, "order_number": 1011}
        assert rows[0]["synced_at"]

    @pytest.mark.asyncio
    async def test_duplicate_ids_collapse_to_last_delivery(self, store, mock_supabase_table):
        written = await store.upsert_orders(SHOP, [{"id": 5, "note": "old"}, {"id": 5, "note": "new"}])

        rows = mock_supabase_table.upsert.call_args.args[0]
        assert written == 1
        assert rows[0]["payload"]["note"] == "new"

    @pytest.mark.asyncio
    async def test_orders_without_id_are_skipped(self, store, mock_supabase_table):
        written = await store.upsert_orders(SHOP, [{"order_number": 1}])

        assert written == 0
        mock_supabase_table.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_api_error_raises_storage_error(self, store, mock_supabase_table):
        mock_supabase_table.execute.side_effect = APIError({"message": "duplicate key"})

        with pytest.raises(StorageError) as exc_info:
            await store.upsert_orders(SHOP, [{"id": 1}])
        assert exc_info.value.table == "shop_orders"


class TestQueries:

    @pytest.mark.asyncio
    async def test_latest_order_id_orders_descending(self, store, mock_supabase_table):
        mock_supabase_table.execute.return_value.data = [{"order_id": 1042}]

        assert await store.latest_order_id(SHOP) == "1042"
        mock_supabase_table.eq.assert_called_with("shop", SHOP)
        mock_supabase_table.order.assert_called_with("order_id", desc=True)
        mock_supabase_table.limit.assert_called_with(1)

    @pytest.mark.asyncio
    async def test_latest_order_id_empty_cache(self, store):
        assert await store.latest_order_id(SHOP) is None

    @pytest.mark.asyncio
    async def test_order_count_uses_exact_count(self, store, mock_supabase_table):
        mock_supabase_table.execute.return_value.count = 7

        assert await store.order_count(SHOP) == 7
        mock_supabase_table.select.assert_called_with("*", count="exact", head=True)

    @pytest.mark.asyncio
    async def test_order_count_none_is_zero(self, store, mock_supabase_table):
        mock_supabase_table.execute.return_value.count = None

        assert await store.order_count(SHOP) == 0

    @pytest.mark.asyncio
    async def test_list_orders_returns_payloads(self, store, mock_supabase_table):
        mock_supabase_table.execute.return_value.data = [{"payload": {"id": 2}}, {"payload": {"id": 1}}]

        assert await store.list_orders(SHOP, limit=10) == [{"id": 2}, {"id": 1}]
        mock_supabase_table.limit.assert_called_with(10)

    @pytest.mark.asyncio
    async def test_select_api_error_raises_storage_error(self, store, mock_supabase_table):
        mock_supabase_table.execute.side_effect = APIError({"message": "relation does not exist"})

        with pytest.raises(StorageError):
            await store.list_orders(SHOP)
