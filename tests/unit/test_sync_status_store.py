"""
Unit tests for SyncStatusStore.

Version: 1.0.0
"""
from datetime import datetime, timezone

import pytest

from postgrest.exceptions import APIError

from order_sync.core.exceptions import StorageError
from order_sync.db.sync_status_store import SyncStatusStore
from order_sync.schemas.sync import SyncPhase


pytestmark = pytest.mark.unit

SHOP = "test-store.myshopify.com"


@pytest.fixture
def store(mock_supabase_client):
    return SyncStatusStore(supabase_client=mock_supabase_client, table="order_sync_status")


class TestGetStatus:

    @pytest.mark.asyncio
    async def test_unknown_shop_defaults_to_idle(self, store):
        status = await store.get_status(SHOP)

        assert status.phase == SyncPhase.IDLE
        assert status.synced_count == 0
        assert status.resume_cursor is None

    @pytest.mark.asyncio
    async def test_reads_stored_row(self, store, mock_supabase_table):
        mock_supabase_table.execute.return_value.data = [{
            "shop": SHOP,
            "phase": "syncing",
            "synced_count": 500,
            "total_count": None,
            "resume_cursor": "abc",
            "last_completed_at": None,
            "error_message": None,
            "last_order_id": "1042",
            "updated_at": "2026-01-01T00:00:00+00:00",
        }]

        status = await store.get_status(SHOP)

        assert status.phase == SyncPhase.SYNCING
        assert status.synced_count == 500
        assert status.resume_cursor == "abc"
        assert status.last_order_id == "1042"
        mock_supabase_table.eq.assert_called_with("shop", SHOP)


class TestUpdateStatus:

    @pytest.mark.asyncio
    async def test_partial_upsert_on_shop(self, store, mock_supabase_table):
        completed_at = datetime(2026, 1, 2, tzinfo=timezone.utc)

        await store.update_status(
            SHOP, phase=SyncPhase.COMPLETED, resume_cursor=None, last_completed_at=completed_at
        )

        payload = mock_supabase_table.upsert.call_args.args[0][0]
        assert mock_supabase_table.upsert.call_args.kwargs["on_conflict"] == "shop"
        assert payload["shop"] == SHOP
        assert payload["phase"] == "completed"
        assert payload["resume_cursor"] is None
        assert payload["last_completed_at"] == completed_at.isoformat()
        assert "updated_at" in payload
        assert "synced_count" not in payload

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, store, mock_supabase_table):
        with pytest.raises(ValueError):
            await store.update_status(SHOP, bogus=1)
        mock_supabase_table.upsert.assert_not_called()

    @pytest.mark.asyncio
    async def test_api_error_raises_storage_error(self, store, mock_supabase_table):
        mock_supabase_table.execute.side_effect = APIError({"message": "permission denied"})

        with pytest.raises(StorageError) as exc_info:
            await store.update_status(SHOP, synced_count=3)
        assert exc_info.value.table == "order_sync_status"
