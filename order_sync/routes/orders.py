"""
Order routes — cached orders, order sync control and live progress stream.

Order sync routes.

Every endpoint takes the shop domain as a `shop` query parameter:
- GET  /orders/recent         cached orders plus sync status
- POST /orders/sync/start     start a background sync (body: {"force": bool})
- GET  /orders/sync/status    full sync status
- POST /orders/sync/cancel    cancel the running sync
- GET  /orders/sync/progress  Server-Sent Events stream of sync progress
Version: 1.0.0
"""
import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from order_sync.container import get_order_store, get_sync_service
from order_sync.core.config import settings
from order_sync.core.constants.sync import MSG_CANCELLED, MSG_NO_SYNC_IN_PROGRESS
from order_sync.db.order_store import OrderStore
from order_sync.schemas.sync import (
    FullSyncStatusResponse,
    RecentOrdersResponse,
    RecentOrdersSyncStatus,
    SyncActionResponse,
    SyncEvent,
    SyncStartRequest,
)
from order_sync.services.order_sync_service import OrderSyncService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/orders", tags=["orders"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def _require_shop(shop: Optional[str]) -> str:
    if not shop:
        raise HTTPException(status_code=400, detail="Missing shop parameter")
    return shop


def _server_error(error: str, exc: Exception) -> HTTPException:
    return HTTPException(status_code=500, detail={"error": error, "message": str(exc)})


def format_sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, default=str)}\n\n"


async def sync_event_source(
    service: OrderSyncService,
    shop: str,
    heartbeat_interval: float,
) -> AsyncIterator[str]:
    """
    Yield one status snapshot, then every SyncEvent for the shop.

    A keep-alive comment is sent whenever no event arrived within
    heartbeat_interval seconds. The listener is detached when the
    consumer stops iterating (client disconnect).
    """
    queue: "asyncio.Queue[SyncEvent]" = asyncio.Queue()
    listener = queue.put_nowait

    service.subscribe(shop, listener)
    try:
        status = await service.get_full_status(shop)
        yield format_sse({
            "type": "status",
            "shop": shop,
            "synced": status.synced_count,
            "total": status.total_count,
            "status": status.phase.value,
            "sync_required": status.sync_required,
        })

        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=heartbeat_interval)
            except asyncio.TimeoutError:
                yield ": heartbeat\n\n"
                continue
            yield format_sse(event.to_payload())
    finally:
        service.unsubscribe(shop, listener)
        logger.debug(f"Progress stream closed for {shop}")


@router.get("/recent", response_model=RecentOrdersResponse)
async def get_recent_orders(
    shop: Optional[str] = Query(None),
    limit: int = Query(250, ge=1, le=1000),
    order_store: OrderStore = Depends(get_order_store),
    service: OrderSyncService = Depends(get_sync_service),
):
    """Cached orders straight from the order store (no Shopify calls)."""
    shop = _require_shop(shop)
    try:
        orders = await order_store.list_orders(shop, limit=limit)
        status = await service.get_full_status(shop)
    except Exception as e:
        logger.error(f"Error fetching cached orders for {shop}: {e}")
        raise _server_error("Failed to fetch orders", e)

    logger.info(f"Returning {len(orders)} cached orders for {shop} (sync status: {status.phase.value})")
    return RecentOrdersResponse(
        count=len(orders),
        orders=orders,
        sync_status=RecentOrdersSyncStatus(
            status=status.phase,
            synced_orders=status.synced_count,
            total_orders=status.total_count,
            last_sync_at=status.last_completed_at,
            sync_required=status.sync_required,
        ),
    )


@router.post("/sync/start", response_model=SyncActionResponse)
async def start_order_sync(
    shop: Optional[str] = Query(None),
    body: Optional[SyncStartRequest] = Body(None),
    service: OrderSyncService = Depends(get_sync_service),
):
    """Start a background order sync; returns before the sync finishes."""
    body = body or SyncStartRequest()
    shop = _require_shop(shop or body.shop)
    try:
        result = await service.start_sync(shop, force=body.force)
    except Exception as e:
        logger.error(f"Error starting order sync for {shop}: {e}")
        raise _server_error("Failed to start sync", e)
    return SyncActionResponse(success=result.accepted, message=result.message)


@router.get("/sync/status", response_model=FullSyncStatusResponse)
async def get_order_sync_status(
    shop: Optional[str] = Query(None),
    service: OrderSyncService = Depends(get_sync_service),
):
    shop = _require_shop(shop)
    try:
        status = await service.get_full_status(shop)
    except Exception as e:
        logger.error(f"Error getting sync status for {shop}: {e}")
        raise _server_error("Failed to get sync status", e)
    return FullSyncStatusResponse(**status.model_dump())


@router.post("/sync/cancel", response_model=SyncActionResponse)
async def cancel_order_sync(
    shop: Optional[str] = Query(None),
    service: OrderSyncService = Depends(get_sync_service),
):
    shop = _require_shop(shop)
    cancelled = service.cancel_sync(shop)
    return SyncActionResponse(
        success=cancelled,
        message=MSG_CANCELLED if cancelled else MSG_NO_SYNC_IN_PROGRESS,
    )


@router.get("/sync/progress")
async def stream_order_sync_progress(
    shop: Optional[str] = Query(None),
    service: OrderSyncService = Depends(get_sync_service),
):
    """Server-Sent Events: initial status snapshot, then live sync events."""
    shop = _require_shop(shop)
    return StreamingResponse(
        sync_event_source(service, shop, settings.sync_heartbeat_seconds),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
