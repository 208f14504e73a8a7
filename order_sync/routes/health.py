"""
Health routes — liveness probe and request scheduler status.

Health check route.
Version: 1.0.0
"""
from fastapi import APIRouter, Depends

from order_sync.container import Runtime, get_runtime

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(runtime: Runtime = Depends(get_runtime)):
    """Basic health check endpoint with Shopify queue stats."""
    return {
        "status": "healthy",
        "scheduler": runtime.scheduler.stats(),
        "active_syncs": [shop for shop in runtime.registry.shops() if runtime.registry.is_active(shop)],
    }
