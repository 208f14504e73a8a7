"""
Route aggregator — mounts the order routers.

Route aggregation module.

Health is exported separately for main.py to mount at root.
Version: 1.0.0
"""
from fastapi import APIRouter

from order_sync.routes.orders import router as orders_router
from order_sync.routes.health import router as health_router

api_router = APIRouter()

api_router.include_router(orders_router)

__all__ = ["api_router", "health_router"]
