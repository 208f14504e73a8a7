"""
Lazy DI container — singleton access to clients and stores.

Lazy dependency-injection container.

Clients and stores are stateless wrappers and are cached here. Runtime
objects with a lifecycle (scheduler, sync registry, progress hub, sync
service) are built by build_runtime() inside the FastAPI lifespan and
kept on app.state; the request dependencies below read them from there.
Version: 1.0.0
"""

from dataclasses import dataclass
from functools import lru_cache

from fastapi import Request

from order_sync.core.config import Settings, settings
from order_sync.clients.supabase_client import SupabaseClient
from order_sync.clients.shopify_client import ShopifyClient
from order_sync.db.order_store import OrderStore
from order_sync.db.sync_status_store import SyncStatusStore
from order_sync.services.order_sync_service import OrderSyncService
from order_sync.services.progress_hub import ProgressHub, SyncRegistry
from order_sync.utils.rate_limiter import RateLimitedScheduler


# -- Clients ---------------------------------------------------------------

@lru_cache(maxsize=1)
def get_supabase_client():
    return SupabaseClient(settings)


@lru_cache(maxsize=1)
def get_shopify_client():
    return ShopifyClient(settings)


# -- DB Stores -------------------------------------------------------------

@lru_cache(maxsize=1)
def get_order_store():
    return OrderStore(get_supabase_client())


@lru_cache(maxsize=1)
def get_sync_status_store():
    return SyncStatusStore(get_supabase_client())


# -- Runtime (owned by the app lifespan) ------------------------------------

@dataclass
class Runtime:
    scheduler: RateLimitedScheduler
    registry: SyncRegistry
    hub: ProgressHub
    sync_service: OrderSyncService


def build_scheduler(config: Settings) -> RateLimitedScheduler:
    return RateLimitedScheduler(
        requests_per_second=config.shopify_requests_per_second,
        interval=config.shopify_rate_interval,
        concurrency=config.shopify_concurrency,
        max_retries=config.shopify_max_retries,
        initial_backoff=config.shopify_initial_backoff,
        max_backoff=config.shopify_max_backoff,
    )


def build_runtime(config: Settings = settings) -> Runtime:
    scheduler = build_scheduler(config)
    registry = SyncRegistry()
    hub = ProgressHub(registry)
    sync_service = OrderSyncService(
        fetch_page=get_shopify_client().fetch_orders_page,
        scheduler=scheduler,
        status_store=get_sync_status_store(),
        order_store=get_order_store(),
        registry=registry,
        hub=hub,
    )
    return Runtime(scheduler=scheduler, registry=registry, hub=hub, sync_service=sync_service)


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime


def get_sync_service(request: Request) -> OrderSyncService:
    return get_runtime(request).sync_service
