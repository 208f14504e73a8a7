import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from order_sync.container import build_runtime
from order_sync.core.config import settings
from order_sync.core.middleware import apply_cors
from order_sync.routes import api_router, health_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan event handler.

    On startup:
    - Build the shared Shopify request scheduler
    - Create the sync registry, progress hub and sync service

    On shutdown:
    - Stop running sync tasks (their saved cursor makes them resumable)
    """
    logger.info("=== Order Sync Starting ===")

    runtime = build_runtime(settings)
    app.state.runtime = runtime

    stats = runtime.scheduler.stats()
    logger.info(
        f"Scheduler ready: {stats['interval_cap']} request(s) per {stats['interval_seconds']}s, "
        f"concurrency={stats['concurrency']}"
    )
    logger.info("=== Order Sync Ready ===")

    yield

    logger.info("=== Order Sync Shutting Down ===")
    await runtime.registry.close()
    logger.info("Shutdown complete")


app = FastAPI(title="Shopify Order Sync", lifespan=lifespan)
logging.basicConfig(level=settings.log_level, format="%(levelname)s:%(name)s:%(message)s")

apply_cors(app)

app.include_router(health_router)
app.include_router(api_router)
