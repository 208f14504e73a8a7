import os

from dotenv import load_dotenv
from pydantic import BaseModel

from order_sync.core.constants.sync import (
    DEFAULT_CONCURRENCY,
    DEFAULT_INITIAL_BACKOFF_SECONDS,
    DEFAULT_MAX_BACKOFF_SECONDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RATE_INTERVAL_SECONDS,
    DEFAULT_REQUESTS_PER_SECOND,
    HEARTBEAT_INTERVAL_SECONDS,
    ORDERS_PAGE_SIZE,
)


load_dotenv()


class Settings(BaseModel):
    # Supabase
    supabase_url: str | None = os.getenv("SUPABASE_URL")
    supabase_service_role_key: str | None = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    orders_table: str = os.getenv("ORDERS_TABLE", "shop_orders")
    sync_status_table: str = os.getenv("SYNC_STATUS_TABLE", "order_sync_status")

    # Shopify
    shopify_store_domain: str | None = os.getenv("SHOPIFY_STORE_DOMAIN")
    shopify_admin_api_token: str | None = os.getenv("SHOPIFY_ADMIN_API_TOKEN")
    shopify_api_version: str = os.getenv("SHOPIFY_API_VERSION", "2024-10")
    shopify_orders_page_size: int = int(os.getenv("SHOPIFY_ORDERS_PAGE_SIZE", ORDERS_PAGE_SIZE))
    shopify_request_timeout: float = float(os.getenv("SHOPIFY_REQUEST_TIMEOUT", "30"))

    # Rate limits (Shopify REST allows 2 req/s; stay under it)
    shopify_requests_per_second: float = float(
        os.getenv("SHOPIFY_REQUESTS_PER_SECOND", DEFAULT_REQUESTS_PER_SECOND)
    )
    shopify_rate_interval: float = float(os.getenv("SHOPIFY_RATE_INTERVAL", DEFAULT_RATE_INTERVAL_SECONDS))
    shopify_concurrency: int = int(os.getenv("SHOPIFY_CONCURRENCY", DEFAULT_CONCURRENCY))

    # Retry policy
    shopify_max_retries: int = int(os.getenv("SHOPIFY_MAX_RETRIES", DEFAULT_MAX_RETRIES))
    shopify_initial_backoff: float = float(os.getenv("SHOPIFY_INITIAL_BACKOFF", DEFAULT_INITIAL_BACKOFF_SECONDS))
    shopify_max_backoff: float = float(os.getenv("SHOPIFY_MAX_BACKOFF", DEFAULT_MAX_BACKOFF_SECONDS))

    # Live progress stream
    sync_heartbeat_seconds: float = float(os.getenv("SYNC_HEARTBEAT_SECONDS", HEARTBEAT_INTERVAL_SECONDS))

    # HTTP
    cors_allow_origins: str = os.getenv("CORS_ALLOW_ORIGINS", "*")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
