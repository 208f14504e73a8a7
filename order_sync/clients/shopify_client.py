import logging
import re
from typing import Any, Dict, Optional

import httpx

from order_sync.core.config import Settings
from order_sync.core.constants.sync import (
    AUTH_STATUS_CODES,
    RATE_LIMIT_STATUS_CODE,
    SHOPIFY_SERVICE,
    TRANSIENT_STATUS_CODES,
)
from order_sync.core.exceptions import (
    AuthenticationError,
    ConnectionTimeoutError,
    PermanentRemoteError,
    RateLimitError,
    TransientRemoteError,
)
from order_sync.schemas.sync import OrderPage

logger = logging.getLogger("shopify_client")

_PAGE_INFO_RE = re.compile(r"<[^>]*[?&]page_info=([^&>]+)[^>]*>")


class ShopifyClient:
    def __init__(self, settings: Settings) -> None:
        self._store_domain = self._normalize_store_domain(settings.shopify_store_domain)
        self._token = settings.shopify_admin_api_token
        self._api_version = settings.shopify_api_version
        self._page_size = settings.shopify_orders_page_size
        self._timeout = settings.shopify_request_timeout
        logger.info(f"ShopifyClient initialized: domain={self._store_domain}, api_version={self._api_version}")

    @staticmethod
    def _normalize_store_domain(domain: Optional[str]) -> Optional[str]:
        """
        Normalize Shopify store domain to ensure it has .myshopify.com suffix.

        Handles these formats:
        - "my-store" -> "my-store.myshopify.com"
        - "my-store.myshopify.com" -> "my-store.myshopify.com" (unchanged)
        - "https://my-store.myshopify.com" -> "my-store.myshopify.com" (strips protocol)
        """
        if not domain:
            return domain

        domain = domain.replace("https://", "").replace("http://", "")
        domain = domain.rstrip("/")

        if not domain.endswith(".myshopify.com"):
            domain = f"{domain}.myshopify.com"

        return domain

    def _base_url(self, shop: Optional[str] = None) -> str:
        domain = self._normalize_store_domain(shop) or self._store_domain
        if not domain or not self._token:
            raise AuthenticationError(SHOPIFY_SERVICE, "store domain or admin API token missing")
        return f"https://{domain}/admin/api/{self._api_version}"

    @staticmethod
    def _parse_retry_after(value: Optional[str]) -> Optional[float]:
        if not value:
            return None
        try:
            return float(value)
        except ValueError:
            return None

    @staticmethod
    def parse_next_cursor(link_header: Optional[str]) -> Optional[str]:
        """
        Extract the page_info token of the rel="next" entry of a Link header.

        Example header:
            <https://s.myshopify.com/admin/api/2024-10/orders.json?limit=250&page_info=abc>; rel="previous",
            <https://s.myshopify.com/admin/api/2024-10/orders.json?limit=250&page_info=def>; rel="next"
        """
        if not link_header:
            return None
        for part in link_header.split(","):
            if 'rel="next"' not in part:
                continue
            match = _PAGE_INFO_RE.search(part)
            if match:
                return match.group(1)
        return None

    def _raise_for_status(self, resp: httpx.Response, path: str) -> None:
        status = resp.status_code
        if status < 400:
            return
        if status == RATE_LIMIT_STATUS_CODE:
            retry_after = self._parse_retry_after(resp.headers.get("retry-after"))
            logger.info("shopify rate limited path=%s retry_after=%s", path, retry_after)
            raise RateLimitError(SHOPIFY_SERVICE, retry_after=retry_after)
        if status in TRANSIENT_STATUS_CODES:
            raise TransientRemoteError(SHOPIFY_SERVICE, resp.text, status_code=status)
        if status in AUTH_STATUS_CODES:
            logger.error("shopify authorization error status=%s body=%s", status, resp.text)
            raise AuthenticationError(SHOPIFY_SERVICE, resp.text, status_code=status)
        raise PermanentRemoteError(SHOPIFY_SERVICE, resp.text, status_code=status)

    async def call_shopify(
        self,
        method: str,
        path: str,
        shop: Optional[str] = None,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        base = self._base_url(shop)
        url = f"{base}{path}"
        logger.info("shopify request method=%s path=%s params=%s", method, path, params)

        headers = {
            "X-Shopify-Access-Token": self._token or "",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.request(method=method, url=url, headers=headers, json=json, params=params)
        except (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError) as e:
            raise ConnectionTimeoutError(SHOPIFY_SERVICE, f"{type(e).__name__}: {e}")
        except httpx.TransportError as e:
            # Bad URL scheme, proxy or local protocol misuse: retrying cannot help
            logger.error("shopify transport error path=%s error=%s", path, repr(e))
            raise PermanentRemoteError(SHOPIFY_SERVICE, f"{type(e).__name__}: {e}")

        logger.info("shopify response status=%s path=%s", resp.status_code, path)
        self._raise_for_status(resp, path)
        return resp

    async def fetch_orders_page(
        self,
        shop: str,
        cursor: Optional[str] = None,
        since_id: Optional[str] = None,
    ) -> OrderPage:
        """
        Fetch one page of orders.

        Args:
            shop: Shop domain to query
            cursor: page_info token from the previous page; when set, no
                other filters may be sent (Shopify rejects them)
            since_id: Only orders with a greater id (incremental sync)

        Returns:
            OrderPage with the next cursor taken from the Link header
        """
        if cursor:
            params: Dict[str, Any] = {"limit": self._page_size, "page_info": cursor}
        else:
            params = {"limit": self._page_size, "status": "any"}
            if since_id:
                params["since_id"] = since_id

        resp = await self.call_shopify("GET", "/orders.json", shop=shop, params=params)
        body = resp.json() if resp.text else {}
        orders = body.get("orders") or []

        next_cursor = self.parse_next_cursor(resp.headers.get("link"))
        return OrderPage(orders=orders, next_cursor=next_cursor, has_more=next_cursor is not None)
