import json
import time
import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from .errors import UpstreamError

logger = logging.getLogger("wishlist_relay.shopify")

WISHLIST_NAMESPACE = "custom"
WISHLIST_KEY = "wishlist_product_ids"
WISHLIST_TYPE = "json"


class ShopifyMetafieldClient:
    """Reads and writes customer metafields through the Shopify Admin REST API.

    Every call is a single request with a bounded timeout. Non-2xx responses,
    transport failures and undecodable bodies all surface as ``UpstreamError``;
    nothing is retried.
    """

    def __init__(
        self,
        store: str,
        access_token: str,
        api_version: str = "2025-01",
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.store = store
        self.api_version = api_version
        self.timeout = timeout
        self._access_token = access_token
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            "X-Shopify-Access-Token": self._access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def metafields_url(self, customer_id: str) -> str:
        # customer_id is opaque; quote it so it stays a single path segment
        cid = quote(str(customer_id), safe="")
        return f"https://{self.store}/admin/api/{self.api_version}/customers/{cid}/metafields.json"

    async def _call(
        self,
        method: str,
        customer_id: str,
        payload: Optional[Dict[str, Any]] = None,
        trace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        url = self.metafields_url(customer_id)

        def _do_sync():
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                if payload is not None:
                    return client.request(method, url, headers=self._headers(), content=json.dumps(payload))
                return client.request(method, url, headers=self._headers())

        started = time.perf_counter()
        try:
            resp = await asyncio.to_thread(_do_sync)
        except httpx.TimeoutException as e:
            logger.warning("Timeout contacting Shopify", extra={"method": method, "trace_id": trace_id})
            raise UpstreamError(f"timeout: {type(e).__name__}") from e
        except httpx.RequestError as e:
            logger.warning("RequestError contacting Shopify", extra={"method": method, "trace_id": trace_id})
            raise UpstreamError(f"request_error: {type(e).__name__}") from e

        telemetry = {
            "event": "shopify_metafield_call",
            "method": method,
            "status": resp.status_code,
            "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
            "trace_id": trace_id,
        }
        logger.info("shopify_proxy: " + json.dumps(telemetry))

        if not 200 <= resp.status_code < 300:
            raise UpstreamError("non_success_status", upstream_status=resp.status_code, upstream_body=resp.text)
        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamError("malformed_body", upstream_status=resp.status_code, upstream_body=resp.text) from e
        if not isinstance(data, dict):
            raise UpstreamError("malformed_body", upstream_status=resp.status_code, upstream_body=resp.text)
        return data

    async def read_metafields(self, customer_id: str, trace_id: Optional[str] = None) -> List[Dict[str, Any]]:
        data = await self._call("GET", customer_id, trace_id=trace_id)
        metafields = data.get("metafields") or []
        if not isinstance(metafields, list):
            raise UpstreamError("malformed_body", upstream_body=json.dumps(data))
        return metafields

    async def write_metafield(
        self,
        customer_id: str,
        metafield: Dict[str, Any],
        trace_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        data = await self._call("POST", customer_id, payload={"metafield": metafield}, trace_id=trace_id)
        return data.get("metafield") or {}


def build_wishlist_metafield(product_ids: List[Any]) -> Dict[str, Any]:
    return {
        "namespace": WISHLIST_NAMESPACE,
        "key": WISHLIST_KEY,
        "type": WISHLIST_TYPE,
        "value": json.dumps(product_ids, separators=(",", ":")),
    }


def extract_wishlist(metafields: List[Dict[str, Any]]) -> List[Any]:
    """Return the stored wishlist, or an empty list when the metafield is absent."""
    for mf in metafields:
        if not isinstance(mf, dict):
            continue
        if mf.get("namespace") == WISHLIST_NAMESPACE and mf.get("key") == WISHLIST_KEY:
            value = mf.get("value")
            if isinstance(value, list):
                return value
            try:
                decoded = json.loads(value)
            except (TypeError, ValueError) as e:
                raise UpstreamError("malformed_wishlist_value", upstream_body=str(value)) from e
            if not isinstance(decoded, list):
                raise UpstreamError("malformed_wishlist_value", upstream_body=str(value))
            return decoded
    return []
