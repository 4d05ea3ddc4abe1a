import json
import time
import uuid
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

import azure.functions as func

from .access_gate import check_access, cors_headers, json_response
from .errors import ClientError, ConfigurationError, RelayError, UpstreamError
from .settings import RelaySettings, get_settings, is_unresolved_reference
from .shopify_client import ShopifyMetafieldClient, build_wishlist_metafield, extract_wishlist

logger = logging.getLogger("wishlist_relay")

READ_FAILED = "Failed to read metafields"
WRITE_FAILED = "Failed to update metafield"

_MASKED_HEADERS = ("authorization", "cookie", "x-shopify-access-token")


def _sanitize_headers(h: Dict[str, str], secret_header: str) -> Dict[str, str]:
    masked = {}
    for k, v in h.items():
        kl = k.lower()
        if kl in _MASKED_HEADERS or kl == secret_header.lower():
            masked[k] = "***"
        else:
            masked[k] = v
    return masked


def _require_customer_id(raw: Any) -> str:
    if raw is None:
        raise ClientError("Missing customer_id")
    # bool is an int subclass; only real strings and integers name a customer
    if isinstance(raw, bool) or not isinstance(raw, (str, int)):
        raise ClientError("customer_id must be a string or integer")
    customer_id = str(raw).strip()
    if not customer_id:
        raise ClientError("Missing customer_id")
    return customer_id


def _check_upstream_config(settings: RelaySettings) -> None:
    if is_unresolved_reference(settings.shopify_admin_token):
        logger.warning("secrets_unresolved", extra={"which": "SHOPIFY_ADMIN_API_ACCESS_TOKEN"})
        raise ConfigurationError("secrets_unresolved", reason="shopify_admin_token")
    if not settings.shopify_store:
        raise ConfigurationError(reason="shopify_store_missing")
    if not settings.shopify_admin_token:
        raise ConfigurationError(reason="shopify_admin_token_missing")


async def get_wishlist(req: func.HttpRequest, client, trace_id: str) -> Dict[str, Any]:
    customer_id = _require_customer_id(req.params.get("customer_id"))
    try:
        metafields = await client.read_metafields(customer_id, trace_id=trace_id)
        product_ids = extract_wishlist(metafields)
    except UpstreamError as e:
        logger.error("GET metafields error: %s body=%s", e, e.upstream_body, extra={"trace_id": trace_id})
        raise UpstreamError(e.cause, e.upstream_status, error=READ_FAILED) from e
    return {"product_ids": product_ids}


async def put_wishlist(req: func.HttpRequest, client, trace_id: str) -> Dict[str, Any]:
    try:
        data = json.loads(req.get_body() or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ClientError("invalid_json")
    if not isinstance(data, dict):
        raise ClientError("invalid_json")

    customer_id = _require_customer_id(data.get("customer_id"))
    product_ids: Optional[List[Any]] = data.get("product_ids")
    if product_ids is None:
        product_ids = []
    elif not isinstance(product_ids, list):
        raise ClientError("product_ids must be an array")

    try:
        await client.write_metafield(customer_id, build_wishlist_metafield(product_ids), trace_id=trace_id)
    except UpstreamError as e:
        logger.error("POST metafield error: %s body=%s", e, e.upstream_body, extra={"trace_id": trace_id})
        raise UpstreamError(e.cause, e.upstream_status, error=WRITE_FAILED) from e
    return {"success": True}


async def handle_wishlist_sync(req: func.HttpRequest, settings: RelaySettings, client) -> func.HttpResponse:
    """Route boundary for /apps/wishlist-sync.

    Runs the access gate, dispatches on method, and turns every failure into a
    JSON error body. Upstream details only ever reach the log.
    """
    trace_id = str(uuid.uuid4())
    method = req.method.upper()

    if settings.debug_request_log:
        debug_payload = {
            "method": method,
            "params": dict(req.params) if req.params else {},
            "headers": _sanitize_headers(dict(req.headers) if req.headers else {}, settings.secret_header),
            "trace_id": trace_id,
        }
        logger.info("http_request_debug: " + json.dumps(debug_payload))

    gated = check_access(req, settings)
    if gated is not None:
        return gated

    hdrs = cors_headers(req, settings)
    hdrs["X-Trace-Id"] = trace_id
    started = time.perf_counter()
    try:
        if method not in ("GET", "POST"):
            return json_response(405, {"error": "method_not_allowed"}, headers=hdrs)
        _check_upstream_config(settings)
        if method == "GET":
            body = await get_wishlist(req, client, trace_id)
        else:
            body = await put_wishlist(req, client, trace_id)
        status = 200
    except RelayError as e:
        status = e.status_code
        body = e.public_body()
        body["trace_id"] = trace_id
    except Exception:
        logger.exception("Unexpected error handling wishlist request", extra={"trace_id": trace_id})
        status = 500
        body = {"error": "Server error", "trace_id": trace_id}

    telemetry = {
        "event": "wishlist_sync",
        "method": method,
        "status": status,
        "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
        "trace_id": trace_id,
    }
    logger.info("wishlist_relay: " + json.dumps(telemetry))
    return json_response(status, body, headers=hdrs)


@lru_cache
def get_client() -> ShopifyMetafieldClient:
    settings = get_settings()
    return ShopifyMetafieldClient(
        store=settings.shopify_store,
        access_token=settings.shopify_admin_token,
        api_version=settings.api_version,
        timeout=settings.upstream_timeout_s,
    )
