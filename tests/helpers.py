"""Request builders and an in-memory upstream shared by the test modules."""

import json
from typing import Any, Dict, List, Optional

import azure.functions as func

from wishlist_relay.errors import UpstreamError

SECRET = "test-secret"
STOREFRONT = "https://shop.example.com"


class FakeMetafieldClient:
    """In-memory stand-in for ShopifyMetafieldClient.

    Writes replace any metafield with the same namespace and key, which is
    how Shopify treats a create for an existing owner/namespace/key.
    """

    def __init__(self, fail_with: Optional[UpstreamError] = None):
        self.store: Dict[str, List[Dict[str, Any]]] = {}
        self.calls: List[tuple] = []
        self.fail_with = fail_with

    async def read_metafields(self, customer_id, trace_id=None):
        self.calls.append(("read", customer_id))
        if self.fail_with:
            raise self.fail_with
        return [dict(mf) for mf in self.store.get(customer_id, [])]

    async def write_metafield(self, customer_id, metafield, trace_id=None):
        self.calls.append(("write", customer_id, dict(metafield)))
        if self.fail_with:
            raise self.fail_with
        existing = [
            mf
            for mf in self.store.get(customer_id, [])
            if (mf["namespace"], mf["key"]) != (metafield["namespace"], metafield["key"])
        ]
        existing.append(dict(metafield))
        self.store[customer_id] = existing
        return dict(metafield)


def make_request(
    method: str = "GET",
    params: Optional[Dict[str, str]] = None,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    secret: Optional[str] = SECRET,
    origin: Optional[str] = None,
) -> func.HttpRequest:
    hdrs = dict(headers or {})
    if secret is not None:
        hdrs["X-MAAKKA-SECRET"] = secret
    if origin is not None:
        hdrs["Origin"] = origin
    if body is None:
        raw = b""
    elif isinstance(body, bytes):
        raw = body
    else:
        raw = json.dumps(body).encode()
        hdrs.setdefault("Content-Type", "application/json")
    return func.HttpRequest(
        method=method,
        url="https://relay.example.com/apps/wishlist-sync",
        headers=hdrs,
        params=params or {},
        route_params={},
        body=raw,
    )


def body_of(resp: func.HttpResponse) -> Any:
    return json.loads(resp.get_body())
