import hmac
import json
import logging
from typing import Any, Dict, Optional

import azure.functions as func

from .errors import AuthorizationError
from .settings import RelaySettings, is_unresolved_reference

logger = logging.getLogger("wishlist_relay")

ALLOWED_METHODS = "GET, POST, OPTIONS"
PREFLIGHT_MAX_AGE = "600"


def json_response(status_code: int, body: Any, headers: Optional[Dict[str, str]] = None) -> func.HttpResponse:
    return func.HttpResponse(
        status_code=status_code,
        mimetype="application/json",
        body=json.dumps(body),
        headers=headers or {},
    )


def _forbidden(headers: Dict[str, str]) -> func.HttpResponse:
    err = AuthorizationError(reason="invalid_secret")
    return json_response(err.status_code, err.public_body(), headers=headers)


def cors_headers(req: func.HttpRequest, settings: RelaySettings) -> Dict[str, str]:
    """CORS headers for an admitted browser request; empty when there is no Origin."""
    origin = req.headers.get("origin")
    if not origin or not settings.origin_allowed(origin):
        return {}
    return {
        "Access-Control-Allow-Origin": origin,
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": f"Content-Type, {settings.secret_header}",
        "Access-Control-Max-Age": PREFLIGHT_MAX_AGE,
        "Vary": "Origin",
    }


def check_access(req: func.HttpRequest, settings: RelaySettings) -> Optional[func.HttpResponse]:
    """Admit the request (None) or return the response that ends it.

    Origin filtering runs first so a disallowed pre-flight never gets CORS
    headers. Pre-flights stop here with a 204. Everything else must carry the
    shared secret; an unset secret rejects every request.
    """
    origin = req.headers.get("origin")
    if origin and not settings.origin_allowed(origin):
        logger.warning("origin_rejected", extra={"origin": origin})
        return json_response(403, AuthorizationError("origin_not_allowed").public_body(), headers={"Vary": "Origin"})

    hdrs = cors_headers(req, settings)
    if req.method.upper() == "OPTIONS":
        return func.HttpResponse(status_code=204, headers=hdrs)

    expected = settings.frontend_secret
    if is_unresolved_reference(expected):
        logger.warning("secrets_unresolved", extra={"which": "FRONTEND_SECRET"})
        return json_response(503, {"error": "secrets_unresolved", "which": "FRONTEND_SECRET"}, headers=hdrs)
    if not expected:
        logger.error("frontend_secret_missing")
        return _forbidden(hdrs)

    provided = (req.headers.get(settings.secret_header) or "").strip()
    if not provided or not hmac.compare_digest(provided.encode(), expected.encode()):
        return _forbidden(hdrs)
    return None
