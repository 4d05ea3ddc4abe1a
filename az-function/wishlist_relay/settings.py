import os
import math
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Mapping, Optional, Tuple

logger = logging.getLogger("wishlist_relay")

DEFAULT_SECRET_HEADER = "X-MAAKKA-SECRET"
DEFAULT_API_VERSION = "2025-01"
DEFAULT_UPSTREAM_TIMEOUT_S = 10.0
KEYVAULT_PREFIX = "@Microsoft.KeyVault("


def _parse_origins(raw: Optional[str]) -> Tuple[str, ...]:
    if not raw:
        return ()
    origins = tuple(o.strip().rstrip("/") for o in raw.split(",") if o.strip())
    # "*" anywhere in the list disables origin filtering
    if "*" in origins:
        return ()
    return origins


def _normalize_store(raw: Optional[str]) -> str:
    store = (raw or "").strip()
    for scheme in ("https://", "http://"):
        if store.lower().startswith(scheme):
            store = store[len(scheme):]
    return store.rstrip("/")


def _parse_timeout(raw: Optional[str]) -> float:
    if not raw:
        return DEFAULT_UPSTREAM_TIMEOUT_S
    try:
        value = float(raw)
    except ValueError:
        logger.warning("invalid_setting", extra={"which": "UPSTREAM_TIMEOUT_S", "value": raw})
        return DEFAULT_UPSTREAM_TIMEOUT_S
    if not math.isfinite(value) or value <= 0:
        logger.warning("invalid_setting", extra={"which": "UPSTREAM_TIMEOUT_S", "value": raw})
        return DEFAULT_UPSTREAM_TIMEOUT_S
    return value


def is_unresolved_reference(value: Optional[str]) -> bool:
    """True when an app setting still holds a Key Vault reference instead of the secret."""
    return bool(value) and value.startswith(KEYVAULT_PREFIX)


@dataclass(frozen=True)
class RelaySettings:
    shopify_store: str = ""
    shopify_admin_token: str = ""
    frontend_secret: str = ""
    allowed_origins: Tuple[str, ...] = ()
    secret_header: str = DEFAULT_SECRET_HEADER
    api_version: str = DEFAULT_API_VERSION
    upstream_timeout_s: float = DEFAULT_UPSTREAM_TIMEOUT_S
    debug_request_log: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "RelaySettings":
        env = os.environ if env is None else env
        return cls(
            shopify_store=_normalize_store(env.get("SHOPIFY_STORE")),
            shopify_admin_token=(env.get("SHOPIFY_ADMIN_API_ACCESS_TOKEN") or "").strip(),
            frontend_secret=(env.get("FRONTEND_SECRET") or "").strip(),
            allowed_origins=_parse_origins(env.get("CORS_ORIGIN")),
            secret_header=(env.get("SECRET_HEADER_NAME") or "").strip() or DEFAULT_SECRET_HEADER,
            api_version=(env.get("SHOPIFY_API_VERSION") or "").strip() or DEFAULT_API_VERSION,
            upstream_timeout_s=_parse_timeout(env.get("UPSTREAM_TIMEOUT_S")),
            debug_request_log=(env.get("DEBUG_REQUEST_LOG") or "false").lower() == "true",
        )

    @property
    def filters_origins(self) -> bool:
        return bool(self.allowed_origins)

    def origin_allowed(self, origin: str) -> bool:
        # Exact match only; no prefix or wildcard subdomain matching.
        if not self.filters_origins:
            return True
        return origin.strip().rstrip("/") in self.allowed_origins


@lru_cache
def get_settings() -> RelaySettings:
    return RelaySettings.from_env()
