"""Shared code for the wishlist relay Azure Function app.

Exposes:
    handle_wishlist_sync - access gate plus wishlist read/replace against Shopify.
    get_settings / get_client - process-wide settings and upstream client, built once.
"""

from .common_proxy import get_client, handle_wishlist_sync  # re-export for convenience
from .settings import RelaySettings, get_settings

__all__ = ["RelaySettings", "get_client", "get_settings", "handle_wishlist_sync"]
