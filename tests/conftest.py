"""Shared fixtures for wishlist relay tests."""

import pytest

from tests.helpers import SECRET, STOREFRONT, FakeMetafieldClient
from wishlist_relay.settings import RelaySettings


@pytest.fixture
def settings():
    return RelaySettings(
        shopify_store="shop.myshopify.com",
        shopify_admin_token="shpat_test",
        frontend_secret=SECRET,
        allowed_origins=(STOREFRONT,),
    )


@pytest.fixture
def client():
    return FakeMetafieldClient()
