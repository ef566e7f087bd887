"""Shared pytest fixtures for AdsBridge packages."""

import pytest


@pytest.fixture
def sample_conversion_config():
    """Sample conversion configuration with no overrides."""
    from adsbridge.conversions import ConversionConfig

    return ConversionConfig(
        customer_id="1234567890",
        conversion_action="987654321",
        conversion_environment="WEB",
    )


@pytest.fixture
def sample_purchase_event():
    """Sample GA4-style purchase event payload."""
    return {
        "event_name": "purchase",
        "value": 49.99,
        "currency": "EUR",
        "order_id": "A1",
        "email": "X@Y.com",
        "gclid": "Cj0KCQ-test-gclid",
    }


@pytest.fixture
def fixed_clock():
    """Millisecond clock frozen at 2024-03-01 00:00:00 UTC."""
    return lambda: 1709251200000
