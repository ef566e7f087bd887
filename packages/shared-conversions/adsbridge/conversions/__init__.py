"""
AdsBridge Conversions - resolve Google Ads click conversions from events.

Provides:
- The canonical ConversionRecord and its configuration (ConversionConfig)
- Idempotent PII normalization and SHA-256 hashing of user identifiers
- Field resolution across configuration overrides and event payloads
- UTC conversion timestamp encoding

Usage:
    from adsbridge.conversions import ConversionConfig, resolve_conversion

    config = ConversionConfig(customer_id="1234567890", conversion_action="42")
    record = resolve_conversion(config, event)
    body = record.to_dict()
"""

from adsbridge.conversions.hashing import (
    HashPolicy,
    is_hashed,
    normalize_and_hash,
    prepare_identifier,
)
from adsbridge.conversions.resolver import ConversionResolver, resolve_conversion
from adsbridge.conversions.schema import (
    CartData,
    CartItem,
    Consent,
    ConsentStatus,
    ConversionConfig,
    ConversionEnvironment,
    ConversionRecord,
    CustomVariable,
    ExplicitIdentifier,
    ExternalAttributionData,
    IdentifierKind,
    UserIdentifier,
    UserIdentifierSource,
)
from adsbridge.conversions.timestamps import current_timestamp, encode_timestamp

__all__ = [
    # Schema
    "CartData",
    "CartItem",
    "Consent",
    "ConsentStatus",
    "ConversionConfig",
    "ConversionEnvironment",
    "ConversionRecord",
    "CustomVariable",
    "ExplicitIdentifier",
    "ExternalAttributionData",
    "IdentifierKind",
    "UserIdentifier",
    "UserIdentifierSource",
    # Hashing
    "HashPolicy",
    "is_hashed",
    "normalize_and_hash",
    "prepare_identifier",
    # Resolution
    "ConversionResolver",
    "resolve_conversion",
    # Timestamps
    "current_timestamp",
    "encode_timestamp",
]
