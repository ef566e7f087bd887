"""Tests for adsbridge.conversions public API."""


def test_import_schema_classes():
    """Test that schema classes are importable from top level."""
    from adsbridge.conversions import (
        ConversionConfig,
        ConversionRecord,
        IdentifierKind,
        UserIdentifierSource,
    )

    assert hasattr(IdentifierKind, "EMAIL")
    assert hasattr(UserIdentifierSource, "FIRST_PARTY")
    assert hasattr(ConversionRecord, "to_dict")
    assert hasattr(ConversionConfig, "from_dict")


def test_import_resolver():
    """Test that the resolver is importable from top level."""
    from adsbridge.conversions import ConversionResolver, resolve_conversion

    assert callable(resolve_conversion)
    assert hasattr(ConversionResolver, "resolve")


def test_import_hashing_and_timestamps():
    """Test that hashing and timestamp helpers are importable from top level."""
    from adsbridge.conversions import (
        HashPolicy,
        encode_timestamp,
        normalize_and_hash,
    )

    assert callable(normalize_and_hash)
    assert encode_timestamp(0) == "1970-01-01 00:00:00+00:00"
    assert HashPolicy("hash_all") is HashPolicy.HASH_ALL


def test_all_exports():
    """Test that __all__ contains expected exports."""
    from adsbridge.conversions import __all__

    expected_exports = [
        "ConversionConfig",
        "ConversionRecord",
        "ExplicitIdentifier",
        "UserIdentifier",
        "CartData",
        "CartItem",
        "ConversionResolver",
        "resolve_conversion",
        "HashPolicy",
        "normalize_and_hash",
        "is_hashed",
        "encode_timestamp",
        "current_timestamp",
    ]

    for export in expected_exports:
        assert export in __all__, f"{export} not in __all__"
