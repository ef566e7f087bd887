"""
PII normalization and hashing for user identifiers.

Google Ads enhanced conversions require identifiers to be normalized and
SHA-256 hashed before upload. Normalization is idempotent: values that are
already 64-character hex digests are passed through unchanged, so hashing a
hashed identifier never double-hashes it.

Example:
    >>> a = normalize_and_hash("hashedEmail", "J.Doe@GMAIL.com")
    >>> a == normalize_and_hash("hashedEmail", "jdoe@gmail.com")
    True
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

from adsbridge.conversions.schema import IdentifierKind

_SHA256_HEX = re.compile(r"^[A-Fa-f0-9]{64}$")

# Characters removed from phone numbers before hashing
_PHONE_STRIP_CHARS = str.maketrans("", "", " -()")

GMAIL_DOMAINS = frozenset({"gmail.com", "googlemail.com"})


class HashPolicy(str, Enum):
    """Which built-in identifier kinds are hashed before upload.

    HASH_ALL hashes every identifier kind. HASH_CONTACT_ONLY hashes email and
    phone only and sends mobile ids, third-party user ids and address info
    as received.
    """

    HASH_ALL = "hash_all"
    HASH_CONTACT_ONLY = "hash_contact_only"

    def should_hash(self, kind: str) -> bool:
        """Return True if identifiers of ``kind`` are hashed under this policy."""
        if self is HashPolicy.HASH_ALL:
            return True
        kind = kind.value if isinstance(kind, Enum) else kind
        return kind not in _UNHASHED_UNDER_CONTACT_ONLY


_UNHASHED_UNDER_CONTACT_ONLY = frozenset(
    {
        IdentifierKind.MOBILE_ID.value,
        IdentifierKind.THIRD_PARTY_USER_ID.value,
        IdentifierKind.ADDRESS_INFO.value,
    }
)


def is_hashed(value: Any) -> bool:
    """Return True if value is already a hex-encoded SHA-256 digest."""
    if not value:
        return False
    return _SHA256_HEX.match(str(value)) is not None


def normalize_identifier(kind: str, value: Any) -> str:
    """Normalize a scalar identifier value for hashing.

    Args:
        kind: Identifier kind (e.g. ``hashedEmail``).
        value: Raw identifier value.

    Returns:
        Trimmed, lowercased value with kind-specific cleanup applied.
    """
    kind = kind.value if isinstance(kind, Enum) else kind
    normalized = str(value).strip().lower()

    if kind == IdentifierKind.PHONE.value:
        return normalized.translate(_PHONE_STRIP_CHARS)

    if kind == IdentifierKind.EMAIL.value:
        parts = normalized.split("@")
        if len(parts) == 2 and parts[1] in GMAIL_DOMAINS:
            return parts[0].replace(".", "") + "@" + parts[1]
        return "@".join(parts)

    return normalized


def normalize_and_hash(kind: str, value: Any) -> Any:
    """
    Normalize and SHA-256 hash an identifier, preserving its shape.

    - Empty/absent values are returned unchanged.
    - Sequences are hashed element-wise; mappings value-wise.
    - Values that are already 64-character hex digests are returned as-is.

    Args:
        kind: Identifier kind, controls kind-specific normalization.
        value: Scalar, sequence, or mapping of raw values.

    Returns:
        Lowercase hex digest(s) in the same shape as ``value``.
    """
    if not value:
        return value

    if isinstance(value, Mapping):
        return {key: normalize_and_hash(kind, item) for key, item in value.items()}

    if isinstance(value, (list, tuple)):
        return [normalize_and_hash(kind, item) for item in value]

    if is_hashed(value):
        return value

    normalized = normalize_identifier(kind, value)
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def prepare_identifier(
    kind: str,
    value: Any,
    policy: HashPolicy = HashPolicy.HASH_ALL,
) -> Any:
    """Hash ``value`` if the policy requires it for ``kind``, else return it unchanged."""
    if policy.should_hash(kind):
        return normalize_and_hash(kind, value)
    return value
