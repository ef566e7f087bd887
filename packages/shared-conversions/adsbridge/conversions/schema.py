"""
Click-conversion schema - the canonical record uploaded to Google Ads.

The schema separates the two inputs of a conversion upload:
- ConversionConfig: static, caller-owned configuration and explicit overrides
- ConversionRecord: the fully-resolved record sent upstream

ConversionRecord.to_dict() produces the camelCase body expected by the
Google Ads ``uploadClickConversions`` endpoint, omitting absent fields.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_CONVERSION_VALUE = 1
DEFAULT_CURRENCY_CODE = "USD"


class IdentifierKind(str, Enum):
    """Built-in user identifier kinds.

    Values match the field names of the Google Ads ``UserIdentifier`` message.
    Callers may use additional kinds through explicit config entries.
    """

    EMAIL = "hashedEmail"
    PHONE = "hashedPhoneNumber"
    MOBILE_ID = "mobileId"
    THIRD_PARTY_USER_ID = "thirdPartyUserId"
    ADDRESS_INFO = "addressInfo"


class UserIdentifierSource(str, Enum):
    """Provenance label attached to each user identifier."""

    UNSPECIFIED = "UNSPECIFIED"
    FIRST_PARTY = "FIRST_PARTY"
    THIRD_PARTY = "THIRD_PARTY"


class ConsentStatus(str, Enum):
    """Consent signal values accepted by Google Ads."""

    GRANTED = "GRANTED"
    DENIED = "DENIED"
    UNSPECIFIED = "UNSPECIFIED"


class ConversionEnvironment(str, Enum):
    """Environment the conversion was recorded in."""

    WEB = "WEB"
    APP = "APP"
    UNSPECIFIED = "UNSPECIFIED"


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


@dataclass(frozen=True)
class ExplicitIdentifier:
    """A user identifier supplied through configuration.

    Explicit entries always win over event data: their kind is "consumed"
    and suppresses the automatic pickup of the same kind from the event.
    """

    kind: str
    value: Any
    source: str = UserIdentifierSource.UNSPECIFIED.value


@dataclass(frozen=True)
class CustomVariable:
    """Conversion custom variable reference and its value."""

    conversion_custom_variable: str
    value: Any


@dataclass
class UserIdentifier:
    """A (possibly hashed) user identifier attached to a conversion."""

    kind: str
    value: Any
    source: str = UserIdentifierSource.UNSPECIFIED.value

    def to_dict(self) -> dict[str, Any]:
        """Serialize as ``{<kind>: value, "userIdentifierSource": source}``."""
        return {
            _enum_value(self.kind): self.value,
            "userIdentifierSource": _enum_value(self.source),
        }


@dataclass
class CartItem:
    """A single line item of the cart."""

    product_id: str | None = None
    quantity: int | None = None
    unit_price: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.product_id is not None:
            data["productId"] = self.product_id
        if self.quantity is not None:
            data["quantity"] = self.quantity
        if self.unit_price is not None:
            data["unitPrice"] = self.unit_price
        return data


@dataclass
class CartData:
    """Cart items plus merchant/feed metadata.

    ``items`` holds CartItem objects when derived from event data, or the
    caller's own dictionaries when supplied verbatim through configuration.
    """

    items: list[CartItem | dict[str, Any]] | None = None
    merchant_id: Any = None
    feed_country_code: str | None = None
    feed_language_code: str | None = None
    local_transaction_cost: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.items is not None:
            data["items"] = [
                item.to_dict() if isinstance(item, CartItem) else item
                for item in self.items
            ]
        if self.merchant_id is not None:
            data["merchantId"] = self.merchant_id
        if self.feed_country_code is not None:
            data["feedCountryCode"] = self.feed_country_code
        if self.feed_language_code is not None:
            data["feedLanguageCode"] = self.feed_language_code
        if self.local_transaction_cost is not None:
            data["localTransactionCost"] = self.local_transaction_cost
        return data


@dataclass
class Consent:
    """Ad user data and ad personalization consent signals."""

    ad_user_data: str
    ad_personalization: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "adUserData": _enum_value(self.ad_user_data),
            "adPersonalization": _enum_value(self.ad_personalization),
        }


@dataclass
class ExternalAttributionData:
    """Attribution credit and model from an external attribution system."""

    credit: float | None = None
    model: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.credit is not None:
            data["externalAttributionCredit"] = self.credit
        if self.model is not None:
            data["externalAttributionModel"] = self.model
        return data


@dataclass(frozen=True)
class ConversionConfig:
    """
    Static configuration and explicit overrides for one conversion upload.

    Every override is optional. Resolution takes an override first, then the
    event payload, then a computed default.

    Example:
        config = ConversionConfig(
            customer_id="1234567890",
            conversion_action="987654321",
            conversion_environment=ConversionEnvironment.WEB,
            user_identifiers=(
                ExplicitIdentifier(kind="hashedEmail", value="jane@example.com"),
            ),
        )
    """

    customer_id: str
    conversion_action: str
    conversion_environment: str | None = None

    # Attribution
    gclid: str | None = None
    gbraid: str | None = None
    wbraid: str | None = None
    conversion_date_time: str | None = None
    external_attribution_credit: float | None = None
    external_attribution_model: str | None = None

    # Consent
    ad_user_data: str | None = None
    ad_personalization: str | None = None

    # Value
    conversion_value: Any = None
    currency_code: str | None = None
    order_id: Any = None

    # Cart
    items: tuple[dict[str, Any], ...] | None = None
    merchant_id: Any = None
    feed_country_code: str | None = None
    feed_language_code: str | None = None
    local_transaction_cost: Any = None

    custom_variables: tuple[CustomVariable, ...] = ()
    user_identifiers: tuple[ExplicitIdentifier, ...] = ()

    @property
    def conversion_action_resource(self) -> str:
        """Resource name of the target conversion action."""
        return f"customers/{self.customer_id}/conversionActions/{self.conversion_action}"

    def custom_variable_resource(self, variable_id: str) -> str:
        """Resource name of a conversion custom variable."""
        return f"customers/{self.customer_id}/conversionCustomVariables/{variable_id}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ConversionConfig:
        """Create a ConversionConfig from a mapping.

        Keys may be snake_case field names or the camelCase names used by the
        Google Ads API (``conversionAction``, ``userDataList`` ...).

        Args:
            data: Mapping of configuration values.

        Returns:
            ConversionConfig instance.

        Raises:
            ValueError: If customer_id or conversion_action is missing, or a
                custom variable or user identifier entry lacks its id or kind.
        """

        def pick(*keys: str) -> Any:
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        customer_id = pick("customer_id", "customerId")
        conversion_action = pick("conversion_action", "conversionAction")
        if not customer_id:
            raise ValueError("Missing required field: customer_id")
        if not conversion_action:
            raise ValueError("Missing required field: conversion_action")

        items = pick("items")
        custom_variables = []
        for entry in pick("custom_variables", "customDataList") or []:
            variable_id = entry.get("conversion_custom_variable") or entry.get(
                "conversionCustomVariable"
            )
            if not variable_id:
                raise ValueError("Missing required field: conversion_custom_variable")
            custom_variables.append(
                CustomVariable(conversion_custom_variable=str(variable_id), value=entry.get("value"))
            )

        default_source = (
            pick("user_identifier_source", "userIdentifierSource")
            or UserIdentifierSource.UNSPECIFIED.value
        )
        user_identifiers = []
        for entry in pick("user_identifiers", "userDataList") or []:
            kind = entry.get("kind") or entry.get("name")
            if not kind:
                raise ValueError("Missing required field: kind")
            user_identifiers.append(
                ExplicitIdentifier(
                    kind=kind,
                    value=entry.get("value"),
                    source=entry.get("source") or default_source,
                )
            )

        return cls(
            customer_id=str(customer_id),
            conversion_action=str(conversion_action),
            conversion_environment=pick("conversion_environment", "conversionEnvironment"),
            gclid=pick("gclid"),
            gbraid=pick("gbraid"),
            wbraid=pick("wbraid"),
            conversion_date_time=pick("conversion_date_time", "conversionDateTime"),
            external_attribution_credit=pick(
                "external_attribution_credit", "externalAttributionCredit"
            ),
            external_attribution_model=pick(
                "external_attribution_model", "externalAttributionModel"
            ),
            ad_user_data=pick("ad_user_data", "adUserData"),
            ad_personalization=pick("ad_personalization", "adPersonalization"),
            conversion_value=pick("conversion_value", "conversionValue"),
            currency_code=pick("currency_code", "currencyCode"),
            order_id=pick("order_id", "orderId"),
            items=tuple(items) if items is not None else None,
            merchant_id=pick("merchant_id", "merchantId"),
            feed_country_code=pick("feed_country_code", "feedCountryCode"),
            feed_language_code=pick("feed_language_code", "feedLanguageCode"),
            local_transaction_cost=pick("local_transaction_cost", "localTransactionCost"),
            custom_variables=tuple(custom_variables),
            user_identifiers=tuple(user_identifiers),
        )


@dataclass
class ConversionRecord:
    """
    Canonical, fully-resolved click conversion.

    This is the unit submitted upstream. ``conversion_value`` and
    ``currency_code`` are always populated; every other field is optional.
    """

    conversion_action: str
    conversion_date_time: str
    conversion_value: float | int = DEFAULT_CONVERSION_VALUE
    currency_code: str = DEFAULT_CURRENCY_CODE
    conversion_environment: str | None = None

    # At most one of these is set
    gclid: str | None = None
    gbraid: str | None = None
    wbraid: str | None = None

    order_id: str | None = None
    custom_variables: list[dict[str, Any]] = field(default_factory=list)
    cart_data: CartData | None = None
    consent: Consent | None = None
    external_attribution_data: ExternalAttributionData | None = None
    user_identifiers: list[UserIdentifier] = field(default_factory=list)

    def identifier(self, kind: str) -> UserIdentifier | None:
        """Return the first identifier of the given kind, if any."""
        kind = _enum_value(kind)
        for identifier in self.user_identifiers:
            if _enum_value(identifier.kind) == kind:
                return identifier
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the Google Ads ClickConversion JSON shape."""
        data: dict[str, Any] = {}
        if self.conversion_environment is not None:
            data["conversionEnvironment"] = _enum_value(self.conversion_environment)
        data["conversionAction"] = self.conversion_action
        if self.custom_variables:
            data["customVariables"] = list(self.custom_variables)
        for click_field in ("gclid", "gbraid", "wbraid"):
            value = getattr(self, click_field)
            if value:
                data[click_field] = value
        data["conversionDateTime"] = self.conversion_date_time
        if self.external_attribution_data is not None:
            data["externalAttributionData"] = self.external_attribution_data.to_dict()
        if self.consent is not None:
            data["consent"] = self.consent.to_dict()
        if self.cart_data is not None:
            data["cartData"] = self.cart_data.to_dict()
        if self.order_id is not None:
            data["orderId"] = self.order_id
        data["conversionValue"] = self.conversion_value
        data["currencyCode"] = self.currency_code
        if self.user_identifiers:
            data["userIdentifiers"] = [ident.to_dict() for ident in self.user_identifiers]
        return data
