"""
Conversion field resolution - merge configuration and event data.

Each attribute family is resolved independently. Explicit configuration
always wins, then the event payload (trying documented aliases in order),
then a computed value or literal default.

Example:
    config = ConversionConfig(customer_id="1234567890", conversion_action="42")
    record = resolve_conversion(config, {"value": 49.99, "currency": "EUR"})
    record.conversion_value  # 49.99
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from adsbridge.conversions.hashing import HashPolicy, prepare_identifier
from adsbridge.conversions.schema import (
    DEFAULT_CONVERSION_VALUE,
    DEFAULT_CURRENCY_CODE,
    CartData,
    CartItem,
    Consent,
    ConversionConfig,
    ConversionRecord,
    ExternalAttributionData,
    IdentifierKind,
    UserIdentifier,
    UserIdentifierSource,
)
from adsbridge.conversions.timestamps import current_timestamp, now_millis

logger = logging.getLogger(__name__)

# Click identifiers in order of preference; only one is uploaded
CLICK_ID_FIELDS = ("gclid", "gbraid", "wbraid")

ORDER_ID_FIELDS = ("orderId", "order_id", "transaction_id")
VALUE_FIELDS = ("value", "conversionValue", "x-ga-mp1-ev", "x-ga-mp1-tr")
CURRENCY_FIELDS = ("currencyCode", "currency")

# Sub-objects that may carry user data in event payloads
USER_DATA_CONTAINERS = ("user_data", "user_properties", "user")

# Per-kind aliases: (top-level event fields, fields inside USER_DATA_CONTAINERS)
IDENTIFIER_ALIASES: dict[IdentifierKind, tuple[tuple[str, ...], tuple[str, ...]]] = {
    IdentifierKind.EMAIL: (
        ("hashedEmail", "email", "email_address"),
        ("email", "email_address", "sha256_email_address"),
    ),
    IdentifierKind.PHONE: (
        ("hashedPhoneNumber", "phone", "phone_number"),
        ("phone", "phone_number", "sha256_phone_number"),
    ),
    IdentifierKind.MOBILE_ID: (
        ("mobileId", "mobile_id"),
        ("mobile_id",),
    ),
    IdentifierKind.THIRD_PARTY_USER_ID: (
        ("thirdPartyUserId", "user_id"),
        ("user_id",),
    ),
    IdentifierKind.ADDRESS_INFO: (
        ("addressInfo",),
        ("address",),
    ),
}


def _present(value: Any) -> bool:
    """Return True if value counts as supplied (not None and not an empty string)."""
    return value is not None and value != ""


def _first_present(*values: Any) -> Any:
    for value in values:
        if _present(value):
            return value
    return None


def _to_number(value: Any) -> float | int:
    """Coerce a value to a finite number, keeping ints as ints.

    Raises:
        ValueError: If value cannot be interpreted as a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid number: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        number = value
    else:
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid number: {value!r}") from e
    if not math.isfinite(number):
        raise ValueError(f"Invalid number: {value!r}")
    return number


def _to_int(value: Any) -> int:
    """Coerce a value to an integer (truncating fractional parts)."""
    return int(_to_number(value))


@dataclass
class _CartResolution:
    """Intermediate cart state shared by the value and currency fallbacks."""

    cart_data: CartData | None = None
    items_value: float | int = 0
    items_currency: str | None = None


@dataclass
class ConversionResolver:
    """
    Resolve a ConversionRecord from configuration and an event payload.

    Args:
        config: Explicit configuration and overrides.
        hash_policy: Which identifier kinds are hashed before upload.
        clock: Millisecond clock used when no conversion time is supplied.
    """

    config: ConversionConfig
    hash_policy: HashPolicy = HashPolicy.HASH_ALL
    clock: Callable[[], int] = field(default=now_millis)

    def resolve(self, event: Mapping[str, Any]) -> ConversionRecord:
        """
        Build the canonical conversion record for one event.

        Args:
            event: Raw event payload. Not modified.

        Returns:
            Fully-resolved ConversionRecord.

        Raises:
            ValueError: If a numeric field holds a non-numeric value.
        """
        config = self.config
        cart = self._resolve_cart(event)

        record = ConversionRecord(
            conversion_action=config.conversion_action_resource,
            conversion_date_time=self._resolve_conversion_date_time(event),
            conversion_value=self._resolve_value(event, cart),
            currency_code=self._resolve_currency(event, cart),
            conversion_environment=config.conversion_environment,
            order_id=self._resolve_order_id(event),
            custom_variables=self._resolve_custom_variables(),
            cart_data=cart.cart_data,
            consent=self._resolve_consent(),
            external_attribution_data=self._resolve_external_attribution(),
            user_identifiers=self._resolve_identifiers(event),
        )

        click_field, click_value = self._resolve_click_id(event)
        if click_field:
            setattr(record, click_field, click_value)

        logger.debug(
            f"Resolved conversion for {record.conversion_action}: "
            f"value={record.conversion_value} {record.currency_code}, "
            f"{len(record.user_identifiers)} identifiers"
        )
        return record

    # ------------------------------------------------------------------
    # Attribution
    # ------------------------------------------------------------------

    def _resolve_click_id(self, event: Mapping[str, Any]) -> tuple[str | None, Any]:
        """Return the preferred click identifier field and its value."""
        for click_field in CLICK_ID_FIELDS:
            value = _first_present(getattr(self.config, click_field), event.get(click_field))
            if value is not None:
                return click_field, value
        return None, None

    def _resolve_conversion_date_time(self, event: Mapping[str, Any]) -> str:
        value = _first_present(
            self.config.conversion_date_time,
            event.get("conversionDateTime"),
        )
        if value is not None:
            return str(value)
        return current_timestamp(self.clock)

    def _resolve_external_attribution(self) -> ExternalAttributionData | None:
        credit = self.config.external_attribution_credit
        model = self.config.external_attribution_model
        if not _present(credit) and not _present(model):
            return None
        return ExternalAttributionData(
            credit=_to_number(credit) if _present(credit) else None,
            model=model if _present(model) else None,
        )

    def _resolve_consent(self) -> Consent | None:
        """Consent is all-or-nothing: both signals must be configured."""
        ad_user_data = self.config.ad_user_data
        ad_personalization = self.config.ad_personalization
        if not (_present(ad_user_data) and _present(ad_personalization)):
            return None
        return Consent(ad_user_data=ad_user_data, ad_personalization=ad_personalization)

    def _resolve_custom_variables(self) -> list[dict[str, Any]]:
        return [
            {
                "conversionCustomVariable": self.config.custom_variable_resource(
                    variable.conversion_custom_variable
                ),
                "value": variable.value,
            }
            for variable in self.config.custom_variables
        ]

    # ------------------------------------------------------------------
    # Cart and value
    # ------------------------------------------------------------------

    def _resolve_cart(self, event: Mapping[str, Any]) -> _CartResolution:
        config = self.config
        resolution = _CartResolution()

        items: list[CartItem | dict[str, Any]] | None = None
        if config.items is not None:
            items = list(config.items)
        else:
            event_items = event.get("items")
            if isinstance(event_items, Sequence) and not isinstance(event_items, str) and event_items:
                items = []
                first = event_items[0]
                if isinstance(first, Mapping):
                    resolution.items_currency = first.get("currency")
                for raw_item in event_items:
                    item = self._derive_cart_item(raw_item)
                    if item.unit_price is not None:
                        if item.quantity:
                            resolution.items_value += item.quantity * item.unit_price
                        else:
                            resolution.items_value += item.unit_price
                    items.append(item)

        merchant_id = _first_present(config.merchant_id, event.get("merchantId"))
        feed_country_code = _first_present(config.feed_country_code, event.get("feedCountryCode"))
        feed_language_code = _first_present(
            config.feed_language_code, event.get("feedLanguageCode")
        )
        local_transaction_cost = _first_present(
            config.local_transaction_cost, event.get("localTransactionCost")
        )

        if any(
            value is not None
            for value in (items, merchant_id, feed_country_code, feed_language_code, local_transaction_cost)
        ):
            resolution.cart_data = CartData(
                items=items,
                merchant_id=merchant_id,
                feed_country_code=feed_country_code,
                feed_language_code=feed_language_code,
                local_transaction_cost=(
                    _to_number(local_transaction_cost)
                    if local_transaction_cost is not None
                    else None
                ),
            )

        return resolution

    @staticmethod
    def _derive_cart_item(raw_item: Any) -> CartItem:
        """Derive a CartItem from an event item (GA4 or legacy field names)."""
        if not isinstance(raw_item, Mapping):
            return CartItem()

        product_id = _first_present(raw_item.get("item_id"), raw_item.get("id"))
        quantity = _first_present(raw_item.get("item_quantity"), raw_item.get("quantity"))
        unit_price = _first_present(raw_item.get("item_price"), raw_item.get("price"))

        return CartItem(
            product_id=str(product_id) if product_id is not None else None,
            quantity=_to_int(quantity) if quantity is not None else None,
            unit_price=_to_number(unit_price) if unit_price is not None else None,
        )

    def _resolve_order_id(self, event: Mapping[str, Any]) -> str | None:
        value = _first_present(
            self.config.order_id,
            *(event.get(name) for name in ORDER_ID_FIELDS),
        )
        return str(value) if value is not None else None

    def _resolve_value(self, event: Mapping[str, Any], cart: _CartResolution) -> float | int:
        value = _first_present(
            self.config.conversion_value,
            *(event.get(name) for name in VALUE_FIELDS),
        )
        if value is not None:
            return _to_number(value)
        if cart.items_value:
            return cart.items_value
        return DEFAULT_CONVERSION_VALUE

    def _resolve_currency(self, event: Mapping[str, Any], cart: _CartResolution) -> str:
        value = _first_present(
            self.config.currency_code,
            *(event.get(name) for name in CURRENCY_FIELDS),
            cart.items_currency,
        )
        return str(value) if value is not None else DEFAULT_CURRENCY_CODE

    # ------------------------------------------------------------------
    # User identifiers
    # ------------------------------------------------------------------

    def _resolve_identifiers(self, event: Mapping[str, Any]) -> list[UserIdentifier]:
        """Explicit config entries first, then event fallbacks for unused kinds."""
        identifiers: list[UserIdentifier] = []
        used_kinds: set[str] = set()

        for entry in self.config.user_identifiers:
            if not _present(entry.value):
                continue
            kind = getattr(entry.kind, "value", entry.kind)
            used_kinds.add(kind)
            identifiers.append(
                UserIdentifier(
                    kind=kind,
                    value=prepare_identifier(kind, entry.value, self.hash_policy),
                    source=getattr(entry.source, "value", entry.source),
                )
            )

        for kind, (event_fields, nested_fields) in IDENTIFIER_ALIASES.items():
            if kind.value in used_kinds:
                continue
            value = self._find_event_identifier(event, event_fields, nested_fields)
            if value is None:
                continue
            identifiers.append(
                UserIdentifier(
                    kind=kind.value,
                    value=prepare_identifier(kind.value, value, self.hash_policy),
                    source=UserIdentifierSource.UNSPECIFIED.value,
                )
            )

        return identifiers

    @staticmethod
    def _find_event_identifier(
        event: Mapping[str, Any],
        event_fields: tuple[str, ...],
        nested_fields: tuple[str, ...],
    ) -> Any:
        value = _first_present(*(event.get(name) for name in event_fields))
        if value is not None:
            return value

        for container_name in USER_DATA_CONTAINERS:
            container = event.get(container_name)
            if not isinstance(container, Mapping):
                continue
            value = _first_present(*(container.get(name) for name in nested_fields))
            if value is None:
                continue
            # GA4 user_data.address may be a list of addresses
            if isinstance(value, Sequence) and not isinstance(value, str):
                if not value:
                    continue
                value = value[0]
            return value

        return None


def resolve_conversion(
    config: ConversionConfig,
    event: Mapping[str, Any],
    hash_policy: HashPolicy = HashPolicy.HASH_ALL,
    clock: Callable[[], int] = now_millis,
) -> ConversionRecord:
    """Resolve a ConversionRecord; see ConversionResolver."""
    return ConversionResolver(config=config, hash_policy=hash_policy, clock=clock).resolve(event)
