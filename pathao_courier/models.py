"""Data models for the Pathao courier integration."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from .const import (
    CONF_ACCESS_TOKEN,
    CONF_CLIENT_ID,
    CONF_CLIENT_SECRET,
    CONF_EXPIRES_AT,
    CONF_PASSWORD,
    CONF_REFRESH_TOKEN,
    CONF_USERNAME,
    DEFAULT_DELIVERY_TYPE,
    DEFAULT_EXPIRES_IN,
    DEFAULT_ITEM_TYPE,
    DEFAULT_ITEM_WEIGHT,
    TOKEN_EXPIRY_MARGIN,
)


def parse_timestamp(value: str | None) -> float:
    """Parse a stored ISO-8601 timestamp into epoch seconds.

    Empty or unparseable values count as already expired.
    """
    if not value:
        return 0.0
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return 0.0
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


def format_timestamp(value: float) -> str:
    """Format epoch seconds the way the settings table stores them."""
    stamp = datetime.fromtimestamp(value, tz=timezone.utc)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Credentials:
    """Operator supplied Pathao merchant credentials."""

    client_id: str = ""
    client_secret: str = ""
    username: str = ""
    password: str = ""

    @property
    def is_complete(self) -> bool:
        """Return True when every field is filled in."""
        return all(
            (self.client_id, self.client_secret, self.username, self.password)
        )

    @property
    def can_refresh(self) -> bool:
        """Return True when the client pair needed for a refresh is present."""
        return bool(self.client_id and self.client_secret)

    @classmethod
    def from_settings(cls, settings: dict[str, str]) -> Credentials:
        """Create Credentials from settings store rows."""
        return cls(
            client_id=settings.get(CONF_CLIENT_ID, ""),
            client_secret=settings.get(CONF_CLIENT_SECRET, ""),
            username=settings.get(CONF_USERNAME, ""),
            password=settings.get(CONF_PASSWORD, ""),
        )

    def __repr__(self) -> str:
        return f"Credentials(client_id={self.client_id!r}, username={self.username!r})"


@dataclass(frozen=True)
class TokenRecord:
    """Cached access/refresh token pair and its absolute expiry."""

    access_token: str = ""
    refresh_token: str = ""
    expires_at: float = 0.0

    def remaining(self, now: float) -> float:
        """Return seconds left before the access token expires."""
        return self.expires_at - now

    def is_usable(self, now: float) -> bool:
        """Return True while more than the safety margin remains."""
        return bool(self.access_token) and self.remaining(now) > TOKEN_EXPIRY_MARGIN

    @classmethod
    def from_settings(cls, settings: dict[str, str]) -> TokenRecord:
        """Create a TokenRecord from settings store rows."""
        return cls(
            access_token=settings.get(CONF_ACCESS_TOKEN, ""),
            refresh_token=settings.get(CONF_REFRESH_TOKEN, ""),
            expires_at=parse_timestamp(settings.get(CONF_EXPIRES_AT)),
        )

    @classmethod
    def from_token_response(
        cls,
        data: dict[str, Any],
        now: float,
        fallback_refresh_token: str = "",
    ) -> TokenRecord:
        """Create a TokenRecord from an issue-token response."""
        expires_in = data.get("expires_in") or DEFAULT_EXPIRES_IN
        return cls(
            access_token=data.get("access_token", ""),
            refresh_token=data.get("refresh_token") or fallback_refresh_token,
            expires_at=now + float(expires_in),
        )

    def as_settings(self) -> dict[str, str]:
        """Return the settings store rows for this record."""
        return {
            CONF_ACCESS_TOKEN: self.access_token,
            CONF_REFRESH_TOKEN: self.refresh_token,
            CONF_EXPIRES_AT: format_timestamp(self.expires_at),
        }

    def __repr__(self) -> str:
        return f"TokenRecord(expires_at={format_timestamp(self.expires_at)!r})"


@dataclass(frozen=True)
class Location:
    """A city, zone or area offered by the courier."""

    id: int
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any], kind: str) -> Location:
        """Create a Location from a list entry such as {city_id, city_name}."""
        return cls(
            id=data.get(f"{kind}_id", data.get("id", 0)),
            name=data.get(f"{kind}_name", data.get("name", "")),
        )


@dataclass
class ShipmentRequest:
    """Fields sent to the courier when registering a shipment."""

    store_id: int
    merchant_order_id: str
    sender_name: str
    sender_phone: str
    recipient_name: str
    recipient_phone: str
    recipient_address: str
    recipient_city: int
    recipient_zone: int
    recipient_area: int = 0
    delivery_type: int = DEFAULT_DELIVERY_TYPE
    item_type: int = DEFAULT_ITEM_TYPE
    special_instruction: str = ""
    item_quantity: int = 1
    item_weight: float = DEFAULT_ITEM_WEIGHT
    amount_to_collect: float = 0
    item_description: str = ""

    @classmethod
    def from_order(
        cls,
        order: dict[str, Any],
        store_id: int,
        sender_name: str,
        sender_phone: str,
    ) -> ShipmentRequest:
        """Create a ShipmentRequest from an order row with its line items."""
        items = order.get("order_items") or []
        total_items = sum(int(item.get("quantity") or 0) for item in items)
        description = order.get("item_description") or ", ".join(
            f"{item.get('product_name')} ({item.get('size')}) x{item.get('quantity')}"
            for item in items
        )
        amount = order.get("amount_to_collect")
        if amount is None:
            amount = order.get("total") or 0

        return cls(
            store_id=store_id,
            merchant_order_id=str(order.get("order_number", "")),
            sender_name=sender_name,
            sender_phone=sender_phone,
            recipient_name=order.get("customer_name", ""),
            recipient_phone=order.get("customer_phone", ""),
            recipient_address=order.get("customer_address", ""),
            recipient_city=order["recipient_city_id"],
            recipient_zone=order["recipient_zone_id"],
            recipient_area=order.get("recipient_area_id") or 0,
            delivery_type=order.get("delivery_type") or DEFAULT_DELIVERY_TYPE,
            special_instruction=order.get("notes") or "",
            item_quantity=total_items or 1,
            item_weight=order.get("item_weight") or DEFAULT_ITEM_WEIGHT,
            amount_to_collect=amount,
            item_description=description,
        )

    def as_payload(self) -> dict[str, Any]:
        """Return the JSON body for the create-order endpoint."""
        return asdict(self)


@dataclass
class TrackingResult:
    """Outcome of one tracking call and its write-back."""

    consignment_id: str
    courier_status: str
    local_status: str | None
    order_id: str | None = None
    linked: bool = False
    status_applied: bool = False
    data: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable representation."""
        return asdict(self)


@dataclass
class SyncSummary:
    """Counts produced by a batch tracking sync."""

    synced: int = 0
    failed: int = 0
    status_counts: dict[str, int] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable representation."""
        return asdict(self)
