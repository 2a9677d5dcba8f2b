"""Tests for token records and shipment request building."""

from __future__ import annotations

from pathao_courier.const import (
    CONF_ACCESS_TOKEN,
    CONF_EXPIRES_AT,
    CONF_REFRESH_TOKEN,
    DEFAULT_DELIVERY_TYPE,
    DEFAULT_ITEM_TYPE,
)
from pathao_courier.models import (
    Credentials,
    Location,
    ShipmentRequest,
    TokenRecord,
    format_timestamp,
    parse_timestamp,
)

from .conftest import NOW, credential_settings


def test_token_usable_only_beyond_one_hour():
    assert TokenRecord("T", "R", NOW + 3601).is_usable(NOW)
    assert not TokenRecord("T", "R", NOW + 3600).is_usable(NOW)
    assert not TokenRecord("T", "R", NOW + 60).is_usable(NOW)
    assert not TokenRecord("", "R", NOW + 7200).is_usable(NOW)


def test_token_record_from_settings():
    record = TokenRecord.from_settings(
        {
            CONF_ACCESS_TOKEN: "T",
            CONF_REFRESH_TOKEN: "R",
            CONF_EXPIRES_AT: "2023-11-14T22:13:20.000Z",
        }
    )
    assert record.access_token == "T"
    assert record.refresh_token == "R"
    assert record.expires_at == NOW


def test_unparseable_expiry_counts_as_expired():
    assert parse_timestamp("not a date") == 0.0
    assert parse_timestamp("") == 0.0
    assert not TokenRecord.from_settings(
        {CONF_ACCESS_TOKEN: "T", CONF_EXPIRES_AT: "garbage"}
    ).is_usable(NOW)


def test_stored_expiry_matches_settings_format():
    assert format_timestamp(NOW) == "2023-11-14T22:13:20.000Z"
    assert parse_timestamp(format_timestamp(NOW + 3600)) == NOW + 3600


def test_token_response_defaults():
    record = TokenRecord.from_token_response(
        {"access_token": "T2"}, NOW, fallback_refresh_token="R1"
    )
    assert record.refresh_token == "R1"
    assert record.expires_at == NOW + 3600

    record = TokenRecord.from_token_response(
        {"access_token": "T2", "refresh_token": "R2", "expires_in": 432000}, NOW
    )
    assert record.refresh_token == "R2"
    assert record.expires_at == NOW + 432000


def test_secrets_not_in_repr():
    credentials = Credentials.from_settings(credential_settings())
    assert credentials.is_complete
    assert "client_secret" not in repr(credentials)
    assert "password" not in repr(credentials)
    assert "T-secret" not in repr(TokenRecord("T-secret", "R-secret", NOW))


def test_incomplete_credentials():
    credentials = Credentials(client_id="A", client_secret="B")
    assert not credentials.is_complete
    assert credentials.can_refresh
    assert not Credentials(client_id="A").can_refresh


def test_location_projection():
    assert Location.from_dict({"zone_id": 5, "zone_name": "Banani"}, "zone") == Location(
        5, "Banani"
    )


def test_shipment_request_from_order_defaults():
    order = {
        "order_number": "BH-1001",
        "customer_name": "Rahim",
        "customer_phone": "01711111111",
        "customer_address": "House 1, Road 2",
        "recipient_city_id": 1,
        "recipient_zone_id": 298,
        "total": 2450,
        "order_items": [
            {"product_name": "Oxford Shirt", "size": "M", "quantity": 2},
            {"product_name": "Chino", "size": "32", "quantity": 1},
        ],
    }
    request = ShipmentRequest.from_order(order, 372992, "Brown House", "01700000000")

    payload = request.as_payload()
    assert payload["store_id"] == 372992
    assert payload["merchant_order_id"] == "BH-1001"
    assert payload["recipient_area"] == 0
    assert payload["delivery_type"] == DEFAULT_DELIVERY_TYPE
    assert payload["item_type"] == DEFAULT_ITEM_TYPE
    assert payload["item_quantity"] == 3
    assert payload["item_weight"] == 0.5
    assert payload["amount_to_collect"] == 2450
    assert payload["item_description"] == "Oxford Shirt (M) x2, Chino (32) x1"
    assert payload["special_instruction"] == ""


def test_shipment_request_keeps_zero_amount_to_collect():
    order = {
        "order_number": "BH-1002",
        "recipient_city_id": 1,
        "recipient_zone_id": 298,
        "recipient_area_id": 37,
        "amount_to_collect": 0,
        "total": 990,
        "item_description": "Gift box",
        "notes": "Call before delivery",
        "delivery_type": 12,
        "item_weight": 1.2,
    }
    request = ShipmentRequest.from_order(order, 1, "Brown House", "")

    assert request.amount_to_collect == 0
    assert request.item_quantity == 1
    assert request.item_description == "Gift box"
    assert request.special_instruction == "Call before delivery"
    assert request.delivery_type == 12
    assert request.item_weight == 1.2
    assert request.recipient_area == 37
