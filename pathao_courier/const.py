"""Constants for the Pathao courier integration."""

from __future__ import annotations

from typing import Final

# Provider API
DEFAULT_BASE_URL: Final = "https://api-hermes.pathao.com/aladdin/api/v1"
DEFAULT_COUNTRY_ID: Final = 1
DEFAULT_TIMEOUT: Final = 10.0

GRANT_TYPE_PASSWORD: Final = "password"
GRANT_TYPE_REFRESH_TOKEN: Final = "refresh_token"

# Seconds assumed when the provider omits expires_in
DEFAULT_EXPIRES_IN: Final = 3600

# A cached token is only handed out while more than this many seconds remain
TOKEN_EXPIRY_MARGIN: Final = 3600

# Settings store table and keys
SETTINGS_TABLE: Final = "admin_settings"

CONF_CLIENT_ID: Final = "pathao_client_id"
CONF_CLIENT_SECRET: Final = "pathao_client_secret"
CONF_USERNAME: Final = "pathao_username"
CONF_PASSWORD: Final = "pathao_password"
CONF_ACCESS_TOKEN: Final = "pathao_access_token"
CONF_REFRESH_TOKEN: Final = "pathao_refresh_token"
CONF_EXPIRES_AT: Final = "pathao_token_expires_at"
CONF_STORE_ID: Final = "pathao_store_id"
CONF_SENDER_PHONE: Final = "pathao_sender_phone"

CREDENTIAL_KEYS: Final = (
    CONF_CLIENT_ID,
    CONF_CLIENT_SECRET,
    CONF_USERNAME,
    CONF_PASSWORD,
)
TOKEN_KEYS: Final = (CONF_ACCESS_TOKEN, CONF_REFRESH_TOKEN, CONF_EXPIRES_AT)

# Order tables and fields
ORDERS_TABLE: Final = "orders"
ORDER_NOTES_TABLE: Final = "order_notes"

FIELD_CONSIGNMENT_ID: Final = "pathao_consignment_id"
FIELD_COURIER_STATUS: Final = "pathao_status"
FIELD_SENT_AT: Final = "pathao_sent_at"
FIELD_STATUS: Final = "status"

# Shipment defaults
DEFAULT_SENDER_NAME: Final = "Brown House"
DEFAULT_DELIVERY_TYPE: Final = 48
DEFAULT_ITEM_TYPE: Final = 2
DEFAULT_ITEM_WEIGHT: Final = 0.5
DEFAULT_COURIER_STATUS: Final = "Pending"
NOTE_AUTHOR: Final = "system"

# Local order statuses
STATUS_SENT_TO_COURIER: Final = "sent_to_courier"
STATUS_PICKED_UP: Final = "picked_up"
STATUS_IN_TRANSIT: Final = "in_transit"
STATUS_COMPLETED: Final = "completed"
STATUS_RETURNED: Final = "returned"
STATUS_CANCELLED: Final = "cancelled"

# Courier status -> local order status
STATUS_MAP: Final[dict[str, str]] = {
    "Pending": STATUS_SENT_TO_COURIER,
    "Pickup_Requested": STATUS_SENT_TO_COURIER,
    "Picked": STATUS_PICKED_UP,
    "In_Transit": STATUS_IN_TRANSIT,
    "Delivered": STATUS_COMPLETED,
    "Returned": STATUS_RETURNED,
    "Cancelled": STATUS_CANCELLED,
    "Return_In_Transit": STATUS_RETURNED,
    "Partial_Delivered": STATUS_COMPLETED,
}

# Courier statuses after which a consignment is no longer polled
TERMINAL_COURIER_STATUSES: Final = frozenset(
    {
        "Delivered",
        "Partial_Delivered",
        "Returned",
        "Cancelled",
    }
)

TERMINAL_LOCAL_STATUSES: Final = frozenset(
    {
        STATUS_COMPLETED,
        STATUS_RETURNED,
        STATUS_CANCELLED,
    }
)

# Forward order of in-flight local statuses
LOCAL_STATUS_SEQUENCE: Final = (
    STATUS_SENT_TO_COURIER,
    STATUS_PICKED_UP,
    STATUS_IN_TRANSIT,
)
