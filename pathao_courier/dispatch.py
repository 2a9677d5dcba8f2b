"""Registering store orders as Pathao shipments."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from .api import PathaoApiClient
from .auth import PathaoAuth
from .const import (
    CONF_SENDER_PHONE,
    CONF_STORE_ID,
    DEFAULT_COURIER_STATUS,
    DEFAULT_SENDER_NAME,
    FIELD_CONSIGNMENT_ID,
    FIELD_COURIER_STATUS,
    FIELD_SENT_AT,
    FIELD_STATUS,
    STATUS_SENT_TO_COURIER,
)
from .diagnostics import redact
from .exceptions import ConfigError, GatewayError, InvalidOrderError, NotFoundError
from .models import ShipmentRequest, format_timestamp
from .store import OrderStore, SettingsStore

_LOGGER = logging.getLogger(__name__)


class ShipmentDispatcher:
    """Send stored orders to the courier and link the consignment back."""

    def __init__(
        self,
        settings: SettingsStore,
        orders: OrderStore,
        auth: PathaoAuth,
        api: PathaoApiClient,
        sender_name: str = DEFAULT_SENDER_NAME,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialise the dispatcher.

        Args:
            settings: Store holding the Pathao store id and sender phone.
            orders: Store the orders are read from and linked back to.
            auth: Source of access tokens.
            api: Courier API client.
            sender_name: Name shown as the shipment sender.
            clock: Source of the current time in epoch seconds.
        """
        self._settings = settings
        self._orders = orders
        self._auth = auth
        self._api = api
        self._sender_name = sender_name
        self._clock = clock

    async def _async_build_request(self, order: dict[str, Any]) -> ShipmentRequest:
        """Build the shipment payload for an order.

        Raises:
            ConfigError: If the store id is missing or not numeric.
            InvalidOrderError: If the order has no recipient city or zone.
        """
        store = await self._settings.async_get_many((CONF_STORE_ID, CONF_SENDER_PHONE))
        try:
            store_id = int(store.get(CONF_STORE_ID) or "")
        except ValueError as err:
            raise ConfigError("Missing or invalid Pathao store id in settings") from err

        if not order.get("recipient_city_id") or not order.get("recipient_zone_id"):
            raise InvalidOrderError(
                "Missing recipient city/zone. Please set Pathao location data first."
            )

        return ShipmentRequest.from_order(
            order,
            store_id=store_id,
            sender_name=self._sender_name,
            sender_phone=store.get(CONF_SENDER_PHONE, ""),
        )

    async def async_send_order(self, order_id: str) -> dict[str, Any]:
        """Register an order with the courier.

        Returns:
            Dict with the consignment_id and the courier's shipment record.

        Raises:
            NotFoundError: If the order does not exist.
            ConfigError: If the store id is not configured.
            InvalidOrderError: If the order has no recipient city or zone.
            GatewayError: If the courier rejects the shipment.
        """
        order_id = str(order_id)
        token = await self._auth.async_get_access_token()

        order = await self._orders.async_get_order(order_id, with_items=True)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        request = await self._async_build_request(order)
        data = await self._api.async_create_shipment(token, request)

        consignment_id = data.get("consignment_id") if isinstance(data, dict) else None
        if not consignment_id:
            raise GatewayError(
                "Shipment response has no consignment_id", details=redact(data)
            )
        consignment_id = str(consignment_id)

        await self._orders.async_update_order(
            order_id,
            {
                FIELD_CONSIGNMENT_ID: consignment_id,
                FIELD_COURIER_STATUS: data.get("order_status") or DEFAULT_COURIER_STATUS,
                FIELD_SENT_AT: format_timestamp(self._clock()),
                FIELD_STATUS: STATUS_SENT_TO_COURIER,
            },
        )
        await self._orders.async_add_note(
            order_id, f"Sent to Pathao Courier. Consignment: {consignment_id}"
        )

        _LOGGER.info(
            "Order %s (%s) sent to Pathao as consignment %s",
            order_id,
            request.merchant_order_id,
            consignment_id,
        )
        return {"consignment_id": consignment_id, "data": data}
