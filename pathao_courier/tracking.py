"""Consignment tracking and order status write-back."""

from __future__ import annotations

import logging

from .api import PathaoApiClient
from .auth import PathaoAuth
from .const import FIELD_CONSIGNMENT_ID, FIELD_COURIER_STATUS, FIELD_STATUS
from .diagnostics import redact
from .exceptions import GatewayError, NotFoundError
from .models import SyncSummary, TrackingResult
from .status import is_regression, translate
from .store import OrderStore

_LOGGER = logging.getLogger(__name__)


class TrackingOrchestrator:
    """Track consignments and copy their status onto order records."""

    def __init__(
        self,
        store: OrderStore,
        auth: PathaoAuth,
        api: PathaoApiClient,
        enforce_transitions: bool = False,
    ) -> None:
        """Initialise the orchestrator.

        Args:
            store: Order store the statuses are written to.
            auth: Source of access tokens.
            api: Courier API client.
            enforce_transitions: Refuse local status changes that move an
                order backwards instead of applying them.
        """
        self._store = store
        self._auth = auth
        self._api = api
        self._enforce_transitions = enforce_transitions

    async def async_track_and_sync(
        self,
        order_id: str | None = None,
        consignment_id: str | None = None,
    ) -> TrackingResult:
        """Track one consignment and sync its status to the linked order.

        The consignment is given directly or read from the order. When only
        a consignment id is given the order is found by reverse lookup; if
        none is linked the tracking result is still returned.

        Raises:
            NotFoundError: If no consignment id can be resolved.
            AuthError: If no usable token is available.
            GatewayError: If the provider call fails or the reply lacks a status.
        """
        order_id = str(order_id) if order_id else None
        consignment_id = str(consignment_id) if consignment_id else None
        current_status: str | None = None

        if order_id:
            order = await self._store.async_get_order(order_id)
            if order is None:
                raise NotFoundError(f"Order {order_id} not found")
            current_status = order.get(FIELD_STATUS)
            if not consignment_id and order.get(FIELD_CONSIGNMENT_ID):
                consignment_id = str(order[FIELD_CONSIGNMENT_ID])

        if not consignment_id:
            raise NotFoundError("No consignment ID")

        token = await self._auth.async_get_access_token()
        data = await self._api.async_track_shipment(token, consignment_id)
        courier_status = data.get("order_status") if isinstance(data, dict) else None
        if not courier_status:
            raise GatewayError(
                "Tracking response has no order_status", details=redact(data)
            )
        local_status = translate(courier_status)

        result = TrackingResult(
            consignment_id=consignment_id,
            courier_status=courier_status,
            local_status=local_status,
            order_id=order_id,
            data=data,
        )

        if not order_id:
            match = await self._store.async_find_order_by_consignment(consignment_id)
            if match is None:
                _LOGGER.info(
                    "Consignment %s is %s but no order is linked to it",
                    consignment_id,
                    courier_status,
                )
                return result
            result.order_id = str(match["id"])
            current_status = match.get(FIELD_STATUS)

        fields = {FIELD_COURIER_STATUS: courier_status}
        if local_status:
            if self._enforce_transitions and is_regression(current_status, local_status):
                _LOGGER.warning(
                    "Ignoring status regression for order %s: %s -> %s (courier %s)",
                    result.order_id,
                    current_status,
                    local_status,
                    courier_status,
                )
            else:
                fields[FIELD_STATUS] = local_status
                result.status_applied = True

        await self._store.async_update_order(result.order_id, fields)
        result.linked = True
        _LOGGER.debug(
            "Order %s synced: courier=%s local=%s",
            result.order_id,
            courier_status,
            local_status,
        )
        return result

    async def async_sync_active(self) -> SyncSummary:
        """Track every in-flight consignment.

        Provider failures for a single order are recorded and the batch
        continues; missing or unusable credentials abort it.
        """
        summary = SyncSummary()
        for order in await self._store.async_list_tracked_orders():
            order_id = str(order["id"])
            try:
                result = await self.async_track_and_sync(
                    order_id=order_id,
                    consignment_id=order.get(FIELD_CONSIGNMENT_ID),
                )
            except (GatewayError, NotFoundError) as err:
                _LOGGER.warning("Tracking order %s failed: %s", order_id, err)
                summary.failed += 1
                summary.failures[order_id] = str(err)
                continue

            summary.synced += 1
            summary.status_counts[result.courier_status] = (
                summary.status_counts.get(result.courier_status, 0) + 1
            )

        _LOGGER.info(
            "Synced %d consignment(s), %d failed", summary.synced, summary.failed
        )
        return summary
