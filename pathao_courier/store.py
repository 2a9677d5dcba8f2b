"""Settings and order store access for the Pathao integration.

Credentials and cached tokens live as key/value rows in the shared
``admin_settings`` table; shipment references and courier statuses live on
the ``orders`` rows. Both are reached through a PostgREST style REST
interface in production, or an in-memory store for local runs and tests.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

import aiohttp

from .const import (
    DEFAULT_TIMEOUT,
    FIELD_CONSIGNMENT_ID,
    FIELD_COURIER_STATUS,
    NOTE_AUTHOR,
    ORDER_NOTES_TABLE,
    ORDERS_TABLE,
    SETTINGS_TABLE,
    TERMINAL_COURIER_STATUSES,
)
from .exceptions import StoreError

_LOGGER = logging.getLogger(__name__)


class SettingsStore(ABC):
    """Key/value access to the settings table."""

    @abstractmethod
    async def async_get_many(self, keys: Iterable[str]) -> dict[str, str]:
        """Return the values for the given keys in one read.

        Keys without a row are omitted; empty values are returned as "".
        """

    @abstractmethod
    async def async_set(self, key: str, value: str) -> None:
        """Update a single setting."""

    @abstractmethod
    async def async_set_many(self, values: dict[str, str]) -> None:
        """Write several settings in one request."""


class OrderStore(ABC):
    """Access to order records touched by courier operations."""

    @abstractmethod
    async def async_get_order(
        self, order_id: str, with_items: bool = False
    ) -> dict[str, Any] | None:
        """Return an order row, optionally with its ``order_items``."""

    @abstractmethod
    async def async_find_order_by_consignment(
        self, consignment_id: str
    ) -> dict[str, Any] | None:
        """Return the order linked to a consignment id, if any."""

    @abstractmethod
    async def async_update_order(
        self, order_id: str, fields: dict[str, Any]
    ) -> None:
        """Update fields on an order row."""

    @abstractmethod
    async def async_add_note(
        self, order_id: str, note: str, created_by: str = NOTE_AUTHOR
    ) -> None:
        """Attach a note to an order."""

    @abstractmethod
    async def async_list_tracked_orders(self) -> list[dict[str, Any]]:
        """Return orders with a consignment that is still in flight."""


class RestStore(SettingsStore, OrderStore):
    """Settings and order store backed by a PostgREST endpoint."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str,
        service_key: str,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialise the store.

        Args:
            session: aiohttp session for making requests.
            base_url: Project URL; tables live under ``/rest/v1``.
            service_key: Service role key used as both apikey and bearer.
            timeout: Total seconds allowed per request.
        """
        self._session = session
        self._rest_url = f"{base_url.rstrip('/')}/rest/v1"
        self._service_key = service_key
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._service_key,
            "Authorization": f"Bearer {self._service_key}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _async_request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        """Make a request against a table.

        Returns:
            Parsed JSON rows, or None for minimal responses.

        Raises:
            StoreError: On transport failures, timeouts or non-2xx replies.
        """
        url = f"{self._rest_url}/{table}"
        _LOGGER.debug("Store request: %s %s %s", method, table, params or {})

        try:
            async with self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(prefer),
                timeout=self._timeout,
            ) as resp:
                if resp.status >= 300:
                    text = await resp.text()
                    raise StoreError(
                        f"Store request on {table} failed (HTTP {resp.status}): "
                        f"{text[:200]}",
                        status=resp.status,
                    )
                if resp.status == 204 or resp.content_length == 0:
                    return None
                return await resp.json(content_type=None)
        except asyncio.TimeoutError as err:
            raise StoreError(f"Store request on {table} timed out") from err
        except aiohttp.ClientError as err:
            raise StoreError(
                f"Error communicating with data store: {err}"
            ) from err

    async def async_get_many(self, keys: Iterable[str]) -> dict[str, str]:
        key_list = ",".join(keys)
        rows = await self._async_request(
            "GET",
            SETTINGS_TABLE,
            params={"select": "key,value", "key": f"in.({key_list})"},
        )
        return {row["key"]: row.get("value") or "" for row in rows or []}

    async def async_set(self, key: str, value: str) -> None:
        await self._async_request(
            "PATCH",
            SETTINGS_TABLE,
            params={"key": f"eq.{key}"},
            json={"value": value},
            prefer="return=minimal",
        )

    async def async_set_many(self, values: dict[str, str]) -> None:
        await self._async_request(
            "POST",
            SETTINGS_TABLE,
            params={"on_conflict": "key"},
            json=[{"key": key, "value": value} for key, value in values.items()],
            prefer="resolution=merge-duplicates,return=minimal",
        )

    async def async_get_order(
        self, order_id: str, with_items: bool = False
    ) -> dict[str, Any] | None:
        select = "*,order_items(*)" if with_items else "*"
        rows = await self._async_request(
            "GET",
            ORDERS_TABLE,
            params={"select": select, "id": f"eq.{order_id}", "limit": "1"},
        )
        return rows[0] if rows else None

    async def async_find_order_by_consignment(
        self, consignment_id: str
    ) -> dict[str, Any] | None:
        rows = await self._async_request(
            "GET",
            ORDERS_TABLE,
            params={
                "select": "id,status",
                FIELD_CONSIGNMENT_ID: f"eq.{consignment_id}",
                "limit": "1",
            },
        )
        return rows[0] if rows else None

    async def async_update_order(
        self, order_id: str, fields: dict[str, Any]
    ) -> None:
        await self._async_request(
            "PATCH",
            ORDERS_TABLE,
            params={"id": f"eq.{order_id}"},
            json=fields,
            prefer="return=minimal",
        )

    async def async_add_note(
        self, order_id: str, note: str, created_by: str = NOTE_AUTHOR
    ) -> None:
        await self._async_request(
            "POST",
            ORDER_NOTES_TABLE,
            json={"order_id": order_id, "note": note, "created_by": created_by},
            prefer="return=minimal",
        )

    async def async_list_tracked_orders(self) -> list[dict[str, Any]]:
        terminal = ",".join(sorted(TERMINAL_COURIER_STATUSES))
        rows = await self._async_request(
            "GET",
            ORDERS_TABLE,
            params={
                "select": f"id,status,{FIELD_CONSIGNMENT_ID},{FIELD_COURIER_STATUS}",
                FIELD_CONSIGNMENT_ID: "not.is.null",
                "or": (
                    f"({FIELD_COURIER_STATUS}.is.null,"
                    f"{FIELD_COURIER_STATUS}.not.in.({terminal}))"
                ),
            },
        )
        return list(rows or [])


class MemoryStore(SettingsStore, OrderStore):
    """In-process store holding settings and orders in dicts."""

    def __init__(
        self,
        settings: dict[str, str] | None = None,
        orders: dict[str, dict[str, Any]] | None = None,
    ) -> None:
        """Initialise the store with copies of the given rows."""
        self.settings: dict[str, str] = dict(settings or {})
        self.orders: dict[str, dict[str, Any]] = {
            str(order_id): dict(order) for order_id, order in (orders or {}).items()
        }
        self.notes: list[dict[str, Any]] = []
        self.write_count = 0

    async def async_get_many(self, keys: Iterable[str]) -> dict[str, str]:
        return {
            key: self.settings[key] or "" for key in keys if key in self.settings
        }

    async def async_set(self, key: str, value: str) -> None:
        self.settings[key] = value
        self.write_count += 1

    async def async_set_many(self, values: dict[str, str]) -> None:
        self.settings.update(values)
        self.write_count += 1

    async def async_get_order(
        self, order_id: str, with_items: bool = False
    ) -> dict[str, Any] | None:
        order = self.orders.get(str(order_id))
        if order is None:
            return None
        result = copy.deepcopy(order)
        if not with_items:
            result.pop("order_items", None)
        result["id"] = str(order_id)
        return result

    async def async_find_order_by_consignment(
        self, consignment_id: str
    ) -> dict[str, Any] | None:
        for order_id, order in self.orders.items():
            if order.get(FIELD_CONSIGNMENT_ID) == consignment_id:
                return {"id": order_id, "status": order.get("status")}
        return None

    async def async_update_order(
        self, order_id: str, fields: dict[str, Any]
    ) -> None:
        if str(order_id) in self.orders:
            self.orders[str(order_id)].update(fields)

    async def async_add_note(
        self, order_id: str, note: str, created_by: str = NOTE_AUTHOR
    ) -> None:
        self.notes.append(
            {"order_id": order_id, "note": note, "created_by": created_by}
        )

    async def async_list_tracked_orders(self) -> list[dict[str, Any]]:
        return [
            {
                "id": order_id,
                "status": order.get("status"),
                FIELD_CONSIGNMENT_ID: order[FIELD_CONSIGNMENT_ID],
                FIELD_COURIER_STATUS: order.get(FIELD_COURIER_STATUS),
            }
            for order_id, order in self.orders.items()
            if order.get(FIELD_CONSIGNMENT_ID)
            and order.get(FIELD_COURIER_STATUS) not in TERMINAL_COURIER_STATUSES
        ]
