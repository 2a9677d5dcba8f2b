"""Pathao courier merchant API client."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from .const import (
    DEFAULT_BASE_URL,
    DEFAULT_COUNTRY_ID,
    DEFAULT_TIMEOUT,
    GRANT_TYPE_PASSWORD,
    GRANT_TYPE_REFRESH_TOKEN,
)
from .diagnostics import mask_token, redact
from .exceptions import GatewayError, RequestTimeoutError
from .models import Credentials, Location, ShipmentRequest

_LOGGER = logging.getLogger(__name__)


def unwrap_data(payload: Any, nested: bool = True) -> Any:
    """Strip the provider's response envelope.

    List endpoints answer with either ``{"data": {"data": [...]}}`` or
    ``{"data": [...]}``; anything without a ``data`` key is returned as is.
    With ``nested`` off only the outer envelope is removed.
    """
    if not isinstance(payload, dict) or "data" not in payload:
        return payload
    data = payload["data"]
    if nested and isinstance(data, dict) and "data" in data:
        return data["data"]
    return data


def _fallback_message(status: int, body: Any) -> str:
    """Describe an error reply that carries no message of its own.

    Only a redacted JSON body is quoted; raw text may echo credentials.
    """
    if isinstance(body, (dict, list)):
        return f"HTTP {status}: {json.dumps(redact(body))[:200]}"
    return f"HTTP {status}"


class PathaoApiClient:
    """API client for the Pathao courier merchant API."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialise the API client.

        Args:
            session: aiohttp session for making requests.
            base_url: Provider API root, e.g. the sandbox or production host.
            timeout: Total seconds allowed per request.
        """
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def _async_request(
        self,
        method: str,
        path: str,
        token: str | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Make a request to the provider and return the parsed body.

        Args:
            method: HTTP method.
            path: API path (appended to base URL).
            token: Bearer access token, omitted for token endpoints.
            json: Optional JSON body.

        Returns:
            Parsed JSON response.

        Raises:
            RequestTimeoutError: If the provider does not answer in time.
            GatewayError: For non-2xx replies, bad bodies or transport errors.
        """
        url = f"{self._base_url}{path}"
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        _LOGGER.debug(
            "API request: %s %s (token=%s)", method, path, mask_token(token)
        )

        try:
            async with self._session.request(
                method, url, headers=headers, json=json, timeout=self._timeout
            ) as resp:
                try:
                    body = await resp.json(content_type=None)
                except ValueError:
                    body = None

                if not 200 <= resp.status < 300:
                    message = None
                    if isinstance(body, dict):
                        message = body.get("message") or body.get("error")
                    if not message:
                        message = _fallback_message(resp.status, body)
                    _LOGGER.warning(
                        "API request %s %s failed (HTTP %s): %s",
                        method,
                        path,
                        resp.status,
                        message,
                    )
                    raise GatewayError(
                        message, status=resp.status, details=redact(body)
                    )

                if body is None:
                    raise GatewayError(
                        "Malformed response from Pathao API",
                        status=resp.status,
                    )
                return body
        except asyncio.TimeoutError as err:
            _LOGGER.warning("API request %s %s timed out", method, path)
            raise RequestTimeoutError() from err
        except aiohttp.ClientError as err:
            raise GatewayError(
                f"Error communicating with Pathao API: {err}"
            ) from err

    async def _async_token_request(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Post a grant to the token endpoint and check the reply.

        Raises:
            GatewayError: If the reply has no access token or an unusable
                expires_in.
        """
        data = await self._async_request("POST", "/issue-token", json=payload)
        if not isinstance(data, dict) or not data.get("access_token"):
            message = "Token response has no access_token"
            if isinstance(data, dict) and data.get("message"):
                message = data["message"]
            raise GatewayError(message, details=redact(data))
        expires_in = data.get("expires_in")
        if expires_in is not None:
            try:
                float(expires_in)
            except (TypeError, ValueError) as err:
                raise GatewayError(
                    "Malformed token response", details=redact(data)
                ) from err
        _LOGGER.debug("Token issued, expires_in=%s", data.get("expires_in"))
        return data

    async def async_issue_token(self, credentials: Credentials) -> dict[str, Any]:
        """Issue a token with the password grant.

        Returns:
            Dict with access_token, refresh_token and expires_in.
        """
        return await self._async_token_request(
            {
                "client_id": credentials.client_id,
                "client_secret": credentials.client_secret,
                "username": credentials.username,
                "password": credentials.password,
                "grant_type": GRANT_TYPE_PASSWORD,
            }
        )

    async def async_refresh_token(
        self, client_id: str, client_secret: str, refresh_token: str
    ) -> dict[str, Any]:
        """Exchange a refresh token for a new token pair."""
        return await self._async_token_request(
            {
                "client_id": client_id,
                "client_secret": client_secret,
                "refresh_token": refresh_token,
                "grant_type": GRANT_TYPE_REFRESH_TOKEN,
            }
        )

    async def _async_list(self, token: str, path: str, kind: str) -> list[Location]:
        """Fetch a location list and convert its entries."""
        data = unwrap_data(await self._async_request("GET", path, token=token))
        if not isinstance(data, list):
            raise GatewayError(
                f"Expected a {kind} list from Pathao API", details=redact(data)
            )
        locations = [
            Location.from_dict(entry, kind) for entry in data if isinstance(entry, dict)
        ]
        _LOGGER.debug("Fetched %d %s(s) from %s", len(locations), kind, path)
        return locations

    async def async_list_cities(
        self, token: str, country_id: int = DEFAULT_COUNTRY_ID
    ) -> list[Location]:
        """Fetch the cities served in a country."""
        return await self._async_list(
            token, f"/countries/{country_id}/city-list", "city"
        )

    async def async_list_zones(self, token: str, city_id: int) -> list[Location]:
        """Fetch the zones of a city."""
        return await self._async_list(token, f"/cities/{city_id}/zone-list", "zone")

    async def async_list_areas(self, token: str, zone_id: int) -> list[Location]:
        """Fetch the areas of a zone."""
        return await self._async_list(token, f"/zones/{zone_id}/area-list", "area")

    async def async_create_shipment(
        self, token: str, request: ShipmentRequest
    ) -> dict[str, Any]:
        """Register a shipment with the courier.

        Returns:
            The created shipment record, including its consignment_id.
        """
        result = await self._async_request(
            "POST", "/orders", token=token, json=request.as_payload()
        )
        if isinstance(result, dict) and result.get("type") == "error":
            raise GatewayError(
                result.get("message") or "Failed to create order on Pathao",
                details=redact(result),
            )
        return unwrap_data(result, nested=False)

    async def async_track_shipment(
        self, token: str, consignment_id: str
    ) -> dict[str, Any]:
        """Fetch the current status record of a consignment."""
        return unwrap_data(
            await self._async_request("GET", f"/orders/{consignment_id}", token=token),
            nested=False,
        )
