"""HTTP endpoints for the admin back-office courier actions."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import asdict
from typing import Any

import aiohttp
import voluptuous as vol
from aiohttp import web

from . import PathaoIntegration, setup_integration
from .config import CourierConfig
from .diagnostics import async_get_diagnostics
from .exceptions import (
    AuthError,
    ConfigError,
    GatewayError,
    InvalidOrderError,
    NotFoundError,
    RequestTimeoutError,
    StoreError,
)
from .models import format_timestamp

_LOGGER = logging.getLogger(__name__)

INTEGRATION_KEY = web.AppKey("integration", PathaoIntegration)
CONFIG_KEY = web.AppKey("config", CourierConfig)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": (
        "authorization, x-client-info, apikey, content-type"
    ),
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

_OPTIONAL_ID = vol.Any(None, vol.Coerce(str))

CREATE_ORDER_SCHEMA = vol.Schema(
    {vol.Required("order_id"): vol.All(vol.Coerce(str), vol.Length(min=1))},
    extra=vol.REMOVE_EXTRA,
)

TRACK_ORDER_SCHEMA = vol.Schema(
    {
        vol.Optional("order_id", default=None): _OPTIONAL_ID,
        vol.Optional("consignment_id", default=None): _OPTIONAL_ID,
    },
    extra=vol.REMOVE_EXTRA,
)

ZONES_QUERY_SCHEMA = vol.Schema(
    {vol.Required("city_id"): vol.Coerce(int)}, extra=vol.REMOVE_EXTRA
)

AREAS_QUERY_SCHEMA = vol.Schema(
    {vol.Required("zone_id"): vol.Coerce(int)}, extra=vol.REMOVE_EXTRA
)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def _error_response(status: int, message: str, details: Any = None) -> web.Response:
    body: dict[str, Any] = {"success": False, "error": message}
    if details is not None:
        body["details"] = details
    return web.json_response(body, status=status)


@web.middleware
async def cors_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Answer preflight requests and add CORS headers to every response."""
    if request.method == "OPTIONS":
        return web.Response(headers=CORS_HEADERS)
    try:
        response = await handler(request)
    except web.HTTPException as err:
        err.headers.update(CORS_HEADERS)
        raise
    response.headers.update(CORS_HEADERS)
    return response


@web.middleware
async def error_middleware(
    request: web.Request, handler: Handler
) -> web.StreamResponse:
    """Turn integration errors into JSON error payloads."""
    try:
        return await handler(request)
    except vol.Invalid as err:
        return _error_response(400, f"Invalid request: {err}")
    except (ConfigError, InvalidOrderError) as err:
        return _error_response(400, str(err))
    except AuthError as err:
        return _error_response(401, str(err))
    except NotFoundError as err:
        return _error_response(404, str(err))
    except RequestTimeoutError as err:
        return _error_response(504, err.message)
    except GatewayError as err:
        return _error_response(502, err.message, err.details)
    except StoreError as err:
        _LOGGER.error("Data store failure on %s: %s", request.path, err)
        return _error_response(503, "Data store unavailable")


async def _async_read_json(request: web.Request) -> dict[str, Any]:
    if not request.can_read_body:
        return {}
    try:
        body = await request.json()
    except ValueError as err:
        raise vol.Invalid("body is not valid JSON") from err
    if not isinstance(body, dict):
        raise vol.Invalid("body must be a JSON object")
    return body


async def handle_connect(request: web.Request) -> web.Response:
    """Issue a fresh token from the stored credentials."""
    integration = request.app[INTEGRATION_KEY]
    record = await integration.auth.async_connect()
    return web.json_response(
        {"success": True, "expires_at": format_timestamp(record.expires_at)}
    )


async def handle_cities(request: web.Request) -> web.Response:
    """List the cities served by the courier."""
    integration = request.app[INTEGRATION_KEY]
    token = await integration.auth.async_get_access_token()
    cities = await integration.api.async_list_cities(token)
    return web.json_response({"cities": [asdict(city) for city in cities]})


async def handle_zones(request: web.Request) -> web.Response:
    """List the zones of a city."""
    query = ZONES_QUERY_SCHEMA(dict(request.query))
    integration = request.app[INTEGRATION_KEY]
    token = await integration.auth.async_get_access_token()
    zones = await integration.api.async_list_zones(token, query["city_id"])
    return web.json_response({"zones": [asdict(zone) for zone in zones]})


async def handle_areas(request: web.Request) -> web.Response:
    """List the areas of a zone."""
    query = AREAS_QUERY_SCHEMA(dict(request.query))
    integration = request.app[INTEGRATION_KEY]
    token = await integration.auth.async_get_access_token()
    areas = await integration.api.async_list_areas(token, query["zone_id"])
    return web.json_response({"areas": [asdict(area) for area in areas]})


async def handle_create_order(request: web.Request) -> web.Response:
    """Send a stored order to the courier."""
    body = CREATE_ORDER_SCHEMA(await _async_read_json(request))
    integration = request.app[INTEGRATION_KEY]
    result = await integration.dispatcher.async_send_order(body["order_id"])
    return web.json_response({"success": True, **result})


async def handle_track_order(request: web.Request) -> web.Response:
    """Track a consignment and sync the linked order."""
    body = TRACK_ORDER_SCHEMA(await _async_read_json(request))
    integration = request.app[INTEGRATION_KEY]
    result = await integration.tracker.async_track_and_sync(
        order_id=body["order_id"], consignment_id=body["consignment_id"]
    )
    return web.json_response(
        {
            "success": True,
            "pathao_status": result.courier_status,
            "local_status": result.local_status,
            "order_id": result.order_id,
            "linked": result.linked,
            "data": result.data,
        }
    )


async def handle_sync(request: web.Request) -> web.Response:
    """Track every in-flight consignment."""
    integration = request.app[INTEGRATION_KEY]
    summary = await integration.tracker.async_sync_active()
    return web.json_response({"success": True, **summary.as_dict()})


async def handle_diagnostics(request: web.Request) -> web.Response:
    """Return a redacted view of the integration state."""
    integration = request.app[INTEGRATION_KEY]
    diagnostics = await async_get_diagnostics(integration.store, integration.clock)
    return web.json_response(diagnostics)


async def _integration_ctx(app: web.Application) -> AsyncIterator[None]:
    """Own the HTTP session and components for the app's lifetime."""
    async with aiohttp.ClientSession() as session:
        app[INTEGRATION_KEY] = setup_integration(session, app[CONFIG_KEY])
        yield


def create_app(
    config: CourierConfig, integration: PathaoIntegration | None = None
) -> web.Application:
    """Create the web application.

    When no integration is passed one is built on startup from the config.
    """
    app = web.Application(middlewares=[cors_middleware, error_middleware])
    app[CONFIG_KEY] = config
    if integration is not None:
        app[INTEGRATION_KEY] = integration
    else:
        app.cleanup_ctx.append(_integration_ctx)

    app.router.add_post("/pathao-auth", handle_connect)
    app.router.add_get("/pathao-cities", handle_cities)
    app.router.add_get("/pathao-zones", handle_zones)
    app.router.add_get("/pathao-areas", handle_areas)
    app.router.add_post("/pathao-create-order", handle_create_order)
    app.router.add_post("/pathao-track-order", handle_track_order)
    app.router.add_post("/pathao-sync", handle_sync)
    app.router.add_get("/pathao-diagnostics", handle_diagnostics)
    return app
