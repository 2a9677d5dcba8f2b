"""Shared fixtures: a fake Pathao provider, a clock and an in-memory store."""

from __future__ import annotations

import asyncio
from typing import Any

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from pathao_courier import setup_integration
from pathao_courier.api import PathaoApiClient
from pathao_courier.auth import PathaoAuth
from pathao_courier.config import CourierConfig
from pathao_courier.const import (
    CONF_ACCESS_TOKEN,
    CONF_CLIENT_ID,
    CONF_CLIENT_SECRET,
    CONF_EXPIRES_AT,
    CONF_PASSWORD,
    CONF_REFRESH_TOKEN,
    CONF_SENDER_PHONE,
    CONF_STORE_ID,
    CONF_USERNAME,
)
from pathao_courier.models import format_timestamp
from pathao_courier.store import MemoryStore

NOW = 1_700_000_000.0
DAY = 86400


class FakeClock:
    """Settable time source."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePathao:
    """In-process stand-in for the Pathao merchant API."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []
        self.token_requests: list[dict[str, Any]] = []
        self.shipment_requests: list[dict[str, Any]] = []
        self.shipments: dict[str, dict[str, Any]] = {}
        self.valid_tokens = {"T1", "T2", "CACHED"}
        self.password_response: dict[str, Any] = {
            "token_type": "Bearer",
            "expires_in": 5 * DAY,
            "access_token": "T1",
            "refresh_token": "R1",
        }
        self.refresh_response: dict[str, Any] = {
            "token_type": "Bearer",
            "expires_in": 5 * DAY,
            "access_token": "T2",
            "refresh_token": "R2",
        }
        self.token_status = 200
        self.token_error_body: dict[str, Any] = {
            "message": "Invalid credentials",
            "type": "error",
            "code": 400,
        }
        self.status_overrides: dict[str, str] = {}
        self.delay = 0.0
        self.base_url = ""

    @property
    def refresh_calls(self) -> list[dict[str, Any]]:
        return [
            r for r in self.token_requests if r.get("grant_type") == "refresh_token"
        ]

    def _authorised(self, request: web.Request) -> bool:
        header = request.headers.get("Authorization", "")
        return header.startswith("Bearer ") and header[7:] in self.valid_tokens

    async def issue_token(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.token_requests.append(body)
        if self.token_status != 200:
            return web.json_response(
                self.token_error_body, status=self.token_status
            )
        if body.get("grant_type") == "password":
            return web.json_response(self.password_response)
        return web.json_response(self.refresh_response)

    async def city_list(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "message": "City successfully fetched.",
                "type": "success",
                "code": 200,
                "data": {
                    "data": [
                        {"city_id": 1, "city_name": "Dhaka"},
                        {"city_id": 2, "city_name": "Chittagong"},
                    ]
                },
            }
        )

    async def zone_list(self, request: web.Request) -> web.Response:
        city_id = int(request.match_info["city_id"])
        return web.json_response(
            {
                "data": {
                    "data": [
                        {"zone_id": 298, "zone_name": "Banani", "city_id": city_id},
                        {"zone_id": 299, "zone_name": "Gulshan", "city_id": city_id},
                    ]
                }
            }
        )

    async def area_list(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "data": [
                    {
                        "area_id": 37,
                        "area_name": "Block A",
                        "home_delivery_available": True,
                    }
                ]
            }
        )

    async def create_order(self, request: web.Request) -> web.Response:
        body = await request.json()
        self.shipment_requests.append(body)
        if not body.get("recipient_city"):
            return web.json_response(
                {
                    "message": "Please fix the given errors",
                    "type": "error",
                    "code": 422,
                    "errors": {"recipient_city": ["required"]},
                },
                status=422,
            )
        consignment_id = f"DL{len(self.shipments) + 1:06d}"
        record = {
            "consignment_id": consignment_id,
            "merchant_order_id": body.get("merchant_order_id"),
            "order_status": "Pending",
            "delivery_fee": 60,
        }
        self.shipments[consignment_id] = record
        return web.json_response(
            {
                "message": "Order Created Successfully",
                "type": "success",
                "code": 200,
                "data": record,
            }
        )

    async def order_info(self, request: web.Request) -> web.Response:
        consignment_id = request.match_info["consignment_id"]
        if consignment_id in self.status_overrides:
            status = self.status_overrides[consignment_id]
        elif consignment_id in self.shipments:
            status = self.shipments[consignment_id]["order_status"]
        else:
            return web.json_response(
                {"message": "Order not found", "type": "error", "code": 404},
                status=404,
            )
        return web.json_response(
            {
                "message": "Order info",
                "type": "success",
                "code": 200,
                "data": {"consignment_id": consignment_id, "order_status": status},
            }
        )

    def make_app(self) -> web.Application:
        @web.middleware
        async def record(request: web.Request, handler):
            self.calls.append((request.method, request.path))
            if self.delay:
                await asyncio.sleep(self.delay)
            if request.path != "/issue-token" and not self._authorised(request):
                return web.json_response({"message": "Unauthenticated."}, status=401)
            return await handler(request)

        app = web.Application(middlewares=[record])
        app.router.add_post("/issue-token", self.issue_token)
        app.router.add_get("/countries/{country_id}/city-list", self.city_list)
        app.router.add_get("/cities/{city_id}/zone-list", self.zone_list)
        app.router.add_get("/zones/{zone_id}/area-list", self.area_list)
        app.router.add_post("/orders", self.create_order)
        app.router.add_get("/orders/{consignment_id}", self.order_info)
        return app


def credential_settings() -> dict[str, str]:
    return {
        CONF_CLIENT_ID: "A",
        CONF_CLIENT_SECRET: "B",
        CONF_USERNAME: "u",
        CONF_PASSWORD: "p",
    }


def token_settings(
    access_token: str, refresh_token: str, expires_at: float
) -> dict[str, str]:
    return {
        CONF_ACCESS_TOKEN: access_token,
        CONF_REFRESH_TOKEN: refresh_token,
        CONF_EXPIRES_AT: format_timestamp(expires_at),
    }


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore(
        settings={
            **credential_settings(),
            CONF_STORE_ID: "372992",
            CONF_SENDER_PHONE: "01700000000",
        }
    )


@pytest_asyncio.fixture
async def provider():
    fake = FakePathao()
    server = TestServer(fake.make_app())
    await server.start_server()
    fake.base_url = str(server.make_url("/"))
    yield fake
    await server.close()


@pytest_asyncio.fixture
async def session():
    async with aiohttp.ClientSession() as client_session:
        yield client_session


@pytest.fixture
def api(session, provider) -> PathaoApiClient:
    return PathaoApiClient(session, base_url=provider.base_url, timeout=2)


@pytest.fixture
def auth(store, api, clock) -> PathaoAuth:
    return PathaoAuth(store, api, clock=clock)


@pytest.fixture
def integration(session, provider, store, clock):
    config = CourierConfig(base_url=provider.base_url, timeout=2)
    return setup_integration(session, config, store=store, clock=clock)
