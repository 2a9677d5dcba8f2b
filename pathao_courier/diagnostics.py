"""Diagnostics support for the Pathao integration."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from .const import (
    CONF_CLIENT_ID,
    CONF_SENDER_PHONE,
    CONF_STORE_ID,
    CREDENTIAL_KEYS,
    TOKEN_EXPIRY_MARGIN,
    TOKEN_KEYS,
)
from .models import Credentials, TokenRecord, format_timestamp
from .store import SettingsStore

REDACTED = "**REDACTED**"

TO_REDACT = {
    "access_token",
    "refresh_token",
    "client_secret",
    "password",
    "username",
    "token",
    "authorization",
    "pathao_access_token",
    "pathao_refresh_token",
    "pathao_client_secret",
    "pathao_password",
    "pathao_username",
}


def mask_token(token: str | None) -> str:
    """Mask a token for safe logging."""
    if not token:
        return "<none>"
    if len(token) <= 8:
        return "****"
    return f"{token[:4]}...{token[-4:]}"


def redact(data: Any, to_redact: set[str] = TO_REDACT) -> Any:
    """Return a copy of data with sensitive values replaced."""
    if isinstance(data, dict):
        return {
            key: REDACTED
            if str(key).lower() in to_redact and value
            else redact(value, to_redact)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact(item, to_redact) for item in data]
    return data


async def async_get_diagnostics(
    store: SettingsStore, clock: Callable[[], float] = time.time
) -> dict[str, Any]:
    """Return a redacted snapshot of the integration state."""
    settings = await store.async_get_many(
        (*CREDENTIAL_KEYS, *TOKEN_KEYS, CONF_STORE_ID, CONF_SENDER_PHONE)
    )
    credentials = Credentials.from_settings(settings)
    token = TokenRecord.from_settings(settings)
    now = clock()

    return {
        "settings": redact(settings),
        "credentials_complete": credentials.is_complete,
        "client_id": settings.get(CONF_CLIENT_ID, ""),
        "token": {
            "present": bool(token.access_token),
            "refreshable": bool(token.refresh_token),
            "usable": token.is_usable(now),
            "expires_at": format_timestamp(token.expires_at)
            if token.expires_at
            else None,
            "seconds_remaining": max(0, int(token.remaining(now))),
            "expiry_margin": TOKEN_EXPIRY_MARGIN,
        },
        "store_configured": bool(settings.get(CONF_STORE_ID)),
    }
