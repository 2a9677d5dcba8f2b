"""Token lifecycle handling for the Pathao courier API."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from .api import PathaoApiClient
from .const import CONF_CLIENT_ID, CONF_CLIENT_SECRET, CREDENTIAL_KEYS, TOKEN_KEYS
from .diagnostics import mask_token
from .exceptions import AuthError, ConfigError, GatewayError
from .models import Credentials, TokenRecord, format_timestamp
from .store import SettingsStore

_LOGGER = logging.getLogger(__name__)

# Statuses with which the token endpoint rejects a grant
_REJECTED_GRANT_STATUSES = frozenset({400, 401, 403})

_TOKEN_READ_KEYS = (*TOKEN_KEYS, CONF_CLIENT_ID, CONF_CLIENT_SECRET)


class PathaoAuth:
    """Hand out usable Pathao access tokens.

    Tokens are cached in the settings store and shared by every caller. A
    cached token is only returned while more than an hour of validity
    remains; otherwise it is exchanged through the refresh_token grant and
    the new pair is written back. Refreshes for one client id are
    serialised so concurrent callers trigger at most one outbound refresh.
    """

    def __init__(
        self,
        store: SettingsStore,
        api: PathaoApiClient,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialise the auth handler.

        Args:
            store: Settings store holding credentials and cached tokens.
            api: Client used for the token endpoints.
            clock: Source of the current time in epoch seconds.
        """
        self._store = store
        self._api = api
        self._clock = clock
        self._refresh_locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, client_id: str) -> asyncio.Lock:
        """Return the refresh lock shared by callers for one client id."""
        lock = self._refresh_locks.get(client_id)
        if lock is None:
            lock = self._refresh_locks[client_id] = asyncio.Lock()
        return lock

    async def async_get_access_token(self) -> str:
        """Return a usable access token, refreshing it if necessary.

        Raises:
            AuthError: If the token is stale and cannot be refreshed.
            ConfigError: If a refresh is needed but client credentials are missing.
            GatewayError: If the refresh call fails for another reason.
        """
        settings = await self._store.async_get_many(_TOKEN_READ_KEYS)
        token = TokenRecord.from_settings(settings)
        if token.is_usable(self._clock()):
            return token.access_token

        if not token.refresh_token:
            raise AuthError("token expired, reconnection required")

        credentials = Credentials.from_settings(settings)
        if not credentials.can_refresh:
            raise ConfigError("Missing Pathao client id or secret in settings")

        async with self._lock_for(credentials.client_id):
            # Another caller may have refreshed while this one waited
            current = TokenRecord.from_settings(
                await self._store.async_get_many(TOKEN_KEYS)
            )
            if current.is_usable(self._clock()):
                _LOGGER.debug("Using token refreshed by a concurrent caller")
                return current.access_token
            if not current.refresh_token:
                raise AuthError("token expired, reconnection required")

            refreshed = await self._async_refresh(credentials, current.refresh_token)
        return refreshed.access_token

    async def _async_refresh(
        self, credentials: Credentials, refresh_token: str
    ) -> TokenRecord:
        """Exchange the refresh token and persist the new record."""
        _LOGGER.debug(
            "Access token stale, refreshing via refresh_token (%s)",
            mask_token(refresh_token),
        )
        try:
            data = await self._api.async_refresh_token(
                credentials.client_id, credentials.client_secret, refresh_token
            )
        except GatewayError as err:
            if err.status in _REJECTED_GRANT_STATUSES:
                _LOGGER.warning(
                    "Pathao rejected the refresh token (HTTP %s): %s",
                    err.status,
                    err.message,
                )
                raise AuthError("token expired, reconnection required") from err
            raise

        record = TokenRecord.from_token_response(
            data, self._clock(), fallback_refresh_token=refresh_token
        )
        await self._store.async_set_many(record.as_settings())
        _LOGGER.info(
            "Refreshed Pathao token, valid until %s",
            format_timestamp(record.expires_at),
        )
        return record

    async def async_connect(self) -> TokenRecord:
        """Issue a fresh token from the stored credentials.

        Used when an operator (re)connects the integration.

        Raises:
            ConfigError: If any credential is missing.
            AuthError: If the provider rejects the credentials.
        """
        credentials = Credentials.from_settings(
            await self._store.async_get_many(CREDENTIAL_KEYS)
        )
        if not credentials.is_complete:
            raise ConfigError("Missing Pathao credentials in settings")

        async with self._lock_for(credentials.client_id):
            try:
                data = await self._api.async_issue_token(credentials)
            except GatewayError as err:
                if err.status in _REJECTED_GRANT_STATUSES:
                    raise AuthError(
                        f"Pathao rejected the credentials: {err.message}"
                    ) from err
                raise

            record = TokenRecord.from_token_response(data, self._clock())
            await self._store.async_set_many(record.as_settings())

        _LOGGER.info(
            "Connected to Pathao as client %s, token valid until %s",
            credentials.client_id,
            format_timestamp(record.expires_at),
        )
        return record
