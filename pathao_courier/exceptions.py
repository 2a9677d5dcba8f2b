"""Exceptions for the Pathao courier integration."""

from __future__ import annotations

from typing import Any


class PathaoError(Exception):
    """Base exception for the Pathao integration."""


class ConfigError(PathaoError):
    """Credentials or store configuration are missing or incomplete."""


class AuthError(PathaoError):
    """No usable token and no way to refresh one."""


class GatewayError(PathaoError):
    """The courier provider rejected a call or could not be reached."""

    def __init__(
        self,
        message: str,
        status: int | None = None,
        details: Any = None,
    ) -> None:
        """Initialise the error.

        Args:
            message: Human readable reason, preferably the provider's own.
            status: HTTP status of the failed call, if one was received.
            details: Redacted provider response body for diagnostics.
        """
        super().__init__(message)
        self.message = message
        self.status = status
        self.details = details


class RequestTimeoutError(GatewayError):
    """The provider did not answer within the configured timeout."""

    def __init__(self) -> None:
        """Initialise the error."""
        super().__init__("request timed out")


class NotFoundError(PathaoError):
    """No order or consignment could be resolved."""


class InvalidOrderError(PathaoError):
    """The order lacks data required to register a shipment."""


class StoreError(PathaoError):
    """A settings or order store request failed."""

    def __init__(self, message: str, status: int | None = None) -> None:
        """Initialise the error."""
        super().__init__(message)
        self.status = status
