"""Runtime configuration for the Pathao integration service."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .const import DEFAULT_BASE_URL, DEFAULT_SENDER_NAME, DEFAULT_TIMEOUT
from .exceptions import ConfigError

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class CourierConfig:
    """Process level settings, read from the environment."""

    supabase_url: str = ""
    service_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    sender_name: str = DEFAULT_SENDER_NAME
    enforce_transitions: bool = False
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CourierConfig:
        """Build the configuration from environment variables.

        Raises:
            ConfigError: If the data store location or key is missing, or a
                numeric value cannot be parsed.
        """
        env = os.environ if environ is None else environ

        supabase_url = env.get("SUPABASE_URL", "")
        service_key = env.get("SUPABASE_SERVICE_ROLE_KEY", "")
        if not supabase_url or not service_key:
            raise ConfigError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set"
            )

        try:
            timeout = float(env.get("PATHAO_TIMEOUT", DEFAULT_TIMEOUT))
            port = int(env.get("PORT", 8080))
        except ValueError as err:
            raise ConfigError(f"Invalid numeric setting: {err}") from err

        return cls(
            supabase_url=supabase_url,
            service_key=service_key,
            base_url=env.get("PATHAO_BASE_URL", DEFAULT_BASE_URL),
            timeout=timeout,
            sender_name=env.get("PATHAO_SENDER_NAME", DEFAULT_SENDER_NAME),
            enforce_transitions=env.get("PATHAO_ENFORCE_TRANSITIONS", "").lower()
            in _TRUE_VALUES,
            host=env.get("HOST", "0.0.0.0"),
            port=port,
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )
