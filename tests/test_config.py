"""Tests for environment configuration."""

from __future__ import annotations

import pytest

from pathao_courier.config import CourierConfig
from pathao_courier.const import DEFAULT_BASE_URL, DEFAULT_SENDER_NAME
from pathao_courier.exceptions import ConfigError

BASE_ENV = {
    "SUPABASE_URL": "https://example.supabase.co",
    "SUPABASE_SERVICE_ROLE_KEY": "service-key",
}


def test_defaults():
    config = CourierConfig.from_env(BASE_ENV)

    assert config.supabase_url == "https://example.supabase.co"
    assert config.base_url == DEFAULT_BASE_URL
    assert config.timeout == 10.0
    assert config.sender_name == DEFAULT_SENDER_NAME
    assert config.enforce_transitions is False
    assert config.port == 8080
    assert config.log_level == "INFO"


def test_overrides():
    config = CourierConfig.from_env(
        {
            **BASE_ENV,
            "PATHAO_BASE_URL": "https://courier-api-sandbox.pathao.com/aladdin/api/v1",
            "PATHAO_TIMEOUT": "4.5",
            "PATHAO_SENDER_NAME": "Shop",
            "PATHAO_ENFORCE_TRANSITIONS": "Yes",
            "PORT": "9000",
            "LOG_LEVEL": "debug",
        }
    )

    assert config.base_url.startswith("https://courier-api-sandbox")
    assert config.timeout == 4.5
    assert config.sender_name == "Shop"
    assert config.enforce_transitions is True
    assert config.port == 9000
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize("missing", ["SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"])
def test_missing_store_settings(missing):
    env = {key: value for key, value in BASE_ENV.items() if key != missing}

    with pytest.raises(ConfigError):
        CourierConfig.from_env(env)


def test_invalid_port():
    with pytest.raises(ConfigError, match="numeric"):
        CourierConfig.from_env({**BASE_ENV, "PORT": "http"})
