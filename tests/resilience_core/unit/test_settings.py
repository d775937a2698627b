from __future__ import annotations

from typing import Any, cast

import pytest
from pydantic import ValidationError

from resilience_core.circuit_breaker import CircuitBreakerConfig
from resilience_core.retry import RetryPolicy
from resilience_core.settings import ResilienceSettings, prefixed_settings_config


def _build_settings(**overrides: object) -> ResilienceSettings:
    return ResilienceSettings(**cast(Any, overrides))


def test_settings_defaults_build_component_configs() -> None:
    settings = _build_settings()

    assert settings.breaker_config() == CircuitBreakerConfig(
        failure_threshold=5,
        open_timeout=30.0,
    )
    assert settings.retry_policy() == RetryPolicy(
        max_attempts=3,
        delay=1.0,
        retry_on_circuit_open=False,
    )
    assert settings.log_level == "INFO"


def test_settings_read_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESILIENCE_BREAKER_FAILURE_THRESHOLD", "3")
    monkeypatch.setenv("RESILIENCE_BREAKER_OPEN_TIMEOUT_SECONDS", "10")
    monkeypatch.setenv("resilience_retry_max_attempts", "4")
    monkeypatch.setenv("RESILIENCE_RETRY_DELAY_SECONDS", "0.5")
    monkeypatch.setenv("RESILIENCE_RETRY_ON_CIRCUIT_OPEN", "true")
    monkeypatch.setenv("RESILIENCE_LOG_LEVEL", " debug ")

    settings = ResilienceSettings()

    assert settings.breaker_config().failure_threshold == 3
    assert settings.breaker_config().open_timeout == 10.0
    policy = settings.retry_policy()
    assert policy.max_attempts == 4
    assert policy.delay == 0.5
    assert policy.retry_on_circuit_open is True
    assert settings.log_level == "DEBUG"


@pytest.mark.parametrize(
    "overrides",
    [
        {"breaker_failure_threshold": 0},
        {"retry_max_attempts": 0},
        {"breaker_open_timeout_seconds": -1.0},
        {"retry_delay_seconds": -0.1},
        {"log_level": "TRACE"},
    ],
)
def test_settings_reject_invalid_values(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        _build_settings(**overrides)


def test_prefixed_settings_config_is_case_insensitive() -> None:
    config = prefixed_settings_config("BILLING_")

    assert config["env_prefix"] == "BILLING_"
    assert config["case_sensitive"] is False
