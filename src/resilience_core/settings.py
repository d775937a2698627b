from __future__ import annotations

from pydantic import ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from resilience_core.circuit_breaker import CircuitBreakerConfig
from resilience_core.logging import get_log_level_value
from resilience_core.retry import RetryPolicy


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class ResilienceSettings(BaseSettings):
    """Environment-driven defaults for breakers and retry executors."""

    model_config = prefixed_settings_config("RESILIENCE_")

    breaker_failure_threshold: int = 5
    breaker_open_timeout_seconds: float = 30.0
    retry_max_attempts: int = 3
    retry_delay_seconds: float = 1.0
    retry_on_circuit_open: bool = False
    log_level: str = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        normalized = value.strip().upper()
        get_log_level_value(normalized)
        return normalized

    @field_validator(
        "breaker_failure_threshold",
        "retry_max_attempts",
    )
    @classmethod
    def _validate_positive_count(cls, value: int, info: ValidationInfo) -> int:
        if value < 1:
            raise ValueError(f"{info.field_name} must be >= 1")
        return value

    @model_validator(mode="after")
    def _validate_durations(self) -> ResilienceSettings:
        if self.breaker_open_timeout_seconds < 0:
            raise ValueError("breaker_open_timeout_seconds must be >= 0")
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must be >= 0")
        return self

    def breaker_config(self) -> CircuitBreakerConfig:
        """Build a ``CircuitBreakerConfig`` from these settings."""
        return CircuitBreakerConfig(
            failure_threshold=self.breaker_failure_threshold,
            open_timeout=self.breaker_open_timeout_seconds,
        )

    def retry_policy(self) -> RetryPolicy:
        """Build a ``RetryPolicy`` from these settings."""
        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            delay=self.retry_delay_seconds,
            retry_on_circuit_open=self.retry_on_circuit_open,
        )
