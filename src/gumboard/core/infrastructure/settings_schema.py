from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, PositiveFloat, PositiveInt, field_validator, model_validator


# ---------- Sub-schemas ----------
class StorageConfig(BaseModel):
    DB_PATH: str = Field("./data/gumboard.sqlite3", min_length=1)
    APP_BASE_URL: str = ""

    @field_validator("APP_BASE_URL")
    @classmethod
    def _http_url(cls, v: str) -> str:
        if v and not v.startswith(("http://", "https://")):
            raise ValueError(f"APP_BASE_URL must start with http:// or https://, got {v!r}")
        return v


class GatesConfig(BaseModel):
    DEBOUNCE_WINDOW_MS: PositiveInt = 1000
    DEDUP_WINDOW_MS: PositiveInt = 30000
    EVENT_DEDUP_WINDOW_MS: PositiveInt = 300000
    TEST_BOARD_PREFIX: str = "Test"


class DeliveryConfig(BaseModel):
    WEBHOOK_TIMEOUT_SEC: PositiveFloat = 5.0
    WEBHOOK_HARD_TIMEOUT_SEC: PositiveFloat = 8.0
    DISPATCH_QUEUE_SIZE: PositiveInt = 256
    DISPATCH_WORKERS: int = Field(2, ge=1, le=32)
    WEBHOOK_USERNAME: str = Field("Gumboard", min_length=1)
    WEBHOOK_ICON_EMOJI: str = ":clipboard:"

    @model_validator(mode="after")
    def _hard_timeout_covers_request(self) -> "DeliveryConfig":
        if self.WEBHOOK_HARD_TIMEOUT_SEC < self.WEBHOOK_TIMEOUT_SEC:
            raise ValueError("WEBHOOK_HARD_TIMEOUT_SEC must be >= WEBHOOK_TIMEOUT_SEC")
        return self


class LoggingConfig(BaseModel):
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"] = "INFO"


# ---------- Aggregate ----------
class AppConfig(BaseModel):
    storage: StorageConfig
    gates: GatesConfig
    delivery: DeliveryConfig
    logging: LoggingConfig


def validate_settings(settings: Any) -> AppConfig:
    """
    Collect values from Settings (dataclass) and validate invariants.
    Raises pydantic.ValidationError on invalid config.
    """
    data = {
        "storage": {
            "DB_PATH": getattr(settings, "DB_PATH", ""),
            "APP_BASE_URL": getattr(settings, "APP_BASE_URL", ""),
        },
        "gates": {
            "DEBOUNCE_WINDOW_MS": getattr(settings, "DEBOUNCE_WINDOW_MS", 1000),
            "DEDUP_WINDOW_MS": getattr(settings, "DEDUP_WINDOW_MS", 30000),
            "EVENT_DEDUP_WINDOW_MS": getattr(settings, "EVENT_DEDUP_WINDOW_MS", 300000),
            "TEST_BOARD_PREFIX": getattr(settings, "TEST_BOARD_PREFIX", "Test"),
        },
        "delivery": {
            "WEBHOOK_TIMEOUT_SEC": getattr(settings, "WEBHOOK_TIMEOUT_SEC", 5.0),
            "WEBHOOK_HARD_TIMEOUT_SEC": getattr(settings, "WEBHOOK_HARD_TIMEOUT_SEC", 8.0),
            "DISPATCH_QUEUE_SIZE": getattr(settings, "DISPATCH_QUEUE_SIZE", 256),
            "DISPATCH_WORKERS": getattr(settings, "DISPATCH_WORKERS", 2),
            "WEBHOOK_USERNAME": getattr(settings, "WEBHOOK_USERNAME", "Gumboard"),
            "WEBHOOK_ICON_EMOJI": getattr(settings, "WEBHOOK_ICON_EMOJI", ":clipboard:"),
        },
        "logging": {
            "LOG_LEVEL": str(getattr(settings, "LOG_LEVEL", "INFO")).upper(),
        },
    }
    return AppConfig(**data)
