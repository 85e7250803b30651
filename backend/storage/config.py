"""Global app configuration (chat limits, matching timings)."""

import copy
from typing import Any

from pydantic import BaseModel, Field

from .core import config_path, read_json, write_json

_CONFIG_DEFAULTS: dict[str, Any] = {
    "chat": {
        "max_message_length": 500,
        "page_size": 50,
        "rate_limit": {"max_messages": 30, "window_seconds": 60},
    },
    "matching": {
        "start_delay_seconds": 300,
        "tick_seconds": 1.0,
    },
}


class RateLimitConfig(BaseModel):
    max_messages: int = Field(ge=1)
    window_seconds: float = Field(gt=0)


class ChatConfig(BaseModel):
    max_message_length: int = Field(ge=1)
    page_size: int = Field(ge=1)
    rate_limit: RateLimitConfig | None


class MatchingConfig(BaseModel):
    start_delay_seconds: float = Field(ge=0)
    tick_seconds: float = Field(gt=0)


class AppConfig(BaseModel):
    """Bounds the engines need at startup. Checked before anything is saved."""

    chat: ChatConfig
    matching: MatchingConfig


def _merge(base: dict[str, Any], updates: dict[str, Any]) -> None:
    """Merge known keys only; nested dicts are merged key by key.

    chat.rate_limit may be set to null to switch the limiter off.
    """
    for key, value in updates.items():
        if key not in base:
            continue
        if key == "rate_limit" and (value is None or base[key] is None):
            base[key] = value
        elif isinstance(base[key], dict):
            if isinstance(value, dict):
                _merge(base[key], value)
        else:
            base[key] = value


def get_config() -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config = copy.deepcopy(_CONFIG_DEFAULTS)
    _merge(config, read_json(config_path(), {}))
    return config


def update_config(fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config.

    Raises pydantic.ValidationError, and writes nothing, if the merged
    result is out of bounds.
    """
    config = get_config()
    _merge(config, fields)
    AppConfig.model_validate(config)
    write_json(config_path(), config)
    return config
