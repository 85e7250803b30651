"""Tests for config storage: defaults, nested merge, rate-limit toggle."""

import json

import pytest
from pydantic import ValidationError

from backend import storage


def test_get_config_empty():
    """Returns defaults when no config file exists."""
    config = storage.get_config()
    assert config["chat"]["max_message_length"] == 500
    assert config["chat"]["page_size"] == 50
    assert config["chat"]["rate_limit"] == {"max_messages": 30, "window_seconds": 60}
    assert config["matching"]["start_delay_seconds"] == 300
    assert config["matching"]["tick_seconds"] == 1.0


def test_update_config_persists():
    result = storage.update_config({"chat": {"page_size": 20}})
    assert result["chat"]["page_size"] == 20

    reloaded = storage.get_config()
    assert reloaded["chat"]["page_size"] == 20


def test_update_config_nested_merge_preserves_siblings():
    """Partial section update keeps the other keys of that section."""
    storage.update_config({"chat": {"rate_limit": {"max_messages": 5}}})

    config = storage.get_config()
    assert config["chat"]["rate_limit"] == {"max_messages": 5, "window_seconds": 60}
    assert config["chat"]["max_message_length"] == 500


def test_update_config_sections_independent():
    storage.update_config({"chat": {"max_message_length": 280}})
    storage.update_config({"matching": {"start_delay_seconds": 60}})

    config = storage.get_config()
    assert config["chat"]["max_message_length"] == 280
    assert config["matching"]["start_delay_seconds"] == 60
    assert config["matching"]["tick_seconds"] == 1.0


def test_rate_limit_can_be_switched_off_and_on():
    storage.update_config({"chat": {"rate_limit": None}})
    assert storage.get_config()["chat"]["rate_limit"] is None

    storage.update_config({"chat": {"rate_limit": {"max_messages": 3, "window_seconds": 10}}})
    assert storage.get_config()["chat"]["rate_limit"] == {"max_messages": 3, "window_seconds": 10}


def test_unknown_keys_ignored():
    storage.update_config({"theme": "dark", "chat": {"colour": "red"}})

    config = storage.get_config()
    assert "theme" not in config
    assert "colour" not in config["chat"]


def test_stored_file_merged_over_defaults():
    """A hand-edited config.json with a subset of keys still loads."""
    path = storage.data_dir() / "config.json"
    path.write_text(json.dumps({"matching": {"tick_seconds": 0.5}}))

    config = storage.get_config()
    assert config["matching"]["tick_seconds"] == 0.5
    assert config["matching"]["start_delay_seconds"] == 300
    assert config["chat"]["page_size"] == 50


@pytest.mark.parametrize("fields", [
    {"chat": {"rate_limit": {"max_messages": 0}}},
    {"chat": {"rate_limit": {"window_seconds": 0}}},
    {"chat": {"page_size": 0}},
    {"chat": {"max_message_length": -1}},
    {"matching": {"tick_seconds": 0}},
    {"matching": {"start_delay_seconds": -5}},
    {"chat": {"page_size": "lots"}},
])
def test_update_config_rejects_out_of_range(fields):
    """A bad value raises and leaves the stored config untouched."""
    storage.update_config({"chat": {"page_size": 20}})
    with pytest.raises(ValidationError):
        storage.update_config(fields)
    config = storage.get_config()
    assert config["chat"]["page_size"] == 20
    assert config["chat"]["rate_limit"] == {"max_messages": 30, "window_seconds": 60}
    assert config["matching"]["tick_seconds"] == 1.0


def test_rate_limit_reenabled_needs_both_keys():
    storage.update_config({"chat": {"rate_limit": None}})
    with pytest.raises(ValidationError):
        storage.update_config({"chat": {"rate_limit": {"max_messages": 3}}})
    assert storage.get_config()["chat"]["rate_limit"] is None
