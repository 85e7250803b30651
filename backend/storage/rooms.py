"""Matching room definitions and development profiles.

Built-in rooms live in presets/rooms.json (read-only). Rooms created by an
organizer at runtime are persisted to data/rooms.json. list_room_definitions()
merges both; user data wins on id collision.
"""

from typing import Any

from .core import preset_profiles_path, preset_rooms_path, read_json, user_rooms_path, write_json


def list_room_definitions() -> list[dict[str, Any]]:
    """Preset rooms first, then user rooms, de-duplicated by id."""
    merged: dict[str, dict[str, Any]] = {}
    for room in read_json(preset_rooms_path(), []):
        merged[room["id"]] = room
    for room in read_json(user_rooms_path(), []):
        merged[room["id"]] = room
    return list(merged.values())


def save_room_definition(room: dict[str, Any]) -> dict[str, Any]:
    """Upsert a user room definition by id."""
    rooms = read_json(user_rooms_path(), [])
    for i, existing in enumerate(rooms):
        if existing["id"] == room["id"]:
            rooms[i] = room
            break
    else:
        rooms.append(room)
    write_json(user_rooms_path(), rooms)
    return room


def list_dev_profiles() -> list[dict[str, Any]]:
    """Profiles for the in-memory profile service (presets/profiles.json)."""
    return read_json(preset_profiles_path(), [])
