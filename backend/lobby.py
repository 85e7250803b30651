"""Wiring of the chat and matching engines for the web app.

The Lobby holds the owned aggregates and is attached to `app.state.lobby`;
routes receive it through a dependency rather than a module global.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from tier_lobby.chat import ChatRoomRegistry
from tier_lobby.feed import LiveFeed
from tier_lobby.matching import MatchingCoordinator
from tier_lobby.models import UserProfile
from tier_lobby.profiles import InMemoryProfileService, ProfileService
from tier_lobby.ratelimit import SendRateLimiter
from tier_lobby.slots import RoleSlotAllocator

from backend import storage

logger = logging.getLogger(__name__)


@dataclass
class Lobby:
    chat: ChatRoomRegistry
    feed: LiveFeed
    matching: MatchingCoordinator
    profiles: ProfileService
    page_size: int = 50
    tick_seconds: float = 1.0


def build_lobby(config: dict[str, Any], profiles: ProfileService) -> Lobby:
    """Create the engines from config and seed the matching rooms."""
    chat_cfg = config["chat"]
    limiter = None
    if chat_cfg.get("rate_limit"):
        limiter = SendRateLimiter(
            max_events=chat_cfg["rate_limit"]["max_messages"],
            window_seconds=chat_cfg["rate_limit"]["window_seconds"],
        )
    chat = ChatRoomRegistry(
        max_message_length=chat_cfg["max_message_length"],
        rate_limiter=limiter,
    )

    match_cfg = config["matching"]
    allocator = RoleSlotAllocator(
        start_delay=timedelta(seconds=match_cfg["start_delay_seconds"]),
    )
    matching = MatchingCoordinator(allocator)
    for room in storage.list_room_definitions():
        matching.create_room(
            room["name"],
            room.get("min_rank", "IRON"),
            room.get("max_rank", "CHALLENGER"),
            room_id=room["id"],
        )
    logger.info("lobby ready rooms=%d", len(matching.allocator.room_ids()))

    return Lobby(
        chat=chat,
        feed=LiveFeed(chat),
        matching=matching,
        profiles=profiles,
        page_size=chat_cfg["page_size"],
        tick_seconds=match_cfg["tick_seconds"],
    )


def dev_profiles() -> InMemoryProfileService:
    """In-memory profile service seeded from presets/profiles.json."""
    return InMemoryProfileService(
        [UserProfile.model_validate(p) for p in storage.list_dev_profiles()]
    )


async def tick_loop(lobby: Lobby) -> None:
    """Advance waiting times every `tick_seconds` until cancelled."""
    while True:
        await asyncio.sleep(lobby.tick_seconds)
        lobby.matching.tick()
