"""Tier chat endpoints: rooms, message history, sending, live feed."""

import asyncio
import contextlib
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from backend.lobby import Lobby
from tier_lobby import access
from tier_lobby.errors import LobbyError, NotFound
from tier_lobby.models import ChatRoom, UserProfile

from .deps import current_profile, get_lobby, http_error, optional_profile
from .models import SendMessage

logger = logging.getLogger(__name__)

router = APIRouter()


def _room_view(room: ChatRoom, profile: UserProfile | None) -> dict:
    view = room.model_dump(mode="json")
    if profile is not None:
        view["can_read"] = access.can_read(profile.rank, room.tier)
        view["can_write"] = access.can_write(profile.rank, room.tier, profile.is_verified)
    return view


@router.get("/chat/rooms")
async def list_rooms(
    lobby: Lobby = Depends(get_lobby),
    profile: UserProfile | None = Depends(optional_profile),
):
    """List the tier rooms, lowest tier first."""
    return [_room_view(room, profile) for room in lobby.chat.list_rooms()]


@router.get("/chat/rooms/{tier}")
async def get_room(
    tier: str,
    lobby: Lobby = Depends(get_lobby),
    profile: UserProfile | None = Depends(optional_profile),
):
    """Get one tier room, with the caller's permissions if identified."""
    try:
        room = lobby.chat.get_room(tier)
    except LobbyError as e:
        raise http_error(e)
    return _room_view(room, profile)


@router.get("/chat/rooms/{tier}/messages")
async def list_messages(
    tier: str,
    page: int = 1,
    page_size: int | None = None,
    lobby: Lobby = Depends(get_lobby),
):
    """Oldest-first message history. Readable at any rank."""
    try:
        size = lobby.page_size if page_size is None else page_size
        return lobby.chat.list_messages(tier, page, size)
    except LobbyError as e:
        raise http_error(e)


@router.post("/chat/rooms/{tier}/messages", status_code=201)
async def send_message(
    tier: str,
    body: SendMessage,
    lobby: Lobby = Depends(get_lobby),
    profile: UserProfile = Depends(current_profile),
):
    """Post to a tier room. Needs the tier (or higher) and a verified identity."""
    try:
        return lobby.chat.send_message(tier, profile, body.text)
    except LobbyError as e:
        raise http_error(e)


@router.websocket("/chat/rooms/{tier}/feed")
async def chat_feed(websocket: WebSocket, tier: str, after: int | None = None):
    """Stream a room's messages as JSON frames.

    With `after`, messages newer than that id are replayed first; reconnecting
    clients pass the last id they processed.
    """
    lobby: Lobby = websocket.app.state.lobby
    try:
        lobby.chat.get_room(tier)
    except NotFound:
        await websocket.close(code=4404)
        return

    sub = None
    watcher = None

    async def watch_disconnect():
        # Clients send nothing meaningful; reading is how a close is noticed.
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            pass
        finally:
            sub.close()

    try:
        await websocket.accept()
        sub = lobby.feed.subscribe(tier, from_message_id=after)
        watcher = asyncio.create_task(watch_disconnect())
        async for msg in sub:
            await websocket.send_json(msg.model_dump(mode="json"))
    except WebSocketDisconnect:
        logger.debug("feed client gone room=%s", tier)
    finally:
        if watcher is not None:
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher
        if sub is not None:
            lobby.feed.unsubscribe(sub)
