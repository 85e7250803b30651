"""Quick-match endpoints: rooms, role slots, waiting lists, global queue."""

from fastapi import APIRouter, Depends

from backend import storage
from backend.lobby import Lobby
from tier_lobby.errors import LobbyError
from tier_lobby.models import UserProfile

from .deps import current_profile, get_lobby, http_error
from .models import CreateRoom, EnterQueue, JoinRoom

router = APIRouter()


@router.get("/matching/rooms")
async def list_rooms(lobby: Lobby = Depends(get_lobby)):
    """List matching rooms with their slots and waiting lists."""
    return lobby.matching.list_room_states()


@router.post("/matching/rooms", status_code=201)
async def create_room(body: CreateRoom, lobby: Lobby = Depends(get_lobby)):
    """Create a matching room and persist its definition."""
    try:
        room = lobby.matching.create_room(
            body.name, body.min_rank, body.max_rank, room_id=body.id
        )
    except LobbyError as e:
        raise http_error(e)
    storage.save_room_definition({
        "id": room.id,
        "name": room.name,
        "min_rank": room.min_rank.value,
        "max_rank": room.max_rank.value,
    })
    return room


@router.get("/matching/rooms/{room_id}")
async def get_room(room_id: str, lobby: Lobby = Depends(get_lobby)):
    """Get one matching room."""
    try:
        return lobby.matching.room_state(room_id)
    except LobbyError as e:
        raise http_error(e)


@router.post("/matching/rooms/{room_id}/join")
async def join_room(
    room_id: str,
    body: JoinRoom,
    lobby: Lobby = Depends(get_lobby),
    profile: UserProfile = Depends(current_profile),
):
    """Take a role slot; leaves the queue or any other room placement."""
    try:
        return lobby.matching.request_join_room(profile, room_id, body.role)
    except LobbyError as e:
        raise http_error(e)


@router.post("/matching/rooms/{room_id}/waiting")
async def join_waiting(
    room_id: str,
    lobby: Lobby = Depends(get_lobby),
    profile: UserProfile = Depends(current_profile),
):
    """Join a room's waiting list."""
    try:
        return lobby.matching.request_join_waiting(profile, room_id)
    except LobbyError as e:
        raise http_error(e)


@router.post("/matching/leave")
async def leave_room(
    lobby: Lobby = Depends(get_lobby),
    profile: UserProfile = Depends(current_profile),
):
    """Leave the current room (slot or waiting list). Safe to repeat."""
    left = lobby.matching.request_leave_room(profile.user_id)
    return {"ok": True, "left": left}


@router.get("/matching/queue")
async def get_queue(lobby: Lobby = Depends(get_lobby)):
    """Users in the global queue, first in first."""
    return lobby.matching.queue()


@router.post("/matching/queue", status_code=201)
async def enter_queue(
    body: EnterQueue,
    lobby: Lobby = Depends(get_lobby),
    profile: UserProfile = Depends(current_profile),
):
    """Enter the global matching queue with preferred roles."""
    try:
        return lobby.matching.enter_queue(profile, body.preferred_roles)
    except LobbyError as e:
        raise http_error(e)


@router.delete("/matching/queue")
async def leave_queue(
    lobby: Lobby = Depends(get_lobby),
    profile: UserProfile = Depends(current_profile),
):
    """Leave the global queue. Safe to repeat."""
    left = lobby.matching.leave_queue(profile.user_id)
    return {"ok": True, "left": left}


@router.get("/matching/me")
async def where_am_i(
    lobby: Lobby = Depends(get_lobby),
    profile: UserProfile = Depends(current_profile),
):
    """The caller's matching record and current location."""
    user = lobby.matching.lookup(profile)
    return {"user": user, "location": lobby.matching.location(profile.user_id)}
