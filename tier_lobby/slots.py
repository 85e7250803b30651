"""Role-slot allocation for quick-match rooms.

Each room has five role slots (TOP/JUNGLE/MID/ADC/SUPPORT) and a FIFO
waiting list. A room is Ready iff all five slots are occupied; any vacancy
takes it back to Open. The false→true transition stamps an estimated start
time (now + start_delay); leaving Ready clears it, and the next full cycle
stamps a fresh one.

Vacated slots are not offered to the waiting list automatically: waiting
users must claim a slot with join_slot() themselves.

Every operation runs to completion under the room's lock, so two joins
racing for the same empty role resolve with exactly one winner and the
other gets Conflict.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable

from tier_lobby.errors import Conflict, NotFound, ValidationError
from tier_lobby.models import Location, MatchingRoom, Role
from tier_lobby.ranks import RankTier, level, parse_tier

logger = logging.getLogger(__name__)

START_DELAY = timedelta(minutes=5)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_role(value: str | Role) -> Role:
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value).strip().upper())
    except ValueError:
        raise ValidationError(f"Unknown role {value!r}") from None


class RoleSlotAllocator:
    """Owns matching rooms and applies the slot/waiting state machine.

    Args:
        start_delay: Offset from the Ready transition to the estimated start.
        clock:       Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        start_delay: timedelta = START_DELAY,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._rooms: dict[str, MatchingRoom] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()
        self._start_delay = start_delay
        self._clock = clock

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    def create_room(
        self,
        name: str,
        min_rank: RankTier | str = RankTier.IRON,
        max_rank: RankTier | str = RankTier.CHALLENGER,
        room_id: str | None = None,
    ) -> MatchingRoom:
        low, high = parse_tier(min_rank), parse_tier(max_rank)
        if level(low) > level(high):
            raise ValidationError(f"Rank range {low.value}..{high.value} is empty")
        room_id = room_id or f"room_{uuid.uuid4().hex[:8]}"
        with self._guard:
            if room_id in self._rooms:
                raise Conflict(f"Room {room_id!r} already exists")
            room = MatchingRoom(
                id=room_id, name=name, min_rank=low, max_rank=high,
                created_at=self._clock(),
            )
            self._rooms[room_id] = room
            self._locks[room_id] = threading.RLock()
        logger.info("room created id=%s range=%s..%s", room_id, low.value, high.value)
        return room.model_copy(deep=True)

    def _room(self, room_id: str) -> tuple[MatchingRoom, threading.RLock]:
        room = self._rooms.get(room_id)
        if room is None:
            raise NotFound(f"Room {room_id!r} not found")
        return room, self._locks[room_id]

    def get_room(self, room_id: str) -> MatchingRoom:
        room, lock = self._room(room_id)
        with lock:
            return room.model_copy(deep=True)

    def list_rooms(self) -> list[MatchingRoom]:
        with self._guard:
            ids = list(self._rooms)
        return [self.get_room(room_id) for room_id in ids]

    def room_ids(self) -> list[str]:
        with self._guard:
            return list(self._rooms)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _recompute(self, room: MatchingRoom) -> None:
        was_ready = room.ready
        room.ready = room.filled == len(room.slots)
        if room.ready and not was_ready:
            room.estimated_start_time = self._clock() + self._start_delay
            logger.info("room ready id=%s start=%s", room.id, room.estimated_start_time.isoformat())
        elif not room.ready:
            if was_ready:
                logger.info("room open again id=%s", room.id)
            room.estimated_start_time = None

    def join_slot(self, room_id: str, user_id: str, role: Role | str) -> MatchingRoom:
        """Seat `user_id` in `role`, vacating any other placement in this room.

        Raises Conflict if another user holds the slot. Joining the slot the
        user already holds is a no-op.
        """
        role = parse_role(role)
        room, lock = self._room(room_id)
        with lock:
            occupant = room.slots[role]
            if occupant is not None and occupant != user_id:
                raise Conflict(f"{role.value} in room {room_id!r} is already taken")
            if occupant is None:
                prior = room.role_of(user_id)
                if prior is not None:
                    room.slots[prior] = None
                if user_id in room.waiting:
                    room.waiting.remove(user_id)
                room.slots[role] = user_id
                logger.debug("join slot room=%s user=%s role=%s", room_id, user_id, role.value)
                self._recompute(room)
            return room.model_copy(deep=True)

    def leave_slot(self, room_id: str, user_id: str) -> bool:
        """Vacate whichever slot the user holds. Returns False if none."""
        room, lock = self._room(room_id)
        with lock:
            role = room.role_of(user_id)
            if role is None:
                return False
            room.slots[role] = None
            logger.debug("leave slot room=%s user=%s role=%s", room_id, user_id, role.value)
            self._recompute(room)
            return True

    def join_waiting(self, room_id: str, user_id: str) -> bool:
        """Append to the FIFO waiting list. Returns False if already waiting."""
        room, lock = self._room(room_id)
        with lock:
            if user_id in room.waiting:
                return False
            room.waiting.append(user_id)
            logger.debug("join waiting room=%s user=%s pos=%d", room_id, user_id, len(room.waiting))
            return True

    def leave_waiting(self, room_id: str, user_id: str) -> bool:
        room, lock = self._room(room_id)
        with lock:
            if user_id not in room.waiting:
                return False
            room.waiting.remove(user_id)
            return True

    def vacate(self, room_id: str, user_id: str) -> bool:
        """Drop the user's slot and waiting entry in one step."""
        room, lock = self._room(room_id)
        with lock:
            left_slot = self.leave_slot(room_id, user_id)
            left_waiting = self.leave_waiting(room_id, user_id)
            return left_slot or left_waiting

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def placement(self, room_id: str, user_id: str) -> Location:
        room, lock = self._room(room_id)
        with lock:
            role = room.role_of(user_id)
            if role is not None:
                return Location(kind="slot", room_id=room_id, role=role)
            if user_id in room.waiting:
                return Location(kind="waiting", room_id=room_id)
            return Location()

    def members(self, room_id: str) -> list[str]:
        """Seated users in role order, then waiting users in FIFO order."""
        room, lock = self._room(room_id)
        with lock:
            seated = [u for u in room.slots.values() if u is not None]
            return seated + list(room.waiting)
