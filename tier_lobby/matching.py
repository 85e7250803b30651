"""Matching coordinator: the single source of truth for where each user is.

A user is in exactly one of: nowhere, the global queue, one room's waiting
list, one room's slot. Every operation that places a user somewhere vacates
the previous location in the same locked step. Room state itself is only
changed through the RoleSlotAllocator.

Lock order: coordinator lock first, then at most one room lock at a time
(taken inside the allocator).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable

from tier_lobby import access
from tier_lobby.errors import AlreadyQueued, NotFound, PermissionDenied, ValidationError
from tier_lobby.models import (
    Location,
    MatchingRoom,
    MatchingUser,
    Role,
    RoomState,
    UserProfile,
)
from tier_lobby.ranks import RankTier
from tier_lobby.slots import RoleSlotAllocator, parse_role

logger = logging.getLogger(__name__)


def _parse_roles(roles: Iterable[Role | str]) -> list[Role]:
    parsed: list[Role] = []
    for role in roles:
        r = parse_role(role)
        if r not in parsed:
            parsed.append(r)
    return parsed


class MatchingCoordinator:
    def __init__(self, allocator: RoleSlotAllocator | None = None) -> None:
        self.allocator = allocator or RoleSlotAllocator()
        self._users: dict[str, MatchingUser] = {}
        self._locations: dict[str, Location] = {}
        self._queue: dict[str, None] = {}  # insertion-ordered set, FIFO
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def register(
        self, profile: UserProfile, preferred_roles: Iterable[Role | str] | None = None
    ) -> MatchingUser:
        """Create or refresh a user's record from a profile snapshot."""
        with self._lock:
            user = self._users.get(profile.user_id)
            if user is None:
                user = MatchingUser(id=profile.user_id, username=profile.username, rank=profile.rank)
                self._users[user.id] = user
            else:
                user.username = profile.username or user.username
                user.rank = profile.rank
            if preferred_roles is not None:
                user.preferred_roles = _parse_roles(preferred_roles)
            return user.model_copy(deep=True)

    def user(self, user_id: str) -> MatchingUser:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFound(f"User {user_id!r} not found")
            return user.model_copy(deep=True)

    def lookup(self, profile: UserProfile) -> MatchingUser:
        """The stored record, or an unsaved snapshot for a user never seen."""
        with self._lock:
            user = self._users.get(profile.user_id)
            if user is None:
                return MatchingUser(id=profile.user_id, username=profile.username, rank=profile.rank)
            return user.model_copy(deep=True)

    def location(self, user_id: str) -> Location:
        """Where the user is now; a user never seen is nowhere."""
        with self._lock:
            return self._locations.get(user_id, Location()).model_copy()

    def _vacate(self, user_id: str) -> None:
        loc = self._locations.pop(user_id, None)
        if loc is None:
            return
        if loc.kind == "queue":
            self._queue.pop(user_id, None)
        elif loc.kind in ("waiting", "slot") and loc.room_id is not None:
            self.allocator.vacate(loc.room_id, user_id)

    # ------------------------------------------------------------------
    # Global queue
    # ------------------------------------------------------------------

    def enter_queue(
        self, profile: UserProfile, preferred_roles: Iterable[Role | str] | None = None
    ) -> MatchingUser:
        """Join the global matching queue, leaving any room placement.

        Raises AlreadyQueued if the user is queued already, ValidationError
        for an explicitly empty or unknown preferred-role list.
        """
        roles = None
        if preferred_roles is not None:
            roles = _parse_roles(preferred_roles)
            if not roles:
                raise ValidationError("Select at least one preferred role")
        with self._lock:
            if profile.user_id in self._queue:
                raise AlreadyQueued(f"User {profile.user_id!r} is already queued")
            user = self.register(profile, roles)
            self._vacate(user.id)
            self._queue[user.id] = None
            self._locations[user.id] = Location(kind="queue")
            logger.info("queue enter user=%s roles=%s size=%d",
                        user.id, [r.value for r in user.preferred_roles], len(self._queue))
            return user

    def leave_queue(self, user_id: str) -> bool:
        with self._lock:
            if user_id not in self._queue:
                return False
            self._vacate(user_id)
            logger.info("queue leave user=%s size=%d", user_id, len(self._queue))
            return True

    def queue(self) -> list[MatchingUser]:
        """Queued users, first in first."""
        with self._lock:
            return [self._users[uid].model_copy(deep=True) for uid in self._queue]

    # ------------------------------------------------------------------
    # Rooms
    # ------------------------------------------------------------------

    def create_room(
        self,
        name: str,
        min_rank: RankTier | str = RankTier.IRON,
        max_rank: RankTier | str = RankTier.CHALLENGER,
        room_id: str | None = None,
    ) -> RoomState:
        room = self.allocator.create_room(name, min_rank, max_rank, room_id=room_id)
        return self.room_state(room.id)

    def _check_eligible(self, profile: UserProfile, room: MatchingRoom) -> None:
        if not access.in_range(profile.rank, room.min_rank, room.max_rank):
            logger.warning("join refused user=%s rank=%s room=%s range=%s..%s",
                           profile.user_id, profile.rank.value, room.id,
                           room.min_rank.value, room.max_rank.value)
            raise PermissionDenied(
                f"Room {room.id!r} is for {room.min_rank.value}..{room.max_rank.value}"
            )

    def request_join_room(self, profile: UserProfile, room_id: str, role: Role | str) -> RoomState:
        """Take `role` in `room_id` and leave wherever the user was before.

        On Conflict nothing changes: the user keeps their previous location.
        """
        role = parse_role(role)
        with self._lock:
            self._check_eligible(profile, self.allocator.get_room(room_id))
            self.allocator.join_slot(room_id, profile.user_id, role)
            self.register(profile)
            prior = self._locations.get(profile.user_id)
            if prior is not None and prior.room_id != room_id:
                self._vacate(profile.user_id)
            self._locations[profile.user_id] = Location(kind="slot", room_id=room_id, role=role)
            return self.room_state(room_id)

    def request_join_waiting(self, profile: UserProfile, room_id: str) -> RoomState:
        """Wait in `room_id`'s FIFO list, leaving any other placement."""
        with self._lock:
            self._check_eligible(profile, self.allocator.get_room(room_id))
            self.register(profile)
            current = self._locations.get(profile.user_id)
            if not (current and current.kind == "waiting" and current.room_id == room_id):
                self._vacate(profile.user_id)
                self.allocator.join_waiting(room_id, profile.user_id)
                self._locations[profile.user_id] = Location(kind="waiting", room_id=room_id)
            return self.room_state(room_id)

    def request_leave_room(self, user_id: str) -> bool:
        """Leave the room the user is seated or waiting in. No-op otherwise."""
        with self._lock:
            loc = self._locations.get(user_id)
            if loc is None or loc.kind not in ("waiting", "slot"):
                return False
            self._vacate(user_id)
            logger.debug("room leave user=%s room=%s", user_id, loc.room_id)
            return True

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def _expand(self, user_id: str | None) -> MatchingUser | None:
        if user_id is None:
            return None
        user = self._users.get(user_id)
        return user.model_copy(deep=True) if user else None

    def room_state(self, room_id: str) -> RoomState:
        with self._lock:
            room = self.allocator.get_room(room_id)
            waiting = [self._expand(uid) for uid in room.waiting]
            return RoomState(
                id=room.id,
                name=room.name,
                min_rank=room.min_rank,
                max_rank=room.max_rank,
                slots={role: self._expand(uid) for role, uid in room.slots.items()},
                waiting=[u for u in waiting if u is not None],
                ready=room.ready,
                filled=room.filled,
                estimated_start_time=room.estimated_start_time,
                created_at=room.created_at,
            )

    def list_room_states(self) -> list[RoomState]:
        return [self.room_state(room_id) for room_id in self.allocator.room_ids()]

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def tick(self) -> None:
        """Add one unit of waiting time to every queued, waiting and seated user."""
        with self._lock:
            for uid in self._queue:
                self._users[uid].waiting_time += 1
            for room_id in self.allocator.room_ids():
                for uid in self.allocator.members(room_id):
                    user = self._users.get(uid)
                    if user is not None:
                        user.waiting_time += 1
