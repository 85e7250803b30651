"""Core domain models.

Chat and matching engines operate on these types. Pydantic is used for
validation and serialisation at every data boundary; the engines own the
mutable instances and hand out copies or read views.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from tier_lobby.ranks import RankTier


class Role(str, Enum):
    """The five slots of a matching room, in canonical order."""

    TOP = "TOP"
    JUNGLE = "JUNGLE"
    MID = "MID"
    ADC = "ADC"
    SUPPORT = "SUPPORT"


ROLES: tuple[Role, ...] = tuple(Role)

MessageType = Literal["text", "system"]

LocationKind = Literal["nowhere", "queue", "waiting", "slot"]


class UserProfile(BaseModel):
    """What the identity service knows about a user at call time."""

    user_id: str
    username: str = ""
    rank: RankTier
    is_verified: bool = False


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

class ChatMessage(BaseModel):
    """A single entry in a tier room's append-only log.

    Author rank and verification are snapshots taken at send time.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    tier: RankTier
    author_id: str
    author_name: str = ""
    author_rank: RankTier
    author_verified: bool
    text: str
    timestamp: datetime
    type: MessageType = "text"


class ChatRoom(BaseModel):
    """One room per tier. The log lives in the registry, not here."""

    tier: RankTier
    name: str
    member_count: int = 0  # live subscribers; informational only
    last_message_id: int | None = None


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------

class MatchingUser(BaseModel):
    """A user known to the matching coordinator."""

    id: str
    username: str = ""
    rank: RankTier
    preferred_roles: list[Role] = Field(default_factory=list)
    waiting_time: int = 0


class Location(BaseModel):
    """Where a user is right now. Exactly one kind at a time."""

    kind: LocationKind = "nowhere"
    room_id: str | None = None
    role: Role | None = None


def _empty_slots() -> dict[Role, str | None]:
    return {role: None for role in ROLES}


class MatchingRoom(BaseModel):
    """Slot map + FIFO waiting list of one quick-match room."""

    id: str
    name: str
    min_rank: RankTier = RankTier.IRON
    max_rank: RankTier = RankTier.CHALLENGER
    slots: dict[Role, str | None] = Field(default_factory=_empty_slots)
    waiting: list[str] = Field(default_factory=list)
    ready: bool = False
    estimated_start_time: datetime | None = None
    created_at: datetime

    def occupant(self, role: Role) -> str | None:
        return self.slots.get(role)

    def role_of(self, user_id: str) -> Role | None:
        for role, occupant in self.slots.items():
            if occupant == user_id:
                return role
        return None

    @property
    def filled(self) -> int:
        return sum(1 for occupant in self.slots.values() if occupant is not None)


class RoomState(BaseModel):
    """Read view of a matching room with occupants expanded."""

    id: str
    name: str
    min_rank: RankTier
    max_rank: RankTier
    slots: dict[Role, MatchingUser | None]
    waiting: list[MatchingUser]
    ready: bool
    filled: int
    estimated_start_time: datetime | None = None
    created_at: datetime
