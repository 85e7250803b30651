"""Tier chat rooms and their message logs.

The registry creates one room per tier at construction and is the only
writer of the logs. Reading is open to every rank; sending requires the
author's rank to dominate the room's tier and a verified identity.

Message ids come from one counter shared by all rooms, so they are unique
and strictly increasing in append order. Listeners are called after the
append, still under the room lock, which keeps notification order equal to
log order for every room.
"""

from __future__ import annotations

import bisect
import itertools
import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from tier_lobby import access
from tier_lobby.errors import NotFound, PermissionDenied, ValidationError
from tier_lobby.models import ChatMessage, ChatRoom, MessageType, UserProfile
from tier_lobby.ranks import TIERS, RankTier, parse_tier
from tier_lobby.ratelimit import SendRateLimiter

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 500
DEFAULT_PAGE_SIZE = 50

Listener = Callable[[ChatMessage], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def room_name(tier: RankTier) -> str:
    return f"{tier.value.title()} room"


class _RoomLog:
    """A room, its ordered log and the lock serialising its appends."""

    def __init__(self, tier: RankTier) -> None:
        self.room = ChatRoom(tier=tier, name=room_name(tier))
        self.messages: list[ChatMessage] = []
        self.lock = threading.RLock()


class ChatRoomRegistry:
    """Owns every tier room. The only mutation entry point is send_message().

    Args:
        max_message_length: Upper bound on trimmed message text.
        rate_limiter:       Optional per-author send limiter.
        clock:              Returns the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        max_message_length: int = MAX_MESSAGE_LENGTH,
        rate_limiter: SendRateLimiter | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._rooms: dict[RankTier, _RoomLog] = {tier: _RoomLog(tier) for tier in TIERS}
        self._ids = itertools.count(1)
        self._ids_lock = threading.Lock()
        self._listeners: list[Listener] = []
        self._max_len = max_message_length
        self._limiter = rate_limiter
        self._clock = clock

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _log(self, tier: RankTier | str) -> _RoomLog:
        try:
            key = parse_tier(tier)
        except ValidationError:
            raise NotFound(f"No chat room for tier {tier!r}") from None
        return self._rooms[key]

    def get_room(self, tier: RankTier | str) -> ChatRoom:
        """Return a copy of the room's summary."""
        log = self._log(tier)
        with log.lock:
            return log.room.model_copy()

    def list_rooms(self) -> list[ChatRoom]:
        return [self.get_room(tier) for tier in TIERS]

    # ------------------------------------------------------------------
    # Reading (open to every rank)
    # ------------------------------------------------------------------

    def list_messages(
        self, tier: RankTier | str, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE
    ) -> list[ChatMessage]:
        """Oldest-first page of a room's log. Page 1 holds the oldest messages."""
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be >= 1")
        log = self._log(tier)
        start = (page - 1) * page_size
        with log.lock:
            return log.messages[start:start + page_size]

    def messages_after(self, tier: RankTier | str, after_id: int | None) -> list[ChatMessage]:
        """Every message with id > after_id, in log order."""
        log = self._log(tier)
        with log.lock:
            if after_id is None:
                return list(log.messages)
            i = bisect.bisect_right(log.messages, after_id, key=lambda m: m.id)
            return log.messages[i:]

    def last_message_id(self, tier: RankTier | str) -> int | None:
        log = self._log(tier)
        with log.lock:
            return log.room.last_message_id

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def _validate_text(self, text: str) -> str:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message text is empty")
        if len(text) > self._max_len:
            raise ValidationError(
                f"Message text exceeds {self._max_len} characters ({len(text)})"
            )
        return text

    def send_message(
        self,
        tier: RankTier | str,
        author: UserProfile,
        text: str,
        type: MessageType = "text",
    ) -> ChatMessage:
        """Append a message to a room's log and notify listeners.

        Raises PermissionDenied if the author may not post here, ValidationError
        for empty or over-long text, RateLimited when a limiter is configured
        and the author is over budget.
        """
        log = self._log(tier)
        room_tier = log.room.tier
        if not access.can_write(author.rank, room_tier, author.is_verified):
            logger.warning(
                "send denied user=%s rank=%s verified=%s room=%s",
                author.user_id, author.rank.value, author.is_verified, room_tier.value,
            )
            if not access.can_read(author.rank, room_tier):
                raise PermissionDenied(f"{room_tier.value} or higher is required to post here")
            raise PermissionDenied("Only verified users can post")
        clean = self._validate_text(text)
        if self._limiter is not None:
            self._limiter.hit(author.user_id)

        with log.lock:
            with self._ids_lock:
                msg_id = next(self._ids)
            now = self._clock()
            if log.messages and now < log.messages[-1].timestamp:
                now = log.messages[-1].timestamp
            msg = ChatMessage(
                id=msg_id,
                tier=room_tier,
                author_id=author.user_id,
                author_name=author.username,
                author_rank=author.rank,
                author_verified=author.is_verified,
                text=clean,
                timestamp=now,
                type=type,
            )
            log.messages.append(msg)
            log.room.last_message_id = msg_id
            logger.debug("message id=%d room=%s author=%s", msg_id, room_tier.value, author.user_id)
            for listener in list(self._listeners):
                # Already appended: a failing listener must not fail the send.
                try:
                    listener(msg)
                except Exception:
                    logger.exception("listener failed message=%d room=%s", msg_id, room_tier.value)
        return msg

    # ------------------------------------------------------------------
    # Listeners and membership
    # ------------------------------------------------------------------

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def enter(self, tier: RankTier | str) -> int:
        log = self._log(tier)
        with log.lock:
            log.room.member_count += 1
            return log.room.member_count

    def exit(self, tier: RankTier | str) -> int:
        log = self._log(tier)
        with log.lock:
            log.room.member_count = max(0, log.room.member_count - 1)
            return log.room.member_count
