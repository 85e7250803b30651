"""Live delivery of chat messages to subscribers.

A Subscription never buffers its own copy of the feed: it keeps a cursor
(the last message id it delivered) and reads everything after the cursor
straight from the registry's log. Notifications from the registry only wake
waiting consumers. That makes backfill and live delivery the same code path,
so a client that resubscribes with the last id it processed gets every later
message exactly once.

Typical transport usage:

    sub = feed.subscribe("GOLD", from_message_id=last_seen)
    try:
        async for msg in sub:
            await websocket.send_json(msg.model_dump(mode="json"))
    finally:
        feed.unsubscribe(sub)
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections import deque

from tier_lobby.chat import ChatRoomRegistry
from tier_lobby.models import ChatMessage
from tier_lobby.ranks import RankTier

logger = logging.getLogger(__name__)


class Subscription:
    """One consumer's position in one room's log.

    Iterate with `async for`, or poll with pending(). Not restartable: a new
    subscription starts again from whatever cursor it is given.
    """

    def __init__(self, feed: LiveFeed, tier: RankTier, cursor: int) -> None:
        self._feed = feed
        self.tier = tier
        self._cursor = cursor  # last id handed to the consumer
        self._fetched = cursor  # last id pulled into the buffer
        self._buffer: deque[ChatMessage] = deque()
        self._closed = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wakeup = asyncio.Event()

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def closed(self) -> bool:
        return self._closed

    def _fill(self) -> None:
        batch = self._feed.registry.messages_after(self.tier, self._fetched)
        if batch:
            self._buffer.extend(batch)
            self._fetched = batch[-1].id

    def pending(self) -> list[ChatMessage]:
        """Every message after the cursor, without waiting. Advances the cursor."""
        if self._closed:
            return []
        self._fill()
        out = list(self._buffer)
        self._buffer.clear()
        if out:
            self._cursor = out[-1].id
        return out

    def _notify(self) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._wakeup.set)

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> ChatMessage:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        while True:
            if self._closed:
                raise StopAsyncIteration
            if not self._buffer:
                # Clear before reading so an append racing with the read
                # still leaves the event set.
                self._wakeup.clear()
                self._fill()
            if self._buffer:
                msg = self._buffer.popleft()
                self._cursor = msg.id
                return msg
            await self._wakeup.wait()

    def close(self) -> None:
        """Stop delivery. Safe to call any number of times."""
        if self._closed:
            return
        self._closed = True
        self._buffer.clear()
        self._feed._remove(self)
        self._notify()


class LiveFeed:
    """Fans out newly appended messages to every subscription of a room."""

    def __init__(self, registry: ChatRoomRegistry) -> None:
        self.registry = registry
        self._subs: dict[RankTier, set[Subscription]] = {}
        self._lock = threading.Lock()
        registry.add_listener(self._on_message)

    def subscribe(self, tier: RankTier | str, from_message_id: int | None = None) -> Subscription:
        """Start a subscription.

        With from_message_id, every message with a greater id already in the
        log is replayed first. Without it, only messages appended from now on
        are delivered. Raises NotFound for an unknown tier.
        """
        room = self.registry.get_room(tier)
        if from_message_id is None:
            cursor = room.last_message_id or 0
        else:
            cursor = max(from_message_id, 0)
        sub = Subscription(self, room.tier, cursor)
        with self._lock:
            self._subs.setdefault(room.tier, set()).add(sub)
        self.registry.enter(room.tier)
        logger.debug("subscribe room=%s cursor=%d", room.tier.value, cursor)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.close()

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subs.get(subscription.tier)
            if subs is None or subscription not in subs:
                return
            subs.discard(subscription)
        self.registry.exit(subscription.tier)
        logger.debug("unsubscribe room=%s cursor=%d", subscription.tier.value, subscription.cursor)

    def _on_message(self, msg: ChatMessage) -> None:
        with self._lock:
            subs = list(self._subs.get(msg.tier, ()))
        for sub in subs:
            sub._notify()

    def subscriber_count(self, tier: RankTier | str) -> int:
        room = self.registry.get_room(tier)
        with self._lock:
            return len(self._subs.get(room.tier, ()))

    def close(self) -> None:
        """Detach from the registry and end every subscription."""
        self.registry.remove_listener(self._on_message)
        with self._lock:
            subs = [s for group in self._subs.values() for s in group]
        for sub in subs:
            sub.close()
