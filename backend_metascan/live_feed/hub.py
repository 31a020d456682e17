"""
Live feed hub: single-writer, multi-reader broadcast with a bounded backlog.

Messages live in one ring buffer (deque with maxlen) addressed by a
monotonically increasing sequence number; each Subscription keeps its own
cursor. publish() is synchronous and never waits on readers. A reader that
falls more than `capacity` messages behind resumes at the oldest retained
message and records the gap in `missed` (drop-oldest).

All methods must be called from the event loop that runs the feed tasks.
"""

from __future__ import annotations

import asyncio
from collections import deque

from backend_metascan.core.exceptions import MetascanError
from backend_metascan.live_feed.models import LiveTransaction
from backend_metascan.metascan_logging import get_logger

logger = get_logger(__name__)

DEFAULT_BACKLOG_CAPACITY = 1000


class SubscriptionClosed(MetascanError):
    """recv() on a subscription that was closed."""


class LiveFeedHub:
    def __init__(self, capacity: int = DEFAULT_BACKLOG_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._backlog: deque[LiveTransaction] = deque(maxlen=capacity)
        self._next_seq = 0
        self._subscribers: set[Subscription] = set()
        self._wakeup = asyncio.Event()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def published_count(self) -> int:
        """Messages accepted since creation (publishes with no subscribers are not counted)."""
        return self._next_seq

    @property
    def _head_seq(self) -> int:
        return self._next_seq - len(self._backlog)

    def publish(self, message: LiveTransaction) -> int:
        """
        Append message and wake every waiting reader.

        Returns the number of subscribers the message was offered to; 0 means
        nobody is listening and the message was dropped.
        """
        if not self._subscribers:
            return 0
        self._backlog.append(message)
        self._next_seq += 1
        wakeup, self._wakeup = self._wakeup, asyncio.Event()
        wakeup.set()
        return len(self._subscribers)

    def subscribe(self) -> "Subscription":
        """New reader positioned after everything published so far."""
        sub = Subscription(self, self._next_seq)
        self._subscribers.add(sub)
        logger.debug("feed_subscribed", subscriber_count=len(self._subscribers))
        return sub

    def _detach(self, sub: "Subscription") -> None:
        self._subscribers.discard(sub)
        logger.debug("feed_unsubscribed", subscriber_count=len(self._subscribers))


class Subscription:
    """
    One reader's position in the hub.

    close() detaches the reader; it does not interrupt a recv() already
    waiting (cancel that task instead, as the WebSocket handler does).
    """

    def __init__(self, hub: LiveFeedHub, cursor: int) -> None:
        self._hub = hub
        self._cursor = cursor
        self._closed = False
        self.missed = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Messages available without waiting (after any lag skip)."""
        hub = self._hub
        return hub._next_seq - max(self._cursor, hub._head_seq)

    def try_recv(self) -> LiveTransaction | None:
        """Next message if one is available, else None. Never waits."""
        if self._closed:
            raise SubscriptionClosed("subscription is closed")
        hub = self._hub
        head = hub._head_seq
        if self._cursor < head:
            lost = head - self._cursor
            self.missed += lost
            self._cursor = head
            logger.debug("feed_subscriber_lagged", missed=lost, total_missed=self.missed)
        if self._cursor >= hub._next_seq:
            return None
        message = hub._backlog[self._cursor - head]
        self._cursor += 1
        return message

    async def recv(self) -> LiveTransaction:
        """Wait for the next message."""
        while True:
            message = self.try_recv()
            if message is not None:
                return message
            await self._hub._wakeup.wait()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._hub._detach(self)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> LiveTransaction:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self.recv()
        except SubscriptionClosed:
            raise StopAsyncIteration from None
