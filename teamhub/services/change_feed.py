"""In-process change notifications for live clients.

Handlers publish topic names after committing; subscribers only learn *that*
something changed and re-run the read operations themselves.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, Set

logger = logging.getLogger("change_feed")


def team_topic(team_id: int, channel: str) -> str:
    return f"team:{team_id}:{channel}"


def membership_topic(user_id: int) -> str:
    """Published when ``user_id`` gains a team, so its socket widens its topics."""
    return f"memberships:{user_id}"


class ChangeFeed:
    def __init__(self, *, max_pending: int = 100) -> None:
        if max_pending <= 0:
            raise ValueError("max_pending must be positive")
        self.max_pending = max_pending
        self._subscribers: Dict[str, Set[asyncio.Queue]] = {}
        self._topics: Dict[asyncio.Queue, Set[str]] = {}

    def _attach(self, queue: asyncio.Queue, topics: Set[str]) -> None:
        self._topics[queue] = topics
        for topic in topics:
            self._subscribers.setdefault(topic, set()).add(queue)

    def _detach(self, queue: asyncio.Queue) -> None:
        for topic in self._topics.pop(queue, ()):
            queues = self._subscribers.get(topic)
            if queues is None:
                continue
            queues.discard(queue)
            if not queues:
                del self._subscribers[topic]

    @contextmanager
    def subscribe(self, topics: Iterable[str]) -> Iterator[asyncio.Queue]:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_pending)
        self._attach(queue, set(topics))
        try:
            yield queue
        finally:
            self._detach(queue)

    def resubscribe(self, queue: asyncio.Queue, topics: Iterable[str]) -> None:
        """Swap the topic set of a live subscription; queued events are kept."""
        if queue not in self._topics:
            raise KeyError("queue is not subscribed")
        self._detach(queue)
        self._attach(queue, set(topics))

    def topics_of(self, queue: asyncio.Queue) -> Set[str]:
        return set(self._topics.get(queue, ()))

    def publish(self, *topics: str) -> int:
        """Queue each topic for its subscribers; returns deliveries made."""
        delivered = 0
        for topic in topics:
            for queue in list(self._subscribers.get(topic, ())):
                try:
                    queue.put_nowait(topic)
                except asyncio.QueueFull:
                    # a backlog already forces a refetch
                    logger.debug("Subscriber backlog full for %s", topic)
                    continue
                delivered += 1
        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))


_feed: ChangeFeed | None = None


def get_change_feed() -> ChangeFeed:
    global _feed
    if _feed is None:
        _feed = ChangeFeed()
    return _feed
