"""
Change-notification feed.

Every committed insert, update or delete on a table is published as a
``ChangeEvent`` carrying the old and new row images. Viewers subscribe per
table and decide for themselves whether an event concerns them.

Two transports are provided: Redis pub/sub for multi-process deployments,
and an in-process fan-out for a single process.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Any, AsyncIterator, Dict, Literal, Optional, Set

from redis.asyncio import Redis
from redis.exceptions import RedisError

from complaint_hub.core.config import settings
from complaint_hub.core.exceptions import StoreFailure
from complaint_hub.core.metrics import ACTIVE_SUBSCRIPTIONS, record_change_event
from complaint_hub.core.redis import get_redis

logger = logging.getLogger(__name__)

Operation = Literal["INSERT", "UPDATE", "DELETE"]


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    operation: Operation
    new: Optional[Dict[str, Any]] = None
    old: Optional[Dict[str, Any]] = None
    # Set on the synthetic event that replaces an overflowed backlog
    resync: bool = False

    @classmethod
    def resync_for(cls, table: str) -> "ChangeEvent":
        return cls(table=table, operation="UPDATE", resync=True)

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=str)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "ChangeEvent":
        data = json.loads(raw)
        return cls(
            table=data["table"],
            operation=data["operation"],
            new=data.get("new"),
            old=data.get("old"),
        )


class Subscription(ABC):
    """An open subscription. Iterate for events; ``close`` releases it."""

    def __init__(self):
        self.closed = False
        ACTIVE_SUBSCRIPTIONS.inc()

    def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        return self._events()

    @abstractmethod
    def _events(self) -> AsyncIterator[ChangeEvent]:
        ...

    @abstractmethod
    async def _release(self) -> None:
        ...

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        ACTIVE_SUBSCRIPTIONS.dec()
        await self._release()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class ChangeFeed(ABC):
    @abstractmethod
    async def publish(self, event: ChangeEvent) -> None:
        ...

    @abstractmethod
    async def subscribe(self, table: str) -> Subscription:
        ...

    async def close(self) -> None:
        return None


_CLOSED = object()


class _QueueSubscription(Subscription):
    """
    Bounded per-subscriber queue.

    A consumer that falls behind has its backlog replaced by one resync
    event; viewers only need to know that they must fetch again.
    """

    def __init__(self, feed: "InMemoryChangeFeed", table: str, maxsize: int):
        super().__init__()
        self._feed = feed
        self._table = table
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    async def _events(self) -> AsyncIterator[ChangeEvent]:
        while not self.closed:
            event = await self.queue.get()
            if event is _CLOSED:
                return
            yield event

    def offer(self, event: ChangeEvent) -> None:
        try:
            self.queue.put_nowait(event)
        except asyncio.QueueFull:
            dropped = self._drain()
            logger.warning(
                "Subscriber on %s fell behind; collapsed %d events into a resync",
                self._table,
                dropped,
            )
            self.queue.put_nowait(ChangeEvent.resync_for(self._table))

    def _drain(self) -> int:
        dropped = 0
        while not self.queue.empty():
            self.queue.get_nowait()
            dropped += 1
        return dropped

    async def _release(self) -> None:
        self._feed._detach(self._table, self)
        self._drain()
        self.queue.put_nowait(_CLOSED)


class InMemoryChangeFeed(ChangeFeed):
    """Fan-out to subscribers within this process."""

    def __init__(self, queue_size: Optional[int] = None):
        self.queue_size = queue_size or settings.CHANGE_FEED_QUEUE_SIZE
        self._subscribers: Dict[str, Set[_QueueSubscription]] = defaultdict(set)

    async def publish(self, event: ChangeEvent) -> None:
        for subscription in list(self._subscribers[event.table]):
            subscription.offer(event)
        record_change_event(event.table, event.operation)

    async def subscribe(self, table: str) -> Subscription:
        subscription = _QueueSubscription(self, table, self.queue_size)
        self._subscribers[table].add(subscription)
        return subscription

    def subscriber_count(self, table: str) -> int:
        return len(self._subscribers[table])

    def _detach(self, table: str, subscription: _QueueSubscription) -> None:
        self._subscribers[table].discard(subscription)

    async def close(self) -> None:
        for subscriptions in list(self._subscribers.values()):
            for subscription in list(subscriptions):
                await subscription.close()


class _RedisSubscription(Subscription):
    def __init__(self, pubsub):
        super().__init__()
        self._pubsub = pubsub

    async def _events(self) -> AsyncIterator[ChangeEvent]:
        async for message in self._pubsub.listen():
            if self.closed:
                return
            if message.get("type") != "message":
                continue
            try:
                yield ChangeEvent.from_json(message["data"])
            except (ValueError, KeyError):
                logger.warning("Dropping malformed change event on %s", message.get("channel"))

    async def _release(self) -> None:
        try:
            await self._pubsub.unsubscribe()
        finally:
            await self._pubsub.aclose()


class RedisChangeFeed(ChangeFeed):
    """Change feed over Redis pub/sub, one channel per table."""

    def __init__(self, redis: Redis, prefix: str = settings.CHANGE_FEED_CHANNEL_PREFIX):
        self.redis = redis
        self.prefix = prefix

    def channel(self, table: str) -> str:
        return f"{self.prefix}:{table}"

    async def publish(self, event: ChangeEvent) -> None:
        try:
            await self.redis.publish(self.channel(event.table), event.to_json())
        except RedisError as exc:
            raise StoreFailure("Change feed unavailable") from exc
        record_change_event(event.table, event.operation)

    async def subscribe(self, table: str) -> Subscription:
        pubsub = self.redis.pubsub()
        try:
            await pubsub.subscribe(self.channel(table))
        except RedisError as exc:
            await pubsub.aclose()
            raise StoreFailure("Change feed unavailable") from exc
        return _RedisSubscription(pubsub)


_feed: Optional[ChangeFeed] = None


async def get_change_feed() -> ChangeFeed:
    """Process-wide change feed for the configured backend."""
    global _feed
    if _feed is None:
        if settings.CHANGE_FEED_BACKEND == "memory":
            _feed = InMemoryChangeFeed()
        else:
            _feed = RedisChangeFeed(await get_redis())
    return _feed


async def close_change_feed() -> None:
    global _feed
    if _feed is not None:
        await _feed.close()
        _feed = None
