"""In-process event bus carrying msgpack payloads between launcher parts.

Lane callbacks fire synchronously from touch handling, so publishing has a
non-blocking form (:meth:`EventBus.publish_nowait`) next to the awaitable
one. Consumers iterate their :class:`Subscription` asynchronously:

    bus = EventBus()
    sub = bus.subscribe("launch")
    bus.publish_nowait("launch", pack({"id": "42"}))
    async for env in sub:
        print(unpack(env.payload))

Each subscriber owns a bounded queue; when it is full the oldest envelope is
dropped. :meth:`EventBus.close` ends every subscription's iteration.
"""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass, field
from time import monotonic
from typing import Any, AsyncIterator, Deque, Dict, List

import msgpack

__all__ = [
    "EventBus",
    "Subscription",
    "Envelope",
    "TopicStats",
    "pack",
    "unpack",
]


@dataclass(slots=True)
class Envelope:
    topic: str
    ts: float
    payload: bytes


@dataclass(slots=True)
class TopicStats:
    publishes: int = 0
    deliveries: int = 0
    drops: int = 0


@dataclass(slots=True)
class _Topic:
    subscribers: List["Subscription"] = field(default_factory=list)
    stats: TopicStats = field(default_factory=TopicStats)


class EventBus:
    """Topic-based fan-out with drop-oldest backpressure per subscriber."""

    def __init__(self, *, default_maxsize: int = 256) -> None:
        self._maxsize = max(1, int(default_maxsize))
        self._topics: Dict[str, _Topic] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, topic: str, *, maxsize: int | None = None) -> "Subscription":
        if self._closed:
            raise RuntimeError("EventBus is closed")
        sub = Subscription(self, topic, maxsize or self._maxsize)
        self._topics.setdefault(topic, _Topic()).subscribers.append(sub)
        return sub

    def publish_nowait(self, topic: str, payload: bytes) -> None:
        """Deliver *payload* to every current subscriber of *topic*."""
        if self._closed:
            raise RuntimeError("EventBus is closed")
        state = self._topics.setdefault(topic, _Topic())
        state.stats.publishes += 1
        env = Envelope(topic=topic, ts=monotonic(), payload=payload)
        for sub in list(state.subscribers):
            if sub._offer(env):
                state.stats.drops += 1
            state.stats.deliveries += 1

    async def publish(self, topic: str, payload: bytes) -> None:
        self.publish_nowait(topic, payload)
        # Let consumers run between bursts of publishes.
        await asyncio.sleep(0)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for state in self._topics.values():
            for sub in list(state.subscribers):
                sub._finish()

    def stats(self, topic: str) -> TopicStats:
        state = self._topics.get(topic)
        return state.stats if state is not None else TopicStats()

    def list_topics(self) -> Dict[str, int]:
        """Return mapping of topic -> active subscriber count."""
        return {name: len(s.subscribers) for name, s in self._topics.items()}

    def _remove(self, sub: "Subscription") -> None:
        state = self._topics.get(sub.topic)
        if state is not None and sub in state.subscribers:
            state.subscribers.remove(sub)


class Subscription:
    """Async iterator over the envelopes published to one topic."""

    def __init__(self, bus: EventBus, topic: str, maxsize: int) -> None:
        self._bus = bus
        self.topic = topic
        self._items: Deque[Envelope] = deque(maxlen=max(1, int(maxsize)))
        self._wakeup: asyncio.Event | None = None
        self._finished = False

    def __aiter__(self) -> AsyncIterator[Envelope]:
        return self

    async def __anext__(self) -> Envelope:
        while True:
            if self._items:
                return self._items.popleft()
            if self._finished:
                raise StopAsyncIteration
            if self._wakeup is None:
                self._wakeup = asyncio.Event()
            self._wakeup.clear()
            await self._wakeup.wait()

    def get_nowait(self) -> Envelope | None:
        return self._items.popleft() if self._items else None

    def pending(self) -> int:
        return len(self._items)

    async def close(self) -> None:
        self._bus._remove(self)
        self._finish()

    def _offer(self, env: Envelope) -> bool:
        """Queue *env*; return True when an older envelope had to be dropped."""
        if self._finished:
            return False
        dropped = len(self._items) == self._items.maxlen
        self._items.append(env)
        if self._wakeup is not None:
            self._wakeup.set()
        return dropped

    def _finish(self) -> None:
        self._finished = True
        if self._wakeup is not None:
            self._wakeup.set()


# Serialization helpers -----------------------------------------------------


def pack(obj: Any) -> bytes:
    """Serialize an object to bytes using msgpack."""
    return msgpack.packb(obj, use_bin_type=True)


def unpack(b: bytes) -> Any:
    """Deserialize bytes into an object using msgpack."""
    return msgpack.unpackb(b, raw=False, strict_map_key=False)
