"""ObserverHub — the set of connected observers and fire-and-forget fan-out."""

from __future__ import annotations

import asyncio
import itertools
from typing import Any

import structlog

from signal_relay.protocol.facts import Fact

log = structlog.get_logger("hub")

_observer_ids = itertools.count(1)


class Observer:
    """One connected observer: an outbound queue of serialized facts.

    ``limit`` bounds live broadcasts only; the initial catch-up is preloaded
    regardless of size. A closed observer accepts nothing further.
    """

    def __init__(self, limit: int = 1000) -> None:
        self.id = next(_observer_ids)
        self.limit = limit
        self.closed = False
        self._queue: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()

    def __repr__(self) -> str:
        return f"Observer(id={self.id}, pending={self._queue.qsize()}, closed={self.closed})"

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def preload(self, payloads: list[dict[str, Any]]) -> None:
        for payload in payloads:
            self._queue.put_nowait(payload)

    def offer(self, payload: dict[str, Any]) -> bool:
        """Queue *payload* without waiting. False if closed or saturated."""
        if self.closed or self._queue.qsize() >= self.limit:
            return False
        self._queue.put_nowait(payload)
        return True

    async def next(self) -> dict[str, Any] | None:
        """The next payload, or None once the observer has been closed."""
        return await self._queue.get()

    def drain(self) -> list[dict[str, Any]]:
        """Everything queued right now, without waiting."""
        items = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is not None:
                items.append(item)
        return items

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(None)


class ObserverHub:
    """Broadcasts facts to every attached observer.

    A fact is serialized once per broadcast. Delivery never waits on an
    observer: one whose queue is full is closed and pruned.
    """

    def __init__(self, queue_size: int = 1000) -> None:
        self.queue_size = queue_size
        self._observers: dict[int, Observer] = {}

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    @property
    def observers(self) -> list[Observer]:
        return list(self._observers.values())

    def create_observer(self) -> Observer:
        """A fresh observer that is not yet receiving broadcasts."""
        return Observer(limit=self.queue_size)

    def attach(self, observer: Observer | None = None) -> Observer:
        observer = observer or self.create_observer()
        self._observers[observer.id] = observer
        log.info("observer_attached", observer_id=observer.id, observers=self.observer_count)
        return observer

    def detach(self, observer: Observer) -> None:
        observer.close()
        if self._observers.pop(observer.id, None) is not None:
            log.info("observer_detached", observer_id=observer.id, observers=self.observer_count)

    def broadcast(self, fact: Fact) -> int:
        """Queue *fact* for every observer. Returns how many accepted it."""
        if not self._observers:
            return 0
        payload = fact.to_wire()
        delivered = 0
        for observer in list(self._observers.values()):
            if observer.offer(payload):
                delivered += 1
                continue
            log.warning(
                "observer_pruned",
                observer_id=observer.id,
                pending=observer.pending,
                fact=payload["type"],
            )
            self.detach(observer)
        return delivered

    def send(self, observer: Observer, fact: Fact) -> bool:
        """Queue *fact* for a single observer."""
        if observer.offer(fact.to_wire()):
            return True
        self.detach(observer)
        return False
