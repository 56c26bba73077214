"""MessageSource abstract base class and the events it yields."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Union

from signal_relay.models import Channel, Message
from signal_relay.protocol.facts import AuthStepName, SourceStatus


@dataclass(frozen=True)
class StatusChanged:
    status: SourceStatus


@dataclass(frozen=True)
class AuthStepRequested:
    step: AuthStepName
    message: str | None = None


@dataclass(frozen=True)
class AuthFailed:
    message: str


@dataclass(frozen=True)
class MessageReceived:
    """A message heard while the live subscription was active."""

    message: Message


SourceEvent = Union[StatusChanged, AuthStepRequested, AuthFailed, MessageReceived]


class MessageSource(ABC):
    """A chat provider that delivers messages from the selected channels.

    Implementations push events with ``emit()``; the router drains them with
    ``next_event()`` from a single receive loop. Reconnect/backoff and the
    credential challenge belong to the implementation and surface only as
    events.
    """

    def __init__(self) -> None:
        self._events: asyncio.Queue[SourceEvent] = asyncio.Queue()
        self._status: SourceStatus = "disconnected"
        self._auth_step: AuthStepName | None = None

    @property
    def status(self) -> SourceStatus:
        return self._status

    @property
    def auth_step(self) -> AuthStepName | None:
        return self._auth_step

    def emit(self, event: SourceEvent) -> None:
        if isinstance(event, StatusChanged):
            self._status = event.status
            if event.status == "connected":
                self._auth_step = None
        elif isinstance(event, AuthStepRequested):
            self._auth_step = None if event.step == "done" else event.step
        self._events.put_nowait(event)

    async def next_event(self) -> SourceEvent:
        return await self._events.get()

    @abstractmethod
    async def connect(self) -> None:
        """Open the session; progress is reported through events."""

    @abstractmethod
    async def disconnect(self) -> None:
        ...

    @abstractmethod
    async def list_channels(self) -> list[Channel]:
        ...

    @abstractmethod
    async def select_channel(self, channel_ids: list[str]) -> list[Message]:
        """Set the monitored channels and return their recent backlog."""

    @abstractmethod
    async def submit_phone(self, phone: str) -> None:
        ...

    @abstractmethod
    async def submit_code(self, code: str) -> None:
        ...

    @abstractmethod
    async def submit_password(self, password: str) -> None:
        ...
