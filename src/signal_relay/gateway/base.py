"""ExecutionGateway abstract base class and its push events."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from typing import Union

from signal_relay.models import (
    AccountSnapshot,
    Direction,
    HistoricalTrade,
    MarketQuote,
    OrderResult,
    Position,
)
from signal_relay.protocol.facts import GatewayStatus


@dataclass(frozen=True)
class GatewayStatusChanged:
    status: GatewayStatus


@dataclass(frozen=True)
class PositionsChanged:
    positions: list[Position]


@dataclass(frozen=True)
class PositionChanged:
    position: Position


@dataclass(frozen=True)
class PositionRemoved:
    position_id: str


@dataclass(frozen=True)
class QuotesChanged:
    quotes: list[MarketQuote]


GatewayEvent = Union[
    GatewayStatusChanged, PositionsChanged, PositionChanged, PositionRemoved, QuotesChanged,
]


class ExecutionGateway(ABC):
    """One trading account: snapshots plus order management.

    Order-management calls report failure through ``OrderResult`` rather
    than raising. Unsolicited updates are pushed with ``emit()``.
    """

    def __init__(self) -> None:
        self._events: asyncio.Queue[GatewayEvent] = asyncio.Queue()
        self._status: GatewayStatus = "disconnected"

    @property
    def status(self) -> GatewayStatus:
        return self._status

    def emit(self, event: GatewayEvent) -> None:
        if isinstance(event, GatewayStatusChanged):
            self._status = event.status
        self._events.put_nowait(event)

    async def next_event(self) -> GatewayEvent:
        return await self._events.get()

    async def start(self) -> None:
        """Connect and begin pushing events. Default: nothing to start."""

    async def stop(self) -> None:
        ...

    @abstractmethod
    async def get_account_snapshot(self) -> AccountSnapshot | None:
        ...

    @abstractmethod
    async def get_positions(self) -> list[Position]:
        ...

    @abstractmethod
    async def get_market_quotes(self) -> list[MarketQuote]:
        ...

    @abstractmethod
    async def get_trade_history(self, lookback: timedelta) -> list[HistoricalTrade]:
        ...

    @abstractmethod
    async def place_order(
        self,
        symbol: str,
        direction: Direction,
        volume: float,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> OrderResult:
        ...

    @abstractmethod
    async def close_position(self, position_id: str) -> OrderResult:
        ...

    @abstractmethod
    async def modify_position(
        self,
        position_id: str,
        stop_loss: float | None = None,
        take_profit: float | None = None,
    ) -> OrderResult:
        ...
