"""Execution-side projections — relayed verbatim from an ExecutionGateway."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from signal_relay.models.base import WireModel

Side = Literal["buy", "sell"]


class AccountSnapshot(WireModel):
    """Point-in-time trading account state."""

    id: str
    name: str
    login: str = ""
    server: str = ""
    balance: float
    equity: float
    margin: float = 0.0
    free_margin: float = 0.0
    currency: str = "USD"
    leverage: int = 100
    connected: bool = True


class Position(WireModel):
    """An open position on the trading account."""

    id: str
    symbol: str
    type: Side
    volume: float
    open_price: float
    current_price: float
    stop_loss: float | None = None
    take_profit: float | None = None
    profit: float = 0.0
    swap: float = 0.0
    open_time: datetime


class MarketQuote(WireModel):
    """Best bid/ask for one symbol."""

    symbol: str
    bid: float
    ask: float
    spread: float
    digits: int = 5


class HistoricalTrade(WireModel):
    """A closed trade from account history."""

    id: str
    symbol: str
    type: Side
    volume: float
    open_price: float
    close_price: float
    profit: float
    open_time: datetime
    close_time: datetime
    commission: float = 0.0
    swap: float = 0.0


class OrderResult(WireModel):
    """Outcome of an order-management call."""

    success: bool
    message: str
    order_id: str | None = None
