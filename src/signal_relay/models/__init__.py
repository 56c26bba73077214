"""Pydantic domain models."""

from signal_relay.models.account import (
    AccountSnapshot,
    HistoricalTrade,
    MarketQuote,
    OrderResult,
    Position,
)
from signal_relay.models.base import WireModel
from signal_relay.models.message import Channel, Message, Verdict
from signal_relay.models.signal import (
    TERMINAL_STATUSES,
    Direction,
    Signal,
    SignalStatus,
    normalize_symbol,
)

__all__ = [
    "AccountSnapshot",
    "Channel",
    "Direction",
    "HistoricalTrade",
    "MarketQuote",
    "Message",
    "OrderResult",
    "Position",
    "Signal",
    "SignalStatus",
    "TERMINAL_STATUSES",
    "Verdict",
    "WireModel",
    "normalize_symbol",
]
