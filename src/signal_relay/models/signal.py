"""Signal model — a trading proposal extracted from a chat message."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, Field

from signal_relay.models.base import WireModel

Direction = Literal["BUY", "SELL"]
SignalStatus = Literal["pending", "executed", "dismissed", "failed"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"executed", "dismissed", "failed"})

_SYMBOL_SEPARATORS = re.compile(r"[/\s\-_]")


def normalize_symbol(raw: str) -> str:
    """Strip separators and uppercase: ``"eur/usd"`` -> ``"EURUSD"``."""
    return _SYMBOL_SEPARATORS.sub("", raw).upper()


class Signal(WireModel):
    """A classified trading signal and its lifecycle status."""

    model_config = ConfigDict(frozen=True)

    id: str
    message_id: int
    channel_id: str
    symbol: str
    direction: Direction
    entry_price: float | None = None
    stop_loss: float | None = None
    take_profit: list[float] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    timestamp: datetime
    status: SignalStatus = "pending"
    failure_reason: str | None = None
    verdict_description: str | None = None
    model_used: str | None = None
    raw_message: str = ""

    @property
    def is_pending(self) -> bool:
        return self.status == "pending"

    @property
    def first_target(self) -> float | None:
        return self.take_profit[0] if self.take_profit else None
