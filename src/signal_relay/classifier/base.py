"""SignalClassifier abstract base class and its result types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from signal_relay.models import Direction


class SignalCandidate(BaseModel):
    """One trading proposal found in a message."""

    symbol: str
    direction: Direction
    confidence: float = Field(ge=0.0, le=1.0)
    entry_price: float | None = None
    stop_loss: float | None = None
    take_profit: list[float] = Field(default_factory=list)
    reason: str | None = None

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return min(max(float(value), 0.0), 1.0)


class Classification(BaseModel):
    """Classifier verdict for a single message.

    ``verdict == "error"`` is the error outcome: the call failed or timed
    out and no candidates are present.
    """

    verdict: Literal["valid_signal", "no_signal", "error"]
    description: str = ""
    model_used: str | None = None
    candidates: list[SignalCandidate] = Field(default_factory=list)

    @classmethod
    def error(cls, description: str = "analysis error") -> Classification:
        return cls(verdict="error", description=description)


class SignalClassifier(ABC):
    """Free text -> trading-signal verdict. Stateless across calls."""

    @abstractmethod
    async def classify(self, text: str) -> Classification:
        ...

    async def close(self) -> None:
        ...
