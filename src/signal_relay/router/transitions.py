"""Pure state transitions for the router.

Nothing here awaits or mutates: each function maps current state plus an
event to new state and the facts to broadcast, so completion handling can
be tested without any async plumbing.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Container, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from signal_relay.classifier.base import Classification, SignalCandidate
from signal_relay.models import Message, Signal, normalize_symbol
from signal_relay.protocol.facts import Fact, NewMessageFact, SignalDetectedFact
from signal_relay.router.settings import Settings

AUTO_TRADE_THRESHOLD = 0.70

HISTORICAL_SKIP_REASON = (
    "Historical message: AI analysis is reserved for live messages so that "
    "no trade is placed on outdated information."
)
ANALYSIS_ERROR_REASON = "analysis error"


@dataclass(frozen=True)
class ClassificationOutcome:
    message: Message
    signals: list[Signal] = field(default_factory=list)
    facts: list[Fact] = field(default_factory=list)


def new_signal_id() -> str:
    return uuid.uuid4().hex


def mark_analyzing(message: Message) -> Message:
    return message.model_copy(update={"is_realtime": True, "ai_verdict": "analyzing"})


def mark_skipped(message: Message) -> Message:
    """Backlog messages get a terminal verdict and are never classified."""
    return message.model_copy(update={"is_realtime": False}).enrich(
        "skipped", HISTORICAL_SKIP_REASON,
    )


def build_signal(
    message: Message,
    candidate: SignalCandidate,
    *,
    signal_id: str,
    now: datetime,
    model_used: str | None,
) -> Signal:
    symbol = normalize_symbol(candidate.symbol)
    return Signal(
        id=signal_id,
        message_id=message.id,
        channel_id=message.channel_id,
        symbol=symbol,
        direction=candidate.direction,
        entry_price=candidate.entry_price,
        stop_loss=candidate.stop_loss,
        take_profit=list(candidate.take_profit),
        confidence=candidate.confidence,
        timestamp=now,
        status="pending",
        verdict_description=candidate.reason or f"{candidate.direction} signal detected for {symbol}",
        model_used=model_used,
        raw_message=message.text,
    )


def apply_classification(
    message: Message,
    classification: Classification,
    known_signal_ids: Container[str] = (),
    *,
    now: datetime | None = None,
    id_factory: Callable[[], str] = new_signal_id,
) -> ClassificationOutcome:
    """Fold a classifier completion into (enriched message, new signals, facts).

    Signals whose generated id is already known are dropped rather than
    replacing the stored record.
    """
    now = now or datetime.now(timezone.utc)

    if classification.verdict == "error":
        enriched = message.enrich(
            "error", classification.description or ANALYSIS_ERROR_REASON, classification.model_used,
        )
        return ClassificationOutcome(message=enriched, facts=[NewMessageFact(message=enriched)])

    enriched = message.enrich(
        classification.verdict, classification.description, classification.model_used,
    )
    facts: list[Fact] = [NewMessageFact(message=enriched)]
    signals: list[Signal] = []
    if classification.verdict == "valid_signal":
        for candidate in classification.candidates:
            signal_id = id_factory()
            if signal_id in known_signal_ids:
                continue
            signal = build_signal(
                enriched, candidate,
                signal_id=signal_id, now=now, model_used=classification.model_used,
            )
            signals.append(signal)
            facts.append(SignalDetectedFact(signal=signal))
    return ClassificationOutcome(message=enriched, signals=signals, facts=facts)


def should_auto_trade(
    signal: Signal,
    settings: Settings,
    threshold: float = AUTO_TRADE_THRESHOLD,
) -> bool:
    """Auto-trade iff enabled and confidence >= threshold (inclusive)."""
    return settings.auto_trade_enabled and signal.is_pending and signal.confidence >= threshold


def within_window(
    messages: Iterable[Message],
    window: timedelta,
    now: datetime | None = None,
) -> list[Message]:
    """Backlog messages newer than ``now - window``."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - window
    result = []
    for m in messages:
        date = m.date if m.date.tzinfo else m.date.replace(tzinfo=timezone.utc)
        if date > cutoff:
            result.append(m)
    return result
