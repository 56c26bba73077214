"""Chat message and channel models — produced by a MessageSource."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import ConfigDict

from signal_relay.models.base import WireModel

Verdict = Literal["analyzing", "valid_signal", "no_signal", "error", "skipped"]


class Channel(WireModel):
    """A chat channel or group the source can listen to."""

    id: str
    title: str
    username: str | None = None
    participants_count: int | None = None
    is_private: bool = True
    type: Literal["channel", "group"] | None = None


class Message(WireModel):
    """An inbound chat message.

    Identity is ``(channel_id, id)``. Instances are frozen; classification
    results are attached by copying with the enrichment fields set.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    channel_id: str
    channel_title: str = ""
    text: str
    date: datetime
    sender_name: str | None = None
    is_realtime: bool = False
    ai_verdict: Verdict | None = None
    verdict_description: str | None = None
    model_used: str | None = None

    def enrich(
        self,
        verdict: Verdict,
        description: str | None = None,
        model_used: str | None = None,
    ) -> Message:
        return self.model_copy(update={
            "ai_verdict": verdict,
            "verdict_description": description,
            "model_used": model_used,
        })
