"""Message sources."""

from signal_relay.sources.base import (
    AuthFailed,
    AuthStepRequested,
    MessageReceived,
    MessageSource,
    SourceEvent,
    StatusChanged,
)
from signal_relay.sources.telegram import TelegramBotSource

__all__ = [
    "AuthFailed",
    "AuthStepRequested",
    "MessageReceived",
    "MessageSource",
    "SourceEvent",
    "StatusChanged",
    "TelegramBotSource",
]
