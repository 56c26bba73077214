"""Event routing and state reconciliation core."""

from signal_relay.router.identity import channels_equal, message_key, normalize_channel_id
from signal_relay.router.recency import RecencySet
from signal_relay.router.router import EventRouter
from signal_relay.router.settings import Settings, SettingsStore
from signal_relay.router.store import SignalStore, Transition

__all__ = [
    "EventRouter",
    "RecencySet",
    "Settings",
    "SettingsStore",
    "SignalStore",
    "Transition",
    "channels_equal",
    "message_key",
    "normalize_channel_id",
]
