"""Observer fan-out."""

from signal_relay.hub.hub import Observer, ObserverHub

__all__ = ["Observer", "ObserverHub"]
