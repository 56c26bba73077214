"""Chat trading-signal relay."""

__version__ = "0.1.0"
