"""Structured logging."""

from signal_relay.logging.setup import LogBuffer, get_logger, setup_logging

__all__ = ["LogBuffer", "get_logger", "setup_logging"]
