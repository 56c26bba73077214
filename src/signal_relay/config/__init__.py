"""Configuration system."""

from signal_relay.config.loader import load_config
from signal_relay.config.schema import AppConfig

__all__ = ["AppConfig", "load_config"]
