"""Config loader — reads YAML, applies SIGNAL_RELAY_* env var overrides."""

from __future__ import annotations

import os
from pathlib import Path

import yaml

from signal_relay.config.schema import AppConfig

# env var -> (section, key)
_ENV_OVERRIDES = {
    "SIGNAL_RELAY_LOG_LEVEL": ("logging", "level"),
    "SIGNAL_RELAY_LOG_FORMAT": ("logging", "format"),
    "SIGNAL_RELAY_CLASSIFIER_API_KEY": ("classifier", "api_key"),
    "SIGNAL_RELAY_TELEGRAM_BOT_TOKEN": ("telegram", "bot_token"),
    "SIGNAL_RELAY_SETTINGS_PATH": ("router", "settings_path"),
}


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from a YAML file, then apply env var overrides.

    If *path* is None or the file doesn't exist, returns defaults.

    Environment variable overrides:
        SIGNAL_RELAY_LOG_LEVEL          -> logging.level
        SIGNAL_RELAY_LOG_FORMAT         -> logging.format
        SIGNAL_RELAY_CLASSIFIER_API_KEY -> classifier.api_key
        SIGNAL_RELAY_TELEGRAM_BOT_TOKEN -> telegram.bot_token
        SIGNAL_RELAY_SETTINGS_PATH      -> router.settings_path
    """
    data: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            with open(p) as f:
                data = yaml.safe_load(f) or {}

    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            data.setdefault(section, {})[key] = value

    return AppConfig.model_validate(data)
