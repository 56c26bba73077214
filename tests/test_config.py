"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from signal_relay.config import AppConfig, load_config

EXAMPLE = Path(__file__).resolve().parent.parent / "config.yaml.example"


class TestAppConfig:
    def test_defaults(self):
        cfg = AppConfig()
        assert cfg.router.auto_trade_threshold == 0.70
        assert cfg.router.recency_capacity == 1000
        assert cfg.router.backlog_window_minutes == 60
        assert cfg.classifier.models[0] == "openai/gpt-oss-120b"
        assert cfg.classifier.model_timeout_s == 5.0
        assert cfg.logging.level == "INFO"
        assert cfg.logging.format == "json"
        assert cfg.paper.initial_balance == 10000

    def test_threshold_must_be_a_probability(self):
        with pytest.raises(ValidationError):
            AppConfig(router={"auto_trade_threshold": 1.5})


class TestLoadConfig:
    def test_load_example_config(self):
        cfg = load_config(EXAMPLE)
        assert cfg.router.account_refresh_s == 10
        assert cfg.router.history_refresh_s == 120
        assert cfg.telegram.backoff_cap_s == 60
        assert cfg.classifier.models == [
            "openai/gpt-oss-120b",
            "openai/gpt-oss-20b",
            "llama-3.3-70b-versatile",
            "llama-3.1-8b-instant",
        ]
        assert cfg.logging.format == "console"

    def test_load_nonexistent_file_returns_defaults(self, tmp_path):
        cfg = load_config(tmp_path / "nonexistent.yaml")
        assert cfg == AppConfig()

    def test_load_none_returns_defaults(self):
        cfg = load_config(None)
        assert cfg.router.settings_path == ".trading_settings.json"

    def test_env_override_api_key(self, monkeypatch):
        monkeypatch.setenv("SIGNAL_RELAY_CLASSIFIER_API_KEY", "gsk_test")
        cfg = load_config(None)
        assert cfg.classifier.api_key == "gsk_test"

    def test_env_override_bot_token(self, monkeypatch):
        monkeypatch.setenv("SIGNAL_RELAY_TELEGRAM_BOT_TOKEN", "123:abc")
        cfg = load_config(None)
        assert cfg.telegram.bot_token == "123:abc"

    def test_env_override_log_level(self, monkeypatch):
        monkeypatch.setenv("SIGNAL_RELAY_LOG_LEVEL", "DEBUG")
        cfg = load_config(None)
        assert cfg.logging.level == "DEBUG"

    def test_env_overrides_yaml_values(self, monkeypatch):
        monkeypatch.setenv("SIGNAL_RELAY_LOG_FORMAT", "json")
        cfg = load_config(EXAMPLE)
        assert cfg.logging.format == "json"
        # Non-overridden values preserved
        assert cfg.router.history_lookback_days == 30

    def test_load_minimal_yaml(self, tmp_path):
        p = tmp_path / "minimal.yaml"
        p.write_text("router:\n  backlog_window_minutes: 15\n")
        cfg = load_config(p)
        assert cfg.router.backlog_window_minutes == 15
        # Defaults still apply for unspecified sections
        assert cfg.router.auto_trade_threshold == 0.70
        assert cfg.api.port == 8000
