"""Tests for the router's state primitives: identity, recency, signals, settings."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from conftest import make_message, valid

from signal_relay.classifier.base import Classification
from signal_relay.models import Signal, normalize_symbol
from signal_relay.router import (
    RecencySet,
    SettingsStore,
    SignalStore,
    channels_equal,
    message_key,
    normalize_channel_id,
)
from signal_relay.router.transitions import (
    HISTORICAL_SKIP_REASON,
    apply_classification,
    mark_skipped,
    should_auto_trade,
    within_window,
)
from signal_relay.router.settings import Settings


def _signal(signal_id="s1", status="pending", confidence=0.8) -> Signal:
    return Signal(
        id=signal_id, message_id=1, channel_id="1", symbol="EURUSD", direction="BUY",
        confidence=confidence, timestamp=datetime.now(timezone.utc), status=status,
    )


class TestChannelIdentity:
    @pytest.mark.parametrize("raw", ["-100123456789", "-123456789", "123456789", 123456789])
    def test_forms_normalize_to_bare_digits(self, raw):
        assert normalize_channel_id(raw) == "123456789"

    def test_prefixed_and_bare_are_equal(self):
        assert channels_equal("-100123456789", "123456789")
        assert not channels_equal("-100123456789", "987654321")

    def test_empty_never_matches(self):
        assert not channels_equal(None, None)
        assert not channels_equal("", "")

    def test_message_key_uses_normalized_channel(self):
        assert message_key("-100123", 5) == message_key("123", 5) == "123:5"

    def test_symbol_normalization(self):
        assert normalize_symbol("eur/usd") == "EURUSD"
        assert normalize_symbol("XAU-USD") == "XAUUSD"
        assert normalize_symbol("btc usd") == "BTCUSD"


class TestRecencySet:
    def test_add_reports_duplicates(self):
        recency = RecencySet(capacity=10)
        assert recency.add("a") is True
        assert recency.add("a") is False
        assert "a" in recency

    def test_evicts_oldest_half_when_full(self):
        recency = RecencySet(capacity=4)
        for key in "abcde":
            recency.add(key)
        assert len(recency) == 3
        assert "a" not in recency and "b" not in recency
        assert all(k in recency for k in "cde")

    def test_never_exceeds_capacity(self):
        recency = RecencySet(capacity=1)
        for i in range(10):
            recency.add(str(i))
            assert len(recency) <= 1

    def test_clear(self):
        recency = RecencySet()
        recency.add("x")
        recency.clear()
        assert len(recency) == 0
        assert recency.add("x") is True

    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            RecencySet(capacity=0)


class TestSignalStore:
    def test_add_never_replaces(self):
        store = SignalStore()
        assert store.add(_signal(confidence=0.8))
        assert not store.add(_signal(confidence=0.1))
        assert store.get("s1").confidence == 0.8

    def test_pending_moves_to_terminal(self):
        store = SignalStore()
        store.add(_signal())
        transition = store.transition("s1", "failed", "no margin")
        assert transition.applied
        assert transition.signal.status == "failed"
        assert transition.signal.failure_reason == "no margin"

    @pytest.mark.parametrize("settled", ["executed", "dismissed", "failed"])
    def test_terminal_status_is_final(self, settled):
        store = SignalStore()
        store.add(_signal(status=settled))
        for target in ("executed", "dismissed", "failed"):
            transition = store.transition("s1", target)
            assert not transition.applied
            assert transition.signal.status == settled

    def test_unknown_id_raises(self):
        with pytest.raises(KeyError):
            SignalStore().transition("nope", "dismissed")

    def test_pending_is_not_a_target(self):
        store = SignalStore()
        store.add(_signal())
        with pytest.raises(ValueError):
            store.transition("s1", "pending")


class TestSettingsStore:
    def test_defaults_without_file(self, tmp_path):
        settings = SettingsStore(tmp_path / "missing.json").current
        assert settings.auto_trade_enabled is False
        assert settings.selected_channel_ids == []
        assert settings.default_order_size == 0.01

    def test_corrupt_file_yields_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json")
        assert SettingsStore(path).current == Settings()

    def test_update_persists_across_instances(self, tmp_path):
        path = tmp_path / "settings.json"
        SettingsStore(path).update(auto_trade_enabled=True, default_order_size=0.3,
                                   selected_channel_ids=["-1001"])
        data = json.loads(path.read_text())
        assert data["autoTradeEnabled"] is True
        assert data["defaultOrderSize"] == 0.3

        reloaded = SettingsStore(path).current
        assert reloaded.auto_trade_enabled is True
        assert reloaded.default_order_size == 0.3
        assert reloaded.selected_channel_ids == ["-1001"]

    def test_legacy_keys_are_upgraded(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"lotSize": 0.05, "savedChannelIds": ["-100777"]}))
        settings = SettingsStore(path).current
        assert settings.default_order_size == 0.05
        assert settings.selected_channel_ids == ["-100777"]

    def test_single_channel_key_is_upgraded(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"selectedChannelId": "-100555"}))
        assert SettingsStore(path).current.selected_channel_ids == ["-100555"]

    def test_invalid_update_is_rejected(self, tmp_path):
        store = SettingsStore(tmp_path / "settings.json")
        with pytest.raises(ValidationError):
            store.update(default_order_size=0)
        assert store.current.default_order_size == 0.01


class TestTransitions:
    NOW = datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc)

    def test_valid_signal_creates_pending_signals(self):
        ids = iter(["x1"])
        outcome = apply_classification(
            make_message(), valid(), now=self.NOW, id_factory=lambda: next(ids),
        )
        [signal] = outcome.signals
        assert signal.id == "x1"
        assert signal.status == "pending"
        assert signal.timestamp == self.NOW
        assert outcome.message.ai_verdict == "valid_signal"
        assert [f.type for f in outcome.facts] == ["new_message", "signal_detected"]

    def test_known_id_is_not_replaced(self):
        outcome = apply_classification(make_message(), valid(), {"dup"}, id_factory=lambda: "dup")
        assert outcome.signals == []
        assert [f.type for f in outcome.facts] == ["new_message"]

    def test_error_yields_no_signals(self):
        outcome = apply_classification(make_message(), Classification(verdict="error"))
        assert outcome.signals == []
        assert outcome.message.ai_verdict == "error"
        assert outcome.message.verdict_description == "analysis error"

    def test_no_signal_keeps_description(self):
        outcome = apply_classification(
            make_message(), Classification(verdict="no_signal", description="Just chatter"),
        )
        assert outcome.message.verdict_description == "Just chatter"
        assert outcome.signals == []

    def test_mark_skipped(self):
        skipped = mark_skipped(make_message(realtime=True))
        assert skipped.ai_verdict == "skipped"
        assert skipped.is_realtime is False
        assert skipped.verdict_description == HISTORICAL_SKIP_REASON

    @pytest.mark.parametrize("confidence,enabled,expected", [
        (0.70, True, True),
        (0.69, True, False),
        (0.95, False, False),
    ])
    def test_should_auto_trade(self, confidence, enabled, expected):
        settings = Settings(auto_trade_enabled=enabled)
        assert should_auto_trade(_signal(confidence=confidence), settings) is expected

    def test_settled_signal_never_auto_trades(self):
        settings = Settings(auto_trade_enabled=True)
        assert not should_auto_trade(_signal(status="dismissed", confidence=0.9), settings)

    def test_window_keeps_recent_messages(self):
        messages = [
            make_message(msg_id=1, age=timedelta(minutes=90)),
            make_message(msg_id=2, age=timedelta(minutes=5)),
        ]
        assert [m.id for m in within_window(messages, timedelta(hours=1))] == [2]

    def test_window_treats_naive_dates_as_utc(self):
        naive = make_message().model_copy(
            update={"date": datetime.now(timezone.utc).replace(tzinfo=None)},
        )
        assert within_window([naive], timedelta(minutes=1)) == [naive]
