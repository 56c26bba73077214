"""Shared test fixtures: in-memory fakes of the three capabilities."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from signal_relay.classifier.base import Classification, SignalCandidate, SignalClassifier
from signal_relay.config.schema import RouterConfig
from signal_relay.gateway.base import ExecutionGateway
from signal_relay.models import (
    AccountSnapshot,
    Channel,
    HistoricalTrade,
    MarketQuote,
    Message,
    OrderResult,
    Position,
)
from signal_relay.router import EventRouter, SettingsStore
from signal_relay.sources.base import MessageSource, StatusChanged

SELECTED = "-100123456789"
BARE = "123456789"


def make_message(
    msg_id: int = 1,
    channel_id: str = BARE,
    text: str = "BUY EURUSD @ 1.0850 SL 1.0800 TP 1.0900",
    realtime: bool = True,
    age: timedelta = timedelta(0),
) -> Message:
    return Message(
        id=msg_id,
        channel_id=channel_id,
        channel_title="Signals",
        text=text,
        date=datetime.now(timezone.utc) - age,
        sender_name="Analyst",
        is_realtime=realtime,
    )


def valid(
    confidence: float = 0.85,
    symbol: str = "EUR/USD",
    direction: str = "BUY",
    stop_loss: float | None = 1.08,
    take_profit: list[float] | None = None,
) -> Classification:
    candidate = SignalCandidate(
        symbol=symbol,
        direction=direction,
        confidence=confidence,
        entry_price=1.085,
        stop_loss=stop_loss,
        take_profit=[1.09, 1.095] if take_profit is None else take_profit,
        reason="Clear breakout setup",
    )
    return Classification(
        verdict="valid_signal",
        description=f"1 signal(s) detected: {direction} {symbol}",
        model_used="gpt-oss-120b",
        candidates=[candidate],
    )


class FakeSource(MessageSource):
    def __init__(self) -> None:
        super().__init__()
        self.channels = [Channel(id=SELECTED, title="Signals", type="channel")]
        self.backlog: dict[str, list[Message]] = {}
        self.selected: list[list[str]] = []
        self.submitted: list[tuple[str, str]] = []
        self.connect_calls = 0
        self.disconnect_calls = 0

    async def connect(self) -> None:
        self.connect_calls += 1
        self.emit(StatusChanged("connected"))

    async def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.emit(StatusChanged("disconnected"))

    async def list_channels(self) -> list[Channel]:
        return list(self.channels)

    async def select_channel(self, channel_ids: list[str]) -> list[Message]:
        self.selected.append(list(channel_ids))
        return [m for cid in channel_ids for m in self.backlog.get(cid, [])]

    async def submit_phone(self, phone: str) -> None:
        self.submitted.append(("phone", phone))

    async def submit_code(self, code: str) -> None:
        self.submitted.append(("code", code))

    async def submit_password(self, password: str) -> None:
        self.submitted.append(("password", password))


class FakeGateway(ExecutionGateway):
    """Records calls; ``results`` are returned by place_order in order.

    Set ``gate`` to an asyncio.Event to hold place_order until it is set.
    """

    def __init__(self) -> None:
        super().__init__()
        self._status = "connected"
        self.results: list[OrderResult] = []
        self.orders: list[dict] = []
        self.closed: list[str] = []
        self.modified: list[tuple] = []
        self.gate: asyncio.Event | None = None
        self.account_calls = 0
        self.position_calls = 0
        self.account = AccountSnapshot(id="acc", name="Demo", balance=1000.0, equity=1000.0)
        self.positions: list[Position] = []
        self.quotes = [MarketQuote(symbol="EURUSD", bid=1.0849, ask=1.0851, spread=0.0002)]
        self.history: list[HistoricalTrade] = []

    async def get_account_snapshot(self) -> AccountSnapshot | None:
        self.account_calls += 1
        return self.account

    async def get_positions(self) -> list[Position]:
        self.position_calls += 1
        return list(self.positions)

    async def get_market_quotes(self) -> list[MarketQuote]:
        return list(self.quotes)

    async def get_trade_history(self, lookback: timedelta) -> list[HistoricalTrade]:
        return list(self.history)

    async def place_order(self, symbol, direction, volume, stop_loss=None, take_profit=None) -> OrderResult:
        self.orders.append({
            "symbol": symbol,
            "direction": direction,
            "volume": volume,
            "stop_loss": stop_loss,
            "take_profit": take_profit,
        })
        if self.gate is not None:
            await self.gate.wait()
        if self.results:
            return self.results.pop(0)
        return OrderResult(success=True, message="filled", order_id=str(len(self.orders)))

    async def close_position(self, position_id: str) -> OrderResult:
        self.closed.append(position_id)
        return OrderResult(success=True, message="closed")

    async def modify_position(self, position_id, stop_loss=None, take_profit=None) -> OrderResult:
        self.modified.append((position_id, stop_loss, take_profit))
        return OrderResult(success=True, message="modified")


class FakeClassifier(SignalClassifier):
    """Returns ``results[text]`` (or ``default``); exceptions are raised."""

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.results: dict[str, Classification | Exception] = {}
        self.default: Classification | Exception = Classification(
            verdict="no_signal", description="Not a signal", model_used="gpt-oss-120b",
        )

    async def classify(self, text: str) -> Classification:
        self.calls.append(text)
        result = self.results.get(text, self.default)
        if isinstance(result, Exception):
            raise result
        return result


class Rig:
    """A router wired to fakes, with one observer capturing every fact."""

    def __init__(self, tmp_path, log_buffer=None, **settings) -> None:
        self.source = FakeSource()
        self.gateway = FakeGateway()
        self.classifier = FakeClassifier()
        self.settings_path = tmp_path / "settings.json"
        self.settings = SettingsStore(self.settings_path)
        self.settings.update(**{"selected_channel_ids": [SELECTED], **settings})
        self.router = EventRouter(
            self.source,
            self.gateway,
            self.classifier,
            self.settings,
            config=RouterConfig(account_refresh_s=3600, history_refresh_s=3600),
            log_buffer=log_buffer,
        )
        self.observer = self.router.hub.attach()
        self.seen: list[dict] = []

    def facts(self, fact_type: str | None = None) -> list[dict]:
        self.seen.extend(self.observer.drain())
        if fact_type is None:
            return list(self.seen)
        return [f for f in self.seen if f["type"] == fact_type]

    def types(self) -> list[str]:
        return [f["type"] for f in self.facts()]


@pytest.fixture
def rig(tmp_path):
    return Rig(tmp_path)


@pytest.fixture
def make_rig(tmp_path):
    def _make(**settings) -> Rig:
        return Rig(tmp_path, **settings)
    return _make
