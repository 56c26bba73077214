"""Outbound facts — every record an observer can receive, tagged by ``type``."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter

from signal_relay.models import (
    AccountSnapshot,
    Channel,
    HistoricalTrade,
    MarketQuote,
    Message,
    OrderResult,
    Position,
    Signal,
    WireModel,
)

SourceStatus = Literal["connecting", "connected", "disconnected", "needs_auth"]
GatewayStatus = Literal["connecting", "connected", "disconnected"]
AuthStepName = Literal["phone", "code", "password", "done"]


class SourceStatusFact(WireModel):
    type: Literal["source_status"] = "source_status"
    status: SourceStatus


class GatewayStatusFact(WireModel):
    type: Literal["gateway_status"] = "gateway_status"
    status: GatewayStatus


class ChannelsFact(WireModel):
    type: Literal["channels"] = "channels"
    channels: list[Channel]


class ChannelsSelectedFact(WireModel):
    type: Literal["channels_selected"] = "channels_selected"
    channel_ids: list[str]


class NewMessageFact(WireModel):
    type: Literal["new_message"] = "new_message"
    message: Message


class SignalDetectedFact(WireModel):
    type: Literal["signal_detected"] = "signal_detected"
    signal: Signal


class SignalUpdatedFact(WireModel):
    type: Literal["signal_updated"] = "signal_updated"
    signal: Signal


class AutoTradeExecutedFact(WireModel):
    type: Literal["auto_trade_executed"] = "auto_trade_executed"
    signal: Signal
    result: OrderResult


class AccountInfoFact(WireModel):
    type: Literal["account_info"] = "account_info"
    account: AccountSnapshot


class PositionsFact(WireModel):
    type: Literal["positions"] = "positions"
    positions: list[Position]


class PositionUpdateFact(WireModel):
    type: Literal["position_update"] = "position_update"
    position: Position


class PositionClosedFact(WireModel):
    type: Literal["position_closed"] = "position_closed"
    position_id: str


class MarketsFact(WireModel):
    type: Literal["markets"] = "markets"
    markets: list[MarketQuote]


class HistoryFact(WireModel):
    type: Literal["history"] = "history"
    trades: list[HistoricalTrade]


class ErrorFact(WireModel):
    type: Literal["error"] = "error"
    message: str


class AuthRequiredFact(WireModel):
    type: Literal["auth_required"] = "auth_required"


class AuthStepFact(WireModel):
    type: Literal["auth_step"] = "auth_step"
    step: AuthStepName
    message: str | None = None


class AuthErrorFact(WireModel):
    type: Literal["auth_error"] = "auth_error"
    message: str


class SavedChannelFact(WireModel):
    type: Literal["saved_channel"] = "saved_channel"
    channel_id: str | None


class AutoTradeEnabledFact(WireModel):
    type: Literal["auto_trade_enabled"] = "auto_trade_enabled"
    enabled: bool


class DefaultSizeUpdatedFact(WireModel):
    type: Literal["default_size_updated"] = "default_size_updated"
    size: float


class SourceDisconnectedFact(WireModel):
    type: Literal["source_disconnected"] = "source_disconnected"


class TradeResultFact(WireModel):
    type: Literal["trade_result"] = "trade_result"
    success: bool
    message: str


class LogsFact(WireModel):
    type: Literal["logs"] = "logs"
    logs: list[dict[str, Any]]


Fact = Annotated[
    Union[
        SourceStatusFact,
        GatewayStatusFact,
        ChannelsFact,
        ChannelsSelectedFact,
        NewMessageFact,
        SignalDetectedFact,
        SignalUpdatedFact,
        AutoTradeExecutedFact,
        AccountInfoFact,
        PositionsFact,
        PositionUpdateFact,
        PositionClosedFact,
        MarketsFact,
        HistoryFact,
        ErrorFact,
        AuthRequiredFact,
        AuthStepFact,
        AuthErrorFact,
        SavedChannelFact,
        AutoTradeEnabledFact,
        DefaultSizeUpdatedFact,
        SourceDisconnectedFact,
        TradeResultFact,
        LogsFact,
    ],
    Field(discriminator="type"),
]

FACT_ADAPTER: TypeAdapter[Fact] = TypeAdapter(Fact)
