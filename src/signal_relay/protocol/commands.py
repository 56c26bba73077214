"""Inbound observer commands — validated at the boundary, unknown tags rejected."""

from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import Field, StrictBool, TypeAdapter, ValidationError, field_validator, model_validator

from signal_relay.models import Direction, WireModel

Volume = Annotated[float, Field(gt=0)]
Price = Annotated[float, Field(gt=0)]


class CommandError(ValueError):
    """A command failed shape validation; the message is observer-facing."""


class _ChannelIdsMixin(WireModel):
    # accepts a single id or a list under the same key
    channel_id: list[str] = Field(default_factory=list)

    @field_validator("channel_id", mode="before")
    @classmethod
    def _coerce_ids(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, (str, int)):
            value = [value]
        return [str(v).strip() for v in value if str(v).strip()]


class SelectChannelCommand(_ChannelIdsMixin):
    type: Literal["select_channel"] = "select_channel"


class SaveChannelCommand(_ChannelIdsMixin):
    type: Literal["save_channel"] = "save_channel"


class ExecuteTradeCommand(WireModel):
    type: Literal["execute_trade"] = "execute_trade"
    signal_id: str = Field(min_length=1)
    volume: Volume
    stop_loss: Price | None = None
    take_profit: Price | None = None


class DismissSignalCommand(WireModel):
    type: Literal["dismiss_signal"] = "dismiss_signal"
    signal_id: str = Field(min_length=1)


class ManualTradeCommand(WireModel):
    type: Literal["manual_trade"] = "manual_trade"
    symbol: str = Field(min_length=1)
    direction: Direction
    volume: Volume
    stop_loss: Price | None = None
    take_profit: Price | None = None


class ClosePositionCommand(WireModel):
    type: Literal["close_position"] = "close_position"
    position_id: str = Field(min_length=1)


class ModifyPositionCommand(WireModel):
    type: Literal["modify_position"] = "modify_position"
    position_id: str = Field(min_length=1)
    stop_loss: Price | None = None
    take_profit: Price | None = None

    @model_validator(mode="after")
    def _needs_a_level(self) -> ModifyPositionCommand:
        if self.stop_loss is None and self.take_profit is None:
            raise ValueError("modify_position needs stopLoss or takeProfit")
        return self


class ToggleAutoTradeCommand(WireModel):
    type: Literal["toggle_auto_trade"] = "toggle_auto_trade"
    enabled: StrictBool


class SetDefaultSizeCommand(WireModel):
    type: Literal["set_default_size"] = "set_default_size"
    size: Volume


class DisconnectSourceCommand(WireModel):
    type: Literal["disconnect_source"] = "disconnect_source"


class ReconnectSourceCommand(WireModel):
    type: Literal["reconnect_source"] = "reconnect_source"


class SubmitPhoneCommand(WireModel):
    type: Literal["submit_phone"] = "submit_phone"
    phone: str = Field(min_length=1)


class SubmitCodeCommand(WireModel):
    type: Literal["submit_code"] = "submit_code"
    code: str = Field(min_length=1)


class SubmitPasswordCommand(WireModel):
    type: Literal["submit_password"] = "submit_password"
    password: str = Field(min_length=1)


Command = Annotated[
    Union[
        SelectChannelCommand,
        SaveChannelCommand,
        ExecuteTradeCommand,
        DismissSignalCommand,
        ManualTradeCommand,
        ClosePositionCommand,
        ModifyPositionCommand,
        ToggleAutoTradeCommand,
        SetDefaultSizeCommand,
        DisconnectSourceCommand,
        ReconnectSourceCommand,
        SubmitPhoneCommand,
        SubmitCodeCommand,
        SubmitPasswordCommand,
    ],
    Field(discriminator="type"),
]

COMMAND_ADAPTER: TypeAdapter[Command] = TypeAdapter(Command)


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "command"
        parts.append(f"{loc}: {err['msg']}")
    return "Invalid command: " + "; ".join(parts)


def parse_command(raw: str | bytes | dict) -> Command:
    """Parse and validate one observer command.

    Raises CommandError for malformed JSON, unknown ``type`` tags and
    invalid fields.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            raise CommandError("Invalid command: not valid JSON") from None
    if not isinstance(raw, dict) or not raw.get("type"):
        raise CommandError("Invalid command: missing type")
    try:
        return COMMAND_ADAPTER.validate_python(raw)
    except ValidationError as exc:
        raise CommandError(_describe(exc)) from None
