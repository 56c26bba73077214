"""Execution gateway interface."""

from signal_relay.gateway.base import (
    ExecutionGateway,
    GatewayEvent,
    GatewayStatusChanged,
    PositionChanged,
    PositionRemoved,
    PositionsChanged,
    QuotesChanged,
)

__all__ = [
    "ExecutionGateway",
    "GatewayEvent",
    "GatewayStatusChanged",
    "PositionChanged",
    "PositionRemoved",
    "PositionsChanged",
    "QuotesChanged",
]
