"""Observer wire protocol — outbound facts and inbound commands."""

from signal_relay.protocol.commands import Command, CommandError, parse_command
from signal_relay.protocol.facts import FACT_ADAPTER, Fact

__all__ = ["Command", "CommandError", "FACT_ADAPTER", "Fact", "parse_command"]
