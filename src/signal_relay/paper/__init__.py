"""Paper execution gateway."""

from signal_relay.paper.gateway import PaperGateway
from signal_relay.paper.oracle import QuoteOracle

__all__ = ["PaperGateway", "QuoteOracle"]
