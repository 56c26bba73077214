"""Signal classification."""

from signal_relay.classifier.base import Classification, SignalCandidate, SignalClassifier
from signal_relay.classifier.llm import LLMSignalClassifier, parse_analysis

__all__ = [
    "Classification",
    "LLMSignalClassifier",
    "SignalCandidate",
    "SignalClassifier",
    "parse_analysis",
]
