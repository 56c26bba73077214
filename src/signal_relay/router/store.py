"""SignalStore — authoritative signal map with monotone status transitions."""

from __future__ import annotations

from dataclasses import dataclass

from signal_relay.models import TERMINAL_STATUSES, Signal, SignalStatus


@dataclass(frozen=True)
class Transition:
    """Result of a status change request.

    ``applied`` is False when the stored signal had already settled; in that
    case ``signal`` is the unchanged stored record.
    """

    signal: Signal
    applied: bool


class SignalStore:
    """In-memory signal map. Written only by the router."""

    def __init__(self) -> None:
        self._signals: dict[str, Signal] = {}

    def __len__(self) -> int:
        return len(self._signals)

    def __contains__(self, signal_id: str) -> bool:
        return signal_id in self._signals

    def get(self, signal_id: str) -> Signal | None:
        return self._signals.get(signal_id)

    def all(self) -> list[Signal]:
        """Every tracked signal, oldest first."""
        return list(self._signals.values())

    def add(self, signal: Signal) -> bool:
        """Store a new signal. Never replaces an existing id."""
        if signal.id in self._signals:
            return False
        self._signals[signal.id] = signal
        return True

    def transition(
        self,
        signal_id: str,
        status: SignalStatus,
        failure_reason: str | None = None,
    ) -> Transition:
        """Move a pending signal to a terminal status.

        Raises KeyError for an unknown id and ValueError for a non-terminal
        target status.
        """
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"not a terminal status: {status!r}")
        current = self._signals[signal_id]
        if not current.is_pending:
            return Transition(signal=current, applied=False)
        update: dict = {"status": status}
        if failure_reason is not None:
            update["failure_reason"] = failure_reason
        updated = current.model_copy(update=update)
        self._signals[signal_id] = updated
        return Transition(signal=updated, applied=True)
