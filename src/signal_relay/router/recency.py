"""Bounded, insertion-ordered set used to drop duplicate live deliveries."""

from __future__ import annotations

from itertools import islice


class RecencySet:
    """Approximate duplicate filter.

    Holds at most ``capacity`` keys. When an insert pushes it past capacity
    the oldest ``evict_count`` keys (insertion order) are dropped, so a key
    is only ever forgotten after newer ones, never before.
    """

    def __init__(self, capacity: int = 1000, evict_count: int | None = None) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.evict_count = max(1, evict_count if evict_count is not None else capacity // 2)
        self._keys: dict[str, None] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def add(self, key: str) -> bool:
        """Insert *key*; returns False if it was already present."""
        if key in self._keys:
            return False
        self._keys[key] = None
        if len(self._keys) > self.capacity:
            for old in list(islice(self._keys, self.evict_count)):
                del self._keys[old]
        return True

    def clear(self) -> None:
        self._keys.clear()
