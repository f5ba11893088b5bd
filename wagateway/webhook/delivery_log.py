"""In-memory bounded log of webhook delivery outcomes."""

from __future__ import annotations

from collections import deque

from wagateway.webhook.models import DeliveryLogEntry

DEFAULT_CAPACITY = 100


class DeliveryLog:
    """FIFO log of recent delivery attempts.

    Default: keeps the 100 most recent entries. Appending past capacity
    evicts the oldest entry. Nothing is persisted across restarts.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._entries: deque[DeliveryLogEntry] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: DeliveryLogEntry) -> None:
        # deque(maxlen=...) drops from the left on overflow
        self._entries.append(entry)

    def recent(self) -> list[DeliveryLogEntry]:
        """Return a newest-first copy of the log."""
        return list(reversed(self._entries))

    def clear(self) -> None:
        self._entries.clear()
