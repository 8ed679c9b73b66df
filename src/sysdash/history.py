"""Bounded metric history backing the dashboard charts."""

from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Sample:
    """One timestamped reading of a metric."""

    timestamp: float  # time.monotonic()
    value: float


class HistoryBuffer:
    """
    Fixed-capacity FIFO of samples for one metric series.

    Samples are kept in insertion order, oldest first. Once the buffer is
    full every push evicts exactly one sample from the head. A buffer with
    zero capacity accepts pushes and stores nothing.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError(f"capacity must be >= 0, got {capacity}")
        self._capacity = capacity
        self._entries: deque[Sample] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        """Maximum number of samples held."""
        return self._capacity

    def push(self, value: float, timestamp: float) -> None:
        """Append a sample, dropping the oldest one when at capacity."""
        if self._capacity == 0:
            return
        # deque(maxlen=...) pops the head on append when full
        self._entries.append(Sample(timestamp=timestamp, value=value))

    def iter(self) -> Iterator[Sample]:
        """Iterate samples from oldest to newest."""
        return iter(self._entries)

    def __iter__(self) -> Iterator[Sample]:
        return self.iter()

    def __len__(self) -> int:
        return len(self._entries)

    def values(self) -> list[float]:
        """Sample values in chronological order."""
        return [sample.value for sample in self._entries]

    def latest(self) -> Sample | None:
        """The most recent sample, or None if empty."""
        return self._entries[-1] if self._entries else None

    def __repr__(self) -> str:
        return f"HistoryBuffer(capacity={self._capacity}, len={len(self._entries)})"
