"""Ordered, thread-safe storage for per-stream results."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from .errors import InconsistentStateError
from .template.base import StreamRecord, StreamStatistic


@dataclass(frozen=True)
class Tally:
    """Running counters over the processed streams."""

    count: int
    valid_p_values: int
    successes: int
    failures: int


class ResultAccumulator:
    """Collect one :class:`StreamStatistic` per processed stream.

    Slots are pre-allocated for ``capacity`` streams.  Workers computing
    streams concurrently either :meth:`store` into their own index or
    :meth:`append` to the next free slot; each slot is written at most once.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 0:
            raise ValueError("Accumulator capacity must not be negative.")
        self._slots: List[Optional[StreamStatistic]] = [None] * capacity
        self._next = 0
        self._filled = 0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Writers
    # ------------------------------------------------------------------
    def append(self, statistic: StreamStatistic) -> int:
        """Store ``statistic`` in the next free slot and return its index."""

        with self._lock:
            while self._next < len(self._slots) and self._slots[self._next] is not None:
                self._next += 1
            index = self._next
            if index == len(self._slots):
                self._slots.append(None)
            self._slots[index] = statistic
            self._filled += 1
            self._next += 1
        return index

    def store(self, index: int, statistic: StreamStatistic) -> None:
        """Store ``statistic`` in slot ``index``."""

        with self._lock:
            if index < 0:
                raise IndexError(f"Slot index must not be negative, got {index}.")
            if index >= len(self._slots):
                self._slots.extend([None] * (index + 1 - len(self._slots)))
            if self._slots[index] is not None:
                raise InconsistentStateError(f"Result slot {index} was already written.")
            self._slots[index] = statistic
            self._filled += 1

    # ------------------------------------------------------------------
    # Readers
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return self._filled

    def __iter__(self) -> Iterator[StreamStatistic]:
        return iter(self.statistics())

    def statistics(self) -> Tuple[StreamStatistic, ...]:
        """Return the stored results in stream order."""

        with self._lock:
            stored = self._slots[: self._filled]
            if any(slot is None for slot in stored):
                raise InconsistentStateError("Results were stored with gaps between slots.")
        return tuple(stored)  # type: ignore[arg-type]

    def records(self) -> Tuple[StreamRecord, ...]:
        return tuple(statistic.record for statistic in self.statistics())

    def p_values(self) -> Tuple[Optional[float], ...]:
        return tuple(statistic.p_value for statistic in self.statistics())

    def tally(self) -> Tally:
        records = self.records()
        valid = sum(1 for record in records if record.validation.is_valid)
        successes = sum(1 for record in records if record.success)
        return Tally(
            count=len(records),
            valid_p_values=valid,
            successes=successes,
            failures=len(records) - successes,
        )

    def clear(self) -> None:
        with self._lock:
            self._slots = [None] * len(self._slots)
            self._next = 0
            self._filled = 0


__all__ = ["ResultAccumulator", "Tally"]
