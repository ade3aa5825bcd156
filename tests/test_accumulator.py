from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import pytest

from overlapcheck.accumulator import ResultAccumulator
from overlapcheck.errors import InconsistentStateError
from overlapcheck.template.base import (
    OccurrenceBuckets,
    StreamRecord,
    StreamStatistic,
    Validation,
)
from overlapcheck.template.validation import validate_p_value


def make_statistic(p_value: Optional[float], *, validation: Validation | None = None) -> StreamStatistic:
    record = StreamRecord(
        substring_count=1,
        substring_length=1032,
        lambda_value=2.0,
        buckets=OccurrenceBuckets.from_occurrences([0]),
        chi2=1.0,
        validation=validation or validate_p_value(p_value),
    )
    return StreamStatistic(record=record, p_value=p_value)


def test_append_keeps_insertion_order() -> None:
    accumulator = ResultAccumulator(3)
    for p_value in (0.1, 0.2, 0.3):
        accumulator.append(make_statistic(p_value))

    assert len(accumulator) == 3
    assert accumulator.p_values() == (0.1, 0.2, 0.3)


def test_store_fills_slots_out_of_order() -> None:
    accumulator = ResultAccumulator(3)
    accumulator.store(2, make_statistic(0.3))
    accumulator.store(0, make_statistic(0.1))
    accumulator.store(1, make_statistic(0.2))

    assert accumulator.p_values() == (0.1, 0.2, 0.3)


def test_store_rejects_double_write() -> None:
    accumulator = ResultAccumulator(2)
    accumulator.store(0, make_statistic(0.5))

    with pytest.raises(InconsistentStateError):
        accumulator.store(0, make_statistic(0.6))


def test_gaps_are_reported() -> None:
    accumulator = ResultAccumulator(3)
    accumulator.store(1, make_statistic(0.5))

    with pytest.raises(InconsistentStateError):
        accumulator.statistics()


def test_append_grows_beyond_capacity() -> None:
    accumulator = ResultAccumulator(1)
    accumulator.append(make_statistic(0.5))

    index = accumulator.append(make_statistic(0.7))

    assert index == 1
    assert len(accumulator) == 2


def test_concurrent_stores_keep_stream_order() -> None:
    accumulator = ResultAccumulator(64)
    values = [index / 100 for index in range(64)]

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(lambda i: accumulator.store(i, make_statistic(values[i])), range(64)))

    assert accumulator.p_values() == tuple(values)


def test_tally_counts_invalid_values_as_failures() -> None:
    accumulator = ResultAccumulator(4)
    accumulator.append(make_statistic(0.5))
    accumulator.append(make_statistic(0.001))
    accumulator.append(make_statistic(None, validation=Validation.INVALID_ABOVE_ONE))
    accumulator.append(make_statistic(0.9))

    tally = accumulator.tally()

    assert tally.count == 4
    assert tally.valid_p_values == 3
    assert tally.successes == 2
    assert tally.failures == 2


def test_clear_resets_slots() -> None:
    accumulator = ResultAccumulator(2)
    accumulator.append(make_statistic(0.5))

    accumulator.clear()

    assert len(accumulator) == 0
    assert accumulator.statistics() == ()
