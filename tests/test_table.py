from __future__ import annotations

import pytest

from overlapcheck.template.table import (
    REFERENCE_TABLE,
    derive_probability_table,
    probability_table,
)


@pytest.mark.parametrize("template_length", range(2, 17))
def test_probability_table_sums_to_one(template_length: int) -> None:
    table = probability_table(template_length)

    assert len(table) == 6
    assert sum(table) == pytest.approx(1.0, abs=1e-9)
    assert all(probability > 0.0 for probability in table)


def test_reference_length_uses_published_values() -> None:
    assert probability_table(9) is REFERENCE_TABLE


def test_derived_table_matches_published_values() -> None:
    derived = derive_probability_table(9)

    for computed, published in zip(derived, REFERENCE_TABLE):
        assert computed == pytest.approx(published, abs=1e-9)


def test_non_default_shape_is_derived() -> None:
    table = probability_table(9, substring_length=512, degrees_of_freedom=3)

    assert len(table) == 4
    assert sum(table) == pytest.approx(1.0, abs=1e-9)


def test_short_templates_match_more_often() -> None:
    # With m=2 nearly every substring holds at least K matches.
    assert probability_table(2)[-1] > 0.99
    assert probability_table(16)[0] > 0.98


def test_derive_rejects_impossible_shapes() -> None:
    with pytest.raises(ValueError):
        derive_probability_table(0)
    with pytest.raises(ValueError):
        derive_probability_table(9, substring_length=4)
