# tests/test_stats.py
import math

import pytest

from backend.parser import Attempt
from backend.stats import compute_stats, display_string, round_half_up


def attempts_of(*values, **kw):
    return [Attempt(student_id="s", value=v, **kw) for v in values]


def test_empty_input():
    result = compute_stats([])
    assert result.type == "empty"
    assert result.count == 0
    assert result.to_dict() == {"type": "empty", "count": 0}


def test_correctness_aggregation():
    result = compute_stats([Attempt(is_correct=True), Attempt(is_correct=True), Attempt(is_correct=False)])
    assert result.correct == 2
    assert result.incorrect == 1
    assert result.accuracy_pct == 67
    assert result.is_judging


def test_values_all_missing_leave_type_unset():
    result = compute_stats([Attempt(is_correct=True), Attempt(response_time_ms=1200)])
    assert result.type is None
    assert result.count == 2
    assert result.accuracy_pct == 100
    assert result.rt.count == 1


def test_no_correctness_without_judged_attempts():
    result = compute_stats(attempts_of("a", "b"))
    assert result.correct is None
    assert result.accuracy_pct is None
    assert not result.is_judging
    assert "accuracy_pct" not in result.to_dict()


def test_numeric_histogram():
    result = compute_stats(attempts_of(1, 1, 2, 3, 3, 3))
    assert result.type == "number"
    assert result.histogram == {"1": 2, "2": 1, "3": 3}
    assert result.min == 1
    assert result.max == 3
    assert result.avg == pytest.approx(13 / 6)


def test_numeric_histogram_rounds_half_up():
    result = compute_stats(attempts_of(0.5, 1.4, 2.5, -0.5))
    assert result.histogram == {"1": 2, "3": 1, "0": 1}


def test_boolean_values():
    result = compute_stats(attempts_of(True, False, True))
    assert result.type == "boolean"
    assert result.true == 2
    assert result.false == 1


def test_string_buckets_and_top():
    result = compute_stats(attempts_of("b", "a", "a", None, "b", "c"))
    assert result.type == "string"
    assert result.histogram == {"b": 2, "a": 2, "null": 1, "c": 1}
    assert result.top == [
        {"value": "b", "freq": 2},
        {"value": "a", "freq": 2},
        {"value": "null", "freq": 1},
        {"value": "c", "freq": 1},
    ]


def test_top_is_limited():
    values = [f"v{i}" for i in range(15)]
    result = compute_stats(attempts_of(*values))
    assert len(result.top) == 10
    assert len(result.histogram) == 15
    assert len(compute_stats(attempts_of(*values), top_n=3).top) == 3


def test_first_value_decides_branch():
    result = compute_stats(attempts_of("x", 1, True))
    assert result.type == "string"
    assert result.histogram == {"x": 1, "1": 1, "true": 1}


def test_mixed_numbers_and_strings():
    result = compute_stats(attempts_of(1, "x", 1.0))
    assert result.type == "mixed"
    assert result.histogram == {"1": 2, "x": 1}
    assert result.min is None


def test_missing_values_are_skipped_for_branch():
    result = compute_stats([Attempt(is_correct=True)] + attempts_of(4, 6))
    assert result.type == "number"
    assert result.count == 3
    assert result.avg == 5


def test_malformed_json_bucketed_as_literal():
    result = compute_stats(attempts_of("{not json", "{not json"))
    assert result.histogram == {"{not json": 2}


def test_response_time_summary():
    attempts = [Attempt(response_time_ms=rt) for rt in (1400, 1600, 2500, 900)] + [Attempt()]
    rt = compute_stats(attempts).rt
    assert rt.count == 4
    assert rt.min == 900
    assert rt.max == 2500
    assert rt.avg == pytest.approx(1600)
    assert rt.histogram == {"1": 2, "2": 1, "3": 1}


def test_deterministic():
    attempts = attempts_of("a", "b", "a", is_correct=True)
    assert compute_stats(attempts).to_dict() == compute_stats(list(attempts)).to_dict()


@pytest.mark.parametrize("value, expected", [
    (None, "null"),
    (True, "true"),
    (3.0, "3"),
    (2.5, "2.5"),
    ([1, 2], "[1,2]"),
    ({"key": "a", "value": "b"}, '{"key":"a","value":"b"}'),
])
def test_display_string(value, expected):
    assert display_string(value) == expected


def test_round_half_up():
    assert round_half_up(66.5) == 67
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2


def test_round_half_up_passes_non_finite_through():
    assert math.isnan(round_half_up(float("nan")))
    assert round_half_up(float("inf")) == float("inf")
    assert round_half_up(float("-inf")) == float("-inf")


def test_non_finite_values_are_bucketed_by_display_string():
    result = compute_stats(attempts_of(float("nan"), float("inf"), 2.4))
    assert result.type == "number"
    assert result.histogram == {"NaN": 1, "Infinity": 1, "2": 1}


def test_infinite_response_time():
    result = compute_stats([Attempt(response_time_ms=float("inf")), Attempt(response_time_ms=1400)])
    assert result.rt.histogram == {"Infinity": 1, "1": 1}
    assert result.rt.max == float("inf")
