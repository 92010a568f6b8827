"""
Tests for judge.py

These tests ensure that:
1. Windows scale with the judge's timing scale and shrink from J1 to J9
2. classify() picks the smallest containing window (edges inclusive) and treats misses as "miss"
3. extract_judge_from_text() only accepts standalone j1..j9 tokens
"""

import pytest

from judge import (
    J1,
    J4,
    J7,
    J9,
    JUDGES,
    MISS_CUTOFF_SECONDS,
    REFERENCE_JUDGE,
    extract_judge_from_text,
    judge_by_number,
)
from replay_models import Hit


def test_reference_judge_is_j4_with_base_windows():
    assert REFERENCE_JUDGE is J4
    assert J4.windows() == {
        "marvelous": 0.0225,
        "perfect": 0.045,
        "great": 0.09,
        "good": 0.135,
        "bad": 0.18,
        "miss": 0.18,
    }


def test_windows_shrink_from_j1_to_j9():
    for number in range(1, 9):
        looser = judge_by_number(number)
        stricter = judge_by_number(number + 1)
        assert looser.marvelous_window > stricter.marvelous_window
        assert looser.bad_window > stricter.bad_window


def test_miss_window_is_at_least_the_fixed_cutoff():
    assert J1.miss_window == J1.bad_window == pytest.approx(0.27)
    assert J9.miss_window == MISS_CUTOFF_SECONDS
    assert J9.bad_window == pytest.approx(0.036)


@pytest.mark.parametrize(
    "deviation, expected",
    [
        (0.0, "marvelous"),
        (-0.0225, "marvelous"),
        (0.03, "perfect"),
        (-0.08, "great"),
        (0.1, "good"),
        (0.17, "bad"),
        (0.181, "miss"),
        (None, "miss"),
    ],
)
def test_classify_on_j4(deviation, expected):
    assert J4.classify(deviation) == expected


def test_classify_depends_on_judge():
    assert J4.classify(0.02) == "marvelous"
    assert J9.classify(0.02) == "good"


@pytest.mark.parametrize("window_name", ["marvelous", "perfect", "great", "good", "bad"])
def test_window_edges_are_inclusive(window_name):
    edge = J4.windows()[window_name]
    assert J4.classify(edge) == window_name
    assert J4.classify(-edge) == window_name
    assert Hit.at(edge).is_within_window(edge)
    assert not J4.is_considered_miss(J4.bad_window)
    assert J4.classify(J4.bad_window + 1e-6) == "miss"


def test_is_considered_miss_uses_bad_window():
    assert J4.is_considered_miss(None)
    assert not J4.is_considered_miss(0.17)
    assert J9.is_considered_miss(0.05)


def test_judges_tuple_is_indexed_by_number():
    assert JUDGES[0] is None
    assert JUDGES[7] is J7
    assert judge_by_number(0) is None
    assert judge_by_number(10) is None


@pytest.mark.parametrize(
    "text, expected",
    [
        ("how would this look on j7", J7),
        ("J9 please", J9),
        ("j1 and j9", J1),
        ("jj4", None),
        ("j0", None),
        ("j10", None),
        ("object5", None),
        ("", None),
    ],
)
def test_extract_judge_from_text(text, expected):
    assert extract_judge_from_text(text) is expected
