# -*- coding: utf-8 -*-
########################
# judge.py
########################
# Purpose:
# - Timing-window model for replay rescoring and combo statistics.
# - Defines the nine built-in judges (J1 loosest .. J9 strictest) and classifies deviations.
# - Extracts an alternative judge ("j7", "J2", ...) from free-form text.
#
# Design notes:
# - Pure data and lookups. No I/O.
# - Windows are the J4 base windows scaled by the judge's timing scale.
# - The miss window is the wider of the bad window and the fixed 180ms miss cutoff.
# - Window bounds are inclusive: a deviation exactly on a window edge belongs to that window.
#   classify, is_considered_miss and Hit.is_within_window all use the same <= comparison.
#
########################
# Interfaces:
# Public dataclasses:
# - Judge(name: str, number: int, timing_scale: float, marvelous_window: float, perfect_window: float,
#         great_window: float, good_window: float, bad_window: float, miss_window: float)
#   - windows() -> dict[str, float]
#   - classify(deviation_seconds: Optional[float]) -> str
#   - is_considered_miss(deviation_seconds: Optional[float]) -> bool
#
# Public constants:
# - JUDGEMENT_NAMES, J1 .. J9, JUDGES, REFERENCE_JUDGE
#
# Public functions:
# - judge_by_number(number: int) -> Optional[Judge]
# - extract_judge_from_text(text: str) -> Optional[Judge]
#
# Inputs:
# - Signed deviations in seconds (negative = early), None for a miss.
#
# Outputs:
# - Judgement names consumed by replay_analyzer.py and score_card.py.
#
########################

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

JUDGEMENT_NAMES: Tuple[str, ...] = ("marvelous", "perfect", "great", "good", "bad", "miss")

MISS_CUTOFF_SECONDS = 0.180

_BASE_WINDOWS_SECONDS: Tuple[float, ...] = (0.0225, 0.045, 0.090, 0.135, 0.180)

_JUDGE_PATTERN = re.compile(r"(?<![A-Za-z0-9])[jJ]([1-9])(?![0-9])")


@dataclass(frozen=True)
class Judge:
    name: str
    number: int
    timing_scale: float
    marvelous_window: float
    perfect_window: float
    great_window: float
    good_window: float
    bad_window: float
    miss_window: float

    def windows(self) -> Dict[str, float]:
        return {
            "marvelous": float(self.marvelous_window),
            "perfect": float(self.perfect_window),
            "great": float(self.great_window),
            "good": float(self.good_window),
            "bad": float(self.bad_window),
            "miss": float(self.miss_window),
        }

    def classify(self, deviation_seconds: Optional[float]) -> str:
        if deviation_seconds is None:
            return "miss"
        abs_deviation = abs(float(deviation_seconds))
        for judgement_name, window_seconds in self.windows().items():
            if judgement_name == "miss":
                break
            if abs_deviation <= window_seconds:
                return judgement_name
        return "miss"

    def is_considered_miss(self, deviation_seconds: Optional[float]) -> bool:
        if deviation_seconds is None:
            return True
        return abs(float(deviation_seconds)) > float(self.bad_window)


def _make_judge(number: int, timing_scale: float) -> Judge:
    marvelous, perfect, great, good, bad = (round(base * timing_scale, 6) for base in _BASE_WINDOWS_SECONDS)
    return Judge(
        name=f"J{number}",
        number=number,
        timing_scale=timing_scale,
        marvelous_window=marvelous,
        perfect_window=perfect,
        great_window=great,
        good_window=good,
        bad_window=bad,
        miss_window=max(bad, MISS_CUTOFF_SECONDS),
    )


J1 = _make_judge(1, 1.50)
J2 = _make_judge(2, 1.33)
J3 = _make_judge(3, 1.16)
J4 = _make_judge(4, 1.00)
J5 = _make_judge(5, 0.84)
J6 = _make_judge(6, 0.66)
J7 = _make_judge(7, 0.50)
J8 = _make_judge(8, 0.33)
J9 = _make_judge(9, 0.20)

# Index 0 is unused so JUDGES[n] is judge n.
JUDGES: Tuple[Optional[Judge], ...] = (None, J1, J2, J3, J4, J5, J6, J7, J8, J9)

REFERENCE_JUDGE = J4


def judge_by_number(number: int) -> Optional[Judge]:
    if not 1 <= int(number) <= 9:
        return None
    return JUDGES[int(number)]


def extract_judge_from_text(text: str) -> Optional[Judge]:
    """Return the judge named by the first standalone ``j<digit>`` token in text."""
    for match in _JUDGE_PATTERN.finditer(text or ""):
        judge = judge_by_number(int(match.group(1)))
        if judge is not None:
            return judge
    return None


def _run_unit_tests() -> None:
    assert J4.windows() == {
        "marvelous": 0.0225,
        "perfect": 0.045,
        "great": 0.09,
        "good": 0.135,
        "bad": 0.18,
        "miss": 0.18,
    }
    assert J4.classify(0.0) == "marvelous"
    assert J4.classify(-0.03) == "perfect"
    assert J4.classify(0.1) == "good"
    assert J4.classify(0.2) == "miss"
    assert J4.classify(None) == "miss"

    assert J1.miss_window == J1.bad_window == 0.27
    assert J9.miss_window == MISS_CUTOFF_SECONDS

    previous = judge_by_number(1)
    for number in range(2, 10):
        current = judge_by_number(number)
        assert previous is not None and current is not None
        assert current.marvelous_window < previous.marvelous_window
        previous = current

    assert judge_by_number(0) is None
    assert extract_judge_from_text("rs on J7 please") is J7
    assert extract_judge_from_text("j2 and j8") is J2
    assert extract_judge_from_text("j0 nope") is None
    assert extract_judge_from_text("nothing here") is None


if __name__ == "__main__":
    _run_unit_tests()
    print("judge.py: ok")
