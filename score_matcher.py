# -*- coding: utf-8 -*-
########################
# score_matcher.py
########################
# Purpose:
# - Score how well a recognized result screen agrees with a candidate score record.
# - Pick the best candidate across several OCR theme readings.
#
# Design notes:
# - Pure functions. No shared state.
# - A field contributes only when present on both sides; disagreement costs nothing.
# - Best-effort lookup: the winner is the most plausible candidate, not a proven identity.
# - Ties keep the earliest candidate in list order.
#
########################
# Interfaces:
# Public dataclasses:
# - CandidateScore(record: ScoreRecord, score: int, reading_index: Optional[int])
#
# Public functions:
# - match_score(reading: ScreenReading | ScoreRecord, candidate: ScreenReading | ScoreRecord) -> int
# - rank_candidates(readings, candidates, *, compare_username: bool = True) -> list[CandidateScore]
# - identify_best_match(readings, candidates, threshold: int = 8, *, compare_username: bool = True)
#     -> Optional[ScoreRecord]
#
########################

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence, Union

from score_models import Judgements, ScoreRecord, ScreenReading

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 8

FLOAT_TOLERANCE = 0.01
# Absorbs binary rounding, e.g. 96.50 - 96.49 is slightly above 0.01.
_FLOAT_EPSILON = 1e-9

RATE_WEIGHT = 2
PACK_WEIGHT = 3
USERNAME_WEIGHT = 5
SONG_WEIGHT = 6
ARTIST_WEIGHT = 3
WIFESCORE_WEIGHT = 5
MSD_WEIGHT = 6
SSR_WEIGHT = 6
DIFFICULTY_WEIGHT = 2
JUDGEMENT_WEIGHT = 2


@dataclass(frozen=True)
class CandidateScore:
    record: ScoreRecord
    score: int
    reading_index: Optional[int]


def _exact_equal(left: Any, right: Any) -> bool:
    return left == right


def _approx_equal(left: float, right: float) -> bool:
    return abs(float(left) - float(right)) <= FLOAT_TOLERANCE + _FLOAT_EPSILON


def _field_points(left: Any, right: Any, weight: int, equal: Callable[[Any, Any], bool] = _exact_equal) -> int:
    if left is None or right is None:
        return 0
    return weight if equal(left, right) else 0


def _judgement_points(left: Optional[Judgements], right: Optional[Judgements]) -> int:
    if left is None or right is None:
        return 0
    points = 0
    for field_name in ("marvelous", "perfect", "great", "good", "bad", "miss"):
        points += _field_points(getattr(left, field_name), getattr(right, field_name), JUDGEMENT_WEIGHT)
    return points


def _as_reading(value: Union[ScreenReading, ScoreRecord]) -> ScreenReading:
    if isinstance(value, ScoreRecord):
        return value.as_screen_reading()
    return value


def match_score(
    reading: Union[ScreenReading, ScoreRecord],
    candidate: Union[ScreenReading, ScoreRecord],
) -> int:
    """Return the summed weight of every field on which both sides agree.

    Score records are compared through their ScreenReading shape.
    """
    reading = _as_reading(reading)
    candidate = _as_reading(candidate)

    score = 0
    score += _field_points(reading.rate, candidate.rate, RATE_WEIGHT)
    score += _field_points(reading.pack, candidate.pack, PACK_WEIGHT)
    score += _field_points(reading.username, candidate.username, USERNAME_WEIGHT)
    score += _field_points(reading.song, candidate.song, SONG_WEIGHT)
    score += _field_points(reading.artist, candidate.artist, ARTIST_WEIGHT)
    score += _field_points(reading.wifescore, candidate.wifescore, WIFESCORE_WEIGHT, _approx_equal)
    score += _field_points(reading.msd, candidate.msd, MSD_WEIGHT, _approx_equal)
    score += _field_points(reading.ssr, candidate.ssr, SSR_WEIGHT, _approx_equal)
    score += _field_points(reading.difficulty, candidate.difficulty, DIFFICULTY_WEIGHT)
    score += _judgement_points(reading.judgements, candidate.judgements)
    return score


def rank_candidates(
    readings: Sequence[ScreenReading],
    candidates: Sequence[ScoreRecord],
    *,
    compare_username: bool = True,
) -> List[CandidateScore]:
    ranked: List[CandidateScore] = []
    for record in candidates:
        candidate_reading = record.as_screen_reading(include_username=compare_username)
        best_score = 0
        best_index: Optional[int] = None
        for reading_index, reading in enumerate(readings):
            score = match_score(reading, candidate_reading)
            if score > best_score:
                best_score = score
                best_index = reading_index
        ranked.append(CandidateScore(record=record, score=best_score, reading_index=best_index))
    return ranked


def identify_best_match(
    readings: Sequence[ScreenReading],
    candidates: Sequence[ScoreRecord],
    threshold: int = DEFAULT_THRESHOLD,
    *,
    compare_username: bool = True,
) -> Optional[ScoreRecord]:
    best: Optional[CandidateScore] = None
    for candidate_score in rank_candidates(readings, candidates, compare_username=compare_username):
        if candidate_score.score <= int(threshold):
            continue
        if best is None or candidate_score.score > best.score:
            best = candidate_score

    if best is None:
        logger.debug("No candidate cleared threshold %d among %d records", threshold, len(candidates))
        return None

    logger.info(
        "Matched scorekey %s with score %d (reading %s)",
        best.record.scorekey,
        best.score,
        best.reading_index,
    )
    return best.record


def _run_unit_tests() -> None:
    reading = ScreenReading(song="Game Time", wifescore=96.50)
    target = ScoreRecord(scorekey="Sgame", user_id=1, song="Game Time", wifescore=96.49)
    others = [ScoreRecord(scorekey=f"S{index}", user_id=1, song=f"Other {index}") for index in range(9)]

    assert match_score(reading, target.as_screen_reading()) == SONG_WEIGHT + WIFESCORE_WEIGHT
    assert match_score(target.as_screen_reading(), reading) == match_score(reading, target.as_screen_reading())
    assert identify_best_match([reading], others[:4] + [target] + others[4:]) is target
    assert identify_best_match([ScreenReading(song="Game Time")], [target]) is None
    assert identify_best_match([], [target]) is None


if __name__ == "__main__":
    _run_unit_tests()
    print("score_matcher.py: ok")
