"""
Tests for score_matcher.py

These tests ensure that:
1. match_score is commutative and only rewards fields present on both sides
2. Agreeing on one more field raises the score by exactly that field's weight
3. identify_best_match requires strictly more than the threshold and keeps the first of tied candidates
4. The "Game Time" screenshot is identified among ten recent scores
"""

from dataclasses import replace

import pytest

from score_matcher import (
    ARTIST_WEIGHT,
    DIFFICULTY_WEIGHT,
    JUDGEMENT_WEIGHT,
    MSD_WEIGHT,
    PACK_WEIGHT,
    RATE_WEIGHT,
    SONG_WEIGHT,
    SSR_WEIGHT,
    USERNAME_WEIGHT,
    WIFESCORE_WEIGHT,
    identify_best_match,
    match_score,
    rank_candidates,
)
from score_models import Difficulty, Judgements, Rate, ScoreRecord, ScreenReading

FULL_READING = ScreenReading(
    rate=Rate.from_float(1.1),
    pack="Pack",
    username="player",
    song="Song",
    artist="Artist",
    wifescore=93.12,
    msd=25.3,
    ssr=24.8,
    judgements=Judgements(1000, 200, 30, 4, 5, 6),
    difficulty=Difficulty.CHALLENGE,
)


def test_full_agreement_scores_every_weight():
    expected = (
        RATE_WEIGHT
        + PACK_WEIGHT
        + USERNAME_WEIGHT
        + SONG_WEIGHT
        + ARTIST_WEIGHT
        + WIFESCORE_WEIGHT
        + MSD_WEIGHT
        + SSR_WEIGHT
        + DIFFICULTY_WEIGHT
        + 6 * JUDGEMENT_WEIGHT
    )
    assert match_score(FULL_READING, FULL_READING) == expected == 50


def test_absent_fields_contribute_nothing():
    assert match_score(ScreenReading(), FULL_READING) == 0
    assert match_score(ScreenReading(song="Song"), ScreenReading()) == 0


def test_disagreeing_fields_cost_nothing():
    reading = replace(FULL_READING, song="Other", artist="Other")
    assert match_score(reading, FULL_READING) == 50 - SONG_WEIGHT - ARTIST_WEIGHT


@pytest.mark.parametrize(
    "left, right",
    [
        (FULL_READING, ScreenReading(song="Song", msd=25.305)),
        (ScreenReading(wifescore=96.5), ScreenReading(wifescore=96.49)),
        (ScreenReading(judgements=Judgements(1, 2, 3, 4, 5, 6)), ScreenReading(judgements=Judgements(1, 2, 3, 0, 0, 0))),
        (ScreenReading(rate=Rate.from_float(1.0)), ScreenReading(rate=Rate.from_float(1.02))),
    ],
)
def test_match_score_is_commutative(left, right):
    assert match_score(left, right) == match_score(right, left)


def test_adding_an_agreeing_field_adds_its_weight():
    base = ScreenReading(song="Song")
    extended = replace(base, pack="Pack")
    target = ScreenReading(song="Song", pack="Pack")
    assert match_score(extended, target) == match_score(base, target) + PACK_WEIGHT


def test_float_fields_tolerate_small_differences():
    assert match_score(ScreenReading(ssr=24.8), ScreenReading(ssr=24.81)) == SSR_WEIGHT
    assert match_score(ScreenReading(ssr=24.8), ScreenReading(ssr=24.82)) == 0


def test_judgements_score_per_matching_count():
    left = ScreenReading(judgements=Judgements(1, 2, 3, 4, 5, 6))
    right = ScreenReading(judgements=Judgements(1, 2, 3, 0, 0, 0))
    assert match_score(left, right) == 3 * JUDGEMENT_WEIGHT


def test_score_records_are_compared_by_their_reading_shape():
    record = ScoreRecord(scorekey="S1", user_id=1, song="Song", pack="Pack")
    assert match_score(ScreenReading(song="Song", pack="Pack"), record) == SONG_WEIGHT + PACK_WEIGHT


def test_threshold_is_strict():
    exactly_eight = ScoreRecord(scorekey="S8", user_id=1, song="Song", difficulty=Difficulty.HARD)
    reading = ScreenReading(song="Song", difficulty=Difficulty.HARD)
    assert match_score(reading, exactly_eight) == 8
    assert identify_best_match([reading], [exactly_eight], threshold=8) is None
    assert identify_best_match([reading], [exactly_eight], threshold=7) is exactly_eight


def test_ties_keep_the_earliest_candidate():
    first = ScoreRecord(scorekey="S1", user_id=1, song="Song", pack="Pack")
    second = ScoreRecord(scorekey="S2", user_id=1, song="Song", pack="Pack")
    reading = ScreenReading(song="Song", pack="Pack")
    assert identify_best_match([reading], [first, second]) is first
    assert identify_best_match([reading], [second, first]) is second


def test_best_reading_per_candidate_is_used():
    record = ScoreRecord(scorekey="S1", user_id=1, song="Song", pack="Pack", artist="Artist")
    readings = [ScreenReading(song="Song"), ScreenReading(song="Song", pack="Pack", artist="Artist")]
    ranked = rank_candidates(readings, [record])
    assert ranked[0].score == SONG_WEIGHT + PACK_WEIGHT + ARTIST_WEIGHT
    assert ranked[0].reading_index == 1
    assert identify_best_match(readings, [record]) is record


def test_username_comparison_can_be_disabled():
    record = ScoreRecord(scorekey="S1", user_id=1, username="player", pack="Pack", artist="Artist")
    reading = ScreenReading(username="player", pack="Pack", artist="Artist")
    assert identify_best_match([reading], [record]) is record
    assert identify_best_match([reading], [record], compare_username=False) is None


def test_no_readings_or_no_candidates_yield_none():
    record = ScoreRecord(scorekey="S1", user_id=1, song="Song", pack="Pack")
    assert identify_best_match([], [record]) is None
    assert identify_best_match([FULL_READING], []) is None


def test_game_time_is_identified_among_recent_scores():
    target = ScoreRecord(scorekey="Sgame", user_id=1, song="Game Time", wifescore=96.49)
    others = [ScoreRecord(scorekey=f"S{index}", user_id=1, song=f"Other {index}", wifescore=80.0 + index) for index in range(9)]
    candidates = others[:5] + [target] + others[5:]

    reading = ScreenReading(song="Game Time", wifescore=96.50)

    assert match_score(reading, target) == SONG_WEIGHT + WIFESCORE_WEIGHT
    assert identify_best_match([reading], candidates) is target
