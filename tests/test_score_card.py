"""
Tests for score_card.py

These tests ensure that:
1. Comparison lines use 2 decimals, or 4 above 99.7%
2. The "inaccurate" note appears only when the recomputed Wife3 disagrees with the record
3. Alternative-judge suffixes and the scorekey collision warning are rendered
4. The score body table shows the recorded score, skillsets, judgements and holds
"""

from dataclasses import replace

import pytest
from fakes import make_replay

from judge import J7
from replay_analyzer import analyze_replay
from score_card import (
    SCOREKEY_COLLISION_WARNING,
    build_score_card,
    combos_text,
    score_body_text,
    score_comparisons_text,
    score_view_url,
    tap_speeds_text,
)
from score_models import Judgements, ScoreRecord, SkillsetSsrs


def record_for(replay, wifescore):
    return ScoreRecord(scorekey="Skey", user_id=1, username="player", song="Song", wifescore=wifescore, replay=replay)


def test_comparisons_use_two_decimals(sample_records):
    record = sample_records[0]
    text = score_comparisons_text(record, analyze_replay(record.replay))
    wife3_line = text.splitlines()[1]
    assert wife3_line.startswith("**Wife3**: ")
    assert wife3_line == f"**Wife3**: {record.wifescore:.2f}%"
    assert "inaccurate" not in text
    assert "corrected" in text


def test_near_perfect_scores_use_four_decimals():
    replay = make_replay([0.0] * 40)
    text = score_comparisons_text(record_for(replay, 100.0), analyze_replay(replay))
    assert "**Wife3**: 100.0000%" in text


def test_inaccurate_note_when_recorded_score_differs(sample_records):
    record = replace(sample_records[0], wifescore=sample_records[0].wifescore - 1.0)
    text = score_comparisons_text(record, analyze_replay(record.replay))
    assert text.splitlines()[0] == "_Note: these calculated scores are slightly inaccurate_"


def test_alternative_judge_suffix(sample_records):
    record = sample_records[0]
    text = score_comparisons_text(record, analyze_replay(record.replay, alternative_judge=J7))
    assert ", " in text.splitlines()[0]
    assert all(" on J7" in line for line in text.splitlines())


def test_tap_speeds_and_combos_text(sample_records):
    analysis = analyze_replay(sample_records[0].replay)
    speeds = tap_speeds_text(analysis)
    assert speeds.startswith("Fastest jack over a course of 20 notes: ")
    assert "Fastest total NPS over a course of 100 notes: " in speeds
    assert combos_text(analysis).splitlines()[0] == f"Longest combo: {analysis.combos.longest_combo}"


def test_card_sections_in_order(sample_records):
    record = sample_records[0]
    card = build_score_card(record, analyze_replay(record.replay))
    assert card.scorekey == record.scorekey
    assert card.title == "Game Time"
    assert [field.title for field in card.fields][:3] == ["Score comparisons", "Tap speeds", "Combos"]
    assert card.warnings == []


def test_card_without_analysis_has_no_fields():
    card = build_score_card(record_for(None, 93.0), None)
    assert card.fields == []


@pytest.mark.parametrize(
    "kwargs, warned",
    [
        ({"expected_username": "PLAYER"}, False),
        ({"expected_username": "someone"}, True),
        ({"expected_user_id": 1}, False),
        ({"expected_user_id": 2}, True),
    ],
)
def test_scorekey_collision_warning(kwargs, warned):
    card = build_score_card(record_for(None, 93.0), None, **kwargs)
    assert (SCOREKEY_COLLISION_WARNING in card.warnings) is warned


# ---------------------------------------------------------------------------
# Score body
# ---------------------------------------------------------------------------


def full_record(replay=None):
    return ScoreRecord(
        scorekey="Sbody",
        user_id=7,
        username="player",
        song="Song",
        wifescore=96.49,
        judgements=Judgements(1000, 200, 30, 4, 5, 6),
        max_combo=812,
        skillsets=SkillsetSsrs(23.9, 22.1, 21.0, 23.9, 20.4, 15.2, 18.7, 19.9),
        modifiers="C900, Overhead",
        hit_mines=2,
        held_holds=12,
        dropped_holds=1,
        missed_holds=0,
        replay=replay,
    )


def test_score_body_table():
    body = score_body_text(full_record())
    lines = body.splitlines()
    assert lines[0] == "```nim"
    assert lines[1] == "        Wife: 96.49%  ⏐      Marvelous: 1000"
    assert lines[2] == "   Max Combo: 812     ⏐        Perfect: 200"
    assert lines[3] == "     Overall: 23.90   ⏐          Great: 30"
    assert lines[7] == "  Handstream: 20.40   ⏐      Hit Mines: 2"
    assert lines[8] == "       Jacks: 15.20   ⏐     Held Holds: 12"
    assert lines[9] == "   Chordjack: 18.70   ⏐  Dropped Holds: 1"
    assert lines[10] == "   Technical: 19.90   ⏐   Missed Holds: 0"
    assert lines[11] == "```"
    assert "C900" not in body
    assert "etternaonline.com" not in body


def test_score_body_link_and_modifiers():
    body = score_body_text(full_record(), user_id=7, show_modifiers=True)
    lines = body.splitlines()
    assert lines[0] == score_view_url("Sbody", 7) == "https://etternaonline.com/score/view/Sbody7"
    assert lines[1:5] == ["```", "C900, Overhead", "```", "```nim"]


def test_score_body_alternative_judge_line(sample_records):
    replay = sample_records[0].replay
    analysis = analyze_replay(replay, alternative_judge=J7)
    lines = score_body_text(full_record(replay), analysis.alternative_comparison).splitlines()
    assert lines[1] == "        Wife: 96.49%  ⏐"
    assert lines[2] == f"     Wife J7: {analysis.alternative_comparison.wife3.as_percent():<5.2f}%  ⏐      Marvelous: 1000"


def test_score_body_with_missing_values():
    record = ScoreRecord(scorekey="Sbare", user_id=1, ssr=18.25)
    lines = score_body_text(record).splitlines()
    assert lines[1] == "        Wife: -       ⏐      Marvelous: -"
    assert lines[2] == "   Max Combo: -       ⏐        Perfect: -"
    assert lines[3] == "     Overall: 18.25   ⏐          Great: -"


def test_card_description_and_footer():
    card = build_score_card(full_record(), None, expected_user_id=7, show_modifiers=True)
    assert card.description == score_body_text(full_record(), user_id=7, show_modifiers=True)
    assert card.footer == "Played by player"
    assert card.warnings == []
