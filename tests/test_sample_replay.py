"""
Tests for sample_replay.py and the scorescope entrypoint helpers that use it.
"""

import pytest

from judge import REFERENCE_JUDGE
from replay_models import NoteKind
from sample_replay import build_sample_record, build_sample_replay, judgements_for
from score_store import ScoreStore
from scorescope import write_sample_store


def test_sample_replay_is_deterministic():
    assert build_sample_replay(num_notes=64, miss_every=10) == build_sample_replay(num_notes=64, miss_every=10)


def test_sample_replay_options():
    replay = build_sample_replay(num_notes=32, miss_every=8, with_mines=True)
    taps = replay.tap_notes()
    assert len(taps) == 32
    assert sum(1 for note in taps if note.hit.is_miss) == 4
    assert sum(1 for note in replay.notes if note.kind is NoteKind.MINE) == 2
    assert [note.time_seconds for note in replay.notes] == sorted(note.time_seconds for note in replay.notes)


def test_sample_record_is_consistent_with_its_replay():
    replay = build_sample_replay(num_notes=48, miss_every=12)
    record = build_sample_record(scorekey="S1", user_id=3, username="player", song="Song", replay=replay)
    judgements = judgements_for(replay)
    assert record.judgements == judgements
    assert judgements.miss == 4
    assert sum(REFERENCE_JUDGE.classify(note.hit.deviation_seconds) == "marvelous" for note in replay.notes) == (
        judgements.marvelous
    )
    assert 0.0 < record.wifescore < 100.0


def test_write_sample_store(tmp_path):
    store_path = write_sample_store(tmp_path / "scores.json")
    store = ScoreStore.load(store_path)
    assert store.user_id_for("sample_player") == 1
    assert [record.song for record in store.recent_scores(1, 10)] == ["Game Time", "Slow Stream", "Warmup"]


@pytest.mark.parametrize("keymode", [4, 6])
def test_lanes_stay_within_keymode(keymode):
    replay = build_sample_replay(num_notes=40, keymode=keymode)
    assert {note.lane for note in replay.notes} <= set(range(keymode))


def test_sample_record_max_combo_stops_at_misses():
    replay = build_sample_replay(num_notes=48, miss_every=12)
    record = build_sample_record(scorekey="S1", user_id=3, username="player", song="Song", replay=replay)
    assert record.max_combo == 11
