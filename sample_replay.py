# sample_replay.py
from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from judge import REFERENCE_JUDGE
from replay_analyzer import Scorer, combo_stats, rescore
from replay_models import Hit, NoteKind, Replay, ReplayNote
from score_models import Difficulty, Judgements, Rate, ScoreRecord
from wife_model import WIFE3

# Deterministic lane pattern that covers all lanes and includes a short jack on lane 0.
LANE_PATTERN = [
    0, 1, 2, 3,
    0, 0, 0, 0,
    3, 2, 1, 0,
    1, 3, 0, 2,
]

# Deviations in milliseconds, cycled over the notes. Slightly late on average.
DEVIATION_PATTERN_MS = [3.0, -6.0, 12.0, 1.0, -2.0, 8.0, -15.0, 4.0, 0.0, 20.0, -9.0, 5.0]


def build_sample_replay(
    *,
    num_notes: int = 400,
    interval_seconds: float = 0.1,
    lead_in_seconds: float = 2.0,
    miss_every: int = 0,
    deviation_pattern_ms: Sequence[float] = DEVIATION_PATTERN_MS,
    with_mines: bool = False,
    keymode: int = 4,
) -> Replay:
    """Build a replay with fixed spacing and a cycled deviation pattern.

    miss_every > 0 turns every miss_every-th note into a miss. with_mines adds an unhit
    mine on the opposite lane every 16 notes.
    """
    notes: List[ReplayNote] = []
    current_time_seconds = float(lead_in_seconds)

    for note_index in range(int(num_notes)):
        lane = LANE_PATTERN[note_index % len(LANE_PATTERN)] % int(keymode)
        if miss_every > 0 and (note_index + 1) % int(miss_every) == 0:
            hit = Hit.miss()
        elif deviation_pattern_ms:
            hit = Hit.at(deviation_pattern_ms[note_index % len(deviation_pattern_ms)] / 1000.0)
        else:
            hit = Hit.at(0.0)
        notes.append(ReplayNote(time_seconds=current_time_seconds, lane=lane, hit=hit))

        if with_mines and note_index % 16 == 15:
            mine_lane = (lane + 2) % int(keymode)
            notes.append(
                ReplayNote(
                    time_seconds=current_time_seconds + interval_seconds * 0.5,
                    lane=mine_lane,
                    hit=Hit.miss(),
                    kind=NoteKind.MINE,
                )
            )

        current_time_seconds += float(interval_seconds)

    notes.sort(key=lambda note: (note.time_seconds, note.lane))
    return Replay(notes=tuple(notes), keymode=int(keymode))


def judgements_for(replay: Replay) -> Judgements:
    counts: Dict[str, int] = {"marvelous": 0, "perfect": 0, "great": 0, "good": 0, "bad": 0, "miss": 0}
    for note in replay.tap_notes():
        counts[REFERENCE_JUDGE.classify(note.hit.deviation_seconds)] += 1
    return Judgements(**counts)


def build_sample_record(
    *,
    scorekey: str,
    user_id: int,
    username: Optional[str],
    song: str,
    artist: Optional[str] = None,
    pack: Optional[str] = None,
    rate: float = 1.0,
    msd: Optional[float] = None,
    ssr: Optional[float] = None,
    difficulty: Optional[Difficulty] = Difficulty.CHALLENGE,
    replay: Optional[Replay] = None,
) -> ScoreRecord:
    """Build a consistent record: wifescore, judgements and max combo are derived from the replay."""
    if replay is None:
        replay = build_sample_replay()

    wifescore = rescore(replay, Scorer.NAIVE, WIFE3, REFERENCE_JUDGE)

    return ScoreRecord(
        scorekey=scorekey,
        user_id=int(user_id),
        username=username,
        song=song,
        artist=artist,
        pack=pack,
        rate=Rate.from_float(rate),
        wifescore=round(wifescore.as_percent(), 2) if wifescore is not None else None,
        msd=msd,
        ssr=ssr,
        judgements=judgements_for(replay),
        difficulty=difficulty,
        max_combo=combo_stats(replay).longest_combo,
        replay=replay,
    )


def build_sample_records(*, user_id: int = 1, username: str = "sample_player") -> List[ScoreRecord]:
    """Three scores for one player, newest first."""
    return [
        build_sample_record(
            scorekey="S0000000000000000000000000000000000000003",
            user_id=user_id,
            username=username,
            song="Game Time",
            artist="Sample Artist",
            pack="Sample Pack",
            rate=1.0,
            msd=24.5,
            ssr=23.9,
            replay=build_sample_replay(num_notes=400, interval_seconds=0.08, miss_every=97),
        ),
        build_sample_record(
            scorekey="S0000000000000000000000000000000000000002",
            user_id=user_id,
            username=username,
            song="Slow Stream",
            artist="Sample Artist",
            pack="Sample Pack",
            rate=1.15,
            msd=18.2,
            ssr=18.0,
            difficulty=Difficulty.HARD,
            replay=build_sample_replay(num_notes=240, interval_seconds=0.15, with_mines=True),
        ),
        build_sample_record(
            scorekey="S0000000000000000000000000000000000000001",
            user_id=user_id,
            username=username,
            song="Warmup",
            pack="Sample Pack",
            rate=0.9,
            msd=12.0,
            ssr=11.8,
            difficulty=Difficulty.MEDIUM,
            replay=build_sample_replay(num_notes=120, interval_seconds=0.25, deviation_pattern_ms=[]),
        ),
    ]
