# -*- coding: utf-8 -*-
########################
# replay_analyzer.py
########################
# Purpose:
# - Derived statistics over a note-by-note replay:
#   - rescoring under any judge with Wife2 or Wife3, naive or matching scorer
#   - mean offset and the zero-mean (bias corrected) replay
#   - sliding-window fastest note rates (single-finger jacks and overall NPS)
#   - left/right hand balance for 4-key replays
#   - longest combos within the 100%, marvelous, perfect and great windows
#
# Design notes:
# - Pure functions over immutable replays. Safe to call concurrently.
# - Missing or degenerate data returns None ("omit this section"), never raises.
# - Hit timestamps are not assumed sorted; they are sorted before window searches.
# - Hand balance is only defined for keymode 4 (lanes 0,1 left; 2,3 right).
#
########################
# Interfaces:
# Public enums:
# - class Scorer(enum.Enum): NAIVE | MATCHING
#
# Public dataclasses:
# - FastestNoteSubset(start_index: int, end_index: int, speed: float)
# - HandBalance(left: float, right: float)
# - ComboStats(longest_combo, longest_perfect_combo, longest_marvelous_combo, longest_100_combo)
# - ScoringSystemComparison(judge, wife2, wife3, wife3_zero_mean, wife3_matching)
# - ReplayAnalysis(...)
#
# Public functions:
# - note_wife_points(note, judge, formula) -> tuple[float, int]
# - rescore(replay, scorer, formula, judge, *, hit_mines=0, dropped_holds=0) -> Optional[Wifescore]
# - mean_offset(replay) -> Optional[float]
# - zero_mean_replay(replay, offset) -> Replay
# - fastest_note_subset(sorted_seconds, window_size, min_num_notes) -> FastestNoteSubset
# - fastest_jack_speed(replay) -> Optional[float]
# - fastest_nps(replay) -> Optional[float]
# - hand_balance(replay) -> Optional[HandBalance]
# - hand_balance_fun_fact(balance) -> Optional[str]
# - combo_stats(replay) -> ComboStats
# - analyze_replay(replay, *, alternative_judge=None, hit_mines=0, dropped_holds=0) -> Optional[ReplayAnalysis]
#
########################

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

import note_matcher
from judge import JUDGES, REFERENCE_JUDGE, Judge
from replay_models import Hit, NoteKind, Replay, ReplayNote
from wife_model import WIFE2, WIFE3, WifeFormula, Wifescore

logger = logging.getLogger(__name__)

JACK_SPEED_WINDOW = 20
NPS_WINDOW = 100

HUNDRED_PERCENT_WINDOW_SECONDS = 0.005

HAND_BALANCE_KEYMODE = 4
LEFT_HAND_LANES = frozenset({0, 1})
RIGHT_HAND_LANES = frozenset({2, 3})


class Scorer(enum.Enum):
    NAIVE = "naive"
    MATCHING = "matching"


@dataclass(frozen=True)
class FastestNoteSubset:
    start_index: int
    end_index: int
    speed: float


@dataclass(frozen=True)
class HandBalance:
    left: float
    right: float


@dataclass(frozen=True)
class ComboStats:
    longest_combo: int
    longest_perfect_combo: int
    longest_marvelous_combo: int
    longest_100_combo: int


@dataclass(frozen=True)
class ScoringSystemComparison:
    judge: Judge
    wife2: Optional[Wifescore]
    wife3: Optional[Wifescore]
    wife3_zero_mean: Optional[Wifescore]
    wife3_matching: Optional[Wifescore]


@dataclass(frozen=True)
class ReplayAnalysis:
    reference_comparison: ScoringSystemComparison
    alternative_comparison: Optional[ScoringSystemComparison]
    fastest_jack_speed: Optional[float]
    fastest_nps: Optional[float]
    combos: ComboStats
    mean_offset: Optional[float]
    hand_balance: Optional[HandBalance]
    fun_facts: List[str] = field(default_factory=list)


# Rescoring


def note_wife_points(note: ReplayNote, judge: Judge, formula: WifeFormula) -> Tuple[float, int]:
    """Return the wife points for one note and how many notes it counts as (0 or 1)."""
    kind = note.effective_kind
    deviation = note.hit.deviation_seconds

    if kind in (NoteKind.TAP, NoteKind.HOLD_HEAD, NoteKind.LIFT):
        return formula.points(deviation, judge), 1
    if kind == NoteKind.HOLD_TAIL:
        if judge.is_considered_miss(deviation):
            return formula.HOLD_DROP_WEIGHT, 0
        return 0.0, 0
    if kind == NoteKind.MINE:
        if deviation is not None:
            return formula.MINE_HIT_WEIGHT, 0
        return 0.0, 0
    # Keysounds and fakes are not scored.
    return 0.0, 0


def rescore(
    replay: Optional[Replay],
    scorer: Scorer,
    formula: WifeFormula,
    judge: Judge,
    *,
    hit_mines: int = 0,
    dropped_holds: int = 0,
) -> Optional[Wifescore]:
    """Recompute the wifescore of a replay.

    ``hit_mines`` and ``dropped_holds`` are score-level counts for mines and holds the replay
    does not carry as notes; each adds its formula weight once.
    """
    if replay is None or not replay.notes:
        return None

    if scorer == Scorer.MATCHING:
        replay = note_matcher.rematch_replay(replay, max_window_seconds=judge.miss_window)

    wife_points_sum = 0.0
    num_notes = 0
    for note in replay.notes:
        note_points, note_count = note_wife_points(note, judge, formula)
        wife_points_sum += note_points
        num_notes += note_count

    if num_notes == 0:
        return None

    wife_points_sum += formula.MINE_HIT_WEIGHT * int(hit_mines)
    wife_points_sum += formula.HOLD_DROP_WEIGHT * int(dropped_holds)
    return Wifescore(proportion=wife_points_sum / num_notes)


# Offsets


def mean_offset(replay: Optional[Replay]) -> Optional[float]:
    if replay is None:
        return None
    deviations = [
        float(note.hit.deviation_seconds)
        for note in replay.tap_notes()
        if note.hit.deviation_seconds is not None
    ]
    if not deviations:
        return None
    return sum(deviations) / len(deviations)


def zero_mean_replay(replay: Replay, offset: float) -> Replay:
    return replay.with_shifted_deviations(-float(offset))


# Speeds


def fastest_note_subset(sorted_seconds: Sequence[float], window_size: int, min_num_notes: int) -> FastestNoteSubset:
    """Find the window of exactly window_size consecutive timestamps with the highest note rate.

    Speed is (window_size - 1) / span in notes per second. Returns speed 0 when fewer than
    max(window_size, min_num_notes) timestamps exist or every window spans zero seconds.
    """
    fastest = FastestNoteSubset(start_index=0, end_index=0, speed=0.0)

    window_size = int(window_size)
    if window_size < 2:
        return fastest
    if len(sorted_seconds) < max(window_size, int(min_num_notes)):
        return fastest

    for start_index in range(0, len(sorted_seconds) - window_size + 1):
        end_index = start_index + window_size - 1
        span_seconds = float(sorted_seconds[end_index]) - float(sorted_seconds[start_index])
        if span_seconds <= 0.0:
            continue
        speed = (window_size - 1) / span_seconds
        if speed > fastest.speed:
            fastest = FastestNoteSubset(start_index=start_index, end_index=end_index, speed=speed)

    return fastest


def fastest_jack_speed(replay: Optional[Replay]) -> Optional[float]:
    """Fastest single-finger rate over 20 notes, maximum over lanes."""
    if replay is None or not replay.notes:
        return None
    lanes = replay.sorted_hit_seconds_by_lane()
    if not lanes:
        return None
    return max(
        fastest_note_subset(lane_seconds, JACK_SPEED_WINDOW, JACK_SPEED_WINDOW).speed
        for lane_seconds in lanes.values()
    )


def fastest_nps(replay: Optional[Replay]) -> Optional[float]:
    """Fastest overall rate over 100 notes."""
    if replay is None or not replay.notes:
        return None
    hit_seconds = replay.sorted_hit_seconds()
    if not hit_seconds:
        return None
    return fastest_note_subset(hit_seconds, NPS_WINDOW, NPS_WINDOW).speed


# Hands


def hand_balance(replay: Optional[Replay]) -> Optional[HandBalance]:
    if replay is None or int(replay.keymode) != HAND_BALANCE_KEYMODE:
        return None

    left_points, left_notes = 0.0, 0
    right_points, right_notes = 0.0, 0
    for note in replay.notes:
        note_points, note_count = note_wife_points(note, REFERENCE_JUDGE, WIFE3)
        if note.lane in LEFT_HAND_LANES:
            left_points += note_points
            left_notes += note_count
        elif note.lane in RIGHT_HAND_LANES:
            right_points += note_points
            right_notes += note_count

    if left_notes == 0 or right_notes == 0:
        return None
    return HandBalance(left=left_points / left_notes, right=right_points / right_notes)


def hand_balance_fun_fact(balance: Optional[HandBalance]) -> Optional[str]:
    """Describe the hands when one lost at least twice the proportion of points of the other."""
    if balance is None:
        return None

    if balance.left > balance.right:
        better_hand, better_name, lower_hand, lower_name = balance.left, "left", balance.right, "right"
    else:
        better_hand, better_name, lower_hand, lower_name = balance.right, "right", balance.left, "left"

    better_miss_proportion = 1.0 - better_hand
    lower_miss_proportion = 1.0 - lower_hand
    if lower_miss_proportion <= 0.0:
        return None
    if better_miss_proportion > 0.0 and lower_miss_proportion / better_miss_proportion < 2.0:
        return None

    return (
        f"Your {better_name} hand played {(better_hand - lower_hand) * 100.0:.02f}% better than your "
        f"{lower_name} hand ({better_hand * 100.0:.02f}% vs {lower_hand * 100.0:.02f}%). "
        f"Are you {better_name}-handed? ;)"
    )


# Combos


def _longest_streak(hits: Sequence[Hit], predicate: Callable[[Hit], bool]) -> int:
    longest = 0
    current = 0
    for hit in hits:
        if predicate(hit):
            current += 1
            if current > longest:
                longest = current
        else:
            current = 0
    return longest


def combo_stats(replay: Optional[Replay]) -> ComboStats:
    hits = [note.hit for note in replay.tap_notes()] if replay is not None else []
    judge = REFERENCE_JUDGE

    def within(window_seconds: float) -> Callable[[Hit], bool]:
        return lambda hit: hit.is_within_window(window_seconds)

    return ComboStats(
        longest_combo=_longest_streak(hits, within(judge.great_window)),
        longest_perfect_combo=_longest_streak(hits, within(judge.perfect_window)),
        longest_marvelous_combo=_longest_streak(hits, within(judge.marvelous_window)),
        longest_100_combo=_longest_streak(hits, within(HUNDRED_PERCENT_WINDOW_SECONDS)),
    )


# Full analysis


def make_scoring_system_comparison(
    replay: Replay,
    zero_mean: Optional[Replay],
    judge: Judge,
    *,
    hit_mines: int = 0,
    dropped_holds: int = 0,
) -> ScoringSystemComparison:
    def score(target: Optional[Replay], scorer: Scorer, formula: WifeFormula) -> Optional[Wifescore]:
        return rescore(target, scorer, formula, judge, hit_mines=hit_mines, dropped_holds=dropped_holds)

    return ScoringSystemComparison(
        judge=judge,
        wife2=score(replay, Scorer.NAIVE, WIFE2),
        wife3=score(replay, Scorer.NAIVE, WIFE3),
        wife3_zero_mean=score(zero_mean, Scorer.NAIVE, WIFE3),
        wife3_matching=score(replay, Scorer.MATCHING, WIFE3),
    )


def analyze_replay(
    replay: Optional[Replay],
    *,
    alternative_judge: Optional[Judge] = None,
    hit_mines: int = 0,
    dropped_holds: int = 0,
) -> Optional[ReplayAnalysis]:
    if replay is None or not replay.notes:
        logger.debug("No replay notes; skipping replay analysis")
        return None

    offset = mean_offset(replay)
    zero_mean = zero_mean_replay(replay, offset) if offset is not None else None

    reference_comparison = make_scoring_system_comparison(
        replay, zero_mean, REFERENCE_JUDGE, hit_mines=hit_mines, dropped_holds=dropped_holds
    )
    alternative_comparison: Optional[ScoringSystemComparison] = None
    if alternative_judge is not None:
        alternative_comparison = make_scoring_system_comparison(
            replay, zero_mean, alternative_judge, hit_mines=hit_mines, dropped_holds=dropped_holds
        )

    balance = hand_balance(replay)
    fun_facts: List[str] = []
    hand_fact = hand_balance_fun_fact(balance)
    if hand_fact is not None:
        fun_facts.append(hand_fact)

    return ReplayAnalysis(
        reference_comparison=reference_comparison,
        alternative_comparison=alternative_comparison,
        fastest_jack_speed=fastest_jack_speed(replay),
        fastest_nps=fastest_nps(replay),
        combos=combo_stats(replay),
        mean_offset=offset,
        hand_balance=balance,
        fun_facts=fun_facts,
    )


def _run_unit_tests() -> None:
    evenly_spaced = [index * 0.1 for index in range(10)]
    assert abs(fastest_note_subset(evenly_spaced, 10, 10).speed - 10.0) < 1e-9
    assert fastest_note_subset([0.0, 0.05], 10, 10).speed == 0.0
    assert fastest_note_subset([1.0] * 10, 10, 10).speed == 0.0

    deviations = [-0.02, 0.02, -0.01, 0.01]
    replay = Replay(
        notes=tuple(
            ReplayNote(time_seconds=float(index), lane=index % 4, hit=Hit.at(deviation))
            for index, deviation in enumerate(deviations)
        )
    )
    offset = mean_offset(replay)
    assert offset is not None and abs(offset) < 1e-12

    exact = Replay(notes=tuple(ReplayNote(time_seconds=float(i), lane=0, hit=Hit.at(0.0)) for i in range(4)))
    shifted = zero_mean_replay(exact, mean_offset(exact) or 0.0)
    for candidate_judge in JUDGES[1:]:
        assert candidate_judge is not None
        for formula in (WIFE2, WIFE3):
            wifescore = rescore(shifted, Scorer.NAIVE, formula, candidate_judge)
            assert wifescore is not None and wifescore.proportion == 1.0

    hits = [Hit.at(0.0)] * 5 + [Hit.miss()] + [Hit.at(0.0)] * 3
    combo_replay = Replay(
        notes=tuple(ReplayNote(time_seconds=float(i), lane=0, hit=hit) for i, hit in enumerate(hits))
    )
    assert combo_stats(combo_replay).longest_combo == 5

    assert rescore(Replay(notes=()), Scorer.NAIVE, WIFE3, REFERENCE_JUDGE) is None
    assert analyze_replay(None) is None
    assert hand_balance(Replay(notes=replay.notes, keymode=7)) is None


if __name__ == "__main__":
    _run_unit_tests()
    print("replay_analyzer.py: ok")
