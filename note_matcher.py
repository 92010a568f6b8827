# -*- coding: utf-8 -*-
########################
# note_matcher.py
########################
# Purpose:
# - Re-match recorded hit times to chart notes per lane for the matching scorer.
# - Each hit consumes the nearest unmatched note in its lane within the match window.
#
# Design notes:
# - Pure logic. Works on copies; the source replay is never mutated.
# - Schedule order is deterministic: sort by (time_seconds, lane).
# - Hits are processed in time order; an exact tie goes to the earlier note.
# - Notes left unmatched after all hits are misses. Hits that find no note are dropped.
#
########################
# Interfaces:
# Public dataclasses:
# - ScheduledNote(note_index: int, time_seconds: float, lane: int, is_matched: bool = False,
#                 matched_deviation_seconds: Optional[float] = None)
#
# Public classes:
# - class LaneNoteMatcher
#   - __init__(notes: Sequence[tuple[int, ReplayNote]])
#   - reset() -> None
#   - find_nearest_unmatched_note(*, lane: int, target_time_seconds: float, max_window_seconds: float)
#       -> Optional[ScheduledNote]
#   - match_hit(*, lane: int, hit_seconds: float, max_window_seconds: float) -> Optional[ScheduledNote]
#   - deviations_by_note_index() -> dict[int, Optional[float]]
#
# Public functions:
# - rematch_replay(replay: Replay, max_window_seconds: float) -> Replay
#
########################

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence, Tuple

from replay_models import Hit, Replay, ReplayNote


@dataclass
class ScheduledNote:
    note_index: int
    time_seconds: float
    lane: int
    is_matched: bool = False
    matched_deviation_seconds: Optional[float] = None


class LaneNoteMatcher:
    def __init__(self, notes: Sequence[Tuple[int, ReplayNote]]) -> None:
        self._scheduled_notes = [
            ScheduledNote(note_index=int(note_index), time_seconds=float(note.time_seconds), lane=int(note.lane))
            for note_index, note in notes
        ]
        self._scheduled_notes.sort(key=lambda item: (item.time_seconds, item.lane))
        self._lanes: Dict[int, List[ScheduledNote]] = {}
        for scheduled_note in self._scheduled_notes:
            self._lanes.setdefault(scheduled_note.lane, []).append(scheduled_note)
        self._lane_indices: Dict[int, int] = {lane: 0 for lane in self._lanes.keys()}

    def reset(self) -> None:
        for scheduled_note in self._scheduled_notes:
            scheduled_note.is_matched = False
            scheduled_note.matched_deviation_seconds = None
        for lane in self._lane_indices.keys():
            self._lane_indices[lane] = 0

    def _lane_list(self, lane: int) -> List[ScheduledNote]:
        return self._lanes.get(int(lane), [])

    def _advance_lane_index(self, lane: int) -> None:
        lane_list = self._lane_list(lane)
        index = int(self._lane_indices.get(int(lane), 0))
        while index < len(lane_list) and lane_list[index].is_matched:
            index += 1
        self._lane_indices[int(lane)] = index

    def find_nearest_unmatched_note(
        self,
        *,
        lane: int,
        target_time_seconds: float,
        max_window_seconds: float,
    ) -> Optional[ScheduledNote]:
        lane_list = self._lane_list(lane)
        if not lane_list:
            return None

        target = float(target_time_seconds)
        start = target - float(max_window_seconds)
        end = target + float(max_window_seconds)

        best_note: Optional[ScheduledNote] = None
        best_abs_delta = float("inf")

        for index in range(int(self._lane_indices.get(int(lane), 0)), len(lane_list)):
            candidate = lane_list[index]
            if candidate.is_matched:
                continue
            if candidate.time_seconds < start:
                continue
            if candidate.time_seconds > end:
                break

            abs_delta = abs(target - candidate.time_seconds)
            # Strict comparison keeps the earlier note on an exact tie.
            if abs_delta < best_abs_delta:
                best_note = candidate
                best_abs_delta = abs_delta

        return best_note

    def match_hit(self, *, lane: int, hit_seconds: float, max_window_seconds: float) -> Optional[ScheduledNote]:
        scheduled_note = self.find_nearest_unmatched_note(
            lane=lane,
            target_time_seconds=hit_seconds,
            max_window_seconds=max_window_seconds,
        )
        if scheduled_note is None:
            return None
        scheduled_note.is_matched = True
        scheduled_note.matched_deviation_seconds = float(hit_seconds) - scheduled_note.time_seconds
        self._advance_lane_index(lane)
        return scheduled_note

    def deviations_by_note_index(self) -> Dict[int, Optional[float]]:
        return {
            scheduled_note.note_index: scheduled_note.matched_deviation_seconds
            for scheduled_note in self._scheduled_notes
        }


def rematch_replay(replay: Replay, max_window_seconds: float) -> Replay:
    """Return a copy of replay whose tap-family outcomes come from nearest-note matching."""
    tap_notes = [(note_index, note) for note_index, note in enumerate(replay.notes) if note.is_tap_family]
    matcher = LaneNoteMatcher(tap_notes)

    hits = [(note.hit_seconds, int(note.lane)) for _note_index, note in tap_notes if note.hit_seconds is not None]
    hits.sort()
    for hit_seconds, lane in hits:
        matcher.match_hit(lane=lane, hit_seconds=hit_seconds, max_window_seconds=max_window_seconds)

    deviations = matcher.deviations_by_note_index()
    rematched: List[ReplayNote] = []
    for note_index, note in enumerate(replay.notes):
        if note_index not in deviations:
            rematched.append(note)
            continue
        deviation = deviations[note_index]
        rematched.append(replace(note, hit=Hit.miss() if deviation is None else Hit.at(deviation)))
    return Replay(notes=tuple(rematched), keymode=replay.keymode)


def _run_unit_tests() -> None:
    # Lane 0: two notes 100ms apart; an early rush hits both near the first note.
    replay = Replay(
        notes=(
            ReplayNote(time_seconds=1.0, lane=0, hit=Hit.at(0.0)),
            ReplayNote(time_seconds=1.1, lane=0, hit=Hit.at(-0.09)),
            ReplayNote(time_seconds=2.0, lane=1, hit=Hit.miss()),
        )
    )
    rematched = rematch_replay(replay, max_window_seconds=0.18)
    assert rematched.notes[0].hit.deviation_seconds == 0.0
    assert abs(rematched.notes[1].hit.deviation_seconds - (-0.09)) < 1e-9
    assert rematched.notes[2].hit.is_miss

    # A stray hit outside every window matches nothing and the note becomes a miss.
    far = Replay(notes=(ReplayNote(time_seconds=1.0, lane=0, hit=Hit.at(0.5)),))
    assert rematch_replay(far, max_window_seconds=0.18).notes[0].hit.is_miss


if __name__ == "__main__":
    _run_unit_tests()
    print("note_matcher.py: ok")
