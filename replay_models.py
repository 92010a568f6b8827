# -*- coding: utf-8 -*-
########################
# replay_models.py
########################
# Purpose:
# - Note-by-note replay representation used by the replay analyzer.
#
# Design notes:
# - Replays are immutable once fetched. Derived replays are new objects.
# - A note without a kind is treated as a tap.
# - Keymode is explicit so 4-key assumptions can fail closed.
#
########################
# Interfaces:
# Public enums:
# - class NoteKind(enum.Enum): TAP | HOLD_HEAD | HOLD_TAIL | MINE | LIFT | KEYSOUND | FAKE
#
# Public dataclasses:
# - Hit(deviation_seconds: Optional[float])
#   - miss() -> Hit, at(deviation_seconds: float) -> Hit
#   - is_miss, is_within_window(window_seconds: float) -> bool
# - ReplayNote(time_seconds: float, lane: int, hit: Hit, kind: Optional[NoteKind] = None)
#   - effective_kind, is_tap_family, hit_seconds
# - Replay(notes: tuple[ReplayNote, ...], keymode: int = 4)
#   - tap_notes() -> list[ReplayNote]
#   - sorted_hit_seconds() -> list[float]
#   - sorted_hit_seconds_by_lane() -> dict[int, list[float]]
#   - with_shifted_deviations(shift_seconds: float) -> Replay
#
########################

from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple


class NoteKind(enum.Enum):
    TAP = "tap"
    HOLD_HEAD = "hold_head"
    HOLD_TAIL = "hold_tail"
    MINE = "mine"
    LIFT = "lift"
    KEYSOUND = "keysound"
    FAKE = "fake"


TAP_FAMILY_KINDS = frozenset({NoteKind.TAP, NoteKind.HOLD_HEAD, NoteKind.LIFT})


@dataclass(frozen=True)
class Hit:
    # Negative is early. None means the note was missed.
    deviation_seconds: Optional[float] = None

    @classmethod
    def miss(cls) -> "Hit":
        return cls(deviation_seconds=None)

    @classmethod
    def at(cls, deviation_seconds: float) -> "Hit":
        return cls(deviation_seconds=float(deviation_seconds))

    @property
    def is_miss(self) -> bool:
        return self.deviation_seconds is None

    def is_within_window(self, window_seconds: float) -> bool:
        if self.deviation_seconds is None:
            return False
        return abs(float(self.deviation_seconds)) <= float(window_seconds)


@dataclass(frozen=True)
class ReplayNote:
    time_seconds: float
    lane: int
    hit: Hit
    kind: Optional[NoteKind] = None

    @property
    def effective_kind(self) -> NoteKind:
        return self.kind if self.kind is not None else NoteKind.TAP

    @property
    def is_tap_family(self) -> bool:
        return self.effective_kind in TAP_FAMILY_KINDS

    @property
    def hit_seconds(self) -> Optional[float]:
        if self.hit.deviation_seconds is None:
            return None
        return float(self.time_seconds) + float(self.hit.deviation_seconds)


@dataclass(frozen=True)
class Replay:
    notes: Tuple[ReplayNote, ...]
    keymode: int = 4

    def __post_init__(self) -> None:
        # Accept any sequence but store a tuple.
        if not isinstance(self.notes, tuple):
            object.__setattr__(self, "notes", tuple(self.notes))

    def tap_notes(self) -> List[ReplayNote]:
        return [note for note in self.notes if note.is_tap_family]

    def sorted_hit_seconds(self) -> List[float]:
        hit_seconds = [note.hit_seconds for note in self.tap_notes() if note.hit_seconds is not None]
        return sorted(hit_seconds)

    def sorted_hit_seconds_by_lane(self) -> Dict[int, List[float]]:
        lanes: Dict[int, List[float]] = {}
        for note in self.tap_notes():
            hit_seconds = note.hit_seconds
            if hit_seconds is None:
                continue
            lanes.setdefault(int(note.lane), []).append(hit_seconds)
        for lane_seconds in lanes.values():
            lane_seconds.sort()
        return lanes

    def with_shifted_deviations(self, shift_seconds: float) -> "Replay":
        shifted: List[ReplayNote] = []
        for note in self.notes:
            if note.hit.deviation_seconds is None:
                shifted.append(note)
            else:
                shifted.append(replace(note, hit=Hit.at(note.hit.deviation_seconds + float(shift_seconds))))
        return Replay(notes=tuple(shifted), keymode=self.keymode)
