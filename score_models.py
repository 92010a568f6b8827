# -*- coding: utf-8 -*-
########################
# score_models.py
########################
# Purpose:
# - Data models for recognized result screens and the score records they are matched against.
#
# Design notes:
# - Every ScreenReading field is optional: OCR may fail per field.
# - ScoreRecord converts to the ScreenReading shape so both sides compare field by field.
# - No I/O. Plain frozen dataclasses.
#
########################
# Interfaces:
# Public enums:
# - class Difficulty(enum.Enum): BEGINNER | EASY | MEDIUM | HARD | CHALLENGE | EDIT
#   - from_short_string(text: str) -> Optional[Difficulty]
#
# Public dataclasses:
# - Rate(x20: int)
#   - from_float(value: float) -> Optional[Rate]
#   - as_float() -> float
# - Judgements(marvelous: int, perfect: int, great: int, good: int, bad: int, miss: int)
# - SkillsetSsrs(overall, stream, stamina, jumpstream, handstream, jackspeed, chordjack, technical)
# - ScreenReading(rate, pack, username, song, artist, wifescore, msd, ssr, judgements, difficulty)
# - ScoreRecord(scorekey, user_id, username, ..., max_combo, skillsets, modifiers,
#               hit_mines, held_holds, dropped_holds, missed_holds, replay)
#   - as_screen_reading(include_username: bool = True) -> ScreenReading
#   - lost_holds() -> int
#
########################

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Optional

from replay_models import Replay


class Difficulty(enum.Enum):
    BEGINNER = "Beginner"
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"
    CHALLENGE = "Challenge"
    EDIT = "Edit"

    @classmethod
    def from_short_string(cls, text: str) -> Optional["Difficulty"]:
        normalized = (text or "").strip().upper()
        if not normalized:
            return None
        short_names = {
            "BG": cls.BEGINNER,
            "EZ": cls.EASY,
            "NM": cls.MEDIUM,
            "HD": cls.HARD,
            "IN": cls.CHALLENGE,
            "ED": cls.EDIT,
        }
        if normalized in short_names:
            return short_names[normalized]
        for difficulty in cls:
            if difficulty.value.upper() == normalized:
                return difficulty
        return None


@dataclass(frozen=True)
class Rate:
    # 20x the music rate, e.g. 1.15x is stored as 23
    x20: int

    @classmethod
    def from_float(cls, value: float) -> Optional["Rate"]:
        """Round to the nearest valid rate. Returns None for negative or non-finite input."""
        if not math.isfinite(value) or value < 0.0:
            return None
        return cls(x20=int(round(float(value) * 20.0)))

    def as_float(self) -> float:
        return self.x20 / 20.0


@dataclass(frozen=True)
class Judgements:
    marvelous: int
    perfect: int
    great: int
    good: int
    bad: int
    miss: int

    def __post_init__(self) -> None:
        for field_name in ("marvelous", "perfect", "great", "good", "bad", "miss"):
            if int(getattr(self, field_name)) < 0:
                raise ValueError(f"Judgement count {field_name} must not be negative")


SKILLSET_NAMES = ("overall", "stream", "stamina", "jumpstream", "handstream", "jackspeed", "chordjack", "technical")


@dataclass(frozen=True)
class SkillsetSsrs:
    overall: float
    stream: float
    stamina: float
    jumpstream: float
    handstream: float
    jackspeed: float
    chordjack: float
    technical: float


@dataclass(frozen=True)
class ScreenReading:
    rate: Optional[Rate] = None
    pack: Optional[str] = None
    username: Optional[str] = None
    song: Optional[str] = None
    artist: Optional[str] = None
    # 0.0 to 100.0
    wifescore: Optional[float] = None
    msd: Optional[float] = None
    ssr: Optional[float] = None
    judgements: Optional[Judgements] = None
    difficulty: Optional[Difficulty] = None


@dataclass(frozen=True)
class ScoreRecord:
    scorekey: str
    user_id: int
    username: Optional[str] = None
    song: Optional[str] = None
    artist: Optional[str] = None
    pack: Optional[str] = None
    rate: Optional[Rate] = None
    wifescore: Optional[float] = None
    msd: Optional[float] = None
    ssr: Optional[float] = None
    judgements: Optional[Judgements] = None
    difficulty: Optional[Difficulty] = None
    max_combo: Optional[int] = None
    skillsets: Optional[SkillsetSsrs] = None
    modifiers: Optional[str] = None
    hit_mines: int = 0
    held_holds: int = 0
    # let go before the tail
    dropped_holds: int = 0
    # never pressed
    missed_holds: int = 0
    replay: Optional[Replay] = None

    def lost_holds(self) -> int:
        return int(self.dropped_holds) + int(self.missed_holds)

    def as_screen_reading(self, include_username: bool = True) -> ScreenReading:
        return ScreenReading(
            rate=self.rate,
            pack=self.pack,
            username=self.username if include_username else None,
            song=self.song,
            artist=self.artist,
            wifescore=self.wifescore,
            msd=self.msd,
            ssr=self.ssr,
            judgements=self.judgements,
            difficulty=self.difficulty,
        )
