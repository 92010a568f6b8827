# -*- coding: utf-8 -*-
########################
# score_store.py
########################
# Purpose:
# - JSON-file score history used offline and by the local web server.
# - Implements the ScoreHistorySource interface from score_identifier.py.
#
# Design notes:
# - The whole file is loaded once; lookups are in memory.
# - Scores are listed newest first, so recent_scores is a prefix of the user's list.
# - Malformed entries raise ScoreStoreParseError with the entry index. Nothing is silently skipped.
# - Numbers must be finite. JSON NaN and Infinity are rejected like any other bad value.
#
########################
# Interfaces:
# Public classes:
# - class ScoreStoreError(ScoreSourceError)
# - class ScoreStoreParseError(ScoreStoreError)
# - class ScoreStore
#   - load(path: pathlib.Path, *, missing_ok: bool = False) -> ScoreStore   (classmethod)
#   - from_dict(payload: dict) -> ScoreStore                               (classmethod)
#   - to_dict() -> dict
#   - save(path: pathlib.Path) -> None
#   - user_id_for(username: str) -> Optional[int]
#   - recent_scores(user_id: int, limit: int) -> list[ScoreRecord]
#   - score_details(scorekey: str) -> Optional[ScoreRecord]
#
# File format:
# {
#   "users": [{"user_id": 1, "username": "kangalioo"}],
#   "scores": [
#     {"scorekey": "S...", "user_id": 1, "song": "Game Time", "rate": 1.0, "wifescore": 96.5,
#      "judgements": {"marvelous": 1000, "perfect": 200, "great": 30, "good": 4, "bad": 5, "miss": 6},
#      "difficulty": "IN", "max_combo": 812, "modifiers": "C900, Overhead",
#      "skillsets": {"overall": 23.9, "stream": 22.1, "stamina": 21.0, "jumpstream": 23.9, "handstream": 20.4,
#                    "jackspeed": 15.2, "chordjack": 18.7, "technical": 19.9},
#      "hit_mines": 0, "held_holds": 12, "dropped_holds": 1, "missed_holds": 0,
#      "replay": {"keymode": 4, "notes": [{"time": 1.0, "lane": 0, "deviation": -0.012, "kind": "tap"}]}}
#   ]
# }
#
########################

from __future__ import annotations

import json
import logging
import math
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from replay_models import Hit, NoteKind, Replay, ReplayNote
from score_identifier import ScoreSourceError
from score_models import SKILLSET_NAMES, Difficulty, Judgements, Rate, ScoreRecord, SkillsetSsrs

logger = logging.getLogger(__name__)

JUDGEMENT_FIELDS = ("marvelous", "perfect", "great", "good", "bad", "miss")


class ScoreStoreError(ScoreSourceError):
    pass


class ScoreStoreParseError(ScoreStoreError):
    pass


def _normalize_optional_text(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def _optional_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        raise ValueError(f"number must be finite, got {value}")
    return float(value)


def _optional_count(payload: Dict[str, Any], key_name: str) -> Optional[int]:
    value = payload.get(key_name)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{key_name} must be a non-negative integer")
    return value


def _parse_skillsets(value: Any) -> Optional[SkillsetSsrs]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError("skillsets must be an object")
    ssrs = [_optional_float(value.get(skillset_name)) for skillset_name in SKILLSET_NAMES]
    if any(ssr is None for ssr in ssrs):
        raise ValueError("skillsets must hold a number for each of: " + ", ".join(SKILLSET_NAMES))
    return SkillsetSsrs(*ssrs)


def _parse_judgements(value: Any) -> Optional[Judgements]:
    if value is None:
        return None
    if isinstance(value, dict):
        counts = [value.get(field_name) for field_name in JUDGEMENT_FIELDS]
    elif isinstance(value, list):
        counts = list(value)
    else:
        raise ValueError("judgements must be an object or a list of six counts")
    if len(counts) != len(JUDGEMENT_FIELDS) or not all(isinstance(count, int) for count in counts):
        raise ValueError("judgements must hold six integer counts")
    return Judgements(*counts)


def _parse_replay(value: Any) -> Optional[Replay]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError("replay must be an object")

    notes: List[ReplayNote] = []
    for note_value in value.get("notes") or []:
        if not isinstance(note_value, dict):
            raise ValueError("replay notes must be objects")
        deviation = note_value.get("deviation")
        kind_text = _normalize_optional_text(note_value.get("kind"))
        notes.append(
            ReplayNote(
                time_seconds=float(note_value["time"]),
                lane=int(note_value["lane"]),
                hit=Hit.miss() if deviation is None else Hit.at(float(deviation)),
                kind=NoteKind(kind_text) if kind_text else None,
            )
        )
    return Replay(notes=tuple(notes), keymode=int(value.get("keymode", 4)))


def record_from_dict(payload: Dict[str, Any]) -> ScoreRecord:
    scorekey = _normalize_optional_text(payload.get("scorekey"))
    if scorekey is None:
        raise ValueError("scorekey is required")
    user_id_value = payload.get("user_id")
    if isinstance(user_id_value, bool) or not isinstance(user_id_value, int):
        raise ValueError("user_id must be an integer")

    rate_value = _optional_float(payload.get("rate"))
    difficulty_text = _normalize_optional_text(payload.get("difficulty"))

    return ScoreRecord(
        scorekey=scorekey,
        user_id=int(user_id_value),
        username=_normalize_optional_text(payload.get("username")),
        song=_normalize_optional_text(payload.get("song")),
        artist=_normalize_optional_text(payload.get("artist")),
        pack=_normalize_optional_text(payload.get("pack")),
        rate=Rate.from_float(rate_value) if rate_value is not None else None,
        wifescore=_optional_float(payload.get("wifescore")),
        msd=_optional_float(payload.get("msd")),
        ssr=_optional_float(payload.get("ssr")),
        judgements=_parse_judgements(payload.get("judgements")),
        difficulty=Difficulty.from_short_string(difficulty_text) if difficulty_text else None,
        max_combo=_optional_count(payload, "max_combo"),
        skillsets=_parse_skillsets(payload.get("skillsets")),
        modifiers=_normalize_optional_text(payload.get("modifiers")),
        hit_mines=_optional_count(payload, "hit_mines") or 0,
        held_holds=_optional_count(payload, "held_holds") or 0,
        dropped_holds=_optional_count(payload, "dropped_holds") or 0,
        missed_holds=_optional_count(payload, "missed_holds") or 0,
        replay=_parse_replay(payload.get("replay")),
    )


def record_to_dict(record: ScoreRecord) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "scorekey": record.scorekey,
        "user_id": record.user_id,
        "username": record.username,
        "song": record.song,
        "artist": record.artist,
        "pack": record.pack,
        "rate": record.rate.as_float() if record.rate is not None else None,
        "wifescore": record.wifescore,
        "msd": record.msd,
        "ssr": record.ssr,
        "judgements": None,
        "difficulty": record.difficulty.value if record.difficulty is not None else None,
        "max_combo": record.max_combo,
        "skillsets": None,
        "modifiers": record.modifiers,
        "hit_mines": record.hit_mines,
        "held_holds": record.held_holds,
        "dropped_holds": record.dropped_holds,
        "missed_holds": record.missed_holds,
        "replay": None,
    }
    if record.judgements is not None:
        payload["judgements"] = {field_name: getattr(record.judgements, field_name) for field_name in JUDGEMENT_FIELDS}
    if record.skillsets is not None:
        payload["skillsets"] = {skillset_name: getattr(record.skillsets, skillset_name) for skillset_name in SKILLSET_NAMES}
    if record.replay is not None:
        payload["replay"] = {
            "keymode": record.replay.keymode,
            "notes": [
                {
                    "time": note.time_seconds,
                    "lane": note.lane,
                    "deviation": note.hit.deviation_seconds,
                    "kind": note.kind.value if note.kind is not None else None,
                }
                for note in record.replay.notes
            ],
        }
    return payload


class ScoreStore:
    def __init__(self, usernames: Dict[str, int], records: List[ScoreRecord]) -> None:
        self._lock = threading.Lock()
        self._user_ids_by_name: Dict[str, int] = {str(name).casefold(): int(user_id) for name, user_id in usernames.items()}
        self._usernames_by_id: Dict[int, str] = {int(user_id): str(name) for name, user_id in usernames.items()}
        # Scores without a username take their owner's name.
        self._records: List[ScoreRecord] = [
            replace(record, username=self._usernames_by_id[record.user_id])
            if record.username is None and record.user_id in self._usernames_by_id
            else record
            for record in records
        ]
        self._records_by_key: Dict[str, ScoreRecord] = {}
        for record in self._records:
            if record.scorekey in self._records_by_key:
                logger.warning("Duplicate scorekey %s in score store; keeping the first entry", record.scorekey)
                continue
            self._records_by_key[record.scorekey] = record

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ScoreStore":
        if not isinstance(payload, dict):
            raise ScoreStoreParseError("Score store root must be a JSON object")

        usernames: Dict[str, int] = {}
        for index, user_value in enumerate(payload.get("users") or []):
            if not isinstance(user_value, dict):
                raise ScoreStoreParseError(f"users[{index}] must be an object")
            username = _normalize_optional_text(user_value.get("username"))
            user_id_value = user_value.get("user_id")
            if username is None or isinstance(user_id_value, bool) or not isinstance(user_id_value, int):
                raise ScoreStoreParseError(f"users[{index}] needs a username and an integer user_id")
            usernames[username] = int(user_id_value)

        records: List[ScoreRecord] = []
        for index, score_value in enumerate(payload.get("scores") or []):
            if not isinstance(score_value, dict):
                raise ScoreStoreParseError(f"scores[{index}] must be an object")
            try:
                records.append(record_from_dict(score_value))
            except (KeyError, TypeError, ValueError, OverflowError) as exception:
                raise ScoreStoreParseError(f"scores[{index}] is invalid: {exception}") from exception

        return cls(usernames, records)

    @classmethod
    def load(cls, path: Path, *, missing_ok: bool = False) -> "ScoreStore":
        store_path = Path(path)
        if not store_path.exists():
            if missing_ok:
                logger.warning("Score store %s does not exist; starting empty", store_path)
                return cls({}, [])
            raise ScoreStoreError(f"Score store not found: {store_path}")

        try:
            raw_text = store_path.read_text(encoding="utf-8")
        except OSError as exception:
            raise ScoreStoreError(f"Failed to read score store: {store_path}. Error: {exception}") from exception

        try:
            payload = json.loads(raw_text)
        except json.JSONDecodeError as exception:
            raise ScoreStoreParseError(f"Score store is not valid JSON: {store_path}. Error: {exception}") from exception

        store = cls.from_dict(payload)
        logger.info("Loaded %d score(s) for %d user(s) from %s", len(store._records), len(store._usernames_by_id), store_path)
        return store

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "users": [
                    {"user_id": user_id, "username": username}
                    for user_id, username in sorted(self._usernames_by_id.items())
                ],
                "scores": [record_to_dict(record) for record in self._records],
            }

    def save(self, path: Path) -> None:
        store_path = Path(path)
        try:
            store_path.parent.mkdir(parents=True, exist_ok=True)
            store_path.write_text(json.dumps(self.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as exception:
            raise ScoreStoreError(f"Failed to write score store: {store_path}. Error: {exception}") from exception

    # ScoreHistorySource

    def user_id_for(self, username: str) -> Optional[int]:
        normalized = str(username or "").strip().casefold()
        if not normalized:
            return None
        with self._lock:
            return self._user_ids_by_name.get(normalized)

    def recent_scores(self, user_id: int, limit: int) -> List[ScoreRecord]:
        with self._lock:
            user_records = [record for record in self._records if record.user_id == int(user_id)]
        return user_records[: max(0, int(limit))]

    def score_details(self, scorekey: str) -> Optional[ScoreRecord]:
        with self._lock:
            return self._records_by_key.get(str(scorekey))
