"""
score_identifier.py

Coordinator between screenshots, the score history, the confirmation tracker and replay analysis.

Flow
- process_screenshot: read the result screen, resolve the player, fetch their recent scores,
  pick the best match and register it as a pending candidate for the message
- process_reaction: feed a reaction to the tracker; on reveal fetch the full score and analyze it
- score_report: build a score card directly from a scorekey, with an optional judge named in text
- recent_score_report: score card for a player's most recent score, with an optional judge named in text

Errors
- OcrImageError from the reader is logged and the screenshot is skipped (returns None)
- OcrEngineInitError propagates; the reader is unusable
- ScoreSourceError from the history source propagates and aborts only the current request
- A reveal whose score fetch fails is kept; the next reaction on that message retries the fetch.
  The tracker still reveals once, and the report is delivered at most once.

The history source is an interface. score_store.ScoreStore is a JSON-file implementation;
a remote score API client can be plugged in the same way.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Hashable, List, Optional, Protocol, Sequence

from confirmation_tracker import ConfirmationTracker, RevealedScore
from config import AppConfig
from judge import Judge, extract_judge_from_text
from replay_analyzer import ReplayAnalysis, analyze_replay
from score_card import ScoreCard, build_score_card
from score_matcher import DEFAULT_THRESHOLD, identify_best_match
from score_models import ScoreRecord, ScreenReading
from score_ocr import OcrImageError

logger = logging.getLogger(__name__)


class ScoreSourceError(Exception):
    pass


class ScoreHistorySource(Protocol):
    def user_id_for(self, username: str) -> Optional[int]:
        raise NotImplementedError

    def recent_scores(self, user_id: int, limit: int) -> List[ScoreRecord]:
        raise NotImplementedError

    def score_details(self, scorekey: str) -> Optional[ScoreRecord]:
        raise NotImplementedError


class ScreenshotReader(Protocol):
    def read(self, image_bytes: bytes) -> List[ScreenReading]:
        raise NotImplementedError


@dataclass(frozen=True)
class IdentifiedScore:
    message_id: Hashable
    scorekey: str
    user_id: int
    username: Optional[str]
    song: Optional[str]


@dataclass(frozen=True)
class ScoreReport:
    record: ScoreRecord
    analysis: Optional[ReplayAnalysis]
    card: ScoreCard
    alternative_judge: Optional[Judge] = None


def _first_username(readings: Sequence[ScreenReading]) -> Optional[str]:
    for reading in readings:
        if reading.username:
            return reading.username
    return None


class ScoreIdentifier:
    def __init__(
        self,
        source: ScoreHistorySource,
        reader: ScreenshotReader,
        tracker: ConfirmationTracker,
        *,
        threshold: int = DEFAULT_THRESHOLD,
        recent_scores_limit: int = 50,
        compare_username: bool = False,
        bot_user_id: Optional[Hashable] = None,
    ) -> None:
        self._source = source
        self._reader = reader
        self._tracker = tracker
        self._threshold = int(threshold)
        self._recent_scores_limit = int(max(1, recent_scores_limit))
        self._compare_username = bool(compare_username)
        self._bot_user_id = bot_user_id
        self._undelivered_lock = threading.Lock()
        self._undelivered: "OrderedDict[Hashable, RevealedScore]" = OrderedDict()

    @classmethod
    def from_app_config(
        cls,
        app_config: AppConfig,
        source: ScoreHistorySource,
        reader: ScreenshotReader,
        *,
        bot_user_id: Optional[Hashable] = None,
    ) -> "ScoreIdentifier":
        tracker = ConfirmationTracker(
            capacity=app_config.confirmation.capacity,
            ttl_seconds=app_config.confirmation.ttl_seconds,
        )
        return cls(
            source,
            reader,
            tracker,
            threshold=app_config.matching.threshold,
            recent_scores_limit=app_config.matching.recent_scores_limit,
            compare_username=app_config.matching.compare_username,
            bot_user_id=bot_user_id,
        )

    @property
    def tracker(self) -> ConfirmationTracker:
        return self._tracker

    def _resolve_user_id(self, readings: Sequence[ScreenReading], poster_username: Optional[str]) -> Optional[int]:
        recognized_username = _first_username(readings)
        if recognized_username:
            user_id = self._source.user_id_for(recognized_username)
            if user_id is not None:
                return user_id
            logger.info("Recognized username %r is unknown; falling back to the poster", recognized_username)

        if poster_username:
            return self._source.user_id_for(poster_username)
        return None

    def process_screenshot(
        self,
        message_id: Hashable,
        author_id: Hashable,
        image_bytes: bytes,
        poster_username: Optional[str] = None,
    ) -> Optional[IdentifiedScore]:
        try:
            readings = self._reader.read(image_bytes)
        except OcrImageError as exception:
            logger.warning("Skipping screenshot in message %s: %s", message_id, exception)
            return None

        if not readings:
            return None

        user_id = self._resolve_user_id(readings, poster_username)
        if user_id is None:
            logger.info("No known user for screenshot in message %s", message_id)
            return None

        candidates = self._source.recent_scores(user_id, self._recent_scores_limit)
        record = identify_best_match(
            readings,
            candidates,
            self._threshold,
            compare_username=self._compare_username,
        )
        if record is None:
            return None

        if not self._tracker.register_candidate(message_id, author_id, record.scorekey, record.user_id):
            return None

        return IdentifiedScore(
            message_id=message_id,
            scorekey=record.scorekey,
            user_id=record.user_id,
            username=record.username,
            song=record.song,
        )

    def process_reaction(self, message_id: Hashable, reactor_id: Hashable) -> Optional[ScoreReport]:
        if self._bot_user_id is not None and reactor_id == self._bot_user_id:
            return None

        revealed = self._tracker.on_reaction(message_id, reactor_id)
        if revealed is None:
            revealed = self._take_undelivered(message_id)
            if revealed is None:
                return None
            logger.info("Retrying score fetch for revealed message %s", message_id)

        try:
            return self.score_report(revealed.scorekey, expected_user_id=revealed.user_id, show_modifiers=False)
        except ScoreSourceError:
            self._keep_undelivered(message_id, revealed)
            raise

    def _keep_undelivered(self, message_id: Hashable, revealed: RevealedScore) -> None:
        with self._undelivered_lock:
            self._undelivered[message_id] = revealed
            self._undelivered.move_to_end(message_id)
            while len(self._undelivered) > self._tracker.capacity:
                self._undelivered.popitem(last=False)

    def _take_undelivered(self, message_id: Hashable) -> Optional[RevealedScore]:
        with self._undelivered_lock:
            revealed = self._undelivered.pop(message_id, None)
        # Candidates evicted from the tracker are not retried.
        if revealed is None or self._tracker.candidate(message_id) is None:
            return None
        return revealed

    def recent_score_report(self, username: str, *, text: Optional[str] = None) -> Optional[ScoreReport]:
        """Score card for the player's most recent score."""
        user_id = self._source.user_id_for(username)
        if user_id is None:
            logger.info("Unknown user %r", username)
            return None

        latest_scores = self._source.recent_scores(user_id, 1)
        if not latest_scores:
            logger.info("User %r has no scores", username)
            return None

        return self.score_report(latest_scores[0].scorekey, text=text, expected_user_id=user_id)

    def score_report(
        self,
        scorekey: str,
        *,
        text: Optional[str] = None,
        expected_username: Optional[str] = None,
        expected_user_id: Optional[int] = None,
        show_modifiers: bool = True,
    ) -> Optional[ScoreReport]:
        record = self._source.score_details(str(scorekey))
        if record is None:
            logger.info("Score %s not found", scorekey)
            return None

        alternative_judge = extract_judge_from_text(text) if text else None
        analysis = analyze_replay(
            record.replay,
            alternative_judge=alternative_judge,
            hit_mines=record.hit_mines,
            dropped_holds=record.lost_holds(),
        )
        card = build_score_card(
            record,
            analysis,
            expected_username=expected_username,
            expected_user_id=expected_user_id,
            show_modifiers=show_modifiers,
        )
        return ScoreReport(record=record, analysis=analysis, card=card, alternative_judge=alternative_judge)
