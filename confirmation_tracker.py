# -*- coding: utf-8 -*-
########################
# confirmation_tracker.py
########################
# Purpose:
# - Per-message state machine that gates when an identified score is revealed.
# - A candidate is revealed once its author and at least one other user have reacted.
#
# Design notes:
# - States: no entry -> pending -> revealed (terminal).
# - One candidate per message: a second registration for the same message is rejected.
# - Reveal is one-shot; duplicate or late reactions return None.
# - Bounded: oldest registrations are evicted past capacity, and entries expire after ttl_seconds.
# - Thread-safe: every public call holds one RLock.
#
########################
# Interfaces:
# Public dataclasses:
# - RevealedScore(scorekey: str, user_id: int)
# - MatchCandidate(message_id, author_id, scorekey, user_id, registered_at, reactors, revealed)
#
# Public classes:
# - class ConfirmationTracker
#   - __init__(*, capacity: int = 512, ttl_seconds: Optional[float] = 86400.0, clock: Callable[[], float] = time.monotonic)
#   - register_candidate(message_id, author_id, scorekey, user_id) -> bool
#   - on_reaction(message_id, reactor_id) -> Optional[RevealedScore]
#   - candidate(message_id) -> Optional[MatchCandidate]
#   - snapshot() -> dict[str, int]
#
# Inputs:
# - Registrations from score_identifier.py after a successful match.
# - Reaction events (message id, reactor id) from the chat host.
#
# Outputs:
# - RevealedScore exactly once per confirmed candidate.
#
########################

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Dict, Hashable, Optional, Set

logger = logging.getLogger(__name__)

MINIMUM_REACTORS_TO_REVEAL = 2


@dataclass(frozen=True)
class RevealedScore:
    scorekey: str
    user_id: int


@dataclass
class MatchCandidate:
    message_id: Hashable
    author_id: Hashable
    scorekey: str
    user_id: int
    registered_at: float
    reactors: Set[Hashable] = field(default_factory=set)
    revealed: bool = False


class ConfirmationTracker:
    def __init__(
        self,
        *,
        capacity: int = 512,
        ttl_seconds: Optional[float] = 24 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if int(capacity) < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = int(capacity)
        self._ttl_seconds = float(ttl_seconds) if ttl_seconds is not None else None
        self._clock = clock
        self._lock = threading.RLock()
        self._candidates: "OrderedDict[Hashable, MatchCandidate]" = OrderedDict()

    @property
    def capacity(self) -> int:
        return self._capacity

    def _evict_expired(self, now: float) -> None:
        if self._ttl_seconds is None:
            return
        # Registration order is age order, so expired entries sit at the front.
        while self._candidates:
            message_id, oldest = next(iter(self._candidates.items()))
            if now - oldest.registered_at <= self._ttl_seconds:
                break
            del self._candidates[message_id]
            logger.debug("Expired confirmation candidate for message %s", message_id)

    def _evict_over_capacity(self) -> None:
        while len(self._candidates) > self._capacity:
            message_id, _evicted = self._candidates.popitem(last=False)
            logger.info("Evicted confirmation candidate for message %s (capacity %d)", message_id, self._capacity)

    def register_candidate(self, message_id: Hashable, author_id: Hashable, scorekey: str, user_id: int) -> bool:
        with self._lock:
            now = float(self._clock())
            self._evict_expired(now)

            if message_id in self._candidates:
                logger.warning("Ignoring second candidate registration for message %s", message_id)
                return False

            self._candidates[message_id] = MatchCandidate(
                message_id=message_id,
                author_id=author_id,
                scorekey=str(scorekey),
                user_id=int(user_id),
                registered_at=now,
            )
            self._evict_over_capacity()
            return True

    def on_reaction(self, message_id: Hashable, reactor_id: Hashable) -> Optional[RevealedScore]:
        """Record a reaction and return the score if this reaction confirms it."""
        with self._lock:
            self._evict_expired(float(self._clock()))

            candidate = self._candidates.get(message_id)
            if candidate is None:
                return None
            if candidate.revealed:
                return None

            candidate.reactors.add(reactor_id)

            if candidate.author_id in candidate.reactors and len(candidate.reactors) >= MINIMUM_REACTORS_TO_REVEAL:
                candidate.revealed = True
                logger.info("Revealing scorekey %s for message %s", candidate.scorekey, message_id)
                return RevealedScore(scorekey=candidate.scorekey, user_id=candidate.user_id)
            return None

    def candidate(self, message_id: Hashable) -> Optional[MatchCandidate]:
        with self._lock:
            return self._candidates.get(message_id)

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            self._evict_expired(float(self._clock()))
            revealed_count = sum(1 for candidate in self._candidates.values() if candidate.revealed)
            return {
                "capacity": self._capacity,
                "tracked": len(self._candidates),
                "pending": len(self._candidates) - revealed_count,
                "revealed": revealed_count,
            }


def _run_unit_tests() -> None:
    tracker = ConfirmationTracker(capacity=2)
    assert tracker.register_candidate(1, "author", "Skey", 7)
    assert not tracker.register_candidate(1, "author", "Sother", 8)

    assert tracker.on_reaction(99, "author") is None
    assert tracker.on_reaction(1, "author") is None
    assert tracker.on_reaction(1, "author") is None
    revealed = tracker.on_reaction(1, "friend")
    assert revealed == RevealedScore(scorekey="Skey", user_id=7)
    assert tracker.on_reaction(1, "another") is None

    # Two non-authors are not enough.
    tracker.register_candidate(2, "author", "S2", 7)
    assert tracker.on_reaction(2, "friend") is None
    assert tracker.on_reaction(2, "stranger") is None
    assert tracker.on_reaction(2, "author") is not None

    tracker.register_candidate(3, "author", "S3", 7)
    assert tracker.candidate(1) is None
    assert tracker.snapshot()["tracked"] == 2

    fake_now = [0.0]
    expiring = ConfirmationTracker(ttl_seconds=10.0, clock=lambda: fake_now[0])
    expiring.register_candidate(5, "author", "S5", 1)
    fake_now[0] = 11.0
    assert expiring.on_reaction(5, "author") is None
    assert expiring.candidate(5) is None


if __name__ == "__main__":
    _run_unit_tests()
    print("confirmation_tracker.py: ok")
