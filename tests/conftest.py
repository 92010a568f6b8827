"""
Pytest configuration and shared fixtures for scorescope tests.

This module provides:
- Sample score records built from sample_replay.py
- A ScoreStore over those records
- A screen reading that identifies the "Game Time" sample score
"""

from typing import List

import pytest

from sample_replay import build_sample_records
from score_models import ScoreRecord, ScreenReading
from score_store import ScoreStore


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def sample_records() -> List[ScoreRecord]:
    return build_sample_records(user_id=1, username="sample_player")


@pytest.fixture
def sample_store(sample_records) -> ScoreStore:
    return ScoreStore({"sample_player": 1}, sample_records)


@pytest.fixture
def game_time_reading(sample_records) -> ScreenReading:
    game_time = sample_records[0]
    return ScreenReading(song=game_time.song, wifescore=game_time.wifescore, username="sample_player")
