"""
Shared fixtures: an in-memory match repository and match builders.
"""

from datetime import datetime, timedelta
from typing import Optional

import pytest

from winmix.core.config import EngineConfig
from winmix.domain.entities.entities import MatchRecord
from winmix.domain.exceptions import UpstreamUnavailableException
from winmix.domain.repositories.repositories import MatchFilter, MatchRepository
from winmix.domain.services.feature_extractor import FeatureExtractor

BASE_TIME = datetime(2024, 3, 1, 15, 0)


def make_match(
    home: str,
    away: str,
    ft: tuple[int, int],
    ht: Optional[tuple[int, int]] = None,
    days_ago: int = 0,
    competition: Optional[str] = "E0",
    season: Optional[str] = "2023-2024",
) -> MatchRecord:
    """Build a finished match; larger days_ago means older."""
    return MatchRecord(
        home_team=home,
        away_team=away,
        full_time_home_goals=ft[0],
        full_time_away_goals=ft[1],
        half_time_home_goals=ht[0] if ht else None,
        half_time_away_goals=ht[1] if ht else None,
        match_time=BASE_TIME - timedelta(days=days_ago),
        competition=competition,
        season=season,
    )


class InMemoryMatchRepository(MatchRepository):
    """MatchRepository over a list, newest first, honoring every filter key."""

    def __init__(self, matches=None, available: bool = True):
        self.matches = list(matches or [])
        self.available = available
        self.queries: list[tuple[MatchFilter, int]] = []

    async def query_matches(self, match_filter: MatchFilter, limit: int = 10) -> list[MatchRecord]:
        if not self.available:
            raise UpstreamUnavailableException("in-memory store offline")
        self.queries.append((match_filter, limit))
        selected = [m for m in self.matches if match_filter.matches(m)]
        selected.sort(key=lambda m: m.match_time, reverse=True)
        return selected[:limit]

    async def ping(self) -> None:
        if not self.available:
            raise UpstreamUnavailableException("in-memory store offline")


@pytest.fixture
def history():
    """
    Arsenal and Chelsea with venue history plus five meetings.

    Arsenal wins most home games, Chelsea loses most away games.
    """
    return [
        # Arsenal at home
        make_match("Arsenal", "Spurs", (2, 0), (1, 0), days_ago=7),
        make_match("Arsenal", "Everton", (3, 1), (1, 1), days_ago=21),
        make_match("Arsenal", "Fulham", (1, 1), (0, 1), days_ago=35),
        make_match("Arsenal", "Brentford", (2, 1), (2, 0), days_ago=49),
        # Arsenal away
        make_match("Wolves", "Arsenal", (0, 2), (0, 1), days_ago=14),
        make_match("Leeds", "Arsenal", (1, 1), (1, 0), days_ago=28),
        # Chelsea at home
        make_match("Chelsea", "Wolves", (1, 0), (0, 0), days_ago=10),
        make_match("Chelsea", "Leeds", (2, 2), (1, 2), days_ago=24),
        # Chelsea away
        make_match("Spurs", "Chelsea", (2, 0), (1, 0), days_ago=3),
        make_match("Everton", "Chelsea", (1, 0), (0, 0), days_ago=17),
        make_match("Fulham", "Chelsea", (1, 1), (1, 0), days_ago=31),
        # Meetings
        make_match("Arsenal", "Chelsea", (2, 1), (1, 0), days_ago=60),
        make_match("Chelsea", "Arsenal", (0, 1), (0, 0), days_ago=120),
        make_match("Arsenal", "Chelsea", (1, 1), (0, 1), days_ago=240),
        make_match("Chelsea", "Arsenal", (2, 0), (1, 0), days_ago=300),
        make_match("Arsenal", "Chelsea", (3, 0), (2, 0), days_ago=420),
    ]


@pytest.fixture
def repository(history):
    return InMemoryMatchRepository(history)


@pytest.fixture
def extractor(repository):
    return FeatureExtractor(repository)


@pytest.fixture
def config(tmp_path):
    return EngineConfig(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        ensemble_weights_path=str(tmp_path / "weights.json"),
        gb_model_path=None,
        fetch_timeout_seconds=1.0,
    )
