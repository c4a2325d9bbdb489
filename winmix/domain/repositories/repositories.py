"""
Domain Repository Interfaces Module

These are abstract interfaces that define how the domain layer accesses data.
Concrete implementations are provided in the infrastructure layer.
This follows the Dependency Inversion Principle (DIP).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from winmix.domain.entities.entities import MatchRecord


@dataclass(frozen=True)
class MatchFilter:
    """
    Match query filter.

    Every key that is set is applied; a key left as None places no constraint
    on that field.

    Attributes:
        team: Team played on either side
        opponent: Other side of the fixture (requires `team`)
        home_team: Team played at home
        away_team: Team played away
        competition: Competition code
        season: Season label
        date_from: Earliest kick-off (inclusive)
        date_to: Latest kick-off (exclusive)
    """
    team: Optional[str] = None
    opponent: Optional[str] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    competition: Optional[str] = None
    season: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    def __post_init__(self):
        if self.opponent is not None and self.team is None:
            raise ValueError("An opponent filter requires a team filter")

    def matches(self, record: MatchRecord) -> bool:
        """Check a record against every set key."""
        if self.team is not None and not record.involves(self.team):
            return False
        if self.opponent is not None and not (
            record.involves(self.opponent) and record.involves(self.team)
        ):
            return False
        if self.home_team is not None and record.home_team != self.home_team:
            return False
        if self.away_team is not None and record.away_team != self.away_team:
            return False
        if self.competition is not None and record.competition != self.competition:
            return False
        if self.season is not None and record.season != self.season:
            return False
        if self.date_from is not None and record.match_time < self.date_from:
            return False
        if self.date_to is not None and record.match_time >= self.date_to:
            return False
        return True


class MatchRepository(ABC):
    """Abstract repository for match-history queries."""

    @abstractmethod
    async def query_matches(
        self,
        match_filter: MatchFilter,
        limit: int = 10,
    ) -> list[MatchRecord]:
        """
        Get matches satisfying the filter, newest first, at most `limit` rows.

        Raises:
            UpstreamUnavailableException: The underlying store cannot be reached.
        """
        pass

    @abstractmethod
    async def ping(self) -> None:
        """
        Check that the underlying store is reachable.

        Raises:
            UpstreamUnavailableException: The underlying store cannot be reached.
        """
        pass
