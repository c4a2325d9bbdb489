"""
SQL match-history repository.

Implements MatchRepository on top of SQLAlchemy. Blocking queries run in a
worker thread so concurrent fetches of one prediction do not serialize.
"""

import asyncio
import logging
import uuid
from typing import Iterable, List

from sqlalchemy import Boolean, Column, DateTime, Integer, String, or_
from sqlalchemy.exc import SQLAlchemyError

from winmix.domain.entities.entities import MatchRecord
from winmix.domain.exceptions import UpstreamUnavailableException
from winmix.domain.repositories.repositories import MatchFilter, MatchRepository
from winmix.infrastructure.database.database_service import Base, DatabaseService

logger = logging.getLogger(__name__)


class MatchModel(Base):
    """
    SQLAlchemy model for finished matches.

    Derived outcome columns are stored alongside the raw scores so other
    consumers can filter on them directly.
    """
    __tablename__ = "matches"

    id = Column(String, primary_key=True)
    home_team = Column(String, index=True, nullable=False)
    away_team = Column(String, index=True, nullable=False)
    full_time_home_goals = Column(Integer, nullable=False)
    full_time_away_goals = Column(Integer, nullable=False)
    half_time_home_goals = Column(Integer, nullable=True)
    half_time_away_goals = Column(Integer, nullable=True)
    result_computed = Column(String(1), nullable=False)
    btts_computed = Column(Boolean, nullable=False)
    comeback_computed = Column(Boolean, nullable=False)
    match_time = Column(DateTime, index=True, nullable=False)
    competition = Column(String, index=True, nullable=True)
    season = Column(String, index=True, nullable=True)

    @classmethod
    def from_record(cls, record: MatchRecord) -> "MatchModel":
        return cls(
            id=record.id or cls.natural_key(record),
            home_team=record.home_team,
            away_team=record.away_team,
            full_time_home_goals=record.full_time_home_goals,
            full_time_away_goals=record.full_time_away_goals,
            half_time_home_goals=record.half_time_home_goals,
            half_time_away_goals=record.half_time_away_goals,
            result_computed=record.result_computed,
            btts_computed=record.btts_computed,
            comeback_computed=record.comeback_computed,
            match_time=record.match_time,
            competition=record.competition,
            season=record.season,
        )

    @staticmethod
    def natural_key(record: MatchRecord) -> str:
        """Deterministic id so re-importing the same match updates it."""
        name = f"{record.competition}|{record.match_time.isoformat()}|{record.home_team}|{record.away_team}"
        return str(uuid.uuid5(uuid.NAMESPACE_URL, name))

    def to_record(self) -> MatchRecord:
        return MatchRecord(
            id=self.id,
            home_team=self.home_team,
            away_team=self.away_team,
            full_time_home_goals=self.full_time_home_goals,
            full_time_away_goals=self.full_time_away_goals,
            half_time_home_goals=self.half_time_home_goals,
            half_time_away_goals=self.half_time_away_goals,
            match_time=self.match_time,
            competition=self.competition,
            season=self.season,
        )


class SqlMatchRepository(MatchRepository):
    """
    Repository for match history stored in a SQL database.
    """

    def __init__(self, db_service: DatabaseService):
        self.db_service = db_service

    async def query_matches(self, match_filter: MatchFilter, limit: int = 10) -> List[MatchRecord]:
        return await asyncio.to_thread(self._query, match_filter, limit)

    async def ping(self) -> None:
        try:
            await asyncio.to_thread(self.db_service.ping)
        except SQLAlchemyError as e:
            logger.error(f"Match store health check failed: {e}")
            raise UpstreamUnavailableException(f"Match store unavailable: {e}") from e

    def _query(self, match_filter: MatchFilter, limit: int) -> List[MatchRecord]:
        session = self.db_service.get_session()
        try:
            query = session.query(MatchModel)
            for condition in self._conditions(match_filter):
                query = query.filter(condition)
            rows = query.order_by(MatchModel.match_time.desc()).limit(limit).all()
            return [row.to_record() for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Match query failed for {match_filter}: {e}")
            raise UpstreamUnavailableException(f"Match store unavailable: {e}") from e
        finally:
            session.close()

    @staticmethod
    def _conditions(match_filter: MatchFilter) -> list:
        conditions = []
        if match_filter.team is not None:
            team = match_filter.team
            if match_filter.opponent is not None:
                opponent = match_filter.opponent
                conditions.append(or_(
                    (MatchModel.home_team == team) & (MatchModel.away_team == opponent),
                    (MatchModel.home_team == opponent) & (MatchModel.away_team == team),
                ))
            else:
                conditions.append(or_(MatchModel.home_team == team, MatchModel.away_team == team))
        if match_filter.home_team is not None:
            conditions.append(MatchModel.home_team == match_filter.home_team)
        if match_filter.away_team is not None:
            conditions.append(MatchModel.away_team == match_filter.away_team)
        if match_filter.competition is not None:
            conditions.append(MatchModel.competition == match_filter.competition)
        if match_filter.season is not None:
            conditions.append(MatchModel.season == match_filter.season)
        if match_filter.date_from is not None:
            conditions.append(MatchModel.match_time >= match_filter.date_from)
        if match_filter.date_to is not None:
            conditions.append(MatchModel.match_time < match_filter.date_to)
        return conditions

    def save_matches(self, records: Iterable[MatchRecord]) -> int:
        """
        Insert or update matches.

        Returns:
            Number of matches written
        """
        session = self.db_service.get_session()
        try:
            count = 0
            for record in records:
                session.merge(MatchModel.from_record(record))
                count += 1
            session.commit()
            logger.info(f"Saved {count} matches")
            return count
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to save matches: {e}")
            raise UpstreamUnavailableException(f"Match store unavailable: {e}") from e
        finally:
            session.close()

    def count_matches(self) -> int:
        session = self.db_service.get_session()
        try:
            return session.query(MatchModel).count()
        finally:
            session.close()

