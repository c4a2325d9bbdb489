"""
Football-Data.co.uk Data Source

This module handles downloading and parsing CSV data from Football-Data.co.uk
into MatchRecord entities for the match-history store.

Data Source: https://www.football-data.co.uk/
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from io import StringIO
from typing import Optional

import httpx
import pandas as pd

from winmix.domain.entities.entities import MatchRecord

logger = logging.getLogger(__name__)


@dataclass
class FootballDataConfig:
    """Configuration for Football-Data.co.uk data source."""
    base_url: str = "https://www.football-data.co.uk"
    timeout: int = 30


# League codes served by Football-Data.co.uk
LEAGUE_NAMES = {
    "E0": "Premier League",
    "E1": "Championship",
    "SP1": "La Liga",
    "D1": "Bundesliga",
    "I1": "Serie A",
    "F1": "Ligue 1",
    "N1": "Eredivisie",
    "P1": "Primeira Liga",
    "SC0": "Scottish Premiership",
}

DEFAULT_SEASONS = ["2425", "2324"]

REQUIRED_COLUMNS = ["Date", "HomeTeam", "AwayTeam", "FTHG", "FTAG"]


def season_label(season_code: str) -> str:
    """'2425' -> '2024-2025'."""
    if len(season_code) != 4 or not season_code.isdigit():
        return season_code
    return f"20{season_code[:2]}-20{season_code[2:]}"


class FootballDataUKSource:
    """
    Data source for Football-Data.co.uk.

    Provides historical match results with half-time scores.
    """

    SOURCE_NAME = "Football-Data.co.uk"

    def __init__(self, config: Optional[FootballDataConfig] = None):
        """Initialize the data source."""
        self.config = config or FootballDataConfig()
        self._cache: dict[str, pd.DataFrame] = {}

    def _get_csv_url(self, league_code: str, season: str) -> str:
        """
        Construct CSV URL for a league and season.

        Args:
            league_code: League code (e.g., "E0" for Premier League)
            season: Season in format "2324" for 2023-2024
        """
        # Football-Data.co.uk URL pattern: /mmz4281/{season}/{league_code}.csv
        return f"{self.config.base_url}/mmz4281/{season}/{league_code}.csv"

    async def download_csv(self, league_code: str, season: str) -> Optional[pd.DataFrame]:
        """
        Download and parse CSV data for a league.

        Returns:
            DataFrame or None if the download failed
        """
        cache_key = f"{league_code}_{season}"
        if cache_key in self._cache:
            return self._cache[cache_key]

        url = self._get_csv_url(league_code, season)
        try:
            async with httpx.AsyncClient() as client:
                response = await client.get(url, timeout=self.config.timeout)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"HTTP error downloading {url}: {e}")
            return None

        df = pd.read_csv(StringIO(response.text), on_bad_lines="skip")
        self._cache[cache_key] = df
        logger.info(f"Downloaded {len(df)} rows from {url}")
        return df

    @staticmethod
    def _parse_date(value) -> Optional[datetime]:
        formats = ["%d/%m/%Y", "%d/%m/%y", "%Y-%m-%d"]
        for fmt in formats:
            try:
                return datetime.strptime(str(value), fmt)
            except (ValueError, TypeError):
                continue
        return None

    @staticmethod
    def _parse_time(value) -> tuple[int, int]:
        """'15:00' -> (15, 0); kick-off defaults to midnight when absent."""
        if value is None or pd.isna(value):
            return 0, 0
        try:
            hours, minutes = str(value).split(":")[:2]
            return int(hours), int(minutes)
        except ValueError:
            return 0, 0

    @staticmethod
    def _optional_goals(row: pd.Series, column: str) -> Optional[int]:
        if column in row and pd.notna(row[column]):
            return int(row[column])
        return None

    def parse_matches(
        self,
        df: pd.DataFrame,
        league_code: Optional[str] = None,
        season: Optional[str] = None,
    ) -> list[MatchRecord]:
        """
        Parse DataFrame into MatchRecord entities.

        Rows without a date or a full-time score (unplayed fixtures) are skipped.

        Args:
            df: DataFrame from CSV
            league_code: Competition code; the 'Div' column is used when omitted
            season: Season code (e.g. "2425")
        """
        records: list[MatchRecord] = []

        if not all(col in df.columns for col in REQUIRED_COLUMNS):
            logger.warning(f"Missing required columns in data. Available: {df.columns.tolist()}")
            return records

        label = season_label(season) if season else None
        skipped = 0
        for idx, row in df.iterrows():
            match_date = self._parse_date(row["Date"])
            home_goals = self._optional_goals(row, "FTHG")
            away_goals = self._optional_goals(row, "FTAG")
            if match_date is None or home_goals is None or away_goals is None:
                skipped += 1
                continue

            hour, minute = self._parse_time(row.get("Time"))
            competition = league_code or (str(row["Div"]) if "Div" in row and pd.notna(row["Div"]) else None)
            try:
                records.append(MatchRecord(
                    home_team=str(row["HomeTeam"]).strip(),
                    away_team=str(row["AwayTeam"]).strip(),
                    full_time_home_goals=home_goals,
                    full_time_away_goals=away_goals,
                    half_time_home_goals=self._optional_goals(row, "HTHG"),
                    half_time_away_goals=self._optional_goals(row, "HTAG"),
                    match_time=match_date.replace(hour=hour, minute=minute),
                    competition=competition,
                    season=label,
                ))
            except ValueError as e:
                logger.debug(f"Error parsing row {idx}: {e}")
                skipped += 1

        if skipped:
            logger.info(f"Skipped {skipped} unplayed or malformed rows")
        return records

    async def get_historical_matches(
        self,
        league_code: str,
        seasons: Optional[list[str]] = None,
    ) -> list[MatchRecord]:
        """
        Get finished matches for a league.

        Args:
            league_code: League code (e.g., "E0")
            seasons: List of season codes, current and previous season by default
        """
        seasons = seasons or DEFAULT_SEASONS
        if league_code not in LEAGUE_NAMES:
            logger.warning(f"Unknown league code: {league_code}")
            return []

        frames = await asyncio.gather(*(self.download_csv(league_code, s) for s in seasons))

        records: list[MatchRecord] = []
        for season, df in zip(seasons, frames):
            if df is not None:
                records.extend(self.parse_matches(df, league_code, season))
        return records
