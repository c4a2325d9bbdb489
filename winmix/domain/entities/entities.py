"""
Domain Entities Module

This module contains the core domain entities for the match statistics and
prediction system. These entities represent the core business concepts and are
independent of any infrastructure.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from winmix.domain.constants import AWAY, DRAW, HOME


@dataclass(frozen=True)
class MatchRecord:
    """
    A finished match as stored in the match-history table.

    Attributes:
        home_team: Name of the home team
        away_team: Name of the away team
        full_time_home_goals: Goals scored by the home team at full time
        full_time_away_goals: Goals scored by the away team at full time
        half_time_home_goals: Home goals at half time (None if not recorded)
        half_time_away_goals: Away goals at half time (None if not recorded)
        match_time: Kick-off time
        competition: Competition code (e.g. "E0")
        season: Season label (e.g. "2024-2025")
    """
    home_team: str
    away_team: str
    full_time_home_goals: int
    full_time_away_goals: int
    match_time: datetime
    half_time_home_goals: Optional[int] = None
    half_time_away_goals: Optional[int] = None
    id: Optional[str] = None
    competition: Optional[str] = None
    season: Optional[str] = None

    def __post_init__(self):
        if not self.home_team or not self.away_team:
            raise ValueError("Home and away team names are required")
        goals = [self.full_time_home_goals, self.full_time_away_goals]
        goals += [g for g in (self.half_time_home_goals, self.half_time_away_goals) if g is not None]
        if any(g < 0 for g in goals):
            raise ValueError("Goals cannot be negative")

    @property
    def result_computed(self) -> str:
        """Full-time outcome tag: 'H', 'D' or 'A'."""
        if self.full_time_home_goals > self.full_time_away_goals:
            return HOME
        if self.full_time_home_goals < self.full_time_away_goals:
            return AWAY
        return DRAW

    @property
    def btts_computed(self) -> bool:
        """Both teams scored."""
        return self.full_time_home_goals > 0 and self.full_time_away_goals > 0

    @property
    def half_time_goals(self) -> tuple[int, int]:
        """Half-time score; a missing value counts as 0."""
        return (self.half_time_home_goals or 0, self.half_time_away_goals or 0)

    @property
    def half_time_state(self) -> str:
        """Half-time leader tag: 'H' (home lead), 'D' (level) or 'A' (away lead)."""
        home, away = self.half_time_goals
        if home > away:
            return HOME
        if home < away:
            return AWAY
        return DRAW

    @property
    def comeback_computed(self) -> bool:
        """The side trailing at half time won or drew."""
        state = self.half_time_state
        if state == HOME:
            return self.full_time_away_goals >= self.full_time_home_goals
        if state == AWAY:
            return self.full_time_home_goals >= self.full_time_away_goals
        return False

    @property
    def total_goals(self) -> int:
        return self.full_time_home_goals + self.full_time_away_goals

    @property
    def scoreline(self) -> str:
        return f"{self.full_time_home_goals}-{self.full_time_away_goals}"

    def involves(self, team: str) -> bool:
        return team in (self.home_team, self.away_team)

    def result_for(self, team: str) -> str:
        """Outcome from a team's perspective: 'W', 'D' or 'L'."""
        result = self.result_computed
        if result == DRAW:
            return "D"
        won = (result == HOME) == (team == self.home_team)
        return "W" if won else "L"


@dataclass(frozen=True)
class MatchStats:
    """
    Aggregate counts and percentages over a set of matches.

    Percentages are rounded to one decimal place; a zero-match input yields
    an all-zero structure.
    """
    total_matches: int = 0
    home_wins: int = 0
    draws: int = 0
    away_wins: int = 0
    btts_count: int = 0
    comeback_count: int = 0
    avg_goals: float = 0.0
    home_win_percentage: float = 0.0
    draw_percentage: float = 0.0
    away_win_percentage: float = 0.0
    btts_percentage: float = 0.0
    comeback_percentage: float = 0.0


@dataclass(frozen=True)
class GoalStats:
    """Goal totals, averages and clean sheets split by venue."""
    home_goals_total: int = 0
    away_goals_total: int = 0
    home_goals_per_match: float = 0.0
    away_goals_per_match: float = 0.0
    home_clean_sheets: int = 0
    away_clean_sheets: int = 0
    home_clean_sheet_percentage: float = 0.0
    away_clean_sheet_percentage: float = 0.0


@dataclass(frozen=True)
class OverUnderStats:
    """Over/under 2.5 and over 3.5 goal counts."""
    over_25_count: int = 0
    under_25_count: int = 0
    over_25_percentage: float = 0.0
    under_25_percentage: float = 0.0
    over_35_count: int = 0
    over_35_percentage: float = 0.0


@dataclass(frozen=True)
class FrequentResult:
    """A final scoreline ("H-A") and how often it occurred."""
    result: str
    count: int
    percentage: float


@dataclass(frozen=True)
class HalfTimeAnalysis:
    """Half-time leader to full-time outcome counts."""
    ht_home_leads: int = 0
    ht_away_leads: int = 0
    ht_draws: int = 0
    ht_home_lead_to_win: int = 0
    ht_home_lead_to_draw: int = 0
    ht_home_lead_to_loss: int = 0
    ht_away_lead_to_win: int = 0
    ht_away_lead_to_draw: int = 0
    ht_away_lead_to_loss: int = 0
    home_lead_hold_percentage: float = 0.0
    away_lead_hold_percentage: float = 0.0


@dataclass(frozen=True)
class DetailedMatchStats:
    """MatchStats extended with goal, over/under, scoreline and half-time breakdowns."""
    basic: MatchStats = field(default_factory=MatchStats)
    goal_stats: GoalStats = field(default_factory=GoalStats)
    over_under: OverUnderStats = field(default_factory=OverUnderStats)
    frequent_results: tuple[FrequentResult, ...] = ()
    half_time_analysis: HalfTimeAnalysis = field(default_factory=HalfTimeAnalysis)
