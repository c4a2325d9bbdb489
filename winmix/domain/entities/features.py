"""
Feature Entities Module

Immutable feature snapshots extracted from match history and consumed by the
prediction models.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional

from winmix.domain.value_objects.value_objects import TransitionMatrix
from winmix.utils.time_utils import get_current_time


@dataclass(frozen=True)
class FormFeatures:
    """
    Recent form of a team.

    Form sequences hold one entry per match, newest first:
    1.0 = win, 0.5 = draw, 0.0 = loss.
    """
    recent_form_home: tuple[float, ...] = ()
    recent_form_away: tuple[float, ...] = ()
    recent_form_overall: tuple[float, ...] = ()
    current_streak: int = 0  # > 0 win/draw streak length, < 0 loss streak length
    streak_type: str = "MIXED"  # WIN, DRAW, LOSS or MIXED
    momentum_score: float = 0.0  # -1 (declining) to 1 (improving)


@dataclass(frozen=True)
class GoalFeatures:
    """Goal-based averages and percentages split by venue."""
    avg_goals_scored_home: float = 0.0
    avg_goals_scored_away: float = 0.0
    avg_goals_conceded_home: float = 0.0
    avg_goals_conceded_away: float = 0.0
    btts_percentage_home: float = 0.0
    btts_percentage_away: float = 0.0
    clean_sheet_percentage_home: float = 0.0
    clean_sheet_percentage_away: float = 0.0
    comeback_ability: float = 0.0  # % of half-time deficits turned into a draw or win
    lead_holding: float = 0.0  # % of half-time leads converted into a win


@dataclass(frozen=True)
class HeadToHeadRecord:
    """A team's record against one opponent."""
    opponent_id: str
    matches_played: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0
    last_result: Optional[str] = None  # W, D or L
    avg_goals_for: float = 0.0
    avg_goals_against: float = 0.0
    halftime_to_fulltime_pattern: TransitionMatrix = field(default_factory=TransitionMatrix.default)


@dataclass(frozen=True)
class HistoricalFeatures:
    """Sample sizes and outcome rates over the fetched history."""
    total_matches_played: int = 0
    home_matches_played: int = 0
    away_matches_played: int = 0
    home_win_percentage: float = 0.0
    away_win_percentage: float = 0.0
    draw_percentage: float = 0.0
    head_to_head_records: tuple[HeadToHeadRecord, ...] = ()


@dataclass(frozen=True)
class TeamFeatures:
    """All features extracted for one team."""
    team_id: str
    last_updated: datetime = field(default_factory=get_current_time)
    form_features: FormFeatures = field(default_factory=FormFeatures)
    goal_features: GoalFeatures = field(default_factory=GoalFeatures)
    historical_features: HistoricalFeatures = field(default_factory=HistoricalFeatures)

    @classmethod
    def empty(cls, team_id: str) -> "TeamFeatures":
        """Neutral features for a team without usable history."""
        return cls(team_id=team_id)

    @property
    def has_history(self) -> bool:
        return self.historical_features.total_matches_played > 0

    def with_head_to_head(self, record: HeadToHeadRecord) -> "TeamFeatures":
        historical = replace(
            self.historical_features,
            head_to_head_records=self.historical_features.head_to_head_records + (record,),
        )
        return replace(self, historical_features=historical)


@dataclass(frozen=True)
class HeadToHeadFeatures:
    """
    Head-to-head summary oriented to the fixture being predicted.

    `home_advantage` is the fraction of meetings won by the team that is at home
    in the current fixture, whichever venue those meetings were played at. The
    transition matrix and half-time state counts use the same orientation.
    """
    matches_played: int = 0
    home_advantage: float = 0.0
    draw_rate: float = 0.0
    away_advantage: float = 0.0
    avg_goals: float = 0.0
    btts_rate: float = 0.0
    half_time_state_counts: tuple[int, int, int] = (0, 0, 0)
    transition_matrix: TransitionMatrix = field(default_factory=TransitionMatrix.default)

    @classmethod
    def empty(cls) -> "HeadToHeadFeatures":
        return cls()


@dataclass(frozen=True)
class HalfTimeState:
    """Known half-time score of the fixture being predicted."""
    home_goals: int
    away_goals: int

    @property
    def goal_difference(self) -> int:
        return self.home_goals - self.away_goals


@dataclass(frozen=True)
class FeatureBundle:
    """Everything the models need for one fixture."""
    home_team: TeamFeatures
    away_team: TeamFeatures
    head_to_head: HeadToHeadFeatures
    halftime_state: Optional[HalfTimeState] = None
