"""
Feature Extractor

Turns recent match history into TeamFeatures and HeadToHeadFeatures for the
prediction models. Queries go through the MatchRepository interface; every
computation is guarded against empty samples and falls back to neutral values.
"""

import asyncio
import logging
from datetime import datetime, time
from typing import Optional, Sequence

from winmix.domain.constants import (
    AWAY,
    DRAW,
    FORM_WINDOW,
    HEAD_TO_HEAD_LIMIT,
    HOME,
    OUTCOME_VALUE,
    OUTCOMES,
    RECENT_MATCHES_LIMIT,
    TRANSITION_PRIOR_STRENGTH,
)
from winmix.domain.entities.entities import MatchRecord
from winmix.domain.entities.features import (
    FormFeatures,
    GoalFeatures,
    HeadToHeadFeatures,
    HeadToHeadRecord,
    HistoricalFeatures,
    TeamFeatures,
)
from winmix.domain.entities.prediction import MatchContext
from winmix.domain.repositories.repositories import MatchFilter, MatchRepository
from winmix.domain.value_objects.value_objects import TransitionMatrix
from winmix.utils.number_utils import percentage, round_half_up, safe_mean
from winmix.utils.time_utils import get_current_time

logger = logging.getLogger(__name__)

STREAK_TYPES = {"W": "WIN", "D": "DRAW", "L": "LOSS"}
FLIPPED = {HOME: AWAY, AWAY: HOME, DRAW: DRAW}


def context_filter_kwargs(context: Optional[MatchContext]) -> dict:
    """Translate a match context into MatchFilter keys."""
    if context is None:
        return {}
    kwargs = {}
    if context.competition:
        kwargs["competition"] = context.competition
    if context.season:
        kwargs["season"] = context.season
    if context.date:
        # Only history strictly before the fixture date
        kwargs["date_to"] = datetime.combine(context.date, time.min)
    return kwargs


class FeatureExtractor:
    """
    Service for extracting model features from match history.
    """

    def __init__(self, repository: MatchRepository):
        self.repository = repository

    async def get_team_features(
        self,
        team: str,
        context: Optional[MatchContext] = None,
    ) -> TeamFeatures:
        """
        Extract form, goal and historical features for a team.

        Fetches the most recent home and away matches independently.

        Args:
            team: Team name
            context: Optional fixture context used to filter history

        Returns:
            TeamFeatures; neutral values when the team has no history
        """
        extra = context_filter_kwargs(context)
        home_matches, away_matches = await asyncio.gather(
            self.repository.query_matches(
                MatchFilter(home_team=team, **extra), limit=RECENT_MATCHES_LIMIT
            ),
            self.repository.query_matches(
                MatchFilter(away_team=team, **extra), limit=RECENT_MATCHES_LIMIT
            ),
        )
        if not home_matches and not away_matches:
            logger.info(f"No recent matches found for {team}, using neutral features")
        return self.build_team_features(team, home_matches, away_matches)

    async def get_head_to_head_features(
        self,
        home_team: str,
        away_team: str,
        context: Optional[MatchContext] = None,
    ) -> tuple[HeadToHeadFeatures, list[MatchRecord]]:
        """
        Extract head-to-head features for the fixture home_team vs away_team.

        Returns:
            The features and the meetings they were computed from (newest first)
        """
        matches = await self.repository.query_matches(
            MatchFilter(team=home_team, opponent=away_team, **context_filter_kwargs(context)),
            limit=HEAD_TO_HEAD_LIMIT,
        )
        return self.build_head_to_head_features(home_team, matches), matches

    # ------------------------------------------------------------------
    # Pure builders
    # ------------------------------------------------------------------

    @classmethod
    def build_team_features(
        cls,
        team: str,
        home_matches: Sequence[MatchRecord],
        away_matches: Sequence[MatchRecord],
    ) -> TeamFeatures:
        # Newest first, home and away merged by kick-off time
        all_matches = sorted(
            list(home_matches) + list(away_matches),
            key=lambda m: m.match_time,
            reverse=True,
        )

        streak, streak_type = cls.calculate_streak(all_matches, team)
        form = FormFeatures(
            recent_form_home=cls._form_values(home_matches[:FORM_WINDOW], team),
            recent_form_away=cls._form_values(away_matches[:FORM_WINDOW], team),
            recent_form_overall=cls._form_values(all_matches[:FORM_WINDOW], team),
            current_streak=streak,
            streak_type=streak_type,
            momentum_score=cls.calculate_momentum(all_matches, team),
        )

        n_home, n_away = len(home_matches), len(away_matches)
        goals = GoalFeatures(
            avg_goals_scored_home=cls._avg(m.full_time_home_goals for m in home_matches),
            avg_goals_scored_away=cls._avg(m.full_time_away_goals for m in away_matches),
            avg_goals_conceded_home=cls._avg(m.full_time_away_goals for m in home_matches),
            avg_goals_conceded_away=cls._avg(m.full_time_home_goals for m in away_matches),
            btts_percentage_home=percentage(sum(m.btts_computed for m in home_matches), n_home),
            btts_percentage_away=percentage(sum(m.btts_computed for m in away_matches), n_away),
            clean_sheet_percentage_home=percentage(
                sum(m.full_time_away_goals == 0 for m in home_matches), n_home
            ),
            clean_sheet_percentage_away=percentage(
                sum(m.full_time_home_goals == 0 for m in away_matches), n_away
            ),
            comeback_ability=cls.calculate_comeback_ability(all_matches, team),
            lead_holding=cls.calculate_lead_holding(all_matches, team),
        )

        historical = HistoricalFeatures(
            total_matches_played=len(all_matches),
            home_matches_played=n_home,
            away_matches_played=n_away,
            home_win_percentage=percentage(
                sum(m.result_computed == HOME for m in home_matches), n_home
            ),
            away_win_percentage=percentage(
                sum(m.result_computed == AWAY for m in away_matches), n_away
            ),
            draw_percentage=percentage(
                sum(m.result_computed == DRAW for m in all_matches), len(all_matches)
            ),
        )

        return TeamFeatures(
            team_id=team,
            last_updated=get_current_time(),
            form_features=form,
            goal_features=goals,
            historical_features=historical,
        )

    @classmethod
    def build_head_to_head_features(
        cls,
        home_team: str,
        matches: Sequence[MatchRecord],
    ) -> HeadToHeadFeatures:
        """
        Summarize meetings relative to the current fixture.

        Meetings where `home_team` played away are flipped, so "home" always
        means the team at home in the fixture being predicted.
        """
        n = len(matches)
        if n == 0:
            return HeadToHeadFeatures.empty()

        pairs = [cls._oriented_transition(m, home_team) for m in matches]
        results = [ft for _, ft in pairs]
        state_counts = tuple(sum(1 for ht, _ in pairs if ht == state) for state in OUTCOMES)

        return HeadToHeadFeatures(
            matches_played=n,
            home_advantage=results.count(HOME) / n,
            draw_rate=results.count(DRAW) / n,
            away_advantage=results.count(AWAY) / n,
            avg_goals=sum(m.total_goals for m in matches) / n,
            btts_rate=sum(1 for m in matches if m.btts_computed) / n,
            half_time_state_counts=state_counts,
            transition_matrix=cls.calculate_transition_matrix(pairs),
        )

    @classmethod
    def build_head_to_head_record(
        cls,
        team: str,
        opponent: str,
        matches: Sequence[MatchRecord],
    ) -> HeadToHeadRecord:
        """Team-perspective record against one opponent (matches newest first)."""
        if not matches:
            return HeadToHeadRecord(opponent_id=opponent)

        results = [m.result_for(team) for m in matches]
        goals_for = [m.full_time_home_goals if m.home_team == team else m.full_time_away_goals for m in matches]
        goals_against = [m.full_time_away_goals if m.home_team == team else m.full_time_home_goals for m in matches]

        return HeadToHeadRecord(
            opponent_id=opponent,
            matches_played=len(matches),
            wins=results.count("W"),
            draws=results.count("D"),
            losses=results.count("L"),
            last_result=results[0],
            avg_goals_for=round_half_up(safe_mean(goals_for), 2),
            avg_goals_against=round_half_up(safe_mean(goals_against), 2),
            halftime_to_fulltime_pattern=cls.calculate_transition_matrix(
                [cls._oriented_transition(m, team) for m in matches]
            ),
        )

    # ------------------------------------------------------------------
    # Helper computations
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_streak(matches: Sequence[MatchRecord], team: str) -> tuple[int, str]:
        """
        Current run of identical results, newest first.

        Returns:
            (length, type): length is negative for a loss streak; (0, "MIXED")
            without history or when the two most recent results differ
        """
        if not matches:
            return 0, "MIXED"

        results = [m.result_for(team) for m in matches]
        if len(results) > 1 and results[0] != results[1]:
            return 0, "MIXED"

        first = results[0]
        length = 0
        for result in results:
            if result != first:
                break
            length += 1

        return (-length if first == "L" else length), STREAK_TYPES[first]

    @staticmethod
    def calculate_momentum(matches: Sequence[MatchRecord], team: str) -> float:
        """
        Newer-half average outcome value minus older-half average, in [-1, 1].

        Matches are newest first; with an odd count the older half gets the
        extra match.
        """
        if len(matches) < 2:
            return 0.0

        values = [OUTCOME_VALUE[m.result_for(team)] for m in matches]
        half = len(values) // 2
        trend = safe_mean(values[:half]) - safe_mean(values[half:])
        return round_half_up(max(-1.0, min(1.0, trend)), 3)

    @staticmethod
    def calculate_comeback_ability(matches: Sequence[MatchRecord], team: str) -> float:
        """Percentage of half-time deficits the team turned into a draw or win."""
        trailing = [m for m in matches if FeatureExtractor._half_time_for(m, team) == "L"]
        recovered = sum(1 for m in trailing if m.result_for(team) != "L")
        return percentage(recovered, len(trailing))

    @staticmethod
    def calculate_lead_holding(matches: Sequence[MatchRecord], team: str) -> float:
        """Percentage of half-time leads the team converted into a win."""
        leading = [m for m in matches if FeatureExtractor._half_time_for(m, team) == "W"]
        held = sum(1 for m in leading if m.result_for(team) == "W")
        return percentage(held, len(leading))

    @staticmethod
    def calculate_transition_matrix(
        pairs: Sequence[tuple[str, str]],
        prior_strength: float = TRANSITION_PRIOR_STRENGTH,
    ) -> TransitionMatrix:
        """
        Estimate half-time -> full-time probabilities from (ht_state, ft_result) pairs.

        Each row is smoothed toward the default matrix row with `prior_strength`
        pseudo-observations, so rows without data equal the default row.
        """
        prior = TransitionMatrix.default()
        if not pairs:
            return prior

        rows = []
        for state in OUTCOMES:
            observed = [ft for ht, ft in pairs if ht == state]
            prior_row = prior.row(state)
            denominator = len(observed) + prior_strength
            if denominator <= 0:
                rows.append(prior_row)
                continue
            row = [
                (observed.count(result) + prior_strength * prior_row[i]) / denominator
                for i, result in enumerate(OUTCOMES)
            ]
            total = sum(row)
            rows.append(tuple(value / total for value in row))

        return TransitionMatrix.from_rows(rows)

    @staticmethod
    def _oriented_transition(match: MatchRecord, home_team: str) -> tuple[str, str]:
        """(half-time state, full-time result) with `home_team` treated as home."""
        ht, ft = match.half_time_state, match.result_computed
        if match.home_team != home_team:
            return FLIPPED[ht], FLIPPED[ft]
        return ht, ft

    @staticmethod
    def _half_time_for(match: MatchRecord, team: str) -> str:
        """Half-time standing from a team's perspective: 'W' leading, 'D' level, 'L' trailing."""
        state = match.half_time_state
        if state == DRAW:
            return "D"
        return "W" if (state == HOME) == (match.home_team == team) else "L"

    @staticmethod
    def _form_values(matches: Sequence[MatchRecord], team: str) -> tuple[float, ...]:
        return tuple(OUTCOME_VALUE[m.result_for(team)] for m in matches)

    @staticmethod
    def _avg(values) -> float:
        return round_half_up(safe_mean(values), 2)
