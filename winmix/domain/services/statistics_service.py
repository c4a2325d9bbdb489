"""
Statistics Domain Service

Handles calculation of descriptive match statistics from match history.
Feeds both the dashboard statistic cards and the feature extractor.
"""

from collections import Counter
from typing import Sequence

from winmix.domain.constants import AWAY, DRAW, HOME
from winmix.domain.entities.entities import (
    DetailedMatchStats,
    FrequentResult,
    GoalStats,
    HalfTimeAnalysis,
    MatchRecord,
    MatchStats,
    OverUnderStats,
)
from winmix.utils.number_utils import percentage, round_half_up

FREQUENT_RESULTS_LIMIT = 4


class StatisticsService:
    @staticmethod
    def compute_basic_stats(matches: Sequence[MatchRecord]) -> MatchStats:
        """
        Calculate outcome, BTTS, comeback and goal aggregates.

        Args:
            matches: Finished matches

        Returns:
            MatchStats; all zeros for an empty input
        """
        total = len(matches)
        if total == 0:
            return MatchStats()

        results = Counter(m.result_computed for m in matches)
        btts_count = sum(1 for m in matches if m.btts_computed)
        comeback_count = sum(1 for m in matches if m.comeback_computed)
        total_goals = sum(m.total_goals for m in matches)

        return MatchStats(
            total_matches=total,
            home_wins=results[HOME],
            draws=results[DRAW],
            away_wins=results[AWAY],
            btts_count=btts_count,
            comeback_count=comeback_count,
            avg_goals=round_half_up(total_goals / total, 1),
            home_win_percentage=percentage(results[HOME], total),
            draw_percentage=percentage(results[DRAW], total),
            away_win_percentage=percentage(results[AWAY], total),
            btts_percentage=percentage(btts_count, total),
            comeback_percentage=percentage(comeback_count, total),
        )

    @staticmethod
    def compute_detailed_stats(matches: Sequence[MatchRecord]) -> DetailedMatchStats:
        """
        Calculate basic stats plus goal, over/under, frequent-result and
        half-time breakdowns.

        Args:
            matches: Finished matches

        Returns:
            DetailedMatchStats; all zeros and no frequent results for an empty input
        """
        basic = StatisticsService.compute_basic_stats(matches)
        if not matches:
            return DetailedMatchStats(basic=basic)

        return DetailedMatchStats(
            basic=basic,
            goal_stats=StatisticsService._goal_stats(matches),
            over_under=StatisticsService._over_under(matches),
            frequent_results=StatisticsService.frequent_results(matches),
            half_time_analysis=StatisticsService._half_time_analysis(matches),
        )

    @staticmethod
    def frequent_results(
        matches: Sequence[MatchRecord],
        limit: int = FREQUENT_RESULTS_LIMIT,
    ) -> tuple[FrequentResult, ...]:
        """
        Most frequent final scorelines, count descending.

        Counter keeps first-seen order and sorted() is stable, so equal counts
        stay in the order the scorelines were first encountered.
        """
        total = len(matches)
        counts = Counter(m.scoreline for m in matches)
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return tuple(
            FrequentResult(result=result, count=count, percentage=percentage(count, total))
            for result, count in ranked[:limit]
        )

    @staticmethod
    def _goal_stats(matches: Sequence[MatchRecord]) -> GoalStats:
        total = len(matches)
        home_goals = sum(m.full_time_home_goals for m in matches)
        away_goals = sum(m.full_time_away_goals for m in matches)
        # A side keeps a clean sheet when the opponent did not score
        home_clean_sheets = sum(1 for m in matches if m.full_time_away_goals == 0)
        away_clean_sheets = sum(1 for m in matches if m.full_time_home_goals == 0)

        return GoalStats(
            home_goals_total=home_goals,
            away_goals_total=away_goals,
            home_goals_per_match=round_half_up(home_goals / total, 2),
            away_goals_per_match=round_half_up(away_goals / total, 2),
            home_clean_sheets=home_clean_sheets,
            away_clean_sheets=away_clean_sheets,
            home_clean_sheet_percentage=percentage(home_clean_sheets, total),
            away_clean_sheet_percentage=percentage(away_clean_sheets, total),
        )

    @staticmethod
    def _over_under(matches: Sequence[MatchRecord]) -> OverUnderStats:
        total = len(matches)
        over_25 = sum(1 for m in matches if m.total_goals > 2.5)
        over_35 = sum(1 for m in matches if m.total_goals > 3.5)

        return OverUnderStats(
            over_25_count=over_25,
            under_25_count=total - over_25,
            over_25_percentage=percentage(over_25, total),
            under_25_percentage=percentage(total - over_25, total),
            over_35_count=over_35,
            over_35_percentage=percentage(over_35, total),
        )

    @staticmethod
    def _half_time_analysis(matches: Sequence[MatchRecord]) -> HalfTimeAnalysis:
        # Keyed by (half-time state, full-time result)
        transitions = Counter((m.half_time_state, m.result_computed) for m in matches)

        home_leads = sum(transitions[(HOME, r)] for r in (HOME, DRAW, AWAY))
        away_leads = sum(transitions[(AWAY, r)] for r in (HOME, DRAW, AWAY))
        draws = sum(transitions[(DRAW, r)] for r in (HOME, DRAW, AWAY))

        return HalfTimeAnalysis(
            ht_home_leads=home_leads,
            ht_away_leads=away_leads,
            ht_draws=draws,
            ht_home_lead_to_win=transitions[(HOME, HOME)],
            ht_home_lead_to_draw=transitions[(HOME, DRAW)],
            ht_home_lead_to_loss=transitions[(HOME, AWAY)],
            ht_away_lead_to_win=transitions[(AWAY, AWAY)],
            ht_away_lead_to_draw=transitions[(AWAY, DRAW)],
            ht_away_lead_to_loss=transitions[(AWAY, HOME)],
            home_lead_hold_percentage=percentage(transitions[(HOME, HOME)], home_leads),
            away_lead_hold_percentage=percentage(transitions[(AWAY, AWAY)], away_leads),
        )
