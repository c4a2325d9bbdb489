"""
Unit Tests for Feature Extractor

Uses the Arsenal / Chelsea history from conftest.
"""

import asyncio
from datetime import date

import pytest

from winmix.domain.entities.prediction import MatchContext
from winmix.domain.services.feature_extractor import FeatureExtractor
from winmix.domain.value_objects.value_objects import TransitionMatrix

from conftest import make_match


class TestTeamFeatures:
    """Tests for get_team_features."""

    def test_home_and_away_splits(self, extractor):
        features = asyncio.run(extractor.get_team_features("Arsenal"))

        hist = features.historical_features
        assert hist.home_matches_played == 7
        assert hist.away_matches_played == 4
        assert hist.total_matches_played == 11

    def test_form_uses_five_most_recent(self, extractor):
        form = asyncio.run(extractor.get_team_features("Arsenal")).form_features
        assert form.recent_form_home == (1.0, 1.0, 0.5, 1.0, 1.0)
        assert form.recent_form_away == (1.0, 0.5, 1.0, 0.0)
        assert len(form.recent_form_overall) == 5

    def test_streak_and_momentum(self, extractor):
        form = asyncio.run(extractor.get_team_features("Arsenal")).form_features
        assert form.current_streak == 3
        assert form.streak_type == "WIN"
        assert form.momentum_score == pytest.approx(0.05)

    def test_goal_features(self, extractor):
        goals = asyncio.run(extractor.get_team_features("Arsenal")).goal_features
        assert goals.avg_goals_scored_home == 2.0
        assert goals.avg_goals_conceded_home == 0.71
        assert goals.clean_sheet_percentage_home == 28.6
        assert goals.lead_holding == 100.0
        assert goals.comeback_ability == 75.0

    def test_mixed_streak(self, extractor):
        form = asyncio.run(extractor.get_team_features("Chelsea")).form_features
        assert (form.current_streak, form.streak_type) == (0, "MIXED")

    def test_unknown_team_gets_neutral_features(self, extractor):
        features = asyncio.run(extractor.get_team_features("Nobody FC"))
        assert not features.has_history
        assert features.form_features.recent_form_home == ()
        assert features.form_features.current_streak == 0
        assert features.goal_features.avg_goals_scored_home == 0.0
        assert features.goal_features.btts_percentage_away == 0.0

    def test_context_date_limits_history(self, extractor, repository):
        context = MatchContext(date=date(2024, 2, 1))
        features = asyncio.run(extractor.get_team_features("Arsenal", context))
        assert features.historical_features.home_matches_played == 5
        assert all(f.date_to is not None for f, _ in repository.queries)

    def test_fetches_are_limited_to_ten(self, extractor, repository):
        asyncio.run(extractor.get_team_features("Arsenal"))
        assert {limit for _, limit in repository.queries} == {10}


class TestHeadToHeadFeatures:
    """Tests for get_head_to_head_features."""

    def test_oriented_to_current_home_team(self, extractor):
        h2h, matches = asyncio.run(extractor.get_head_to_head_features("Arsenal", "Chelsea"))

        assert len(matches) == 5
        assert h2h.matches_played == 5
        assert h2h.home_advantage == pytest.approx(0.6)
        assert h2h.draw_rate == pytest.approx(0.2)
        assert h2h.away_advantage == pytest.approx(0.2)
        assert h2h.avg_goals == pytest.approx(2.2)
        assert h2h.btts_rate == pytest.approx(0.4)
        assert h2h.half_time_state_counts == (2, 1, 2)

    def test_reversed_fixture_flips_advantage(self, extractor):
        h2h, _ = asyncio.run(extractor.get_head_to_head_features("Chelsea", "Arsenal"))
        assert h2h.home_advantage == pytest.approx(0.2)
        assert h2h.away_advantage == pytest.approx(0.6)

    def test_transition_matrix_smoothed_toward_default(self, extractor):
        h2h, _ = asyncio.run(extractor.get_head_to_head_features("Arsenal", "Chelsea"))
        matrix = h2h.transition_matrix

        assert matrix.row("H") == pytest.approx((0.825, 0.125, 0.05))
        assert matrix.row("D") == pytest.approx((1.7 / 3, 0.2, 0.7 / 3))
        assert matrix.row("A") == pytest.approx((0.05, 0.375, 0.575))
        for row in matrix.rows():
            assert sum(row) == pytest.approx(1.0, abs=1e-6)

    def test_no_meetings_gives_default_matrix(self, extractor):
        h2h, matches = asyncio.run(extractor.get_head_to_head_features("Arsenal", "Nobody FC"))
        assert matches == []
        assert h2h.matches_played == 0
        assert h2h.home_advantage == 0.0
        assert h2h.transition_matrix == TransitionMatrix.default()

    def test_head_to_head_record(self, extractor):
        _, matches = asyncio.run(extractor.get_head_to_head_features("Arsenal", "Chelsea"))
        record = FeatureExtractor.build_head_to_head_record("Chelsea", "Arsenal", matches)

        assert record.opponent_id == "Arsenal"
        assert (record.wins, record.draws, record.losses) == (1, 1, 3)
        assert record.last_result == "L"


class TestHelpers:
    """Tests for the streak and momentum helpers."""

    def test_loss_streak_is_negative(self):
        matches = [make_match("A", "B", (0, 1), days_ago=i) for i in range(3)]
        assert FeatureExtractor.calculate_streak(matches, "A") == (-3, "LOSS")
        assert FeatureExtractor.calculate_streak(matches, "B") == (3, "WIN")

    def test_draw_streak(self):
        matches = [make_match("A", "B", (1, 1), days_ago=i) for i in range(2)]
        assert FeatureExtractor.calculate_streak(matches, "A") == (2, "DRAW")

    def test_single_match_streak(self):
        assert FeatureExtractor.calculate_streak([make_match("A", "B", (2, 0))], "A") == (1, "WIN")

    def test_momentum_improving_and_declining(self):
        improving = [
            make_match("A", "B", (1, 0), days_ago=1),
            make_match("A", "B", (1, 0), days_ago=2),
            make_match("A", "B", (0, 1), days_ago=3),
            make_match("A", "B", (0, 1), days_ago=4),
        ]
        assert FeatureExtractor.calculate_momentum(improving, "A") == 1.0
        assert FeatureExtractor.calculate_momentum(improving, "B") == -1.0

    def test_momentum_needs_two_matches(self):
        assert FeatureExtractor.calculate_momentum([make_match("A", "B", (1, 0))], "A") == 0.0

    def test_empty_transition_sample_is_default(self):
        assert FeatureExtractor.calculate_transition_matrix([]) == TransitionMatrix.default()
