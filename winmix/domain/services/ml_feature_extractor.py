"""
ML Feature Extractor

Centralizes the logic for creating feature vectors for ML models.
"""

from typing import List

from winmix.domain.entities.features import FeatureBundle, TeamFeatures
from winmix.utils.number_utils import safe_mean

FEATURE_NAMES = [
    "home_form_at_home",
    "away_form_away",
    "home_momentum",
    "away_momentum",
    "home_streak",
    "away_streak",
    "home_goals_scored_home",
    "home_goals_conceded_home",
    "away_goals_scored_away",
    "away_goals_conceded_away",
    "home_clean_sheet_pct_home",
    "away_clean_sheet_pct_away",
    "home_lead_holding",
    "away_comeback_ability",
    "h2h_matches",
    "h2h_home_advantage",
    "h2h_draw_rate",
    "h2h_avg_goals",
]

FEATURE_DESCRIPTIONS = {
    "home_form_at_home": "Home side's recent results at home",
    "away_form_away": "Away side's recent results on the road",
    "home_momentum": "Home side's form trend",
    "away_momentum": "Away side's form trend",
    "home_streak": "Home side's current streak",
    "away_streak": "Away side's current streak",
    "home_goals_scored_home": "Home side's goals scored at home",
    "home_goals_conceded_home": "Home side's goals conceded at home",
    "away_goals_scored_away": "Away side's goals scored away",
    "away_goals_conceded_away": "Away side's goals conceded away",
    "home_clean_sheet_pct_home": "Home side's clean sheets at home (%)",
    "away_clean_sheet_pct_away": "Away side's clean sheets away (%)",
    "home_lead_holding": "Home side's half-time leads held (%)",
    "away_comeback_ability": "Away side's half-time deficits recovered (%)",
    "h2h_matches": "Head-to-head meetings",
    "h2h_home_advantage": "Head-to-head win rate of the home side",
    "h2h_draw_rate": "Head-to-head draw rate",
    "h2h_avg_goals": "Head-to-head goals per match",
}


class MLFeatureExtractor:
    """
    Service for extracting a flat feature vector from a FeatureBundle.
    """

    @staticmethod
    def extract_features(bundle: FeatureBundle) -> List[float]:
        """
        Extract a standardized feature vector, ordered as FEATURE_NAMES.
        """
        home, away, h2h = bundle.home_team, bundle.away_team, bundle.head_to_head
        return [
            MLFeatureExtractor._form(home.form_features.recent_form_home),
            MLFeatureExtractor._form(away.form_features.recent_form_away),
            float(home.form_features.momentum_score),
            float(away.form_features.momentum_score),
            float(home.form_features.current_streak),
            float(away.form_features.current_streak),
            float(home.goal_features.avg_goals_scored_home),
            float(home.goal_features.avg_goals_conceded_home),
            float(away.goal_features.avg_goals_scored_away),
            float(away.goal_features.avg_goals_conceded_away),
            float(home.goal_features.clean_sheet_percentage_home),
            float(away.goal_features.clean_sheet_percentage_away),
            float(home.goal_features.lead_holding),
            float(away.goal_features.comeback_ability),
            float(h2h.matches_played),
            float(h2h.home_advantage),
            float(h2h.draw_rate),
            float(h2h.avg_goals),
        ]

    @staticmethod
    def _form(values) -> float:
        # Neutral 0.5 (a draw) when there is no form to average
        return float(safe_mean(values, default=0.5))

    @staticmethod
    def form_average(team: TeamFeatures, venue: str) -> float:
        values = (
            team.form_features.recent_form_home
            if venue == "home"
            else team.form_features.recent_form_away
        )
        return MLFeatureExtractor._form(values)
