"""
Confidence Calculator Service Module

Calculates data quality, confidence tiers and qualitative assessments for
ensemble predictions.
"""

from typing import Any, Dict

from winmix.domain.constants import (
    HEAD_TO_HEAD_LIMIT,
    HIGH_CONFIDENCE_THRESHOLD,
    MEDIUM_CONFIDENCE_THRESHOLD,
    RECENT_MATCHES_LIMIT,
)
from winmix.domain.entities.features import HeadToHeadFeatures, TeamFeatures
from winmix.domain.entities.prediction import PredictionOutput

# Head-to-head vs per-team sample contribution to data quality
H2H_QUALITY_WEIGHT = 0.4
TEAM_QUALITY_WEIGHT = 0.6
MIN_DATA_QUALITY = 0.1


class ConfidenceCalculator:
    """
    Turns sample sizes and ensemble confidence into quality scores and tiers.
    """

    @staticmethod
    def assess_data_quality(
        home_team: TeamFeatures,
        away_team: TeamFeatures,
        head_to_head: HeadToHeadFeatures,
    ) -> float:
        """
        Assess quality of historical data (0.1 - 1.0).

        10 meetings and a full home + away sample for both teams
        (4 x RECENT_MATCHES_LIMIT matches) is considered perfect. Never 0, so
        a fixture without history still gets a usable, low score.
        """
        h2h_adequacy = min(1.0, head_to_head.matches_played / HEAD_TO_HEAD_LIMIT)
        team_matches = (
            home_team.historical_features.total_matches_played
            + away_team.historical_features.total_matches_played
        )
        team_adequacy = min(1.0, team_matches / (4 * RECENT_MATCHES_LIMIT))

        adequacy = H2H_QUALITY_WEIGHT * h2h_adequacy + TEAM_QUALITY_WEIGHT * team_adequacy
        return round(MIN_DATA_QUALITY + (1 - MIN_DATA_QUALITY) * adequacy, 4)

    @staticmethod
    def confidence_tier(confidence: float, data_quality: float) -> str:
        """HIGH / MEDIUM / LOW; both confidence and data quality must clear the bar."""
        score = min(confidence, data_quality)
        if score >= HIGH_CONFIDENCE_THRESHOLD:
            return "HIGH"
        if score >= MEDIUM_CONFIDENCE_THRESHOLD:
            return "MEDIUM"
        return "LOW"

    @staticmethod
    def assess_prediction_quality(prediction: PredictionOutput) -> Dict[str, str]:
        """
        Qualitative verdict for display.

        Returns:
            Dict with 'level' (EXCELLENT, GOOD, FAIR or POOR) and 'message'
        """
        confidence = prediction.confidence_score
        quality = prediction.prediction_metadata.data_quality_score

        if confidence >= 0.8 and quality >= 0.8:
            return {"level": "EXCELLENT", "message": "Excellent prediction quality"}
        if confidence >= 0.6 and quality >= 0.6:
            return {"level": "GOOD", "message": "Good prediction quality"}
        if confidence >= 0.4 and quality >= 0.4:
            return {"level": "FAIR", "message": "Acceptable prediction quality"}
        return {"level": "POOR", "message": "Poor prediction quality, use with caution"}

    @staticmethod
    def analyze_trends(prediction: PredictionOutput) -> Dict[str, Any]:
        """
        Describe the shape of the outcome distribution.

        Spread is max minus min outcome probability:
        > 0.4 HIGH certainty, > 0.2 MEDIUM, else LOW; < 0.15 is a close match.
        A surprise is unlikely (LOW) when even the least likely outcome keeps
        more than 25%.
        """
        probs = prediction.probabilities.as_tuple()
        max_prob, min_prob = max(probs), min(probs)
        spread = max_prob - min_prob

        if spread > 0.4:
            certainty = "HIGH"
        elif spread > 0.2:
            certainty = "MEDIUM"
        else:
            certainty = "LOW"

        return {
            "dominant_outcome": prediction.most_likely_outcome,
            "certainty_level": certainty,
            "is_close_match": spread < 0.15,
            "surprise_factor": "LOW" if min_prob > 0.25 else "HIGH",
        }
