"""
Prediction Entities Module

Input and output snapshots of the prediction engine. All are computed per
request and never mutated afterwards.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from winmix.domain.value_objects.value_objects import OutcomeProbabilities, ScoreProbability


@dataclass(frozen=True)
class MatchContext:
    """Optional fixture context, used only to filter the history that features are built from."""
    season: Optional[str] = None
    date: Optional[date] = None
    competition: Optional[str] = None


@dataclass(frozen=True)
class PredictionInput:
    """
    A fixture to predict.

    Half-time goals are supplied for in-match updates; a single missing side
    counts as 0 when the other side is given.
    """
    home_team: str
    away_team: str
    halftime_home_goals: Optional[int] = None
    halftime_away_goals: Optional[int] = None
    match_context: Optional[MatchContext] = None

    @property
    def has_halftime(self) -> bool:
        return self.halftime_home_goals is not None or self.halftime_away_goals is not None


@dataclass(frozen=True)
class FeatureImportance:
    """One feature's contribution to a model's prediction."""
    feature_name: str
    importance: float
    value: float
    description: str = ""


@dataclass(frozen=True)
class ScorelinePrediction:
    """Most likely exact scores."""
    most_likely_score: str
    score_probabilities: tuple[ScoreProbability, ...] = ()


@dataclass(frozen=True)
class ModelPrediction:
    """
    Output of a single model.

    key_features are ranked by importance, highest first.
    """
    probabilities: OutcomeProbabilities
    confidence: float
    key_features: tuple[FeatureImportance, ...] = ()
    scorelines: Optional[ScorelinePrediction] = None

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence must be between 0 and 1, got {self.confidence}")


@dataclass(frozen=True)
class FinalPrediction:
    """Ensemble result."""
    probabilities: OutcomeProbabilities
    most_likely_outcome: str
    confidence_score: float
    model_weights: dict[str, float] = field(default_factory=dict)
    disagreement: float = 0.0


@dataclass(frozen=True)
class ModelExplanation:
    """Per-model explanation attached to a prediction."""
    model_name: str
    weight: float
    prediction: OutcomeProbabilities
    confidence: float
    key_features: tuple[FeatureImportance, ...] = ()


@dataclass(frozen=True)
class PredictionMetadata:
    model_version: str
    prediction_timestamp: datetime
    data_quality_score: float
    prediction_confidence: str  # LOW, MEDIUM or HIGH
    warning_flags: tuple[str, ...] = ()


@dataclass(frozen=True)
class PredictionOutput:
    """Complete, structurally whole prediction for one fixture."""
    home_team: str
    away_team: str
    home_win_probability: float
    draw_probability: float
    away_win_probability: float
    most_likely_outcome: str
    confidence_score: float
    model_explanations: tuple[ModelExplanation, ...]
    prediction_metadata: PredictionMetadata
    scoreline_predictions: Optional[ScorelinePrediction] = None

    @property
    def probabilities(self) -> OutcomeProbabilities:
        return OutcomeProbabilities(
            self.home_win_probability, self.draw_probability, self.away_win_probability
        )


@dataclass(frozen=True)
class PredictionFailure:
    """Typed marker for a batch element that could not be predicted."""
    index: int
    home_team: str
    away_team: str
    error_type: str
    message: str
