"""
Prediction Feedback Entity Module

Contains entities for tracking prediction outcomes and the ensemble weights
they adjust.
"""

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Mapping

from winmix.domain.constants import DEFAULT_ENSEMBLE_WEIGHTS, PROBABILITY_TOLERANCE
from winmix.utils.time_utils import get_current_time


@dataclass(frozen=True)
class PredictionAccuracy:
    """
    How well a settled prediction did.

    Attributes:
        outcome_correct: Most likely outcome matched the result
        score_correct: Most likely scoreline matched the final score
        probability_error: 1 - probability assigned to the actual outcome
        brier_score: Multi-class Brier score (0 = perfect, 2 = worst)
        log_loss: Negative log of the probability assigned to the actual outcome
    """
    outcome_correct: bool
    score_correct: bool
    probability_error: float
    brier_score: float
    log_loss: float


@dataclass(frozen=True)
class ModelPerformance:
    """Single model's share in a settled prediction."""
    model_name: str
    individual_accuracy: bool
    contribution_score: float  # probability the model gave to the actual outcome
    feature_reliability: float = 1.0


@dataclass(frozen=True)
class PredictionFeedback:
    """
    Feedback on a settled prediction.

    Used for continuous learning to track which models were right and
    adjust ensemble weights accordingly.
    """
    prediction_id: str
    actual_result: str  # H, D or A
    actual_home_goals: int
    actual_away_goals: int
    prediction_accuracy: PredictionAccuracy
    model_performance: tuple[ModelPerformance, ...] = ()
    received_at: datetime = field(default_factory=get_current_time)


@dataclass(frozen=True)
class EnsembleWeights:
    """
    Immutable snapshot of per-model ensemble weights.

    Weights always sum to 1.0; updates build a new snapshot instead of
    mutating this one.
    """
    model_weights: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_ENSEMBLE_WEIGHTS))
    )
    version: int = 1
    last_updated: datetime = field(default_factory=get_current_time)

    def __post_init__(self):
        if not self.model_weights:
            raise ValueError("Ensemble weights cannot be empty")
        if any(w < 0 for w in self.model_weights.values()):
            raise ValueError("Ensemble weights cannot be negative")
        total = sum(self.model_weights.values())
        if abs(total - 1.0) > PROBABILITY_TOLERANCE:
            raise ValueError(f"Ensemble weights must sum to 1, got {total}")
        if not isinstance(self.model_weights, MappingProxyType):
            object.__setattr__(self, "model_weights", MappingProxyType(dict(self.model_weights)))

    @classmethod
    def normalized(cls, weights: Mapping[str, float], **kwargs) -> "EnsembleWeights":
        total = sum(weights.values())
        if total <= 0:
            raise ValueError("Cannot normalize all-zero ensemble weights")
        return cls(model_weights={name: w / total for name, w in weights.items()}, **kwargs)

    def get(self, model_name: str) -> float:
        return self.model_weights.get(model_name, 0.0)

    def as_dict(self) -> dict[str, float]:
        return dict(self.model_weights)
