"""
Ensemble Combiner

Merges per-model predictions into one FinalPrediction using the current
ensemble weights.
"""

import logging
from itertools import combinations
from typing import Mapping

from winmix.domain.constants import DISAGREEMENT_PENALTY, DISAGREEMENT_THRESHOLD
from winmix.domain.entities.prediction import FinalPrediction, ModelPrediction
from winmix.domain.entities.prediction_feedback import EnsembleWeights
from winmix.domain.value_objects.value_objects import OutcomeProbabilities
from winmix.utils.number_utils import clamp

logger = logging.getLogger(__name__)


class EnsembleCombiner:
    """
    Weighted arithmetic mean of model outputs.

    Weights are restricted to the models that actually produced a prediction
    and renormalized, so excluding a failed model never breaks the sum-to-one
    property of the result.
    """

    def __init__(
        self,
        disagreement_threshold: float = DISAGREEMENT_THRESHOLD,
        disagreement_penalty: float = DISAGREEMENT_PENALTY,
    ):
        self.disagreement_threshold = disagreement_threshold
        self.disagreement_penalty = disagreement_penalty

    def combine(
        self,
        predictions: Mapping[str, ModelPrediction],
        weights: EnsembleWeights,
    ) -> FinalPrediction:
        """
        Combine model predictions.

        Args:
            predictions: Successful model outputs keyed by model name
            weights: Weight snapshot; models missing from it get no weight

        Returns:
            FinalPrediction with renormalized probabilities

        Raises:
            ValueError: No predictions to combine
        """
        if not predictions:
            raise ValueError("No model predictions to combine")

        effective = self.effective_weights(predictions, weights)

        combined = [0.0, 0.0, 0.0]
        confidence = 0.0
        for name, prediction in predictions.items():
            w = effective[name]
            for i, p in enumerate(prediction.probabilities.as_tuple()):
                combined[i] += w * p
            confidence += w * prediction.confidence

        probabilities = OutcomeProbabilities.from_weights(*combined)

        disagreement = self.disagreement(predictions)
        if disagreement > self.disagreement_threshold:
            logger.debug(f"Models disagree by {disagreement:.3f}, penalizing confidence")
            confidence *= self.disagreement_penalty

        return FinalPrediction(
            probabilities=probabilities,
            most_likely_outcome=probabilities.most_likely_outcome,
            confidence_score=clamp(confidence),
            model_weights=effective,
            disagreement=disagreement,
        )

    @staticmethod
    def effective_weights(
        predictions: Mapping[str, ModelPrediction],
        weights: EnsembleWeights,
    ) -> dict[str, float]:
        """Weights of the present models, renormalized; equal split if all are zero."""
        raw = {name: weights.get(name) for name in predictions}
        total = sum(raw.values())
        if total <= 0:
            return {name: 1 / len(raw) for name in raw}
        return {name: w / total for name, w in raw.items()}

    @staticmethod
    def disagreement(predictions: Mapping[str, ModelPrediction]) -> float:
        """Max pairwise absolute difference across models for the same outcome."""
        triples = [p.probabilities.as_tuple() for p in predictions.values()]
        spread = 0.0
        for a, b in combinations(triples, 2):
            spread = max(spread, max(abs(x - y) for x, y in zip(a, b)))
        return spread
