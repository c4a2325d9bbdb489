"""
Learning Service Module

Domain service for continuous learning based on settled predictions.
Holds the process-wide ensemble weights and persists them to a JSON file for
cross-restart learning.
"""

import json
import logging
import math
import os
import threading
import uuid
from collections import deque
from datetime import datetime
from typing import Callable, Deque, Dict, Optional

from winmix.domain.constants import (
    AWAY,
    DRAW,
    HOME,
    OUTCOMES,
    PERFORMANCE_WINDOW,
    WEIGHT_FLOOR,
    WEIGHT_LEARNING_RATE,
)
from winmix.domain.entities.prediction import PredictionOutput
from winmix.domain.entities.prediction_feedback import (
    EnsembleWeights,
    ModelPerformance,
    PredictionAccuracy,
    PredictionFeedback,
)
from winmix.utils.time_utils import get_current_time

logger = logging.getLogger(__name__)

LOG_LOSS_EPSILON = 1e-15


class EnsembleWeightStore:
    """
    Copy-on-write holder of the current EnsembleWeights snapshot.

    Readers call snapshot() once per prediction and keep the immutable object
    they got; writers build a complete new snapshot and swap it in under a
    lock, so a reader never sees a partially updated map.
    """

    def __init__(self, initial: Optional[EnsembleWeights] = None):
        self._weights = initial or EnsembleWeights()
        self._lock = threading.Lock()

    def snapshot(self) -> EnsembleWeights:
        return self._weights

    def replace(self, weights: EnsembleWeights) -> None:
        with self._lock:
            self._weights = weights

    def update(self, fn: Callable[[EnsembleWeights], EnsembleWeights]) -> EnsembleWeights:
        """Apply fn to the current snapshot and swap in its result atomically."""
        with self._lock:
            self._weights = fn(self._weights)
            return self._weights


class LearningService:
    """
    Service for managing continuous learning from prediction feedback.

    Responsibilities:
    - Evaluate a settled prediction against the final score
    - Track a rolling per-model accuracy window
    - Nudge ensemble weights toward recent accuracy and persist them
    """

    DEFAULT_WEIGHTS_PATH = "ensemble_weights.json"

    def __init__(
        self,
        weight_store: Optional[EnsembleWeightStore] = None,
        weights_path: Optional[str] = None,
        learning_rate: float = WEIGHT_LEARNING_RATE,
        weight_floor: float = WEIGHT_FLOOR,
        window: int = PERFORMANCE_WINDOW,
    ):
        """
        Initialize learning service.

        Args:
            weight_store: Shared weight holder read by the prediction engine
            weights_path: Path to JSON file for persisting weights
            learning_rate: Share of the accuracy target blended in per feedback
            weight_floor: Minimum weight any model keeps before renormalizing
            window: Number of recent feedbacks kept per model
        """
        self.weights_path = weights_path or self.DEFAULT_WEIGHTS_PATH
        self.learning_rate = learning_rate
        self.weight_floor = weight_floor
        self.window = window
        self._history: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self.weight_store = weight_store or EnsembleWeightStore()
        self._load_weights()

    @property
    def weights(self) -> EnsembleWeights:
        return self.weight_store.snapshot()

    def _load_weights(self) -> None:
        """Load weights and accuracy history from JSON file, if present."""
        if not os.path.exists(self.weights_path):
            logger.info(f"No weights file found at {self.weights_path}, using defaults")
            return

        try:
            with open(self.weights_path, "r") as f:
                data = json.load(f)

            last_updated = data.get("last_updated")
            weights = EnsembleWeights.normalized(
                data["model_weights"],
                version=int(data.get("version", 1)),
                last_updated=datetime.fromisoformat(last_updated) if last_updated else get_current_time(),
            )
            self.weight_store.replace(weights)
            self._history = {
                name: deque((float(v) for v in values), maxlen=self.window)
                for name, values in data.get("accuracy_history", {}).items()
                if name in weights.as_dict()
            }
            logger.info(f"Loaded ensemble weights v{weights.version} from {self.weights_path}")
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error(f"Failed to load weights: {e}, using defaults")

    def _save_weights(self) -> None:
        """Save weights and accuracy history to JSON file."""
        weights = self.weights
        data = {
            "model_weights": weights.as_dict(),
            "version": weights.version,
            "last_updated": weights.last_updated.isoformat(),
            "accuracy_history": {name: list(values) for name, values in self._history.items()},
        }
        try:
            with open(self.weights_path, "w") as f:
                json.dump(data, f, indent=2)
            logger.info(f"Saved ensemble weights to {self.weights_path}")
        except OSError as e:
            logger.error(f"Failed to save weights: {e}")

    @staticmethod
    def actual_result(home_goals: int, away_goals: int) -> str:
        if home_goals > away_goals:
            return HOME
        if home_goals < away_goals:
            return AWAY
        return DRAW

    def evaluate_prediction(
        self,
        prediction: PredictionOutput,
        home_goals: int,
        away_goals: int,
        prediction_id: Optional[str] = None,
    ) -> PredictionFeedback:
        """
        Score a prediction against the final result.

        Args:
            prediction: The prediction that was served
            home_goals: Final home goals
            away_goals: Final away goals
            prediction_id: Identifier of the served prediction (generated if omitted)

        Returns:
            PredictionFeedback with Brier score, log loss and per-model accuracy
        """
        if home_goals < 0 or away_goals < 0:
            raise ValueError("Goal counts cannot be negative")

        actual = self.actual_result(home_goals, away_goals)
        probs = prediction.probabilities
        p_actual = probs.get(actual)

        brier = sum(
            (p - (1.0 if outcome == actual else 0.0)) ** 2
            for outcome, p in zip(OUTCOMES, probs.as_tuple())
        )
        scorelines = prediction.scoreline_predictions
        score_correct = bool(
            scorelines and scorelines.most_likely_score == f"{home_goals}-{away_goals}"
        )

        accuracy = PredictionAccuracy(
            outcome_correct=prediction.most_likely_outcome == actual,
            score_correct=score_correct,
            probability_error=round(1 - p_actual, 6),
            brier_score=round(brier, 6),
            log_loss=round(-math.log(max(p_actual, LOG_LOSS_EPSILON)), 6),
        )

        performances = []
        for explanation in prediction.model_explanations:
            correct = explanation.prediction.most_likely_outcome == actual
            performances.append(ModelPerformance(
                model_name=explanation.model_name,
                individual_accuracy=correct,
                contribution_score=round(explanation.prediction.get(actual), 6),
                # Confident and right (or unsure and wrong) counts as reliable
                feature_reliability=round(
                    explanation.confidence if correct else 1 - explanation.confidence, 6
                ),
            ))

        return PredictionFeedback(
            prediction_id=prediction_id or str(uuid.uuid4()),
            actual_result=actual,
            actual_home_goals=home_goals,
            actual_away_goals=away_goals,
            prediction_accuracy=accuracy,
            model_performance=tuple(performances),
        )

    def register_feedback(self, feedback: PredictionFeedback) -> EnsembleWeights:
        """
        Register feedback and update ensemble weights.

        Each model's weight moves `learning_rate` of the way toward its share
        of recent accuracy, then every weight is floored and the map
        renormalized. Models without feedback history keep their share.

        Args:
            feedback: Settled prediction feedback

        Returns:
            The new weight snapshot
        """
        with self._lock:
            known = self.weights.as_dict()
            for performance in feedback.model_performance:
                # Only models in the weight map are tracked
                if performance.model_name not in known:
                    logger.warning(f"Ignoring feedback for unknown model {performance.model_name}")
                    continue
                history = self._history.setdefault(
                    performance.model_name, deque(maxlen=self.window)
                )
                history.append(1.0 if performance.individual_accuracy else 0.0)

            accuracy = {
                name: sum(values) / len(values)
                for name, values in self._history.items()
                if values
            }
            new_weights = self.weight_store.update(lambda current: self._nudge(current, accuracy))
            self._save_weights()

        logger.info(
            f"Registered feedback for {feedback.prediction_id} ({feedback.actual_result}): "
            f"weights v{new_weights.version} {new_weights.as_dict()}"
        )
        return new_weights

    def _nudge(self, current: EnsembleWeights, accuracy: Dict[str, float]) -> EnsembleWeights:
        weights = current.as_dict()
        tracked = [name for name in weights if name in accuracy]
        total_accuracy = sum(accuracy[name] for name in tracked)
        if total_accuracy <= 0:
            return current

        # Accuracy shares only redistribute the mass the tracked models hold
        tracked_mass = sum(weights[name] for name in tracked)
        targets = dict(weights)
        for name in tracked:
            targets[name] = tracked_mass * accuracy[name] / total_accuracy

        updated = {
            name: max(
                self.weight_floor,
                (1 - self.learning_rate) * w + self.learning_rate * targets[name],
            )
            for name, w in weights.items()
        }
        return EnsembleWeights.normalized(
            updated, version=current.version + 1, last_updated=get_current_time()
        )

    def get_model_accuracy(self) -> Dict[str, float]:
        """Rolling accuracy per model over the feedback window."""
        with self._lock:
            return {
                name: round(sum(values) / len(values), 4)
                for name, values in self._history.items()
                if values
            }

    def reset_weights(self) -> EnsembleWeights:
        """Reset weights and accuracy history to defaults."""
        with self._lock:
            self._history = {}
            self.weight_store.replace(EnsembleWeights())
            self._save_weights()
        logger.info("Reset ensemble weights to defaults")
        return self.weights
