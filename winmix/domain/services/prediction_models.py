"""
Prediction Models Module

Four independent outcome models sharing one capability: turn a FeatureBundle
into a home / draw / away probability triple, a confidence score and a ranked
list of contributing features.

1. EmpiricalModel - recent form, head-to-head and base rates blended linearly
2. PoissonModel - independent Poisson goal counts per side
3. MarkovModel - half-time to full-time transition matrix
4. GradientBoostedModel - pre-trained scikit-learn classifier

All models are cheap, synchronous and hold only precomputed parameters.
"""

import logging
import math
import os
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

import joblib
import numpy as np

from winmix.domain.constants import (
    AWAY,
    BASE_RATES,
    DEFAULT_AVG_AWAY_GOALS,
    DEFAULT_AVG_HOME_GOALS,
    DRAW,
    EMPIRICAL_BASE_WEIGHT,
    EMPIRICAL_FORM_WEIGHT,
    EMPIRICAL_H2H_WEIGHT,
    HEAD_TO_HEAD_LIMIT,
    HOME,
    OUTCOMES,
    POISSON_MAX_GOALS,
    PROBABILITY_TOLERANCE,
    RECENT_MATCHES_LIMIT,
)
from winmix.domain.entities.features import FeatureBundle, HalfTimeState
from winmix.domain.entities.prediction import (
    FeatureImportance,
    ModelPrediction,
    ScorelinePrediction,
)
from winmix.domain.exceptions import ModelFailureException
from winmix.domain.services.ml_feature_extractor import (
    FEATURE_DESCRIPTIONS,
    FEATURE_NAMES,
    MLFeatureExtractor,
)
from winmix.domain.value_objects.value_objects import OutcomeProbabilities, ScoreProbability
from winmix.utils.number_utils import clamp

logger = logging.getLogger(__name__)


def rank_features(features: Sequence[FeatureImportance], limit: Optional[int] = None) -> tuple[FeatureImportance, ...]:
    """Sort contributions by importance, highest first."""
    ranked = sorted(features, key=lambda f: f.importance, reverse=True)
    return tuple(ranked[:limit] if limit else ranked)


def entropy_certainty(probs: Sequence[float]) -> float:
    """
    Certainty score based on Shannon entropy: 1 = one certain outcome,
    0 = uniform over the three outcomes.
    """
    entropy = -sum(p * math.log2(p) for p in probs if p > 0)
    return clamp(1 - entropy / math.log2(3))


class PredictionModel(ABC):
    """Capability shared by every outcome model."""

    name: str = ""

    @abstractmethod
    def predict(self, features: FeatureBundle) -> ModelPrediction:
        """
        Predict the full-time outcome for one fixture.

        Raises:
            ModelFailureException: The model cannot produce a valid prediction.
        """
        pass


class EmpiricalModel(PredictionModel):
    """
    Statistical baseline.

    40% recent form differential (home side at home vs away side away),
    30% head-to-head outcome rates, 30% historical base rates. Head-to-head
    rates are shrunk toward the base rates when the sample is small.
    """

    name = "empirical"
    H2H_SHRINKAGE = 3.0

    def predict(self, features: FeatureBundle) -> ModelPrediction:
        home_form = MLFeatureExtractor.form_average(features.home_team, "home")
        away_form = MLFeatureExtractor.form_average(features.away_team, "away")
        form_diff = home_form - away_form

        # Stronger form gaps leave less room for a draw
        form_draw = BASE_RATES[1] * (1 - abs(form_diff))
        remaining = 1 - form_draw
        form_triple = (
            remaining * (0.5 + form_diff / 2),
            form_draw,
            remaining * (0.5 - form_diff / 2),
        )

        h2h = features.head_to_head
        n = h2h.matches_played
        sample_weight = n / (n + self.H2H_SHRINKAGE)
        observed = (h2h.home_advantage, h2h.draw_rate, h2h.away_advantage)
        h2h_triple = tuple(
            sample_weight * obs + (1 - sample_weight) * base
            for obs, base in zip(observed, BASE_RATES)
        )

        blended = [
            EMPIRICAL_FORM_WEIGHT * f + EMPIRICAL_H2H_WEIGHT * h + EMPIRICAL_BASE_WEIGHT * b
            for f, h, b in zip(form_triple, h2h_triple, BASE_RATES)
        ]
        probabilities = OutcomeProbabilities.from_weights(*blended)

        # More history -> higher confidence, saturating at 0.8
        confidence = 0.3 + 0.5 * (1 - math.exp(-n / 5))

        key_features = rank_features([
            FeatureImportance(
                "form_differential", EMPIRICAL_FORM_WEIGHT, round(form_diff, 3),
                "Home form at home minus away form on the road",
            ),
            FeatureImportance(
                "h2h_home_advantage", EMPIRICAL_H2H_WEIGHT * sample_weight, round(h2h.home_advantage, 3),
                "Head-to-head win rate of the home side",
            ),
            FeatureImportance(
                "base_home_rate", EMPIRICAL_BASE_WEIGHT, BASE_RATES[0],
                "Historical home win rate",
            ),
        ])

        return ModelPrediction(
            probabilities=probabilities,
            confidence=clamp(confidence),
            key_features=key_features,
        )


class PoissonModel(PredictionModel):
    """
    Independent Poisson goal model.

    Each side's rate is the mean of its goals scored at the venue and the
    opponent's goals conceded at the opposite venue. Outcome probabilities sum
    the joint mass over a 0..POISSON_MAX_GOALS grid, renormalized.
    """

    name = "poisson"
    MIN_RATE = 0.1
    TOP_SCORELINES = 5

    def __init__(self, max_goals: int = POISSON_MAX_GOALS):
        self.max_goals = max_goals

    def expected_goals(self, features: FeatureBundle) -> tuple[float, float]:
        """Expected goals (home, away), with league-average fallbacks for empty samples."""
        home, away = features.home_team, features.away_team
        home_n = home.historical_features.home_matches_played
        away_n = away.historical_features.away_matches_played

        home_attack = home.goal_features.avg_goals_scored_home if home_n else DEFAULT_AVG_HOME_GOALS
        home_defense = home.goal_features.avg_goals_conceded_home if home_n else DEFAULT_AVG_AWAY_GOALS
        away_attack = away.goal_features.avg_goals_scored_away if away_n else DEFAULT_AVG_AWAY_GOALS
        away_defense = away.goal_features.avg_goals_conceded_away if away_n else DEFAULT_AVG_HOME_GOALS

        home_expected = (home_attack + away_defense) / 2
        away_expected = (away_attack + home_defense) / 2
        return max(self.MIN_RATE, home_expected), max(self.MIN_RATE, away_expected)

    @staticmethod
    def poisson_distribution(expected: float, max_goals: int) -> list[float]:
        """
        P(X = k) for k in 0..max_goals.
        Built iteratively to avoid repeated factorial/pow calculations.
        """
        if expected <= 0:
            probs = [0.0] * (max_goals + 1)
            probs[0] = 1.0
            return probs

        probs = [0.0] * (max_goals + 1)
        current = math.exp(-expected)
        probs[0] = current
        for k in range(1, max_goals + 1):
            current *= expected / k
            probs[k] = current
        return probs

    def score_grid(self, home_expected: float, away_expected: float) -> np.ndarray:
        """Joint score probabilities, rows = home goals, columns = away goals, renormalized."""
        home_probs = np.array(self.poisson_distribution(home_expected, self.max_goals))
        away_probs = np.array(self.poisson_distribution(away_expected, self.max_goals))
        grid = np.outer(home_probs, away_probs)
        return grid / grid.sum()

    def predict(self, features: FeatureBundle) -> ModelPrediction:
        home_expected, away_expected = self.expected_goals(features)
        grid = self.score_grid(home_expected, away_expected)

        home_win = float(np.tril(grid, -1).sum())
        draw = float(np.trace(grid))
        away_win = float(np.triu(grid, 1).sum())
        probabilities = OutcomeProbabilities.from_weights(home_win, draw, away_win)

        home_n = features.home_team.historical_features.home_matches_played
        away_n = features.away_team.historical_features.away_matches_played
        sample_factor = min(1.0, min(home_n, away_n) / RECENT_MATCHES_LIMIT)
        certainty = entropy_certainty(probabilities.as_tuple())
        confidence = 0.3 + 0.4 * sample_factor + 0.3 * certainty

        total_expected = home_expected + away_expected
        key_features = rank_features([
            FeatureImportance(
                "expected_home_goals", home_expected / total_expected, round(home_expected, 3),
                "Poisson rate for the home side",
            ),
            FeatureImportance(
                "expected_away_goals", away_expected / total_expected, round(away_expected, 3),
                "Poisson rate for the away side",
            ),
        ])

        return ModelPrediction(
            probabilities=probabilities,
            confidence=clamp(confidence),
            key_features=key_features,
            scorelines=self._scorelines(grid),
        )

    def _scorelines(self, grid: np.ndarray) -> ScorelinePrediction:
        cells = [
            ScoreProbability(home_goals=h, away_goals=a, probability=round(float(grid[h, a]), 4))
            for h in range(grid.shape[0])
            for a in range(grid.shape[1])
        ]
        # Stable sort keeps lower scores first among equal probabilities
        top = sorted(cells, key=lambda c: c.probability, reverse=True)[: self.TOP_SCORELINES]
        return ScorelinePrediction(most_likely_score=str(top[0]), score_probabilities=tuple(top))


class MarkovModel(PredictionModel):
    """
    Half-time to full-time transition model.

    With a known half-time score the matching matrix row is the prediction.
    Otherwise rows are blended by how often each half-time state occurred in
    the head-to-head sample (uniformly when there are no meetings).
    """

    name = "markov"

    def predict(self, features: FeatureBundle) -> ModelPrediction:
        h2h = features.head_to_head
        matrix = h2h.transition_matrix
        sample_factor = min(1.0, h2h.matches_played / HEAD_TO_HEAD_LIMIT)

        if features.halftime_state is not None:
            state = self.half_time_state(features.halftime_state)
            probabilities = OutcomeProbabilities.from_weights(*matrix.row(state))
            confidence = 0.55 + 0.35 * sample_factor
            key_features = (
                FeatureImportance(
                    "halftime_goal_difference", 1.0,
                    float(features.halftime_state.goal_difference),
                    "Half-time goal difference (home - away)",
                ),
            )
        else:
            counts = h2h.half_time_state_counts
            total = sum(counts)
            state_weights = [c / total for c in counts] if total else [1 / 3] * 3
            blended = [
                sum(w * matrix.row(state)[i] for w, state in zip(state_weights, OUTCOMES))
                for i in range(3)
            ]
            probabilities = OutcomeProbabilities.from_weights(*blended)
            confidence = 0.3 + 0.3 * sample_factor
            key_features = rank_features([
                FeatureImportance(
                    f"ht_{label}_frequency", w, round(w, 3),
                    f"Share of meetings with a {label.replace('_', ' ')} at half time",
                )
                for label, w in zip(("home_lead", "draw", "away_lead"), state_weights)
            ])

        return ModelPrediction(
            probabilities=probabilities,
            confidence=clamp(confidence),
            key_features=key_features,
        )

    @staticmethod
    def half_time_state(state: HalfTimeState) -> str:
        if state.goal_difference > 0:
            return HOME
        if state.goal_difference < 0:
            return AWAY
        return DRAW


class GradientBoostedModel(PredictionModel):
    """
    Learned model behind a pluggable estimator.

    The estimator is anything exposing `predict_proba`, `classes_` (outcome
    tags) and `feature_importances_`, normally a scikit-learn
    GradientBoostingClassifier trained offline and loaded with joblib.
    """

    name = "gradient_boosted"
    TOP_FEATURES = 5

    def __init__(self, estimator: Optional[Any] = None):
        self.estimator = estimator

    @classmethod
    def load(cls, path: Optional[str]) -> "GradientBoostedModel":
        """Load a joblib artifact; an absent file leaves the model unloaded."""
        if not path or not os.path.exists(path):
            logger.warning(f"Gradient-boosted model artifact not found at {path}")
            return cls()
        estimator = joblib.load(path)
        logger.info(f"Loaded gradient-boosted model from {path}")
        return cls(estimator)

    @property
    def is_loaded(self) -> bool:
        return self.estimator is not None

    def predict(self, features: FeatureBundle) -> ModelPrediction:
        if self.estimator is None:
            raise ModelFailureException(self.name, "no trained model loaded")

        vector = MLFeatureExtractor.extract_features(features)
        try:
            proba = self.estimator.predict_proba(np.array([vector]))[0]
            classes = [str(c) for c in self.estimator.classes_]
            importances = list(getattr(self.estimator, "feature_importances_", []))
        except (ValueError, AttributeError) as e:
            raise ModelFailureException(self.name, f"estimator failed: {e}") from e

        row = np.asarray(proba, dtype=float)
        if (
            not np.all(np.isfinite(row))
            or np.any(row < 0)
            or abs(float(row.sum()) - 1.0) > PROBABILITY_TOLERANCE
        ):
            raise ModelFailureException(self.name, f"invalid probabilities: {row.tolist()}")

        by_class = dict(zip(classes, (float(p) for p in row)))
        try:
            probabilities = OutcomeProbabilities(
                *(by_class.get(outcome, 0.0) for outcome in OUTCOMES)
            )
        except ValueError as e:
            raise ModelFailureException(self.name, f"invalid probabilities: {e}") from e

        # Distance of the top class from a uniform guess
        top = max(probabilities.as_tuple())
        confidence = 0.5 + 0.5 * (top - 1 / 3) / (2 / 3)

        key_features = rank_features(
            [
                FeatureImportance(name, float(importance), value, FEATURE_DESCRIPTIONS[name])
                for name, importance, value in zip(FEATURE_NAMES, importances, vector)
            ],
            limit=self.TOP_FEATURES,
        )

        return ModelPrediction(
            probabilities=probabilities,
            confidence=clamp(confidence),
            key_features=key_features,
        )


def build_default_models(gb_model_path: Optional[str] = None) -> dict[str, PredictionModel]:
    """The fixed model set, keyed by name."""
    models: list[PredictionModel] = [
        EmpiricalModel(),
        GradientBoostedModel.load(gb_model_path),
        PoissonModel(),
        MarkovModel(),
    ]
    return {model.name: model for model in models}
