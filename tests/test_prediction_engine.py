"""
Tests for the Prediction Engine

Runs the full pipeline over the in-memory repository; the gradient-boosted
model has no artifact unless a test plugs in a fixed estimator.
"""

import asyncio
from dataclasses import replace

import numpy as np
import pytest

from winmix.application.services.prediction_engine import PredictionEngine
from winmix.domain.entities.prediction import PredictionFailure, PredictionInput, PredictionOutput
from winmix.domain.exceptions import (
    ModelFailureException,
    UpstreamUnavailableException,
    ValidationException,
)
from winmix.domain.services.feature_extractor import FeatureExtractor
from winmix.domain.services.learning_service import EnsembleWeightStore
from winmix.domain.services.ml_feature_extractor import FEATURE_NAMES
from winmix.domain.services.prediction_models import (
    GradientBoostedModel,
    MarkovModel,
    PredictionModel,
    build_default_models,
)

from conftest import InMemoryMatchRepository


class FailingModel(PredictionModel):
    name = "failing"

    def predict(self, features):
        raise ModelFailureException(self.name, "always fails")


class SlowRepository(InMemoryMatchRepository):
    """Stalls on every query past the engine's fetch budget."""

    async def query_matches(self, match_filter, limit=10):
        await asyncio.sleep(0.5)
        return await super().query_matches(match_filter, limit)


class FixedEstimator:
    """Estimator stand-in returning one fixed probability row."""

    classes_ = ["A", "D", "H"]

    def __init__(self, row):
        self.row = row
        self.feature_importances_ = [0.0] * len(FEATURE_NAMES)

    def predict_proba(self, X):
        return np.array([self.row], dtype=float)


class CountingRepository(InMemoryMatchRepository):
    """Tracks the peak number of queries in flight."""

    def __init__(self, matches):
        super().__init__(matches)
        self.in_flight = 0
        self.peak = 0

    async def query_matches(self, match_filter, limit=10):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0.001)
            return await super().query_matches(match_filter, limit)
        finally:
            self.in_flight -= 1


@pytest.fixture
def engine(extractor, config):
    return PredictionEngine(
        extractor=extractor,
        models=build_default_models(config.gb_model_path),
        weight_store=EnsembleWeightStore(),
        config=config,
    )


def predict(engine, home, away, **kwargs):
    return asyncio.run(engine.predict(PredictionInput(home, away, **kwargs)))


class TestValidation:
    @pytest.mark.parametrize("home,away", [("Arsenal", "Arsenal"), ("Arsenal", " arsenal "), ("", "Chelsea"), ("Arsenal", "  ")])
    def test_invalid_teams_rejected_before_fetch(self, engine, repository, home, away):
        with pytest.raises(ValidationException):
            predict(engine, home, away)
        assert repository.queries == []

    @pytest.mark.parametrize("goals", [-1, True, 1.5])
    def test_invalid_halftime_goals(self, engine, goals):
        with pytest.raises(ValidationException):
            predict(engine, "Arsenal", "Chelsea", halftime_home_goals=goals)


class TestPredict:
    def test_complete_output(self, engine, config):
        output = predict(engine, "Arsenal", "Chelsea")

        total = output.home_win_probability + output.draw_probability + output.away_win_probability
        assert total == pytest.approx(1.0, abs=1e-6)
        assert output.most_likely_outcome == "H"
        assert 0.0 <= output.confidence_score <= 1.0
        assert output.prediction_metadata.model_version == config.model_version
        assert output.prediction_metadata.prediction_confidence in {"LOW", "MEDIUM", "HIGH"}
        assert output.scoreline_predictions is not None

    def test_unavailable_model_is_excluded(self, engine):
        output = predict(engine, "Arsenal", "Chelsea")

        names = [e.model_name for e in output.model_explanations]
        assert names == ["empirical", "poisson", "markov"]
        assert sum(e.weight for e in output.model_explanations) == pytest.approx(1.0)
        assert "model gradient_boosted unavailable" in output.prediction_metadata.warning_flags

    @pytest.mark.parametrize("row", [
        [np.nan, 0.5, 0.5],
        [-0.5, 1.0, 0.5],
        [0.9, 0.9, 0.9],
        [np.inf, 0.0, 0.0],
    ])
    def test_invalid_estimator_probabilities_exclude_model(self, extractor, config, row):
        models = build_default_models(None)
        models["gradient_boosted"] = GradientBoostedModel(FixedEstimator(row))
        engine = PredictionEngine(extractor, models, EnsembleWeightStore(), config)

        output = predict(engine, "Arsenal", "Chelsea")

        names = [e.model_name for e in output.model_explanations]
        assert "gradient_boosted" not in names
        assert sum(e.weight for e in output.model_explanations) == pytest.approx(1.0)
        assert "model gradient_boosted unavailable" in output.prediction_metadata.warning_flags

    def test_valid_estimator_probabilities_are_used(self, extractor, config):
        models = build_default_models(None)
        models["gradient_boosted"] = GradientBoostedModel(FixedEstimator([0.2, 0.3, 0.5]))
        engine = PredictionEngine(extractor, models, EnsembleWeightStore(), config)

        output = predict(engine, "Arsenal", "Chelsea")

        gb = next(e for e in output.model_explanations if e.model_name == "gradient_boosted")
        assert gb.prediction.as_tuple() == pytest.approx((0.5, 0.3, 0.2))
        assert "model gradient_boosted unavailable" not in output.prediction_metadata.warning_flags

    def test_data_quality_and_limited_history_flag(self, engine):
        metadata = predict(engine, "Arsenal", "Chelsea").prediction_metadata
        # 5 meetings of 10, 21 team matches of 40
        assert metadata.data_quality_score == pytest.approx(0.5635)
        assert "limited historical data" in metadata.warning_flags
        assert "no head-to-head history" not in metadata.warning_flags

    def test_unknown_teams_get_neutral_prediction(self, engine):
        output = predict(engine, "Home FC", "Away FC")
        flags = output.prediction_metadata.warning_flags

        assert "no recent matches for Home FC" in flags
        assert "no recent matches for Away FC" in flags
        assert "no head-to-head history" in flags
        assert output.prediction_metadata.data_quality_score == pytest.approx(0.1)
        assert output.prediction_metadata.prediction_confidence == "LOW"
        assert sum(output.probabilities.as_tuple()) == pytest.approx(1.0, abs=1e-6)

    def test_team_names_are_trimmed(self, engine):
        output = predict(engine, " Arsenal ", "Chelsea")
        assert output.home_team == "Arsenal"

    def test_halftime_score_selects_transition_row(self, engine, extractor):
        output = predict(engine, "Arsenal", "Chelsea", halftime_home_goals=2, halftime_away_goals=0)

        h2h, _ = asyncio.run(extractor.get_head_to_head_features("Arsenal", "Chelsea"))
        markov = next(e for e in output.model_explanations if e.model_name == "markov")
        assert markov.prediction.as_tuple() == pytest.approx(h2h.transition_matrix.row("H"))

    def test_single_halftime_side_counts_other_as_zero(self, engine):
        output = predict(engine, "Home FC", "Away FC", halftime_away_goals=1)
        markov = next(e for e in output.model_explanations if e.model_name == "markov")
        assert markov.prediction.as_tuple() == pytest.approx((0.10, 0.25, 0.65))

    def test_all_models_failing_falls_back_to_base_rates(self, extractor, config):
        engine = PredictionEngine(extractor, {"failing": FailingModel()}, EnsembleWeightStore(), config)
        output = predict(engine, "Arsenal", "Chelsea")

        assert output.probabilities.as_tuple() == pytest.approx((0.45, 0.27, 0.28))
        assert output.confidence_score == 0.1
        assert output.model_explanations == ()
        assert "all models unavailable, using base rates" in output.prediction_metadata.warning_flags

    def test_current_weights_are_used(self, extractor, config):
        store = EnsembleWeightStore()
        engine = PredictionEngine(extractor, {"markov": MarkovModel()}, store, config)
        output = predict(engine, "Arsenal", "Chelsea")
        assert output.model_explanations[0].weight == pytest.approx(1.0)

    def test_slow_fetch_times_out_to_empty_history(self, history, config):
        repository = SlowRepository(history)
        engine = PredictionEngine(
            FeatureExtractor(repository),
            build_default_models(None),
            EnsembleWeightStore(),
            replace(config, fetch_timeout_seconds=0.05),
        )
        output = predict(engine, "Arsenal", "Chelsea")
        flags = output.prediction_metadata.warning_flags

        assert "history for Arsenal unavailable (timeout)" in flags
        assert "head-to-head history unavailable (timeout)" in flags
        assert sum(output.probabilities.as_tuple()) == pytest.approx(1.0, abs=1e-6)

    def test_upstream_failure_propagates(self, config):
        repository = InMemoryMatchRepository(available=False)
        engine = PredictionEngine(
            FeatureExtractor(repository), build_default_models(None), EnsembleWeightStore(), config
        )
        with pytest.raises(UpstreamUnavailableException):
            predict(engine, "Arsenal", "Chelsea")


class TestPredictBatch:
    def test_results_keep_input_order(self, engine):
        inputs = [
            PredictionInput("Arsenal", "Chelsea"),
            PredictionInput("Chelsea", "Chelsea"),
            PredictionInput("Chelsea", "Arsenal"),
        ]
        results = asyncio.run(engine.predict_batch(inputs))

        assert len(results) == 3
        assert isinstance(results[0], PredictionOutput)
        assert results[0].home_team == "Arsenal"
        assert isinstance(results[1], PredictionFailure)
        assert results[1].index == 1
        assert results[1].error_type == "ValidationException"
        assert isinstance(results[2], PredictionOutput)
        assert results[2].home_team == "Chelsea"

    def test_empty_batch(self, engine):
        assert asyncio.run(engine.predict_batch([])) == []

    def test_concurrency_is_bounded(self, history, config):
        repository = CountingRepository(history)
        engine = PredictionEngine(
            FeatureExtractor(repository),
            build_default_models(None),
            EnsembleWeightStore(),
            replace(config, batch_concurrency=2),
        )
        inputs = [PredictionInput("Arsenal", "Chelsea")] * 12

        results = asyncio.run(engine.predict_batch(inputs))

        assert all(isinstance(r, PredictionOutput) for r in results)
        # Five history queries per fixture, two fixtures at a time
        assert repository.peak <= 10

    def test_unreachable_store_fails_whole_batch(self, config):
        repository = InMemoryMatchRepository(available=False)
        engine = PredictionEngine(
            FeatureExtractor(repository), build_default_models(None), EnsembleWeightStore(), config
        )
        with pytest.raises(UpstreamUnavailableException):
            asyncio.run(engine.predict_batch([PredictionInput("Arsenal", "Chelsea")]))
