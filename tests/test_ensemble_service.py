"""
Unit Tests for Ensemble Combiner
"""

import pytest

from winmix.domain.entities.prediction import ModelPrediction
from winmix.domain.entities.prediction_feedback import EnsembleWeights
from winmix.domain.services.ensemble_service import EnsembleCombiner
from winmix.domain.value_objects.value_objects import OutcomeProbabilities


def prediction(home, draw, away, confidence=0.6):
    return ModelPrediction(OutcomeProbabilities(home, draw, away), confidence=confidence)


@pytest.fixture
def combiner():
    return EnsembleCombiner()


@pytest.fixture
def all_models():
    return {
        "empirical": prediction(0.5, 0.3, 0.2),
        "gradient_boosted": prediction(0.55, 0.25, 0.2),
        "poisson": prediction(0.45, 0.3, 0.25),
        "markov": prediction(0.4, 0.3, 0.3),
    }


class TestCombine:
    @pytest.mark.parametrize("count", [1, 2, 3, 4])
    def test_any_subset_sums_to_one(self, combiner, all_models, count):
        subset = dict(list(all_models.items())[:count])
        final = combiner.combine(subset, EnsembleWeights())

        assert sum(final.probabilities.as_tuple()) == pytest.approx(1.0, abs=1e-6)
        assert sum(final.model_weights.values()) == pytest.approx(1.0)
        assert set(final.model_weights) == set(subset)

    def test_weighted_mean(self, combiner):
        weights = EnsembleWeights(model_weights={"a": 0.75, "b": 0.25})
        final = combiner.combine(
            {"a": prediction(0.6, 0.2, 0.2), "b": prediction(0.2, 0.2, 0.6)},
            weights,
        )
        assert final.probabilities.as_tuple() == pytest.approx((0.5, 0.2, 0.3))
        assert final.most_likely_outcome == "H"

    def test_failed_model_weight_is_redistributed(self, combiner, all_models):
        del all_models["gradient_boosted"]
        final = combiner.combine(all_models, EnsembleWeights())

        # empirical 0.30, poisson 0.20, markov 0.15 renormalized over 0.65
        assert final.model_weights["empirical"] == pytest.approx(0.30 / 0.65)
        assert final.model_weights["markov"] == pytest.approx(0.15 / 0.65)

    def test_tie_resolves_to_home(self, combiner):
        final = combiner.combine({"a": prediction(0.4, 0.2, 0.4)}, EnsembleWeights.normalized({"a": 1.0}))
        assert final.most_likely_outcome == "H"

    def test_unweighted_models_split_equally(self, combiner):
        final = combiner.combine(
            {"x": prediction(0.6, 0.2, 0.2), "y": prediction(0.2, 0.2, 0.6)},
            EnsembleWeights(),
        )
        assert final.model_weights == {"x": 0.5, "y": 0.5}
        assert final.most_likely_outcome == "H"

    def test_empty_input_rejected(self, combiner):
        with pytest.raises(ValueError):
            combiner.combine({}, EnsembleWeights())


class TestDisagreement:
    def test_agreeing_models_keep_confidence(self, combiner, all_models):
        final = combiner.combine(all_models, EnsembleWeights())
        assert final.disagreement == pytest.approx(0.15)
        assert final.confidence_score == pytest.approx(0.6)

    def test_disagreement_penalizes_confidence(self, combiner):
        final = combiner.combine(
            {
                "empirical": prediction(0.7, 0.2, 0.1, confidence=0.8),
                "markov": prediction(0.2, 0.2, 0.6, confidence=0.8),
            },
            EnsembleWeights(),
        )
        assert final.disagreement == pytest.approx(0.5)
        assert final.confidence_score == pytest.approx(0.64)

    def test_single_model_has_no_spread(self):
        assert EnsembleCombiner.disagreement({"a": prediction(0.5, 0.3, 0.2)}) == 0.0
