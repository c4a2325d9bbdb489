"""
Tests for ML Training Orchestrator
"""

import asyncio
from itertools import permutations

import pytest

from winmix.application.services.ml_training_orchestrator import MLTrainingOrchestrator
from winmix.domain.services.prediction_models import GradientBoostedModel

from conftest import InMemoryMatchRepository, make_match


@pytest.fixture
def league():
    """Four rounds of every ordered pairing of six teams, one match per day."""
    teams = ["Alpha", "Bravo", "Charlie", "Delta", "Echo", "Foxtrot"]
    pairs = list(permutations(teams, 2)) * 4
    return [
        make_match(home, away, (i % 3, (i // 2) % 3), days_ago=len(pairs) - i)
        for i, (home, away) in enumerate(pairs)
    ]


def test_not_enough_history(repository, tmp_path):
    model_path = tmp_path / "model.joblib"
    orchestrator = MLTrainingOrchestrator(repository, model_path=str(model_path))

    result = asyncio.run(orchestrator.train())

    assert result.matches_processed == 16
    assert result.model_saved is False
    assert not model_path.exists()


def test_dataset_uses_only_prior_matches(league):
    orchestrator = MLTrainingOrchestrator(InMemoryMatchRepository(league))
    features, targets = asyncio.run(orchestrator.build_dataset(league[:10]))

    # No team has three earlier matches within the first ten days
    assert features == []
    assert targets == []


def test_train_and_load(league, tmp_path):
    model_path = str(tmp_path / "model.joblib")
    orchestrator = MLTrainingOrchestrator(InMemoryMatchRepository(league), model_path=model_path)

    result = asyncio.run(orchestrator.train())

    assert result.model_saved is True
    assert result.samples_used >= 50
    assert sum(result.class_distribution.values()) == result.samples_used
    assert result.holdout_accuracy is None or 0.0 <= result.holdout_accuracy <= 1.0
    assert GradientBoostedModel.load(model_path).is_loaded
