"""
API Tests

Drives the FastAPI app through TestClient with the engine, repository and
learning service swapped for in-memory versions.
"""

import pytest
from fastapi.testclient import TestClient

from winmix.api.dependencies import (
    get_learning_service,
    get_match_repository,
    get_prediction_engine,
)
from winmix.api.main import app
from winmix.application.services.prediction_engine import PredictionEngine
from winmix.domain.services.feature_extractor import FeatureExtractor
from winmix.domain.services.learning_service import EnsembleWeightStore, LearningService
from winmix.domain.services.prediction_models import build_default_models

from conftest import InMemoryMatchRepository


def make_engine(repository, config, store):
    return PredictionEngine(
        extractor=FeatureExtractor(repository),
        models=build_default_models(None),
        weight_store=store,
        config=config,
    )


@pytest.fixture
def client(repository, config):
    store = EnsembleWeightStore()
    learning_service = LearningService(weight_store=store, weights_path=config.ensemble_weights_path)
    engine = make_engine(repository, config, store)

    app.dependency_overrides[get_prediction_engine] = lambda: engine
    app.dependency_overrides[get_match_repository] = lambda: repository
    app.dependency_overrides[get_learning_service] = lambda: learning_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def offline_client(config):
    repository = InMemoryMatchRepository(available=False)
    engine = make_engine(repository, config, EnsembleWeightStore())
    app.dependency_overrides[get_prediction_engine] = lambda: engine
    app.dependency_overrides[get_match_repository] = lambda: repository
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealthEndpoints:
    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["endpoints"]["predictions"] == "/api/v1/predictions"
        assert data["documentation"] == "/docs"


class TestPredictionEndpoints:
    def test_predict_match(self, client):
        response = client.post(
            "/api/v1/predictions", json={"home_team": "Arsenal", "away_team": "Chelsea"}
        )
        assert response.status_code == 200
        data = response.json()

        total = data["home_win_probability"] + data["draw_probability"] + data["away_win_probability"]
        assert total == pytest.approx(1.0, abs=1e-6)
        assert data["most_likely_outcome"] in {"H", "D", "A"}
        assert [e["model_name"] for e in data["model_explanations"]] == ["empirical", "poisson", "markov"]
        assert data["prediction_metadata"]["prediction_confidence"] in {"LOW", "MEDIUM", "HIGH"}
        assert len(data["scoreline_predictions"]["score_probabilities"]) == 5
        assert data["quality_assessment"]["level"] in {"EXCELLENT", "GOOD", "FAIR", "POOR"}
        assert "certainty_level" in data["trends"]

    def test_identical_teams_rejected(self, client):
        response = client.post(
            "/api/v1/predictions", json={"home_team": "Arsenal", "away_team": "arsenal"}
        )
        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_negative_halftime_rejected(self, client):
        response = client.post(
            "/api/v1/predictions",
            json={"home_team": "Arsenal", "away_team": "Chelsea", "halftime_home_goals": -1},
        )
        assert response.status_code == 422

    def test_match_context(self, client):
        response = client.post(
            "/api/v1/predictions",
            json={
                "home_team": "Arsenal",
                "away_team": "Chelsea",
                "match_context": {"date": "2024-02-01", "competition": "E0"},
            },
        )
        assert response.status_code == 200

    def test_batch_keeps_order_and_reports_failures(self, client):
        response = client.post(
            "/api/v1/predictions/batch",
            json={"fixtures": [
                {"home_team": "Arsenal", "away_team": "Chelsea"},
                {"home_team": "Chelsea", "away_team": "Chelsea"},
            ]},
        )
        assert response.status_code == 200
        data = response.json()

        assert (data["succeeded"], data["failed"]) == (1, 1)
        first, second = data["results"]
        assert first["index"] == 0 and first["prediction"]["home_team"] == "Arsenal"
        assert second["failure"]["error_type"] == "ValidationException"

    def test_store_offline_returns_503(self, offline_client):
        response = offline_client.post(
            "/api/v1/predictions", json={"home_team": "Arsenal", "away_team": "Chelsea"}
        )
        assert response.status_code == 503
        assert response.json()["error"] == "upstream_unavailable"

    def test_batch_store_offline_returns_503(self, offline_client):
        response = offline_client.post(
            "/api/v1/predictions/batch",
            json={"fixtures": [{"home_team": "Arsenal", "away_team": "Chelsea"}]},
        )
        assert response.status_code == 503


class TestStatisticsEndpoint:
    def test_head_to_head_statistics(self, client):
        response = client.get(
            "/api/v1/statistics", params={"team": "Arsenal", "opponent": "Chelsea"}
        )
        assert response.status_code == 200
        data = response.json()

        assert data["matches_analyzed"] == 5
        basic = data["basic"]
        assert (basic["home_wins"], basic["draws"], basic["away_wins"]) == (3, 1, 1)
        assert data["detailed"] is None
        assert data["filters"] == {"team": "Arsenal", "opponent": "Chelsea"}

    def test_detailed_statistics(self, client):
        response = client.get("/api/v1/statistics", params={"team": "Arsenal", "detailed": "true"})
        assert response.status_code == 200
        detailed = response.json()["detailed"]
        assert detailed["goal_stats"]["home_goals_total"] >= 0
        assert len(detailed["frequent_results"]) <= 4

    def test_opponent_without_team_rejected(self, client):
        response = client.get("/api/v1/statistics", params={"opponent": "Chelsea"})
        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    def test_reversed_dates_rejected(self, client):
        response = client.get(
            "/api/v1/statistics", params={"date_from": "2024-03-01", "date_to": "2024-01-01"}
        )
        assert response.status_code == 422

    def test_date_bounds_are_inclusive(self, client):
        response = client.get(
            "/api/v1/statistics",
            params={"team": "Arsenal", "date_from": "2024-02-23", "date_to": "2024-02-23"},
        )
        # Spurs at home, kick-off 2024-02-23 15:00
        assert response.json()["matches_analyzed"] == 1


class TestLearningEndpoints:
    def test_default_weights(self, client):
        response = client.get("/api/v1/learning/weights")
        assert response.status_code == 200
        data = response.json()
        assert data["version"] == 1
        assert sum(data["model_weights"].values()) == pytest.approx(1.0)

    def test_feedback_updates_weights(self, client):
        prediction = client.post(
            "/api/v1/predictions", json={"home_team": "Arsenal", "away_team": "Chelsea"}
        ).json()

        response = client.post(
            "/api/v1/learning/feedback",
            json={"prediction_id": "p-42", "prediction": prediction, "home_goals": 2, "away_goals": 0},
        )
        assert response.status_code == 200
        data = response.json()

        assert data["prediction_id"] == "p-42"
        assert data["actual_result"] == "H"
        assert 0 <= data["prediction_accuracy"]["brier_score"] <= 2
        assert len(data["model_performance"]) == 3
        assert data["weights"]["version"] == 2

        weights = client.get("/api/v1/learning/weights").json()
        assert weights["version"] == 2
        assert set(weights["model_accuracy"]) == {"empirical", "poisson", "markov"}

    def test_negative_goals_rejected(self, client):
        prediction = client.post(
            "/api/v1/predictions", json={"home_team": "Arsenal", "away_team": "Chelsea"}
        ).json()
        response = client.post(
            "/api/v1/learning/feedback",
            json={"prediction": prediction, "home_goals": -1, "away_goals": 0},
        )
        assert response.status_code == 422

    def test_reset_weights(self, client):
        response = client.post("/api/v1/learning/weights/reset")
        assert response.status_code == 200
        assert response.json()["model_accuracy"] == {}
