"""
API Dependencies Module

Provides dependency injection for FastAPI routes.
Contains factory functions for creating use case dependencies.
"""

from functools import lru_cache

from fastapi import Depends

from winmix.application.services.prediction_engine import PredictionEngine
from winmix.application.use_cases.use_cases import (
    GetMatchStatisticsUseCase,
    PredictBatchUseCase,
    PredictMatchUseCase,
    RegisterFeedbackUseCase,
)
from winmix.core.config import EngineConfig
from winmix.domain.repositories.repositories import MatchRepository
from winmix.domain.services.feature_extractor import FeatureExtractor
from winmix.domain.services.learning_service import EnsembleWeightStore, LearningService
from winmix.domain.services.prediction_models import build_default_models
from winmix.infrastructure.database.database_service import DatabaseService
from winmix.infrastructure.repositories.match_repository import SqlMatchRepository


@lru_cache()
def get_config() -> EngineConfig:
    """Get engine configuration (cached)."""
    return EngineConfig.from_env()


@lru_cache()
def get_database_service() -> DatabaseService:
    """Get database service (cached)."""
    return DatabaseService(get_config().database_url)


@lru_cache()
def get_match_repository() -> MatchRepository:
    """Get match-history repository (cached)."""
    return SqlMatchRepository(get_database_service())


@lru_cache()
def get_weight_store() -> EnsembleWeightStore:
    """Get the process-wide ensemble weight store (cached)."""
    return EnsembleWeightStore()


@lru_cache()
def get_learning_service() -> LearningService:
    """Get learning service (cached)."""
    return LearningService(
        weight_store=get_weight_store(),
        weights_path=get_config().ensemble_weights_path,
    )


@lru_cache()
def get_prediction_engine() -> PredictionEngine:
    """Get prediction engine (cached)."""
    config = get_config()
    # Loads persisted weights into the shared store before the first prediction
    get_learning_service()
    return PredictionEngine(
        extractor=FeatureExtractor(get_match_repository()),
        models=build_default_models(config.gb_model_path),
        weight_store=get_weight_store(),
        config=config,
    )


def get_predict_match_use_case(
    engine: PredictionEngine = Depends(get_prediction_engine),
) -> PredictMatchUseCase:
    return PredictMatchUseCase(engine)


def get_predict_batch_use_case(
    engine: PredictionEngine = Depends(get_prediction_engine),
) -> PredictBatchUseCase:
    return PredictBatchUseCase(engine)


def get_statistics_use_case(
    repository: MatchRepository = Depends(get_match_repository),
) -> GetMatchStatisticsUseCase:
    return GetMatchStatisticsUseCase(repository)


def get_feedback_use_case(
    learning_service: LearningService = Depends(get_learning_service),
) -> RegisterFeedbackUseCase:
    return RegisterFeedbackUseCase(learning_service)
