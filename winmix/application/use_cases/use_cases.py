"""
Application Use Cases Module

Use cases represent application-specific business rules and orchestrate
the flow of data between the domain layer and the infrastructure layer.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional, Sequence

from winmix.application.dtos.dtos import (
    BatchItemDTO,
    BatchPredictionResponseDTO,
    DetailedMatchStatsDTO,
    EnsembleWeightsDTO,
    FeedbackRequestDTO,
    FeedbackResponseDTO,
    MatchStatsDTO,
    ModelPerformanceDTO,
    PredictionAccuracyDTO,
    PredictionFailureDTO,
    PredictionRequestDTO,
    PredictionResponseDTO,
    StatisticsResponseDTO,
)
from winmix.application.services.prediction_engine import PredictionEngine
from winmix.domain.entities.prediction import PredictionFailure, PredictionOutput
from winmix.domain.exceptions import ValidationException
from winmix.domain.repositories.repositories import MatchFilter, MatchRepository
from winmix.domain.services.confidence_calculator import ConfidenceCalculator
from winmix.domain.services.learning_service import LearningService
from winmix.domain.services.statistics_service import StatisticsService

logger = logging.getLogger(__name__)

MAX_STATISTICS_MATCHES = 500


def to_prediction_dto(output: PredictionOutput) -> PredictionResponseDTO:
    """Serialize a prediction with its quality assessment and trend analysis."""
    dto = PredictionResponseDTO.model_validate(output)
    dto.quality_assessment = ConfidenceCalculator.assess_prediction_quality(output)
    dto.trends = ConfidenceCalculator.analyze_trends(output)
    return dto


class PredictMatchUseCase:
    """Use case for predicting a single fixture."""

    def __init__(self, engine: PredictionEngine):
        self.engine = engine

    async def execute(self, request: PredictionRequestDTO) -> PredictionResponseDTO:
        output = await self.engine.predict(request.to_entity())
        logger.info(
            f"Predicted {output.home_team} vs {output.away_team}: {output.most_likely_outcome} "
            f"(confidence {output.confidence_score:.2f}, "
            f"{output.prediction_metadata.prediction_confidence})"
        )
        return to_prediction_dto(output)


class PredictBatchUseCase:
    """Use case for predicting many fixtures at once."""

    def __init__(self, engine: PredictionEngine):
        self.engine = engine

    async def execute(self, requests: Sequence[PredictionRequestDTO]) -> BatchPredictionResponseDTO:
        results = await self.engine.predict_batch([r.to_entity() for r in requests])

        items = []
        for index, result in enumerate(results):
            if isinstance(result, PredictionFailure):
                items.append(BatchItemDTO(
                    index=index, failure=PredictionFailureDTO.model_validate(result)
                ))
            else:
                items.append(BatchItemDTO(index=index, prediction=to_prediction_dto(result)))

        failed = sum(1 for item in items if item.failure is not None)
        logger.info(f"Batch of {len(items)} fixtures predicted, {failed} failed")
        return BatchPredictionResponseDTO(
            results=items,
            succeeded=len(items) - failed,
            failed=failed,
        )


class GetMatchStatisticsUseCase:
    """Use case for descriptive statistics over stored matches."""

    def __init__(self, repository: MatchRepository):
        self.repository = repository

    async def execute(
        self,
        team: Optional[str] = None,
        opponent: Optional[str] = None,
        home_team: Optional[str] = None,
        away_team: Optional[str] = None,
        competition: Optional[str] = None,
        season: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 100,
        detailed: bool = False,
    ) -> StatisticsResponseDTO:
        """
        Compute basic (and optionally detailed) statistics.

        Date bounds are inclusive calendar days.

        Raises:
            ValidationException: Invalid filter combination or limit
        """
        if not 1 <= limit <= MAX_STATISTICS_MATCHES:
            raise ValidationException(f"limit must be between 1 and {MAX_STATISTICS_MATCHES}")
        if date_from and date_to and date_from > date_to:
            raise ValidationException("date_from must not be after date_to")

        try:
            match_filter = MatchFilter(
                team=team,
                opponent=opponent,
                home_team=home_team,
                away_team=away_team,
                competition=competition,
                season=season,
                date_from=datetime.combine(date_from, time.min) if date_from else None,
                date_to=datetime.combine(date_to + timedelta(days=1), time.min) if date_to else None,
            )
        except ValueError as e:
            raise ValidationException(str(e)) from e

        matches = await self.repository.query_matches(match_filter, limit=limit)

        basic = StatisticsService.compute_basic_stats(matches)
        detailed_stats = None
        if detailed:
            detailed_stats = DetailedMatchStatsDTO.model_validate(
                StatisticsService.compute_detailed_stats(matches)
            )

        filters = {
            key: value.isoformat() if isinstance(value, date) else value
            for key, value in {
                "team": team,
                "opponent": opponent,
                "home_team": home_team,
                "away_team": away_team,
                "competition": competition,
                "season": season,
                "date_from": date_from,
                "date_to": date_to,
            }.items()
            if value is not None
        }

        return StatisticsResponseDTO(
            filters=filters,
            matches_analyzed=len(matches),
            basic=MatchStatsDTO.model_validate(basic),
            detailed=detailed_stats,
        )


class RegisterFeedbackUseCase:
    """Use case for settling a served prediction and updating ensemble weights."""

    def __init__(self, learning_service: LearningService):
        self.learning_service = learning_service

    def execute(self, request: FeedbackRequestDTO) -> FeedbackResponseDTO:
        try:
            prediction = request.prediction.to_entity()
        except ValueError as e:
            raise ValidationException(f"Invalid prediction payload: {e}") from e

        feedback = self.learning_service.evaluate_prediction(
            prediction, request.home_goals, request.away_goals, request.prediction_id
        )
        self.learning_service.register_feedback(feedback)

        return FeedbackResponseDTO(
            prediction_id=feedback.prediction_id,
            actual_result=feedback.actual_result,
            prediction_accuracy=PredictionAccuracyDTO.model_validate(feedback.prediction_accuracy),
            model_performance=[
                ModelPerformanceDTO.model_validate(p) for p in feedback.model_performance
            ],
            weights=get_weights_dto(self.learning_service),
        )


def get_weights_dto(learning_service: LearningService) -> EnsembleWeightsDTO:
    weights = learning_service.weights
    return EnsembleWeightsDTO(
        model_weights=weights.as_dict(),
        version=weights.version,
        last_updated=weights.last_updated,
        model_accuracy=learning_service.get_model_accuracy(),
    )
