import logging

from fastapi import APIRouter, Depends

from winmix.api.dependencies import get_feedback_use_case, get_learning_service
from winmix.application.dtos.dtos import (
    EnsembleWeightsDTO,
    ErrorResponseDTO,
    FeedbackRequestDTO,
    FeedbackResponseDTO,
)
from winmix.application.use_cases.use_cases import RegisterFeedbackUseCase, get_weights_dto
from winmix.domain.services.learning_service import LearningService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/learning", tags=["Learning"])


@router.post(
    "/feedback",
    response_model=FeedbackResponseDTO,
    responses={422: {"model": ErrorResponseDTO, "description": "Invalid feedback"}},
    summary="Settle a prediction",
    description="Scores a served prediction against the final result and nudges "
                "the ensemble weights toward the models that have been right recently.",
)
def register_feedback(
    request: FeedbackRequestDTO,
    use_case: RegisterFeedbackUseCase = Depends(get_feedback_use_case),
) -> FeedbackResponseDTO:
    return use_case.execute(request)


@router.get(
    "/weights",
    response_model=EnsembleWeightsDTO,
    summary="Current ensemble weights",
)
def get_weights(
    learning_service: LearningService = Depends(get_learning_service),
) -> EnsembleWeightsDTO:
    return get_weights_dto(learning_service)


@router.post(
    "/weights/reset",
    response_model=EnsembleWeightsDTO,
    summary="Reset ensemble weights to defaults",
)
def reset_weights(
    learning_service: LearningService = Depends(get_learning_service),
) -> EnsembleWeightsDTO:
    learning_service.reset_weights()
    logger.info("Ensemble weights reset via API")
    return get_weights_dto(learning_service)
