"""
Predictions Router

API endpoints for fixture predictions.
"""

from fastapi import APIRouter, Depends

from winmix.api.dependencies import get_predict_batch_use_case, get_predict_match_use_case
from winmix.application.dtos.dtos import (
    BatchPredictionRequestDTO,
    BatchPredictionResponseDTO,
    ErrorResponseDTO,
    PredictionRequestDTO,
    PredictionResponseDTO,
)
from winmix.application.use_cases.use_cases import PredictBatchUseCase, PredictMatchUseCase

router = APIRouter(prefix="/predictions", tags=["Predictions"])


@router.post(
    "",
    response_model=PredictionResponseDTO,
    responses={
        422: {"model": ErrorResponseDTO, "description": "Invalid fixture"},
        503: {"model": ErrorResponseDTO, "description": "Match store unavailable"},
    },
    summary="Predict a fixture",
    description="Ensemble home / draw / away prediction with per-model explanations. "
                "Supplying the half-time score switches to an in-match update.",
)
async def predict_match(
    request: PredictionRequestDTO,
    use_case: PredictMatchUseCase = Depends(get_predict_match_use_case),
) -> PredictionResponseDTO:
    return await use_case.execute(request)


@router.post(
    "/batch",
    response_model=BatchPredictionResponseDTO,
    responses={
        503: {"model": ErrorResponseDTO, "description": "Match store unavailable"},
    },
    summary="Predict many fixtures",
    description="Results are returned in request order; a fixture that cannot be "
                "predicted yields a failure entry instead of failing the batch.",
)
async def predict_batch(
    request: BatchPredictionRequestDTO,
    use_case: PredictBatchUseCase = Depends(get_predict_batch_use_case),
) -> BatchPredictionResponseDTO:
    return await use_case.execute(request.fixtures)
