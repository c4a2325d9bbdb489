"""
Statistics Router

API endpoints for descriptive match statistics.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from winmix.api.dependencies import get_statistics_use_case
from winmix.application.dtos.dtos import ErrorResponseDTO, StatisticsResponseDTO
from winmix.application.use_cases.use_cases import (
    MAX_STATISTICS_MATCHES,
    GetMatchStatisticsUseCase,
)

router = APIRouter(prefix="/statistics", tags=["Statistics"])


@router.get(
    "",
    response_model=StatisticsResponseDTO,
    responses={
        422: {"model": ErrorResponseDTO, "description": "Invalid filters"},
        503: {"model": ErrorResponseDTO, "description": "Match store unavailable"},
    },
    summary="Match statistics",
    description="Outcome, BTTS, comeback and goal statistics for the most recent "
                "matches selected by the filters. Set detailed=true for goal, "
                "over/under, frequent-result and half-time breakdowns.",
)
async def get_statistics(
    team: Optional[str] = Query(default=None, description="Team on either side"),
    opponent: Optional[str] = Query(default=None, description="Opponent of team (head-to-head)"),
    home_team: Optional[str] = Query(default=None),
    away_team: Optional[str] = Query(default=None),
    competition: Optional[str] = Query(default=None, description="Competition code, e.g. E0"),
    season: Optional[str] = Query(default=None, description="Season label, e.g. 2024-2025"),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=MAX_STATISTICS_MATCHES),
    detailed: bool = Query(default=False),
    use_case: GetMatchStatisticsUseCase = Depends(get_statistics_use_case),
) -> StatisticsResponseDTO:
    return await use_case.execute(
        team=team,
        opponent=opponent,
        home_team=home_team,
        away_team=away_team,
        competition=competition,
        season=season,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        detailed=detailed,
    )
