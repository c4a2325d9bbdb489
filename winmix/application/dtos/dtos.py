"""
Data Transfer Objects (DTOs) Module

DTOs are used to transfer data between layers and to/from the API.
They use Pydantic for validation and serialization.
"""

import datetime as dt
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from winmix.domain.entities.prediction import (
    FeatureImportance,
    MatchContext,
    ModelExplanation,
    PredictionInput,
    PredictionMetadata,
    PredictionOutput,
    ScorelinePrediction,
)
from winmix.domain.value_objects.value_objects import OutcomeProbabilities, ScoreProbability
from winmix.utils.time_utils import get_current_time

MAX_BATCH_SIZE = 50


# ============================================================
# Request DTOs
# ============================================================

class MatchContextDTO(BaseModel):
    """Optional fixture context."""
    season: Optional[str] = None
    date: Optional[dt.date] = None
    competition: Optional[str] = None

    def to_entity(self) -> MatchContext:
        return MatchContext(season=self.season, date=self.date, competition=self.competition)


class PredictionRequestDTO(BaseModel):
    """Request for a single fixture prediction."""
    home_team: str = Field(..., description="Home team name")
    away_team: str = Field(..., description="Away team name")
    halftime_home_goals: Optional[int] = Field(default=None, description="Home goals at half time")
    halftime_away_goals: Optional[int] = Field(default=None, description="Away goals at half time")
    match_context: Optional[MatchContextDTO] = None

    def to_entity(self) -> PredictionInput:
        return PredictionInput(
            home_team=self.home_team,
            away_team=self.away_team,
            halftime_home_goals=self.halftime_home_goals,
            halftime_away_goals=self.halftime_away_goals,
            match_context=self.match_context.to_entity() if self.match_context else None,
        )


class BatchPredictionRequestDTO(BaseModel):
    """Request for many fixture predictions."""
    fixtures: list[PredictionRequestDTO] = Field(..., max_length=MAX_BATCH_SIZE)


# ============================================================
# Prediction Response DTOs
# ============================================================

class OutcomeProbabilitiesDTO(BaseModel):
    home_win: float = Field(..., ge=0, le=1)
    draw: float = Field(..., ge=0, le=1)
    away_win: float = Field(..., ge=0, le=1)

    class Config:
        from_attributes = True


class FeatureImportanceDTO(BaseModel):
    feature_name: str
    importance: float
    value: float
    description: str = ""

    class Config:
        from_attributes = True


class ScoreProbabilityDTO(BaseModel):
    home_goals: int
    away_goals: int
    probability: float

    class Config:
        from_attributes = True


class ScorelinePredictionDTO(BaseModel):
    most_likely_score: str
    score_probabilities: list[ScoreProbabilityDTO] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ModelExplanationDTO(BaseModel):
    """Per-model contribution to the ensemble."""
    model_name: str
    weight: float = Field(..., ge=0, le=1)
    prediction: OutcomeProbabilitiesDTO
    confidence: float = Field(..., ge=0, le=1)
    key_features: list[FeatureImportanceDTO] = Field(default_factory=list)

    class Config:
        from_attributes = True
        protected_namespaces = ()


class PredictionMetadataDTO(BaseModel):
    model_version: str
    prediction_timestamp: datetime
    data_quality_score: float = Field(..., ge=0, le=1)
    prediction_confidence: str  # "HIGH", "MEDIUM", "LOW"
    warning_flags: list[str] = Field(default_factory=list)

    class Config:
        from_attributes = True
        protected_namespaces = ()


class PredictionResponseDTO(BaseModel):
    """Prediction data transfer object."""
    home_team: str
    away_team: str
    home_win_probability: float = Field(..., ge=0, le=1)
    draw_probability: float = Field(..., ge=0, le=1)
    away_win_probability: float = Field(..., ge=0, le=1)
    most_likely_outcome: str
    confidence_score: float = Field(..., ge=0, le=1)
    model_explanations: list[ModelExplanationDTO] = Field(default_factory=list)
    prediction_metadata: PredictionMetadataDTO
    scoreline_predictions: Optional[ScorelinePredictionDTO] = None
    quality_assessment: Optional[dict] = None
    trends: Optional[dict] = None

    class Config:
        from_attributes = True
        protected_namespaces = ()

    def to_entity(self) -> PredictionOutput:
        """Rebuild the domain prediction, e.g. when it is sent back as feedback."""
        probabilities = OutcomeProbabilities.from_weights(
            self.home_win_probability, self.draw_probability, self.away_win_probability
        )
        scorelines = None
        if self.scoreline_predictions:
            scorelines = ScorelinePrediction(
                most_likely_score=self.scoreline_predictions.most_likely_score,
                score_probabilities=tuple(
                    ScoreProbability(s.home_goals, s.away_goals, s.probability)
                    for s in self.scoreline_predictions.score_probabilities
                ),
            )
        meta = self.prediction_metadata
        return PredictionOutput(
            home_team=self.home_team,
            away_team=self.away_team,
            home_win_probability=probabilities.home_win,
            draw_probability=probabilities.draw,
            away_win_probability=probabilities.away_win,
            most_likely_outcome=self.most_likely_outcome,
            confidence_score=self.confidence_score,
            model_explanations=tuple(
                ModelExplanation(
                    model_name=e.model_name,
                    weight=e.weight,
                    prediction=OutcomeProbabilities.from_weights(
                        e.prediction.home_win, e.prediction.draw, e.prediction.away_win
                    ),
                    confidence=e.confidence,
                    key_features=tuple(
                        FeatureImportance(f.feature_name, f.importance, f.value, f.description)
                        for f in e.key_features
                    ),
                )
                for e in self.model_explanations
            ),
            prediction_metadata=PredictionMetadata(
                model_version=meta.model_version,
                prediction_timestamp=meta.prediction_timestamp,
                data_quality_score=meta.data_quality_score,
                prediction_confidence=meta.prediction_confidence,
                warning_flags=tuple(meta.warning_flags),
            ),
            scoreline_predictions=scorelines,
        )


class PredictionFailureDTO(BaseModel):
    """Batch element that could not be predicted."""
    index: int
    home_team: str
    away_team: str
    error_type: str
    message: str

    class Config:
        from_attributes = True


class BatchItemDTO(BaseModel):
    """One batch result; exactly one of prediction / failure is set."""
    index: int
    prediction: Optional[PredictionResponseDTO] = None
    failure: Optional[PredictionFailureDTO] = None


class BatchPredictionResponseDTO(BaseModel):
    """Batch results in request order."""
    results: list[BatchItemDTO]
    succeeded: int
    failed: int
    generated_at: datetime = Field(default_factory=get_current_time)


# ============================================================
# Statistics DTOs
# ============================================================

class MatchStatsDTO(BaseModel):
    total_matches: int = 0
    home_wins: int = 0
    draws: int = 0
    away_wins: int = 0
    btts_count: int = 0
    comeback_count: int = 0
    avg_goals: float = 0.0
    home_win_percentage: float = 0.0
    draw_percentage: float = 0.0
    away_win_percentage: float = 0.0
    btts_percentage: float = 0.0
    comeback_percentage: float = 0.0

    class Config:
        from_attributes = True


class GoalStatsDTO(BaseModel):
    home_goals_total: int = 0
    away_goals_total: int = 0
    home_goals_per_match: float = 0.0
    away_goals_per_match: float = 0.0
    home_clean_sheets: int = 0
    away_clean_sheets: int = 0
    home_clean_sheet_percentage: float = 0.0
    away_clean_sheet_percentage: float = 0.0

    class Config:
        from_attributes = True


class OverUnderStatsDTO(BaseModel):
    over_25_count: int = 0
    under_25_count: int = 0
    over_25_percentage: float = 0.0
    under_25_percentage: float = 0.0
    over_35_count: int = 0
    over_35_percentage: float = 0.0

    class Config:
        from_attributes = True


class FrequentResultDTO(BaseModel):
    result: str
    count: int
    percentage: float

    class Config:
        from_attributes = True


class HalfTimeAnalysisDTO(BaseModel):
    ht_home_leads: int = 0
    ht_away_leads: int = 0
    ht_draws: int = 0
    ht_home_lead_to_win: int = 0
    ht_home_lead_to_draw: int = 0
    ht_home_lead_to_loss: int = 0
    ht_away_lead_to_win: int = 0
    ht_away_lead_to_draw: int = 0
    ht_away_lead_to_loss: int = 0
    home_lead_hold_percentage: float = 0.0
    away_lead_hold_percentage: float = 0.0

    class Config:
        from_attributes = True


class DetailedMatchStatsDTO(BaseModel):
    basic: MatchStatsDTO
    goal_stats: GoalStatsDTO
    over_under: OverUnderStatsDTO
    frequent_results: list[FrequentResultDTO] = Field(default_factory=list)
    half_time_analysis: HalfTimeAnalysisDTO

    class Config:
        from_attributes = True


class StatisticsResponseDTO(BaseModel):
    """Statistics over the matches selected by the query filters."""
    filters: dict
    matches_analyzed: int
    basic: MatchStatsDTO
    detailed: Optional[DetailedMatchStatsDTO] = None
    generated_at: datetime = Field(default_factory=get_current_time)


# ============================================================
# Learning DTOs
# ============================================================

class FeedbackRequestDTO(BaseModel):
    """Final score of a previously served prediction."""
    prediction_id: Optional[str] = None
    prediction: PredictionResponseDTO
    home_goals: int = Field(..., ge=0)
    away_goals: int = Field(..., ge=0)


class PredictionAccuracyDTO(BaseModel):
    outcome_correct: bool
    score_correct: bool
    probability_error: float
    brier_score: float
    log_loss: float

    class Config:
        from_attributes = True


class ModelPerformanceDTO(BaseModel):
    model_name: str
    individual_accuracy: bool
    contribution_score: float
    feature_reliability: float

    class Config:
        from_attributes = True
        protected_namespaces = ()


class EnsembleWeightsDTO(BaseModel):
    """Current ensemble weights."""
    model_weights: dict[str, float]
    version: int
    last_updated: datetime
    model_accuracy: dict[str, float] = Field(default_factory=dict)

    class Config:
        protected_namespaces = ()


class FeedbackResponseDTO(BaseModel):
    prediction_id: str
    actual_result: str
    prediction_accuracy: PredictionAccuracyDTO
    model_performance: list[ModelPerformanceDTO] = Field(default_factory=list)
    weights: EnsembleWeightsDTO

    class Config:
        protected_namespaces = ()


# ============================================================
# Common DTOs
# ============================================================

class HealthResponseDTO(BaseModel):
    """Health check response."""
    status: str = "healthy"
    version: str = "1.0.0"
    timestamp: datetime = Field(default_factory=get_current_time)


class ErrorResponseDTO(BaseModel):
    """Error response."""
    error: str
    message: str
    details: Optional[dict] = None
