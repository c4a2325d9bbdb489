"""
Prediction Engine

Orchestrates one prediction: validate the fixture, fetch features
concurrently, run every model, combine them and attach metadata.
"""

import asyncio
import logging
from typing import Awaitable, Mapping, Optional, Sequence, TypeVar, Union

from winmix.core.config import EngineConfig
from winmix.domain.constants import BASE_RATES, LIMITED_DATA_THRESHOLD
from winmix.domain.entities.features import (
    FeatureBundle,
    HalfTimeState,
    HeadToHeadFeatures,
    TeamFeatures,
)
from winmix.domain.entities.prediction import (
    FinalPrediction,
    ModelExplanation,
    ModelPrediction,
    PredictionFailure,
    PredictionInput,
    PredictionMetadata,
    PredictionOutput,
)
from winmix.domain.exceptions import PredictionException, ValidationException
from winmix.domain.services.confidence_calculator import ConfidenceCalculator
from winmix.domain.services.ensemble_service import EnsembleCombiner
from winmix.domain.services.feature_extractor import FeatureExtractor
from winmix.domain.services.learning_service import EnsembleWeightStore
from winmix.domain.services.prediction_models import PredictionModel
from winmix.domain.value_objects.value_objects import OutcomeProbabilities
from winmix.utils.time_utils import get_current_time

logger = logging.getLogger(__name__)

T = TypeVar("T")

FALLBACK_CONFIDENCE = 0.1


class PredictionEngine:
    """
    Ensemble prediction engine.

    Data availability problems never abort a prediction: missing history,
    timed-out fetches and failing models are recovered with neutral defaults
    and reported in the warning flags. Only UpstreamUnavailableException
    (the match store itself is down) and ValidationException reach the caller.
    """

    def __init__(
        self,
        extractor: FeatureExtractor,
        models: Mapping[str, PredictionModel],
        weight_store: EnsembleWeightStore,
        config: Optional[EngineConfig] = None,
        combiner: Optional[EnsembleCombiner] = None,
    ):
        self.extractor = extractor
        self.models = dict(models)
        self.weight_store = weight_store
        self.config = config or EngineConfig()
        self.combiner = combiner or EnsembleCombiner()

    @staticmethod
    def validate(prediction_input: PredictionInput) -> None:
        """
        Reject malformed input before any fetch.

        Raises:
            ValidationException: Missing or identical team names, negative or
                non-integer half-time goals
        """
        home = prediction_input.home_team
        away = prediction_input.away_team
        if not isinstance(home, str) or not home.strip():
            raise ValidationException("home_team is required")
        if not isinstance(away, str) or not away.strip():
            raise ValidationException("away_team is required")
        if home.strip().lower() == away.strip().lower():
            raise ValidationException("home_team and away_team must be different teams")

        for label, goals in (
            ("halftime_home_goals", prediction_input.halftime_home_goals),
            ("halftime_away_goals", prediction_input.halftime_away_goals),
        ):
            if goals is None:
                continue
            if isinstance(goals, bool) or not isinstance(goals, int) or goals < 0:
                raise ValidationException(f"{label} must be a non-negative integer")

    async def predict(self, prediction_input: PredictionInput) -> PredictionOutput:
        """
        Predict one fixture.

        Args:
            prediction_input: Fixture, optional half-time score and context

        Returns:
            A structurally complete PredictionOutput

        Raises:
            ValidationException: Malformed input
            UpstreamUnavailableException: The match store cannot be reached
        """
        self.validate(prediction_input)
        home_team = prediction_input.home_team.strip()
        away_team = prediction_input.away_team.strip()
        context = prediction_input.match_context
        warnings: list[str] = []

        home_features, away_features, (h2h_features, h2h_matches) = await asyncio.gather(
            self._fetch(
                self.extractor.get_team_features(home_team, context),
                TeamFeatures.empty(home_team),
                f"history for {home_team}",
                warnings,
            ),
            self._fetch(
                self.extractor.get_team_features(away_team, context),
                TeamFeatures.empty(away_team),
                f"history for {away_team}",
                warnings,
            ),
            self._fetch(
                self.extractor.get_head_to_head_features(home_team, away_team, context),
                (HeadToHeadFeatures.empty(), []),
                "head-to-head history",
                warnings,
            ),
        )

        if h2h_matches:
            home_features = home_features.with_head_to_head(
                FeatureExtractor.build_head_to_head_record(home_team, away_team, h2h_matches)
            )
            away_features = away_features.with_head_to_head(
                FeatureExtractor.build_head_to_head_record(away_team, home_team, h2h_matches)
            )

        for features in (home_features, away_features):
            if not features.has_history:
                warnings.append(f"no recent matches for {features.team_id}")
        if h2h_features.matches_played == 0:
            warnings.append("no head-to-head history")

        data_quality = ConfidenceCalculator.assess_data_quality(
            home_features, away_features, h2h_features
        )
        if data_quality < LIMITED_DATA_THRESHOLD:
            warnings.append("limited historical data")

        halftime_state = None
        if prediction_input.has_halftime:
            halftime_state = HalfTimeState(
                home_goals=prediction_input.halftime_home_goals or 0,
                away_goals=prediction_input.halftime_away_goals or 0,
            )

        bundle = FeatureBundle(
            home_team=home_features,
            away_team=away_features,
            head_to_head=h2h_features,
            halftime_state=halftime_state,
        )

        model_predictions = self._run_models(bundle, warnings)
        weights = self.weight_store.snapshot()

        if model_predictions:
            final = self.combiner.combine(model_predictions, weights)
        else:
            logger.error(f"All models failed for {home_team} vs {away_team}, using base rates")
            warnings.append("all models unavailable, using base rates")
            final = self._base_rate_prediction()

        return self._build_output(
            home_team, away_team, final, model_predictions, data_quality, warnings
        )

    async def predict_batch(
        self,
        inputs: Sequence[PredictionInput],
    ) -> list[Union[PredictionOutput, PredictionFailure]]:
        """
        Predict many fixtures concurrently.

        Results are one-to-one with `inputs` and in the same order; an element
        that fails yields a PredictionFailure instead of aborting the batch.
        At most `batch_concurrency` fixtures are fetched at the same time.

        Raises:
            UpstreamUnavailableException: The match store is down before fan-out
        """
        if not inputs:
            return []

        await self.extractor.repository.ping()

        semaphore = asyncio.Semaphore(max(1, self.config.batch_concurrency))

        async def run(index: int, item: PredictionInput):
            async with semaphore:
                return await self._predict_or_failure(index, item)

        return list(await asyncio.gather(*(run(i, item) for i, item in enumerate(inputs))))

    async def _predict_or_failure(
        self,
        index: int,
        prediction_input: PredictionInput,
    ) -> Union[PredictionOutput, PredictionFailure]:
        try:
            return await self.predict(prediction_input)
        except PredictionException as e:
            logger.warning(
                f"Batch element {index} ({prediction_input.home_team} vs "
                f"{prediction_input.away_team}) failed: {e}"
            )
            return PredictionFailure(
                index=index,
                home_team=str(prediction_input.home_team),
                away_team=str(prediction_input.away_team),
                error_type=type(e).__name__,
                message=str(e),
            )

    async def _fetch(
        self,
        awaitable: Awaitable[T],
        fallback: T,
        label: str,
        warnings: list[str],
    ) -> T:
        """Await a history fetch under the fetch budget; timeouts fall back to empty history."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.config.fetch_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                f"Fetching {label} exceeded {self.config.fetch_timeout_seconds}s, using empty history"
            )
            warnings.append(f"{label} unavailable (timeout)")
            return fallback

    def _run_models(
        self,
        bundle: FeatureBundle,
        warnings: list[str],
    ) -> dict[str, ModelPrediction]:
        predictions: dict[str, ModelPrediction] = {}
        for name, model in self.models.items():
            try:
                prediction = model.predict(bundle)
                if not isinstance(prediction, ModelPrediction):
                    raise TypeError(f"expected ModelPrediction, got {type(prediction).__name__}")
                predictions[name] = prediction
            except Exception as e:
                # A single model failure is recovered by reweighting the rest
                logger.warning(f"Model {name} excluded from ensemble: {e}")
                warnings.append(f"model {name} unavailable")
        return predictions

    @staticmethod
    def _base_rate_prediction() -> FinalPrediction:
        probabilities = OutcomeProbabilities.from_weights(*BASE_RATES)
        return FinalPrediction(
            probabilities=probabilities,
            most_likely_outcome=probabilities.most_likely_outcome,
            confidence_score=FALLBACK_CONFIDENCE,
        )

    def _build_output(
        self,
        home_team: str,
        away_team: str,
        final: FinalPrediction,
        model_predictions: Mapping[str, ModelPrediction],
        data_quality: float,
        warnings: list[str],
    ) -> PredictionOutput:
        explanations = tuple(
            ModelExplanation(
                model_name=name,
                weight=final.model_weights.get(name, 0.0),
                prediction=prediction.probabilities,
                confidence=prediction.confidence,
                key_features=prediction.key_features,
            )
            for name, prediction in model_predictions.items()
        )
        scorelines = next(
            (p.scorelines for p in model_predictions.values() if p.scorelines is not None),
            None,
        )

        metadata = PredictionMetadata(
            model_version=self.config.model_version,
            prediction_timestamp=get_current_time(),
            data_quality_score=data_quality,
            prediction_confidence=ConfidenceCalculator.confidence_tier(
                final.confidence_score, data_quality
            ),
            warning_flags=tuple(warnings),
        )

        home_win, draw, away_win = final.probabilities.as_tuple()
        return PredictionOutput(
            home_team=home_team,
            away_team=away_team,
            home_win_probability=home_win,
            draw_probability=draw,
            away_win_probability=away_win,
            most_likely_outcome=final.most_likely_outcome,
            confidence_score=final.confidence_score,
            model_explanations=explanations,
            prediction_metadata=metadata,
            scoreline_predictions=scorelines,
        )
