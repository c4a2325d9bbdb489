import asyncio
import logging
from typing import List, Optional

import joblib
from pydantic import BaseModel
from sklearn.ensemble import GradientBoostingClassifier
from sklearn.metrics import accuracy_score

from winmix.domain.entities.entities import MatchRecord
from winmix.domain.entities.features import FeatureBundle
from winmix.domain.entities.prediction import MatchContext
from winmix.domain.repositories.repositories import MatchFilter, MatchRepository
from winmix.domain.services.feature_extractor import FeatureExtractor
from winmix.domain.services.ml_feature_extractor import MLFeatureExtractor

logger = logging.getLogger(__name__)

MIN_TRAINING_SAMPLES = 50
HOLDOUT_FRACTION = 0.2


class TrainingResult(BaseModel):
    matches_processed: int
    samples_used: int
    holdout_accuracy: Optional[float] = None
    model_saved: bool = False
    model_path: Optional[str] = None
    class_distribution: dict = {}


class MLTrainingOrchestrator:
    """
    Application service that orchestrates offline training of the
    gradient-boosted outcome model.

    Every sample is built from point-in-time features: only matches played
    before the sample's kick-off date feed its feature vector.
    """

    def __init__(
        self,
        repository: MatchRepository,
        model_path: str = "ml_model.joblib",
        min_history: int = 3,
    ):
        self.repository = repository
        self.extractor = FeatureExtractor(repository)
        self.model_path = model_path
        self.min_history = min_history

    async def build_dataset(self, matches: List[MatchRecord]) -> tuple[List[List[float]], List[str]]:
        """Feature vectors and outcome labels, oldest match first."""
        features: List[List[float]] = []
        targets: List[str] = []

        for processed, match in enumerate(matches, start=1):
            context = MatchContext(date=match.match_time.date())
            home, away, (h2h, _) = await asyncio.gather(
                self.extractor.get_team_features(match.home_team, context),
                self.extractor.get_team_features(match.away_team, context),
                self.extractor.get_head_to_head_features(match.home_team, match.away_team, context),
            )
            # Samples without enough prior history only add noise
            if (
                home.historical_features.total_matches_played < self.min_history
                or away.historical_features.total_matches_played < self.min_history
            ):
                continue

            bundle = FeatureBundle(home_team=home, away_team=away, head_to_head=h2h)
            features.append(MLFeatureExtractor.extract_features(bundle))
            targets.append(match.result_computed)

            if processed % 100 == 0:
                logger.info(f"Built features for {processed}/{len(matches)} matches")

        return features, targets

    async def train(self, limit: int = 2000) -> TrainingResult:
        """
        Train on up to `limit` most recent matches and save the model with joblib.

        The chronologically last HOLDOUT_FRACTION of samples is held out for
        an accuracy estimate before the final fit on every sample.
        """
        newest_first = await self.repository.query_matches(MatchFilter(), limit=limit)
        matches = list(reversed(newest_first))
        logger.info(f"Building training set from {len(matches)} matches...")

        features, targets = await self.build_dataset(matches)
        distribution = {label: targets.count(label) for label in sorted(set(targets))}

        if len(features) < MIN_TRAINING_SAMPLES or len(distribution) < 2:
            logger.warning(
                f"Not enough training samples ({len(features)}, classes {distribution}), model not trained"
            )
            return TrainingResult(
                matches_processed=len(matches),
                samples_used=len(features),
                class_distribution=distribution,
            )

        logger.info(f"Training gradient-boosted model on {len(features)} samples...")

        # Offload CPU-bound training to a thread
        def _train_and_save() -> Optional[float]:
            split = int(len(features) * (1 - HOLDOUT_FRACTION))
            accuracy = None
            if len(set(targets[:split])) > 1:
                evaluator = GradientBoostingClassifier(n_estimators=100, max_depth=3, random_state=42)
                evaluator.fit(features[:split], targets[:split])
                accuracy = float(accuracy_score(targets[split:], evaluator.predict(features[split:])))

            clf = GradientBoostingClassifier(n_estimators=100, max_depth=3, random_state=42)
            clf.fit(features, targets)
            joblib.dump(clf, self.model_path)
            return accuracy

        loop = asyncio.get_running_loop()
        accuracy = await loop.run_in_executor(None, _train_and_save)
        logger.info(f"Model saved to {self.model_path} (holdout accuracy {accuracy})")

        return TrainingResult(
            matches_processed=len(matches),
            samples_used=len(features),
            holdout_accuracy=round(accuracy, 4) if accuracy is not None else None,
            model_saved=True,
            model_path=self.model_path,
            class_distribution=distribution,
        )
