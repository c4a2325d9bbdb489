import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Add project root to sys.path
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
logger = logging.getLogger("StandaloneTrainer")


async def train_model(limit: int):
    """
    Standalone function to train the gradient-boosted model from stored matches.
    """
    logger.info("Starting Standalone Model Training...")

    from winmix.api.dependencies import get_config, get_database_service, get_match_repository
    from winmix.application.services.ml_training_orchestrator import MLTrainingOrchestrator

    config = get_config()
    get_database_service().create_tables()
    orchestrator = MLTrainingOrchestrator(
        repository=get_match_repository(),
        model_path=config.gb_model_path or "ml_model.joblib",
    )

    result = await orchestrator.train(limit=limit)

    logger.info(f"Matches processed: {result.matches_processed}")
    logger.info(f"Samples used: {result.samples_used} {result.class_distribution}")
    if not result.model_saved:
        logger.error("FAILURE: Not enough data, model not trained.")
        sys.exit(1)

    logger.info(f"Holdout accuracy: {result.holdout_accuracy}")
    logger.info(f"SUCCESS: {result.model_path} generated.")


if __name__ == "__main__":
    load_dotenv()
    parser = argparse.ArgumentParser(description="Train the gradient-boosted outcome model")
    parser.add_argument("--limit", type=int, default=2000, help="Most recent matches to train on")
    args = parser.parse_args()
    asyncio.run(train_model(args.limit))
