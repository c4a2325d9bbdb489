"""
Engine Configuration

Built once at start-up from environment variables and passed to every
component that needs it.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_DATABASE_URL = "sqlite:///./winmix.db"
DEFAULT_MODEL_VERSION = "winmix-ensemble-1.0"


@dataclass(frozen=True)
class EngineConfig:
    """
    Runtime configuration.

    Attributes:
        database_url: SQLAlchemy URL of the match store
        model_version: Version tag stamped into prediction metadata
        ensemble_weights_path: JSON file with persisted ensemble weights
        gb_model_path: joblib artifact of the gradient-boosted model
        fetch_timeout_seconds: Budget for each history fetch of a prediction
        batch_concurrency: Fixtures of a batch predicted at the same time
        cors_origins: Allowed CORS origins for the API
        port: API port
    """
    database_url: str = DEFAULT_DATABASE_URL
    model_version: str = DEFAULT_MODEL_VERSION
    ensemble_weights_path: str = "ensemble_weights.json"
    gb_model_path: Optional[str] = "ml_model.joblib"
    fetch_timeout_seconds: float = 5.0
    batch_concurrency: int = 8
    cors_origins: tuple[str, ...] = field(default_factory=tuple)
    port: int = 8000

    @classmethod
    def from_env(cls) -> "EngineConfig":
        cors = os.getenv("CORS_ORIGINS", "")
        return cls(
            database_url=os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
            model_version=os.getenv("WINMIX_MODEL_VERSION", DEFAULT_MODEL_VERSION),
            ensemble_weights_path=os.getenv("ENSEMBLE_WEIGHTS_PATH", "ensemble_weights.json"),
            gb_model_path=os.getenv("GB_MODEL_PATH", "ml_model.joblib") or None,
            fetch_timeout_seconds=float(os.getenv("FETCH_TIMEOUT_SECONDS", "5.0")),
            batch_concurrency=int(os.getenv("BATCH_CONCURRENCY", "8")),
            cors_origins=tuple(o.strip() for o in cors.split(",") if o.strip()),
            port=int(os.getenv("PORT", "8000")),
        )
