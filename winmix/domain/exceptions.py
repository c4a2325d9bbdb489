"""
Domain exceptions for the prediction system.
"""


class PredictionException(Exception):
    """Base exception for prediction-related errors."""
    pass


class DataUnavailableException(PredictionException):
    """
    Not enough match history.

    Never raised by the engine: missing history is recovered inside feature
    extraction with neutral defaults and reported as a warning flag.
    """
    pass


class ModelFailureException(PredictionException):
    """Raised when a single model cannot produce a valid probability triple."""

    def __init__(self, model_name: str, message: str):
        super().__init__(f"{model_name}: {message}")
        self.model_name = model_name


class UpstreamUnavailableException(PredictionException):
    """Raised when the match-query collaborator itself cannot be reached."""
    pass


class ValidationException(PredictionException):
    """Raised for malformed prediction input, before any fetch happens."""
    pass
