"""
Exception hierarchy for MarketLens.

Input defects never surface as exceptions (the normaliser recovers them
locally); these cover the failures that callers may need to see.
"""

from typing import Optional


class MarketLensError(Exception):
    """Base class for all MarketLens errors."""
    pass


class ModelUnavailableError(MarketLensError):
    """Raised when a named model is not loaded or could not be constructed."""

    def __init__(self, model_name: str, reason: Optional[str] = None):
        message = f"Model '{model_name}' is unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.model_name = model_name
        self.reason = reason


class TrainingError(MarketLensError):
    """Raised when fitting a model fails. The served model is left untouched."""

    def __init__(self, model_name: str, message: str):
        super().__init__(f"Failed to train {model_name} model: {message}")
        self.model_name = model_name


class ArtifactStoreError(MarketLensError):
    """Raised by artifact stores when a read or write cannot be completed."""

    def __init__(self, key: str, message: str):
        super().__init__(f"Artifact store error for '{key}': {message}")
        self.key = key
