"""Training infrastructure for MarketLens"""

from ..data.training_data import TrainingData, TrainingBatch
from .trainer import ModelTrainer
from .evaluation import TrainingEvaluator
from .orchestrator import TrainingOrchestrator, TrainingOutcome

__all__ = [
    "TrainingData",
    "TrainingBatch",
    "ModelTrainer",
    "TrainingEvaluator",
    "TrainingOrchestrator",
    "TrainingOutcome",
]
