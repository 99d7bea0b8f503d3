"""
Modeling package.

Per-symbol regression models: training, storage, inference and the
accuracy/confidence metrics they share.

Main components:
- ModelTrainer: fits and stores a model from candle history
- Predictor: scores the latest candle with a stored model
- ModelStore: thread-safe in-memory registry of trained models
- ModelMetrics: score banding, accuracy and distance-based confidence
"""

from trendcast.modeling.metrics import ModelMetrics
from trendcast.modeling.predictor import Prediction, Predictor
from trendcast.modeling.store import ModelStore, TrainedModel
from trendcast.modeling.trainer import ModelTrainer

__all__ = [
    "ModelMetrics",
    "ModelStore",
    "ModelTrainer",
    "Prediction",
    "Predictor",
    "TrainedModel",
]
