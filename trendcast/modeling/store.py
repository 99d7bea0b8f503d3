"""
In-memory registry of trained per-symbol models.

Models live only for the lifetime of the process. A ``TrainedModel`` is
frozen once created; retraining a symbol replaces the record wholesale, so
a reader holding a record never observes a partial update.

Locking:
- one lock per symbol serializes put/remove/evict for that symbol
- a registry lock guards the per-symbol lock map; a symbol's lock is
  retired when its model is removed or evicted
- reads return the current immutable record without locking
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional

import pandas as pd
from sklearn.pipeline import Pipeline

from trendcast.errors import ModelNotFoundError

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, eq=False)
class TrainedModel:
    """A fitted per-symbol model with its training set."""

    symbol: str
    pipeline: Pipeline
    training_features: pd.DataFrame
    training_labels: pd.Series
    trained_at: datetime
    accuracy: float

    @property
    def features_count(self) -> int:
        return len(self.training_features)

    def to_summary(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'accuracy': self.accuracy,
            'trained_at': self.trained_at.isoformat(),
            'features_count': self.features_count,
        }


class ModelStore:
    """Thread-safe symbol -> TrainedModel registry."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """Initialize model store.

        Args:
            clock: Callable returning an aware UTC datetime (defaults to now)
        """
        self.clock = clock or utc_now
        self._models: Dict[str, TrainedModel] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, symbol: str) -> threading.Lock:
        with self._registry_lock:
            return self._locks.setdefault(symbol, threading.Lock())

    @contextmanager
    def _symbol_lock(self, symbol: str) -> Iterator[None]:
        # a waiter may wake up holding a lock that was retired meanwhile
        while True:
            lock = self._lock_for(symbol)
            with lock:
                with self._registry_lock:
                    current = self._locks.get(symbol) is lock
                if current:
                    yield
                    return

    def _retire_lock(self, symbol: str) -> None:
        """Forget the lock of a symbol that no longer has a model; caller holds it."""
        with self._registry_lock:
            self._locks.pop(symbol, None)

    def put(self, model: TrainedModel) -> None:
        """Store a model, replacing any previous model for its symbol."""
        with self._symbol_lock(model.symbol):
            replaced = model.symbol in self._models
            self._models[model.symbol] = model

        logger.info(f"{'Replaced' if replaced else 'Stored'} model for {model.symbol} "
                    f"(accuracy {model.accuracy:.1f}%)")

    def get(self, symbol: str) -> TrainedModel:
        """Return the model for ``symbol``.

        Raises:
            ModelNotFoundError: If no model is stored for the symbol
        """
        model = self._models.get(symbol)
        if model is None:
            raise ModelNotFoundError(symbol)
        return model

    def find(self, symbol: str) -> Optional[TrainedModel]:
        return self._models.get(symbol)

    def remove(self, symbol: str) -> bool:
        """Drop the model for ``symbol``; returns whether one was stored."""
        with self._symbol_lock(symbol):
            removed = self._models.pop(symbol, None) is not None
            self._retire_lock(symbol)

        if removed:
            logger.info(f"Removed model for {symbol}")
        return removed

    def symbols(self) -> List[str]:
        return sorted(self._models)

    def __len__(self) -> int:
        return len(self._models)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._models

    def evict_older_than(self, max_age: timedelta) -> List[str]:
        """Drop every model trained more than ``max_age`` ago.

        A model is checked again under its symbol lock, so one retrained
        while the sweep runs is kept.

        Returns:
            Sorted list of evicted symbols
        """
        cutoff = self.clock() - max_age
        evicted = []

        for symbol in list(self._models):
            with self._symbol_lock(symbol):
                model = self._models.get(symbol)
                if model is not None and model.trained_at < cutoff:
                    del self._models[symbol]
                    evicted.append(symbol)
                if symbol not in self._models:
                    self._retire_lock(symbol)

        if evicted:
            logger.info(f"Evicted {len(evicted)} models older than {max_age}: {evicted}")
        else:
            logger.debug(f"No models older than {max_age}")

        return sorted(evicted)

    def summary(self) -> Dict[str, Dict[str, Any]]:
        """Per-symbol accuracy, training time and training set size."""
        snapshot = dict(self._models)
        return {symbol: model.to_summary() for symbol, model in sorted(snapshot.items())}

    def stats(self) -> Dict[str, Any]:
        """Aggregate statistics over all stored models."""
        models = list(dict(self._models).values())
        if not models:
            return {
                'total_models': 0,
                'average_accuracy': 0.0,
                'total_features': 0,
                'oldest_model': None,
                'newest_model': None,
            }

        trained_at = [model.trained_at for model in models]
        return {
            'total_models': len(models),
            'average_accuracy': sum(model.accuracy for model in models) / len(models),
            'total_features': sum(model.features_count for model in models),
            'oldest_model': min(trained_at).isoformat(),
            'newest_model': max(trained_at).isoformat(),
        }
