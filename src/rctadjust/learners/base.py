"""Shared pieces of the learner adapters."""

from abc import ABC, abstractmethod
from typing import Any, Optional

import numpy as np

from .._typing import Float64Array, FittedModel


class ConstantModel:
    """Predicts the same probability for every row.

    Returned when the training outcome has a single class, e.g. a pooled
    hazard with no events in the training fold.
    """

    def __init__(self, value: float):
        self.value = float(value)

    def predict(self, X: Float64Array) -> Float64Array:
        return np.full(X.shape[0], self.value)

    def __repr__(self) -> str:
        return f"ConstantModel(value={self.value:.4f})"


class SklearnModel:
    """Fitted sklearn-style classifier exposing P(y=1 | X)."""

    def __init__(self, estimator: Any):
        self.estimator = estimator
        self._pos = list(estimator.classes_).index(1)

    def predict(self, X: Float64Array) -> Float64Array:
        return self.estimator.predict_proba(X)[:, self._pos]


class BaseLearner(ABC):
    """Base class for learner adapters.

    Subclasses implement ``_fit``; ``fit`` validates shapes and requires
    both classes to be present.
    """

    name: str = "base"
    is_simple: bool = False

    def fit(
        self,
        X: Float64Array,
        y: Float64Array,
        weights: Optional[Float64Array] = None,
    ) -> FittedModel:
        X = np.asarray(X, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64).ravel()
        if X.shape[0] != len(y):
            raise ValueError(
                f"X and y have inconsistent samples: {X.shape[0]} vs {len(y)}"
            )
        if len(y) == 0:
            raise ValueError("Cannot fit a learner on zero rows")
        if y.min() == y.max():
            raise ValueError("Outcome has a single class; fit a ConstantModel instead")
        return self._fit(X, y.astype(np.int64), weights)

    @abstractmethod
    def _fit(
        self,
        X: Float64Array,
        y: Float64Array,
        weights: Optional[Float64Array],
    ) -> FittedModel:
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
