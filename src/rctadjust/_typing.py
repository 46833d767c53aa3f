"""Type definitions for rctadjust.

This module provides type aliases using numpy.typing for clear,
consistent type annotations throughout the package.
"""

from __future__ import annotations

from typing import Optional, Protocol, Union, runtime_checkable

import numpy as np
from numpy.typing import NDArray

# Core numeric types
Float64Array = NDArray[np.float64]
Int64Array = NDArray[np.int64]
BoolArray = NDArray[np.bool_]

ArrayLike = Union[Float64Array, Int64Array, list]


@runtime_checkable
class FittedModel(Protocol):
    """A fitted binary model. Returns P(y=1 | X) for new rows."""

    def predict(self, X: Float64Array) -> Float64Array:
        """Predict probabilities of the positive class, shape (n,)."""
        ...


@runtime_checkable
class Learner(Protocol):
    """Protocol for the model-fitting capability consumed by the estimators.

    Any object with ``fit(X, y, weights)`` returning a FittedModel satisfies
    this protocol. ``is_simple`` marks low-complexity learners (parametric
    regressions) for which cross-fitting is switched off.
    """

    name: str
    is_simple: bool

    def fit(
        self,
        X: Float64Array,
        y: Float64Array,
        weights: Optional[Float64Array] = None,
    ) -> FittedModel:
        """Fit the model to binary outcomes."""
        ...
