"""scikit-learn adapters: logistic regression, lasso, random forest."""

from typing import Optional

import numpy as np
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression

from .._typing import Float64Array
from .base import BaseLearner, SklearnModel


class GLMLearner(BaseLearner):
    """Unpenalized logistic regression.

    Always used for the propensity model, and for the outcome models when
    there are fewer than two adjustment covariates.
    """

    name = "glm"
    is_simple = True

    def __init__(self, max_iter: int = 1000):
        self.max_iter = max_iter

    def _fit(self, X, y, weights):
        model = LogisticRegression(C=np.inf, max_iter=self.max_iter)
        model.fit(X, y, sample_weight=weights)
        return SklearnModel(model)


class LassoLearner(BaseLearner):
    """L1-penalized logistic regression with a fixed penalty."""

    name = "lasso"
    is_simple = True

    def __init__(self, C: float = 1.0, max_iter: int = 1000):
        self.C = C
        self.max_iter = max_iter

    def _fit(self, X, y, weights):
        model = LogisticRegression(
            penalty="l1",
            C=self.C,
            solver="liblinear",
            max_iter=self.max_iter,
        )
        model.fit(X, y, sample_weight=weights)
        return SklearnModel(model)

    def __repr__(self) -> str:
        return f"LassoLearner(C={self.C})"


class ForestLearner(BaseLearner):
    """Random forest probability estimates."""

    name = "rf"

    def __init__(
        self,
        n_estimators: int = 200,
        min_samples_leaf: int = 10,
        random_state: Optional[int] = 0,
        n_jobs: Optional[int] = None,
    ):
        self.n_estimators = n_estimators
        self.min_samples_leaf = min_samples_leaf
        self.random_state = random_state
        self.n_jobs = n_jobs

    def _fit(self, X: Float64Array, y, weights):
        model = RandomForestClassifier(
            n_estimators=self.n_estimators,
            min_samples_leaf=self.min_samples_leaf,
            random_state=self.random_state,
            n_jobs=self.n_jobs,
        )
        model.fit(X, y, sample_weight=weights)
        return SklearnModel(model)

    def __repr__(self) -> str:
        return (
            f"ForestLearner(n_estimators={self.n_estimators}, "
            f"min_samples_leaf={self.min_samples_leaf})"
        )
