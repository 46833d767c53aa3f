"""LightGBM gradient boosting adapter."""

from typing import Optional

from .base import BaseLearner, SklearnModel

try:
    from lightgbm import LGBMClassifier
    HAS_LGBM = True
except ImportError:
    HAS_LGBM = False


class LGBMLearner(BaseLearner):
    """Gradient-boosted trees via LGBMClassifier."""

    name = "lgbm"

    def __init__(
        self,
        n_estimators: int = 100,
        learning_rate: float = 0.05,
        num_leaves: int = 15,
        min_child_samples: int = 20,
        random_state: Optional[int] = 0,
    ):
        if not HAS_LGBM:
            raise ImportError("LightGBM not installed. Run: pip install lightgbm")
        self.n_estimators = n_estimators
        self.learning_rate = learning_rate
        self.num_leaves = num_leaves
        self.min_child_samples = min_child_samples
        self.random_state = random_state

    def _fit(self, X, y, weights):
        model = LGBMClassifier(
            n_estimators=self.n_estimators,
            learning_rate=self.learning_rate,
            num_leaves=self.num_leaves,
            min_child_samples=self.min_child_samples,
            random_state=self.random_state,
            verbose=-1,
        )
        model.fit(X, y, sample_weight=weights)
        return SklearnModel(model)

    def __repr__(self) -> str:
        return f"LGBMLearner(n_estimators={self.n_estimators}, learning_rate={self.learning_rate})"
