"""Learner adapters for the nuisance models."""

from typing import Union

from .._typing import Learner
from .base import BaseLearner, ConstantModel, SklearnModel
from .lgbm import LGBMLearner
from .mlp import MLPLearner
from .sklearn_learners import ForestLearner, GLMLearner, LassoLearner

LEARNER_REGISTRY = {
    "glm": GLMLearner,
    "lasso": LassoLearner,
    "rf": ForestLearner,
    "lgbm": LGBMLearner,
    "mlp": MLPLearner,
}


def get_learner(name: str, **kwargs) -> BaseLearner:
    """
    Get a learner by name.

    Args:
        name: Learner name. Available:
              - 'glm': unpenalized logistic regression
              - 'lasso': L1-penalized logistic regression
              - 'rf': random forest
              - 'lgbm': LightGBM gradient boosting
              - 'mlp': PyTorch multilayer perceptron
        **kwargs: Passed to the learner constructor (e.g. C=0.5 for lasso,
                  n_estimators=500 for rf).

    Returns:
        Instantiated learner
    """
    if name not in LEARNER_REGISTRY:
        raise ValueError(f"Unknown learner: {name}. Available: {list(LEARNER_REGISTRY.keys())}")
    return LEARNER_REGISTRY[name](**kwargs)


def resolve_learner(learner: Union[str, Learner]) -> Learner:
    """Accept a registry name or any object satisfying the Learner protocol."""
    if isinstance(learner, str):
        return get_learner(learner)
    if not isinstance(learner, Learner):
        raise TypeError(
            f"learner must be a name or implement fit(X, y, weights), got {type(learner).__name__}"
        )
    return learner


__all__ = [
    "BaseLearner",
    "ConstantModel",
    "SklearnModel",
    "GLMLearner",
    "LassoLearner",
    "ForestLearner",
    "LGBMLearner",
    "MLPLearner",
    "LEARNER_REGISTRY",
    "get_learner",
    "resolve_learner",
]
