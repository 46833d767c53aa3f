"""
Per-fold nuisance estimation.

Three models are fit on the training subset of a fold:

    propensity   P(A=1 | W)                         GLM on propensity covariates
    event        P(T=m, Delta=1 | T>=m, A, X)        pooled over person-time
    censoring    P(T=m, Delta=0 | T>=m, no event, A, X)

and evaluated on the held-out subset under both forced arms at every grid
time, which is what the counterfactual curves need.
"""

from dataclasses import dataclass
from typing import Optional

import numpy as np

from .._typing import Float64Array, FittedModel, Int64Array, Learner
from ..data.design import DesignData, expand_person_time, pooled_design
from ..exceptions import NuisanceFitError
from ..learners import ConstantModel, GLMLearner


@dataclass(frozen=True)
class NuisancePrediction:
    """Held-out nuisance predictions for one fold.

    Attributes:
        indices: (m,) original indices of the held-out observations.
        propensity: (m,) P(A=1 | W).
        hazard: (m, K, 2) event hazard under A=0 ([..., 0]) and A=1 ([..., 1]).
        censoring: (m, K, 2) censoring hazard, same layout. All zero when
            the data have no censoring.
    """

    indices: Int64Array
    propensity: Float64Array
    hazard: Float64Array
    censoring: Float64Array

    @property
    def n_eval(self) -> int:
        return len(self.indices)


def fit_binary(learner: Learner, X: Float64Array, y: Float64Array, component: str) -> FittedModel:
    """Fit one binary nuisance model.

    A single-class outcome gives a ConstantModel. Learner failures are
    re-raised as NuisanceFitError.
    """
    if len(y) == 0:
        raise NuisanceFitError(f"No training rows for the {component} model")
    if y.min() == y.max():
        return ConstantModel(y[0])
    try:
        return learner.fit(X, y)
    except Exception as e:
        raise NuisanceFitError(f"{component} model failed to fit: {e}") from e


def _checked_predict(model: FittedModel, X: Float64Array, component: str) -> Float64Array:
    try:
        pred = np.asarray(model.predict(X), dtype=np.float64).ravel()
    except Exception as e:
        raise NuisanceFitError(f"{component} model failed to predict: {e}") from e
    if pred.shape[0] != X.shape[0]:
        raise NuisanceFitError(
            f"{component} model returned {pred.shape[0]} predictions for {X.shape[0]} rows"
        )
    if not np.all(np.isfinite(pred)) or pred.min() < 0 or pred.max() > 1:
        raise NuisanceFitError(f"{component} model returned probabilities outside [0, 1]")
    return pred


def _counterfactual_hazard(
    model: FittedModel,
    covariates: Float64Array,
    n_times: int,
    component: str,
) -> Float64Array:
    """Predict (m, K, 2) hazards for every time under both forced arms."""
    m = covariates.shape[0]
    time = np.tile(np.arange(1, n_times + 1, dtype=np.int64), m)
    X_rep = np.repeat(covariates, n_times, axis=0)

    out = np.empty((m, n_times, 2))
    for a in (0, 1):
        arm = np.full(m * n_times, float(a))
        design = pooled_design(time, arm, X_rep, n_times)
        out[:, :, a] = _checked_predict(model, design, component).reshape(m, n_times)
    return out


def _propensity_features(data: DesignData, idx: Int64Array) -> Float64Array:
    W = data.propensity_covariates[idx]
    if W.shape[1] == 0:
        # intercept-only model
        return np.zeros((len(idx), 1))
    return W


def fit_nuisance(
    data: DesignData,
    train_idx: Int64Array,
    eval_idx: Int64Array,
    learner: Learner,
    propensity_learner: Optional[Learner] = None,
) -> NuisancePrediction:
    """Fit the nuisance models on ``train_idx`` and predict on ``eval_idx``.

    Args:
        data: Trial design data.
        train_idx: Observations used for fitting.
        eval_idx: Held-out observations to predict on.
        learner: Learner for the event and censoring hazards.
        propensity_learner: Learner for the propensity. Defaults to GLM.

    Returns:
        NuisancePrediction for the held-out observations.
    """
    if propensity_learner is None:
        propensity_learner = GLMLearner()

    A_train = data.treatment[train_idx]
    if A_train.min() == A_train.max():
        raise NuisanceFitError("Training fold contains a single treatment arm")

    K = data.n_times

    # 1. Propensity
    prop_model = fit_binary(
        propensity_learner, _propensity_features(data, train_idx), A_train, "propensity"
    )
    propensity = _checked_predict(prop_model, _propensity_features(data, eval_idx), "propensity")

    # 2. Event hazard on the person-time expansion
    pt = expand_person_time(data, train_idx)
    design = pooled_design(
        pt.time, data.treatment[pt.obs], data.covariates[pt.obs], K
    )
    event_model = fit_binary(learner, design, pt.event, "event hazard")
    X_eval = data.covariates[eval_idx]
    hazard = _counterfactual_hazard(event_model, X_eval, K, "event hazard")

    # 3. Censoring hazard on rows without an event
    if data.has_censoring:
        keep = pt.event == 0
        cens_model = fit_binary(learner, design[keep], pt.censored[keep], "censoring")
        censoring = _counterfactual_hazard(cens_model, X_eval, K, "censoring")
    else:
        censoring = np.zeros_like(hazard)

    return NuisancePrediction(
        indices=np.asarray(eval_idx, dtype=np.int64),
        propensity=propensity,
        hazard=hazard,
        censoring=censoring,
    )
