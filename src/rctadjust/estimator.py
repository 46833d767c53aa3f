"""
Public estimation API.

Two steps, fit then estimate:

    fit = survrct("Surv(days, status) ~ arm + age + sex", "arm ~ 1", df)
    rmst(fit, horizon=180)
    survprob(fit, horizon=[90, 180])

    fit = ordinalrct("score ~ arm + age", "arm ~ 1", df)
    log_or(fit); mannwhitney(fit); cdf(fit); pmf(fit)

Fitting runs cross-fitting, nuisance estimation and targeting once; the
estimand functions are pure functions of the fit.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from ._typing import Learner
from .config import CLIP_EPSILON, TargetingConfig
from .data.design import DesignData
from .data.formula import ordinal_design, survival_design
from .engine.crossfit import CrossFitResult, run_crossfit
from .learners import GLMLearner, resolve_learner
from .results import EstimatorResult
from .targets import (
    CDF,
    PMF,
    RMST,
    LogOddsRatio,
    MannWhitney,
    SurvivalProbability,
    evaluate,
)

# Below this many adjustment covariates the outcome learner is replaced by GLM
MIN_COVARIATES_FOR_LEARNER = 2


@dataclass(frozen=True)
class TrialFit:
    """Fitted and targeted counterfactual curves of one trial.

    Attributes:
        data: The design data the fit was computed on.
        crossfit: Per-fold nuisance, plug-in and targeted curves.
        config: Targeting settings used.
        learner: Name of the outcome learner actually used.
        diagnostics: Fold sizes, clipping counts and targeting iterations.
    """

    data: DesignData
    crossfit: CrossFitResult
    config: TargetingConfig
    learner: str
    diagnostics: dict = field(default_factory=dict)

    @property
    def estimator(self) -> str:
        return self.config.strategy

    @property
    def n_folds(self) -> int:
        return self.crossfit.n_folds

    @property
    def iterated(self) -> bool:
        return self.config.strategy == "tmle" and self.crossfit.iterated

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__}: n_obs={self.data.n}, learner={self.learner}, "
            f"estimator={self.estimator}, n_folds={self.n_folds}>"
        )


class SurvivalFit(TrialFit):
    """Fit of a time-to-event outcome. Use with ``rmst`` and ``survprob``."""


class OrdinalFit(TrialFit):
    """Fit of an ordinal outcome. Use with ``log_or``, ``mannwhitney``, ``cdf``, ``pmf``."""


def _learner_name(learner) -> str:
    return getattr(learner, "name", type(learner).__name__)


def _fit(
    data: DesignData,
    learner: Union[str, Learner],
    n_folds: int,
    crossfit: bool,
    estimator: str,
    max_iter: int,
    clip_epsilon: float,
    tol: Optional[float],
    random_state: Optional[int],
    n_jobs: Optional[int],
    verbose: bool,
) -> dict:
    config = TargetingConfig(
        strategy=estimator, max_iter=max_iter, clip_epsilon=clip_epsilon, tol=tol
    )
    learner = resolve_learner(learner)

    collapsed = data.covariates.shape[1] < MIN_COVARIATES_FOR_LEARNER and not isinstance(
        learner, GLMLearner
    )
    if collapsed:
        learner = GLMLearner()
    if learner.is_simple or not crossfit:
        n_folds = 1

    if verbose:
        print(
            f"Fitting {data.outcome_type} nuisance models: learner={_learner_name(learner)}, "
            f"folds={n_folds}, estimator={config.strategy}, n={data.n}, K={data.n_times}"
        )

    result = run_crossfit(
        data,
        learner,
        n_folds=n_folds,
        config=config,
        random_state=random_state,
        n_jobs=n_jobs,
        verbose=verbose,
    )

    diagnostics = {
        "fold_sizes": [len(fr.eval_indices) for fr in result.fold_results],
        "learner_collapsed_to_glm": collapsed,
        "clipped_propensity": sum(fr.curves.n_clipped["propensity"] for fr in result.fold_results),
        "clipped_censoring": sum(fr.curves.n_clipped["censoring"] for fr in result.fold_results),
        "targeting_iterations": np.stack(
            [fr.targeted.iterations for fr in result.fold_results]
        ),
    }

    if verbose:
        status = "converged" if result.iterated else "used one-step fallback"
        print(f"Targeting ({config.strategy}) {status}")

    return dict(
        data=data,
        crossfit=result,
        config=config,
        learner=_learner_name(learner),
        diagnostics=diagnostics,
    )


def fit_survival(
    data: DesignData,
    learner: Union[str, Learner] = "glm",
    n_folds: int = 5,
    crossfit: bool = True,
    estimator: str = "tmle",
    max_iter: int = 20,
    clip_epsilon: float = CLIP_EPSILON,
    tol: Optional[float] = None,
    random_state: Optional[int] = None,
    n_jobs: Optional[int] = None,
    verbose: bool = False,
) -> SurvivalFit:
    """
    Fit and target counterfactual survival curves.

    Args:
        data: Survival DesignData.
        learner: Learner name ("glm", "lasso", "rf", "lgbm", "mlp") or any
            object with ``fit(X, y, weights)``.
        n_folds: Number of cross-fitting folds.
        crossfit: If False, fit and predict on the full sample. Simple
            learners ("glm", "lasso") never cross-fit.
        estimator: "tmle" or "onestep".
        max_iter: Maximum fluctuation iterations per horizon.
        clip_epsilon: Clipping bound for propensities and censoring.
        tol: Absolute convergence tolerance; None for the adaptive rule.
        random_state: Seed for fold assignment.
        n_jobs: Number of folds fitted concurrently.
        verbose: Print progress.

    Returns:
        SurvivalFit
    """
    if data.outcome_type != "survival":
        raise TypeError("fit_survival needs survival data; use fit_ordinal for ordinal outcomes")
    return SurvivalFit(**_fit(
        data, learner, n_folds, crossfit, estimator, max_iter,
        clip_epsilon, tol, random_state, n_jobs, verbose,
    ))


def fit_ordinal(
    data: DesignData,
    learner: Union[str, Learner] = "glm",
    n_folds: int = 5,
    crossfit: bool = True,
    estimator: str = "tmle",
    max_iter: int = 20,
    clip_epsilon: float = CLIP_EPSILON,
    tol: Optional[float] = None,
    random_state: Optional[int] = None,
    n_jobs: Optional[int] = None,
    verbose: bool = False,
) -> OrdinalFit:
    """Fit and target counterfactual ordinal distributions.

    Takes the same arguments as ``fit_survival``.
    """
    if data.outcome_type != "ordinal":
        raise TypeError("fit_ordinal needs ordinal data; use fit_survival for survival outcomes")
    return OrdinalFit(**_fit(
        data, learner, n_folds, crossfit, estimator, max_iter,
        clip_epsilon, tol, random_state, n_jobs, verbose,
    ))


def survrct(
    outcome_formula: str,
    trt_formula: str,
    data: pd.DataFrame,
    coarsen: float = 1.0,
    algo: Union[str, Learner] = "glm",
    crossfit: bool = True,
    **kwargs,
) -> SurvivalFit:
    """
    Fit a time-to-event trial from formulas.

    Args:
        outcome_formula: ``"Surv(time, status) ~ A + covariates"``.
        trt_formula: ``"A ~ 1"`` or ``"A ~ covariates"`` for the propensity.
        data: Trial data.
        coarsen: Width of the discrete time intervals.
        algo: Outcome learner.
        crossfit: Whether to cross-fit non-simple learners.
        **kwargs: Passed to ``fit_survival`` (n_folds, estimator, ...).

    Returns:
        SurvivalFit
    """
    design = survival_design(outcome_formula, trt_formula, data, coarsen=coarsen)
    return fit_survival(design, learner=algo, crossfit=crossfit, **kwargs)


def ordinalrct(
    outcome_formula: str,
    trt_formula: str,
    data: pd.DataFrame,
    algo: Union[str, Learner] = "glm",
    crossfit: bool = True,
    **kwargs,
) -> OrdinalFit:
    """Fit an ordinal-outcome trial from formulas, e.g. ``"score ~ A + age"``."""
    design = ordinal_design(outcome_formula, trt_formula, data)
    return fit_ordinal(design, learner=algo, crossfit=crossfit, **kwargs)


# =============================================================================
# Estimands
# =============================================================================

def _check_fit(fit, kind):
    if not isinstance(fit, kind):
        raise TypeError(f"Expected a {kind.__name__}, got {type(fit).__name__}")


def _horizons(fit: SurvivalFit, horizon):
    grid = fit.data.grid
    if horizon is None:
        return np.arange(1, len(grid) + 1), tuple(grid.points.tolist())
    labels = tuple(np.atleast_1d(np.asarray(horizon, dtype=np.float64)).tolist())
    if not labels:
        raise ValueError("horizon must not be empty")
    return np.array([grid.index_of(h) for h in labels]), labels


def rmst(
    fit: SurvivalFit,
    horizon: Optional[Union[float, Sequence[float]]] = None,
    alpha: float = 0.05,
) -> EstimatorResult:
    """
    Restricted mean survival time.

    Args:
        fit: Result of ``survrct`` / ``fit_survival``.
        horizon: Horizon(s) in original time units; every grid point if None.
        alpha: Significance level of the confidence intervals.

    Returns:
        EstimatorResult with arm1, arm0 and effect (arm1 - arm0).
    """
    _check_fit(fit, SurvivalFit)
    idx, labels = _horizons(fit, horizon)
    return evaluate(RMST(idx, labels, fit.data.grid.coarsen), fit.crossfit, fit.estimator, alpha)


def survprob(
    fit: SurvivalFit,
    horizon: Optional[Union[float, Sequence[float]]] = None,
    alpha: float = 0.05,
) -> EstimatorResult:
    """Survival probability at each horizon; arms and difference arm1 - arm0."""
    _check_fit(fit, SurvivalFit)
    idx, labels = _horizons(fit, horizon)
    return evaluate(SurvivalProbability(idx, labels), fit.crossfit, fit.estimator, alpha)


def log_or(fit: OrdinalFit, alpha: float = 0.05) -> EstimatorResult:
    """Average log odds ratio; positive when arm 1 shifts mass to higher levels."""
    _check_fit(fit, OrdinalFit)
    return evaluate(
        LogOddsRatio(fit.config.clip_epsilon), fit.crossfit, fit.estimator, alpha
    )


def mannwhitney(fit: OrdinalFit, alpha: float = 0.05) -> EstimatorResult:
    """Mann-Whitney probability P(Y1 > Y0) + 0.5 P(Y1 = Y0)."""
    _check_fit(fit, OrdinalFit)
    return evaluate(MannWhitney(), fit.crossfit, fit.estimator, alpha)


def cdf(fit: OrdinalFit, alpha: float = 0.05) -> EstimatorResult:
    _check_fit(fit, OrdinalFit)
    return evaluate(CDF(fit.data.levels), fit.crossfit, fit.estimator, alpha)


def pmf(fit: OrdinalFit, alpha: float = 0.05) -> EstimatorResult:
    _check_fit(fit, OrdinalFit)
    return evaluate(PMF(fit.data.levels), fit.crossfit, fit.estimator, alpha)
