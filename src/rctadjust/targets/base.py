"""
Base protocol and classes for estimands.

An estimand maps the targeted counterfactual survival curves of one fold,
and their influence functions, to arm-specific values and a treatment
contrast. Fold results are then averaged (estimates) and stacked by
original index (influence functions).
"""

from dataclasses import dataclass
from typing import Optional, Protocol, Tuple, runtime_checkable

import numpy as np

from .._typing import Float64Array
from ..engine.crossfit import CrossFitResult
from ..engine.targeting import TargetedCurves
from ..engine.variance import aggregate_folds, compute_inference_results
from ..results import Estimate, EstimatorResult


@dataclass(frozen=True)
class FoldEstimate:
    """Estimand values and influence functions on one fold.

    Attributes:
        effect: (d,) treatment contrast.
        effect_eif: (m, d) influence function of the contrast.
        arm1, arm0: (d,) arm-specific values, or None.
        arm1_eif, arm0_eif: (m, d) their influence functions, or None.
    """

    effect: Float64Array
    effect_eif: Float64Array
    arm1: Optional[Float64Array] = None
    arm1_eif: Optional[Float64Array] = None
    arm0: Optional[Float64Array] = None
    arm0_eif: Optional[Float64Array] = None

    @classmethod
    def from_arms(
        cls,
        arm1: Float64Array,
        arm1_eif: Float64Array,
        arm0: Float64Array,
        arm0_eif: Float64Array,
    ) -> "FoldEstimate":
        """Contrast arm1 - arm0 with its influence function."""
        return cls(
            effect=arm1 - arm0,
            effect_eif=arm1_eif - arm0_eif,
            arm1=arm1,
            arm1_eif=arm1_eif,
            arm0=arm0,
            arm0_eif=arm0_eif,
        )


@runtime_checkable
class Estimand(Protocol):
    """
    Protocol for estimands.

    An estimand defines:
    - name: label used in results
    - index: labels of the reported entries (horizons, levels, ...)
    - compute(curves): FoldEstimate for one fold
    """

    name: str
    index: Tuple

    def compute(self, curves: TargetedCurves) -> FoldEstimate:
        ...


class BaseEstimand:
    """Base class for estimands."""

    name: str = "estimand"

    def __init__(self, index: Tuple):
        self.index = tuple(index)

    def times_used(self, n_times: int) -> np.ndarray:
        """0-based curve times the estimand depends on."""
        return np.arange(n_times)

    def compute(self, curves: TargetedCurves) -> FoldEstimate:
        """Must be implemented by subclasses."""
        raise NotImplementedError("Subclasses must implement compute()")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(index={list(self.index)})"


def _to_estimate(
    crossfit: CrossFitResult,
    estimates: list,
    eifs: list,
    alpha: float,
) -> Estimate:
    point = aggregate_folds(estimates)
    eif = crossfit.assemble(eifs)
    inf = compute_inference_results(point, eif, alpha)
    return Estimate(
        estimate=inf["estimate"],
        eif=eif,
        std_error=inf["se"],
        ci_lower=inf["ci_lower"],
        ci_upper=inf["ci_upper"],
    )


def evaluate(
    estimand: Estimand,
    crossfit: CrossFitResult,
    estimator: str,
    alpha: float = 0.05,
) -> EstimatorResult:
    """
    Evaluate an estimand on every fold and combine.

    Args:
        estimand: Estimand to compute.
        crossfit: Cross-fitting results holding the targeted curves.
        estimator: Targeting strategy used, recorded on the result.
        alpha: Significance level of the confidence intervals.

    Returns:
        EstimatorResult with fold-averaged estimates and stacked EIFs.
    """
    per_fold = [estimand.compute(fr.targeted) for fr in crossfit.fold_results]

    effect = _to_estimate(
        crossfit,
        [fe.effect for fe in per_fold],
        [fe.effect_eif for fe in per_fold],
        alpha,
    )
    arm1 = arm0 = None
    if per_fold[0].arm1 is not None:
        arm1 = _to_estimate(
            crossfit, [fe.arm1 for fe in per_fold], [fe.arm1_eif for fe in per_fold], alpha
        )
        arm0 = _to_estimate(
            crossfit, [fe.arm0 for fe in per_fold], [fe.arm0_eif for fe in per_fold], alpha
        )

    return EstimatorResult(
        estimand=estimand.name,
        index=estimand.index,
        effect=effect,
        arm1=arm1,
        arm0=arm0,
        estimator=estimator,
        iterated=estimator == "tmle" and _iterated(estimand, crossfit),
        n_obs=crossfit.n_obs,
        n_folds=crossfit.n_folds,
        alpha=alpha,
    )


def _iterated(estimand: Estimand, crossfit: CrossFitResult) -> bool:
    """True when targeting converged at every time the estimand uses."""
    if hasattr(estimand, "times_used"):
        used = estimand.times_used(crossfit.n_times)
    else:
        used = np.arange(crossfit.n_times)
    return all(bool(fr.targeted.iterated[:, used].all()) for fr in crossfit.fold_results)
