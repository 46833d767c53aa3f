"""
Targeting of the counterfactual survival curves.

Two strategies, both applied per fold to that fold's held-out predictions:

onestep
    psi_a(t) = mean S_a(t | X) + mean augmentation_a(t)

tmle
    For each arm a and horizon t, iterate the logistic fluctuation

        logit h*(s) = logit h(s) + eps * H_t(s),
        H_t(s) = -1 / (pi_a G_a(s)) * S_a(t) / S_a(s) * I(s <= t),

    fit by maximum likelihood (statsmodels GLM, Binomial, offset) on the
    at-risk rows of arm a, until |mean D_a(t)| <= sd(D_a(t)) / (sqrt(m) log m).
    Horizons that do not converge fall back to the one-step value.
"""

import warnings
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import statsmodels.api as sm
from scipy.special import expit, logit
from statsmodels.tools.sm_exceptions import PerfectSeparationError, PerfectSeparationWarning

from .._typing import BoolArray, Float64Array, Int64Array
from ..config import TargetingConfig
from ..exceptions import ConvergenceWarning
from .eif import PluginCurves, eif_matrix, survival_from_hazard

# Absolute floor on the convergence tolerance, for folds where the EIF is
# identically zero.
_TOL_FLOOR = 1e-10


@dataclass(frozen=True)
class TargetedCurves:
    """Targeted counterfactual survival curves of one fold.

    Attributes:
        indices: (m,) original indices of the fold's observations.
        estimate: (2, K) psi_a(t), arm 0 in row 0.
        eif: (m, 2, K) influence function values, mean zero per column
            up to the convergence tolerance.
        iterated: (2, K) True where the fluctuation converged.
        iterations: (2, K) fluctuation steps taken.
    """

    indices: Int64Array
    estimate: Float64Array
    eif: Float64Array
    iterated: BoolArray
    iterations: Int64Array

    @property
    def n_times(self) -> int:
        return self.estimate.shape[1]


def convergence_tolerance(eif: Float64Array, tol: Optional[float] = None) -> float:
    """sd(D) / (sqrt(m) log m) unless an absolute ``tol`` is given."""
    if tol is not None:
        return tol
    m = len(eif)
    sd = np.std(eif, ddof=1) if m > 1 else 0.0
    scale = np.sqrt(m) * np.log(m) if m > 2 else 1.0
    return max(sd / scale, _TOL_FLOOR)


def onestep(curves: PluginCurves, indices: Int64Array) -> TargetedCurves:
    """Closed-form one-step correction of the plug-in curves."""
    m, K = curves.n_eval, curves.n_times
    estimate = np.empty((2, K))
    eif = np.empty((m, 2, K))
    for a in (0, 1):
        S = curves.survival[:, :, a]
        aug = curves.augmentation(a)
        estimate[a] = S.mean(axis=0) + aug.mean(axis=0)
        eif[:, a, :] = eif_matrix(S, aug, estimate[a])

    return TargetedCurves(
        indices=indices,
        estimate=estimate,
        eif=eif,
        iterated=np.zeros((2, K), dtype=bool),
        iterations=np.zeros((2, K), dtype=np.int64),
    )


def _fluctuate(
    y: Float64Array,
    covariate: Float64Array,
    offset: Float64Array,
) -> Optional[float]:
    """Fit the one-parameter fluctuation; None if the fit breaks down."""
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", PerfectSeparationWarning)
        warnings.simplefilter("ignore", RuntimeWarning)
        try:
            fit = sm.GLM(
                y,
                covariate.reshape(-1, 1),
                family=sm.families.Binomial(),
                offset=offset,
            ).fit()
        except (PerfectSeparationError, np.linalg.LinAlgError, ValueError):
            return None
    step = float(np.asarray(fit.params)[0])
    return step if np.isfinite(step) else None


def target_horizon(
    curves: PluginCurves,
    a: int,
    t: int,
    max_iter: int = 20,
    tol: Optional[float] = None,
) -> Tuple[bool, float, Float64Array, int]:
    """
    Iterate the logistic fluctuation for arm ``a`` at horizon index ``t``.

    Args:
        curves: Plug-in curves of the fold.
        a: Arm.
        t: 0-based horizon index.
        max_iter: Maximum number of fluctuation steps.
        tol: Absolute tolerance on |mean D|; None for the adaptive rule.

    Returns:
        (converged, psi, eif, iterations). ``psi`` and ``eif`` are only
        meaningful when ``converged`` is True.
    """
    eps = curves.clip_epsilon
    h = curves.hazard[:, :, a].copy()
    w = curves.weights(a)[:, : t + 1]
    dN = curves.events[:, : t + 1]
    inv_weight = 1.0 / (
        curves.propensity[:, a][:, None] * curves.censoring_survival[:, : t + 1, a]
    )
    rows = (curves.treatment == a)[:, None] & (curves.at_risk[:, : t + 1] > 0)

    iterations = 0
    while True:
        S = survival_from_hazard(h, eps)
        ratio = S[:, [t]] / S[:, : t + 1]
        aug = -(w * ratio * (dN - h[:, : t + 1])).sum(axis=1)
        psi = S[:, t].mean()
        eif = aug + S[:, t] - psi

        if abs(aug.mean()) <= convergence_tolerance(eif, tol):
            return True, psi, eif, iterations
        if iterations >= max_iter or not rows.any():
            return False, np.nan, eif, iterations

        H = -inv_weight * ratio
        offset = logit(np.clip(h[:, : t + 1], eps, 1 - eps))
        step = _fluctuate(dN[rows], H[rows], offset[rows])
        if step is None:
            return False, np.nan, eif, iterations

        h[:, : t + 1] = expit(offset + step * H)
        iterations += 1


def tmle(
    curves: PluginCurves,
    indices: Int64Array,
    max_iter: int = 20,
    tol: Optional[float] = None,
) -> TargetedCurves:
    """
    Iterative targeting of every arm and horizon.

    Horizons that fail to converge take the one-step value and are marked
    ``iterated=False``; a ConvergenceWarning lists them.
    """
    fallback = onestep(curves, indices)
    K = curves.n_times

    estimate = fallback.estimate.copy()
    eif = fallback.eif.copy()
    iterated = np.zeros((2, K), dtype=bool)
    iterations = np.zeros((2, K), dtype=np.int64)

    for a in (0, 1):
        for t in range(K):
            converged, psi, D, n_iter = target_horizon(curves, a, t, max_iter, tol)
            iterations[a, t] = n_iter
            if converged:
                estimate[a, t] = psi
                eif[:, a, t] = D
                iterated[a, t] = True

    failed = [(a, t + 1) for a in (0, 1) for t in range(K) if not iterated[a, t]]
    if failed:
        listed = ", ".join(f"arm {a} time {k}" for a, k in failed[:5])
        more = f" and {len(failed) - 5} more" if len(failed) > 5 else ""
        warnings.warn(
            f"Targeting did not converge within {max_iter} iterations for "
            f"{listed}{more}; using the one-step estimate there.",
            ConvergenceWarning,
        )

    return TargetedCurves(
        indices=indices,
        estimate=estimate,
        eif=eif,
        iterated=iterated,
        iterations=iterations,
    )


def target(curves: PluginCurves, indices: Int64Array, config: TargetingConfig) -> TargetedCurves:
    """Apply the configured targeting strategy."""
    if config.strategy == "onestep":
        return onestep(curves, indices)
    return tmle(curves, indices, max_iter=config.max_iter, tol=config.tol)
