"""
Influence function-based inference.

Standard estimator, per reported quantity j:
    SE_j = sd(D_j) / sqrt(n)          (Bessel-corrected sd)
    CI_j = psi_j -/+ z_{alpha/2} SE_j
"""

from typing import List, Tuple

import numpy as np
import scipy.stats as stats

from .._typing import Float64Array


def compute_se(eif: Float64Array) -> Float64Array:
    """
    Standard error of each column of an influence function matrix.

    Args:
        eif: (n,) or (n, d) influence function values

    Returns:
        Scalar or (d,) standard errors
    """
    eif = np.asarray(eif, dtype=np.float64)
    n = eif.shape[0]
    if n < 2:
        return np.full(eif.shape[1:], np.nan)
    return np.std(eif, axis=0, ddof=1) / np.sqrt(n)


def compute_confidence_interval(
    estimate: Float64Array,
    se: Float64Array,
    alpha: float = 0.05,
) -> Tuple[Float64Array, Float64Array]:
    """
    Compute confidence interval.

    CI = [psi - z_{alpha/2} x SE, psi + z_{alpha/2} x SE]

    Args:
        estimate: Point estimate(s)
        se: Standard error(s)
        alpha: Significance level (default: 0.05 for 95% CI)

    Returns:
        (lower, upper) confidence interval bounds
    """
    if not 0 < alpha < 1:
        raise ValueError(f"alpha must be in (0, 1), got {alpha}")
    z = stats.norm.ppf(1 - alpha / 2)
    return estimate - z * se, estimate + z * se


def aggregate_folds(fold_estimates: List[Float64Array]) -> Float64Array:
    """Cross-fit point estimate: arithmetic mean of the fold estimates."""
    return np.mean(np.stack([np.asarray(e, dtype=np.float64) for e in fold_estimates]), axis=0)


def compute_inference_results(
    estimate: Float64Array,
    eif: Float64Array,
    alpha: float = 0.05,
) -> dict:
    """
    Compute complete inference results.

    Args:
        estimate: (d,) point estimates
        eif: (n, d) influence function values
        alpha: Significance level

    Returns:
        Dictionary with estimate, se, ci_lower, ci_upper, n
    """
    se = compute_se(eif)
    ci_lower, ci_upper = compute_confidence_interval(estimate, se, alpha)
    return {
        "estimate": estimate,
        "se": se,
        "ci_lower": ci_lower,
        "ci_upper": ci_upper,
        "n": eif.shape[0],
    }
