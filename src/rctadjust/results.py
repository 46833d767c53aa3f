"""Result containers returned by the estimand functions."""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from ._typing import Float64Array
from .utils.formatting import (
    compute_z_and_pvalue,
    format_full_summary,
    format_short_repr,
)


def _readonly(arr) -> np.ndarray:
    arr = np.array(arr, dtype=np.float64)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class Estimate:
    """Point estimates and inference for one arm or for the effect.

    Attributes:
        estimate: (d,) point estimates, one per index entry.
        eif: (n, d) influence function, one row per observation.
        std_error: (d,) standard errors.
        ci_lower: (d,) lower confidence bounds.
        ci_upper: (d,) upper confidence bounds.
    """

    estimate: Float64Array
    eif: Float64Array
    std_error: Float64Array
    ci_lower: Float64Array
    ci_upper: Float64Array

    def __post_init__(self):
        for name in ("estimate", "eif", "std_error", "ci_lower", "ci_upper"):
            object.__setattr__(self, name, _readonly(getattr(self, name)))

    def __len__(self) -> int:
        return len(self.estimate)

    def z_and_pvalues(self) -> Tuple[Float64Array, Float64Array]:
        pairs = [compute_z_and_pvalue(e, s) for e, s in zip(self.estimate, self.std_error)]
        return np.array([p[0] for p in pairs]), np.array([p[1] for p in pairs])


@dataclass(frozen=True)
class EstimatorResult:
    """Estimates of one estimand for both arms and their contrast.

    ``arm1`` / ``arm0`` are None for estimands with no arm-specific value
    (the Mann-Whitney probability).
    """

    estimand: str
    index: Tuple
    effect: Estimate
    arm1: Optional[Estimate]
    arm0: Optional[Estimate]
    estimator: str
    iterated: bool
    n_obs: int
    n_folds: int
    alpha: float = 0.05

    @property
    def estimate(self) -> Float64Array:
        """Shortcut to the effect estimates."""
        return self.effect.estimate

    @property
    def std_error(self) -> Float64Array:
        return self.effect.std_error

    def confint(self) -> pd.DataFrame:
        """Confidence intervals for the effect, indexed like ``index``."""
        lo, hi = self.alpha / 2, 1 - self.alpha / 2
        return pd.DataFrame(
            {f"{lo:.3f}": self.effect.ci_lower, f"{hi:.3f}": self.effect.ci_upper},
            index=pd.Index(self.index, name="index"),
        )

    def to_frame(self) -> pd.DataFrame:
        """Tidy table: one row per (quantity, index) pair."""
        frames = []
        parts = [("effect", self.effect), ("arm1", self.arm1), ("arm0", self.arm0)]
        for label, est in parts:
            if est is None:
                continue
            z, p = est.z_and_pvalues()
            frames.append(pd.DataFrame({
                "estimand": self.estimand,
                "quantity": label,
                "index": list(self.index),
                "estimate": est.estimate,
                "std_error": est.std_error,
                "z": z,
                "p_value": p,
                "ci_lower": est.ci_lower,
                "ci_upper": est.ci_upper,
            }))
        return pd.concat(frames, ignore_index=True)

    def summary(self) -> str:
        """statsmodels-style summary table."""
        rows = []
        for label, est in (("arm1", self.arm1), ("arm0", self.arm0), ("effect", self.effect)):
            if est is None:
                continue
            for j, key in enumerate(self.index):
                rows.append((
                    f"{label}[{key}]",
                    est.estimate[j],
                    est.std_error[j],
                    est.ci_lower[j],
                    est.ci_upper[j],
                ))
        return format_full_summary(
            title="Covariate-Adjusted Trial Estimates",
            rows=rows,
            diagnostics={"iterated": self.iterated},
            estimator=self.estimator,
            target=self.estimand,
            n_obs=self.n_obs,
            n_folds=self.n_folds,
            alpha=self.alpha,
        )

    def __repr__(self) -> str:
        return format_short_repr(
            self.__class__.__name__,
            self.estimand,
            self.index[0],
            self.effect.estimate[0],
            self.effect.std_error[0],
            self.effect.ci_lower[0],
            self.effect.ci_upper[0],
            n_more=len(self.index) - 1,
        )
