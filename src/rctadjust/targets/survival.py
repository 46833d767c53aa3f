"""
Survival estimands.

    survival probability    S_a(h)
    RMST                    width * sum_{t=1..h} S_a(t)

``width`` is the grid spacing (the coarsening), so RMST is reported in
original time units. Both are linear in the curves, so their influence
functions are the same linear maps of D_a(t).
"""

from typing import Sequence

import numpy as np

from ..engine.targeting import TargetedCurves
from .base import BaseEstimand, FoldEstimate


class SurvivalProbability(BaseEstimand):
    """Counterfactual survival probability at each horizon."""

    name = "survprob"

    def __init__(self, horizons: Sequence[int], labels: Sequence):
        """
        Args:
            horizons: 1-based grid indices.
            labels: Horizons in original time units, for reporting.
        """
        super().__init__(labels)
        self.horizons = np.asarray(horizons, dtype=np.int64)

    def times_used(self, n_times: int) -> np.ndarray:
        return self.horizons - 1

    def compute(self, curves: TargetedCurves) -> FoldEstimate:
        cols = self.horizons - 1
        return FoldEstimate.from_arms(
            arm1=curves.estimate[1, cols],
            arm1_eif=curves.eif[:, 1, cols],
            arm0=curves.estimate[0, cols],
            arm0_eif=curves.eif[:, 0, cols],
        )


class RMST(BaseEstimand):
    """Restricted mean survival time up to each horizon."""

    name = "rmst"

    def __init__(self, horizons: Sequence[int], labels: Sequence, width: float = 1.0):
        super().__init__(labels)
        self.horizons = np.asarray(horizons, dtype=np.int64)
        self.width = float(width)

    def times_used(self, n_times: int) -> np.ndarray:
        return np.arange(self.horizons.max())

    def compute(self, curves: TargetedCurves) -> FoldEstimate:
        cols = self.horizons - 1
        area = self.width * np.cumsum(curves.estimate, axis=1)
        area_eif = self.width * np.cumsum(curves.eif, axis=2)
        return FoldEstimate.from_arms(
            arm1=area[1, cols],
            arm1_eif=area_eif[:, 1, cols],
            arm0=area[0, cols],
            arm0_eif=area_eif[:, 0, cols],
        )
