"""
Ordinal estimands.

The targeted curves of an ordinal fit are S_a(k) = P(Y_a > k) for levels
k = 1..L-1, so

    F_a(k) = 1 - S_a(k),  F_a(L) = 1
    p_a(k) = F_a(k) - F_a(k-1)

Log odds ratio (average over the L-1 cut points, positive when arm 1 puts
more mass on higher levels):

    LOR = mean_k [ logit S_1(k) - logit S_0(k) ] = mean_k [ logit F_0(k) - logit F_1(k) ]

Mann-Whitney, ties split evenly:

    MW = sum_k p_1(k) [ F_0(k-1) + 0.5 p_0(k) ]

Non-linear estimands get their influence functions from the delta method.
"""

from typing import Sequence, Tuple

import numpy as np
from scipy.special import logit

from .._typing import Float64Array
from ..config import CLIP_EPSILON
from ..engine.targeting import TargetedCurves
from .base import BaseEstimand, FoldEstimate


def cdf_curves(curves: TargetedCurves) -> Tuple[Float64Array, Float64Array]:
    """(2, L) CDF per arm and its (m, 2, L) influence function."""
    m = curves.eif.shape[0]
    F = np.hstack([1.0 - curves.estimate, np.ones((2, 1))])
    D = np.concatenate([-curves.eif, np.zeros((m, 2, 1))], axis=2)
    return F, D


def pmf_curves(curves: TargetedCurves) -> Tuple[Float64Array, Float64Array]:
    """(2, L) PMF per arm and its (m, 2, L) influence function."""
    F, D = cdf_curves(curves)
    return np.diff(F, axis=1, prepend=0.0), np.diff(D, axis=2, prepend=0.0)


class CDF(BaseEstimand):
    """P(Y_a <= k) for every level k."""

    name = "cdf"

    def __init__(self, levels: Sequence):
        super().__init__(levels)

    def compute(self, curves: TargetedCurves) -> FoldEstimate:
        F, D = cdf_curves(curves)
        return FoldEstimate.from_arms(F[1], D[:, 1, :], F[0], D[:, 0, :])


class PMF(BaseEstimand):
    """P(Y_a = k) for every level k."""

    name = "pmf"

    def __init__(self, levels: Sequence):
        super().__init__(levels)

    def compute(self, curves: TargetedCurves) -> FoldEstimate:
        p, D = pmf_curves(curves)
        return FoldEstimate.from_arms(p[1], D[:, 1, :], p[0], D[:, 0, :])


class LogOddsRatio(BaseEstimand):
    """Average log odds ratio across the cumulative cut points.

    Arm values are the average log odds of exceeding each cut point,
    mean_k logit S_a(k); the effect is their difference.
    """

    name = "log_or"

    def __init__(self, clip_epsilon: float = CLIP_EPSILON):
        super().__init__(("log_or",))
        self.clip_epsilon = clip_epsilon

    def compute(self, curves: TargetedCurves) -> FoldEstimate:
        eps = self.clip_epsilon
        S = np.clip(curves.estimate, eps, 1 - eps)
        value = logit(S).mean(axis=1)
        grad = 1.0 / (S * (1 - S))
        D = (curves.eif * grad[None, :, :]).mean(axis=2)
        return FoldEstimate.from_arms(
            arm1=value[1:2],
            arm1_eif=D[:, 1:2],
            arm0=value[0:1],
            arm0_eif=D[:, 0:1],
        )


class MannWhitney(BaseEstimand):
    """P(Y_1 > Y_0) + 0.5 P(Y_1 = Y_0)."""

    name = "mannwhitney"

    def __init__(self):
        super().__init__(("mannwhitney",))

    def compute(self, curves: TargetedCurves) -> FoldEstimate:
        F, _ = cdf_curves(curves)
        p, Dp = pmf_curves(curves)
        F0_below = np.concatenate([[0.0], F[0, :-1]])

        value = np.sum(p[1] * (F0_below + 0.5 * p[0]))
        grad1 = F0_below + 0.5 * p[0]
        grad0 = (1.0 - F[1]) + 0.5 * p[1]
        D = Dp[:, 1, :] @ grad1 + Dp[:, 0, :] @ grad0

        return FoldEstimate(effect=np.array([value]), effect_eif=D.reshape(-1, 1))
