"""Estimands computed from the targeted counterfactual curves."""

from .base import BaseEstimand, Estimand, FoldEstimate, evaluate
from .ordinal import CDF, PMF, LogOddsRatio, MannWhitney, cdf_curves, pmf_curves
from .survival import RMST, SurvivalProbability

__all__ = [
    "Estimand",
    "BaseEstimand",
    "FoldEstimate",
    "evaluate",
    "RMST",
    "SurvivalProbability",
    "CDF",
    "PMF",
    "LogOddsRatio",
    "MannWhitney",
    "cdf_curves",
    "pmf_curves",
]
