"""Estimation engine: cross-fitting, nuisance models, EIF, targeting, inference."""

from .crossfit import CrossFitResult, FoldResult, make_folds, run_crossfit
from .eif import PluginCurves, build, survival_from_hazard
from .nuisance import NuisancePrediction, fit_nuisance
from .targeting import TargetedCurves, onestep, target, tmle
from .variance import (
    aggregate_folds,
    compute_confidence_interval,
    compute_inference_results,
    compute_se,
)

__all__ = [
    "CrossFitResult",
    "FoldResult",
    "make_folds",
    "run_crossfit",
    "PluginCurves",
    "build",
    "survival_from_hazard",
    "NuisancePrediction",
    "fit_nuisance",
    "TargetedCurves",
    "onestep",
    "tmle",
    "target",
    "aggregate_folds",
    "compute_se",
    "compute_confidence_interval",
    "compute_inference_results",
]
