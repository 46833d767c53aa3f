"""
rctadjust: Covariate-adjusted, model-robust estimation for randomized trials.

Efficient estimators of marginal treatment effects in two-arm trials with
time-to-event or ordinal outcomes, without proportional hazards or
proportional odds assumptions.

Key Features
------------
- Restricted mean survival time and survival probability
- Average log odds ratio, Mann-Whitney probability, CDF and PMF
- Cross-fitted nuisance models (GLM, lasso, random forest, LightGBM, MLP)
- TMLE or one-step targeting with influence function-based inference

Basic Usage
-----------
>>> import rctadjust as ra
>>>
>>> fit = ra.survrct("Surv(days, status) ~ arm + age + sex", "arm ~ 1", df)
>>> print(ra.rmst(fit, horizon=180).summary())
>>>
>>> fit = ra.ordinalrct("score ~ arm + age", "arm ~ 1", df, algo="rf")
>>> print(ra.mannwhitney(fit))

References
----------
- Diaz, Colantuoni, Hanley, Rosenblum (2019). "Improved precision in the
  analysis of randomized trials with survival outcomes, without assuming
  proportional hazards"
- Benkeser, Diaz, Luedtke, Segal, Scharfstein, Rosenblum (2021). "Improving
  precision and power in randomized trials for COVID-19 treatments using
  covariate adjustment, for binary, ordinal, and time-to-event outcomes"
"""

__version__ = "0.1.0"

# Data
from .data import DesignData, TimeGrid

# Estimation
from .estimator import (
    OrdinalFit,
    SurvivalFit,
    cdf,
    fit_ordinal,
    fit_survival,
    log_or,
    mannwhitney,
    ordinalrct,
    pmf,
    rmst,
    survprob,
    survrct,
)

# Learners
from .learners import LEARNER_REGISTRY, get_learner

# Results and configuration
from .config import CLIP_EPSILON, TargetingConfig
from .results import Estimate, EstimatorResult

# Errors
from .exceptions import (
    ConvergenceWarning,
    DataError,
    NuisanceFitError,
    NumericInstabilityError,
    RctAdjustError,
)

__all__ = [
    # Version
    "__version__",
    # Data
    "DesignData",
    "TimeGrid",
    # Estimation
    "fit_survival",
    "fit_ordinal",
    "survrct",
    "ordinalrct",
    "SurvivalFit",
    "OrdinalFit",
    # Estimands
    "rmst",
    "survprob",
    "log_or",
    "mannwhitney",
    "cdf",
    "pmf",
    # Learners
    "LEARNER_REGISTRY",
    "get_learner",
    # Results and configuration
    "Estimate",
    "EstimatorResult",
    "TargetingConfig",
    "CLIP_EPSILON",
    # Errors
    "RctAdjustError",
    "DataError",
    "NuisanceFitError",
    "NumericInstabilityError",
    "ConvergenceWarning",
]
