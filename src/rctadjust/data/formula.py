"""R-style formula front door.

Turns ``"Surv(time, status) ~ A + age + sex"`` / ``"A ~ 1"`` style formulas
and a DataFrame into a DesignData. Right-hand sides are expanded with
formulaic, so factors, interactions and transforms work as they do in
``model_matrix``.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

import formulaic
import numpy as np
import pandas as pd

from ..exceptions import DataError
from .design import DesignData

_SURV_LHS = re.compile(r"^\s*Surv\(\s*([^,\s]+)\s*,\s*([^,\s\)]+)\s*\)\s*$")


def _split(formula: str) -> Tuple[str, str]:
    if formula.count("~") != 1:
        raise DataError(f"Formula must contain exactly one '~': {formula!r}")
    lhs, rhs = formula.split("~")
    lhs, rhs = lhs.strip(), rhs.strip()
    if not lhs or not rhs:
        raise DataError(f"Formula needs both a left and a right side: {formula!r}")
    return lhs, rhs


def _require_columns(data: pd.DataFrame, *columns: str) -> None:
    missing = [c for c in columns if c not in data.columns]
    if missing:
        raise DataError(f"Columns not found in data: {missing}")


def _rhs_matrix(rhs: str, data: pd.DataFrame, drop: Optional[str] = None):
    """Expand a right-hand side, dropping the intercept and ``drop``."""
    try:
        mm = formulaic.model_matrix(rhs, data, na_action="raise")
    except Exception as e:
        raise DataError(f"Could not build design matrix for '{rhs}': {e}") from e

    names = [c for c in mm.columns if c != "Intercept" and not _is_term_of(c, drop)]
    X = mm[names].to_numpy().astype(np.float64) if names else np.zeros((len(data), 0))
    return X, names


def _is_term_of(column: str, variable: Optional[str]) -> bool:
    """True for ``variable`` itself and its factor-coded columns, e.g. ``arm[T.True]``."""
    if variable is None:
        return False
    return column == variable or column.startswith(f"{variable}[")


def _treatment_column(trt_formula: str, data: pd.DataFrame) -> Tuple[str, str, np.ndarray]:
    trt, trt_rhs = _split(trt_formula)
    _require_columns(data, trt)
    A = data[trt]
    if A.isna().any():
        raise DataError(f"Treatment column '{trt}' contains missing values")
    if pd.api.types.is_bool_dtype(A):
        A = A.astype(np.int64)
    if not pd.api.types.is_numeric_dtype(A) or not A.isin([0, 1]).all():
        raise DataError(f"Treatment column '{trt}' must be numeric, coded 0 and 1")
    return trt, trt_rhs, A.to_numpy(dtype=np.float64)


def survival_design(
    outcome_formula: str,
    trt_formula: str,
    data: pd.DataFrame,
    coarsen: float = 1.0,
) -> DesignData:
    """Build survival DesignData from formulas.

    Args:
        outcome_formula: ``"Surv(time, status) ~ A + covariates"``. The
            treatment term is removed from the adjustment set.
        trt_formula: ``"A ~ covariates"``; ``"A ~ 1"`` for an
            intercept-only propensity.
        data: Trial data, one row per subject.
        coarsen: Width of the discrete time intervals.

    Returns:
        DesignData with outcome_type "survival".
    """
    if not isinstance(data, pd.DataFrame):
        raise DataError("data must be a DataFrame when using a formula")

    lhs, rhs = _split(outcome_formula)
    match = _SURV_LHS.match(lhs)
    if match is None:
        raise DataError(f"Outcome must be written Surv(time, status), got {lhs!r}")
    time_col, status_col = match.groups()

    trt, trt_rhs, treatment = _treatment_column(trt_formula, data)
    _require_columns(data, time_col, status_col)

    X, names = _rhs_matrix(rhs, data, drop=trt)
    W, _ = _rhs_matrix(trt_rhs, data)

    return DesignData.survival(
        treatment=treatment,
        time=data[time_col].to_numpy(),
        status=data[status_col].to_numpy(),
        covariates=X,
        propensity_covariates=W,
        coarsen=coarsen,
        covariate_names=names,
    )


def ordinal_design(
    outcome_formula: str,
    trt_formula: str,
    data: pd.DataFrame,
) -> DesignData:
    """Build ordinal DesignData from formulas.

    The outcome column may be an ordered pandas Categorical, whose category
    order defines the levels; otherwise the sorted unique values are used.
    """
    if not isinstance(data, pd.DataFrame):
        raise DataError("data must be a DataFrame when using a formula")

    outcome, rhs = _split(outcome_formula)
    trt, trt_rhs, treatment = _treatment_column(trt_formula, data)
    _require_columns(data, outcome)

    y = data[outcome]
    if y.isna().any():
        raise DataError(f"Outcome column '{outcome}' contains missing values")
    levels = None
    if isinstance(y.dtype, pd.CategoricalDtype):
        levels = list(y.cat.categories)
        y = y.astype(object)

    X, names = _rhs_matrix(rhs, data, drop=trt)
    W, _ = _rhs_matrix(trt_rhs, data)

    return DesignData.ordinal(
        treatment=treatment,
        outcome=y.to_numpy(),
        covariates=X,
        propensity_covariates=W,
        levels=levels,
        covariate_names=names,
    )
