"""Numeric representation of a two-arm trial.

DesignData is the immutable input of the estimation pipeline. It is built
once per call and referenced, never copied, by every downstream stage.

Survival data carry a discrete follow-up index ``time`` (1..K) and an event
indicator ``status``. Ordinal data reuse the same layout: ``time`` is the
level index and every observation "fails" at its own level, so the ordinal
CDF is one minus a product-limit curve over levels 1..K-1 and no censoring
model is needed.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

import numpy as np

from .._typing import ArrayLike, Float64Array, Int64Array
from ..exceptions import DataError


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class TimeGrid:
    """Ordered discrete time points shared across arms.

    Attributes:
        points: (K,) strictly increasing time points in original units.
        coarsen: Width of one grid interval in original units.
    """

    points: Float64Array
    coarsen: float = 1.0

    def __post_init__(self):
        points = np.asarray(self.points, dtype=np.float64)
        if points.ndim != 1 or len(points) == 0:
            raise DataError("Time grid must be a non-empty 1-d sequence")
        if not np.all(np.isfinite(points)):
            raise DataError("Time grid must be finite")
        if np.any(np.diff(points) <= 0):
            raise DataError("Time grid must be strictly increasing")
        object.__setattr__(self, "points", _readonly(points))

    def __len__(self) -> int:
        return len(self.points)

    @classmethod
    def from_coarsening(cls, n_points: int, coarsen: float = 1.0) -> "TimeGrid":
        return cls(points=np.arange(1, n_points + 1) * float(coarsen), coarsen=float(coarsen))

    def index_of(self, horizon: float) -> int:
        """Map a horizon in original units to its 1-based grid index."""
        k = int(np.ceil(float(horizon) / self.coarsen - 1e-9))
        if k < 1 or k > len(self.points):
            raise DataError(
                f"Horizon {horizon} is outside the follow-up grid "
                f"({self.points[0]:g} to {self.points[-1]:g})"
            )
        return k


@dataclass(frozen=True)
class DesignData:
    """Immutable numeric representation of one trial dataset.

    Use the ``survival`` and ``ordinal`` constructors rather than building
    instances directly; they validate and coerce the inputs.
    """

    treatment: Float64Array
    covariates: Float64Array
    propensity_covariates: Float64Array
    time: Int64Array
    status: Int64Array
    grid: TimeGrid
    outcome_type: str
    levels: Optional[Tuple] = None
    covariate_names: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def n(self) -> int:
        return len(self.treatment)

    @property
    def n_times(self) -> int:
        """Number of modelled hazard times.

        K for survival outcomes; K - 1 for ordinal outcomes, since the
        hazard of the top level is 1 by construction.
        """
        if self.outcome_type == "ordinal":
            return len(self.grid) - 1
        return len(self.grid)

    @property
    def has_censoring(self) -> bool:
        return self.outcome_type == "survival" and bool(np.any(self.status == 0))

    @classmethod
    def survival(
        cls,
        treatment: ArrayLike,
        time: ArrayLike,
        status: ArrayLike,
        covariates: Optional[ArrayLike] = None,
        propensity_covariates: Optional[ArrayLike] = None,
        coarsen: float = 1.0,
        covariate_names: Optional[Sequence[str]] = None,
    ) -> "DesignData":
        """Build survival design data.

        Args:
            treatment: (n,) binary treatment indicator.
            time: (n,) follow-up times in original units, all > 0.
            status: (n,) 1 = event at ``time``, 0 = right censored.
            covariates: (n, p) baseline covariates for the outcome models.
            propensity_covariates: (n, q) covariates for the propensity
                model. Defaults to none (intercept-only propensity).
            coarsen: Width of the discrete time intervals. Follow-up time u
                is mapped to grid index ceil(u / coarsen).
            covariate_names: Optional names for the covariate columns.

        Returns:
            DesignData with outcome_type "survival".
        """
        if coarsen <= 0:
            raise DataError(f"coarsen must be positive, got {coarsen}")
        A = _validate_treatment(treatment)
        n = len(A)

        raw_time = np.asarray(time, dtype=np.float64).ravel()
        if len(raw_time) != n:
            raise DataError(f"time has {len(raw_time)} rows, expected {n}")
        if np.any(~np.isfinite(raw_time)):
            raise DataError("time contains missing or infinite values")
        if np.any(raw_time <= 0):
            raise DataError("time must be strictly positive")
        time_idx = np.maximum(np.ceil(raw_time / coarsen - 1e-9), 1).astype(np.int64)

        delta = np.asarray(status, dtype=np.float64).ravel()
        if len(delta) != n:
            raise DataError(f"status has {len(delta)} rows, expected {n}")
        if not np.all(np.isin(delta, (0.0, 1.0))):
            raise DataError("status must be coded 0 (censored) / 1 (event)")

        X = _validate_covariates(covariates, n, "covariates")
        W = _validate_covariates(propensity_covariates, n, "propensity_covariates")
        names = _covariate_names(covariate_names, X.shape[1])

        grid = TimeGrid.from_coarsening(int(time_idx.max()), coarsen)

        return cls(
            treatment=_readonly(A),
            covariates=_readonly(X),
            propensity_covariates=_readonly(W),
            time=_readonly(time_idx),
            status=_readonly(delta.astype(np.int64)),
            grid=grid,
            outcome_type="survival",
            covariate_names=names,
        )

    @classmethod
    def ordinal(
        cls,
        treatment: ArrayLike,
        outcome: ArrayLike,
        covariates: Optional[ArrayLike] = None,
        propensity_covariates: Optional[ArrayLike] = None,
        levels: Optional[Sequence] = None,
        covariate_names: Optional[Sequence[str]] = None,
    ) -> "DesignData":
        """Build ordinal design data.

        Args:
            treatment: (n,) binary treatment indicator.
            outcome: (n,) observed categories.
            covariates: (n, p) baseline covariates for the outcome models.
            propensity_covariates: (n, q) covariates for the propensity model.
            levels: Ordered outcome levels, lowest first. Defaults to the
                sorted unique values of ``outcome``.
            covariate_names: Optional names for the covariate columns.

        Returns:
            DesignData with outcome_type "ordinal".
        """
        A = _validate_treatment(treatment)
        n = len(A)

        Y = np.asarray(outcome, dtype=object).ravel()
        if len(Y) != n:
            raise DataError(f"outcome has {len(Y)} rows, expected {n}")
        if any(y is None or (isinstance(y, float) and np.isnan(y)) for y in Y):
            raise DataError("outcome contains missing values")

        if levels is None:
            levels = sorted(set(Y.tolist()))
        levels = tuple(levels)
        if len(set(levels)) != len(levels):
            raise DataError("levels must be unique")
        if len(levels) < 2:
            raise DataError("An ordinal outcome needs at least two levels")

        position = {level: k + 1 for k, level in enumerate(levels)}
        try:
            level_idx = np.array([position[y] for y in Y], dtype=np.int64)
        except KeyError as e:
            raise DataError(f"Outcome value {e.args[0]!r} is not one of the levels") from e

        X = _validate_covariates(covariates, n, "covariates")
        W = _validate_covariates(propensity_covariates, n, "propensity_covariates")
        names = _covariate_names(covariate_names, X.shape[1])

        return cls(
            treatment=_readonly(A),
            covariates=_readonly(X),
            propensity_covariates=_readonly(W),
            time=_readonly(level_idx),
            status=_readonly(np.ones(n, dtype=np.int64)),
            grid=TimeGrid.from_coarsening(len(levels)),
            outcome_type="ordinal",
            levels=levels,
            covariate_names=names,
        )


def _validate_treatment(treatment: ArrayLike) -> Float64Array:
    A = np.asarray(treatment, dtype=np.float64).ravel()
    if len(A) == 0:
        raise DataError("Data contain no observations")
    if np.any(np.isnan(A)):
        raise DataError("treatment contains missing values")
    if not np.all(np.isin(A, (0.0, 1.0))):
        raise DataError("treatment must be binary, coded 0 and 1")
    if A.min() == A.max():
        raise DataError("Both treatment arms must be present")
    return A


def _validate_covariates(covariates: Optional[ArrayLike], n: int, name: str) -> Float64Array:
    if covariates is None:
        return np.zeros((n, 0))
    X = np.asarray(covariates, dtype=np.float64)
    if X.ndim == 1:
        X = X.reshape(-1, 1)
    if X.ndim != 2 or X.shape[0] != n:
        raise DataError(f"{name} must have shape (n, p) with n={n}, got {X.shape}")
    if not np.all(np.isfinite(X)):
        raise DataError(f"{name} contain missing or infinite values")
    return X.copy()


def _covariate_names(names: Optional[Sequence[str]], p: int) -> Tuple[str, ...]:
    if names is None:
        return tuple(f"x{j}" for j in range(p))
    names = tuple(names)
    if len(names) != p:
        raise DataError(f"Got {len(names)} covariate names for {p} columns")
    return names


# =============================================================================
# Person-time expansion
# =============================================================================

@dataclass(frozen=True)
class PersonTime:
    """Long-format rows, one per subject per time at risk.

    Attributes:
        obs: (r,) index of the subject each row belongs to.
        time: (r,) 1-based time index of the row.
        event: (r,) I(T = m, Delta = 1).
        censored: (r,) I(T = m, Delta = 0).
    """

    obs: Int64Array
    time: Int64Array
    event: Float64Array
    censored: Float64Array

    def __len__(self) -> int:
        return len(self.obs)


def expand_person_time(data: DesignData, indices: Int64Array) -> PersonTime:
    """Expand the selected subjects into person-time rows.

    Subject i contributes rows m = 1..min(T_i, n_times).

    Args:
        data: Trial design data.
        indices: Subjects to expand.

    Returns:
        PersonTime rows ordered by subject, then time.
    """
    indices = np.asarray(indices, dtype=np.int64)
    T = data.time[indices]
    n_rows = np.minimum(T, data.n_times)

    obs = np.repeat(indices, n_rows)
    offsets = np.repeat(np.cumsum(n_rows) - n_rows, n_rows)
    m = np.arange(len(obs), dtype=np.int64) - offsets + 1

    last = m == data.time[obs]
    delta = data.status[obs] == 1
    return PersonTime(
        obs=obs,
        time=m,
        event=(last & delta).astype(np.float64),
        censored=(last & ~delta).astype(np.float64),
    )


def pooled_design(
    time: Int64Array,
    treatment: Float64Array,
    covariates: Float64Array,
    n_times: int,
) -> Float64Array:
    """Design matrix for a pooled discrete-time hazard model.

    Columns: time indicators (2..K), arm, arm x time indicators (2..K),
    covariates. The arm x time interactions leave the hazard ratio free to
    vary over time.

    Args:
        time: (r,) 1-based time index per row.
        treatment: (r,) arm per row.
        covariates: (r, p) covariates per row.
        n_times: Number of modelled times K.

    Returns:
        (r, 2 * (K - 1) + 1 + p) design matrix.
    """
    r = len(time)
    dummies = np.zeros((r, max(n_times - 1, 0)))
    if n_times > 1:
        rows = np.nonzero(time > 1)[0]
        dummies[rows, time[rows] - 2] = 1.0
    A = treatment.reshape(-1, 1)
    return np.hstack([dummies, A, A * dummies, covariates])
