"""
Counterfactual curves and efficient influence functions.

For arm a and grid time t, with hazards evaluated under forced arm a:

    S_a(t | X) = prod_{s <= t} (1 - h_a(s | X))
    G_a(t | X) = prod_{s <  t} (1 - g_a(s | X))

    D_a(t) = -I(A=a) / pi_a(X) * sum_{s <= t} I(T >= s) / G_a(s)
                 * S_a(t) / S_a(s) * (dN(s) - h_a(s))
             + S_a(t | X) - psi_a(t)

The sum is evaluated for every t at once:

    D_a(t) = -S_a(t) * cumsum_s [ w(s) * (dN(s) - h_a(s)) / S_a(s) ] + S_a(t) - psi_a(t)

with w(s) = I(A=a) I(T >= s) / (pi_a G_a(s)).
"""

import warnings
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .._typing import BoolArray, Float64Array
from ..config import CLIP_EPSILON
from ..data.design import DesignData
from ..exceptions import NumericInstabilityError
from .nuisance import NuisancePrediction

# Share of clipped predictions above which a warning is issued
CLIP_WARN_FRACTION = 0.10


def survival_from_hazard(hazard: Float64Array, clip_epsilon: float = CLIP_EPSILON) -> Float64Array:
    """Product-limit survival over the time axis (axis 1).

    Hazards are clipped from above only, so a zero hazard keeps survival at
    exactly one and S stays strictly positive.
    """
    return np.cumprod(1.0 - np.minimum(hazard, 1.0 - clip_epsilon), axis=1)


@dataclass(frozen=True)
class PluginCurves:
    """Clipped nuisance quantities and observed processes for one fold.

    Arrays indexed ``[..., a]`` hold arm a in {0, 1}.

    Attributes:
        hazard: (m, K, 2) event hazard, clipped to [0, 1 - eps].
        survival: (m, K, 2) S_a(t | X).
        censoring_survival: (m, K, 2) G_a(t | X), clipped to [eps, 1].
        propensity: (m, 2) pi_a(X), clipped to [eps, 1 - eps].
        treatment: (m,) observed arm.
        at_risk: (m, K) I(T >= s).
        events: (m, K) dN(s) = I(T = s, Delta = 1).
        clip_epsilon: Bound used for clipping.
        n_clipped: Counts of clipped propensity and censoring predictions.
    """

    hazard: Float64Array
    survival: Float64Array
    censoring_survival: Float64Array
    propensity: Float64Array
    treatment: Float64Array
    at_risk: Float64Array
    events: Float64Array
    clip_epsilon: float
    n_clipped: dict

    @property
    def n_eval(self) -> int:
        return self.hazard.shape[0]

    @property
    def n_times(self) -> int:
        return self.hazard.shape[1]

    def weights(self, a: int) -> Float64Array:
        """(m, K) inverse probability weights I(A=a) I(T>=s) / (pi_a G_a(s))."""
        arm = (self.treatment == a).astype(np.float64)
        return (
            arm[:, None] * self.at_risk
            / (self.propensity[:, a][:, None] * self.censoring_survival[:, :, a])
        )

    def augmentation(self, a: int) -> Float64Array:
        """(m, K) weighted martingale term of D_a(t) for every t."""
        h = self.hazard[:, :, a]
        S = self.survival[:, :, a]
        resid = self.weights(a) * (self.events - h) / S
        return -S * np.cumsum(resid, axis=1)


def eif_matrix(survival: Float64Array, augmentation: Float64Array, psi: Float64Array) -> Float64Array:
    """D(t) = augmentation(t) + S(t | X) - psi(t), shape (m, K)."""
    return augmentation + survival - psi[None, :]


def _check_clipping(values: Float64Array, boundary: BoolArray, component: str) -> int:
    n_clipped = int(boundary.sum())
    if values.size and n_clipped == values.size:
        raise NumericInstabilityError(
            f"Every {component} prediction in the fold is at the clipping boundary"
        )
    if values.size and n_clipped > CLIP_WARN_FRACTION * values.size:
        warnings.warn(
            f"{n_clipped / values.size:.0%} of {component} predictions were clipped. "
            "Estimates may be unstable.",
            UserWarning,
        )
    return n_clipped


def build(
    data: DesignData,
    nuisance: NuisancePrediction,
    clip_epsilon: float = CLIP_EPSILON,
) -> Tuple[PluginCurves, Float64Array]:
    """
    Build plug-in curves and the plug-in EIF for one fold.

    Args:
        data: Trial design data.
        nuisance: Held-out nuisance predictions of the fold.
        clip_epsilon: Clipping bound for divisors.

    Returns:
        (curves, eif) where eif is (m, 2, K), centred at the plug-in mean
        of each arm and time.

    Raises:
        NumericInstabilityError: if every propensity, or every censoring
            hazard, sits at the clipping boundary.
    """
    eps = clip_epsilon
    idx = nuisance.indices
    K = data.n_times

    # Propensity
    p1 = nuisance.propensity
    n_prop = _check_clipping(p1, (p1 <= eps) | (p1 >= 1 - eps), "propensity")
    p1 = np.clip(p1, eps, 1 - eps)
    propensity = np.column_stack([1 - p1, p1])

    # Censoring
    g = nuisance.censoring
    n_cens = 0
    if data.has_censoring:
        # G_a(t) only uses g_a(s) for s < t; the last time never enters
        g_used = g[:, :-1, :]
        n_cens = _check_clipping(g_used, g_used >= 1 - eps, "censoring")
    g = np.minimum(g, 1 - eps)
    G = np.ones_like(g)
    G[:, 1:, :] = np.cumprod(1 - g[:, :-1, :], axis=1)
    G = np.maximum(G, eps)

    # Event hazard
    hazard = np.minimum(nuisance.hazard, 1 - eps)
    survival = survival_from_hazard(hazard, eps)

    # Observed counting processes
    T = data.time[idx]
    grid = np.arange(1, K + 1)
    at_risk = (T[:, None] >= grid[None, :]).astype(np.float64)
    events = ((T[:, None] == grid[None, :]) & (data.status[idx] == 1)[:, None]).astype(np.float64)

    curves = PluginCurves(
        hazard=hazard,
        survival=survival,
        censoring_survival=G,
        propensity=propensity,
        treatment=data.treatment[idx],
        at_risk=at_risk,
        events=events,
        clip_epsilon=eps,
        n_clipped={"propensity": n_prop, "censoring": n_cens},
    )

    eif = np.empty((len(idx), 2, K))
    for a in (0, 1):
        S = survival[:, :, a]
        eif[:, a, :] = eif_matrix(S, curves.augmentation(a), S.mean(axis=0))

    return curves, eif
