"""Estimator configuration: clipping bound and targeting settings."""

from dataclasses import dataclass
from typing import Optional

# Hazards, censoring hazards and propensities are clipped to
# [CLIP_EPSILON, 1 - CLIP_EPSILON] before any division.
CLIP_EPSILON = 1e-3

TARGETING_STRATEGIES = ("tmle", "onestep")


@dataclass(frozen=True)
class TargetingConfig:
    """Settings for the targeting step.

    Attributes:
        strategy: "tmle" (iterative logistic fluctuation, falls back to the
            one-step value when it does not converge) or "onestep"
            (closed-form correction).
        max_iter: Maximum number of fluctuation iterations per horizon.
        clip_epsilon: Clipping bound for probabilities used as divisors.
        tol: Absolute convergence tolerance on the mean EIF. If None, uses
            sd(EIF) / (sqrt(m) * log(m)) for a fold of size m.
    """

    strategy: str = "tmle"
    max_iter: int = 20
    clip_epsilon: float = CLIP_EPSILON
    tol: Optional[float] = None

    def __post_init__(self):
        if self.strategy not in TARGETING_STRATEGIES:
            raise ValueError(
                f"Unknown targeting strategy: {self.strategy}. "
                f"Available: {list(TARGETING_STRATEGIES)}"
            )
        if not 0 < self.clip_epsilon < 0.5:
            raise ValueError(f"clip_epsilon must be in (0, 0.5), got {self.clip_epsilon}")
        if self.max_iter < 1:
            raise ValueError(f"max_iter must be positive, got {self.max_iter}")
