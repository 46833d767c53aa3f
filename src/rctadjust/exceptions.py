"""Errors and warnings raised by rctadjust."""


class RctAdjustError(Exception):
    """Base class for all rctadjust errors."""


class DataError(RctAdjustError, ValueError):
    """Malformed input: missing columns, non-binary treatment, empty fold."""


class NuisanceFitError(RctAdjustError, RuntimeError):
    """A nuisance learner raised or returned invalid probabilities."""


class NumericInstabilityError(RctAdjustError, ArithmeticError):
    """Every prediction of a fold sits on the clipping boundary.

    Indicates near-deterministic treatment assignment or separation in the
    censoring model.
    """


class ConvergenceWarning(UserWarning):
    """Iterative targeting did not converge; the one-step value was used."""
