"""Pytest configuration and fixtures for rctadjust tests."""

import numpy as np
import pandas as pd
import pytest


def simulate_survival(n: int, effect: float, seed: int, n_times: int = 8, censor: bool = True):
    """Discrete-time survival trial.

    Hazard at each time: expit(-2 + 0.5 x0 - 0.4 x1 + effect * A).
    Censoring uniform on 2..K; administrative censoring at K.
    """
    np.random.seed(seed)
    X = np.random.randn(n, 3)
    A = np.random.binomial(1, 0.5, size=n)

    T_event = np.full(n, n_times + 1)
    for t in range(1, n_times + 1):
        lp = -2.0 + 0.5 * X[:, 0] - 0.4 * X[:, 1] + effect * A
        h = 1 / (1 + np.exp(-lp))
        event = (np.random.rand(n) < h) & (T_event > n_times)
        T_event[event] = t

    if censor:
        C = np.random.randint(2, n_times + 1, size=n)
    else:
        C = np.full(n, n_times)
    time = np.minimum(T_event, C)
    status = (T_event <= C).astype(int)

    return {"A": A, "X": X, "time": time, "status": status, "n": n, "K": n_times}


def simulate_ordinal(n: int, effect: float, seed: int):
    """Four-level ordinal trial from a latent logistic model.

    latent = effect * A + 0.6 x0 - 0.4 x1 + logistic noise, cut at (-1, 0, 1).
    """
    np.random.seed(seed)
    X = np.random.randn(n, 3)
    A = np.random.binomial(1, 0.5, size=n)
    latent = effect * A + 0.6 * X[:, 0] - 0.4 * X[:, 1] + np.random.logistic(size=n)
    Y = np.digitize(latent, [-1.0, 0.0, 1.0]) + 1
    return {"A": A, "X": X, "Y": Y, "n": n, "levels": (1, 2, 3, 4)}


def duplicate_arms(sim: dict, outcome_keys) -> dict:
    """Copy every subject into both arms, so the arms are identical."""
    out = {"X": np.vstack([sim["X"], sim["X"]])}
    for key in outcome_keys:
        out[key] = np.concatenate([sim[key], sim[key]])
    n = len(sim["X"])
    out["A"] = np.concatenate([np.zeros(n, dtype=int), np.ones(n, dtype=int)])
    out["n"] = 2 * n
    return out


@pytest.fixture
def seed():
    """Random seed for reproducibility."""
    return 42


@pytest.fixture
def survival_dgp(seed):
    """Survival trial with a protective treatment (lower hazard in arm 1)."""
    return simulate_survival(n=300, effect=-0.7, seed=seed)


@pytest.fixture
def survival_data(survival_dgp):
    from rctadjust import DesignData

    d = survival_dgp
    return DesignData.survival(d["A"], d["time"], d["status"], covariates=d["X"])


@pytest.fixture
def identical_survival_data(seed):
    """Both arms hold the same subjects: identical covariates and hazards."""
    from rctadjust import DesignData

    base = simulate_survival(n=150, effect=0.0, seed=seed)
    d = duplicate_arms(base, ["time", "status"])
    return DesignData.survival(d["A"], d["time"], d["status"], covariates=d["X"])


@pytest.fixture
def no_event_data(seed):
    """Everyone censored at time 6, no events."""
    from rctadjust import DesignData

    np.random.seed(seed)
    n = 200
    X = np.random.randn(n, 2)
    A = np.random.binomial(1, 0.5, size=n)
    return DesignData.survival(A, np.full(n, 6), np.zeros(n), covariates=X)


@pytest.fixture
def ordinal_dgp(seed):
    """Ordinal trial where arm 1 is shifted to higher levels."""
    return simulate_ordinal(n=400, effect=1.5, seed=seed)


@pytest.fixture
def ordinal_data(ordinal_dgp):
    from rctadjust import DesignData

    d = ordinal_dgp
    return DesignData.ordinal(d["A"], d["Y"], covariates=d["X"])


@pytest.fixture
def identical_ordinal_data(seed):
    from rctadjust import DesignData

    base = simulate_ordinal(n=200, effect=0.0, seed=seed)
    d = duplicate_arms(base, ["Y"])
    return DesignData.ordinal(d["A"], d["Y"], covariates=d["X"])


@pytest.fixture
def survival_frame(survival_dgp):
    """Survival trial as a DataFrame for the formula interface."""
    d = survival_dgp
    return pd.DataFrame({
        "days": d["time"] * 30.0,
        "event": d["status"],
        "arm": d["A"],
        "age": d["X"][:, 0],
        "bmi": d["X"][:, 1],
        "sex": np.where(d["X"][:, 2] > 0, "F", "M"),
    })


@pytest.fixture
def ordinal_frame(ordinal_dgp):
    """Ordinal trial with an ordered categorical outcome."""
    d = ordinal_dgp
    labels = ["none", "mild", "moderate", "severe"]
    score = pd.Categorical(
        [labels[y - 1] for y in d["Y"]], categories=labels, ordered=True
    )
    return pd.DataFrame({
        "score": score,
        "arm": d["A"],
        "age": d["X"][:, 0],
        "bmi": d["X"][:, 1],
    })
