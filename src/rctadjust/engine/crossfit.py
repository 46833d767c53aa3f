"""
Cross-fitting engine.

For fold v:
    Train: fit propensity, event hazard and censoring hazard on folds != v
    Test:  predict on fold v under both forced arms, build the EIF and
           target the counterfactual curves on fold v only

With a single fold the full sample is used for both fitting and
prediction (no cross-fitting).
"""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from joblib import Parallel, delayed
from sklearn.model_selection import StratifiedKFold
from tqdm import tqdm

from .._typing import Float64Array, Int64Array, Learner
from ..config import TargetingConfig
from ..data.design import DesignData
from ..exceptions import DataError
from .eif import PluginCurves, build
from .nuisance import fit_nuisance
from .targeting import TargetedCurves, target


@dataclass
class FoldResult:
    """Results from a single fold."""

    fold_idx: int
    eval_indices: Int64Array
    n_train: int
    curves: PluginCurves
    targeted: TargetedCurves


@dataclass
class CrossFitResult:
    """Complete cross-fitting results."""

    n_obs: int
    n_times: int
    fold_results: List[FoldResult] = field(default_factory=list)

    @property
    def n_folds(self) -> int:
        return len(self.fold_results)

    @property
    def iterated(self) -> bool:
        """True when iterative targeting converged everywhere."""
        return all(bool(fr.targeted.iterated.all()) for fr in self.fold_results)

    def assemble(self, per_fold: List[Float64Array]) -> Float64Array:
        """Stack per-fold arrays (rows = held-out observations) by original index."""
        first = per_fold[0]
        out = np.empty((self.n_obs,) + first.shape[1:], dtype=first.dtype)
        for fr, values in zip(self.fold_results, per_fold):
            out[fr.eval_indices] = values
        return out

    def __repr__(self) -> str:
        return (
            f"<CrossFitResult: n_obs={self.n_obs}, n_folds={self.n_folds}, "
            f"n_times={self.n_times}, iterated={self.iterated}>"
        )


def make_folds(
    treatment: Float64Array,
    n_folds: int,
    random_state: Optional[int] = None,
) -> List[Int64Array]:
    """
    Partition observations into folds stratified by treatment arm.

    Args:
        treatment: (n,) binary treatment.
        n_folds: Number of folds V. V=1 returns the full sample.
        random_state: Seed for the shuffle.

    Returns:
        List of V sorted index arrays, disjoint and covering 0..n-1.
    """
    n = len(treatment)
    if n_folds < 1:
        raise DataError(f"n_folds must be at least 1, got {n_folds}")
    if n_folds == 1:
        return [np.arange(n, dtype=np.int64)]

    arm_counts = np.bincount(treatment.astype(np.int64), minlength=2)
    if arm_counts.min() < n_folds:
        raise DataError(
            f"Cannot build {n_folds} folds: the smaller arm has only "
            f"{arm_counts.min()} observations"
        )

    splitter = StratifiedKFold(n_splits=n_folds, shuffle=True, random_state=random_state)
    folds = [
        np.sort(test).astype(np.int64)
        for _, test in splitter.split(np.zeros(n), treatment.astype(np.int64))
    ]
    if any(len(f) == 0 for f in folds):
        raise DataError("Fold assignment produced an empty fold")
    return folds


def _run_fold(
    k: int,
    data: DesignData,
    eval_idx: Int64Array,
    train_idx: Int64Array,
    learner: Learner,
    config: TargetingConfig,
) -> FoldResult:
    nuisance = fit_nuisance(data, train_idx, eval_idx, learner)
    curves, _ = build(data, nuisance, config.clip_epsilon)
    targeted = target(curves, nuisance.indices, config)
    return FoldResult(
        fold_idx=k,
        eval_indices=nuisance.indices,
        n_train=len(train_idx),
        curves=curves,
        targeted=targeted,
    )


def run_crossfit(
    data: DesignData,
    learner: Learner,
    n_folds: int = 5,
    config: Optional[TargetingConfig] = None,
    random_state: Optional[int] = None,
    n_jobs: Optional[int] = None,
    verbose: bool = False,
) -> CrossFitResult:
    """
    Run the cross-fitting procedure.

    Args:
        data: Trial design data.
        learner: Learner for the event and censoring hazards.
        n_folds: Number of folds; 1 disables cross-fitting.
        config: Targeting settings.
        random_state: Seed for fold assignment.
        n_jobs: Folds fitted concurrently by joblib; None runs sequentially.
        verbose: Show a progress bar over folds.

    Returns:
        CrossFitResult with one FoldResult per fold, in fold order.
    """
    if config is None:
        config = TargetingConfig()

    folds = make_folds(data.treatment, n_folds, random_state)
    all_idx = np.arange(data.n, dtype=np.int64)

    tasks = []
    for k, eval_idx in enumerate(folds):
        if len(folds) == 1:
            train_idx = all_idx
        else:
            train_mask = np.ones(data.n, dtype=bool)
            train_mask[eval_idx] = False
            train_idx = all_idx[train_mask]
        tasks.append((k, eval_idx, train_idx))

    fold_iterator = tasks
    if verbose:
        fold_iterator = tqdm(tasks, desc="Cross-fitting", ncols=80)

    if n_jobs is None or n_jobs == 1:
        fold_results = [
            _run_fold(k, data, eval_idx, train_idx, learner, config)
            for k, eval_idx, train_idx in fold_iterator
        ]
    else:
        fold_results = Parallel(n_jobs=n_jobs)(
            delayed(_run_fold)(k, data, eval_idx, train_idx, learner, config)
            for k, eval_idx, train_idx in fold_iterator
        )

    return CrossFitResult(
        n_obs=data.n,
        n_times=data.n_times,
        fold_results=list(fold_results),
    )
