"""
Cross-Validation Splits
=======================

Generates train/test trial partitions for held-out evaluation.

Design Principles:
    - ``kfold`` shuffles trials with a deterministic seed (sklearn ``KFold``)
    - ``block`` keeps contiguous trial blocks; with a blocked stimulus
      sequence and ``n_folds`` dividing the number of repeats, each fold
      holds out whole repeats of the stimulus space
    - ``group`` holds out whole groups (e.g. repeat index) via ``GroupKFold``
"""

from __future__ import annotations

from typing import Generator, Iterable, Literal, Optional

import numpy as np
from sklearn.model_selection import GroupKFold, KFold

from iem_encoder.errors import InvalidConfiguration
from iem_encoder.utils.logging import get_logger

logger = get_logger(__name__)


def generate_cv_splits(
    n_samples: int,
    scheme: Literal["kfold", "block", "group"] = "kfold",
    n_folds: int = 5,
    seed: int = 42,
    groups: Optional[np.ndarray] = None,
) -> Generator[tuple[np.ndarray, np.ndarray], None, None]:
    """Generate train/test index arrays for cross-validation.

    Parameters
    ----------
    n_samples : int
        Total number of trials.
    scheme : str
        'kfold': shuffled k-fold
        'block': contiguous trial blocks
        'group': one fold per group set, requires ``groups``
    n_folds : int
        Number of folds.
    seed : int
        Shuffle seed for 'kfold'. Set to -1 for unseeded.
    groups : np.ndarray or None
        Group label per trial, shape (n_samples,), for 'group'.

    Yields
    ------
    train_idx : np.ndarray
        Training trial indices.
    test_idx : np.ndarray
        Held-out trial indices.
    """
    if n_folds < 2 or n_folds > n_samples:
        raise InvalidConfiguration(
            f"n_folds must be in [2, {n_samples}], got {n_folds}"
        )

    indices = np.arange(n_samples)
    if scheme == "kfold":
        splitter = KFold(n_splits=n_folds, shuffle=True, random_state=None if seed == -1 else seed)
        splits = splitter.split(indices)
    elif scheme == "block":
        blocks = np.array_split(indices, n_folds)
        splits = (
            (np.concatenate(blocks[:k] + blocks[k + 1 :]), blocks[k]) for k in range(n_folds)
        )
    elif scheme == "group":
        if groups is None or len(groups) != n_samples:
            raise InvalidConfiguration("scheme='group' requires one group label per trial")
        n_groups = np.unique(groups).size
        if n_folds > n_groups:
            raise InvalidConfiguration(
                f"n_folds={n_folds} exceeds the number of groups ({n_groups})"
            )
        splits = GroupKFold(n_splits=n_folds).split(indices, groups=groups)
    else:
        raise InvalidConfiguration(f"Unknown CV scheme: {scheme}")

    logger.debug("Generating %d-fold %s CV splits for %d trials", n_folds, scheme, n_samples)
    for fold_idx, (train_idx, test_idx) in enumerate(splits):
        logger.debug(
            "%s fold %d/%d: train=%d, test=%d",
            scheme, fold_idx + 1, n_folds, len(train_idx), len(test_idx),
        )
        yield train_idx, test_idx


def get_fold_assignments(
    splits: Iterable[tuple[np.ndarray, np.ndarray]],
    n_samples: int,
) -> np.ndarray:
    """Held-out fold number (1..K) of every trial; 0 for trials never held out."""
    folds = np.zeros(n_samples, dtype=np.int64)
    for fold_num, (_, test_idx) in enumerate(splits, start=1):
        folds[test_idx] = fold_num
    return folds
