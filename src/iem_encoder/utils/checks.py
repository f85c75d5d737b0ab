"""Shape and value checks shared by every pipeline stage."""

from __future__ import annotations

import numpy as np

from iem_encoder.errors import DimensionMismatch, InvalidConfiguration


def as_matrix(a, name: str) -> np.ndarray:
    """Return ``a`` as a 2-D float array or raise DimensionMismatch."""
    arr = np.asarray(a, dtype=np.float64)
    if arr.ndim != 2:
        raise DimensionMismatch(f"{name} must be 2-D, got shape {arr.shape}")
    return arr


def check_same_shape(a: np.ndarray, b: np.ndarray, names: tuple[str, str]) -> None:
    if a.shape != b.shape:
        raise DimensionMismatch(
            f"Shape mismatch: {names[0]}={a.shape}, {names[1]}={b.shape}"
        )


def check_axis(
    a: np.ndarray,
    axis_a: int,
    b: np.ndarray,
    axis_b: int,
    names: tuple[str, str],
) -> None:
    """Require ``a.shape[axis_a] == b.shape[axis_b]``."""
    if a.shape[axis_a] != b.shape[axis_b]:
        raise DimensionMismatch(
            f"{names[0]} axis {axis_a} has length {a.shape[axis_a]} but "
            f"{names[1]} axis {axis_b} has length {b.shape[axis_b]}"
        )


def check_positive_int(value, name: str) -> int:
    message = f"{name} must be a positive integer, got {value!r}"
    if isinstance(value, bool):
        raise InvalidConfiguration(message)
    try:
        as_int = int(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise InvalidConfiguration(message) from e
    if as_int != value or as_int <= 0:
        raise InvalidConfiguration(message)
    return as_int


def check_even_stimulus_space(n_stimuli) -> int:
    """The angular rescaling maps ``n_stimuli`` labels onto one full cycle."""
    n = check_positive_int(n_stimuli, "n_stimuli")
    if n % 2 != 0:
        raise InvalidConfiguration(
            f"n_stimuli must be even for the periodic angle mapping, got {n}"
        )
    return n


def check_labels(stimuli, n_stimuli: int) -> np.ndarray:
    """Validate a stimulus sequence as integer labels in ``[0, n_stimuli)``."""
    labels = np.asarray(stimuli)
    if labels.ndim != 1 or labels.size == 0:
        raise InvalidConfiguration(
            f"stimulus sequence must be a non-empty 1-D array, got shape {labels.shape}"
        )
    if not np.issubdtype(labels.dtype, np.integer):
        if not np.all(np.equal(np.mod(labels, 1), 0)):
            raise InvalidConfiguration("stimulus labels must be integers")
        labels = labels.astype(np.int64)
    if labels.min() < 0 or labels.max() >= n_stimuli:
        raise InvalidConfiguration(
            f"stimulus labels must lie in [0, {n_stimuli}), "
            f"got range [{labels.min()}, {labels.max()}]"
        )
    return labels
