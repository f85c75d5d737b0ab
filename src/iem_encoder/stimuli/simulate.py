"""
Response Simulation
===================

Synthesises multi-voxel responses to a stimulus sequence from a tuning
matrix and a random mixing-weight matrix.

Core Algorithm::

    clean    = tuning[:, stimuli].T @ mixing_weights     (T, U) @ (U, M)
    clean   /= mean(clean)                               centre near 1
    observed = clean + N(0, noise_sd²)                   elementwise, iid

Design Principles:
    - The random source is always an injected ``numpy.random.Generator``
    - Same generator state → bit-identical datasets
    - ``noise_sd == 0`` consumes no random numbers
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from iem_encoder.errors import InvalidConfiguration
from iem_encoder.utils.checks import (
    as_matrix,
    check_axis,
    check_labels,
    check_positive_int,
)
from iem_encoder.utils.logging import get_logger

logger = get_logger(__name__)


def make_stimulus_sequence(
    n_stimuli: int,
    trials_per_stimulus: int,
    rng: np.random.Generator | None = None,
    shuffle: bool = False,
) -> np.ndarray:
    """Every label ``0..S-1`` repeated ``trials_per_stimulus`` times.

    Returns
    -------
    np.ndarray, shape (S * trials_per_stimulus,), dtype int64
        Blocked by repeat (0..S-1, 0..S-1, ...) unless shuffled.
    """
    n_stimuli = check_positive_int(n_stimuli, "n_stimuli")
    trials_per_stimulus = check_positive_int(trials_per_stimulus, "trials_per_stimulus")
    stimuli = np.tile(np.arange(n_stimuli, dtype=np.int64), trials_per_stimulus)
    if shuffle:
        if rng is None:
            raise InvalidConfiguration("shuffle=True requires an rng")
        stimuli = rng.permutation(stimuli)
    return stimuli


def draw_mixing_weights(
    n_units: int,
    n_measurements: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """Uniform ``[0, 1)`` unit → measurement-channel weights, shape ``(U, M)``."""
    n_units = check_positive_int(n_units, "n_units")
    n_measurements = check_positive_int(n_measurements, "n_measurements")
    return rng.random((n_units, n_measurements))


def build_design_matrix(basis: np.ndarray, stimuli) -> np.ndarray:
    """Channel responses for each trial, shape ``(T, C)``.

    Parameters
    ----------
    basis : np.ndarray, shape (C, S)
        Channel basis (or any tuning matrix).
    stimuli : array-like of int, shape (T,)
        Trial labels.
    """
    basis = as_matrix(basis, "basis")
    labels = check_labels(stimuli, basis.shape[1])
    return basis[:, labels].T


def simulate_responses(
    tuning: np.ndarray,
    stimuli,
    mixing_weights: np.ndarray,
    noise_sd: float,
    rng: np.random.Generator,
) -> np.ndarray:
    """Simulate an observed response matrix, shape ``(T, M)``.

    Parameters
    ----------
    tuning : np.ndarray, shape (U, S)
        Generating tuning matrix (neurons or channels).
    stimuli : array-like of int, shape (T,)
        Trial labels.
    mixing_weights : np.ndarray, shape (U, M)
        Unit → measurement-channel projection.
    noise_sd : float
        Standard deviation of additive Gaussian noise. 0 disables noise.
    rng : np.random.Generator
        Random source consumed for the noise draw.

    Raises
    ------
    DimensionMismatch
        If ``tuning`` rows and ``mixing_weights`` rows disagree.
    InvalidConfiguration
        For negative ``noise_sd`` or labels outside the stimulus space.
    """
    tuning = as_matrix(tuning, "tuning")
    mixing_weights = as_matrix(mixing_weights, "mixing_weights")
    check_axis(tuning, 0, mixing_weights, 0, ("tuning", "mixing_weights"))
    if not noise_sd >= 0:
        raise InvalidConfiguration(f"noise_sd must be non-negative, got {noise_sd!r}")

    clean = build_design_matrix(tuning, stimuli) @ mixing_weights
    mean = clean.mean()
    if mean == 0:
        raise InvalidConfiguration("noiseless responses have zero mean; cannot normalise")
    clean = clean / mean

    if noise_sd > 0:
        observed = clean + rng.normal(0.0, noise_sd, size=clean.shape)
    else:
        observed = clean

    logger.debug(
        "Simulated responses: trials=%d measurements=%d noise_sd=%.3f",
        observed.shape[0], observed.shape[1], noise_sd,
    )
    return observed


@dataclass(frozen=True)
class SimulatedSubject:
    """A fixed generating population and mixing matrix.

    Lets a training set and a held-out test set be drawn from the same
    simulated subject.

    Attributes
    ----------
    tuning : np.ndarray, shape (U, S)
    mixing_weights : np.ndarray, shape (U, M)
    """

    tuning: np.ndarray
    mixing_weights: np.ndarray = field(repr=False)

    def __post_init__(self):
        check_axis(
            as_matrix(self.tuning, "tuning"), 0,
            as_matrix(self.mixing_weights, "mixing_weights"), 0,
            ("tuning", "mixing_weights"),
        )

    @classmethod
    def draw(
        cls,
        tuning: np.ndarray,
        n_measurements: int,
        rng: np.random.Generator,
    ) -> "SimulatedSubject":
        weights = draw_mixing_weights(tuning.shape[0], n_measurements, rng)
        weights.setflags(write=False)
        return cls(tuning=tuning, mixing_weights=weights)

    @property
    def n_stimuli(self) -> int:
        return self.tuning.shape[1]

    @property
    def n_measurements(self) -> int:
        return self.mixing_weights.shape[1]

    def respond(self, stimuli, noise_sd: float, rng: np.random.Generator) -> np.ndarray:
        return simulate_responses(self.tuning, stimuli, self.mixing_weights, noise_sd, rng)
