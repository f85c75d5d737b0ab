"""
Tuning Functions and Channel Bases
==================================

Builds population tuning curves over a discretised, periodic stimulus space.

Core Algorithm::

    angle(s)    = 2π · s / S                        (S labels → one full cycle)
    row_i(s)    = kernel(angle(s) − angle(p_i))
    row_i      /= max(row_i)

    For orientation (S = 180) this is the usual factor-of-2 rescaling that
    maps the 180°-periodic half-circle onto a 360° cosine / Von Mises cycle.

Kernels:
    - ``VonMisesKernel(k)``        exp(k · (cos δ − 1))     "true" neurons
    - ``RectifiedCosineKernel(n)`` max(cos δ, 0) ** n       channel basis

Design Principles:
    - One ``evaluate(delta)`` capability per kernel; a single matrix builder
    - Output matrices are ``(units, S)`` and read-only once built
    - The channel basis reuses the same builder as the neuron tuning matrix
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np

from iem_encoder.errors import InvalidConfiguration
from iem_encoder.utils.checks import check_even_stimulus_space, check_positive_int
from iem_encoder.utils.logging import get_logger

logger = get_logger(__name__)


class TuningKernel(ABC):
    """A periodic, unimodal tuning profile over angular distance."""

    @abstractmethod
    def evaluate(self, delta: np.ndarray) -> np.ndarray:
        """Evaluate the kernel at angular distances ``delta`` (radians).

        Parameters
        ----------
        delta : np.ndarray
            Angular distance from the preferred angle, over a 2π cycle.

        Returns
        -------
        np.ndarray
            Non-negative activations, same shape as ``delta``, peaking at 0.
        """
        ...


class VonMisesKernel(TuningKernel):
    """Circular-Gaussian kernel ``exp(k · (cos δ − 1))``.

    Parameters
    ----------
    concentration : float
        Von Mises concentration ``k``; larger is narrower.
    """

    def __init__(self, concentration: float = 2.0):
        if not concentration > 0:
            raise InvalidConfiguration(
                f"concentration must be positive, got {concentration!r}"
            )
        self.concentration = float(concentration)

    def evaluate(self, delta: np.ndarray) -> np.ndarray:
        # exp(k cos δ) / exp(k): peak height 1 without overflow for large k
        return np.exp(self.concentration * (np.cos(delta) - 1.0))

    def __repr__(self) -> str:
        return f"VonMisesKernel(concentration={self.concentration})"


class RectifiedCosineKernel(TuningKernel):
    """Half-wave rectified cosine raised to a power, ``max(cos δ, 0) ** n``.

    Parameters
    ----------
    exponent : float
        Power applied after rectification; 7 gives channels about a quarter cycle wide.
    """

    def __init__(self, exponent: float = 7):
        if not exponent > 0:
            raise InvalidConfiguration(f"exponent must be positive, got {exponent!r}")
        self.exponent = exponent

    def evaluate(self, delta: np.ndarray) -> np.ndarray:
        # Clip before the power so fractional exponents never see negatives
        return np.clip(np.cos(delta), 0.0, None) ** self.exponent

    def __repr__(self) -> str:
        return f"RectifiedCosineKernel(exponent={self.exponent})"


def stimulus_angles(n_stimuli: int) -> np.ndarray:
    """Angles (radians) of labels ``0..S-1`` on one full cycle."""
    n_stimuli = check_even_stimulus_space(n_stimuli)
    return 2.0 * np.pi * np.arange(n_stimuli) / n_stimuli


def evenly_spaced_preferences(n_units: int, n_stimuli: int) -> np.ndarray:
    """Preferred labels evenly spaced over the stimulus space.

    ``round(i · S / U)`` for ``i = 0..U-1``. With ``S = 180`` and ``U = 8``
    this gives 0, 22, 45, 68, 90, 112, 135, 158 (numpy rounds half to even).

    Returns
    -------
    np.ndarray, shape (U,), dtype int64
    """
    n_units = check_positive_int(n_units, "n_units")
    n_stimuli = check_even_stimulus_space(n_stimuli)
    prefs = np.round(np.arange(n_units) * n_stimuli / n_units).astype(np.int64)
    return np.mod(prefs, n_stimuli)


def build_tuning_matrix(
    kernel: TuningKernel,
    n_stimuli: int,
    preferred: Sequence[float],
) -> np.ndarray:
    """Tuning matrix of shape ``(U, S)``, one normalised row per unit.

    Parameters
    ----------
    kernel : TuningKernel
        Tuning family to evaluate.
    n_stimuli : int
        Size ``S`` of the stimulus space. Must be positive and even.
    preferred : sequence of float
        Preferred stimulus label for each unit, in ``[0, S)``.

    Returns
    -------
    np.ndarray, shape (U, S)
        Read-only array; every row is non-negative with maximum 1.
    """
    n_stimuli = check_even_stimulus_space(n_stimuli)
    preferred = np.asarray(preferred, dtype=np.float64)
    if preferred.ndim != 1 or preferred.size == 0:
        raise InvalidConfiguration(
            f"preferred must be a non-empty 1-D sequence, got shape {preferred.shape}"
        )
    if preferred.min() < 0 or preferred.max() >= n_stimuli:
        raise InvalidConfiguration(
            f"preferred labels must lie in [0, {n_stimuli}), "
            f"got range [{preferred.min()}, {preferred.max()}]"
        )

    scale = 2.0 * np.pi / n_stimuli
    delta = scale * (np.arange(n_stimuli)[np.newaxis, :] - preferred[:, np.newaxis])
    matrix = kernel.evaluate(delta)

    peaks = matrix.max(axis=1, keepdims=True)
    if np.any(peaks <= 0):
        raise InvalidConfiguration(f"{kernel!r} produced an all-zero tuning row")
    matrix = matrix / peaks

    matrix.setflags(write=False)
    logger.debug(
        "Tuning matrix: kernel=%r units=%d stimuli=%d", kernel, preferred.size, n_stimuli
    )
    return matrix


def build_channel_basis(
    n_channels: int = 8,
    n_stimuli: int = 180,
    exponent: float = 7,
    preferred: Optional[Sequence[float]] = None,
) -> np.ndarray:
    """Rectified-cosine channel basis, shape ``(C, S)``.

    Preferred orientations default to ``evenly_spaced_preferences(C, S)``.
    """
    if preferred is None:
        preferred = evenly_spaced_preferences(n_channels, n_stimuli)
    elif len(preferred) != n_channels:
        raise InvalidConfiguration(
            f"Expected {n_channels} preferred labels, got {len(preferred)}"
        )
    basis = build_tuning_matrix(RectifiedCosineKernel(exponent), n_stimuli, preferred)
    logger.info("Channel basis: channels=%d stimuli=%d exponent=%s", n_channels, n_stimuli, exponent)
    return basis


def build_neuron_tuning(
    n_neurons: int = 180,
    n_stimuli: int = 180,
    concentration: float = 2.0,
) -> np.ndarray:
    """Von Mises tuning matrix for an evenly tiled neuron population, ``(U, S)``."""
    preferred = evenly_spaced_preferences(n_neurons, n_stimuli)
    tuning = build_tuning_matrix(VonMisesKernel(concentration), n_stimuli, preferred)
    logger.info(
        "Neuron tuning: neurons=%d stimuli=%d concentration=%.3f",
        n_neurons, n_stimuli, concentration,
    )
    return tuning


# ---------------------------------------------------------------------------
# Channel reweighting
# ---------------------------------------------------------------------------


def cyclic_shift_transform(
    n_channels: int = 8,
    weights: Optional[Sequence[float]] = None,
) -> np.ndarray:
    """Circulant ``(C, C)`` matrix mixing each channel with its neighbours.

    Row ``c`` is ``weights`` rolled by ``c``; the default puts 1 on the
    channel itself and 0.5 on the channel half a cycle away, which turns a
    unimodal basis into a bimodal one.

    Raises
    ------
    InvalidConfiguration
        If ``weights`` has the wrong length or the transform is singular.
    """
    n_channels = check_positive_int(n_channels, "n_channels")
    if weights is None:
        weights = np.zeros(n_channels)
        weights[0] = 1.0
        if n_channels > 1:
            weights[n_channels // 2] += 0.5
    weights = np.asarray(weights, dtype=np.float64)
    if weights.shape != (n_channels,):
        raise InvalidConfiguration(
            f"weights must have length {n_channels}, got shape {weights.shape}"
        )

    transform = np.stack([np.roll(weights, c) for c in range(n_channels)])
    _check_invertible(transform)
    return transform


def reweight_basis(basis: np.ndarray, transform: np.ndarray) -> np.ndarray:
    """Apply an invertible channel transform: ``transform @ basis``.

    Parameters
    ----------
    basis : np.ndarray, shape (C, S)
    transform : np.ndarray, shape (C, C)

    Returns
    -------
    np.ndarray, shape (C, S)
        Read-only reweighted basis (rows are not renormalised).
    """
    basis = np.asarray(basis, dtype=np.float64)
    transform = np.asarray(transform, dtype=np.float64)
    if transform.ndim != 2 or transform.shape != (basis.shape[0], basis.shape[0]):
        raise InvalidConfiguration(
            f"transform must be ({basis.shape[0]}, {basis.shape[0]}), got {transform.shape}"
        )
    _check_invertible(transform)
    out = transform @ basis
    out.setflags(write=False)
    return out


def _check_invertible(transform: np.ndarray) -> None:
    if np.linalg.matrix_rank(transform) < transform.shape[0]:
        raise InvalidConfiguration("channel transform is singular")
