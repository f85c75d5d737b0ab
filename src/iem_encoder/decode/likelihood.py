"""
Bayesian Stimulus Likelihood
============================

Evaluates, for every candidate stimulus, the Gaussian density of an observed
response vector under the fitted encoding model.

Core Algorithm::

    mean_s     = basis[:, s] @ W                    (M,)
    L[t, s]    = N(y_t ; mean_s, Σ)                 Σ: (M, M) noise covariance

    Σ defaults to σ² I with σ² the pooled residual variance of held-out data.

Basis invariance:
    Densities are evaluated in measurement space. Refitting with an invertible
    reweighting of the basis leaves every ``mean_s`` (and therefore ``L``)
    unchanged, unlike the channel profiles of the point-estimate inversion.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy.special import logsumexp
from scipy.stats import multivariate_normal

from iem_encoder.errors import DimensionMismatch, InvalidConfiguration
from iem_encoder.utils.checks import as_matrix, check_axis, check_labels, check_same_shape
from iem_encoder.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class NoiseModel:
    """Residual noise model in measurement space.

    Attributes
    ----------
    covariance : np.ndarray, shape (M, M)
        Symmetric positive-definite covariance.
    variance : float or None
        Pooled scalar variance when the covariance is ``variance · I``.
    """

    covariance: np.ndarray
    variance: Optional[float] = None

    @property
    def n_measurements(self) -> int:
        return self.covariance.shape[0]

    @property
    def is_isotropic(self) -> bool:
        return self.variance is not None

    @classmethod
    def isotropic(cls, variance: float, n_measurements: int) -> "NoiseModel":
        """Diagonal, homoscedastic covariance ``variance · I``."""
        if not variance > 0:
            raise InvalidConfiguration(
                f"noise variance must be positive, got {variance!r}"
            )
        cov = np.eye(n_measurements) * float(variance)
        cov.setflags(write=False)
        return cls(covariance=cov, variance=float(variance))

    @classmethod
    def from_covariance(cls, covariance: np.ndarray) -> "NoiseModel":
        """General covariance; must be symmetric positive-definite."""
        cov = as_matrix(covariance, "covariance")
        if cov.shape[0] != cov.shape[1]:
            raise DimensionMismatch(f"covariance must be square, got {cov.shape}")
        if not np.allclose(cov, cov.T):
            raise InvalidConfiguration("covariance must be symmetric")
        try:
            np.linalg.cholesky(cov)
        except np.linalg.LinAlgError as e:
            raise InvalidConfiguration("covariance must be positive-definite") from e
        cov = cov.copy()
        cov.setflags(write=False)
        return cls(covariance=cov)


def fit_noise_covariance(observed: np.ndarray, predicted: np.ndarray) -> NoiseModel:
    """Isotropic noise model from model residuals.

    Parameters
    ----------
    observed : np.ndarray, shape (T, M)
        Held-out responses.
    predicted : np.ndarray, shape (T, M)
        Encoding-model predictions for the same trials.

    Returns
    -------
    NoiseModel
        ``σ² I`` with σ² the population variance of all residuals pooled.

    Notes
    -----
    Real voxel noise is correlated across voxels; the diagonal model is the
    baseline. Use ``NoiseModel.from_covariance`` for anything richer.
    """
    observed = as_matrix(observed, "observed")
    predicted = as_matrix(predicted, "predicted")
    check_same_shape(observed, predicted, ("observed", "predicted"))
    variance = float(np.var((observed - predicted).ravel()))
    if variance == 0:
        raise InvalidConfiguration(
            "residual variance is zero; the noise covariance would be singular"
        )
    logger.info("Noise model: pooled residual variance = %.5f (M=%d)", variance, observed.shape[1])
    return NoiseModel.isotropic(variance, observed.shape[1])


def stimulus_likelihood(
    responses: np.ndarray,
    weights: np.ndarray,
    basis: np.ndarray,
    noise: NoiseModel | np.ndarray,
    log: bool = False,
) -> np.ndarray:
    """Likelihood of every candidate stimulus for each trial.

    Parameters
    ----------
    responses : np.ndarray, shape (T, M) or (M,)
        Observed responses; a single trial vector is accepted.
    weights : np.ndarray, shape (C, M)
        Fitted encoding weights.
    basis : np.ndarray, shape (C, S)
        Channel basis the weights were fitted with.
    noise : NoiseModel or np.ndarray
        Covariance over the M measurement channels. A plain ``(M, M)`` array
        is wrapped with ``NoiseModel.from_covariance``.
    log : bool
        Return log densities instead of densities.

    Returns
    -------
    np.ndarray, shape (T, S), or (S,) for a single trial vector.
    """
    single = np.ndim(responses) == 1
    responses = as_matrix(np.atleast_2d(responses), "responses")
    weights = as_matrix(weights, "weights")
    basis = as_matrix(basis, "basis")
    check_axis(basis, 0, weights, 0, ("basis", "weights"))
    check_axis(responses, 1, weights, 1, ("responses", "weights"))
    if not isinstance(noise, NoiseModel):
        noise = NoiseModel.from_covariance(noise)
    if noise.n_measurements != weights.shape[1]:
        raise DimensionMismatch(
            f"noise covariance is {noise.covariance.shape}, "
            f"expected ({weights.shape[1]}, {weights.shape[1]})"
        )

    means = basis.T @ weights  # (S, M)
    T, S = responses.shape[0], means.shape[0]
    out = np.empty((T, S))
    for s in range(S):
        dist = multivariate_normal(mean=means[s], cov=noise.covariance)
        values = dist.logpdf(responses) if log else dist.pdf(responses)
        out[:, s] = np.atleast_1d(values)

    logger.debug("Stimulus likelihood: trials=%d candidates=%d", T, S)
    return out[0] if single else out


def normalize_likelihood(likelihood: np.ndarray, log: bool = False) -> np.ndarray:
    """Scale each row to sum to 1 (a posterior under a flat prior).

    Pass ``log=True`` when ``likelihood`` holds log densities; normalisation
    is then done with ``logsumexp`` so rows that underflow as densities
    survive.
    """
    arr = np.asarray(likelihood, dtype=np.float64)
    if log:
        return np.exp(arr - logsumexp(arr, axis=-1, keepdims=True))
    total = arr.sum(axis=-1, keepdims=True)
    if np.any(total <= 0):
        raise InvalidConfiguration(
            "likelihood row sums to zero; recompute with log=True and "
            "normalize_likelihood(..., log=True)"
        )
    return arr / total


def decode_stimulus(likelihood: np.ndarray) -> np.ndarray:
    """Maximum-likelihood stimulus label per trial."""
    return np.asarray(likelihood).argmax(axis=-1)


def circular_error(decoded, stimuli, n_stimuli: int) -> np.ndarray:
    """Signed decoding error wrapped to ``[-S/2, S/2)``."""
    decoded = np.asarray(decoded)
    stimuli = np.asarray(stimuli)
    return (decoded - stimuli + n_stimuli // 2) % n_stimuli - n_stimuli // 2


def center_likelihood(likelihood: np.ndarray, stimuli) -> np.ndarray:
    """Roll each row so its true stimulus sits at index ``S // 2``."""
    likelihood = as_matrix(likelihood, "likelihood")
    T, S = likelihood.shape
    labels = check_labels(stimuli, S)
    if labels.shape[0] != T:
        raise DimensionMismatch(f"{labels.shape[0]} stimuli for {T} likelihood rows")
    centered = np.empty_like(likelihood)
    for t in range(T):
        centered[t] = np.roll(likelihood[t], S // 2 - labels[t])
    return centered


def mean_centered_likelihood(
    likelihood: np.ndarray,
    stimuli,
    log: bool = False,
) -> np.ndarray:
    """Average of normalised, centred likelihoods across trials, shape ``(S,)``."""
    posterior = normalize_likelihood(likelihood, log=log)
    return center_likelihood(posterior, stimuli).mean(axis=0)


def circular_spread(likelihood: np.ndarray) -> np.ndarray | float:
    """Circular standard deviation of a likelihood, in stimulus labels.

    Each row is normalised and treated as a distribution over the periodic
    stimulus space; the spread is ``sqrt(−2 ln R) · S / 2π`` with ``R`` the
    mean resultant length. Broader likelihoods give larger values.
    """
    arr = np.asarray(likelihood, dtype=np.float64)
    S = arr.shape[-1]
    p = normalize_likelihood(arr)
    angles = 2.0 * np.pi * np.arange(S) / S
    resultant = np.abs((p * np.exp(1j * angles)).sum(axis=-1))
    with np.errstate(divide="ignore"):
        spread = np.sqrt(-2.0 * np.log(np.clip(resultant, 0.0, 1.0))) * S / (2.0 * np.pi)
    return float(spread) if spread.ndim == 0 else spread
