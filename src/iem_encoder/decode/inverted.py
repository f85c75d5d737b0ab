"""
Point-Estimate Inversion
========================

Recovers channel responses from measurement-channel responses by inverting
the fitted encoding weights.

Core Algorithm::

    C_hat = Y_test @ pinv(W)         Y_test: (T, M), W: (C, M) → C_hat: (T, C)

Identifiability:
    The recovered channel profile is only defined relative to the chosen
    channel basis. Refitting with ``transform @ basis`` for any invertible
    transform gives weights ``inv(transform).T @ W`` and channel estimates
    ``C_hat @ transform.T``: the profile shape changes, the model's
    predictions and variance explained do not.
"""

from __future__ import annotations

import warnings

import numpy as np

from iem_encoder.errors import DimensionMismatch, NumericalInstability
from iem_encoder.utils.checks import as_matrix, check_axis, check_labels
from iem_encoder.utils.logging import get_logger

logger = get_logger(__name__)


def estimate_channel_responses(
    responses: np.ndarray,
    weights: np.ndarray,
    rcond: float = 1e-10,
) -> np.ndarray:
    """Estimate channel responses for each trial.

    Parameters
    ----------
    responses : np.ndarray, shape (T, M)
        Test responses.
    weights : np.ndarray, shape (C, M)
        Fitted encoding weights.

    Returns
    -------
    np.ndarray, shape (T, C)
    """
    responses = as_matrix(responses, "responses")
    weights = as_matrix(weights, "weights")
    check_axis(responses, 1, weights, 1, ("responses", "weights"))

    C = weights.shape[0]
    rank = np.linalg.matrix_rank(weights)
    if rank < C:
        msg = f"Weight matrix has rank {rank} < {C} channels; channel estimates are not unique"
        logger.warning(msg)
        warnings.warn(msg, NumericalInstability, stacklevel=2)

    channel_responses = responses @ np.linalg.pinv(weights, rcond=rcond)
    logger.info("Estimated channel responses: %s", channel_responses.shape)
    return channel_responses


def center_channel_responses(
    channel_responses: np.ndarray,
    stimuli,
    preferred,
    n_stimuli: int,
) -> np.ndarray:
    """Roll each trial's channel profile so the channel nearest the trial's
    stimulus sits at index ``C // 2``.

    Parameters
    ----------
    channel_responses : np.ndarray, shape (T, C)
    stimuli : array-like of int, shape (T,)
    preferred : array-like, shape (C,)
        Preferred label of each channel, in channel order.
    n_stimuli : int
        Size of the stimulus space (the period).

    Returns
    -------
    np.ndarray, shape (T, C)
    """
    channel_responses = as_matrix(channel_responses, "channel_responses")
    labels = check_labels(stimuli, n_stimuli)
    preferred = np.asarray(preferred, dtype=np.float64)
    T, C = channel_responses.shape
    if labels.shape[0] != T:
        raise DimensionMismatch(f"{labels.shape[0]} stimuli for {T} trials")
    if preferred.shape != (C,):
        raise DimensionMismatch(f"preferred has shape {preferred.shape}, expected ({C},)")

    # circular distance from each stimulus to each channel preference
    diff = np.abs(labels[:, np.newaxis] - preferred[np.newaxis, :])
    diff = np.minimum(diff, n_stimuli - diff)
    nearest = diff.argmin(axis=1)

    centered = np.empty_like(channel_responses)
    for t in range(T):
        centered[t] = np.roll(channel_responses[t], C // 2 - nearest[t])
    return centered
