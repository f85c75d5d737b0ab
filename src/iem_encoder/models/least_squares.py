"""
Least-Squares Encoding Model
============================

Ordinary least-squares fit of channel → voxel weights via the
Moore–Penrose pseudo-inverse.

Core Algorithm::

    W = pinv(X) @ Y          X: (T, C) design, Y: (T, M) responses

Conditioning Policy:
    The pseudo-inverse is defined for rank-deficient X, so the fit always
    proceeds. It is flagged ``low_confidence`` (and a NumericalInstability
    warning is emitted) when any of the following holds:

      - fewer trials than channels (T < C)
      - numerical rank of X below C
      - condition number of X above ``condition_threshold``
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Optional

import numpy as np

from iem_encoder.errors import NumericalInstability
from iem_encoder.models.base import EncodingModel
from iem_encoder.utils.checks import as_matrix, check_axis
from iem_encoder.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EncodingFit:
    """Result of a least-squares encoding fit.

    Attributes
    ----------
    weights : np.ndarray, shape (C, M)
    rank : int
        Numerical rank of the design matrix.
    singular_values : np.ndarray, shape (min(T, C),)
    condition_number : float
        Ratio of largest to smallest singular value (inf if any is zero).
    low_confidence : bool
        True when the design was under-determined or ill-conditioned.
    """

    weights: np.ndarray
    rank: int
    singular_values: np.ndarray
    condition_number: float
    low_confidence: bool


class LeastSquaresEncodingModel(EncodingModel):
    """Pseudo-inverse least-squares encoding model.

    Parameters
    ----------
    rcond : float
        Relative cutoff for small singular values in ``np.linalg.pinv``.
    condition_threshold : float
        Condition numbers above this mark the fit low-confidence.
    """

    def __init__(self, rcond: float = 1e-10, condition_threshold: float = 1e8):
        self.rcond = rcond
        self.condition_threshold = condition_threshold
        self._fit: Optional[EncodingFit] = None

    def fit(self, X: np.ndarray, Y: np.ndarray) -> "LeastSquaresEncodingModel":
        X = as_matrix(X, "X")
        Y = as_matrix(Y, "Y")
        check_axis(X, 0, Y, 0, ("X", "Y"))

        T, C = X.shape
        M = Y.shape[1]
        logger.info("Fitting least squares: X(%d,%d) → Y(%d,%d)", T, C, T, M)

        s = np.linalg.svd(X, compute_uv=False)
        tol = self.rcond * s.max() if s.size else 0.0
        rank = int(np.sum(s > tol))
        smallest = s.min() if s.size else 0.0
        cond = float(s.max() / smallest) if smallest > 0 else float("inf")

        W = np.linalg.pinv(X, rcond=self.rcond) @ Y

        low_confidence = T < C or rank < C or cond > self.condition_threshold
        if low_confidence:
            msg = (
                f"Design matrix is ill-conditioned (T={T}, C={C}, rank={rank}, "
                f"cond={cond:.3g}); weights are low-confidence"
            )
            logger.warning(msg)
            warnings.warn(msg, NumericalInstability, stacklevel=2)

        self._fit = EncodingFit(
            weights=W,
            rank=rank,
            singular_values=s,
            condition_number=cond,
            low_confidence=low_confidence,
        )
        logger.info("Least-squares fit: weights shape = %s, rank = %d, cond = %.3g", W.shape, rank, cond)
        return self

    @property
    def result(self) -> EncodingFit:
        if self._fit is None:
            raise RuntimeError("Model not fitted. Call fit() first.")
        return self._fit

    @property
    def weights(self) -> np.ndarray:
        return self.result.weights

    @property
    def low_confidence(self) -> bool:
        return self.result.low_confidence


def fit_encoding_weights(
    design: np.ndarray,
    responses: np.ndarray,
    rcond: float = 1e-10,
    condition_threshold: float = 1e8,
) -> EncodingFit:
    """Functional form of ``LeastSquaresEncodingModel.fit``.

    Parameters
    ----------
    design : np.ndarray, shape (T, C)
    responses : np.ndarray, shape (T, M)

    Returns
    -------
    EncodingFit
    """
    model = LeastSquaresEncodingModel(rcond=rcond, condition_threshold=condition_threshold)
    return model.fit(design, responses).result


def predict_responses(design: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """``design @ weights`` with the shape check, shape ``(T, M)``."""
    design = as_matrix(design, "design")
    weights = as_matrix(weights, "weights")
    check_axis(design, 1, weights, 0, ("design", "weights"))
    return design @ weights
