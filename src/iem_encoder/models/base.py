"""
Encoding Model Base Class
=========================

Abstract interface for channel → measurement-channel encoding models.

Design Principles:
    - ``fit(X, Y)``: X is the design matrix ``(T, C)``, Y the responses ``(T, M)``
    - ``predict(X) → Yhat``: ``X @ weights``
    - Weights have shape ``(C, M)``; there is no intercept row because the
      channel basis already spans the response baseline
    - Concrete implementation: least squares (``least_squares.py``)
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np

from iem_encoder.utils.checks import as_matrix, check_axis


class EncodingModel(ABC):
    """Abstract base class for linear encoding models.

    All encoding models take channel responses X of shape (T, C) and
    measurement data Y of shape (T, M), and produce weights of shape (C, M).

    Prediction:
        yhat = X @ W
    """

    @abstractmethod
    def fit(self, X: np.ndarray, Y: np.ndarray) -> "EncodingModel":
        """Fit the encoding model.

        Parameters
        ----------
        X : np.ndarray
            Design matrix, shape (T, C). T = trials, C = channels.
        Y : np.ndarray
            Observed responses, shape (T, M). M = measurement channels.

        Returns
        -------
        EncodingModel
            ``self``, for chaining.
        """
        ...

    @property
    @abstractmethod
    def weights(self) -> np.ndarray:
        """Model weights, shape (C, M)."""
        ...

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Predict responses from channel responses.

        Parameters
        ----------
        X : np.ndarray
            Design matrix, shape (N, C).

        Returns
        -------
        np.ndarray
            Predicted responses, shape (N, M).
        """
        X = as_matrix(X, "X")
        W = self.weights
        check_axis(X, 1, W, 0, ("X", "weights"))
        return X @ W
