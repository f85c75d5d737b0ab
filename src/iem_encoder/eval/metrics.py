"""
Goodness-of-fit metrics for encoding models.

Key choices:
  - ``variance_explained`` pools every element of the response matrix into a
    single sample: 1 − var(residual.ravel()) / var(observed.ravel()), with
    population variance (ddof=0). It is not computed per measurement channel
    and then averaged; ``columnwise_variance_explained`` is provided for that.
  - ``mean_squared_error`` is the companion prediction-error measure. With the
    same noise level it stays constant when the spread of the data changes,
    while variance explained does not.
  - ``fitted_r_squared`` and ``linear_fit`` reproduce the textbook simple
    regression R² (model sum of squares over total sum of squares).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np

from iem_encoder.errors import DimensionMismatch, InvalidConfiguration
from iem_encoder.models.least_squares import LeastSquaresEncodingModel
from iem_encoder.utils.checks import as_matrix, check_axis, check_same_shape
from iem_encoder.utils.logging import get_logger

logger = get_logger(__name__)


def _pair(observed, predicted) -> tuple[np.ndarray, np.ndarray]:
    observed = np.asarray(observed, dtype=np.float64)
    predicted = np.asarray(predicted, dtype=np.float64)
    check_same_shape(observed, predicted, ("observed", "predicted"))
    if observed.size == 0:
        raise InvalidConfiguration("cannot evaluate an empty response matrix")
    return observed, predicted


def variance_explained(observed: np.ndarray, predicted: np.ndarray) -> float:
    """Pooled fraction of variance explained.

    Parameters
    ----------
    observed : np.ndarray
        Observed responses, any shape (typically (T, M)).
    predicted : np.ndarray
        Model predictions, same shape.

    Returns
    -------
    float
        ``1 − Var(observed − predicted) / Var(observed)`` over all elements.
        NaN when the observed data have zero variance.
    """
    observed, predicted = _pair(observed, predicted)
    total = np.var(observed.ravel())
    if total == 0:
        logger.warning("variance_explained: observed data have zero variance")
        return float("nan")
    ve = 1.0 - np.var((observed - predicted).ravel()) / total
    logger.debug("Pooled variance explained: %.4f (n=%d)", ve, observed.size)
    return float(ve)


def mean_squared_error(observed: np.ndarray, predicted: np.ndarray) -> float:
    """Mean of squared residuals over all elements."""
    observed, predicted = _pair(observed, predicted)
    return float(np.mean((observed - predicted) ** 2))


def columnwise_variance_explained(
    observed: np.ndarray,
    predicted: np.ndarray,
) -> np.ndarray:
    """Variance explained separately for each measurement channel.

    Returns
    -------
    np.ndarray, shape (M,)
        NaN for columns with zero observed variance.
    """
    observed = as_matrix(observed, "observed")
    predicted = as_matrix(predicted, "predicted")
    check_same_shape(observed, predicted, ("observed", "predicted"))
    total = np.var(observed, axis=0)
    resid = np.var(observed - predicted, axis=0)
    with np.errstate(divide="ignore", invalid="ignore"):
        ve = 1.0 - resid / total
    ve[total == 0] = np.nan
    return ve


def fitted_r_squared(observed: np.ndarray, fitted: np.ndarray) -> float:
    """Regression R² as model sum of squares over total sum of squares.

    For an OLS fit with an intercept this equals ``variance_explained``.
    """
    observed, fitted = _pair(observed, fitted)
    tss = np.sum((observed - observed.mean()) ** 2)
    if tss == 0:
        return float("nan")
    mss = np.sum((fitted - fitted.mean()) ** 2)
    return float(mss / tss)


@dataclass(frozen=True)
class LinearFit:
    """Simple regression ``y ≈ intercept + slope · x``."""

    intercept: float
    slope: float
    fitted: np.ndarray

    @property
    def coefficients(self) -> tuple[float, float]:
        return self.intercept, self.slope


def linear_fit(x, y) -> LinearFit:
    """Ordinary least-squares line through ``(x, y)``.

    Raises
    ------
    DimensionMismatch
        If ``x`` and ``y`` are not 1-D of equal length.
    InvalidConfiguration
        If fewer than two points are given or ``x`` is constant.
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if x.ndim != 1 or x.shape != y.shape:
        raise DimensionMismatch(f"x and y must be 1-D of equal length, got {x.shape}, {y.shape}")
    if x.size < 2 or np.ptp(x) == 0:
        raise InvalidConfiguration("linear_fit needs at least two distinct x values")
    design = np.column_stack([np.ones_like(x), x])
    coef, *_ = np.linalg.lstsq(design, y, rcond=None)
    return LinearFit(intercept=float(coef[0]), slope=float(coef[1]), fitted=design @ coef)


def cross_validated_variance_explained(
    design: np.ndarray,
    responses: np.ndarray,
    cv_splits: Iterable[tuple[np.ndarray, np.ndarray]],
) -> dict:
    """Fit on each training fold and score the held-out fold.

    Parameters
    ----------
    design : np.ndarray, shape (T, C)
        Channel responses per trial.
    responses : np.ndarray, shape (T, M)
        Observed responses.
    cv_splits : iterable
        ``(train_idx, test_idx)`` pairs, e.g. from ``generate_cv_splits``.

    Returns
    -------
    dict with keys:
        'fold_ve': np.ndarray (K,) — pooled variance explained per test fold
        'fold_mse': np.ndarray (K,) — MSE per test fold
        'yhat': np.ndarray (T, M) — held-out predictions, combined across folds
        'mean_ve': float — mean of fold_ve
        'pooled_ve': float — variance explained of ``yhat`` against all data
    """
    design = as_matrix(design, "design")
    responses = as_matrix(responses, "responses")
    check_axis(design, 0, responses, 0, ("design", "responses"))

    yhat = np.full_like(responses, np.nan)
    fold_ve = []
    fold_mse = []
    for fold_num, (train_idx, test_idx) in enumerate(cv_splits):
        logger.info("CV fold %d: train=%d, test=%d", fold_num + 1, len(train_idx), len(test_idx))
        model = LeastSquaresEncodingModel().fit(design[train_idx], responses[train_idx])
        yhat[test_idx] = model.predict(design[test_idx])
        fold_ve.append(variance_explained(responses[test_idx], yhat[test_idx]))
        fold_mse.append(mean_squared_error(responses[test_idx], yhat[test_idx]))

    if not fold_ve:
        raise InvalidConfiguration("cv_splits yielded no folds")

    covered = ~np.isnan(yhat).any(axis=1)
    result = {
        "fold_ve": np.array(fold_ve),
        "fold_mse": np.array(fold_mse),
        "yhat": yhat,
        "mean_ve": float(np.mean(fold_ve)),
        "pooled_ve": variance_explained(responses[covered], yhat[covered]),
    }
    logger.info(
        "CV complete: mean variance explained = %.4f ± %.4f",
        result["mean_ve"],
        float(np.std(fold_ve)),
    )
    return result
