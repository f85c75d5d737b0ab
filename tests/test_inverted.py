"""Tests for point-estimate inversion (inverted.py).

Key properties:
  - noiseless data: Y @ pinv(W) recovers the design matrix exactly
  - reweighting the basis changes the recovered channel profile
    (by exactly the transform) but not the variance explained
"""

from __future__ import annotations

import numpy as np
import pytest

from iem_encoder.decode.inverted import center_channel_responses, estimate_channel_responses
from iem_encoder.errors import DimensionMismatch, NumericalInstability
from iem_encoder.eval.metrics import variance_explained
from iem_encoder.models.least_squares import fit_encoding_weights, predict_responses
from iem_encoder.stimuli.simulate import build_design_matrix
from iem_encoder.stimuli.tuning import cyclic_shift_transform, reweight_basis


class TestEstimateChannelResponses:
    def test_noiseless_recovers_design(self, basis, subject, stimuli, rng):
        Y = subject.respond(stimuli, 0.0, rng)
        X = build_design_matrix(basis, stimuli)
        fit = fit_encoding_weights(X, Y)
        np.testing.assert_allclose(estimate_channel_responses(Y, fit.weights), X, atol=1e-8)

    def test_shape(self, rng):
        C_hat = estimate_channel_responses(rng.random((12, 50)), rng.random((8, 50)))
        assert C_hat.shape == (12, 8)

    def test_dimension_mismatch(self, rng):
        with pytest.raises(DimensionMismatch):
            estimate_channel_responses(rng.random((12, 49)), rng.random((8, 50)))

    def test_rank_deficient_weights_warn(self, rng):
        W = rng.random((3, 20))
        W = np.vstack([W, W[0]])
        with pytest.warns(NumericalInstability, match="rank"):
            estimate_channel_responses(rng.random((5, 20)), W)


class TestBasisDependence:
    @pytest.fixture()
    def fits(self, basis, subject, stimuli, rng):
        train = subject.respond(stimuli, 0.1, rng)
        test = subject.respond(stimuli, 0.1, rng)
        transform = cyclic_shift_transform(8)
        out = {}
        for name, b in [("original", basis), ("reweighted", reweight_basis(basis, transform))]:
            fit = fit_encoding_weights(build_design_matrix(b, stimuli), train)
            out[name] = {
                "channels": estimate_channel_responses(test, fit.weights),
                "ve": variance_explained(test, predict_responses(build_design_matrix(b, stimuli), fit.weights)),
            }
        return out, transform

    def test_variance_explained_unchanged(self, fits):
        out, _ = fits
        assert out["original"]["ve"] == pytest.approx(out["reweighted"]["ve"], abs=1e-10)

    def test_channel_profile_changes_by_transform(self, fits):
        out, transform = fits
        original = out["original"]["channels"]
        reweighted = out["reweighted"]["channels"]
        assert not np.allclose(original, reweighted, atol=1e-3)
        np.testing.assert_allclose(reweighted, original @ transform.T, atol=1e-8)


class TestCenterChannelResponses:
    def test_peak_moves_to_center(self, basis, preferred):
        stim = np.asarray(preferred)
        X = build_design_matrix(basis, stim)
        centered = center_channel_responses(X, stim, preferred, 180)
        np.testing.assert_array_equal(centered.argmax(axis=1), 4)

    def test_wraps_to_nearest_channel(self, basis, preferred):
        # 178 is nearer channel 0 (pref 0) than channel 7 (pref 158)
        X = build_design_matrix(basis, [178])
        centered = center_channel_responses(X, [178], preferred, 180)
        np.testing.assert_array_equal(centered[0], np.roll(X[0], 4))

    def test_length_mismatch(self, basis, preferred):
        X = build_design_matrix(basis, [0, 1])
        with pytest.raises(DimensionMismatch):
            center_channel_responses(X, [0], preferred, 180)
        with pytest.raises(DimensionMismatch):
            center_channel_responses(X, [0, 1], preferred[:7], 180)
