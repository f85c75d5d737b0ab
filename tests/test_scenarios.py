"""End-to-end scenarios on the standard orientation setup.

180 orientations, 8 rectified-cosine channels (exponent 7) at
0, 22, 45, 68, 90, 112, 135, 158, 20 trials per orientation, 50 voxels
mixing the channels with weights from a fixed seed.
"""

from __future__ import annotations

import numpy as np
import pytest

from iem_encoder.decode.likelihood import (
    circular_spread,
    fit_noise_covariance,
    mean_centered_likelihood,
    stimulus_likelihood,
)
from iem_encoder.eval.metrics import variance_explained
from iem_encoder.models.least_squares import fit_encoding_weights, predict_responses
from iem_encoder.stimuli.simulate import (
    SimulatedSubject,
    build_design_matrix,
    make_stimulus_sequence,
)
from iem_encoder.stimuli.tuning import build_neuron_tuning


def _run(basis, noise_sd, seed=2024, tuning=None):
    rng = np.random.default_rng(seed)
    subject = SimulatedSubject.draw(basis if tuning is None else tuning, 50, rng)
    stimuli = make_stimulus_sequence(180, 20)
    train = subject.respond(stimuli, noise_sd, rng)
    X = build_design_matrix(basis, stimuli)
    fit = fit_encoding_weights(X, train)
    return stimuli, subject, train, X, fit, rng


class TestNoiselessReconstruction:
    def test_channel_generated_data_fit_exactly(self, basis):
        _, _, train, X, fit, _ = _run(basis, 0.0)
        assert variance_explained(train, predict_responses(X, fit.weights)) == pytest.approx(1.0, abs=1e-10)

    def test_neuron_generated_data_not_fit_exactly(self, basis):
        """Eight channels cannot span a 180-neuron Von Mises population."""
        tuning = build_neuron_tuning(180, 180, 2.0)
        _, _, train, X, fit, _ = _run(basis, 0.0, tuning=tuning)
        assert variance_explained(train, predict_responses(X, fit.weights)) < 0.99999


class TestNoiseLevels:
    @pytest.fixture()
    def decoded(self, basis):
        out = {}
        for noise_sd in (0.05, 0.5):
            stimuli, subject, train, X, fit, rng = _run(basis, noise_sd)
            test = subject.respond(stimuli, noise_sd, rng)
            noise = fit_noise_covariance(test, predict_responses(X, fit.weights))
            # repeats of a single orientation
            idx = np.flatnonzero(stimuli == 60)
            log_lik = stimulus_likelihood(test[idx], fit.weights, basis, noise, log=True)
            out[noise_sd] = {
                "ve": variance_explained(train, predict_responses(X, fit.weights)),
                "spread": circular_spread(mean_centered_likelihood(log_lik, stimuli[idx], log=True)),
            }
        return out

    def test_low_noise_variance_explained(self, decoded):
        assert decoded[0.05]["ve"] > 0.8

    def test_high_noise_variance_explained_drops(self, decoded):
        assert decoded[0.5]["ve"] < decoded[0.05]["ve"] - 0.2

    def test_high_noise_likelihood_broader(self, decoded):
        assert decoded[0.5]["spread"] > decoded[0.05]["spread"]
