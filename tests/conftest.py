"""Shared pytest fixtures for iem_encoder tests."""

from __future__ import annotations

import numpy as np
import pytest

from iem_encoder.stimuli.simulate import SimulatedSubject, make_stimulus_sequence
from iem_encoder.stimuli.tuning import build_channel_basis, evenly_spaced_preferences


@pytest.fixture()
def rng():
    """Deterministic random generator."""
    return np.random.default_rng(42)


@pytest.fixture()
def preferred():
    """Eight evenly spaced channel preferences over 180 orientations."""
    return evenly_spaced_preferences(8, 180)


@pytest.fixture()
def basis(preferred):
    """Standard orientation channel basis: 8 channels, exponent 7, 180 orientations."""
    return build_channel_basis(8, 180, 7, preferred)


@pytest.fixture()
def subject(basis, rng):
    """Simulated subject whose voxels mix the channel basis, 50 voxels."""
    return SimulatedSubject.draw(basis, 50, rng)


@pytest.fixture()
def stimuli():
    """Every orientation, 5 repeats (small for speed)."""
    return make_stimulus_sequence(180, 5)
