"""
iem_encoder
===========

Forward encoding models and inverted encoding models (IEM) for simulated
orientation-tuned neural and voxel populations.

Design Principles:
    - Pure functions over explicit arrays: no shared workspace between stages
    - One fixed orientation convention per matrix, enforced by shape checks
    - Injected ``numpy.random.Generator`` everywhere randomness is consumed
    - Config-driven entry point (YAML → pydantic) for the CLI only

Data Flow::

    tuning  ──► simulate ──► fit (W) ──► evaluate (variance explained, MSE)
                                   └───► decode (channel responses, likelihood)

Package Layout::

    cli/          Typer CLI commands (simulate, show-config)
    decode/       Point-estimate inversion and Bayesian stimulus likelihood
    eval/         Variance explained, MSE, cross-validation splits
    models/       Least-squares encoding model
    stimuli/      Tuning kernels, channel bases, response simulation
    utils/        Logging, shape checks
"""

__version__ = "0.1.0"

from iem_encoder.errors import (
    DimensionMismatch,
    IEMError,
    InvalidConfiguration,
    NumericalInstability,
)

__all__ = [
    "DimensionMismatch",
    "IEMError",
    "InvalidConfiguration",
    "NumericalInstability",
    "__version__",
]
