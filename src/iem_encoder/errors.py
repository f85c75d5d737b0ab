"""
Error taxonomy for the encoding/inversion pipeline.

All failures are local and surfaced immediately to the caller:

    InvalidConfiguration   malformed parameters (counts, even-ness, ranges)
    DimensionMismatch      shapes disagree between stages; never broadcast
    NumericalInstability   near-singular pseudo-inverse; emitted as a warning
                           and recorded on the fit result
"""

from __future__ import annotations


class IEMError(Exception):
    """Base class for all iem_encoder errors."""


class InvalidConfiguration(IEMError, ValueError):
    """A parameter is outside its valid domain."""


class DimensionMismatch(IEMError, ValueError):
    """Two matrices that must agree along an axis do not."""


class NumericalInstability(IEMError, RuntimeWarning):
    """A pseudo-inverse was computed from a (near-)singular matrix."""
