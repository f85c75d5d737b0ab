"""
Configuration Schema and Loader
===============================

Pydantic-based configuration schema for a simulated encoding/decoding run.
Core functions take explicit arguments; this schema is only consumed by the
pipeline and the CLI.

Design Principles:
    - Single source of truth for every simulation parameter
    - Pydantic validation catches typos and impossible values before any
      computation (odd stimulus space, zero channels, negative noise)
    - Defaults describe the standard orientation setup: 180 orientations,
      8 channels with exponent 7, 20 repeats, 50 voxels, noise 0.05

Configuration Hierarchy::

    SimulationConfig
    ├── StimulusConfig     Stimulus space size and repeats
    ├── ChannelConfig      Channel basis used to fit the model
    ├── PopulationConfig   Generating population and voxel count
    ├── NoiseConfig        Train / test noise levels
    ├── DecodeConfig       Optional basis reweighting before fitting
    └── CVConfig           Cross-validation scheme and folds
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


# ---------------------------------------------------------------------------
# Schema sections
# ---------------------------------------------------------------------------


class StimulusConfig(BaseModel):
    """Discretised stimulus space and trial structure."""

    n_stimuli: int = Field(
        default=180,
        gt=0,
        description="Number of stimulus labels (180 for 1° orientation steps). Must be even.",
    )
    trials_per_stimulus: int = Field(
        default=20, gt=0, description="Repeats of every label in each simulated set"
    )
    shuffle: bool = Field(
        default=False, description="Shuffle trial order instead of blocking by repeat"
    )

    @field_validator("n_stimuli")
    @classmethod
    def _even(cls, v: int) -> int:
        if v % 2 != 0:
            raise ValueError("n_stimuli must be even for the periodic angle mapping")
        return v


class ChannelConfig(BaseModel):
    """Channel basis used by the encoding model."""

    n_channels: int = Field(default=8, gt=0, description="Number of basis channels")
    exponent: float = Field(
        default=7, gt=0, description="Power applied to the rectified cosine"
    )


class PopulationConfig(BaseModel):
    """Generating population and measurement channels."""

    generator: Literal["channels", "neurons"] = Field(
        default="channels",
        description=(
            "'channels': voxels mix the channel basis itself. "
            "'neurons': voxels mix a Von Mises neuron population."
        ),
    )
    n_neurons: int = Field(
        default=180, gt=0, description="Neurons in the Von Mises population"
    )
    concentration: float = Field(
        default=2.0, gt=0, description="Von Mises concentration of neuron tuning"
    )
    n_voxels: int = Field(default=50, gt=0, description="Measurement channels (voxels)")


class NoiseConfig(BaseModel):
    """Additive Gaussian noise levels."""

    train_sd: float = Field(default=0.05, ge=0, description="Noise SD on training data")
    test_sd: Optional[float] = Field(
        default=None, ge=0, description="Noise SD on held-out data (defaults to train_sd)"
    )

    @property
    def effective_test_sd(self) -> float:
        return self.train_sd if self.test_sd is None else self.test_sd


class DecodeConfig(BaseModel):
    """Decoder settings."""

    reweight: bool = Field(
        default=False,
        description="Fit with a cyclically reweighted (bimodal) channel basis",
    )
    reweight_weights: Optional[list[float]] = Field(
        default=None,
        description="First row of the circulant transform; default 1 own, 0.5 opposite",
    )


class CVConfig(BaseModel):
    """Cross-validation settings."""

    scheme: Literal["kfold", "block", "group"] = Field(default="block")
    n_folds: int = Field(default=5, ge=2, description="Number of CV folds")
    seed: int = Field(default=42, description="Shuffle seed for 'kfold'")


class SimulationConfig(BaseModel):
    """Top-level simulation configuration."""

    seed: int = Field(default=42, description="Seed for the numpy Generator")
    stimulus: StimulusConfig = Field(default_factory=StimulusConfig)
    channels: ChannelConfig = Field(default_factory=ChannelConfig)
    population: PopulationConfig = Field(default_factory=PopulationConfig)
    noise: NoiseConfig = Field(default_factory=NoiseConfig)
    decode: DecodeConfig = Field(default_factory=DecodeConfig)
    cv: CVConfig = Field(default_factory=CVConfig)

    @model_validator(mode="after")
    def _check_reweight_length(self) -> "SimulationConfig":
        w = self.decode.reweight_weights
        if w is not None and len(w) != self.channels.n_channels:
            raise ValueError(
                f"decode.reweight_weights has {len(w)} entries, "
                f"expected channels.n_channels={self.channels.n_channels}"
            )
        return self

    @model_validator(mode="after")
    def _check_group_folds(self) -> "SimulationConfig":
        # the pipeline groups trials by repeat index: one group per repeat
        if self.cv.scheme == "group" and self.cv.n_folds > self.stimulus.trials_per_stimulus:
            raise ValueError(
                f"cv.n_folds={self.cv.n_folds} exceeds the "
                f"{self.stimulus.trials_per_stimulus} repeat groups available "
                "to scheme='group' (stimulus.trials_per_stimulus)"
            )
        return self


# ---------------------------------------------------------------------------
# Loading helpers
# ---------------------------------------------------------------------------


def load_config(path: str | Path) -> SimulationConfig:
    """Load and validate a YAML config file.

    Parameters
    ----------
    path : str | Path
        Path to YAML config file.

    Returns
    -------
    SimulationConfig
        Validated configuration object.
    """
    path = Path(path)
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    return SimulationConfig(**raw)


def config_to_yaml(cfg: SimulationConfig) -> str:
    """Render a config as YAML text."""
    data: dict[str, Any] = json.loads(cfg.model_dump_json())
    return yaml.dump(data, default_flow_style=False, sort_keys=False)


def apply_overrides(cfg: SimulationConfig, overrides: dict[str, Any]) -> SimulationConfig:
    """Return a re-validated copy of ``cfg`` with dotted-key overrides applied.

    Parameters
    ----------
    cfg : SimulationConfig
        Base configuration.
    overrides : dict
        Values keyed by dotted path, e.g. ``{"noise.train_sd": 0.5}``.

    Returns
    -------
    SimulationConfig
        New validated configuration; ``cfg`` is left untouched.

    Raises
    ------
    pydantic.ValidationError
        If an override produces an invalid configuration.
    """
    data = cfg.model_dump()
    for key, value in overrides.items():
        *parents, leaf = key.split(".")
        section = data
        for part in parents:
            section = section[part]
        section[leaf] = value
    return SimulationConfig.model_validate(data)
