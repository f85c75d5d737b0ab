"""Tests for the configuration schema and loader (config.py)."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

import iem_encoder
from iem_encoder.config import SimulationConfig, apply_overrides, config_to_yaml, load_config

CONFIG_DIR = Path(iem_encoder.__file__).parent / "configs"


class TestSimulationConfig:
    def test_defaults_describe_orientation_setup(self):
        cfg = SimulationConfig()
        assert cfg.stimulus.n_stimuli == 180
        assert cfg.stimulus.trials_per_stimulus == 20
        assert cfg.channels.n_channels == 8
        assert cfg.channels.exponent == 7
        assert cfg.population.n_voxels == 50
        assert cfg.noise.train_sd == 0.05
        assert cfg.noise.effective_test_sd == 0.05

    def test_odd_stimulus_space_rejected(self):
        with pytest.raises(ValidationError, match="even"):
            SimulationConfig(stimulus={"n_stimuli": 179})

    @pytest.mark.parametrize(
        "section, values",
        [
            ("channels", {"n_channels": 0}),
            ("population", {"n_voxels": -1}),
            ("noise", {"train_sd": -0.1}),
            ("population", {"generator": "gabors"}),
        ],
    )
    def test_invalid_values_rejected(self, section, values):
        with pytest.raises(ValidationError):
            SimulationConfig(**{section: values})

    def test_reweight_weights_length_checked(self):
        with pytest.raises(ValidationError, match="reweight_weights"):
            SimulationConfig(decode={"reweight": True, "reweight_weights": [1.0, 0.5]})

    def test_test_sd_override(self):
        cfg = SimulationConfig(noise={"train_sd": 0.1, "test_sd": 0.3})
        assert cfg.noise.effective_test_sd == 0.3

    def test_group_folds_limited_by_repeats(self):
        with pytest.raises(ValidationError, match="n_folds"):
            SimulationConfig(
                stimulus={"n_stimuli": 36, "trials_per_stimulus": 3},
                cv={"scheme": "group", "n_folds": 5},
            )
        cfg = SimulationConfig(
            stimulus={"n_stimuli": 36, "trials_per_stimulus": 5},
            cv={"scheme": "group", "n_folds": 5},
        )
        assert cfg.cv.n_folds == 5


class TestApplyOverrides:
    def test_dotted_keys(self):
        base = SimulationConfig()
        cfg = apply_overrides(base, {"seed": 7, "noise.train_sd": 0.4, "decode.reweight": True})
        assert cfg.seed == 7
        assert cfg.noise.train_sd == 0.4
        assert cfg.decode.reweight is True
        assert base.seed == 42

    @pytest.mark.parametrize(
        "overrides",
        [
            {"noise.train_sd": -1.0},
            {"noise.test_sd": -0.5},
            {"stimulus.n_stimuli": 35},
            {"cv.scheme": "group", "cv.n_folds": 30},
        ],
    )
    def test_invalid_override_rejected(self, overrides):
        with pytest.raises(ValidationError):
            apply_overrides(SimulationConfig(), overrides)


class TestLoadConfig:
    @pytest.mark.parametrize("name", ["orientation_8ch.yaml", "neurons_high_noise.yaml"])
    def test_bundled_configs_load(self, name):
        cfg = load_config(CONFIG_DIR / name)
        assert cfg.stimulus.n_stimuli == 180

    def test_partial_file_uses_defaults(self, tmp_path):
        path = tmp_path / "cfg.yaml"
        path.write_text("seed: 3\nnoise:\n  train_sd: 0.2\n")
        cfg = load_config(path)
        assert cfg.seed == 3
        assert cfg.noise.train_sd == 0.2
        assert cfg.channels.n_channels == 8

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == SimulationConfig()

    def test_yaml_dump_reloads(self, tmp_path):
        cfg = SimulationConfig(seed=11, decode={"reweight": True})
        path = tmp_path / "dump.yaml"
        path.write_text(config_to_yaml(cfg))
        assert load_config(path) == cfg
        assert yaml.safe_load(config_to_yaml(cfg))["seed"] == 11
