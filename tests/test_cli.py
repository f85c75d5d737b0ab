"""Tests for the Typer CLI (cli/main.py)."""

from __future__ import annotations

from typer.testing import CliRunner

from iem_encoder.cli.main import app

runner = CliRunner()

SMALL_CONFIG = """\
seed: 1
stimulus:
  n_stimuli: 36
  trials_per_stimulus: 4
population:
  n_voxels: 20
cv:
  scheme: kfold
  n_folds: 2
"""


class TestCli:
    def test_show_config_defaults(self):
        result = runner.invoke(app, ["show-config"])
        assert result.exit_code == 0
        assert "n_stimuli: 180" in result.output

    def test_dry_run(self):
        result = runner.invoke(app, ["simulate", "--dry-run", "--noise-sd", "0.3"])
        assert result.exit_code == 0
        assert "Config validated" in result.output
        assert "train=0.3" in result.output

    def test_simulate_prints_scores(self, tmp_path):
        path = tmp_path / "small.yaml"
        path.write_text(SMALL_CONFIG)
        result = runner.invoke(app, ["simulate", "--config", str(path)])
        assert result.exit_code == 0, result.output
        assert "train_variance_explained" in result.output
        assert "Simulation complete" in result.output

    def test_invalid_config_fails(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("stimulus:\n  n_stimuli: 35\n")
        result = runner.invoke(app, ["simulate", "--config", str(path)])
        assert result.exit_code != 0

    def test_dry_run_rejects_negative_noise(self):
        result = runner.invoke(app, ["simulate", "--dry-run", "--noise-sd", "-1"])
        assert result.exit_code != 0
        assert "Config validated" not in result.output
        assert "Invalid configuration" in result.output

    def test_seed_and_reweight_overrides(self, tmp_path):
        path = tmp_path / "small.yaml"
        path.write_text(SMALL_CONFIG)
        result = runner.invoke(
            app, ["simulate", "--config", str(path), "--seed", "5", "--reweight"]
        )
        assert result.exit_code == 0, result.output
        assert "seed=5" in result.output
        result = runner.invoke(
            app, ["simulate", "--config", str(path), "--seed", "5", "--no-reweight", "--dry-run"]
        )
        assert result.exit_code == 0, result.output
        assert "Seed: 5, reweight=False" in result.output
