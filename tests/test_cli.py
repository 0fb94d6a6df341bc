"""
Tests for the command line interface.
"""

import json
import os
import sys

import pytest
from click.testing import CliRunner
from loguru import logger

from dentalneat.cli import cli
from dentalneat.config import NEATConfig


@pytest.fixture(autouse=True)
def restore_logging(monkeypatch):
    """Keep CLI runs from leaving sinks bound to closed streams."""
    for key in list(os.environ):
        if key.startswith("DENTALNEAT_"):
            monkeypatch.delenv(key)
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def runner():
    return CliRunner()


class TestConfigCommand:
    """Test the config command."""

    def test_prints_defaults(self, runner):
        """Without a file the default configuration is printed."""
        result = runner.invoke(cli, ["config"])

        assert result.exit_code == 0
        assert "population_size: 50" in result.output
        assert "max_stagnation: 15" in result.output

    def test_writes_file(self, runner, temp_dir):
        """--output writes a loadable YAML file."""
        path = temp_dir / "out.yaml"

        result = runner.invoke(cli, ["config", "--output", str(path)])

        assert result.exit_code == 0
        assert NEATConfig.from_yaml(path) == NEATConfig()

    def test_reads_config_file(self, runner, temp_dir):
        """--config is applied before printing."""
        path = temp_dir / "custom.yaml"
        NEATConfig(population_size=7).to_yaml(path)

        result = runner.invoke(cli, ["--config", str(path), "config"])

        assert result.exit_code == 0
        assert "population_size: 7" in result.output


class TestRunCommand:
    """Test the run command."""

    def test_small_run(self, runner, temp_dir):
        """A short run reports the best genome and exports its history."""
        history_path = temp_dir / "history.json"

        result = runner.invoke(cli, [
            "run",
            "--generations", "2",
            "--population", "6",
            "--input-size", "3",
            "--output-size", "2",
            "--seed", "1",
            "--delay", "0",
            "--export-history", str(history_path),
        ])

        assert result.exit_code == 0, result.output
        assert "Best genome:" in result.output
        assert "Fitness:" in result.output

        data = json.loads(history_path.read_text())
        assert data["summary"]["total_generations"] == 2

    def test_run_with_config_file(self, runner, temp_dir):
        """Settings from --config are used by run."""
        path = temp_dir / "run.yaml"
        NEATConfig(population_size=4, input_size=2, output_size=1).to_yaml(path)

        result = runner.invoke(cli, [
            "--config", str(path),
            "run", "--generations", "1", "--delay", "0",
        ])

        assert result.exit_code == 0, result.output
        assert "Architecture: 2:linear -> 1:softmax" in result.output

    def test_invalid_population(self, runner):
        """Invalid settings exit with status 1."""
        result = runner.invoke(cli, ["run", "--population", "0", "--generations", "1"])

        assert result.exit_code == 1
