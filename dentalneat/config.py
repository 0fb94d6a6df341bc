"""
DentalNEAT Configuration System

Pydantic v2-based configuration with YAML/JSON support and environment overrides.

Features:
- Type-safe configuration models
- YAML/JSON file loading
- Environment variable overrides
- Validation with defaults
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from loguru import logger


# =============================================================================
# Mutation Rates
# =============================================================================


class MutationRates(BaseModel):
    """Independent probability of each operator firing during one mutation pass."""

    add_node: float = Field(default=0.03, ge=0.0, le=1.0, description="Add hidden layer")
    add_connection: float = Field(default=0.05, ge=0.0, le=1.0, description="Add connection gene")
    remove_node: float = Field(default=0.02, ge=0.0, le=1.0, description="Remove hidden layer")
    remove_connection: float = Field(default=0.02, ge=0.0, le=1.0, description="Remove connection gene")
    mutate_weights: float = Field(default=0.8, ge=0.0, le=1.0, description="Perturb connection weights")
    mutate_activation: float = Field(default=0.1, ge=0.0, le=1.0, description="Reassign activations")
    mutate_learning_rate: float = Field(default=0.1, ge=0.0, le=1.0, description="Scale learning rate")


# =============================================================================
# Speciation
# =============================================================================


class CompatibilityConfig(BaseModel):
    """Coefficients and threshold of the compatibility distance."""

    c1: float = Field(default=1.0, ge=0.0, description="Excess gene coefficient")
    c2: float = Field(default=1.0, ge=0.0, description="Disjoint gene coefficient")
    c3: float = Field(default=0.4, ge=0.0, description="Average weight difference coefficient")
    threshold: float = Field(
        default=3.0,
        gt=0.0,
        description="Genomes closer than this to a representative join its species",
    )


class StagnationConfig(BaseModel):
    """Species stagnation handling."""

    max_stagnation: int = Field(
        default=15,
        ge=1,
        description="Species are removed once this many generations pass without improvement",
    )


# =============================================================================
# Crossover
# =============================================================================


class CrossoverSettings(BaseModel):
    """Crossover behaviour."""

    copy_parent_rate: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Probability the offspring is a verbatim copy of the first parent",
    )
    inherit_connections: bool = Field(
        default=True,
        description="Align and inherit connection genes by innovation number when mixing parents",
    )


# =============================================================================
# Engine
# =============================================================================


class EngineSettings(BaseModel):
    """Generation loop settings."""

    generation_delay: float = Field(
        default=1.0,
        ge=0.0,
        description="Seconds between generations when running continuously",
    )
    evaluation_timeout: float | None = Field(
        default=None,
        gt=0.0,
        description="Per-genome oracle timeout in seconds (None waits indefinitely)",
    )
    seed: int | None = Field(default=None, description="Random seed for reproducible runs")
    max_event_history: int = Field(default=1000, ge=0, description="Events retained by the bus")


# =============================================================================
# Main Configuration
# =============================================================================


class NEATConfig(BaseModel):
    """Main DentalNEAT configuration."""

    # Population
    population_size: int = Field(default=50, ge=1, le=100000, description="Genomes per generation")

    # Architecture bounds
    input_size: int = Field(default=784, ge=1, description="Units in the input layer")
    output_size: int = Field(default=10, ge=1, description="Units in the output layer")
    max_hidden_layers: int = Field(default=5, ge=0, description="Upper bound on hidden layers")
    max_units_per_layer: int = Field(default=512, ge=1, description="Upper bound on units per hidden layer")

    # Components
    mutation_rates: MutationRates = Field(default_factory=MutationRates)
    compatibility: CompatibilityConfig = Field(default_factory=CompatibilityConfig)
    stagnation: StagnationConfig = Field(default_factory=StagnationConfig)
    crossover: CrossoverSettings = Field(default_factory=CrossoverSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)

    # Elitism
    elitism: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Fraction of each species copied unchanged into the next generation",
    )

    @field_validator("input_size", "output_size")
    @classmethod
    def validate_layer_size(cls, v: int) -> int:
        """Keep the minimal fully connected genome within a sane size."""
        if v > 1_000_000:
            raise ValueError(f"layer size {v} is too large")
        return v

    @classmethod
    def from_yaml(cls, path: str | Path) -> NEATConfig:
        """
        Load configuration from YAML file.

        Args:
            path: Path to YAML file

        Returns:
            NEATConfig instance
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}

        logger.info(f"Loaded configuration from {path}")
        return cls(**data)

    @classmethod
    def from_json(cls, path: str | Path) -> NEATConfig:
        """
        Load configuration from JSON file.

        Args:
            path: Path to JSON file

        Returns:
            NEATConfig instance
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r") as f:
            data = json.load(f)

        logger.info(f"Loaded configuration from {path}")
        return cls(**data)

    @classmethod
    def from_env(cls, prefix: str = "DENTALNEAT_") -> NEATConfig:
        """
        Load configuration from environment variables.

        Environment variables should be in the format:
        DENTALNEAT_POPULATION_SIZE=100
        DENTALNEAT_COMPATIBILITY__THRESHOLD=2.5

        Args:
            prefix: Environment variable prefix

        Returns:
            NEATConfig instance
        """
        config_dict: dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(prefix):
                continue

            # Remove prefix and convert to nested dict
            parts = key[len(prefix):].lower().split("__")

            current = config_dict
            for part in parts[:-1]:
                current = current.setdefault(part, {})

            current[parts[-1]] = _parse_env_value(value)

        logger.info(f"Loaded configuration from environment variables (prefix={prefix})")
        return cls(**config_dict)

    def to_yaml(self, path: str | Path) -> None:
        """
        Save configuration to YAML file.

        Args:
            path: Path to YAML file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            yaml.dump(
                self.model_dump(),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

        logger.info(f"Saved configuration to {path}")

    def to_json(self, path: str | Path) -> None:
        """
        Save configuration to JSON file.

        Args:
            path: Path to JSON file
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w") as f:
            json.dump(self.model_dump(), f, indent=2)

        logger.info(f"Saved configuration to {path}")


def _parse_env_value(value: str) -> Any:
    """Interpret an environment string as bool, int, float or leave it as text."""
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if lowered in ("none", "null"):
        return None
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


# =============================================================================
# Configuration Factory
# =============================================================================


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "DENTALNEAT_",
) -> NEATConfig:
    """
    Load configuration with automatic format detection.

    Priority:
    1. Explicit config file (YAML or JSON)
    2. Environment variables
    3. Defaults

    Args:
        config_path: Path to config file (YAML or JSON)
        env_prefix: Environment variable prefix

    Returns:
        NEATConfig instance
    """
    if config_path:
        path = Path(config_path)
        if path.suffix in (".yaml", ".yml"):
            return NEATConfig.from_yaml(path)
        elif path.suffix == ".json":
            return NEATConfig.from_json(path)
        else:
            raise ValueError(f"Unknown config format: {path.suffix}")

    if any(key.startswith(env_prefix) for key in os.environ):
        logger.info("Using configuration from environment variables")
        return NEATConfig.from_env(env_prefix)

    logger.info("Using default configuration")
    return NEATConfig()


__all__ = [
    "MutationRates",
    "CompatibilityConfig",
    "StagnationConfig",
    "CrossoverSettings",
    "EngineSettings",
    "NEATConfig",
    "load_config",
]
