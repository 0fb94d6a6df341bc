"""
Pytest configuration and shared fixtures for DentalNEAT tests.

This module provides reusable test fixtures for:
- Temporary directories
- Small engine configurations
- Seeded random sources and innovation trackers
- Hand-built genomes with chosen connection genes
"""

import random
import tempfile
from pathlib import Path

import pytest

from dentalneat.config import EngineSettings, MutationRates, NEATConfig
from dentalneat.genome.encoding import (
    Architecture,
    ConnectionGene,
    Genome,
    Layer,
    LayerRole,
    create_minimal_genome,
)
from dentalneat.genome.innovation import InnovationTracker


# ============================================================================
# Directory Fixtures
# ============================================================================

@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ============================================================================
# Configuration Fixtures
# ============================================================================

@pytest.fixture
def small_config():
    """Small, seeded engine configuration that runs quickly."""
    return NEATConfig(
        population_size=10,
        input_size=4,
        output_size=2,
        max_hidden_layers=3,
        max_units_per_layer=16,
        engine=EngineSettings(seed=42, generation_delay=0.0),
    )


@pytest.fixture
def zero_rates():
    """Mutation rates that never fire."""
    return MutationRates(
        add_node=0.0,
        add_connection=0.0,
        remove_node=0.0,
        remove_connection=0.0,
        mutate_weights=0.0,
        mutate_activation=0.0,
        mutate_learning_rate=0.0,
    )


@pytest.fixture
def full_rates():
    """Mutation rates that always fire."""
    return MutationRates(
        add_node=1.0,
        add_connection=1.0,
        remove_node=1.0,
        remove_connection=1.0,
        mutate_weights=1.0,
        mutate_activation=1.0,
        mutate_learning_rate=1.0,
    )


# ============================================================================
# Genome Fixtures
# ============================================================================

@pytest.fixture
def rng():
    """Seeded random source."""
    return random.Random(1234)


@pytest.fixture
def tracker():
    """Fresh innovation tracker."""
    return InnovationTracker()


@pytest.fixture
def minimal_genome(tracker, rng):
    """Minimal 4-input, 2-output genome."""
    return create_minimal_genome(4, 2, tracker, rng=rng)


@pytest.fixture
def build_genome():
    """
    Factory for genomes with hand-chosen connection genes.

    ``genes`` is a list of (innovation, weight) pairs; every gene connects
    ``input_0`` to ``output_0``. ``hidden`` adds that many 8-unit hidden
    layers named ``hidden_0``, ``hidden_1``, ...
    """
    def _build(genes=(), hidden=0, fitness=0.0):
        layers = [Layer(id="input", role=LayerRole.INPUT, units=4)]
        layers.extend(
            Layer(id=f"hidden_{k}", role=LayerRole.HIDDEN, units=8, activation="relu")
            for k in range(hidden)
        )
        layers.append(Layer(id="output", role=LayerRole.OUTPUT, units=2, activation="softmax"))

        connections = [
            ConnectionGene(source="input_0", target="output_0", weight=weight, innovation=innovation)
            for innovation, weight in genes
        ]

        return Genome(
            architecture=Architecture(layers=layers, connections=connections),
            fitness=fitness,
        )

    return _build


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
