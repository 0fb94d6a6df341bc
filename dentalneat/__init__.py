"""
DentalNEAT - Structural Neuroevolution Engine

NEAT-style evolution of feed-forward network architectures with speciation,
innovation-aligned crossover and a pluggable fitness oracle.
"""

# Genome system
from dentalneat.genome import (
    Architecture,
    ConnectionGene,
    Genome,
    Layer,
    LayerRole,
    create_minimal_genome,
    InnovationTracker,
    SpeciationManager,
    Species,
    MutationOperator,
    CrossoverOperator,
    Reproduction,
    FitnessOracle,
    ComplexityPenaltyEvaluator,
    EvolutionHistory,
)

# Configuration
from dentalneat.config import (
    NEATConfig,
    MutationRates,
    CompatibilityConfig,
    StagnationConfig,
    CrossoverSettings,
    EngineSettings,
    load_config,
)

# Engine
from dentalneat.engine import EngineState, NEATEngine
from dentalneat.events import EventBus, EventType, NEATEvent
from dentalneat.runner import EvolutionRunner

__all__ = [
    # Genome system
    "Architecture",
    "ConnectionGene",
    "Genome",
    "Layer",
    "LayerRole",
    "create_minimal_genome",
    "InnovationTracker",
    "SpeciationManager",
    "Species",
    "MutationOperator",
    "CrossoverOperator",
    "Reproduction",
    "FitnessOracle",
    "ComplexityPenaltyEvaluator",
    "EvolutionHistory",
    # Configuration
    "NEATConfig",
    "MutationRates",
    "CompatibilityConfig",
    "StagnationConfig",
    "CrossoverSettings",
    "EngineSettings",
    "load_config",
    # Engine
    "EngineState",
    "NEATEngine",
    "EventBus",
    "EventType",
    "NEATEvent",
    "EvolutionRunner",
]

__version__ = "0.1.0"
