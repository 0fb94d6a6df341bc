"""
DentalNEAT Genome System

Genetic encoding of feed-forward architectures and the NEAT machinery that
evolves them: innovation tracking, compatibility distance, speciation,
mutation, crossover and reproduction.
"""

# Core encoding
from .encoding import (
    ACTIVATION_FUNCTIONS,
    LOSS_FUNCTIONS,
    OPTIMIZERS,
    Architecture,
    ConnectionGene,
    Genome,
    Layer,
    LayerRole,
    create_minimal_genome,
)

# Innovation tracking and distance
from .innovation import InnovationTracker
from .distance import compatibility_distance, count_gene_alignment

# Speciation
from .species import Species, SpeciationManager

# Evolution operators
from .operators import (
    CrossoverOperator,
    MutationOperator,
    MutationType,
)

# Reproduction
from .population import (
    PopulationStatistics,
    Reproduction,
    compute_statistics,
)

# Fitness evaluation
from .fitness import (
    BatchFitnessOracle,
    ComplexityPenaltyEvaluator,
    EvaluationError,
    EvaluationResult,
    FitnessOracle,
    PopulationEvaluator,
)

# Evolution history
from .history import (
    EvolutionHistory,
    GenerationRecord,
    GenomeLineage,
)

__all__ = [
    # Encoding
    "ACTIVATION_FUNCTIONS",
    "OPTIMIZERS",
    "LOSS_FUNCTIONS",
    "Architecture",
    "ConnectionGene",
    "Genome",
    "Layer",
    "LayerRole",
    "create_minimal_genome",
    # Innovation / distance
    "InnovationTracker",
    "compatibility_distance",
    "count_gene_alignment",
    # Speciation
    "Species",
    "SpeciationManager",
    # Operators
    "CrossoverOperator",
    "MutationOperator",
    "MutationType",
    # Reproduction
    "PopulationStatistics",
    "Reproduction",
    "compute_statistics",
    # Fitness
    "BatchFitnessOracle",
    "ComplexityPenaltyEvaluator",
    "EvaluationError",
    "EvaluationResult",
    "FitnessOracle",
    "PopulationEvaluator",
    # History
    "EvolutionHistory",
    "GenerationRecord",
    "GenomeLineage",
]
