"""
Genome Evolution Operators - Mutation & Crossover

This module implements the genetic operators used to evolve architectures:
- Mutation: seven independent structural and parametric operators, each gated
  by its own rate and applied in a fixed order
- Crossover: combine two parents into one offspring
"""

from __future__ import annotations

import random
from enum import Enum

from loguru import logger

from ..config import CrossoverSettings, MutationRates
from .encoding import (
    ACTIVATION_FUNCTIONS,
    MAX_LEARNING_RATE,
    MIN_LEARNING_RATE,
    ConnectionGene,
    Genome,
    Layer,
    LayerRole,
    new_hidden_layer_id,
)
from .innovation import InnovationTracker


# Per-element probabilities and ranges of the parametric operators
WEIGHT_PERTURB_PROBABILITY = 0.1
WEIGHT_PERTURB_RANGE = 0.25
ACTIVATION_SWAP_PROBABILITY = 0.1
LEARNING_RATE_FACTOR_RANGE = (0.9, 1.1)

# Ranges used when creating a hidden layer
MAX_NEW_LAYER_DROPOUT = 0.5
BATCH_NORM_PROBABILITY = 0.3


class MutationType(Enum):
    """Mutation operators in the order they are applied."""

    ADD_NODE = "add_node"
    ADD_CONNECTION = "add_connection"
    REMOVE_NODE = "remove_node"
    REMOVE_CONNECTION = "remove_connection"
    MUTATE_WEIGHTS = "mutate_weights"
    MUTATE_ACTIVATION = "mutate_activation"
    MUTATE_LEARNING_RATE = "mutate_learning_rate"


# =============================================================================
# Mutation Operators
# =============================================================================


class MutationOperator:
    """Applies structural and parametric mutations to genomes."""

    def __init__(
        self,
        rates: MutationRates | None = None,
        innovation_tracker: InnovationTracker | None = None,
        max_hidden_layers: int = 5,
        max_units_per_layer: int = 512,
        rng: random.Random | None = None,
    ):
        """
        Initialize mutation operator.

        Args:
            rates: Per-operator firing probabilities (uses defaults if None)
            innovation_tracker: Counter that stamps new connections
            max_hidden_layers: Add-node is a no-op at this many hidden layers
            max_units_per_layer: Upper bound for a new layer's unit count
            rng: Random source (a fresh one if None)
        """
        self.rates = rates or MutationRates()
        self.innovation_tracker = innovation_tracker or InnovationTracker()
        self.max_hidden_layers = max_hidden_layers
        self.max_units_per_layer = max_units_per_layer
        self.rng = rng or random.Random()

        self._operators = {
            MutationType.ADD_NODE: self.add_node,
            MutationType.ADD_CONNECTION: self.add_connection,
            MutationType.REMOVE_NODE: self.remove_node,
            MutationType.REMOVE_CONNECTION: self.remove_connection,
            MutationType.MUTATE_WEIGHTS: self.mutate_weights,
            MutationType.MUTATE_ACTIVATION: self.mutate_activation,
            MutationType.MUTATE_LEARNING_RATE: self.mutate_learning_rate,
        }

    def mutate(self, genome: Genome, generation: int = 0) -> Genome:
        """
        Clone a genome and apply one gated mutation pass to the clone.

        Args:
            genome: Genome to mutate (left untouched)
            generation: Generation the child belongs to

        Returns:
            Mutated child genome
        """
        child = genome.clone(prefix="mutated")
        child.generation = generation

        applied = self.apply(child)

        logger.debug(
            "Genome mutated",
            parent_id=genome.genome_id,
            child_id=child.genome_id,
            generation=generation,
            mutations=[m.value for m in applied],
        )

        return child

    def apply(self, genome: Genome) -> list[MutationType]:
        """Apply the gated pass in place; returns the operators whose draw fired."""
        applied = []
        for mutation_type, operator in self._operators.items():
            rate = getattr(self.rates, mutation_type.value)
            if self.rng.random() < rate:
                operator(genome)
                applied.append(mutation_type)
        return applied

    def add_node(self, genome: Genome) -> None:
        """Insert a random hidden layer somewhere after the input layer."""
        layers = genome.architecture.layers

        if len(genome.architecture.hidden_layers) >= self.max_hidden_layers:
            logger.debug("Cannot add node: max hidden layers reached")
            return

        new_layer = Layer(
            id=new_hidden_layer_id(),
            role=LayerRole.HIDDEN,
            units=self.rng.randint(1, self.max_units_per_layer),
            activation=self.rng.choice(ACTIVATION_FUNCTIONS),
            dropout=self.rng.random() * MAX_NEW_LAYER_DROPOUT,
            batch_normalization=self.rng.random() < BATCH_NORM_PROBABILITY,
        )

        insert_pos = self.rng.randint(1, len(layers) - 1)
        layers.insert(insert_pos, new_layer)

    def add_connection(self, genome: Genome) -> None:
        """Connect two random layers with a freshly numbered gene."""
        layers = genome.architecture.layers

        if len(layers) <= 2:
            return

        source = layers[self.rng.randrange(len(layers) - 1)]
        target = layers[self.rng.randrange(len(layers) - 1) + 1]

        if source.id == target.id:
            return

        genome.architecture.connections.append(
            ConnectionGene(
                source=source.id,
                target=target.id,
                weight=self.rng.uniform(-1.0, 1.0),
                enabled=True,
                innovation=self.innovation_tracker.next(),
            )
        )

    def remove_node(self, genome: Genome) -> None:
        """Remove a random hidden layer and every connection touching it."""
        hidden = genome.architecture.hidden_layers

        if not hidden:
            return

        doomed = self.rng.choice(hidden)
        architecture = genome.architecture
        architecture.layers = [layer for layer in architecture.layers if layer.id != doomed.id]
        architecture.connections = [
            conn for conn in architecture.connections
            if not (doomed.owns(conn.source) or doomed.owns(conn.target))
        ]

    def remove_connection(self, genome: Genome) -> None:
        connections = genome.architecture.connections

        if len(connections) <= 1:
            return

        del connections[self.rng.randrange(len(connections))]

    def mutate_weights(self, genome: Genome) -> None:
        for conn in genome.architecture.connections:
            if self.rng.random() < WEIGHT_PERTURB_PROBABILITY:
                conn.weight += self.rng.uniform(-WEIGHT_PERTURB_RANGE, WEIGHT_PERTURB_RANGE)

    def mutate_activation(self, genome: Genome) -> None:
        for layer in genome.architecture.layers:
            if layer.role != LayerRole.INPUT and self.rng.random() < ACTIVATION_SWAP_PROBABILITY:
                layer.activation = self.rng.choice(ACTIVATION_FUNCTIONS)

    def mutate_learning_rate(self, genome: Genome) -> None:
        """Scale the learning rate by a factor in [0.9, 1.1] and clamp it."""
        architecture = genome.architecture
        scaled = architecture.learning_rate * self.rng.uniform(*LEARNING_RATE_FACTOR_RANGE)
        architecture.learning_rate = max(MIN_LEARNING_RATE, min(MAX_LEARNING_RATE, scaled))


# =============================================================================
# Crossover Operators
# =============================================================================


class CrossoverOperator:
    """Combines parent genomes to create offspring."""

    def __init__(
        self,
        settings: CrossoverSettings | None = None,
        rng: random.Random | None = None,
    ):
        self.settings = settings or CrossoverSettings()
        self.rng = rng or random.Random()

    def crossover(self, parent1: Genome, parent2: Genome, generation: int = 0) -> Genome:
        """
        Perform crossover between two parent genomes.

        With ``copy_parent_rate`` probability the child is a copy of parent 1.
        Otherwise hyperparameters are drawn from either parent, layers are
        merged index by index, and (when enabled) connection genes are aligned
        by innovation number.

        Args:
            parent1: First parent genome
            parent2: Second parent genome
            generation: Current generation number

        Returns:
            Child genome
        """
        if self.rng.random() < self.settings.copy_parent_rate:
            child = parent1.clone(prefix="offspring")
            child.generation = generation
            return child

        child = parent1.clone(prefix="offspring")
        child.generation = generation
        child.parent_genomes = [parent1.genome_id, parent2.genome_id]

        arch = child.architecture
        arch1 = parent1.architecture
        arch2 = parent2.architecture

        arch.learning_rate = self._pick(arch1.learning_rate, arch2.learning_rate)
        arch.optimizer = self._pick(arch1.optimizer, arch2.optimizer)
        arch.loss_function = self._pick(arch1.loss_function, arch2.loss_function)

        arch.layers = self._merge_layers(arch1.layers, arch2.layers)

        if self.settings.inherit_connections:
            arch.connections = self._merge_connections(child, parent1, parent2)
        else:
            arch.connections = []

        logger.debug(
            "Crossover performed",
            parent1_id=parent1.genome_id,
            parent2_id=parent2.genome_id,
            child_id=child.genome_id,
            layers=len(arch.layers),
            connections=len(arch.connections),
        )

        return child

    def _pick(self, first, second):
        return first if self.rng.random() < 0.5 else second

    def _merge_layers(self, layers1: list[Layer], layers2: list[Layer]) -> list[Layer]:
        """
        Positional merge of the input and hidden layers, then the two output
        layers, so the output layer stays last and unique. Where both parents
        have a layer at an index, parent 1's id and role are kept. A layer
        present in only one parent is copied unless its id is already taken.
        """
        body1, body2 = layers1[:-1], layers2[:-1]

        merged: list[Layer] = []
        for i in range(max(len(body1), len(body2))):
            layer1 = body1[i] if i < len(body1) else None
            layer2 = body2[i] if i < len(body2) else None

            if layer1 is not None and layer2 is not None:
                merged.append(self._mix_layer(layer1, layer2))
            else:
                only = layer1 if layer1 is not None else layer2
                if all(layer.id != only.id for layer in merged):
                    merged.append(only.model_copy())

        merged.append(self._mix_layer(layers1[-1], layers2[-1]))
        return merged

    def _mix_layer(self, layer1: Layer, layer2: Layer) -> Layer:
        return layer1.model_copy(
            update={
                "units": self._pick(layer1.units, layer2.units),
                "activation": self._pick(layer1.activation, layer2.activation),
                "dropout": self._pick(layer1.dropout, layer2.dropout),
                "batch_normalization": self._pick(
                    layer1.batch_normalization, layer2.batch_normalization
                ),
            }
        )

    def _merge_connections(
        self,
        child: Genome,
        parent1: Genome,
        parent2: Genome,
    ) -> list[ConnectionGene]:
        """
        Matching genes come from either parent, unmatched genes from parent 1.
        Genes whose endpoints no longer belong to a child layer are dropped.
        """
        genes2 = parent2.architecture.connection_by_innovation()

        inherited = []
        for gene1 in parent1.architecture.connections:
            gene2 = genes2.get(gene1.innovation)
            chosen = gene1 if gene2 is None else self._pick(gene1, gene2)
            inherited.append(chosen.model_copy())

        arch = child.architecture
        return [
            conn for conn in inherited
            if arch.find_layer(conn.source) is not None and arch.find_layer(conn.target) is not None
        ]


__all__ = [
    "MutationType",
    "MutationOperator",
    "CrossoverOperator",
    "WEIGHT_PERTURB_PROBABILITY",
    "WEIGHT_PERTURB_RANGE",
    "ACTIVATION_SWAP_PROBABILITY",
]
