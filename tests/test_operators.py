"""
Unit tests for the mutation and crossover operators.

Tests cover:
- Gated mutation pass (zero rates, full rates, fixed order)
- Each structural operator and its precondition
- Each parametric operator and its bounds
- Crossover copy shortcut and gene mixing
"""

import random

import pytest

from dentalneat.config import CrossoverSettings
from dentalneat.genome.encoding import (
    ACTIVATION_FUNCTIONS,
    MAX_LEARNING_RATE,
    MIN_LEARNING_RATE,
    LayerRole,
)
from dentalneat.genome.operators import (
    CrossoverOperator,
    MutationOperator,
    MutationType,
    WEIGHT_PERTURB_RANGE,
)


@pytest.fixture
def operator(tracker):
    return MutationOperator(
        innovation_tracker=tracker,
        max_hidden_layers=3,
        max_units_per_layer=16,
        rng=random.Random(7),
    )


# ============================================================================
# Mutation Pass Tests
# ============================================================================

class TestMutationPass:
    """Test the gated mutation pass."""

    def test_zero_rates_is_a_no_op(self, zero_rates, tracker, minimal_genome):
        """With every rate at 0 the child architecture equals the parent's."""
        issued = tracker.current
        operator = MutationOperator(zero_rates, tracker, rng=random.Random(0))

        child = operator.mutate(minimal_genome, generation=3)

        assert child.genome_id != minimal_genome.genome_id
        assert child.architecture == minimal_genome.architecture
        assert child.generation == 3
        assert tracker.current == issued

    def test_mutate_leaves_parent_untouched(self, full_rates, tracker, build_genome):
        """Mutation works on a clone."""
        parent = build_genome(genes=[(0, 0.1), (1, 0.2), (2, 0.3)], hidden=1)
        before = parent.architecture.model_copy(deep=True)
        operator = MutationOperator(full_rates, tracker, max_units_per_layer=8, rng=random.Random(3))

        child = operator.mutate(parent)

        assert parent.architecture == before
        assert child.parent_genomes == [parent.genome_id]

    def test_full_rates_apply_every_operator_in_order(self, full_rates, tracker, build_genome):
        """Operators fire in their fixed order."""
        genome = build_genome(genes=[(0, 0.1), (1, 0.2)], hidden=1)
        operator = MutationOperator(full_rates, tracker, rng=random.Random(1))

        applied = operator.apply(genome)

        assert applied == list(MutationType)
        assert [m.value for m in applied] == [
            "add_node",
            "add_connection",
            "remove_node",
            "remove_connection",
            "mutate_weights",
            "mutate_activation",
            "mutate_learning_rate",
        ]


# ============================================================================
# Structural Operator Tests
# ============================================================================

class TestStructuralOperators:
    """Test add/remove node and connection operators."""

    def test_add_node_inserts_hidden_layer(self, operator, minimal_genome):
        """A new hidden layer goes between input and output."""
        operator.add_node(minimal_genome)
        layers = minimal_genome.architecture.layers

        assert [layer.role for layer in layers] == [
            LayerRole.INPUT, LayerRole.HIDDEN, LayerRole.OUTPUT,
        ]
        hidden = layers[1]
        assert hidden.id.startswith("hidden_")
        assert 1 <= hidden.units <= 16
        assert hidden.activation in ACTIVATION_FUNCTIONS
        assert 0.0 <= hidden.dropout < 0.5

    def test_add_node_keeps_output_last(self, operator, minimal_genome):
        """Repeated insertions never move the input or output layer."""
        for _ in range(3):
            operator.add_node(minimal_genome)

        layers = minimal_genome.architecture.layers
        assert layers[0].role == LayerRole.INPUT
        assert layers[-1].role == LayerRole.OUTPUT
        assert len(minimal_genome.architecture.hidden_layers) == 3

    def test_add_node_respects_max_hidden_layers(self, operator, build_genome):
        """At the hidden-layer limit add-node does nothing."""
        genome = build_genome(hidden=3)
        operator.add_node(genome)
        assert len(genome.architecture.hidden_layers) == 3

    def test_add_connection_needs_more_than_two_layers(self, operator, minimal_genome, tracker):
        """Two-layer genomes gain no connections."""
        issued = tracker.current
        before = len(minimal_genome.architecture.connections)

        operator.add_connection(minimal_genome)

        assert len(minimal_genome.architecture.connections) == before
        assert tracker.current == issued

    def test_add_connection_mints_fresh_innovations(self, operator, build_genome, tracker):
        """New genes get strictly increasing innovations and valid endpoints."""
        genome = build_genome(genes=[(0, 0.0)], hidden=1)
        tracker.next()  # innovation 0 is already in use

        for _ in range(30):
            operator.add_connection(genome)

        new_genes = genome.architecture.connections[1:]
        assert new_genes
        innovations = [c.innovation for c in new_genes]
        assert innovations == sorted(innovations)
        assert len(set(innovations)) == len(innovations)
        assert min(innovations) >= 1
        for gene in new_genes:
            assert gene.source != gene.target
            assert gene.source != "output"
            assert gene.target != "input"
            assert -1.0 <= gene.weight <= 1.0

    def test_remove_node_drops_touching_connections(self, operator, build_genome):
        """Removing a hidden layer removes every gene referencing it."""
        from dentalneat.genome.encoding import ConnectionGene

        genome = build_genome(genes=[(0, 0.5)], hidden=1)
        genome.architecture.connections.extend([
            ConnectionGene(source="input", target="hidden_0", weight=0.1, innovation=1),
            ConnectionGene(source="hidden_0_3", target="output_1", weight=0.2, innovation=2),
        ])

        operator.remove_node(genome)

        assert genome.architecture.hidden_layers == []
        assert [c.innovation for c in genome.architecture.connections] == [0]

    def test_remove_node_without_hidden_layers(self, operator, minimal_genome):
        """Genomes without hidden layers are unchanged."""
        before = minimal_genome.architecture.model_copy(deep=True)
        operator.remove_node(minimal_genome)
        assert minimal_genome.architecture == before

    def test_remove_connection_keeps_last_gene(self, operator, build_genome):
        """A single remaining connection is never removed."""
        genome = build_genome(genes=[(0, 0.5)])
        operator.remove_connection(genome)
        assert len(genome.architecture.connections) == 1

    def test_remove_connection(self, operator, build_genome):
        """One gene is removed when more than one exists."""
        genome = build_genome(genes=[(0, 0.1), (1, 0.2), (2, 0.3)])
        operator.remove_connection(genome)
        assert len(genome.architecture.connections) == 2


# ============================================================================
# Parametric Operator Tests
# ============================================================================

class TestParametricOperators:
    """Test weight, activation and learning-rate operators."""

    def test_weight_perturbation_is_bounded(self, operator, minimal_genome):
        """Each weight moves by at most the perturbation range per pass."""
        before = [c.weight for c in minimal_genome.architecture.connections]

        operator.mutate_weights(minimal_genome)

        after = [c.weight for c in minimal_genome.architecture.connections]
        for old, new in zip(before, after):
            assert abs(new - old) <= WEIGHT_PERTURB_RANGE

    def test_weights_eventually_change(self, operator, minimal_genome):
        """Over many passes at least one weight is perturbed."""
        before = [c.weight for c in minimal_genome.architecture.connections]
        for _ in range(50):
            operator.mutate_weights(minimal_genome)
        after = [c.weight for c in minimal_genome.architecture.connections]
        assert before != after

    def test_input_activation_never_changes(self, operator, build_genome):
        """Only non-input layers get new activations."""
        genome = build_genome(hidden=2)

        for _ in range(200):
            operator.mutate_activation(genome)

        layers = genome.architecture.layers
        assert layers[0].activation == "linear"
        assert all(layer.activation in ACTIVATION_FUNCTIONS for layer in layers)

    def test_learning_rate_scaling(self, operator, minimal_genome):
        """Learning rate is scaled by a factor in [0.9, 1.1]."""
        minimal_genome.architecture.learning_rate = 0.01
        operator.mutate_learning_rate(minimal_genome)
        assert 0.009 - 1e-12 <= minimal_genome.architecture.learning_rate <= 0.011 + 1e-12

    def test_learning_rate_is_clamped(self, operator, minimal_genome):
        """Learning rate never leaves its bounds."""
        arch = minimal_genome.architecture

        arch.learning_rate = MAX_LEARNING_RATE
        for _ in range(50):
            operator.mutate_learning_rate(minimal_genome)
            assert MIN_LEARNING_RATE <= arch.learning_rate <= MAX_LEARNING_RATE

        arch.learning_rate = MIN_LEARNING_RATE
        for _ in range(50):
            operator.mutate_learning_rate(minimal_genome)
            assert MIN_LEARNING_RATE <= arch.learning_rate <= MAX_LEARNING_RATE


# ============================================================================
# Crossover Tests
# ============================================================================

class TestCrossover:
    """Test CrossoverOperator."""

    @pytest.fixture
    def parents(self, build_genome):
        parent1 = build_genome(genes=[(0, 0.1), (1, 0.2), (2, 0.3)], hidden=1)
        parent2 = build_genome(genes=[(0, 0.9), (1, 0.8), (5, 0.7)])
        parent1.architecture.learning_rate = 0.01
        parent2.architecture.learning_rate = 0.05
        parent2.architecture.optimizer = "sgd"
        parent2.architecture.layers[-1].units = 3
        return parent1, parent2

    def test_copy_shortcut(self, parents):
        """With copy_parent_rate 1 the child copies parent 1."""
        parent1, parent2 = parents
        operator = CrossoverOperator(CrossoverSettings(copy_parent_rate=1.0), rng=random.Random(0))

        child = operator.crossover(parent1, parent2, generation=2)

        assert child.architecture == parent1.architecture
        assert child.genome_id != parent1.genome_id
        assert child.parent_genomes == [parent1.genome_id]
        assert child.generation == 2

    def test_mixing_draws_from_both_parents(self, parents):
        """Hyperparameters and layer attributes come from either parent."""
        parent1, parent2 = parents
        operator = CrossoverOperator(CrossoverSettings(copy_parent_rate=0.0), rng=random.Random(0))

        child = operator.crossover(parent1, parent2)
        arch = child.architecture

        assert child.parent_genomes == [parent1.genome_id, parent2.genome_id]
        assert arch.learning_rate in (0.01, 0.05)
        assert arch.optimizer in ("adam", "sgd")
        assert [layer.id for layer in arch.layers] == ["input", "hidden_0", "output"]
        assert arch.layers[0].role == LayerRole.INPUT
        assert arch.layers[-1].role == LayerRole.OUTPUT
        assert arch.output_layer.units in (2, 3)

    def test_both_values_appear_over_many_crossovers(self, parents):
        """Each attribute is drawn independently from either parent."""
        parent1, parent2 = parents
        operator = CrossoverOperator(CrossoverSettings(copy_parent_rate=0.0), rng=random.Random(11))

        rates = {operator.crossover(parent1, parent2).architecture.learning_rate for _ in range(40)}
        assert rates == {0.01, 0.05}

    def test_connections_aligned_by_innovation(self, parents):
        """Matching genes come from either parent, the rest from parent 1."""
        parent1, parent2 = parents
        operator = CrossoverOperator(CrossoverSettings(copy_parent_rate=0.0), rng=random.Random(5))

        child = operator.crossover(parent1, parent2)
        genes = child.architecture.connection_by_innovation()

        assert sorted(genes) == [0, 1, 2]
        assert genes[0].weight in (0.1, 0.9)
        assert genes[1].weight in (0.2, 0.8)
        assert genes[2].weight == 0.3

    def test_connections_can_be_dropped(self, parents):
        """With inherit_connections off the mixed child has no connections."""
        parent1, parent2 = parents
        operator = CrossoverOperator(
            CrossoverSettings(copy_parent_rate=0.0, inherit_connections=False),
            rng=random.Random(0),
        )

        child = operator.crossover(parent1, parent2)
        assert child.architecture.connections == []

    def test_genes_to_missing_layers_are_dropped(self, build_genome):
        """Inherited genes must end on layers the child has."""
        from dentalneat.genome.encoding import ConnectionGene

        parent1 = build_genome(genes=[(0, 0.1)])
        parent1.architecture.connections.append(
            ConnectionGene(source="input", target="hidden_gone", weight=0.2, innovation=1)
        )
        parent2 = build_genome(genes=[(0, 0.2)])
        operator = CrossoverOperator(CrossoverSettings(copy_parent_rate=0.0), rng=random.Random(0))

        child = operator.crossover(parent1, parent2)

        assert [c.innovation for c in child.architecture.connections] == [0]

    def test_parents_are_not_modified(self, parents):
        """Crossover never mutates its parents."""
        parent1, parent2 = parents
        before1 = parent1.architecture.model_copy(deep=True)
        before2 = parent2.architecture.model_copy(deep=True)
        operator = CrossoverOperator(CrossoverSettings(copy_parent_rate=0.0), rng=random.Random(2))

        child = operator.crossover(parent1, parent2)
        child.architecture.layers[0].units = 99
        child.architecture.connections[0].weight = 99.0

        assert parent1.architecture == before1
        assert parent2.architecture == before2
