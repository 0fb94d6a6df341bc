"""
Unit tests for the compatibility distance.

Tests cover:
- Gene alignment into excess, disjoint and matching genes
- Identity and symmetry
- Degenerate inputs (no connections, no matching genes)
"""

import pytest

from dentalneat.config import CompatibilityConfig
from dentalneat.genome.distance import compatibility_distance, count_gene_alignment


@pytest.fixture
def coefficients():
    return CompatibilityConfig(c1=1.0, c2=1.0, c3=0.4)


class TestGeneAlignment:
    """Test innovation-number alignment."""

    def test_excess_disjoint_matching(self, build_genome):
        """Genes below the smaller max innovation are disjoint, above it excess."""
        a = build_genome(genes=[(0, 0.5), (1, 0.5), (2, 0.5)])
        b = build_genome(genes=[(0, 0.0), (1, 0.5), (3, 0.1), (4, 0.1)])

        excess, disjoint, matching, weight_diff = count_gene_alignment(a, b)

        assert excess == 2
        assert disjoint == 1
        assert matching == 2
        assert weight_diff == pytest.approx(0.5)

    def test_empty_side_makes_everything_excess(self, build_genome):
        """Against an empty genome every gene is excess."""
        empty = build_genome()
        other = build_genome(genes=[(0, 0.1), (1, 0.2), (2, 0.3)])

        assert count_gene_alignment(empty, other) == (3, 0, 0, 0.0)


class TestCompatibilityDistance:
    """Test the distance formula."""

    def test_hand_computed_value(self, build_genome, coefficients):
        """c1*E/N + c2*D/N + c3*W with N = larger connection count."""
        a = build_genome(genes=[(0, 0.5), (1, 0.5), (2, 0.5)])
        b = build_genome(genes=[(0, 0.0), (1, 0.5), (3, 0.1), (4, 0.1)])

        # E=2, D=1, N=4, mean weight diff = 0.5 / 2
        expected = 2 / 4 + 1 / 4 + 0.4 * 0.25
        assert compatibility_distance(a, b, coefficients) == pytest.approx(expected)

    def test_identity(self, minimal_genome, coefficients):
        """A genome is at distance 0 from itself."""
        assert compatibility_distance(minimal_genome, minimal_genome, coefficients) == 0.0

    def test_symmetry(self, build_genome, coefficients):
        """distance(A, B) == distance(B, A)."""
        a = build_genome(genes=[(0, 0.9), (2, -0.3), (5, 0.4)])
        b = build_genome(genes=[(0, 0.1), (1, 0.2), (2, 0.3), (7, 0.0)])

        assert compatibility_distance(a, b, coefficients) == pytest.approx(
            compatibility_distance(b, a, coefficients)
        )

    def test_both_empty(self, build_genome, coefficients):
        """Two genomes without connections are at distance 0."""
        assert compatibility_distance(build_genome(), build_genome(), coefficients) == 0.0

    def test_one_empty(self, build_genome, coefficients):
        """An empty genome against three genes gives c1 * 3 / 3."""
        other = build_genome(genes=[(0, 0.1), (1, 0.2), (2, 0.3)])
        assert compatibility_distance(build_genome(), other, coefficients) == pytest.approx(1.0)

    def test_no_matching_genes_has_no_weight_term(self, build_genome, coefficients):
        """Without matching genes only the structural terms remain."""
        a = build_genome(genes=[(0, 5.0)])
        b = build_genome(genes=[(1, -5.0)])

        assert compatibility_distance(a, b, coefficients) == pytest.approx(2.0)

    def test_small_n_is_not_floored(self, build_genome):
        """Small N divides the structural terms as-is."""
        coefficients = CompatibilityConfig(c1=2.0, c2=0.0, c3=0.0)
        a = build_genome(genes=[(0, 0.0)])
        b = build_genome(genes=[(0, 0.0), (1, 0.0)])

        # One excess gene over N=2
        assert compatibility_distance(a, b, coefficients) == pytest.approx(1.0)

    def test_minimal_genomes_from_one_run(self, tracker, rng, coefficients):
        """Independently built minimal genomes share no innovations."""
        from dentalneat.genome.encoding import create_minimal_genome

        a = create_minimal_genome(4, 2, tracker, rng=rng)
        b = create_minimal_genome(4, 2, tracker, rng=rng)

        # 8 disjoint + 8 excess over N=8
        assert compatibility_distance(a, b, coefficients) == pytest.approx(2.0)
