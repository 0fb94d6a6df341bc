"""
Compatibility Distance

Topological distance between two genomes, computed from their connection
genes aligned by innovation number:

    distance = c1 * excess / N + c2 * disjoint / N + c3 * mean|w_a - w_b|

where N is the larger of the two connection counts.
"""

from __future__ import annotations

from typing import Protocol

from .encoding import Genome


class CompatibilityCoefficients(Protocol):
    """Anything carrying the three distance coefficients."""

    c1: float
    c2: float
    c3: float


def count_gene_alignment(genome_a: Genome, genome_b: Genome) -> tuple[int, int, int, float]:
    """
    Align two genomes' connections by innovation number.

    Returns:
        (excess, disjoint, matching, summed absolute weight difference)
    """
    genes_a = genome_a.architecture.connection_by_innovation()
    genes_b = genome_b.architecture.connection_by_innovation()

    max_a = genome_a.architecture.max_innovation
    max_b = genome_b.architecture.max_innovation
    boundary = min(max_a, max_b)

    excess = 0
    disjoint = 0
    matching = 0
    weight_diff = 0.0

    for innovation in sorted(genes_a.keys() | genes_b.keys()):
        gene_a = genes_a.get(innovation)
        gene_b = genes_b.get(innovation)

        if gene_a is not None and gene_b is not None:
            matching += 1
            weight_diff += abs(gene_a.weight - gene_b.weight)
        elif innovation <= boundary:
            disjoint += 1
        else:
            excess += 1

    return excess, disjoint, matching, weight_diff


def compatibility_distance(
    genome_a: Genome,
    genome_b: Genome,
    coefficients: CompatibilityCoefficients,
) -> float:
    """
    Compute the compatibility distance between two genomes.

    N is not floored to 1, so genomes with very few connections can produce
    large distances. When both genomes have no connections the excess and
    disjoint terms are 0.

    Args:
        genome_a: First genome
        genome_b: Second genome
        coefficients: Object with c1 (excess), c2 (disjoint), c3 (weight) attributes

    Returns:
        Non-negative distance
    """
    excess, disjoint, matching, weight_diff = count_gene_alignment(genome_a, genome_b)

    n = max(
        len(genome_a.architecture.connections),
        len(genome_b.architecture.connections),
    )
    avg_weight_diff = weight_diff / matching if matching > 0 else 0.0

    if n == 0:
        structural = 0.0
    else:
        structural = coefficients.c1 * excess / n + coefficients.c2 * disjoint / n

    return structural + coefficients.c3 * avg_weight_diff


__all__ = [
    "CompatibilityCoefficients",
    "compatibility_distance",
    "count_gene_alignment",
]
