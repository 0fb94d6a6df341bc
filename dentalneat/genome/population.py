"""
Population Management for Genome Evolution

This module builds each next generation from the current one:
- Population statistics
- Elite preservation per species
- Tournament selection over the whole population
- Offspring creation via crossover followed by mutation
"""

from __future__ import annotations

import math
import random
import statistics
from dataclasses import dataclass

from loguru import logger

from .encoding import Genome
from .operators import CrossoverOperator, MutationOperator
from .species import Species


TOURNAMENT_SIZE = 3


# =============================================================================
# Population Statistics
# =============================================================================


@dataclass
class PopulationStatistics:
    """Statistics about the current population."""

    generation: int
    population_size: int

    # Fitness statistics
    avg_fitness: float
    max_fitness: float
    min_fitness: float
    std_fitness: float

    species_count: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "generation": self.generation,
            "population_size": self.population_size,
            "avg_fitness": self.avg_fitness,
            "max_fitness": self.max_fitness,
            "min_fitness": self.min_fitness,
            "std_fitness": self.std_fitness,
            "species_count": self.species_count,
        }


def compute_statistics(
    population: list[Genome],
    generation: int,
    species_count: int = 0,
) -> PopulationStatistics:
    """
    Compute population statistics.

    Args:
        population: Evaluated genomes
        generation: Current generation number
        species_count: Number of live species

    Returns:
        Population statistics
    """
    if not population:
        return PopulationStatistics(
            generation=generation,
            population_size=0,
            avg_fitness=0.0,
            max_fitness=0.0,
            min_fitness=0.0,
            std_fitness=0.0,
            species_count=species_count,
        )

    fitness_values = [g.fitness for g in population]

    max_fitness = max(fitness_values)
    min_fitness = min(fitness_values)
    # fmean rounds once, but can still land one ulp outside the observed range
    avg_fitness = min(max_fitness, max(min_fitness, statistics.fmean(fitness_values)))
    variance = statistics.fmean((f - avg_fitness) ** 2 for f in fitness_values)

    return PopulationStatistics(
        generation=generation,
        population_size=len(population),
        avg_fitness=avg_fitness,
        max_fitness=max_fitness,
        min_fitness=min_fitness,
        std_fitness=variance ** 0.5,
        species_count=species_count,
    )


# =============================================================================
# Reproduction
# =============================================================================


class Reproduction:
    """
    Produces the next population from the current one and its species.

    Responsibilities:
    - Copy the top fraction of every species unchanged
    - Select parents by tournament over the whole population
    - Fill the remaining slots with mutated crossover offspring
    - Return exactly ``population_size`` genomes
    """

    def __init__(
        self,
        mutation_operator: MutationOperator,
        crossover_operator: CrossoverOperator,
        population_size: int,
        elitism: float = 0.2,
        rng: random.Random | None = None,
    ):
        """
        Initialize reproduction.

        Args:
            mutation_operator: Applied to every crossover offspring
            crossover_operator: Combines two tournament winners
            population_size: Size of each generation
            elitism: Fraction of each species preserved unchanged
            rng: Random source (a fresh one if None)
        """
        if population_size < 1:
            raise ValueError(f"population_size must be >= 1 (got {population_size})")
        if not 0.0 <= elitism <= 1.0:
            raise ValueError(f"elitism must be in [0, 1] (got {elitism})")

        self.mutation_operator = mutation_operator
        self.crossover_operator = crossover_operator
        self.population_size = population_size
        self.elitism = elitism
        self.rng = rng or random.Random()

        # Counters for the most recent call to create_next_generation
        self.last_elite_count = 0
        self.last_crossover_count = 0
        self.last_mutation_count = 0

    def select_parent(self, population: list[Genome]) -> Genome:
        """
        Tournament selection: best adjusted fitness among three uniform draws.

        Draws are with replacement. A later draw only replaces the current
        winner when strictly better, so ties keep the earlier draw.
        """
        if not population:
            raise ValueError("Cannot select a parent from an empty population")

        best = population[self.rng.randrange(len(population))]
        for _ in range(TOURNAMENT_SIZE - 1):
            candidate = population[self.rng.randrange(len(population))]
            if candidate.adjusted_fitness > best.adjusted_fitness:
                best = candidate
        return best

    def select_elites(self, species: list[Species]) -> list[Genome]:
        """Top ``ceil(size * elitism)`` members of every species, copied verbatim."""
        elites = []
        for s in species:
            elite_count = math.ceil(len(s.members) * self.elitism)
            ranked = sorted(s.members, key=lambda g: g.fitness, reverse=True)
            elites.extend(g.copy_verbatim() for g in ranked[:elite_count])
        return elites

    def create_next_generation(
        self,
        species: list[Species],
        population: list[Genome],
        generation: int = 0,
    ) -> list[Genome]:
        """
        Build the next population.

        Args:
            species: Surviving species after stagnation pruning
            population: Current evaluated population (tournament pool)
            generation: Generation number assigned to offspring

        Returns:
            Exactly ``population_size`` genomes
        """
        next_population = self.select_elites(species)
        self.last_elite_count = len(next_population)
        self.last_crossover_count = 0
        self.last_mutation_count = 0

        while len(next_population) < self.population_size:
            parent1 = self.select_parent(population)
            parent2 = self.select_parent(population)

            offspring = self.crossover_operator.crossover(parent1, parent2, generation)
            self.last_crossover_count += 1

            if self.mutation_operator.apply(offspring):
                self.last_mutation_count += 1

            next_population.append(offspring)

        if len(next_population) > self.population_size:
            logger.debug(
                "Elitism overshot population size, truncating",
                proposed=len(next_population),
                population_size=self.population_size,
            )

        next_population = next_population[:self.population_size]

        logger.debug(
            "Next generation created",
            generation=generation,
            elites=self.last_elite_count,
            offspring=self.last_crossover_count,
            mutated=self.last_mutation_count,
        )

        return next_population


__all__ = [
    "TOURNAMENT_SIZE",
    "PopulationStatistics",
    "compute_statistics",
    "Reproduction",
]
