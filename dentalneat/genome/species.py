"""
Speciation

Partitions the population into species by compatibility distance and owns the
species lifecycle: creation on demand, stagnation tracking and removal.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from loguru import logger

from ..config import CompatibilityConfig, StagnationConfig
from .distance import compatibility_distance
from .encoding import Genome


@dataclass
class Species:
    """
    A bucket of topologically similar genomes.

    The representative is fixed when the species is created and never
    reassigned.
    """

    species_id: int
    representative: Genome
    members: list[Genome] = field(default_factory=list)
    best_fitness: float = 0.0
    stagnation: int = 0
    age: int = 0

    @property
    def size(self) -> int:
        return len(self.members)

    def best_member(self) -> Genome | None:
        if not self.members:
            return None
        return max(self.members, key=lambda g: g.fitness)

    def average_fitness(self) -> float:
        if not self.members:
            return 0.0
        return sum(g.fitness for g in self.members) / len(self.members)

    def to_dict(self) -> dict:
        return {
            "species_id": self.species_id,
            "representative_id": self.representative.genome_id,
            "member_ids": [g.genome_id for g in self.members],
            "best_fitness": self.best_fitness,
            "stagnation": self.stagnation,
            "age": self.age,
        }


class SpeciationManager:
    """
    Assigns genomes to species and prunes stagnant ones.

    Responsibilities:
    - Reassign every genome on each pass (first species under threshold wins)
    - Create species lazily with monotonically increasing ids
    - Drop species left empty after a pass
    - Track stagnation and remove species that stop improving
    """

    def __init__(
        self,
        compatibility: CompatibilityConfig | None = None,
        stagnation: StagnationConfig | None = None,
    ):
        self.compatibility = compatibility or CompatibilityConfig()
        self.stagnation = stagnation or StagnationConfig()

        self.species: list[Species] = []
        self._next_species_id = 0

    def reset(self) -> None:
        self.species = []
        self._next_species_id = 0

    def get_species(self, species_id: int | None) -> Species | None:
        if species_id is None:
            return None
        return next((s for s in self.species if s.species_id == species_id), None)

    def speciate(self, population: list[Genome]) -> list[Species]:
        """
        Run one speciation pass over the population.

        Existing species keep their id, representative, best fitness,
        stagnation and age; only their member lists are rebuilt.

        Args:
            population: Genomes in population order

        Returns:
            Surviving species list
        """
        for species in self.species:
            species.members = []

        created = 0
        for genome in population:
            target = self._find_species(genome)

            if target is None:
                target = Species(
                    species_id=self._next_species_id,
                    representative=genome,
                    best_fitness=genome.fitness,
                )
                self._next_species_id += 1
                self.species.append(target)
                created += 1

            target.members.append(genome)
            genome.species_id = target.species_id

        emptied = [s.species_id for s in self.species if not s.members]
        self.species = [s for s in self.species if s.members]

        logger.debug(
            "Speciation pass complete",
            population=len(population),
            species=len(self.species),
            created=created,
            dropped=len(emptied),
        )

        return self.species

    def _find_species(self, genome: Genome) -> Species | None:
        """First species (in list order) whose representative is strictly closer than the threshold."""
        for species in self.species:
            distance = compatibility_distance(genome, species.representative, self.compatibility)
            if distance < self.compatibility.threshold:
                return species
        return None

    def remove_stagnant_species(self) -> list[Species]:
        """
        Update stagnation counters and drop species that stopped improving.

        Members of a removed species are left without a species.

        Returns:
            Removed species
        """
        survivors: list[Species] = []
        removed: list[Species] = []

        for species in self.species:
            best = max((g.fitness for g in species.members), default=0.0)

            if best > species.best_fitness:
                species.best_fitness = best
                species.stagnation = 0
            else:
                species.stagnation += 1

            if species.stagnation < self.stagnation.max_stagnation:
                species.age += 1
                survivors.append(species)
            else:
                removed.append(species)
                for genome in species.members:
                    genome.species_id = None

        self.species = survivors

        if removed:
            logger.info(
                "Removed stagnant species",
                removed=[s.species_id for s in removed],
                remaining=len(survivors),
            )

        return removed


__all__ = ["Species", "SpeciationManager"]
