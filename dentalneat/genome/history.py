"""
Evolution History Tracking

Keeps an audit trail of a run:
- One record per completed generation (statistics, best genome, counts)
- Parent/child links between genomes
- Best-fitness progression
- JSON export and import for offline analysis
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from .encoding import Genome
from .population import PopulationStatistics


# =============================================================================
# Generation Record
# =============================================================================


@dataclass
class GenerationRecord:
    """Snapshot of one completed generation."""

    generation: int
    timestamp: str
    statistics: PopulationStatistics

    best_genome_id: str
    best_fitness: float

    genome_ids: list[str]
    species_count: int = 0

    # Reproduction counts for the population that replaced this one
    elites: int = 0
    crossovers: int = 0
    mutations: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "generation": self.generation,
            "timestamp": self.timestamp,
            "statistics": self.statistics.to_dict(),
            "best_genome_id": self.best_genome_id,
            "best_fitness": self.best_fitness,
            "genome_ids": self.genome_ids,
            "species_count": self.species_count,
            "elites": self.elites,
            "crossovers": self.crossovers,
            "mutations": self.mutations,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GenerationRecord:
        fields = dict(data)
        fields["statistics"] = PopulationStatistics(**data["statistics"])
        return cls(**fields)


# =============================================================================
# Genome Lineage
# =============================================================================


@dataclass
class GenomeLineage:
    """Parent and child links of one genome."""

    genome_id: str
    generation: int
    fitness: float
    parent_ids: list[str]
    descendant_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "genome_id": self.genome_id,
            "generation": self.generation,
            "fitness": self.fitness,
            "parent_ids": self.parent_ids,
            "descendant_ids": self.descendant_ids,
        }

    @classmethod
    def from_genome(cls, genome: Genome) -> GenomeLineage:
        return cls(
            genome_id=genome.genome_id,
            generation=genome.generation,
            fitness=genome.fitness,
            parent_ids=list(genome.parent_genomes),
        )


# =============================================================================
# Evolution History
# =============================================================================


class EvolutionHistory:
    """
    Tracks the history of a run across generations.

    Responsibilities:
    - Record each evaluated generation
    - Link genomes to their parents and children
    - Report fitness progression and a run summary
    - Persist to and restore from JSON
    """

    def __init__(self, experiment_name: str = "dentalneat"):
        self.experiment_name = experiment_name
        self.start_time = datetime.now(timezone.utc).isoformat()

        self.generations: dict[int, GenerationRecord] = {}
        self.lineages: dict[str, GenomeLineage] = {}

        self.global_best_genome_id: str | None = None
        self.global_best_fitness: float = 0.0

        logger.debug("Initialized EvolutionHistory", experiment=experiment_name)

    def record_generation(
        self,
        generation: int,
        statistics: PopulationStatistics,
        genomes: list[Genome],
        species_count: int = 0,
        elites: int = 0,
        crossovers: int = 0,
        mutations: int = 0,
    ) -> GenerationRecord:
        """
        Record an evaluated generation.

        Args:
            generation: Generation number the genomes were evaluated in
            statistics: Statistics of the evaluated population
            genomes: Evaluated genomes
            species_count: Live species after speciation
            elites: Elites carried into the next generation
            crossovers: Offspring created by crossover
            mutations: Offspring that received at least one mutation

        Returns:
            The stored record
        """
        if genomes:
            best = max(genomes, key=lambda g: g.fitness)
            best_genome_id, best_fitness = best.genome_id, best.fitness
        else:
            best_genome_id, best_fitness = "", 0.0

        if self.global_best_genome_id is None or best_fitness > self.global_best_fitness:
            self.global_best_genome_id = best_genome_id or None
            self.global_best_fitness = best_fitness

        record = GenerationRecord(
            generation=generation,
            timestamp=datetime.now(timezone.utc).isoformat(),
            statistics=statistics,
            best_genome_id=best_genome_id,
            best_fitness=best_fitness,
            genome_ids=[g.genome_id for g in genomes],
            species_count=species_count,
            elites=elites,
            crossovers=crossovers,
            mutations=mutations,
        )
        self.generations[generation] = record

        for genome in genomes:
            self._update_lineage(genome)

        logger.debug(
            "Generation recorded",
            generation=generation,
            population_size=len(genomes),
            best_genome=best_genome_id,
            best_fitness=f"{best_fitness:.4f}",
        )

        return record

    def _update_lineage(self, genome: Genome) -> None:
        lineage = self.lineages.get(genome.genome_id)
        if lineage is None:
            self.lineages[genome.genome_id] = GenomeLineage.from_genome(genome)
        else:
            # Elites reappear under the same id; keep their latest score
            lineage.fitness = genome.fitness

        for parent_id in genome.parent_genomes:
            parent = self.lineages.get(parent_id)
            if parent is not None and genome.genome_id not in parent.descendant_ids:
                parent.descendant_ids.append(genome.genome_id)

    def get_lineage(self, genome_id: str) -> GenomeLineage | None:
        return self.lineages.get(genome_id)

    def _walk(self, genome_id: str, attribute: str, max_depth: int) -> list[str]:
        found: list[str] = []
        frontier = [genome_id]

        for _ in range(max_depth):
            next_frontier = []
            for current_id in frontier:
                lineage = self.lineages.get(current_id)
                if lineage is None:
                    continue
                for linked_id in getattr(lineage, attribute):
                    if linked_id not in found and linked_id != genome_id:
                        found.append(linked_id)
                        next_frontier.append(linked_id)
            if not next_frontier:
                break
            frontier = next_frontier

        return found

    def get_ancestors(self, genome_id: str, max_depth: int = 10) -> list[str]:
        """Ancestor ids, nearest generation first."""
        return self._walk(genome_id, "parent_ids", max_depth)

    def get_descendants(self, genome_id: str, max_depth: int = 10) -> list[str]:
        """Descendant ids, nearest generation first."""
        return self._walk(genome_id, "descendant_ids", max_depth)

    def get_fitness_progression(self) -> list[tuple[int, float]]:
        """(generation, best fitness) pairs in generation order."""
        return [
            (generation, self.generations[generation].best_fitness)
            for generation in sorted(self.generations)
        ]

    def get_generation_record(self, generation: int) -> GenerationRecord | None:
        return self.generations.get(generation)

    def compute_summary(self) -> dict[str, Any]:
        """Summary statistics of the recorded run."""
        summary: dict[str, Any] = {
            "experiment_name": self.experiment_name,
            "start_time": self.start_time,
            "total_generations": len(self.generations),
            "total_genomes": len(self.lineages),
            "global_best_fitness": self.global_best_fitness,
            "global_best_genome_id": self.global_best_genome_id,
        }

        if not self.generations:
            return summary

        records = list(self.generations.values())
        progression = self.get_fitness_progression()

        summary.update(
            {
                "initial_fitness": progression[0][1],
                "final_fitness": progression[-1][1],
                "fitness_improvement": progression[-1][1] - progression[0][1],
                "avg_species_count": sum(r.species_count for r in records) / len(records),
                "total_crossovers": sum(r.crossovers for r in records),
                "total_mutations": sum(r.mutations for r in records),
            }
        )
        return summary

    def export_to_json(self, filepath: Path | str) -> None:
        """Write the complete history to a JSON file."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "experiment_name": self.experiment_name,
            "start_time": self.start_time,
            "summary": self.compute_summary(),
            "generations": {
                str(generation): record.to_dict()
                for generation, record in sorted(self.generations.items())
            },
            "lineages": {gid: lineage.to_dict() for gid, lineage in self.lineages.items()},
        }

        with open(filepath, "w") as f:
            json.dump(data, f, indent=2)

        logger.info(
            "Evolution history exported",
            filepath=str(filepath),
            generations=len(self.generations),
            genomes=len(self.lineages),
        )

    def import_from_json(self, filepath: Path | str) -> None:
        """Replace this history with one previously written by export_to_json."""
        filepath = Path(filepath)

        with open(filepath, "r") as f:
            data = json.load(f)

        self.experiment_name = data["experiment_name"]
        self.start_time = data["start_time"]
        self.generations = {
            int(generation): GenerationRecord.from_dict(record)
            for generation, record in data["generations"].items()
        }
        self.lineages = {
            gid: GenomeLineage(**lineage) for gid, lineage in data["lineages"].items()
        }

        self.global_best_genome_id = None
        self.global_best_fitness = 0.0
        for record in self.generations.values():
            if self.global_best_genome_id is None or record.best_fitness > self.global_best_fitness:
                self.global_best_genome_id = record.best_genome_id or None
                self.global_best_fitness = record.best_fitness

        logger.info(
            "Evolution history imported",
            filepath=str(filepath),
            generations=len(self.generations),
        )


__all__ = [
    "GenerationRecord",
    "GenomeLineage",
    "EvolutionHistory",
]
