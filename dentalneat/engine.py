"""
NEAT Engine

Owns one evolutionary run: the population, the species list and the
innovation counter. Each call to ``run_one_generation`` performs exactly one
generation:

1. Evaluate every genome concurrently against the fitness oracle
2. Compute population statistics and adjusted fitness
3. Speciate the population
4. Prune stagnant species
5. Reproduce the next population
6. Advance the generation counter and update the best-ever genome

Scheduling repeated generations is the job of ``EvolutionRunner``.
"""

from __future__ import annotations

import random
from enum import Enum
from typing import TYPE_CHECKING, Any

from loguru import logger

from .config import NEATConfig
from .events import EventBus, EventType
from .genome.encoding import Genome, create_minimal_genome
from .genome.fitness import OracleLike, PopulationEvaluator
from .genome.history import EvolutionHistory
from .genome.innovation import InnovationTracker
from .genome.operators import CrossoverOperator, MutationOperator
from .genome.population import PopulationStatistics, Reproduction, compute_statistics
from .genome.species import Species, SpeciationManager

if TYPE_CHECKING:
    import torch.nn as nn


# =============================================================================
# Engine State
# =============================================================================


class EngineState(Enum):
    """Phase of the generation currently in progress."""

    IDLE = "idle"
    EVALUATING = "evaluating"
    SPECIATING = "speciating"
    PRUNING = "pruning"
    REPRODUCING = "reproducing"
    ADVANCED = "advanced"


# =============================================================================
# NEAT Engine
# =============================================================================


class NEATEngine:
    """
    Structural neuroevolution of feed-forward architectures.

    Generations never overlap: a call to ``run_one_generation`` while another
    is in flight raises ``RuntimeError``. ``stop()`` only clears the running
    flag; a generation already in flight always completes.
    """

    def __init__(
        self,
        config: NEATConfig | None = None,
        oracle: OracleLike | None = None,
        rng: random.Random | None = None,
        history: EvolutionHistory | None = None,
        events: EventBus | None = None,
    ):
        """
        Initialize the engine.

        Args:
            config: Engine configuration (defaults if None)
            oracle: Fitness oracle (complexity-penalised reference oracle if None)
            rng: Random source shared by every operator (seeded from config if None)
            history: Evolution history to record into (a fresh one if None)
            events: Event bus to publish on (a fresh one if None)
        """
        self.config = config or NEATConfig()
        self.rng = rng or random.Random(self.config.engine.seed)

        if oracle is None:
            from .genome.fitness import ComplexityPenaltyEvaluator

            oracle = ComplexityPenaltyEvaluator(seed=self.config.engine.seed)
        self.oracle = oracle

        self.innovation_tracker = InnovationTracker()
        self.speciation = SpeciationManager(
            compatibility=self.config.compatibility,
            stagnation=self.config.stagnation,
        )
        self.mutation_operator = MutationOperator(
            rates=self.config.mutation_rates,
            innovation_tracker=self.innovation_tracker,
            max_hidden_layers=self.config.max_hidden_layers,
            max_units_per_layer=self.config.max_units_per_layer,
            rng=self.rng,
        )
        self.crossover_operator = CrossoverOperator(settings=self.config.crossover, rng=self.rng)
        self.reproduction = Reproduction(
            mutation_operator=self.mutation_operator,
            crossover_operator=self.crossover_operator,
            population_size=self.config.population_size,
            elitism=self.config.elitism,
            rng=self.rng,
        )
        self.evaluator = PopulationEvaluator(oracle, timeout=self.config.engine.evaluation_timeout)

        self.events = events or EventBus(max_history=self.config.engine.max_event_history)
        self.history = history if history is not None else EvolutionHistory()

        self._population: list[Genome] = []
        self._generation = 0
        self._best_genome: Genome | None = None
        self._state = EngineState.IDLE
        self._running = False
        self.last_statistics: PopulationStatistics | None = None

        logger.info(
            "Initialized NEATEngine",
            population_size=self.config.population_size,
            input_size=self.config.input_size,
            output_size=self.config.output_size,
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize_population(self) -> list[Genome]:
        """Reset the run and create a population of minimal genomes."""
        self.innovation_tracker.reset()
        self.speciation.reset()

        self._population = [
            create_minimal_genome(
                self.config.input_size,
                self.config.output_size,
                self.innovation_tracker,
                rng=self.rng,
            )
            for _ in range(self.config.population_size)
        ]
        self._generation = 0
        self._best_genome = None
        self.last_statistics = None

        self.speciation.speciate(self._population)

        logger.info(
            "Population initialized",
            population_size=len(self._population),
            species=len(self.speciation.species),
            innovations=self.innovation_tracker.current,
        )

        return self._population

    def start(self) -> None:
        """Mark the engine running; generations are driven by the caller."""
        if self._running:
            logger.warning("Engine already running")
            return

        if not self._population:
            self.initialize_population()

        self._running = True
        self.events.emit(EventType.NEAT_STARTED, {"generation": self._generation})
        logger.info("NEAT evolution started", generation=self._generation)

    def stop(self) -> None:
        """Prevent further generations; an in-flight generation still completes."""
        if not self._running:
            return

        self._running = False
        self.events.emit(EventType.NEAT_STOPPED, {"generation": self._generation})
        logger.info("NEAT evolution stopped", generation=self._generation)

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def state(self) -> EngineState:
        return self._state

    # =========================================================================
    # Generation
    # =========================================================================

    async def run_one_generation(self) -> PopulationStatistics:
        """
        Run exactly one generation.

        Returns:
            Statistics of the population evaluated in this generation
        """
        if self._state != EngineState.IDLE:
            raise RuntimeError(f"A generation is already in progress ({self._state.value})")

        if not self._population:
            self.initialize_population()

        generation = self._generation
        self._state = EngineState.EVALUATING
        try:
            await self.events.publish(
                EventType.GENERATION_STARTED,
                {"generation": generation, "population_size": len(self._population)},
            )

            await self._evaluate_population(generation)

            statistics = compute_statistics(
                self._population, generation, species_count=len(self.speciation.species)
            )
            self._apply_adjusted_fitness()
            self.last_statistics = statistics

            await self.events.publish(
                EventType.FITNESS_STATISTICS,
                {
                    "generation": generation,
                    "max_fitness": statistics.max_fitness,
                    "avg_fitness": statistics.avg_fitness,
                    "min_fitness": statistics.min_fitness,
                },
            )

            self._state = EngineState.SPECIATING
            self.speciation.speciate(self._population)
            species_count = len(self.speciation.species)

            self._state = EngineState.PRUNING
            self.speciation.remove_stagnant_species()

            self._state = EngineState.REPRODUCING
            evaluated = self._population
            self._population = self.reproduction.create_next_generation(
                self.speciation.species,
                evaluated,
                generation=generation + 1,
            )

            self._state = EngineState.ADVANCED
            self._generation += 1
            await self._update_best_genome(evaluated, generation)

            self.history.record_generation(
                generation,
                statistics,
                evaluated,
                species_count=species_count,
                elites=self.reproduction.last_elite_count,
                crossovers=self.reproduction.last_crossover_count,
                mutations=self.reproduction.last_mutation_count,
            )

            best_fitness = self._best_genome.fitness if self._best_genome else 0.0
            await self.events.publish(
                EventType.GENERATION_COMPLETED,
                {
                    "generation": generation,
                    "best_fitness": best_fitness,
                    "avg_fitness": statistics.avg_fitness,
                    "species_count": len(self.speciation.species),
                },
            )

            logger.info(
                f"Generation {generation} complete",
                best_fitness=f"{best_fitness:.4f}",
                avg_fitness=f"{statistics.avg_fitness:.4f}",
                species=len(self.speciation.species),
            )

            return statistics
        finally:
            self._state = EngineState.IDLE

    async def _evaluate_population(self, generation: int) -> None:
        results = await self.evaluator.evaluate(self._population)

        for result in results:
            if result.ok:
                continue
            logger.warning(
                "Fitness evaluation failed",
                generation=generation,
                genome_id=result.genome_id,
                error=str(result.error),
            )
            await self.events.publish(
                EventType.EVALUATION_ERROR,
                {"genome": result.genome_id, "error": str(result.error)},
            )

    def _apply_adjusted_fitness(self) -> None:
        """Share each genome's fitness across the species it currently belongs to."""
        for genome in self._population:
            species = self.speciation.get_species(genome.species_id)
            if species is None or species.size == 0:
                genome.adjusted_fitness = genome.fitness
            else:
                genome.adjusted_fitness = genome.fitness / species.size

    async def _update_best_genome(self, evaluated: list[Genome], generation: int) -> None:
        if not evaluated:
            return

        current_best = evaluated[0]
        for genome in evaluated[1:]:
            if genome.fitness > current_best.fitness:
                current_best = genome

        if self._best_genome is None or current_best.fitness > self._best_genome.fitness:
            self._best_genome = current_best.copy_verbatim()
            logger.info(
                "New best genome",
                generation=generation,
                genome_id=current_best.genome_id,
                fitness=f"{current_best.fitness:.4f}",
            )
            await self.events.publish(
                EventType.NEW_BEST_GENOME,
                {"generation": generation, "genome": self._best_genome.copy_verbatim()},
            )

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def best_genome(self) -> Genome | None:
        return self._best_genome.copy_verbatim() if self._best_genome else None

    @property
    def population(self) -> list[Genome]:
        return [genome.copy_verbatim() for genome in self._population]

    @property
    def species(self) -> list[Species]:
        return list(self.speciation.species)

    def average_fitness(self) -> float:
        if not self._population:
            return 0.0
        return sum(g.fitness for g in self._population) / len(self._population)

    def export_top_genomes(self, count: int = 5) -> list[Genome]:
        """Copies of the fittest genomes of the current population."""
        ranked = sorted(self._population, key=lambda g: g.fitness, reverse=True)
        return [genome.copy_verbatim() for genome in ranked[:count]]

    def build_best_model(self) -> nn.Module | None:
        """PyTorch model of the best-ever genome, or None before any generation."""
        if self._best_genome is None:
            return None

        from .genome.model_builder import ModelBuilder

        return ModelBuilder().build(self._best_genome.architecture)

    def summary(self) -> dict[str, Any]:
        return {
            "generation": self._generation,
            "running": self._running,
            "state": self._state.value,
            "population_size": len(self._population),
            "species_count": len(self.speciation.species),
            "best_fitness": self._best_genome.fitness if self._best_genome else 0.0,
            "innovations": self.innovation_tracker.current,
        }


__all__ = [
    "EngineState",
    "NEATEngine",
]
