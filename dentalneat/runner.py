"""
Evolution Runner

Drives a ``NEATEngine`` generation after generation. The engine only knows how
to run a single generation; the runner decides whether and when to run the
next one, based on the engine's running flag and its own stopping criteria.
"""

from __future__ import annotations

import asyncio
import time

from loguru import logger

from .engine import NEATEngine
from .genome.encoding import Genome


class EvolutionRunner:
    """
    Cooperative generation loop.

    Stops when the engine is stopped, after ``max_generations`` generations,
    or once the best-ever fitness reaches ``target_fitness``.
    """

    def __init__(
        self,
        engine: NEATEngine,
        generation_delay: float | None = None,
        max_generations: int | None = None,
        target_fitness: float | None = None,
    ):
        """
        Initialize runner.

        Args:
            engine: Engine to drive
            generation_delay: Seconds to wait between generations (engine config if None)
            max_generations: Generations to run before stopping (unbounded if None)
            target_fitness: Stop once the best fitness reaches this value
        """
        if generation_delay is None:
            generation_delay = engine.config.engine.generation_delay
        if generation_delay < 0:
            raise ValueError(f"generation_delay must be >= 0 (got {generation_delay})")
        if max_generations is not None and max_generations < 1:
            raise ValueError(f"max_generations must be >= 1 (got {max_generations})")

        self.engine = engine
        self.generation_delay = generation_delay
        self.max_generations = max_generations
        self.target_fitness = target_fitness

        self.generations_run = 0

    async def run(self) -> Genome | None:
        """
        Run generations until a stopping condition holds.

        Returns:
            Best genome found
        """
        self.engine.start()
        self.generations_run = 0
        start_time = time.time()

        try:
            while self.engine.is_running:
                await self.engine.run_one_generation()
                self.generations_run += 1

                if self._should_stop():
                    break

                if not self.engine.is_running:
                    break

                await asyncio.sleep(self.generation_delay)
        finally:
            self.engine.stop()

        best = self.engine.best_genome
        logger.info(
            "Evolution run finished",
            generations=self.generations_run,
            best_fitness=f"{best.fitness:.4f}" if best else "n/a",
            total_time=f"{time.time() - start_time:.1f}s",
        )

        return best

    def stop(self) -> None:
        """Request a stop; the generation in flight completes first."""
        self.engine.stop()

    def _should_stop(self) -> bool:
        if self.max_generations is not None and self.generations_run >= self.max_generations:
            logger.info("Maximum generations reached", generations=self.generations_run)
            return True

        best = self.engine.best_genome
        if self.target_fitness is not None and best is not None and best.fitness >= self.target_fitness:
            logger.info("Target fitness reached", fitness=f"{best.fitness:.4f}")
            return True

        return False


__all__ = ["EvolutionRunner"]
