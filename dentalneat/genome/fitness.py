"""
Fitness Evaluation Module

The engine treats fitness as an external oracle: something that turns an
architecture into a non-negative number. Oracles may be synchronous,
asynchronous or batched, and may fail; a failing evaluation counts as
fitness 0 and never aborts the other evaluations of a generation.

Also provides the reference complexity-penalised evaluator used by the CLI
and examples.
"""

from __future__ import annotations

import asyncio
import inspect
import math
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Protocol, Union, runtime_checkable

from loguru import logger

from .encoding import Architecture, Genome


# =============================================================================
# Oracle Protocols
# =============================================================================


@runtime_checkable
class FitnessOracle(Protocol):
    """Evaluates one architecture; may return a value or an awaitable."""

    def evaluate(self, architecture: Architecture) -> float | Awaitable[float]:
        ...


@runtime_checkable
class BatchFitnessOracle(Protocol):
    """Evaluates a whole population in one call."""

    def evaluate_batch(
        self,
        architectures: list[Architecture],
    ) -> list[float] | Awaitable[list[float]]:
        ...


OracleLike = Union[FitnessOracle, BatchFitnessOracle, Callable[[Architecture], Any]]


class EvaluationError(Exception):
    """Raised when an oracle result cannot be used as a fitness."""


@dataclass
class EvaluationResult:
    """Outcome of evaluating one genome."""

    genome_id: str
    fitness: float
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def sanitize_fitness(value: Any) -> float:
    """Validate an oracle result: non-finite is an error, negatives floor to 0."""
    try:
        fitness = float(value)
    except (TypeError, ValueError) as e:
        raise EvaluationError(f"Oracle returned a non-numeric fitness: {value!r}") from e

    if not math.isfinite(fitness):
        raise EvaluationError(f"Oracle returned a non-finite fitness: {fitness}")

    return max(0.0, fitness)


# =============================================================================
# Population Evaluator
# =============================================================================


class PopulationEvaluator:
    """
    Evaluates a population against an oracle concurrently.

    Every genome's call is issued at once and awaited together; each result is
    written back to its own genome. Failures (exceptions, timeouts, unusable
    values) yield fitness 0 and are reported in the results.
    """

    def __init__(self, oracle: OracleLike, timeout: float | None = None):
        self.oracle = oracle
        self.timeout = timeout

    async def evaluate(self, population: list[Genome]) -> list[EvaluationResult]:
        if isinstance(self.oracle, BatchFitnessOracle):
            results = await self._evaluate_batch(population)
        else:
            results = await asyncio.gather(
                *(self._evaluate_one(genome) for genome in population)
            )

        for genome, result in zip(population, results):
            genome.fitness = result.fitness
            if result.ok:
                genome.age += 1

        return list(results)

    async def _evaluate_one(self, genome: Genome) -> EvaluationResult:
        try:
            value = await self._with_timeout(self._call(genome.architecture))
            return EvaluationResult(genome.genome_id, sanitize_fitness(value))
        except Exception as e:
            return EvaluationResult(genome.genome_id, 0.0, error=e)

    async def _evaluate_batch(self, population: list[Genome]) -> list[EvaluationResult]:
        architectures = [g.architecture for g in population]
        try:
            values = await self._with_timeout(self._call_batch(architectures))
            values = list(values)
            if len(values) != len(population):
                raise EvaluationError(
                    f"Batch oracle returned {len(values)} values for {len(population)} genomes"
                )
        except Exception as e:
            return [EvaluationResult(g.genome_id, 0.0, error=e) for g in population]

        results = []
        for genome, value in zip(population, values):
            try:
                results.append(EvaluationResult(genome.genome_id, sanitize_fitness(value)))
            except EvaluationError as e:
                results.append(EvaluationResult(genome.genome_id, 0.0, error=e))
        return results

    async def _call(self, architecture: Architecture) -> Any:
        evaluate = getattr(self.oracle, "evaluate", self.oracle)
        if inspect.iscoroutinefunction(evaluate):
            return await evaluate(architecture)

        value = await asyncio.to_thread(evaluate, architecture)
        if inspect.isawaitable(value):
            value = await value
        return value

    async def _call_batch(self, architectures: list[Architecture]) -> Any:
        evaluate_batch = self.oracle.evaluate_batch
        if inspect.iscoroutinefunction(evaluate_batch):
            return await evaluate_batch(architectures)

        values = await asyncio.to_thread(evaluate_batch, architectures)
        if inspect.isawaitable(values):
            values = await values
        return values

    async def _with_timeout(self, awaitable: Awaitable[Any]) -> Any:
        if self.timeout is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=self.timeout)


# =============================================================================
# Reference Oracle
# =============================================================================


@dataclass
class ComplexityPenaltyEvaluator:
    """
    Simulated accuracy minus a structural complexity penalty.

    Fitness = max(0, accuracy - penalty), where accuracy is drawn uniformly
    from [0.7, 1.0) and

        penalty = min(0.3, 0.01 * layers + 0.001 * enabled connections
                           + 0.0001 * total units)

    With ``build_model`` set, the architecture is first built as a PyTorch
    module so architectures that cannot be built fail evaluation.
    """

    seed: int | None = None
    build_model: bool = False
    min_accuracy: float = 0.7
    accuracy_spread: float = 0.3
    max_penalty: float = 0.3
    _rng: random.Random = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._rng = random.Random(self.seed)

    @staticmethod
    def complexity_penalty(architecture: Architecture, max_penalty: float = 0.3) -> float:
        penalty = (
            len(architecture.layers) * 0.01
            + len(architecture.enabled_connections) * 0.001
            + architecture.total_units * 0.0001
        )
        return min(max_penalty, penalty)

    def simulate_accuracy(self) -> float:
        return self.min_accuracy + self._rng.random() * self.accuracy_spread

    def evaluate(self, architecture: Architecture) -> float:
        if self.build_model:
            from .model_builder import ModelBuilder

            model = ModelBuilder().build(architecture)
            logger.debug(
                "Built model for evaluation",
                parameters=ModelBuilder.count_parameters(model),
            )
            del model

        penalty = self.complexity_penalty(architecture, self.max_penalty)
        return max(0.0, self.simulate_accuracy() - penalty)


__all__ = [
    "FitnessOracle",
    "BatchFitnessOracle",
    "OracleLike",
    "EvaluationError",
    "EvaluationResult",
    "PopulationEvaluator",
    "ComplexityPenaltyEvaluator",
    "sanitize_fitness",
]
