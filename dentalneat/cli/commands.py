"""
CLI Commands for DentalNEAT.

Provides command-line interface using Click framework.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
import yaml
from loguru import logger

from dentalneat.config import NEATConfig, load_config
from dentalneat.monitoring.logging_config import (
    EngineEventLogger,
    LogContext,
    configure_logging,
    log_error,
)


# Main CLI group
@click.group()
@click.version_option(version="0.1.0")
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path (YAML or JSON)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx, config: Optional[str], verbose: bool):
    """
    DentalNEAT - structural neuroevolution of network architectures.
    """
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose

    configure_logging(log_level="DEBUG" if verbose else "INFO")


def _effective_config(
    config_path: Optional[str],
    population: Optional[int] = None,
    seed: Optional[int] = None,
    delay: Optional[float] = None,
    input_size: Optional[int] = None,
    output_size: Optional[int] = None,
) -> NEATConfig:
    """Load the configuration and apply command line overrides."""
    data = load_config(config_path).model_dump()

    if population is not None:
        data["population_size"] = population
    if input_size is not None:
        data["input_size"] = input_size
    if output_size is not None:
        data["output_size"] = output_size
    if seed is not None:
        data["engine"]["seed"] = seed
    if delay is not None:
        data["engine"]["generation_delay"] = delay

    return NEATConfig(**data)


# Evolution command
@cli.command()
@click.option("--generations", "-g", type=int, default=20, help="Number of generations")
@click.option("--population", "-p", type=int, help="Population size")
@click.option("--seed", "-s", type=int, help="Random seed")
@click.option("--delay", type=float, help="Seconds between generations")
@click.option("--input-size", type=int, help="Units in the input layer")
@click.option("--output-size", type=int, help="Units in the output layer")
@click.option("--target-fitness", type=float, help="Stop once the best fitness reaches this value")
@click.option("--export-history", type=click.Path(), help="Write the evolution history to this JSON file")
@click.pass_context
def run(
    ctx,
    generations: int,
    population: Optional[int],
    seed: Optional[int],
    delay: Optional[float],
    input_size: Optional[int],
    output_size: Optional[int],
    target_fitness: Optional[float],
    export_history: Optional[str],
):
    """Run NEAT evolution against the reference complexity-penalised oracle."""
    try:
        from dentalneat.engine import NEATEngine
        from dentalneat.genome.fitness import ComplexityPenaltyEvaluator
        from dentalneat.runner import EvolutionRunner

        config = _effective_config(
            ctx.obj.get("config"),
            population=population,
            seed=seed,
            delay=delay,
            input_size=input_size,
            output_size=output_size,
        )

        engine = NEATEngine(
            config=config,
            oracle=ComplexityPenaltyEvaluator(seed=config.engine.seed),
        )
        EngineEventLogger().attach(engine.events)

        runner = EvolutionRunner(
            engine,
            max_generations=generations,
            target_fitness=target_fitness,
        )

        with LogContext(seed=config.engine.seed):
            logger.info(
                f"Running {generations} generations",
                population_size=config.population_size,
            )
            best = asyncio.run(runner.run())

        if export_history:
            engine.history.export_to_json(Path(export_history))

        if best is not None:
            click.echo(f"Best genome: {best.genome_id}")
            click.echo(f"Fitness: {best.fitness:.4f}")
            click.echo(f"Architecture: {best.architecture.summary}")

    except Exception as e:
        log_error("Evolution failed", e)
        sys.exit(1)


# Config command
@cli.command()
@click.option("--output", "-o", type=click.Path(), help="Write the configuration to this YAML file")
@click.pass_context
def config(ctx, output: Optional[str]):
    """Show the effective configuration as YAML."""
    try:
        effective = _effective_config(ctx.obj.get("config"))

        if output:
            effective.to_yaml(Path(output))
            logger.success(f"Config written: {output}")
        else:
            click.echo(yaml.dump(effective.model_dump(), default_flow_style=False, sort_keys=False))

    except Exception as e:
        log_error("Failed to show config", e)
        sys.exit(1)


if __name__ == "__main__":
    cli()
