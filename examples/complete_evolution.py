"""
Complete Evolution Example

Demonstrates end-to-end multi-generation architecture evolution, scoring each
genome by briefly training its PyTorch model on a synthetic classification
task.
"""

import asyncio

import torch
import torch.nn as nn
from torch.utils.data import DataLoader, TensorDataset

from dentalneat import (
    EventType,
    EvolutionRunner,
    NEATConfig,
    NEATEngine,
    load_config,
)
from dentalneat.config import EngineSettings
from dentalneat.genome.model_builder import ModelBuilder


class TrainingOracle:
    """Fitness = validation accuracy after a short training run."""

    def __init__(self, train_loader: DataLoader, val_loader: DataLoader, epochs: int = 2):
        self.train_loader = train_loader
        self.val_loader = val_loader
        self.epochs = epochs
        self.builder = ModelBuilder()

    def evaluate(self, architecture) -> float:
        model = self.builder.build(architecture)
        optimizer = self.builder.build_optimizer(model, architecture)
        # Class indices as targets, whatever the evolved loss name
        criterion = nn.CrossEntropyLoss()

        model.train()
        for _ in range(self.epochs):
            for inputs, labels in self.train_loader:
                optimizer.zero_grad()
                loss = criterion(model(inputs), labels)
                loss.backward()
                optimizer.step()

        model.eval()
        correct = total = 0
        with torch.no_grad():
            for inputs, labels in self.val_loader:
                predictions = model(inputs).argmax(dim=-1)
                correct += (predictions == labels).sum().item()
                total += labels.numel()

        return correct / total if total else 0.0


def make_loaders(input_size: int, num_classes: int, batch_size: int = 32):
    """Linearly separable synthetic data."""
    generator = torch.Generator().manual_seed(0)
    projection = torch.randn(input_size, num_classes, generator=generator)

    def split(samples: int) -> TensorDataset:
        inputs = torch.randn(samples, input_size, generator=generator)
        labels = (inputs @ projection).argmax(dim=-1)
        return TensorDataset(inputs, labels)

    return (
        DataLoader(split(512), batch_size=batch_size, shuffle=True),
        DataLoader(split(128), batch_size=batch_size),
    )


async def main():
    print("=" * 80)
    print("DENTALNEAT COMPLETE EVOLUTION EXAMPLE")
    print("=" * 80)
    print()

    # ==========================================================================
    # STEP 1: Configuration
    # ==========================================================================
    print("Step 1: Loading configuration...")

    try:
        config = load_config("dentalneat.yaml")
        print("   Loaded config from dentalneat.yaml")
    except FileNotFoundError:
        config = NEATConfig(
            population_size=12,
            input_size=8,
            output_size=3,
            max_hidden_layers=2,
            max_units_per_layer=32,
            engine=EngineSettings(seed=7, generation_delay=0.0),
        )
        print("   Using example configuration")

    print(f"   Population: {config.population_size}")
    print(f"   Inputs/outputs: {config.input_size}/{config.output_size}")
    print()

    # ==========================================================================
    # STEP 2: Training Data
    # ==========================================================================
    print("Step 2: Creating training data...")
    train_loader, val_loader = make_loaders(config.input_size, config.output_size)
    print(f"   Training batches: {len(train_loader)}")
    print()

    # ==========================================================================
    # STEP 3: Engine
    # ==========================================================================
    print("Step 3: Initializing engine...")
    engine = NEATEngine(config=config, oracle=TrainingOracle(train_loader, val_loader))

    def on_generation(event):
        data = event.data
        print(
            f"   {data['generation']:>10} | "
            f"{data['best_fitness']:>12.4f} | "
            f"{data['avg_fitness']:>11.4f} | "
            f"{data['species_count']:>7}"
        )

    def on_new_best(event):
        genome = event.data["genome"]
        print(f"   * new best {genome.fitness:.4f}: {genome.architecture.summary}")

    engine.events.register_handler(EventType.GENERATION_COMPLETED, on_generation)
    engine.events.register_handler(EventType.NEW_BEST_GENOME, on_new_best)
    print()

    # ==========================================================================
    # STEP 4: Evolution
    # ==========================================================================
    print("Step 4: Evolving...")
    print("   Generation | Best Fitness | Avg Fitness | Species")
    print("   " + "-" * 52)

    runner = EvolutionRunner(engine, max_generations=10, target_fitness=0.98)
    best = await runner.run()
    print()

    # ==========================================================================
    # STEP 5: Results
    # ==========================================================================
    print("Step 5: Results")
    summary = engine.history.compute_summary()
    print(f"   Generations completed: {summary['total_generations']}")
    print(f"   Genomes evaluated: {summary['total_genomes']}")
    print(f"   Improvement: {summary.get('fitness_improvement', 0.0):+.4f}")

    if best is not None:
        model = engine.build_best_model()
        print(f"   Best genome: {best.genome_id}")
        print(f"   Architecture: {best.architecture.summary}")
        print(f"   Parameters: {ModelBuilder.count_parameters(model):,}")

    print()
    print("=" * 80)
    print("EVOLUTION COMPLETE")
    print("=" * 80)


if __name__ == "__main__":
    asyncio.run(main())
