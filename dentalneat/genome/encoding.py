"""
Genome Encoding Module

Defines the genetic representation of feed-forward network architectures:
layers, connection genes carrying innovation numbers, the architecture they
form together, and the genome that wraps an architecture with evolutionary
bookkeeping.

All value types are Pydantic v2 models so they validate on assignment and
serialise to plain dictionaries/JSON.
"""

from __future__ import annotations

import json
import random
import uuid
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .innovation import InnovationTracker


# Fixed option sets used by mutation and crossover
ACTIVATION_FUNCTIONS: tuple[str, ...] = (
    "relu",
    "sigmoid",
    "tanh",
    "elu",
    "selu",
    "softmax",
    "linear",
)

OPTIMIZERS: tuple[str, ...] = ("adam", "sgd", "rmsprop", "adagrad")

LOSS_FUNCTIONS: tuple[str, ...] = (
    "categorical_crossentropy",
    "binary_crossentropy",
    "mse",
)

MIN_LEARNING_RATE = 0.0001
MAX_LEARNING_RATE = 0.1


class LayerRole(str, Enum):
    """Position of a layer in the feed-forward stack."""

    INPUT = "input"
    HIDDEN = "hidden"
    OUTPUT = "output"


def new_hidden_layer_id() -> str:
    return f"hidden_{uuid.uuid4().hex[:12]}"


def new_genome_id(prefix: str = "genome") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class Layer(BaseModel):
    """
    One node group of the architecture.

    Uses Pydantic v2 for validation and serialization.
    """
    model_config = ConfigDict(frozen=False, validate_assignment=True)

    id: str
    role: LayerRole
    units: int = Field(ge=1)
    activation: str = "linear"
    dropout: float = Field(default=0.0, ge=0.0, lt=1.0)
    batch_normalization: bool = False

    def owns(self, endpoint: str) -> bool:
        """Whether a connection endpoint refers to this layer or one of its units."""
        if endpoint == self.id:
            return True
        prefix = f"{self.id}_"
        return endpoint.startswith(prefix) and endpoint[len(prefix):].isdigit()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization"""
        return self.model_dump(mode="json")


class ConnectionGene(BaseModel):
    """Directed edge between two layer endpoints, stamped with an innovation number."""
    model_config = ConfigDict(frozen=False, validate_assignment=True)

    source: str
    target: str
    weight: float
    enabled: bool = True
    innovation: int = Field(ge=0)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class Architecture(BaseModel):
    """
    Ordered layers plus connection genes and training hyperparameters.

    ``activation_functions`` is derived from the layers rather than stored, so
    it always reflects the current layer activations.
    """
    model_config = ConfigDict(frozen=False, validate_assignment=True)

    layers: list[Layer] = Field(default_factory=list)
    connections: list[ConnectionGene] = Field(default_factory=list)

    learning_rate: float = Field(default=0.001, ge=MIN_LEARNING_RATE, le=MAX_LEARNING_RATE)
    optimizer: str = "adam"
    loss_function: str = "categorical_crossentropy"

    @property
    def activation_functions(self) -> list[str]:
        """Activation names used by the layers, in first-use order."""
        return list(dict.fromkeys(layer.activation for layer in self.layers))

    @property
    def input_layer(self) -> Layer:
        return next(layer for layer in self.layers if layer.role == LayerRole.INPUT)

    @property
    def output_layer(self) -> Layer:
        return next(layer for layer in self.layers if layer.role == LayerRole.OUTPUT)

    @property
    def hidden_layers(self) -> list[Layer]:
        return [layer for layer in self.layers if layer.role == LayerRole.HIDDEN]

    @property
    def enabled_connections(self) -> list[ConnectionGene]:
        return [conn for conn in self.connections if conn.enabled]

    @property
    def total_units(self) -> int:
        return sum(layer.units for layer in self.layers)

    @property
    def max_innovation(self) -> int:
        """Highest innovation number present, -1 when there are no connections."""
        return max((conn.innovation for conn in self.connections), default=-1)

    def connection_by_innovation(self) -> dict[int, ConnectionGene]:
        return {conn.innovation: conn for conn in self.connections}

    def find_layer(self, endpoint: str) -> Layer | None:
        return next((layer for layer in self.layers if layer.owns(endpoint)), None)

    @property
    def summary(self) -> str:
        """Human-readable architecture summary"""
        stack = " -> ".join(f"{layer.units}:{layer.activation}" for layer in self.layers)
        return f"{stack} | {len(self.connections)} connections | lr={self.learning_rate:.5f}"

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class Genome(BaseModel):
    """
    One architecture plus its evolutionary bookkeeping.

    ``species_id`` is None until the genome has been through a speciation pass.
    """
    model_config = ConfigDict(frozen=False, validate_assignment=True)

    # Identity
    genome_id: str = Field(default_factory=new_genome_id)
    generation: int = Field(default=0, ge=0)
    parent_genomes: list[str] = Field(default_factory=list)

    architecture: Architecture

    # Fitness tracking
    fitness: float = Field(default=0.0, ge=0.0)
    adjusted_fitness: float = Field(default=0.0, ge=0.0)
    species_id: int | None = None
    age: int = Field(default=0, ge=0)

    historical_markers: list[int] = Field(default_factory=list)

    def __hash__(self) -> int:
        return hash(self.genome_id)

    @property
    def total_layers(self) -> int:
        return len(self.architecture.layers)

    def clone(self, prefix: str = "genome") -> Genome:
        """
        Deep copy with a fresh id and reset fitness state; the source becomes the parent.

        The child stays in the source's species until the next speciation pass,
        so its fitness is shared like every other member's.
        """
        child = self.model_copy(deep=True)
        child.genome_id = new_genome_id(prefix)
        child.parent_genomes = [self.genome_id]
        child.fitness = 0.0
        child.adjusted_fitness = 0.0
        child.age = 0
        return child

    def copy_verbatim(self) -> Genome:
        """Deep copy that keeps every field, id included."""
        return self.model_copy(deep=True)

    def to_dict(self) -> dict[str, Any]:
        """Convert genome to dictionary for serialization"""
        return self.model_dump(mode="json")

    def to_json(self, pretty: bool = True) -> str:
        data = self.to_dict()
        if pretty:
            return json.dumps(data, indent=2)
        return json.dumps(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Genome:
        return cls.model_validate(data)

    @classmethod
    def from_json(cls, json_str: str) -> Genome:
        return cls.from_dict(json.loads(json_str))


def create_minimal_genome(
    input_size: int,
    output_size: int,
    innovation_tracker: InnovationTracker,
    rng: random.Random | None = None,
    genome_id: str | None = None,
) -> Genome:
    """
    Build the starting genome: one input and one output layer, fully connected
    unit-to-unit with fresh innovation numbers and weights uniform in [-1, 1].
    """
    rng = rng or random.Random()
    layers = [
        Layer(id="input", role=LayerRole.INPUT, units=input_size, activation="linear"),
        Layer(id="output", role=LayerRole.OUTPUT, units=output_size, activation="softmax"),
    ]

    connections = []
    for i in range(input_size):
        for j in range(output_size):
            connections.append(
                ConnectionGene(
                    source=f"input_{i}",
                    target=f"output_{j}",
                    weight=rng.uniform(-1.0, 1.0),
                    enabled=True,
                    innovation=innovation_tracker.next(),
                )
            )

    genome = Genome(
        architecture=Architecture(layers=layers, connections=connections),
    )
    if genome_id is not None:
        genome.genome_id = genome_id
    return genome


__all__ = [
    "ACTIVATION_FUNCTIONS",
    "OPTIMIZERS",
    "LOSS_FUNCTIONS",
    "MIN_LEARNING_RATE",
    "MAX_LEARNING_RATE",
    "LayerRole",
    "Layer",
    "ConnectionGene",
    "Architecture",
    "Genome",
    "create_minimal_genome",
    "new_genome_id",
    "new_hidden_layer_id",
]
