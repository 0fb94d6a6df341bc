"""
Model Builder - Convert Architectures to PyTorch Models

Builds executable feed-forward PyTorch models from evolved architectures so
an oracle can train and score them.

Supports:
- Every activation in the architecture option set
- Per-layer dropout and batch normalization
- Optimizer and loss construction from the architecture hyperparameters
- Parameter counting
"""

from __future__ import annotations

import torch
import torch.nn as nn
from loguru import logger

from .encoding import Architecture, Genome, LayerRole


# =============================================================================
# Activation Functions
# =============================================================================


class ActivationFactory:
    """Factory for creating activation functions."""

    @staticmethod
    def create(activation: str) -> nn.Module:
        """Create activation module from its name."""
        activation_map = {
            "relu": nn.ReLU,
            "sigmoid": nn.Sigmoid,
            "tanh": nn.Tanh,
            "elu": nn.ELU,
            "selu": nn.SELU,
            "linear": nn.Identity,
        }

        if activation == "softmax":
            return nn.Softmax(dim=-1)

        if activation not in activation_map:
            raise ValueError(f"Unknown activation function: '{activation}'")

        return activation_map[activation]()


# =============================================================================
# Model Builder
# =============================================================================


class ModelBuilder:
    """
    Build PyTorch models from architecture specifications.

    Each non-input layer becomes ``[Dropout] [BatchNorm1d] Linear Activation``
    fed by the previous layer's units. Connection genes are evolutionary
    bookkeeping and do not change the dense layer wiring.
    """

    def build(self, architecture: Architecture | Genome) -> nn.Sequential:
        """
        Build a sequential model.

        Args:
            architecture: Architecture (or genome wrapping one)

        Returns:
            Executable PyTorch model
        """
        if isinstance(architecture, Genome):
            architecture = architecture.architecture

        errors = self.validate_architecture(architecture)
        if errors:
            raise ValueError(f"Cannot build model: {', '.join(errors)}")

        modules: list[nn.Module] = []
        in_features = architecture.layers[0].units

        for layer in architecture.layers[1:]:
            if layer.dropout > 0:
                modules.append(nn.Dropout(p=layer.dropout))
            if layer.batch_normalization:
                modules.append(nn.BatchNorm1d(in_features))
            modules.append(nn.Linear(in_features, layer.units))
            modules.append(ActivationFactory.create(layer.activation))
            in_features = layer.units

        model = nn.Sequential(*modules)

        logger.debug(
            "Built model from architecture",
            layers=len(architecture.layers),
            parameters=f"{self.count_parameters(model):,}",
        )

        return model

    def build_optimizer(
        self,
        model: nn.Module,
        architecture: Architecture,
    ) -> torch.optim.Optimizer:
        """Create the architecture's optimizer over the model parameters."""
        optimizer_map = {
            "adam": torch.optim.Adam,
            "sgd": torch.optim.SGD,
            "rmsprop": torch.optim.RMSprop,
            "adagrad": torch.optim.Adagrad,
        }

        if architecture.optimizer not in optimizer_map:
            raise ValueError(f"Unknown optimizer: '{architecture.optimizer}'")

        return optimizer_map[architecture.optimizer](
            model.parameters(),
            lr=architecture.learning_rate,
        )

    def build_loss(self, architecture: Architecture) -> nn.Module:
        loss_map = {
            "categorical_crossentropy": nn.CrossEntropyLoss,
            "binary_crossentropy": nn.BCELoss,
            "mse": nn.MSELoss,
        }

        if architecture.loss_function not in loss_map:
            raise ValueError(f"Unknown loss function: '{architecture.loss_function}'")

        return loss_map[architecture.loss_function]()

    def validate_architecture(self, architecture: Architecture) -> list[str]:
        """
        Validate architecture layout.

        Returns:
            List of validation errors
        """
        errors = []
        layers = architecture.layers

        if len(layers) < 2:
            errors.append("architecture needs an input and an output layer")
            return errors

        if layers[0].role != LayerRole.INPUT:
            errors.append("first layer is not the input layer")
        if layers[-1].role != LayerRole.OUTPUT:
            errors.append("last layer is not the output layer")

        return errors

    @staticmethod
    def count_parameters(model: nn.Module) -> int:
        return sum(p.numel() for p in model.parameters())


__all__ = [
    "ActivationFactory",
    "ModelBuilder",
]
