"""
Innovation Tracking

Every newly created connection gene is stamped with an innovation number so
that homologous genes can be recognised across genomes. The tracker is owned
by one engine instance and handed to whatever mints connections.
"""

from __future__ import annotations

from loguru import logger


class InnovationTracker:
    """Monotonic innovation counter; numbers are never reused or skipped."""

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError(f"start must be >= 0 (got {start})")
        self._next = start

    @property
    def current(self) -> int:
        """Number the next call to ``next()`` will return."""
        return self._next

    def next(self) -> int:
        innovation = self._next
        self._next += 1
        return innovation

    def reset(self) -> None:
        logger.debug("Resetting innovation counter", issued=self._next)
        self._next = 0

    def __repr__(self) -> str:
        return f"InnovationTracker(current={self._next})"


__all__ = ["InnovationTracker"]
