"""
Command Line Interface for DentalNEAT.

Commands:
- dentalneat run: Run evolution against the reference oracle
- dentalneat config: Show the effective configuration
"""

from .commands import cli

__all__ = ["cli"]
