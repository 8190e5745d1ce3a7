"""Command-line interface for UI parity verification."""

from .main import cli

__all__ = ["cli"]
