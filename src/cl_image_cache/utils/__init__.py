"""Utilities."""

from .profiling import timed

__all__ = ["timed"]
