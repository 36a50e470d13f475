"""Utility functions for the kingdom engine."""

from kingdoms.utils.rng import RandomSource, SeededRandomSource, SystemRandomSource

__all__ = [
    "RandomSource",
    "SeededRandomSource",
    "SystemRandomSource",
]
