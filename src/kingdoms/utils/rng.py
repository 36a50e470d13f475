"""Pluggable random sources for content generation.

Randomness in the engine is limited to cosmetic content (NPC market offers)
and always flows through a :class:`RandomSource`, so callers can swap in a
seeded source and get reproducible output.

Examples:
    >>> source = SeededRandomSource("kingdom:7:npc_offers")
    >>> source.choice(["gold", "wood", "stone"]) in {"gold", "wood", "stone"}
    True
"""

from __future__ import annotations

import hashlib
import random
from collections.abc import Sequence
from typing import Protocol, TypeVar

T = TypeVar("T")


class RandomSource(Protocol):
    """Minimal interface the generators depend on."""

    def choice(self, options: Sequence[T]) -> T:
        """Return one element of a non-empty sequence."""
        ...


def _seed_to_int(seed: str) -> int:
    """Convert seed string to a stable 64-bit integer for random.Random().

    Args:
        seed: Seed string

    Returns:
        64-bit integer derived from SHA-256(seed)
    """
    digest = hashlib.sha256(seed.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big", signed=False)


class SeededRandomSource:
    """Deterministic source: the same seed string replays the same choices."""

    def __init__(self, seed: str) -> None:
        self.seed = seed
        self._rng = random.Random(_seed_to_int(seed))

    def choice(self, options: Sequence[T]) -> T:
        if not options:
            raise ValueError("options cannot be empty")
        return options[self._rng.randrange(len(options))]


class SystemRandomSource:
    """Unseeded source used in production."""

    def __init__(self) -> None:
        self._rng = random.Random()

    def choice(self, options: Sequence[T]) -> T:
        if not options:
            raise ValueError("options cannot be empty")
        return options[self._rng.randrange(len(options))]
