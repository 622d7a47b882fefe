"""Seeded randomness helpers for reproducible fallbacks."""

import random
from typing import Sequence, Tuple, TypeVar

T = TypeVar("T")


def build_rng(*, seed: int | None = None) -> random.Random:
    """Return a deterministic random generator."""
    return random.Random(seed)


def pick(rng: random.Random, items: Sequence[T]) -> T:
    """Pick one element uniformly at random.

    Raises:
        ValueError: If ``items`` is empty.
    """
    if not items:
        raise ValueError("Cannot pick from an empty sequence")
    return items[rng.randrange(len(items))]


def pick_pair(rng: random.Random, items: Sequence[T], *, distinct: bool = True) -> Tuple[T, T]:
    """Pick two elements, distinct by default (e.g. human and AI characters)."""
    if distinct and len(items) >= 2:
        first, second = rng.sample(list(items), 2)
        return first, second
    return pick(rng, items), pick(rng, items)

