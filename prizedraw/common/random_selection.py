"""Cryptographically secure winner sampling.

Selection never touches the ``random`` module: every index comes from
``secrets.randbelow`` so draws cannot be predicted or replayed from a seed.
"""

import logging
import secrets
from typing import Iterable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def secure_random_index(pool_size: int) -> int:
    """Uniform index in ``[0, pool_size)`` from the OS CSPRNG."""
    if pool_size <= 0:
        raise ValueError("pool_size must be a positive integer")
    return secrets.randbelow(pool_size)


def sample_without_replacement(pool: Sequence[T], count: int) -> list[T]:
    """Pick ``min(count, len(pool))`` distinct positions by rejection sampling.

    Indices are drawn until enough unique ones have been seen, collisions are
    simply redrawn. Pools are small so the expected number of retries stays
    negligible. Items are returned in the order they were picked.
    """
    if count <= 0 or not pool:
        return []

    actual_count = min(count, len(pool))
    chosen: set[int] = set()
    picked: list[T] = []

    while len(picked) < actual_count:
        index = secure_random_index(len(pool))
        if index in chosen:
            continue
        chosen.add(index)
        picked.append(pool[index])

    return picked


def prefer_new_winners(pool: Sequence[str], previous_winners: Iterable[str]) -> list[str]:
    """Drop users who already won in this draw unless that empties the pool.

    Small member bases would otherwise deadlock a multi-prize draw, so when
    every candidate has already won the unfiltered pool is used instead.
    """
    excluded = set(previous_winners)
    filtered = [user_id for user_id in pool if user_id not in excluded]

    if filtered:
        return filtered

    if pool:
        logger.warning(
            f"All {len(pool)} eligible users already won in this draw, "
            "falling back to the unfiltered pool"
        )
    return list(pool)
