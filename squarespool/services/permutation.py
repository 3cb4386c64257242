"""
Unbiased random permutations.

Fisher-Yates shuffle used for both the grid positions (0-99) and the two
digit label sequences (0-9).
"""

import random
from collections.abc import Sequence
from typing import List, Optional, TypeVar

from .. import config

T = TypeVar('T')


def get_rng(seed: Optional[int] = None) -> random.Random:
    """
    Build the random source for a shuffle run.

    Args:
        seed: Explicit seed; falls back to SHUFFLE_SEED, then OS entropy

    Returns:
        A random.Random instance owned by the caller
    """
    if seed is None:
        seed = config.SHUFFLE_SEED
    return random.Random(seed)


def shuffle(items: Sequence, rng: Optional[random.Random] = None) -> List[T]:
    """
    Return a new list with the items in uniformly random order.

    For i from the last index down to 1, draw j uniformly from [0, i] and
    swap elements i and j. The input is not modified.

    Args:
        items: Finite, non-empty sequence
        rng: Random source; a fresh get_rng() when omitted

    Returns:
        Shuffled copy of items

    Raises:
        TypeError: If items is not a sequence
        ValueError: If items is empty
    """
    if not isinstance(items, Sequence) or isinstance(items, (str, bytes)):
        raise TypeError(f"Expected a finite sequence, got {type(items).__name__}")
    if len(items) == 0:
        raise ValueError("Cannot shuffle an empty sequence")

    rng = rng or get_rng()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
