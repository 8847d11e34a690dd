"""Small helpers shared by course material."""

import random
from typing import Optional, Sequence, TypeVar

T = TypeVar('T')


def sample_no_surprises(x: Sequence[T], rng: Optional[random.Random] = None) -> Sequence[T] | T:
    """Return one random element of x, or x itself if it has at most one element.

    Args:
        x: Sequence to sample from.
        rng: Random generator; defaults to the module-level one.

    Returns:
        x unchanged when len(x) <= 1, otherwise a uniformly chosen element.
    """
    if len(x) <= 1:
        return x
    return (rng or random).choice(x)
