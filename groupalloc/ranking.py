"""Global tie-break ranking over participants."""

import random
from collections.abc import Iterable


def make_rng(seed: int | None = None) -> random.Random:
    """Create the randomness source of one solve; pass a seed for replay."""
    return random.Random(seed)


def global_ranking(participants: Iterable[str], rng: random.Random) -> dict[str, int]:
    """Draw a uniformly random strict order over the participants.

    The roster is sorted before shuffling so the ranking depends only on
    the participant set and the state of ``rng``, not on input order.

    Returns:
        Dictionary mapping participant -> rank in [0, N); lower rank wins ties
    """
    order = sorted(set(participants))
    rng.shuffle(order)
    return {participant: rank for rank, participant in enumerate(order)}
