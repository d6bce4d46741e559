"""Configuration of a solve."""

from dataclasses import dataclass, field

from groupalloc.matching import ALGORITHMS
from groupalloc.preferences import DEFAULT_EXCLUDED_SCORES


@dataclass
class SolverConfig:
    """
    Settings for one allocation solve.

    Attributes:
        algorithm: Name of the matching strategy (see matching.ALGORITHMS)
        seed: Seed of the tie-break ranking; None draws a fresh one
        max_rounds: Cap on matching rounds of the repair loop; None is unbounded
        excluded_scores: Rating scores that mean "unwilling"
        max_no: Maximum number of "unwilling" ratings per participant;
            None disables the check
    """

    algorithm: str = "deferred_acceptance"
    seed: int | None = None
    max_rounds: int | None = None
    excluded_scores: frozenset[int] = field(default_factory=lambda: DEFAULT_EXCLUDED_SCORES)
    max_no: int | None = None

    def __post_init__(self):
        if self.algorithm not in ALGORITHMS:
            raise ValueError(
                f"algorithm must be one of: {', '.join(sorted(ALGORITHMS))}"
            )
        if self.max_rounds is not None and self.max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        if self.max_no is not None and self.max_no < 0:
            raise ValueError("max_no must be >= 0")
        self.excluded_scores = frozenset(self.excluded_scores)
