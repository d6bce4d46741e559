"""Type definitions for the group allocation solver."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum


class SolverStatus(Enum):
    """Status of the solver result."""

    FEASIBLE = "Feasible"
    STRUCTURALLY_INFEASIBLE = "Structurally Infeasible"
    UNSOLVABLE = "Unsolvable"


class AssignmentStatus(Enum):
    """Status of a participant's assignment."""

    ASSIGNED = "ASSIGNED"
    UNASSIGNED = "UNASSIGNED"
    NO_PREFERENCES = "NO_PREFERENCES"


class RepairAction(Enum):
    """Decision taken by the feasibility controller after a matching round."""

    FEASIBLE = "feasible"
    SHRINK = "shrink"
    CLOSE = "close"


@dataclass(frozen=True)
class GroupSpec:
    """A capacity-bounded group participants can be assigned to."""

    id: str
    min_size: int
    max_size: int
    optional: bool = False

    def __post_init__(self):
        if self.min_size < 0:
            raise ValueError(f"min_size of group {self.id} must be >= 0")
        if self.max_size < self.min_size:
            raise ValueError(f"max_size of group {self.id} must be >= min_size")


@dataclass(frozen=True)
class Rating:
    """A single raw rating; higher scores are preferred."""

    participant_id: str
    group_id: str
    score: int


@dataclass(frozen=True)
class CapacityConfig:
    """Current upper bounds of all groups.

    Instances are never mutated: the repair operations return a new
    configuration so every round of the repair loop can be inspected
    on its own.
    """

    max_sizes: Mapping[str, int]
    closed: frozenset[str] = frozenset()

    @classmethod
    def from_groups(cls, groups: Iterable[GroupSpec]) -> "CapacityConfig":
        return cls(max_sizes={group.id: group.max_size for group in groups})

    def max_size(self, group_id: str) -> int:
        return 0 if group_id in self.closed else self.max_sizes[group_id]

    def min_size(self, group: GroupSpec) -> int:
        return 0 if group.id in self.closed else group.min_size

    def is_open(self, group_id: str) -> bool:
        return group_id not in self.closed

    def total(self) -> int:
        return sum(self.max_size(group_id) for group_id in self.max_sizes)

    def shrink(self, reductions: Mapping[str, int]) -> "CapacityConfig":
        """Return a configuration with each group's max_size lowered by its reduction."""
        max_sizes = dict(self.max_sizes)
        for group_id, amount in reductions.items():
            if amount < 0 or amount > max_sizes[group_id]:
                raise ValueError(f"Cannot shrink group {group_id} by {amount}")
            max_sizes[group_id] -= amount
        return CapacityConfig(max_sizes=max_sizes, closed=self.closed)

    def close(self, group_id: str) -> "CapacityConfig":
        """Return a configuration in which the group holds nobody."""
        if group_id not in self.max_sizes:
            raise KeyError(group_id)
        max_sizes = dict(self.max_sizes)
        max_sizes[group_id] = 0
        return CapacityConfig(max_sizes=max_sizes, closed=self.closed | {group_id})


@dataclass(frozen=True)
class MatchingRound:
    """Converged state of one deferred acceptance run."""

    waiting_lists: dict[str, tuple[str, ...]]  # group -> participants by rank
    current_choice: dict[str, str | None]  # participant -> group
    passes: int = 0
    rejections: int = 0

    def held(self, group_id: str) -> int:
        return len(self.waiting_lists.get(group_id, ()))


@dataclass(frozen=True)
class ChoiceCounts:
    """Assignment counters of one group after a matching round."""

    group_id: str
    held: int
    missing_places: int
    movable_assignments: int
    free_places: int


@dataclass(frozen=True)
class RepairStep:
    """One decision of the repair loop."""

    round_index: int
    action: RepairAction
    missing_places: int
    movable_assignments: int
    changes: dict[str, int] = field(default_factory=dict)  # group -> seats removed


@dataclass
class ParticipantAssignment:
    """Assignment result for a single participant."""

    group: str
    status: AssignmentStatus
    preference_rank: int | None = None
    preference_score: int = 0


@dataclass
class Metrics:
    """Metrics for solver results."""

    preference_satisfaction: int
    active_groups: int
    average_satisfaction: float
    preference_distribution: dict[int | str, int]
    closed_groups: list[str]
    shrunk_groups: dict[str, int]
    repair_rounds: int
    constraint_violations: list[str] = field(default_factory=list)


@dataclass
class SolverResult:
    """Complete result from the solver."""

    status: SolverStatus
    assignments: dict[str, list[str]]  # group -> [participants] ordered by rank
    group_counts: dict[str, int]
    participant_assignments: dict[str, ParticipantAssignment]
    capacities: CapacityConfig | None = None
    repair_log: list[RepairStep] = field(default_factory=list)
    ranking: dict[str, int] = field(default_factory=dict)
    metrics: Metrics | None = None
