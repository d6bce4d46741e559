"""Solver module assigning participants to capacity-bounded groups by deferred acceptance."""

import logging
import random
from collections import defaultdict
from collections.abc import Iterable, Sequence

from groupalloc.config import SolverConfig
from groupalloc.feasibility import FeasibilityController, RepairOutcome
from groupalloc.matching import get_algorithm
from groupalloc.preferences import build_preference_lists, preference_scores
from groupalloc.ranking import global_ranking, make_rng
from groupalloc.strategy import validate_max_no
from groupalloc.types import (
    AssignmentStatus,
    GroupSpec,
    Metrics,
    ParticipantAssignment,
    Rating,
    RepairAction,
    SolverResult,
    SolverStatus,
)

logger = logging.getLogger(__name__)


def _find_preference_rank(prefs: list[str], group_id: str) -> int | None:
    """Find the 1-based rank of a group in a participant's preference list."""
    try:
        return prefs.index(group_id) + 1
    except ValueError:
        return None


def _check_unique(ids: Sequence[str], kind: str) -> None:
    seen: set[str] = set()
    for item in ids:
        if item in seen:
            raise ValueError(f"Duplicate {kind} id '{item}'")
        seen.add(item)


class AllocationSolver:
    """
    Deferred-acceptance solver for capacity-bounded group allocation.

    Participants propose to groups in order of their ratings; groups hold
    proposers by a random global ranking up to their max_size. When the
    converged matching leaves groups below their min_size, capacities are
    shrunk or optional groups are closed and the matching is recomputed.

    Attributes:
        groups: Group specifications
        ratings: Raw ratings
        participants: List of participant IDs
        config: Solver settings
        rng: Randomness source of the tie-break ranking
    """

    def __init__(
        self,
        groups: Sequence[GroupSpec],
        ratings: Iterable[Rating],
        participants: Sequence[str],
        config: SolverConfig | None = None,
        rng: random.Random | None = None,
    ):
        """
        Initialize the solver with problem data.

        Parameters:
            groups: Group specifications with min/max sizes and optional flag
            ratings: Ratings, e.g. [Rating('p1', 'g1', 5), ...]
            participants: List of participant IDs
            config: Solver settings (default: SolverConfig())
            rng: Randomness source; overrides config.seed when given

        Raises:
            ValueError: If group or participant IDs are duplicated
        """
        self.groups = list(groups)
        self.ratings = list(ratings)
        self.participants = list(participants)
        self.config = config or SolverConfig()
        self.rng = rng if rng is not None else make_rng(self.config.seed)

        _check_unique([group.id for group in self.groups], "group")
        _check_unique(self.participants, "participant")

        self.preferences: dict[str, list[str]] = {}
        self.ranking: dict[str, int] = {}

    def _validate_ratings(self) -> None:
        if self.config.max_no is None:
            return
        offenders = validate_max_no(self.ratings, self.config.max_no)
        if offenders:
            names = ", ".join(sorted(offenders))
            raise ValueError(
                f"Participants with more than {self.config.max_no} 'no' ratings: {names}"
            )

    def _process_assignments(
        self, outcome: RepairOutcome
    ) -> tuple[dict[str, list[str]], dict[str, ParticipantAssignment]]:
        """
        Extract assignments from the final matching.

        Returns:
            Tuple of (group_assignments, participant_assignments)
        """
        scores = preference_scores(self.ratings)
        group_assignments = {
            group.id: list(outcome.matching.waiting_lists.get(group.id, ()))
            for group in self.groups
        }
        participant_assignments: dict[str, ParticipantAssignment] = {}

        for participant in self.participants:
            prefs = self.preferences[participant]
            group_id = outcome.matching.current_choice.get(participant)

            if not prefs:
                status = AssignmentStatus.NO_PREFERENCES
            elif group_id is None:
                status = AssignmentStatus.UNASSIGNED
            else:
                participant_assignments[participant] = ParticipantAssignment(
                    group=group_id,
                    status=AssignmentStatus.ASSIGNED,
                    preference_rank=_find_preference_rank(prefs, group_id),
                    preference_score=scores.get((participant, group_id), 0),
                )
                continue

            participant_assignments[participant] = ParticipantAssignment(
                group="", status=status
            )

        return group_assignments, participant_assignments

    def _calculate_metrics(
        self,
        outcome: RepairOutcome,
        group_assignments: dict[str, list[str]],
        participant_assignments: dict[str, ParticipantAssignment],
    ) -> Metrics:
        """Calculate metrics from the final assignments."""
        preference_satisfaction = sum(
            assignment.preference_score for assignment in participant_assignments.values()
        )
        active_groups = sum(1 for assigned in group_assignments.values() if assigned)

        preference_distribution: dict[int | str, int] = defaultdict(int)
        for assignment in participant_assignments.values():
            if assignment.status == AssignmentStatus.UNASSIGNED:
                preference_distribution["unassigned"] += 1
            elif assignment.status == AssignmentStatus.NO_PREFERENCES:
                preference_distribution["no_preferences"] += 1
            elif assignment.preference_rank is not None:
                preference_distribution[assignment.preference_rank] += 1

        shrunk_groups: dict[str, int] = defaultdict(int)
        for step in outcome.repair_log:
            if step.action == RepairAction.SHRINK:
                for group_id, seats in step.changes.items():
                    shrunk_groups[group_id] += seats

        # Double-check the bounds the repair loop guarantees
        capacities = outcome.capacities
        constraint_violations = []
        for group in self.groups:
            count = len(group_assignments[group.id])
            low, high = capacities.min_size(group), capacities.max_size(group.id)
            if not low <= count <= high:
                constraint_violations.append(
                    f"Group {group.id} has {count} participants, but should have {low}-{high}"
                )

        return Metrics(
            preference_satisfaction=preference_satisfaction,
            active_groups=active_groups,
            average_satisfaction=(
                preference_satisfaction / len(self.participants) if self.participants else 0.0
            ),
            preference_distribution=dict(preference_distribution),
            closed_groups=sorted(capacities.closed),
            shrunk_groups=dict(shrunk_groups),
            repair_rounds=len(outcome.repair_log),
            constraint_violations=constraint_violations,
        )

    def solve(self) -> SolverResult:
        """
        Solve the allocation problem.

        Group constraints:
            - Each open group holds between min_size and its (possibly
              shrunk) max_size participants
            - Closed optional groups hold nobody

        Returns:
            SolverResult with assignment results and metrics

        Raises:
            StructuralInfeasibilityError: If the bounds cannot fit the participants
            UnsolvableUnderConstraintsError: If no optional group is left to close
            RepairLimitExceededError: If config.max_rounds is exceeded
            ValueError: If a participant exceeds config.max_no "no" ratings
        """
        self._validate_ratings()

        group_ids = [group.id for group in self.groups]
        self.preferences = build_preference_lists(
            self.ratings,
            self.participants,
            group_ids=group_ids,
            excluded_scores=self.config.excluded_scores,
        )
        # One ranking per solve, shared by every round of the repair loop
        self.ranking = global_ranking(self.participants, self.rng)

        logger.info(
            f"Solving allocation of {len(self.participants)} participants "
            f"to {len(self.groups)} groups with {self.config.algorithm}"
        )
        controller = FeasibilityController(
            self.groups,
            self.preferences,
            self.ranking,
            get_algorithm(self.config.algorithm),
            max_rounds=self.config.max_rounds,
        )
        outcome = controller.run()

        group_assignments, participant_assignments = self._process_assignments(outcome)
        group_counts = {
            group_id: len(assigned) for group_id, assigned in group_assignments.items()
        }
        metrics = self._calculate_metrics(outcome, group_assignments, participant_assignments)

        return SolverResult(
            status=SolverStatus.FEASIBLE,
            assignments=group_assignments,
            group_counts=group_counts,
            participant_assignments=participant_assignments,
            capacities=outcome.capacities,
            repair_log=outcome.repair_log,
            ranking=dict(self.ranking),
            metrics=metrics,
        )


def solve_allocation(
    groups: Sequence[GroupSpec],
    ratings: Iterable[Rating],
    participants: Sequence[str],
    seed: int | None = None,
    algorithm: str = "deferred_acceptance",
    max_rounds: int | None = None,
    rng: random.Random | None = None,
) -> SolverResult:
    """
    Assign participants to groups from their ratings.

    This is a convenience wrapper around AllocationSolver.

    Parameters:
        groups: Group specifications with min/max sizes and optional flag
        ratings: Ratings, higher scores preferred, 0 meaning "unwilling"
        participants: List of participant IDs
        seed: Seed of the tie-break ranking for reproducible results
        algorithm: Matching strategy name
        max_rounds: Cap on matching rounds of the repair loop
        rng: Randomness source; overrides seed when given

    Returns:
        SolverResult; its ``assignments`` map group -> participants ordered by rank
    """
    config = SolverConfig(algorithm=algorithm, seed=seed, max_rounds=max_rounds)
    solver = AllocationSolver(groups, ratings, participants, config=config, rng=rng)
    return solver.solve()
