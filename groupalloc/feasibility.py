"""Feasibility checks and the capacity repair loop around the matching engine."""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from groupalloc.errors import (
    RepairLimitExceededError,
    StructuralInfeasibilityError,
    UnsolvableUnderConstraintsError,
)
from groupalloc.matching import MatchingAlgorithm
from groupalloc.types import (
    CapacityConfig,
    ChoiceCounts,
    GroupSpec,
    MatchingRound,
    RepairAction,
    RepairStep,
)

logger = logging.getLogger(__name__)


def check_structural_feasibility(groups: Sequence[GroupSpec], participant_count: int) -> None:
    """Reject bounds that cannot hold ``participant_count`` whatever the ratings.

    Optional groups do not count towards the required minimum since they
    may be closed.

    Raises:
        StructuralInfeasibilityError: If the participants cannot fill the
            non-optional minimums or do not fit into all groups' maximums
    """
    min_total = sum(group.min_size for group in groups if not group.optional)
    max_total = sum(group.max_size for group in groups)
    if participant_count < min_total or participant_count > max_total:
        raise StructuralInfeasibilityError(participant_count, min_total, max_total)


def calculate_assignment_counts(
    groups: Sequence[GroupSpec], capacities: CapacityConfig, matching: MatchingRound
) -> list[ChoiceCounts]:
    """Compute missing, movable and free places of every group; closed groups have no minimum."""
    counts = []
    for group in groups:
        held = matching.held(group.id)
        min_size = capacities.min_size(group)
        counts.append(
            ChoiceCounts(
                group_id=group.id,
                held=held,
                missing_places=max(0, min_size - held),
                movable_assignments=max(0, held - min_size),
                free_places=capacities.max_size(group.id) - held,
            )
        )
    return counts


def plan_shrink(counts: Sequence[ChoiceCounts], deficit: int) -> dict[str, int]:
    """Decide how many held seats each group gives up to cover ``deficit``.

    Seats are taken one at a time from the group with the most movable
    assignments left; ties go to the group listed first.

    Returns:
        Dictionary mapping group -> number of seats to remove

    Raises:
        ValueError: If the groups do not have ``deficit`` movable assignments
    """
    movable = {c.group_id: c.movable_assignments for c in counts if c.movable_assignments > 0}
    if deficit > sum(movable.values()):
        raise ValueError(f"Cannot free {deficit} seats from {sum(movable.values())} movable")

    plan: dict[str, int] = {}
    for _ in range(deficit):
        group_id = max(movable, key=lambda g: movable[g])
        movable[group_id] -= 1
        plan[group_id] = plan.get(group_id, 0) + 1
    return plan


def shrink_capacities(
    capacities: CapacityConfig, counts: Sequence[ChoiceCounts], plan: Mapping[str, int]
) -> CapacityConfig:
    """Lower each planned group's max_size to its current holders minus the seats removed."""
    by_group = {c.group_id: c for c in counts}
    return capacities.shrink(
        {group_id: by_group[group_id].free_places + seats for group_id, seats in plan.items()}
    )


def choose_group_to_close(
    groups: Sequence[GroupSpec],
    capacities: CapacityConfig,
    counts: Sequence[ChoiceCounts],
    min_open_capacity: int = 0,
) -> str | None:
    """Pick the open optional group to close, or None if there is none.

    A group is only closable if the remaining open capacity still holds
    ``min_open_capacity`` participants. Groups missing the most places go
    first, then the ones holding the fewest participants, then the group
    listed first.
    """
    by_group = {c.group_id: c for c in counts}
    total = capacities.total()
    candidates = [
        (index, group.id)
        for index, group in enumerate(groups)
        if group.optional
        and capacities.is_open(group.id)
        and total - capacities.max_size(group.id) >= min_open_capacity
    ]
    if not candidates:
        return None
    _, group_id = min(
        candidates,
        key=lambda item: (
            -by_group[item[1]].missing_places,
            by_group[item[1]].held,
            item[0],
        ),
    )
    return group_id


@dataclass
class RepairOutcome:
    """Final matching of the repair loop with the capacities it was computed for."""

    matching: MatchingRound
    capacities: CapacityConfig
    repair_log: list[RepairStep]


class FeasibilityController:
    """
    Repeats matching rounds, adjusting capacities until every open group
    reaches its minimum size.

    After each round the controller either stops (no missing places),
    shrinks groups with movable assignments by exactly the deficit (when
    the movable assignments outnumber the missing places, or equal them
    and no optional group can be closed), or closes one optional group
    whose closure leaves enough open capacity for every participant with
    preferences. Every adjustment lowers the total capacity, so the loop
    terminates.

    Attributes:
        groups: Group specifications in input order
        preferences: Participant -> ordered group ids
        ranking: Global tie-break ranking, fixed for all rounds
        algorithm: Matching strategy used for each round
        max_rounds: Optional cap on the number of matching rounds
    """

    def __init__(
        self,
        groups: Sequence[GroupSpec],
        preferences: Mapping[str, Sequence[str]],
        ranking: Mapping[str, int],
        algorithm: MatchingAlgorithm,
        max_rounds: int | None = None,
    ):
        self.groups = list(groups)
        self.preferences = preferences
        self.ranking = ranking
        self.algorithm = algorithm
        self.max_rounds = max_rounds

    def run(self) -> RepairOutcome:
        """
        Run the repair loop to a feasible matching.

        Returns:
            RepairOutcome with the feasible matching and final capacities

        Raises:
            StructuralInfeasibilityError: If the bounds cannot fit the participants
            UnsolvableUnderConstraintsError: If places are missing and no
                optional group can be closed without leaving participants out
            RepairLimitExceededError: If max_rounds rounds did not suffice
        """
        check_structural_feasibility(self.groups, len(self.preferences))
        # Closing a group must leave room for everyone who can be placed
        placeable = sum(1 for prefs in self.preferences.values() if prefs)

        capacities = CapacityConfig.from_groups(self.groups)
        repair_log: list[RepairStep] = []
        round_index = 0

        while True:
            if self.max_rounds is not None and round_index >= self.max_rounds:
                raise RepairLimitExceededError(self.max_rounds)
            round_index += 1

            matching = self.algorithm.run(self.preferences, self.ranking, capacities)
            counts = calculate_assignment_counts(self.groups, capacities, matching)
            missing = sum(c.missing_places for c in counts)
            movable = sum(c.movable_assignments for c in counts)
            logger.debug(
                f"Round {round_index}: {matching.passes} passes, "
                f"{missing} missing places, {movable} movable assignments"
            )

            if missing == 0:
                repair_log.append(RepairStep(round_index, RepairAction.FEASIBLE, missing, movable))
                logger.info(f"Feasible allocation after {round_index} rounds")
                return RepairOutcome(matching, capacities, repair_log)

            group_id = None
            if missing >= movable:
                group_id = choose_group_to_close(
                    self.groups, capacities, counts, min_open_capacity=placeable
                )

            # Freeing every movable seat is still enough when nothing can be closed
            if missing < movable or (group_id is None and missing == movable):
                plan = plan_shrink(counts, missing)
                capacities = shrink_capacities(capacities, counts, plan)
                repair_log.append(
                    RepairStep(round_index, RepairAction.SHRINK, missing, movable, plan)
                )
                logger.info(f"Round {round_index}: shrinking {plan} to free {missing} seats")
                continue

            if group_id is None:
                raise UnsolvableUnderConstraintsError(missing, movable)
            held = matching.held(group_id)
            capacities = capacities.close(group_id)
            repair_log.append(
                RepairStep(round_index, RepairAction.CLOSE, missing, movable, {group_id: held})
            )
            logger.info(f"Round {round_index}: closing optional group {group_id} ({held} held)")
