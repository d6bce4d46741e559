"""Exceptions raised by the allocation solver."""


class InfeasibleProblemError(ValueError):
    """Base class for problems that admit no feasible allocation."""


class StructuralInfeasibilityError(InfeasibleProblemError):
    """Group bounds cannot accommodate the participant count, whatever the ratings."""

    def __init__(self, participant_count: int, min_total: int, max_total: int):
        self.participant_count = participant_count
        self.min_total = min_total
        self.max_total = max_total
        super().__init__(
            f"infeasible problem: {participant_count} participants, "
            f"required minimum {min_total} (non-optional groups), "
            f"available maximum {max_total}"
        )


class UnsolvableUnderConstraintsError(InfeasibleProblemError):
    """The repair loop needs to close a group but no optional group can be closed."""

    def __init__(self, missing_places: int, movable_assignments: int):
        self.missing_places = missing_places
        self.movable_assignments = movable_assignments
        super().__init__(
            f"unsolvable under constraints: {missing_places} missing places, "
            f"{movable_assignments} movable assignments and no optional group can be closed"
        )


class RepairLimitExceededError(RuntimeError):
    """The repair loop did not reach a feasible allocation within max_rounds."""

    def __init__(self, max_rounds: int):
        self.max_rounds = max_rounds
        super().__init__(f"No feasible allocation after {max_rounds} repair rounds")
