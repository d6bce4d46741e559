"""Output formatting and export for solver results."""

import csv
from pathlib import Path

from groupalloc.errors import InfeasibleProblemError, StructuralInfeasibilityError
from groupalloc.types import SolverResult, SolverStatus


def status_for_error(error: InfeasibleProblemError) -> SolverStatus:
    """Map a solver failure to the status reported to the user."""
    if isinstance(error, StructuralInfeasibilityError):
        return SolverStatus.STRUCTURALLY_INFEASIBLE
    return SolverStatus.UNSOLVABLE


def print_failure(error: InfeasibleProblemError) -> None:
    """Pretty-print why no allocation exists."""
    print(f"\n=== Solver Status: {status_for_error(error).value} ===\n")
    print(str(error))


def print_assignment_summary(result: SolverResult) -> None:
    """Pretty-print assignment results."""
    print(f"\n=== Solver Status: {result.status.value} ===\n")

    if result.metrics:
        m = result.metrics
        print(f"Preference Satisfaction: {m.preference_satisfaction}")
        print(f"Active Groups: {m.active_groups}")
        print(f"Average Satisfaction: {m.average_satisfaction:.2f}")
        print(f"Repair Rounds: {m.repair_rounds}")

        print("\nPreference Distribution:")
        for rank, count in sorted(m.preference_distribution.items(), key=lambda x: str(x[0])):
            if count > 0:
                print(f"  {rank}: {count}")

        if m.closed_groups:
            print(f"\nClosed Groups: {', '.join(m.closed_groups)}")
        if m.shrunk_groups:
            shrunk = ", ".join(f"{g} (-{n})" for g, n in sorted(m.shrunk_groups.items()))
            print(f"Shrunk Groups: {shrunk}")

        if m.constraint_violations:
            print("\n⚠️  Constraint Violations:")
            for v in m.constraint_violations:
                print(f"  - {v}")

    print("\n=== Assignments by Group ===")
    for group_id, participants in sorted(result.assignments.items()):
        if participants:
            print(f"{group_id}: {', '.join(participants)}")


def export_results_to_csv(result: SolverResult, filepath: Path | str) -> None:
    """Export participant assignments to CSV."""
    try:
        with open(filepath, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(
                ["participant_id", "assigned_group", "preference_rank", "preference_score", "status"]
            )
            for participant, assignment in sorted(result.participant_assignments.items()):
                writer.writerow([
                    participant,
                    assignment.group,
                    assignment.preference_rank or "",
                    assignment.preference_score,
                    assignment.status.value,
                ])
    except OSError as e:
        raise OSError(f"Failed to write results to '{filepath}': {e}") from e
