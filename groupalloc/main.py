"""CLI entry point for the group allocation solver."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer

from groupalloc.config import SolverConfig
from groupalloc.data_loader import (
    load_groups_from_csv,
    load_ratings_from_csv,
    load_wide_ratings_from_csv,
)
from groupalloc.errors import InfeasibleProblemError, RepairLimitExceededError
from groupalloc.output import export_results_to_csv, print_assignment_summary, print_failure
from groupalloc.solver import AllocationSolver

app = typer.Typer(
    help="Allocate participants to capacity-bounded groups based on their ratings"
)


@app.command()
def main(
    ratings_csv: Annotated[
        Path,
        typer.Argument(
            help="Path to ratings CSV (participant_id, group_id, score; or a yes/maybe/no sheet with --wide)"
        ),
    ],
    groups_csv: Annotated[
        Path,
        typer.Argument(help="Path to groups CSV (group_id, min_size, max_size, optional)"),
    ],
    wide: Annotated[
        bool,
        typer.Option(
            "--wide",
            help="Ratings CSV has one row per participant and one yes/maybe/no column per group",
        ),
    ] = False,
    seed: Annotated[
        Optional[int],
        typer.Option("-s", "--seed", help="Random seed of the tie-break ranking"),
    ] = None,
    algorithm: Annotated[
        str,
        typer.Option("-a", "--algorithm", help="Matching strategy"),
    ] = "deferred_acceptance",
    max_rounds: Annotated[
        Optional[int],
        typer.Option("--max-rounds", help="Give up after this many matching rounds"),
    ] = None,
    max_no: Annotated[
        Optional[int],
        typer.Option("--max-no", help="Maximum number of 'no' ratings per participant"),
    ] = None,
    output: Annotated[
        Optional[Path], typer.Option("-o", "--output", help="Export results to CSV")
    ] = None,
    verbose: Annotated[
        bool, typer.Option("-v", "--verbose", help="Log every repair round")
    ] = False,
) -> None:
    """Run the group allocation solver."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    for path in (ratings_csv, groups_csv):
        if not path.exists():
            typer.echo(f"Error: File not found: {path}", err=True)
            raise typer.Exit(1)

    try:
        config = SolverConfig(
            algorithm=algorithm, seed=seed, max_rounds=max_rounds, max_no=max_no
        )
        groups = load_groups_from_csv(groups_csv)
        if wide:
            participants, ratings = load_wide_ratings_from_csv(ratings_csv)
        else:
            participants, ratings = load_ratings_from_csv(ratings_csv)
        result = AllocationSolver(groups, ratings, participants, config=config).solve()
    except InfeasibleProblemError as e:
        print_failure(e)
        raise typer.Exit(1)
    except (RepairLimitExceededError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    print_assignment_summary(result)

    if output:
        export_results_to_csv(result, str(output))
        typer.echo(f"\nResults exported to: {output}")


if __name__ == "__main__":
    app()
