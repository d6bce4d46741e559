"""Tests for the CLI entry point."""

import csv
import tempfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from groupalloc.errors import StructuralInfeasibilityError, UnsolvableUnderConstraintsError
from groupalloc.main import app
from groupalloc.output import (
    export_results_to_csv,
    print_assignment_summary,
    print_failure,
    status_for_error,
)
from groupalloc.types import (
    AssignmentStatus,
    Metrics,
    ParticipantAssignment,
    SolverResult,
    SolverStatus,
)

runner = CliRunner()

DATA_DIR = Path(__file__).parent.parent / "data"
RATINGS = str(DATA_DIR / "ratings.csv")
GROUPS = str(DATA_DIR / "groups.csv")


class TestCLI:
    """Tests for the CLI commands."""

    def test_cli_runs_with_sample_data(self):
        result = runner.invoke(app, [RATINGS, GROUPS, "-s", "1"])
        assert result.exit_code == 0
        assert "Solver Status: Feasible" in result.output

    def test_cli_with_seed(self):
        """Test CLI with seed parameter for reproducibility."""
        result1 = runner.invoke(app, [RATINGS, GROUPS, "-s", "42"])
        result2 = runner.invoke(app, [RATINGS, GROUPS, "-s", "42"])
        assert result1.exit_code == 0
        assert result2.exit_code == 0
        assert result1.output == result2.output

    def test_cli_with_serial_dictatorship(self):
        result = runner.invoke(app, [RATINGS, GROUPS, "-s", "3", "-a", "serial_dictatorship"])
        assert result.exit_code == 0
        assert "Solver Status: Feasible" in result.output

    def test_cli_wide_answers(self):
        result = runner.invoke(
            app,
            [str(DATA_DIR / "answers.csv"), str(DATA_DIR / "answers_groups.csv"), "--wide", "-s", "5"],
        )
        assert result.exit_code == 0
        assert "Solver Status: Feasible" in result.output

    def test_cli_csv_export(self):
        """Test that CSV export works."""
        with tempfile.TemporaryDirectory() as tmpdir:
            output_path = Path(tmpdir) / "results.csv"
            result = runner.invoke(app, [RATINGS, GROUPS, "-s", "7", "-o", str(output_path)])
            assert result.exit_code == 0
            assert output_path.exists()
            assert f"Results exported to: {output_path}" in result.output

            with open(output_path) as f:
                reader = csv.reader(f)
                header = next(reader)
                assert header == [
                    "participant_id",
                    "assigned_group",
                    "preference_rank",
                    "preference_score",
                    "status",
                ]
                rows = list(reader)
                assert len(rows) == 10

    def test_cli_file_not_found(self):
        result = runner.invoke(app, ["nonexistent_file.csv", GROUPS])
        assert result.exit_code == 1
        assert "Error: File not found" in result.output

    def test_cli_structural_infeasibility(self, tmp_path: Path):
        groups_csv = tmp_path / "groups.csv"
        groups_csv.write_text("group_id,min_size,max_size\nA,20,25\n")
        result = runner.invoke(app, [RATINGS, str(groups_csv)])
        assert result.exit_code == 1
        assert "Solver Status: Structurally Infeasible" in result.output

    def test_cli_unknown_algorithm(self):
        result = runner.invoke(app, [RATINGS, GROUPS, "-a", "simplex"])
        assert result.exit_code == 1
        assert "Error: algorithm must be one of" in result.output

    def test_cli_max_no(self, tmp_path: Path):
        ratings_csv = tmp_path / "ratings.csv"
        ratings_csv.write_text("participant_id,group_id,score\np1,A,0\np1,B,0\np2,A,5\n")
        groups_csv = tmp_path / "groups.csv"
        groups_csv.write_text("group_id,min_size,max_size\nA,0,2\nB,0,2\n")
        result = runner.invoke(app, [str(ratings_csv), str(groups_csv), "--max-no", "1"])
        assert result.exit_code == 1
        assert "'no' ratings: p1" in result.output

    def test_cli_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for flag in ("--seed", "--algorithm", "--max-rounds", "--max-no", "--wide", "--output"):
            assert flag in result.output


class TestOutput:
    """Tests for the output module."""

    @pytest.fixture
    def result(self):
        return SolverResult(
            status=SolverStatus.FEASIBLE,
            assignments={"GroupA": ["P1", "P2"], "GroupB": []},
            group_counts={"GroupA": 2, "GroupB": 0},
            participant_assignments={
                "P1": ParticipantAssignment(
                    group="GroupA",
                    status=AssignmentStatus.ASSIGNED,
                    preference_rank=1,
                    preference_score=5,
                ),
                "P2": ParticipantAssignment(
                    group="GroupA",
                    status=AssignmentStatus.ASSIGNED,
                    preference_rank=2,
                    preference_score=3,
                ),
            },
            metrics=Metrics(
                preference_satisfaction=8,
                active_groups=1,
                average_satisfaction=4.0,
                preference_distribution={1: 1, 2: 1},
                closed_groups=["GroupB"],
                shrunk_groups={"GroupA": 1},
                repair_rounds=3,
            ),
        )

    def test_print_assignment_summary(self, result, capsys):
        print_assignment_summary(result)
        captured = capsys.readouterr()

        assert "Solver Status: Feasible" in captured.out
        assert "Preference Satisfaction: 8" in captured.out
        assert "Closed Groups: GroupB" in captured.out
        assert "Shrunk Groups: GroupA (-1)" in captured.out
        assert "GroupA: P1, P2" in captured.out

    def test_print_failure(self, capsys):
        print_failure(UnsolvableUnderConstraintsError(2, 0))
        captured = capsys.readouterr()

        assert "Solver Status: Unsolvable" in captured.out
        assert "2 missing places" in captured.out

    def test_status_for_error(self):
        assert (
            status_for_error(StructuralInfeasibilityError(3, 5, 6))
            == SolverStatus.STRUCTURALLY_INFEASIBLE
        )

    def test_export_results_to_csv(self, result, tmp_path: Path):
        filepath = tmp_path / "export.csv"
        export_results_to_csv(result, str(filepath))

        with open(filepath) as f:
            rows = list(csv.DictReader(f))

        assert len(rows) == 2
        assert rows[0]["participant_id"] == "P1"
        assert rows[0]["assigned_group"] == "GroupA"
        assert rows[0]["preference_rank"] == "1"
        assert rows[0]["status"] == "ASSIGNED"

    def test_export_to_invalid_path_raises_error(self, result):
        with pytest.raises(OSError, match="Failed to write"):
            export_results_to_csv(result, "/nonexistent/directory/file.csv")
