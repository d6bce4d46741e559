"""Load groups and ratings from CSV files."""

from pathlib import Path

import pandas as pd

from groupalloc.strategy import default_ratings, parse_label
from groupalloc.types import GroupSpec, Rating

RATING_COLUMNS = ["participant_id", "group_id", "score"]
GROUP_COLUMNS = ["group_id", "min_size", "max_size"]

_TRUE_VALUES = {"1", "true", "yes", "y"}


def _read_csv(filepath: Path | str, **kwargs) -> pd.DataFrame:
    if isinstance(filepath, str):
        filepath = Path(filepath)

    try:
        df = pd.read_csv(filepath, **kwargs)
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"CSV file is empty: {filepath}") from e
    except pd.errors.ParserError as e:
        raise ValueError(f"Failed to parse CSV: {e}") from e

    if df.empty:
        raise ValueError(f"CSV file contains no data rows: {filepath}")
    return df


def _require_columns(df: pd.DataFrame, columns: list[str], filepath: Path | str) -> None:
    missing = [col for col in columns if col not in df.columns]
    if missing:
        raise ValueError(f"Missing columns {missing} in {filepath}")


def _parse_flag(value) -> bool:
    if pd.isna(value):
        return False
    return str(value).strip().lower() in _TRUE_VALUES


def load_groups_from_csv(filepath: Path | str) -> list[GroupSpec]:
    """Load group specifications from a CSV file.

    Args:
        filepath: Path to CSV with columns group_id, min_size, max_size and
            an optional ``optional`` column (1/true/yes marks an optional group).

    Returns:
        List of GroupSpec in file order.

    Raises:
        ValueError: If the CSV is empty, malformed, has duplicate group ids
            or invalid sizes.
    """
    df = _read_csv(filepath, dtype={"group_id": str})
    _require_columns(df, GROUP_COLUMNS, filepath)

    if df["group_id"].duplicated().any():
        duplicates = sorted(df.loc[df["group_id"].duplicated(), "group_id"].unique())
        raise ValueError(f"Duplicate group ids: {duplicates}")

    groups = []
    for row in df.itertuples(index=False):
        groups.append(
            GroupSpec(
                id=row.group_id,
                min_size=int(row.min_size),
                max_size=int(row.max_size),
                optional=_parse_flag(getattr(row, "optional", None)),
            )
        )
    return groups


def load_ratings_from_csv(filepath: Path | str) -> tuple[list[str], list[Rating]]:
    """Load ratings in long format (one row per participant and group).

    Args:
        filepath: Path to CSV with columns participant_id, group_id, score.
            Rows with an empty score are skipped.

    Returns:
        Tuple of (participants, ratings) where participants are listed in
        order of first appearance.

    Raises:
        ValueError: If the CSV is empty, malformed or has non-integer scores.
    """
    df = _read_csv(filepath, dtype={"participant_id": str, "group_id": str})
    _require_columns(df, RATING_COLUMNS, filepath)

    participants = df["participant_id"].drop_duplicates().tolist()
    df = df.dropna(subset=["score"])

    ratings = []
    for row in df.itertuples(index=False):
        invalid = f"Invalid score '{row.score}' for participant '{row.participant_id}'"
        try:
            value = float(row.score)
        except (TypeError, ValueError) as e:
            raise ValueError(invalid) from e
        if not value.is_integer():
            raise ValueError(invalid)
        ratings.append(Rating(row.participant_id, row.group_id, int(value)))
    return participants, ratings


def load_wide_ratings_from_csv(
    filepath: Path | str, fill_missing: bool = True
) -> tuple[list[str], list[Rating]]:
    """Load a yes/maybe/no answer sheet.

    Args:
        filepath: Path to CSV where the 1st column is participants and every
            subsequent column is a group; cells hold yes, maybe, no or a score.
        fill_missing: Treat empty cells as "yes"; otherwise they are unrated.

    Returns:
        Tuple of (participants, ratings).

    Raises:
        ValueError: If the CSV is empty, malformed or holds unknown answers.
    """
    df = _read_csv(filepath, index_col=0, dtype=str)

    participants = [str(p) for p in df.index.tolist()]
    group_ids = [str(col) for col in df.columns]

    ratings = []
    for participant, row in zip(participants, df.itertuples(index=False)):
        for group_id, cell in zip(group_ids, row):
            if pd.isna(cell) or not str(cell).strip():
                continue
            text = str(cell).strip()
            score = int(text) if text.lstrip("-").isdigit() else int(parse_label(text))
            ratings.append(Rating(participant, group_id, score))

    if fill_missing:
        ratings = default_ratings(participants, group_ids, ratings)
    return participants, ratings
