"""Yes/Maybe/No rating scale and the limit on "no" answers."""

from collections import defaultdict
from collections.abc import Iterable
from enum import IntEnum

from groupalloc.types import Rating


class RatingScale(IntEnum):
    """Scores of the three possible answers; NO excludes the group."""

    NO = 0
    MAYBE = 3
    YES = 5


_LABELS = {scale.name.lower(): scale for scale in RatingScale}


def parse_label(text: str) -> RatingScale:
    """Parse 'yes', 'maybe' or 'no' (case-insensitive) into its score."""
    key = text.strip().lower()
    if key not in _LABELS:
        raise ValueError(f"Unknown rating '{text}', expected yes, maybe or no")
    return _LABELS[key]


def default_ratings(
    participants: Iterable[str], group_ids: Iterable[str], ratings: Iterable[Rating]
) -> list[Rating]:
    """Complete the ratings so every participant rates every group; missing answers are YES."""
    given = list(ratings)
    rated = {(r.participant_id, r.group_id) for r in given}
    group_ids = list(group_ids)
    completed = list(given)
    for participant in participants:
        for group_id in group_ids:
            if (participant, group_id) not in rated:
                completed.append(Rating(participant, group_id, int(RatingScale.YES)))
    return completed


def validate_max_no(ratings: Iterable[Rating], max_no: int) -> dict[str, list[str]]:
    """Find participants who answered "no" to more than ``max_no`` groups.

    Participants who rated fewer than two groups are not checked.

    Returns:
        Dictionary mapping offending participant -> groups rated "no"
    """
    noes: dict[str, list[str]] = defaultdict(list)
    rated: dict[str, int] = defaultdict(int)
    for rating in ratings:
        rated[rating.participant_id] += 1
        if rating.score == RatingScale.NO:
            noes[rating.participant_id].append(rating.group_id)
    return {
        participant: groups
        for participant, groups in noes.items()
        if rated[participant] >= 2 and len(groups) > max_no
    }
