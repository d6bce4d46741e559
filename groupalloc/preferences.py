"""Turn raw ratings into strictly ordered preference lists."""

import logging
from collections import defaultdict
from collections.abc import Collection, Iterable

from groupalloc.types import Rating

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDED_SCORES: frozenset[int] = frozenset({0})


def build_preference_lists(
    ratings: Iterable[Rating],
    participants: Iterable[str],
    group_ids: Collection[str] | None = None,
    excluded_scores: Collection[int] = DEFAULT_EXCLUDED_SCORES,
) -> dict[str, list[str]]:
    """Build each participant's preference list from their ratings.

    Groups are ordered by descending score, equal scores by group id.
    Ratings with a non-positive score or a score in ``excluded_scores``
    mean "unwilling" and are left out, as are groups the participant did
    not rate at all.

    Parameters:
        ratings: Raw (participant, group, score) ratings
        participants: Roster; every participant gets an entry, possibly empty
        group_ids: Known groups; ratings for other groups are ignored
        excluded_scores: Scores that exclude the group from the list

    Returns:
        Dictionary mapping participant -> group ids, best first

    Raises:
        ValueError: If a participant rated the same group twice
    """
    roster = list(participants)
    known_participants = set(roster)
    known_groups = set(group_ids) if group_ids is not None else None

    scored: dict[str, dict[str, int]] = defaultdict(dict)
    for rating in ratings:
        if rating.participant_id not in known_participants:
            logger.debug(f"Ignoring rating of unknown participant {rating.participant_id}")
            continue
        if known_groups is not None and rating.group_id not in known_groups:
            logger.debug(f"Ignoring rating for unknown group {rating.group_id}")
            continue
        by_group = scored[rating.participant_id]
        if rating.group_id in by_group:
            raise ValueError(
                f"Duplicate rating of group '{rating.group_id}' "
                f"by participant '{rating.participant_id}'"
            )
        by_group[rating.group_id] = rating.score

    preferences: dict[str, list[str]] = {}
    for participant in roster:
        acceptable = [
            (group_id, score)
            for group_id, score in scored.get(participant, {}).items()
            if score > 0 and score not in excluded_scores
        ]
        acceptable.sort(key=lambda item: (-item[1], item[0]))
        preferences[participant] = [group_id for group_id, _ in acceptable]

    empty = sum(1 for prefs in preferences.values() if not prefs)
    if empty:
        logger.info(f"{empty} participants have no acceptable group")
    return preferences


def preference_scores(ratings: Iterable[Rating]) -> dict[tuple[str, str], int]:
    """Index rating scores by (participant, group)."""
    return {(r.participant_id, r.group_id): r.score for r in ratings}
