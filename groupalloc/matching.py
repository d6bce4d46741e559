"""Matching strategies that place participants into groups for fixed capacities."""

import logging
from collections import deque
from collections.abc import Mapping, Sequence
from typing import Protocol

from groupalloc.types import CapacityConfig, MatchingRound

logger = logging.getLogger(__name__)


class MatchingAlgorithm(Protocol):
    """A strategy computing one matching for a fixed capacity configuration."""

    name: str

    def run(
        self,
        preferences: Mapping[str, Sequence[str]],
        ranking: Mapping[str, int],
        capacities: CapacityConfig,
    ) -> MatchingRound: ...


def _freeze(
    waiting: dict[str, dict[int, str]], current: dict[str, str | None], passes: int, rejections: int
) -> MatchingRound:
    return MatchingRound(
        waiting_lists={
            group_id: tuple(held[rank] for rank in sorted(held))
            for group_id, held in waiting.items()
        },
        current_choice=dict(current),
        passes=passes,
        rejections=rejections,
    )


class DeferredAcceptance:
    """
    Participant-proposing deferred acceptance with group capacities.

    Every pass, each free participant proposes to the best group it has
    not yet proposed to; every group then keeps its best-ranked proposers
    up to its max_size and rejects the rest. Passes repeat until one
    produces no rejection. Each participant proposes to each group at most
    once, so there are at most N * G + 1 passes.

    The preference lists passed in are copied, never consumed.
    """

    name = "deferred_acceptance"

    def run(
        self,
        preferences: Mapping[str, Sequence[str]],
        ranking: Mapping[str, int],
        capacities: CapacityConfig,
    ) -> MatchingRound:
        remaining = {participant: deque(prefs) for participant, prefs in preferences.items()}
        current: dict[str, str | None] = {participant: None for participant in preferences}
        # group -> {rank: participant}
        waiting: dict[str, dict[int, str]] = {group_id: {} for group_id in capacities.max_sizes}

        passes = 0
        rejections = 0
        while True:
            passes += 1
            proposals = self._application_by_participants(remaining, current, waiting, ranking)
            evicted = self._rejection_by_groups(current, waiting, capacities)
            rejections += evicted
            logger.debug(f"Pass {passes}: {proposals} proposals, {evicted} rejections")
            if not evicted:
                break

        return _freeze(waiting, current, passes, rejections)

    @staticmethod
    def _application_by_participants(
        remaining: dict[str, deque[str]],
        current: dict[str, str | None],
        waiting: dict[str, dict[int, str]],
        ranking: Mapping[str, int],
    ) -> int:
        """Free participants apply to their next group; returns the number of proposals."""
        proposals = 0
        for participant, prefs in remaining.items():
            if current[participant] is None and prefs:
                group_id = prefs.popleft()
                current[participant] = group_id
                waiting[group_id][ranking[participant]] = participant
                proposals += 1
        return proposals

    @staticmethod
    def _rejection_by_groups(
        current: dict[str, str | None],
        waiting: dict[str, dict[int, str]],
        capacities: CapacityConfig,
    ) -> int:
        """Groups drop their worst-ranked holders beyond max_size; returns the eviction count."""
        evicted = 0
        for group_id, held in waiting.items():
            overflow = len(held) - capacities.max_size(group_id)
            if overflow <= 0:
                continue
            for rank in sorted(held)[-overflow:]:
                participant = held.pop(rank)
                current[participant] = None
                evicted += 1
        return evicted


class SerialDictatorship:
    """
    Participants pick, in global-rank order, their best group with a free seat.

    With one global priority order shared by all groups this produces the
    same matching as DeferredAcceptance, in a single pass.
    """

    name = "serial_dictatorship"

    def run(
        self,
        preferences: Mapping[str, Sequence[str]],
        ranking: Mapping[str, int],
        capacities: CapacityConfig,
    ) -> MatchingRound:
        current: dict[str, str | None] = {participant: None for participant in preferences}
        waiting: dict[str, dict[int, str]] = {group_id: {} for group_id in capacities.max_sizes}

        for participant in sorted(preferences, key=lambda p: ranking[p]):
            for group_id in preferences[participant]:
                if len(waiting[group_id]) < capacities.max_size(group_id):
                    waiting[group_id][ranking[participant]] = participant
                    current[participant] = group_id
                    break

        return _freeze(waiting, current, passes=1, rejections=0)


ALGORITHMS: dict[str, type] = {
    DeferredAcceptance.name: DeferredAcceptance,
    SerialDictatorship.name: SerialDictatorship,
}


def get_algorithm(name: str) -> MatchingAlgorithm:
    """Instantiate the matching strategy registered under ``name``."""
    try:
        return ALGORITHMS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown algorithm '{name}', expected one of: {', '.join(sorted(ALGORITHMS))}"
        ) from None
