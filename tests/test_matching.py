"""Tests for the matching strategies."""

import random

import pytest

from groupalloc.matching import (
    ALGORITHMS,
    DeferredAcceptance,
    SerialDictatorship,
    get_algorithm,
)
from groupalloc.ranking import global_ranking
from groupalloc.types import CapacityConfig


def _capacities(**max_sizes: int) -> CapacityConfig:
    return CapacityConfig(max_sizes=max_sizes)


def _random_instance(seed: int, n_participants: int = 12, n_groups: int = 4):
    rng = random.Random(seed)
    groups = [f"g{i}" for i in range(n_groups)]
    participants = [f"p{i:02d}" for i in range(n_participants)]
    preferences = {}
    for participant in participants:
        prefs = groups.copy()
        rng.shuffle(prefs)
        preferences[participant] = prefs[: rng.randint(1, n_groups)]
    capacities = CapacityConfig(max_sizes={g: rng.randint(1, 4) for g in groups})
    ranking = global_ranking(participants, rng)
    return preferences, ranking, capacities


class TestDeferredAcceptance:
    def test_everyone_gets_first_choice_without_competition(self):
        preferences = {"a": ["g1", "g2"], "b": ["g2", "g1"]}
        ranking = {"a": 0, "b": 1}
        result = DeferredAcceptance().run(preferences, ranking, _capacities(g1=1, g2=1))

        assert result.waiting_lists == {"g1": ("a",), "g2": ("b",)}
        assert result.current_choice == {"a": "g1", "b": "g2"}
        assert result.rejections == 0
        assert result.passes == 1

    def test_lowest_priority_proposer_is_evicted_and_reproposes(self):
        """A full group rejects its worst-ranked holder, who moves to the next preference."""
        preferences = {"a": ["g1", "g2"], "b": ["g1", "g2"], "c": ["g1", "g2"]}
        ranking = {"a": 0, "b": 1, "c": 2}
        result = DeferredAcceptance().run(preferences, ranking, _capacities(g1=2, g2=5))

        assert result.waiting_lists["g1"] == ("a", "b")
        assert result.waiting_lists["g2"] == ("c",)
        assert result.current_choice["c"] == "g2"
        assert result.rejections == 1
        assert result.passes == 2

    def test_waiting_lists_are_ordered_by_rank(self):
        preferences = {"a": ["g1"], "b": ["g1"], "c": ["g1"]}
        ranking = {"a": 2, "b": 0, "c": 1}
        result = DeferredAcceptance().run(preferences, ranking, _capacities(g1=3))

        assert result.waiting_lists["g1"] == ("b", "c", "a")

    def test_later_proposer_with_better_rank_displaces_holder(self):
        preferences = {"a": ["g2", "g1"], "b": ["g1"], "c": ["g1", "g2"]}
        ranking = {"a": 0, "b": 2, "c": 1}
        # a takes g2 alone; b and c compete for g1 which keeps c
        result = DeferredAcceptance().run(preferences, ranking, _capacities(g1=1, g2=1))

        assert result.waiting_lists["g1"] == ("c",)
        assert result.waiting_lists["g2"] == ("a",)
        assert result.current_choice["b"] is None

    def test_exhausted_participant_stays_unassigned(self):
        preferences = {"a": ["g1"], "b": ["g1"]}
        ranking = {"a": 0, "b": 1}
        result = DeferredAcceptance().run(preferences, ranking, _capacities(g1=1))

        assert result.current_choice == {"a": "g1", "b": None}

    def test_empty_preferences_never_hold_a_seat(self):
        preferences = {"a": [], "b": ["g1"]}
        ranking = {"a": 0, "b": 1}
        result = DeferredAcceptance().run(preferences, ranking, _capacities(g1=2))

        assert result.current_choice["a"] is None
        assert result.waiting_lists["g1"] == ("b",)

    def test_closed_group_holds_nobody(self):
        preferences = {"a": ["g1", "g2"], "b": ["g1", "g2"]}
        ranking = {"a": 0, "b": 1}
        capacities = _capacities(g1=2, g2=2).close("g1")
        result = DeferredAcceptance().run(preferences, ranking, capacities)

        assert result.waiting_lists["g1"] == ()
        assert result.waiting_lists["g2"] == ("a", "b")

    def test_preferences_are_not_consumed(self):
        preferences = {"a": ["g1", "g2"], "b": ["g1", "g2"]}
        ranking = {"a": 0, "b": 1}
        DeferredAcceptance().run(preferences, ranking, _capacities(g1=1, g2=1))

        assert preferences == {"a": ["g1", "g2"], "b": ["g1", "g2"]}

    @pytest.mark.parametrize("seed", range(10))
    def test_invariants_on_random_instances(self, seed):
        preferences, ranking, capacities = _random_instance(seed)
        result = DeferredAcceptance().run(preferences, ranking, capacities)

        held = [p for members in result.waiting_lists.values() for p in members]
        assert len(held) == len(set(held)), "participant held by two groups"
        assigned = [p for p, g in result.current_choice.items() if g is not None]
        assert sorted(held) == sorted(assigned)
        for participant, group_id in result.current_choice.items():
            if group_id is not None:
                assert participant in result.waiting_lists[group_id]
                assert group_id in preferences[participant]
        for group_id, members in result.waiting_lists.items():
            assert len(members) <= capacities.max_size(group_id)
            assert [ranking[p] for p in members] == sorted(ranking[p] for p in members)
        n_groups = len(capacities.max_sizes)
        assert result.passes <= len(preferences) * n_groups + 1

    @pytest.mark.parametrize("seed", range(10))
    def test_no_participant_is_rejected_for_a_worse_ranked_one(self, seed):
        preferences, ranking, capacities = _random_instance(seed)
        result = DeferredAcceptance().run(preferences, ranking, capacities)

        for participant, prefs in preferences.items():
            current = result.current_choice[participant]
            better = prefs if current is None else prefs[: prefs.index(current)]
            for group_id in better:
                members = result.waiting_lists[group_id]
                assert len(members) == capacities.max_size(group_id)
                assert all(ranking[m] < ranking[participant] for m in members)


class TestSerialDictatorship:
    def test_best_ranked_participant_chooses_first(self):
        preferences = {"a": ["g1", "g2"], "b": ["g1", "g2"]}
        ranking = {"a": 1, "b": 0}
        result = SerialDictatorship().run(preferences, ranking, _capacities(g1=1, g2=1))

        assert result.current_choice == {"a": "g2", "b": "g1"}

    @pytest.mark.parametrize("seed", range(10))
    def test_matches_deferred_acceptance(self, seed):
        """With one global priority order both strategies agree."""
        preferences, ranking, capacities = _random_instance(seed)
        da = DeferredAcceptance().run(preferences, ranking, capacities)
        sd = SerialDictatorship().run(preferences, ranking, capacities)

        assert sd.waiting_lists == da.waiting_lists
        assert sd.current_choice == da.current_choice


class TestAlgorithmRegistry:
    def test_registered_names(self):
        assert set(ALGORITHMS) == {"deferred_acceptance", "serial_dictatorship"}

    def test_get_algorithm_returns_instance(self):
        assert isinstance(get_algorithm("deferred_acceptance"), DeferredAcceptance)
        assert isinstance(get_algorithm("serial_dictatorship"), SerialDictatorship)

    def test_unknown_algorithm_raises(self):
        with pytest.raises(ValueError, match="Unknown algorithm 'simplex'"):
            get_algorithm("simplex")
