"""Tests for score-ranked pairing."""
import random

import pytest
from pair_design.exceptions import (
    DuplicateUnitError,
    EmptyInputError,
    InvariantViolationError,
    MissingScoreError,
)
from pair_design.schema import StratumMembership, Unit
from pair_design.stratify import build_strata, stratify
from pair_design.validation import check_adjacency


def _units(scores):
    return [Unit(unit_id=f"u{i:03d}", predicted_score=s) for i, s in enumerate(scores)]


def test_scenario_four_units():
    """Scores [10, 9, 2, 1] -> {10, 9} is stratum 1, {2, 1} is stratum 2."""
    units = _units([1, 10, 2, 9])
    by_score = {m.unit.predicted_score: m.stratum_id for m in stratify(units)}
    assert by_score == {10: 1, 9: 1, 2: 2, 1: 2}


@pytest.mark.parametrize("n", range(1, 12))
def test_strata_partition_population(n):
    """ceil(N/2) strata whose members partition the population."""
    units = _units([random.Random(n).random() for _ in range(n)])
    strata = build_strata(stratify(units))
    assert len(strata) == (n + 1) // 2
    members = [uid for s in strata for uid in s.members]
    assert sorted(members) == sorted(u.unit_id for u in units)
    assert len(members) == len(set(members))
    assert [s.stratum_id for s in strata] == list(range(1, len(strata) + 1))


def test_odd_population_singleton_is_last():
    strata = build_strata(stratify(_units([5, 4, 3, 2, 1])))
    assert [len(s.members) for s in strata] == [2, 2, 1]
    assert strata[-1].is_singleton
    assert strata[-1].members == ("u004",)


def test_pairs_are_adjacent_in_rank():
    """Each pair holds two consecutive ranks; no non-adjacent partner."""
    rng = random.Random(7)
    memberships = stratify(_units([rng.gauss(0, 1) for _ in range(40)]))
    check_adjacency(memberships)
    ranked = sorted(memberships, key=lambda m: m.rank)
    for first, second in zip(ranked[::2], ranked[1::2]):
        assert first.stratum_id == second.stratum_id
        assert first.unit.predicted_score >= second.unit.predicted_score


def test_ties_broken_by_unit_id():
    units = [Unit("c", predicted_score=1.0), Unit("a", predicted_score=1.0), Unit("b", predicted_score=1.0)]
    ranked = [m.unit_id for m in sorted(stratify(units), key=lambda m: m.rank)]
    assert ranked == ["a", "b", "c"]


def test_output_independent_of_input_order():
    units = _units([3.0, 3.0, 1.0, 7.0, 2.0, 7.0])
    shuffled = list(units)
    random.Random(0).shuffle(shuffled)
    assert build_strata(stratify(units)) == build_strata(stratify(shuffled))


def test_missing_score_raises():
    units = _units([1.0, 2.0]) + [Unit("unscored")]
    with pytest.raises(MissingScoreError) as exc:
        stratify(units)
    assert exc.value.unit_ids == ("unscored",)


def test_nan_score_counts_as_missing():
    with pytest.raises(MissingScoreError):
        stratify(_units([1.0, float("nan")]))


def test_empty_input_raises():
    with pytest.raises(EmptyInputError):
        stratify([])


def test_duplicate_unit_raises():
    units = [Unit("a", predicted_score=1.0), Unit("a", predicted_score=2.0)]
    with pytest.raises(DuplicateUnitError):
        stratify(units)


def test_units_not_mutated():
    units = _units([2.0, 1.0])
    memberships = stratify(units)
    assert memberships[0].unit is units[0]
    assert units[0].predicted_score == 2.0


def test_adjacency_check_flags_skipped_rank():
    units = _units([3.0, 2.0, 1.0, 0.0])
    bad = [
        StratumMembership(units[0], 1, 1),
        StratumMembership(units[2], 1, 3),
        StratumMembership(units[1], 2, 2),
        StratumMembership(units[3], 2, 4),
    ]
    with pytest.raises(InvariantViolationError):
        check_adjacency(bad)
