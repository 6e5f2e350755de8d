"""
Stage-boundary invariant checks.

Each check raises InvariantViolationError naming the broken invariant rather
than coercing or dropping data.
"""

from collections import Counter
from typing import Iterable, Sequence

from .exceptions import InvariantViolationError
from .schema import Assignment, Stratum, StratumMembership


def check_partition(memberships: Sequence[StratumMembership], population_ids: Iterable[str]) -> None:
    """Strata must cover the population exactly, in pairs plus at most one trailing singleton."""
    population = set(population_ids)
    placed = [m.unit_id for m in memberships]
    if len(placed) != len(set(placed)) or set(placed) != population:
        missing = sorted(population - set(placed))
        extra = sorted(set(placed) - population)
        raise InvariantViolationError(
            f"Strata do not partition the population (missing={missing[:10]}, extra={extra[:10]})"
        )

    sizes = Counter(m.stratum_id for m in memberships)
    n_strata = len(sizes)
    expected_ids = set(range(1, n_strata + 1))
    if set(sizes) != expected_ids:
        raise InvariantViolationError(f"Stratum ids are not 1..{n_strata}")
    for sid, size in sizes.items():
        if size == 2 or (size == 1 and sid == n_strata):
            continue
        raise InvariantViolationError(f"Stratum {sid} has {size} members")


def check_adjacency(memberships: Sequence[StratumMembership]) -> None:
    """Members of a stratum must hold consecutive ranks in score order."""
    by_stratum = {}
    for m in memberships:
        by_stratum.setdefault(m.stratum_id, []).append(m)
    for sid, members in by_stratum.items():
        ranks = sorted(m.rank for m in members)
        if ranks != list(range(ranks[0], ranks[0] + len(ranks))):
            raise InvariantViolationError(f"Stratum {sid} pairs non-adjacent ranks {ranks}")
        scores = [m.unit.predicted_score for m in sorted(members, key=lambda m: m.rank)]
        if scores != sorted(scores, reverse=True):
            raise InvariantViolationError(f"Stratum {sid} members are out of score order")


def check_assignment(assignments: Sequence[Assignment], strata: Sequence[Stratum]) -> None:
    """
    Every stratum member is assigned exactly once, full strata are split
    one treated / one control, and the treated total is floor or ceil of N/2.
    """
    expected = {uid: s for s in strata for uid in s.members}
    counts = Counter(a.unit_id for a in assignments)
    repeated = sorted(uid for uid, c in counts.items() if c > 1)
    if repeated:
        raise InvariantViolationError(f"Units assigned more than once: {repeated[:10]}")
    if set(counts) != set(expected):
        raise InvariantViolationError("Assigned unit ids differ from stratified unit ids")

    treated_by_stratum = Counter()
    for a in assignments:
        if not isinstance(a.treated, bool):
            raise InvariantViolationError(f"Unit {a.unit_id} has non-boolean treated={a.treated!r}")
        if a.stratum_id != expected[a.unit_id].stratum_id:
            raise InvariantViolationError(f"Unit {a.unit_id} carries the wrong stratum_id")
        treated_by_stratum[a.stratum_id] += int(a.treated)

    for s in strata:
        if not s.is_singleton and treated_by_stratum[s.stratum_id] != 1:
            raise InvariantViolationError(
                f"Stratum {s.stratum_id} has {treated_by_stratum[s.stratum_id]} treated members"
            )

    n = len(assignments)
    n_treated = sum(treated_by_stratum.values())
    if n_treated not in (n // 2, (n + 1) // 2):
        raise InvariantViolationError(f"{n_treated} of {n} units treated; expected floor/ceil of N/2")


def check_join_preserves_rows(n_before: int, n_after: int, what: str = "assignment join") -> None:
    if n_before != n_after:
        raise InvariantViolationError(f"{what} changed row count: {n_before} -> {n_after}")
