"""
Seeded treatment assignment within score-matched strata.

Each call builds its own numpy Generator from the seed, walks strata in
stratum_id order and draws one uniform bit per stratum. Members of a pair are
put in canonical (sorted unit_id) order before the draw, so the result
depends only on the seed and the partition, not on how the input was ordered.
"""

import logging
import warnings
from collections import Counter
from typing import List, Sequence

import numpy as np

from .exceptions import DuplicateUnitError, EmptyInputError, InvariantViolationError, OddPopulationWarning
from .schema import Assignment, AssignmentResult, Stratum
from .scoring import check_unique_ids
from .validation import check_assignment

logger = logging.getLogger(__name__)


def _check_strata(strata: Sequence[Stratum]) -> List[Stratum]:
    if not strata or not any(s.members for s in strata):
        raise EmptyInputError("Cannot assign zero units")

    member_counts = Counter(uid for s in strata for uid in s.members)
    dupes = sorted(uid for uid, c in member_counts.items() if c > 1)
    if dupes:
        raise DuplicateUnitError(dupes, where="strata")

    id_counts = Counter(s.stratum_id for s in strata)
    repeated = sorted(sid for sid, c in id_counts.items() if c > 1)
    if repeated:
        raise InvariantViolationError(f"Repeated stratum_id: {repeated}")

    for s in strata:
        if not 1 <= len(s.members) <= 2:
            raise InvariantViolationError(
                f"Stratum {s.stratum_id} has {len(s.members)} members; expected 1 or 2"
            )
    return sorted(strata, key=lambda s: s.stratum_id)


def assign(strata: Sequence[Stratum], seed: int) -> AssignmentResult:
    """
    Assign one treated and one control unit per stratum.

    A singleton stratum (odd population) is settled by a coin flip. That
    unit is reported in ``singleton_unit_ids`` and an OddPopulationWarning is
    issued, since it leaves the design one unit out of balance.

    Args:
        strata: Stratum partition from the stratifier
        seed: Seed for the per-call random generator

    Returns:
        AssignmentResult with assignments sorted by unit_id

    Raises:
        EmptyInputError: no units
        DuplicateUnitError: a unit_id appears in more than one stratum
    """
    if seed is None:
        raise ValueError("seed is required for reproducible assignment")

    ordered = _check_strata(strata)
    rng = np.random.default_rng(seed)
    bits = rng.integers(0, 2, size=len(ordered))

    assignments = []
    singletons = []
    for stratum, bit in zip(ordered, bits):
        if stratum.is_singleton:
            uid = stratum.members[0]
            assignments.append(Assignment(uid, stratum.stratum_id, bool(bit)))
            singletons.append(uid)
            continue
        members = sorted(stratum.members)
        treated_uid = members[int(bit)]
        for uid in members:
            assignments.append(Assignment(uid, stratum.stratum_id, uid == treated_uid))

    check_assignment(assignments, ordered)

    if singletons:
        msg = (
            f"Odd population: unit(s) {singletons} assigned by singleton coin flip, "
            "not pair-balanced"
        )
        logger.warning(msg)
        warnings.warn(msg, OddPopulationWarning, stacklevel=2)

    assignments.sort(key=lambda a: a.unit_id)
    result = AssignmentResult(
        assignments=tuple(assignments),
        seed=seed,
        n_strata=len(ordered),
        singleton_unit_ids=tuple(singletons),
    )
    logger.info(
        f"Assignment complete: {len(assignments)} units in {result.n_strata} strata -> "
        f"control={result.n_control}, treatment={result.n_treated}"
    )
    return result


def simple_random_assign(unit_ids: Sequence[str], seed: int) -> AssignmentResult:
    """
    Complete randomization baseline: floor(N/2) units treated at random.

    Every unit gets stratum_id 0. Used to compare the paired design against
    an unstratified one on the same population.
    """
    if seed is None:
        raise ValueError("seed is required for reproducible assignment")
    unit_ids = list(unit_ids)
    if not unit_ids:
        raise EmptyInputError("Cannot assign zero units")
    check_unique_ids(unit_ids, where="assignment input")

    ordered = sorted(unit_ids)
    rng = np.random.default_rng(seed)
    perm = rng.permutation(len(ordered))
    treated = set(perm[: len(ordered) // 2].tolist())

    assignments = tuple(
        Assignment(uid, 0, i in treated) for i, uid in enumerate(ordered)
    )
    result = AssignmentResult(assignments=assignments, seed=seed, n_strata=0)
    logger.info(
        f"Simple random assignment: {len(assignments)} units -> "
        f"control={result.n_control}, treatment={result.n_treated}"
    )
    return result
