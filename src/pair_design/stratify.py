"""
Stratifier: rank units by predicted score and pair adjacent ranks.

Units are sorted by score descending with unit_id ascending as a fixed
tie-break, so identical input always yields identical strata. Ranks 2k-1 and
2k form stratum k; with an odd population the last-ranked unit is a
singleton stratum.
"""

import logging
import math
from itertools import groupby
from typing import List, Sequence

from .exceptions import EmptyInputError, MissingScoreError
from .schema import Stratum, StratumMembership, Unit
from .scoring import check_unique_ids
from .validation import check_partition

logger = logging.getLogger(__name__)

STRATUM_SIZE = 2


def _rank_key(unit: Unit):
    return (-unit.predicted_score, unit.unit_id)


def stratify(units: Sequence[Unit]) -> List[StratumMembership]:
    """
    Place each unit in a stratum of rank-adjacent units.

    Args:
        units: Scored units

    Returns:
        Memberships in rank order (rank 1 = highest score)

    Raises:
        EmptyInputError: zero units
        DuplicateUnitError: a unit_id occurs twice
        MissingScoreError: a unit has no (finite) predicted score
    """
    if not units:
        raise EmptyInputError("Cannot stratify zero units")

    check_unique_ids((u.unit_id for u in units), where="stratifier input")

    unscored = [
        u.unit_id for u in units
        if u.predicted_score is None or not math.isfinite(u.predicted_score)
    ]
    if unscored:
        raise MissingScoreError(unscored)

    ranked = sorted(units, key=_rank_key)
    memberships = [
        StratumMembership(unit=u, stratum_id=i // STRATUM_SIZE + 1, rank=i + 1)
        for i, u in enumerate(ranked)
    ]

    check_partition(memberships, [u.unit_id for u in units])
    n_strata = memberships[-1].stratum_id
    logger.info(f"Stratification complete: {len(units)} units -> {n_strata} strata")
    return memberships


def build_strata(memberships: Sequence[StratumMembership]) -> List[Stratum]:
    """Group memberships into Stratum objects ordered by stratum_id."""
    ordered = sorted(memberships, key=lambda m: (m.stratum_id, m.rank))
    return [
        Stratum(stratum_id=sid, members=tuple(m.unit_id for m in group))
        for sid, group in groupby(ordered, key=lambda m: m.stratum_id)
    ]
