"""
Error taxonomy for the stratified assignment engine.

All hard failures derive from DesignError (a ValueError) so callers can catch
structural data problems in one place. Nothing here is retried: each error
names the invariant that was violated and the offending ids.
"""

from typing import Iterable, Optional, Tuple


def _preview(ids: Iterable, limit: int = 10) -> str:
    ids = list(ids)
    shown = ", ".join(str(i) for i in ids[:limit])
    if len(ids) > limit:
        shown += f", ... ({len(ids) - limit} more)"
    return shown


class DesignError(ValueError):
    """Base class for structural errors in the design pipeline."""


class EmptyInputError(DesignError):
    """Raised when a stage receives zero units."""


class MissingScoreError(DesignError):
    """Raised when a unit reaches the stratifier without a predicted score."""

    def __init__(self, unit_ids: Iterable[str]):
        self.unit_ids: Tuple[str, ...] = tuple(unit_ids)
        super().__init__(
            f"{len(self.unit_ids)} unit(s) have no predicted_score: {_preview(self.unit_ids)}"
        )


class DuplicateUnitError(DesignError):
    """Raised when a unit_id appears more than once where it must be unique."""

    def __init__(self, unit_ids: Iterable[str], where: str = "population"):
        self.unit_ids: Tuple[str, ...] = tuple(unit_ids)
        super().__init__(
            f"Duplicate unit_id in {where}: {_preview(self.unit_ids)}"
        )


class RankDeficientError(DesignError):
    """
    Raised when the estimator's design matrix is singular.

    stratum_ids lists the strata without any within-stratum treatment
    contrast, when that can be determined.
    """

    def __init__(self, message: str, stratum_ids: Optional[Iterable[int]] = None):
        self.stratum_ids: Tuple[int, ...] = tuple(stratum_ids or ())
        if self.stratum_ids:
            message = f"{message} (strata without treatment contrast: {_preview(self.stratum_ids)})"
        super().__init__(message)


class InvalidOutcomeError(DesignError):
    """Raised when observed outcomes cannot be log-transformed."""


class InvariantViolationError(DesignError):
    """Raised when a stage boundary check fails."""


class OddPopulationWarning(UserWarning):
    """One unit was assigned by the singleton coin-flip instead of pair balance."""
