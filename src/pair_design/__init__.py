"""Paired stratified assignment: rank by predicted outcome, pair, randomize, estimate."""

from .schema import (
    ArmType,
    Assignment,
    AssignmentResult,
    DesignComparison,
    DesignConfig,
    EffectEstimate,
    Stratum,
    StratumMembership,
    Unit,
)
from .exceptions import (
    DesignError,
    DuplicateUnitError,
    EmptyInputError,
    InvalidOutcomeError,
    InvariantViolationError,
    MissingScoreError,
    OddPopulationWarning,
    RankDeficientError,
)
from .scoring import load_scorer, score_units, units_from_frame
from .stratify import build_strata, stratify
from .assignment import assign, simple_random_assign
from .estimate import compare_designs, estimate, fit_effect
from .pipeline import attach_assignments, realize_outcomes, run_assignment, run_estimation

__all__ = [
    "ArmType",
    "Assignment",
    "AssignmentResult",
    "DesignComparison",
    "DesignConfig",
    "EffectEstimate",
    "Stratum",
    "StratumMembership",
    "Unit",
    "DesignError",
    "DuplicateUnitError",
    "EmptyInputError",
    "InvalidOutcomeError",
    "InvariantViolationError",
    "MissingScoreError",
    "OddPopulationWarning",
    "RankDeficientError",
    "load_scorer",
    "score_units",
    "units_from_frame",
    "build_strata",
    "stratify",
    "assign",
    "simple_random_assign",
    "compare_designs",
    "estimate",
    "fit_effect",
    "attach_assignments",
    "realize_outcomes",
    "run_assignment",
    "run_estimation",
]
