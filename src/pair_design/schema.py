"""
Data models for the stratified assignment engine.

Immutable value types for each pipeline stage (Unit -> StratumMembership ->
Assignment), the design configuration, and estimation results.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pandas as pd


class ArmType(str, Enum):
    """Experiment arm type."""
    CONTROL = "control"
    TREATMENT = "treatment"


@dataclass(frozen=True)
class Unit:
    """One experimental subject, optionally carrying its predicted score."""
    unit_id: str
    covariates: Mapping[str, Any] = field(default_factory=dict, hash=False)
    predicted_score: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, "covariates", MappingProxyType(dict(self.covariates)))

    def with_score(self, score: float) -> "Unit":
        """Return a scored copy; the original unit is left untouched."""
        return replace(self, predicted_score=float(score))


@dataclass(frozen=True)
class StratumMembership:
    """A unit placed at a rank in the score ordering and its stratum."""
    unit: Unit
    stratum_id: int
    rank: int

    @property
    def unit_id(self) -> str:
        return self.unit.unit_id


@dataclass(frozen=True)
class Stratum:
    """A pair of rank-adjacent units (or a single unit for an odd leftover)."""
    stratum_id: int
    members: Tuple[str, ...]

    @property
    def is_singleton(self) -> bool:
        return len(self.members) == 1


@dataclass(frozen=True)
class Assignment:
    """Treatment status for a single unit."""
    unit_id: str
    stratum_id: int
    treated: bool

    @property
    def arm(self) -> ArmType:
        return ArmType.TREATMENT if self.treated else ArmType.CONTROL


@dataclass(frozen=True)
class AssignmentResult:
    """Output of an assignment run, sorted by unit_id."""
    assignments: Tuple[Assignment, ...]
    seed: int
    n_strata: int
    singleton_unit_ids: Tuple[str, ...] = ()

    @property
    def has_singleton(self) -> bool:
        return bool(self.singleton_unit_ids)

    @property
    def n_treated(self) -> int:
        return sum(1 for a in self.assignments if a.treated)

    @property
    def n_control(self) -> int:
        return len(self.assignments) - self.n_treated

    def to_frame(self) -> pd.DataFrame:
        """Assignment table with columns unit_id, stratum_id, treated (0/1)."""
        return pd.DataFrame(
            {
                "unit_id": [a.unit_id for a in self.assignments],
                "stratum_id": [a.stratum_id for a in self.assignments],
                "treated": [int(a.treated) for a in self.assignments],
            },
            columns=["unit_id", "stratum_id", "treated"],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "n_units": len(self.assignments),
            "n_strata": self.n_strata,
            "n_treated": self.n_treated,
            "n_control": self.n_control,
            "singleton_unit_ids": list(self.singleton_unit_ids),
        }


@dataclass
class DesignConfig:
    """Configuration for a paired stratified experiment."""
    experiment_id: str
    seed: int
    name: str = ""
    id_col: str = "unit_id"
    score_col: str = "predicted_score"
    outcome_col: str = "observed_outcome"
    feature_cols: List[str] = field(default_factory=list)
    use_strata: bool = True
    cov_type: str = "nonrobust"  # statsmodels covariance type, e.g. HC1
    ci_level: float = 0.95


@dataclass
class EffectEstimate:
    """Treatment effect from the log-outcome regression."""
    coefficient: float
    standard_error: float
    lift: float
    p_value: float
    ci_low: float
    ci_high: float
    n_obs: int
    n_strata: int
    use_strata: bool
    cov_type: str = "nonrobust"
    model: Any = field(default=None, repr=False, compare=False)

    def as_tuple(self) -> Tuple[float, float]:
        return self.coefficient, self.standard_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dict (the fitted model is omitted)."""
        return {
            "coefficient": self.coefficient,
            "standard_error": self.standard_error,
            "lift": self.lift,
            "p_value": self.p_value,
            "ci_low": self.ci_low,
            "ci_high": self.ci_high,
            "n_obs": self.n_obs,
            "n_strata": self.n_strata,
            "use_strata": self.use_strata,
            "cov_type": self.cov_type,
        }


@dataclass
class DesignComparison:
    """Stratified vs simple random design on the same potential outcomes."""
    stratified: EffectEstimate
    simple: EffectEstimate

    @property
    def variance_ratio(self) -> float:
        """Var(stratified) / Var(simple); below 1 means the pairing helped."""
        if self.simple.standard_error == 0:
            return float("nan")
        return (self.stratified.standard_error / self.simple.standard_error) ** 2

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stratified": self.stratified.to_dict(),
            "simple": self.simple.to_dict(),
            "variance_ratio": self.variance_ratio,
        }
