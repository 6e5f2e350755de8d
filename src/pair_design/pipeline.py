"""
Design entrypoints.

run_assignment: population table (+ optional scorer) -> assigned table with
stratum_id and treated columns, row count preserved.
run_estimation: unit-level records -> EffectEstimate JSON saved to
artifacts/designs/<experiment_id>/.
"""

import json
import logging
from pathlib import Path
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from .assignment import assign
from .estimate import fit_effect
from .schema import AssignmentResult, DesignConfig, EffectEstimate
from .scoring import Scorer, score_units, units_from_frame
from .store import write_assignments, write_design_metadata
from .stratify import build_strata, stratify
from .validation import check_adjacency, check_join_preserves_rows

logger = logging.getLogger(__name__)

DEFAULT_ARTIFACTS_DIR = "artifacts/designs"

_KEY = "_unit_key"


def attach_assignments(
    population: pd.DataFrame,
    result: AssignmentResult,
    id_col: str = "unit_id",
) -> pd.DataFrame:
    """
    Join assignments back to the population on unit_id.

    Returns a new frame with every original column plus stratum_id and
    treated; raises if the join would add or lose rows.
    """
    clash = [c for c in ("stratum_id", "treated") if c in population.columns]
    if clash:
        raise ValueError(f"Population already has assignment columns: {clash}")

    table = result.to_frame().rename(columns={"unit_id": _KEY})
    merged = (
        population.assign(**{_KEY: population[id_col].astype(str)})
        .merge(table, on=_KEY, how="inner", validate="one_to_one")
        .drop(columns=[_KEY])
    )
    check_join_preserves_rows(len(population), len(merged))
    return merged


def run_assignment(
    population: pd.DataFrame,
    config: DesignConfig,
    scorer: Optional[Scorer] = None,
    store_dir: Optional[str] = None,
) -> Tuple[pd.DataFrame, AssignmentResult]:
    """
    Score, stratify and assign a population.

    Args:
        population: Table keyed by config.id_col with covariate columns
        config: Design configuration (seed, column names)
        scorer: External model; when omitted, config.score_col must already
                hold predicted scores
        store_dir: If given, persist assignments and design metadata there

    Returns:
        Tuple of (assigned population, AssignmentResult)
    """
    units = units_from_frame(
        population,
        id_col=config.id_col,
        score_col=None if scorer is not None else config.score_col,
    )
    if scorer is not None:
        units = score_units(units, scorer, feature_cols=config.feature_cols or None)

    memberships = stratify(units)
    check_adjacency(memberships)
    result = assign(build_strata(memberships), seed=config.seed)

    assigned = attach_assignments(population, result, id_col=config.id_col)
    if scorer is not None:
        scores = {u.unit_id: u.predicted_score for u in units}
        assigned[config.score_col] = assigned[config.id_col].astype(str).map(scores)

    if store_dir is not None:
        write_assignments(result, config.experiment_id, base_dir=store_dir)
        write_design_metadata(config, result, base_dir=store_dir)

    return assigned, result


def realize_outcomes(
    assigned: pd.DataFrame,
    treated_col: str = "y_treated",
    control_col: str = "y_control",
    outcome_col: str = "observed_outcome",
) -> pd.DataFrame:
    """Reveal the potential outcome matching each unit's treated flag."""
    observed = np.where(assigned["treated"].astype(bool), assigned[treated_col], assigned[control_col])
    return assigned.assign(**{outcome_col: observed})


def run_estimation(
    records: pd.DataFrame,
    config: DesignConfig,
    artifacts_dir: Optional[str] = DEFAULT_ARTIFACTS_DIR,
) -> EffectEstimate:
    """
    Fit the effect model for a design and save estimate.json.

    Args:
        records: Unit-level rows with treated, stratum_id, observed outcome
        config: Design configuration
        artifacts_dir: Base artifacts directory; None skips writing

    Returns:
        EffectEstimate
    """
    result = fit_effect(
        records,
        use_strata=config.use_strata,
        cov_type=config.cov_type,
        ci_level=config.ci_level,
        outcome_col=config.outcome_col,
    )

    if artifacts_dir is not None:
        out_dir = Path(artifacts_dir) / config.experiment_id
        out_dir.mkdir(parents=True, exist_ok=True)
        with open(out_dir / "estimate.json", "w") as f:
            json.dump({"experiment_id": config.experiment_id, **result.to_dict()}, f, indent=2)
        logger.info(f"Estimate saved to {out_dir}")

    return result
