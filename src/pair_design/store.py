"""
Lightweight store for assignment tables and design metadata.

Writes CSV/JSON under data/designs/<experiment_id>/ so a run can be audited
and re-derived: the metadata keeps the seed and the stratum count, and the
assignment table is sorted by unit_id.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict

import pandas as pd

from .schema import AssignmentResult, DesignConfig

logger = logging.getLogger(__name__)

DEFAULT_STORE_DIR = "data/designs"


def _ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def _design_dir(experiment_id: str, base_dir: str = DEFAULT_STORE_DIR) -> Path:
    return Path(base_dir) / experiment_id


def _read_csv(path: Path) -> pd.DataFrame:
    if not path.exists():
        return pd.DataFrame()
    return pd.read_csv(path, dtype={"unit_id": str})


def write_assignments(
    result: AssignmentResult,
    experiment_id: str,
    base_dir: str = DEFAULT_STORE_DIR,
) -> Path:
    """
    Write the assignment table (unit_id, stratum_id, treated).

    Returns:
        Path of the written file
    """
    path = _design_dir(experiment_id, base_dir) / "assignments.csv"
    _ensure_dir(path.parent)
    result.to_frame().to_csv(path, index=False)
    logger.info(f"Wrote {len(result.assignments)} assignments to {path}")
    return path


def read_assignments(experiment_id: str, base_dir: str = DEFAULT_STORE_DIR) -> pd.DataFrame:
    """Read the assignment table; empty DataFrame if none was written."""
    return _read_csv(_design_dir(experiment_id, base_dir) / "assignments.csv")


def write_design_metadata(
    config: DesignConfig,
    result: AssignmentResult,
    base_dir: str = DEFAULT_STORE_DIR,
) -> Path:
    """Persist the seed and design summary needed to re-derive an assignment."""
    path = _design_dir(config.experiment_id, base_dir) / "design.json"
    _ensure_dir(path.parent)
    meta = {
        "experiment_id": config.experiment_id,
        "name": config.name,
        "score_col": config.score_col,
        **result.to_dict(),
    }
    with open(path, "w") as f:
        json.dump(meta, f, indent=2)
    logger.info(f"Design metadata written to {path}")
    return path


def read_design_metadata(experiment_id: str, base_dir: str = DEFAULT_STORE_DIR) -> Dict[str, Any]:
    """Read design metadata; empty dict if none was written."""
    path = _design_dir(experiment_id, base_dir) / "design.json"
    if not path.exists():
        return {}
    with open(path) as f:
        return json.load(f)


def get_design_summary(experiment_id: str, base_dir: str = DEFAULT_STORE_DIR) -> dict:
    """
    Get summary counts for a stored design.

    Returns:
        Dict with n_units, n_strata, control_count, treatment_count
    """
    df = read_assignments(experiment_id, base_dir=base_dir)
    if df.empty:
        return {"n_units": 0, "n_strata": 0, "control_count": 0, "treatment_count": 0}
    return {
        "n_units": len(df),
        "n_strata": int(df["stratum_id"].nunique()),
        "control_count": int((df["treated"] == 0).sum()),
        "treatment_count": int((df["treated"] == 1).sum()),
    }
