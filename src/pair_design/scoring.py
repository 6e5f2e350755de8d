"""
Scorer adapter: turn a population table into immutable scored units.

The predictive model is an external collaborator. Anything exposing
``predict`` (a fitted scikit-learn estimator or pipeline, possibly wrapped in
a dict as saved by training jobs) or a plain callable ``covariates -> score``
can be used.
"""

import logging
import math
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd
from sklearn.base import BaseEstimator
from sklearn.utils.validation import check_is_fitted

from .exceptions import DuplicateUnitError, EmptyInputError
from .schema import Unit

logger = logging.getLogger(__name__)

Scorer = Union[Callable[[dict], float], Any]


def load_scorer(model_path: str):
    """Load a fitted scoring model saved with joblib."""
    import joblib
    path = Path(model_path)
    if not path.exists():
        raise FileNotFoundError(f"Model not found: {model_path}")
    return joblib.load(path)


def _unwrap(model):
    if isinstance(model, dict):
        return model.get("pipeline", model.get("model", model))
    return model


def check_unique_ids(unit_ids: Iterable[str], where: str = "population") -> None:
    """Raise DuplicateUnitError if any unit_id occurs more than once."""
    seen = set()
    dupes = []
    for uid in unit_ids:
        if uid in seen and uid not in dupes:
            dupes.append(uid)
        seen.add(uid)
    if dupes:
        raise DuplicateUnitError(dupes, where=where)


def units_from_frame(
    df: pd.DataFrame,
    id_col: str = "unit_id",
    score_col: Optional[str] = None,
    covariate_cols: Optional[Sequence[str]] = None,
) -> List[Unit]:
    """
    Build units from a population table keyed by id_col.

    Args:
        df: Population table, one row per unit
        id_col: Column holding the unique unit identifier
        score_col: Optional column with an existing predicted score; missing
                   values leave the unit unscored
        covariate_cols: Columns to carry as covariates (default: all others)

    Returns:
        List of Unit in table order
    """
    if id_col not in df.columns:
        raise ValueError(f"Population table has no '{id_col}' column")
    if df.empty:
        raise EmptyInputError("Population table is empty")

    ids = df[id_col].astype(str).tolist()
    check_unique_ids(ids)

    if covariate_cols is None:
        covariate_cols = [c for c in df.columns if c not in (id_col, score_col)]

    if covariate_cols:
        records = df[list(covariate_cols)].to_dict(orient="records")
    else:
        records = [{} for _ in range(len(df))]
    scores = df[score_col].tolist() if score_col and score_col in df.columns else [None] * len(df)

    units = []
    for uid, covs, score in zip(ids, records, scores):
        if score is not None and not pd.isna(score):
            score = float(score)
        else:
            score = None
        units.append(Unit(unit_id=uid, covariates=covs, predicted_score=score))
    return units


def predict_scores(model, df: pd.DataFrame, feature_cols: Sequence[str]) -> np.ndarray:
    """Get predicted outcomes from a fitted model. Handles dict-wrapped pipelines."""
    estimator = _unwrap(model)
    missing = [c for c in feature_cols if c not in df.columns]
    if missing:
        raise ValueError(f"Feature columns missing from population: {missing}")
    if isinstance(estimator, BaseEstimator):
        check_is_fitted(estimator)
    if not hasattr(estimator, "predict"):
        raise ValueError("Model must support predict")
    return np.asarray(estimator.predict(df[list(feature_cols)]), dtype=float).ravel()


def score_units(units: Sequence[Unit], scorer: Scorer, feature_cols: Optional[Sequence[str]] = None) -> List[Unit]:
    """
    Attach predicted scores to units, returning new Unit objects.

    A model with ``predict`` is applied once to the covariate table; a plain
    callable is applied to each unit's covariates.
    """
    if not units:
        raise EmptyInputError("No units to score")

    estimator = _unwrap(scorer)
    if hasattr(estimator, "predict"):
        frame = pd.DataFrame([dict(u.covariates) for u in units])
        cols = list(feature_cols) if feature_cols else list(frame.columns)
        scores = predict_scores(estimator, frame, cols)
    elif callable(estimator):
        scores = [estimator(dict(u.covariates)) for u in units]
    else:
        raise TypeError("scorer must have predict() or be callable")

    scored = []
    for unit, score in zip(units, scores):
        score = float(score)
        if not math.isfinite(score):
            # Left unscored; the stratifier reports it as missing.
            logger.warning(f"Scorer returned non-finite score for unit {unit.unit_id}")
            scored.append(unit)
            continue
        scored.append(unit.with_score(score))
    logger.info(f"Scored {len(scored)} units")
    return scored
