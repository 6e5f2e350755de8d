"""
Treatment effect estimation on log outcomes.

Fits OLS of log(outcome) on an intercept, the treatment indicator and, for
the paired design, one fixed effect per stratum (lowest stratum_id is the
reference). The stratum dummies absorb the shared predicted component of
each pair, which is where the design's variance reduction comes from.
The coefficient on ``treated`` approximates a proportional lift:
lift = exp(coef) - 1.
"""

import logging
from typing import Iterable, Mapping, Tuple, Union

import numpy as np
import pandas as pd
import statsmodels.api as sm

from .exceptions import EmptyInputError, InvalidOutcomeError, RankDeficientError
from .schema import DesignComparison, EffectEstimate

logger = logging.getLogger(__name__)

Records = Union[pd.DataFrame, Iterable[Mapping]]

DEFAULT_OUTCOME_COL = "observed_outcome"


def _records_to_frame(records: Records, outcome_col: str, use_strata: bool) -> pd.DataFrame:
    df = records.copy() if isinstance(records, pd.DataFrame) else pd.DataFrame(list(records))
    if df.empty:
        raise EmptyInputError("No records to estimate on")

    required = ["treated", outcome_col] + (["stratum_id"] if use_strata else [])
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Records are missing columns: {missing}")

    n_before = len(df)
    df = df[df[outcome_col].notna()]
    if len(df) < n_before:
        logger.warning(f"Dropped {n_before - len(df)} records with missing {outcome_col}")
    if df.empty:
        raise EmptyInputError(f"No records with an observed {outcome_col}")

    raw = df["treated"]
    if not raw.isin([False, True, 0, 1]).all():
        raise ValueError("treated must be boolean or 0/1")
    df = df.assign(treated=raw.astype(int))

    outcomes = df[outcome_col].astype(float)
    bad = ~np.isfinite(outcomes) | (outcomes <= 0)
    if bad.any():
        raise InvalidOutcomeError(
            f"{int(bad.sum())} non-finite or non-positive {outcome_col} value(s) cannot be log-transformed"
        )
    return df


def _design_matrix(df: pd.DataFrame, use_strata: bool) -> pd.DataFrame:
    X = pd.DataFrame({"const": 1.0, "treated": df["treated"].astype(float)}, index=df.index)
    if use_strata:
        dummies = pd.get_dummies(df["stratum_id"], prefix="stratum", drop_first=True, dtype=float)
        X = pd.concat([X, dummies], axis=1)
    return X


def _strata_without_contrast(df: pd.DataFrame) -> list:
    spread = df.groupby("stratum_id")["treated"].nunique()
    return sorted(spread[spread < 2].index.tolist())


def _raise_singular(df: pd.DataFrame, use_strata: bool, detail: str) -> None:
    if df["treated"].nunique() < 2:
        raise RankDeficientError("Treatment indicator does not vary across records")
    offending = _strata_without_contrast(df) if use_strata else []
    raise RankDeficientError(f"Design matrix is singular ({detail})", stratum_ids=offending)


def fit_effect(
    records: Records,
    use_strata: bool = True,
    cov_type: str = "nonrobust",
    ci_level: float = 0.95,
    outcome_col: str = DEFAULT_OUTCOME_COL,
) -> EffectEstimate:
    """
    Fit the log-outcome regression and return the treatment effect.

    Args:
        records: Rows with treated, stratum_id and the observed outcome
        use_strata: Include stratum fixed effects (paired design) or not
                    (simple random design)
        cov_type: statsmodels covariance type for the standard errors
        ci_level: Confidence level for the interval on the coefficient
        outcome_col: Column with the observed outcome

    Returns:
        EffectEstimate with the fitted statsmodels results attached

    Raises:
        EmptyInputError: no records with an observed outcome
        InvalidOutcomeError: a non-finite or non-positive outcome
        RankDeficientError: singular design matrix
    """
    df = _records_to_frame(records, outcome_col, use_strata)
    X = _design_matrix(df, use_strata)
    n, k = X.shape
    if n < k:
        _raise_singular(df, use_strata, f"{n} records for {k} parameters")
    if n == k:
        raise RankDeficientError(f"{n} records for {k} parameters leaves no residual degrees of freedom")

    y = np.log(df[outcome_col].astype(float))
    model = sm.OLS(y, X)
    results = model.fit(cov_type=cov_type)
    # rank comes from the singular values of the pinv used by the fit
    if model.rank < k:
        _raise_singular(df, use_strata, f"rank {model.rank} < {k} columns")

    coef = float(results.params["treated"])
    se = float(results.bse["treated"])
    ci = results.conf_int(alpha=1 - ci_level).loc["treated"]

    estimate = EffectEstimate(
        coefficient=coef,
        standard_error=se,
        lift=float(np.expm1(coef)),
        p_value=float(results.pvalues["treated"]),
        ci_low=float(ci.iloc[0]),
        ci_high=float(ci.iloc[1]),
        n_obs=int(results.nobs),
        n_strata=int(df["stratum_id"].nunique()) if use_strata else 0,
        use_strata=use_strata,
        cov_type=cov_type,
        model=results,
    )
    logger.info(
        f"Effect estimate ({'stratified' if use_strata else 'simple'}): "
        f"coef={coef:.5f}, se={se:.5f}, n={estimate.n_obs}"
    )
    return estimate


def estimate(records: Records, use_strata: bool = True, outcome_col: str = DEFAULT_OUTCOME_COL) -> Tuple[float, float]:
    """Return (coefficient, standard_error) on the treatment indicator."""
    return fit_effect(records, use_strata=use_strata, outcome_col=outcome_col).as_tuple()


def compare_designs(
    stratified_records: Records,
    simple_records: Records,
    cov_type: str = "nonrobust",
    outcome_col: str = DEFAULT_OUTCOME_COL,
) -> DesignComparison:
    """Fit the paired design with fixed effects and the simple design without."""
    return DesignComparison(
        stratified=fit_effect(stratified_records, use_strata=True, cov_type=cov_type, outcome_col=outcome_col),
        simple=fit_effect(simple_records, use_strata=False, cov_type=cov_type, outcome_col=outcome_col),
    )
