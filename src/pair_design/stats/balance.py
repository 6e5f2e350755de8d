"""
Covariate balance between arms after assignment.

Per numeric covariate: arm means, standardized mean difference (pooled SD)
and a Welch t-test p-value. Paired designs should show small SMDs on the
covariates that drive the predicted score.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy import stats


@dataclass
class BalanceRow:
    """Balance statistics for one covariate."""
    covariate: str
    control_mean: float
    treatment_mean: float
    smd: float
    p_value: float


def standardized_mean_difference(control: np.ndarray, treatment: np.ndarray) -> float:
    """(mean_t - mean_c) / sqrt((var_c + var_t) / 2)."""
    pooled = np.sqrt((np.var(control, ddof=1) + np.var(treatment, ddof=1)) / 2)
    if pooled == 0:
        return 0.0
    return float((np.mean(treatment) - np.mean(control)) / pooled)


def covariate_balance(
    df: pd.DataFrame,
    covariate_cols: Optional[Sequence[str]] = None,
    treated_col: str = "treated",
) -> List[BalanceRow]:
    """
    Compute balance for each numeric covariate.

    Args:
        df: Assigned population (covariates plus treated flag)
        covariate_cols: Columns to check (default: all numeric except
                        treated/stratum_id)
        treated_col: Column with 0/1 treatment flag

    Returns:
        List of BalanceRow, one per covariate with at least two
        observations in each arm
    """
    if covariate_cols is None:
        covariate_cols = [
            c for c in df.select_dtypes(include="number").columns
            if c not in (treated_col, "stratum_id")
        ]

    treated_mask = df[treated_col].astype(bool)
    rows = []
    for col in covariate_cols:
        ctrl = df.loc[~treated_mask, col].dropna().astype(float).values
        treat = df.loc[treated_mask, col].dropna().astype(float).values
        if len(ctrl) < 2 or len(treat) < 2:
            continue
        _, p_val = stats.ttest_ind(treat, ctrl, equal_var=False)
        rows.append(BalanceRow(
            covariate=col,
            control_mean=float(np.mean(ctrl)),
            treatment_mean=float(np.mean(treat)),
            smd=standardized_mean_difference(ctrl, treat),
            p_value=float(p_val) if np.isfinite(p_val) else 1.0,
        ))
    return rows


def balance_table(rows: Sequence[BalanceRow]) -> pd.DataFrame:
    """Balance rows as a DataFrame, worst |SMD| first."""
    table = pd.DataFrame([vars(r) for r in rows], columns=list(BalanceRow.__dataclass_fields__))
    if table.empty:
        return table
    return table.reindex(table["smd"].abs().sort_values(ascending=False).index).reset_index(drop=True)
