"""Design diagnostics module."""

from .balance import BalanceRow, balance_table, covariate_balance, standardized_mean_difference

__all__ = [
    "BalanceRow",
    "balance_table",
    "covariate_balance",
    "standardized_mean_difference",
]
