"""
Return Preparation Module

Pure functions turning aligned price data into the zero-mean return series
consumed by the volatility/correlation engine, plus lagging of the state
variables used by the CoVaR quantile regression.
"""

import numpy as np
import pandas as pd
import structlog
from typing import Optional, Tuple

logger = structlog.get_logger(__name__)


def compute_log_returns(price_matrix: pd.DataFrame) -> pd.DataFrame:
    """Compute log returns from price matrix.

    log_return = ln(P_t / P_{t-1})

    Args:
        price_matrix: DataFrame with DatetimeIndex and one column per series

    Returns:
        DataFrame with log returns (first row dropped due to NaN)

    Raises:
        ValueError: If non-positive prices or infinite returns are detected
    """
    if price_matrix.empty:
        raise ValueError("Cannot compute returns from empty price matrix")

    if (price_matrix <= 0).any().any():
        bad_prices = (price_matrix <= 0).sum()
        logger.error(
            "compute_log_returns: zero or negative prices detected",
            affected_series=bad_prices[bad_prices > 0].to_dict()
        )
        raise ValueError("Zero or negative prices detected in price matrix")

    log_returns = np.log(price_matrix / price_matrix.shift(1)).iloc[1:]

    if np.isinf(log_returns.values).any():
        inf_counts = np.isinf(log_returns.values).sum(axis=0)
        affected = [
            price_matrix.columns[i]
            for i, count in enumerate(inf_counts)
            if count > 0
        ]
        logger.error(
            "compute_log_returns: infinite values detected",
            affected_series=affected
        )
        raise ValueError(f"Infinite values detected in returns for series: {affected}")

    logger.debug(
        "compute_log_returns: returns computed",
        num_series=len(log_returns.columns),
        num_periods=len(log_returns)
    )

    return log_returns


def demean(returns) -> np.ndarray:
    """Subtract the full-sample mean from a return series.

    Args:
        returns: 1-D array-like of returns

    Returns:
        Zero-mean numpy array of the same length

    Raises:
        ValueError: If the series is empty, not 1-D or contains NaN
    """
    values = np.asarray(returns, dtype=float)

    if values.ndim != 1:
        raise ValueError(f"Returns must be one-dimensional, got shape {values.shape}")

    if values.size == 0:
        raise ValueError("Cannot demean an empty return series")

    if not np.all(np.isfinite(values)):
        raise ValueError("NaN or infinite values detected in return series")

    return values - values.mean()


def demean_pair(
    index_returns,
    firm_returns,
) -> Tuple[np.ndarray, np.ndarray]:
    """Demean an index series and a firm series that share the same dates.

    Args:
        index_returns: Market index returns (length T)
        firm_returns: Firm returns (length T)

    Returns:
        Tuple (demeaned index returns, demeaned firm returns)
    """
    market = demean(index_returns)
    firm = demean(firm_returns)

    if market.shape != firm.shape:
        raise ValueError(
            f"Index length {market.shape[0]} doesn't match firm length {firm.shape[0]}"
        )

    return market, firm


def lag_state_variables(
    state_variables: Optional[np.ndarray],
    lag: int = 1,
) -> Optional[np.ndarray]:
    """Shift state variables forward by ``lag`` periods.

    Row t of the output holds the observation of row t - lag.  The first
    ``lag`` rows have no earlier observation and repeat the first one.

    Args:
        state_variables: T x S matrix (or length-T vector), or None
        lag: Number of periods to lag (>= 1)

    Returns:
        T x S lagged matrix, or None when no state variables are given
    """
    if state_variables is None:
        return None

    if lag < 1:
        raise ValueError(f"Lag must be >= 1, got {lag}")

    values = np.asarray(state_variables, dtype=float)
    if values.ndim == 1:
        values = values.reshape(-1, 1)

    if values.shape[1] == 0:
        return None

    n_obs = values.shape[0]
    if n_obs <= lag:
        raise ValueError(
            f"Need more than {lag} observations to lag state variables, got {n_obs}"
        )

    lagged = np.empty_like(values)
    lagged[lag:] = values[:-lag]
    lagged[:lag] = values[0]

    return lagged
