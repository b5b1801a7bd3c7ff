"""
CoVaR Module

Adrian-Brunnermeier CoVaR and Delta-CoVaR from a linear quantile regression
of market returns on the firm return and lagged state variables:

    q_a(r_m,t | r_x,t, S_t-1) = b0 + b1 * r_x,t + c' S_t-1

    CoVaR_t        = b0 + b1 * VaR_x,t     + c' S_t-1
    CoVaR_median_t = b0 + b1 * median(r_x) + c' S_t-1
    DCoVaR_t       = CoVaR_t - CoVaR_median_t
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog
from sklearn.linear_model import QuantileRegressor

from systemic_risk.risk.quantile import empirical_quantile

logger = structlog.get_logger(__name__)


@dataclass
class CoVaRResult:
    """CoVaR series in return units (negative in the loss tail)."""

    covar: np.ndarray
    covar_median: np.ndarray
    dcovar: np.ndarray
    coefficients: np.ndarray


def fit_quantile_regression(
    y,
    X,
    q: float,
) -> np.ndarray:
    """Linear quantile regression with intercept.

    Args:
        y: Response (length T)
        X: Regressors (T x K or length T)
        q: Quantile in (0, 1)

    Returns:
        Coefficient vector [intercept, b_1, ..., b_K]
    """
    if not 0 < q < 1:
        raise ValueError(f"Quantile must be between 0 and 1, got {q}")

    y = np.asarray(y, dtype=float)
    X = np.asarray(X, dtype=float)
    if X.ndim == 1:
        X = X.reshape(-1, 1)

    if X.shape[0] != y.shape[0]:
        raise ValueError(
            f"Regressor rows {X.shape[0]} don't match response length {y.shape[0]}"
        )

    model = QuantileRegressor(quantile=q, alpha=0.0, fit_intercept=True, solver="highs")
    model.fit(X, y)

    return np.concatenate([[model.intercept_], model.coef_])


def conditional_quantile(
    coefficients,
    firm_values,
    state_variables: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Evaluate the fitted market quantile for given firm conditioning values.

    Args:
        coefficients: [intercept, firm coefficient, state coefficients...]
        firm_values: Conditioning firm return per date (length T)
        state_variables: Lagged state variables (T x S) or None

    Returns:
        Conditional market quantile per date (length T)
    """
    b = np.asarray(coefficients, dtype=float)
    firm_values = np.asarray(firm_values, dtype=float)

    fitted = b[0] + b[1] * firm_values

    if state_variables is not None:
        sv = np.asarray(state_variables, dtype=float)
        if sv.ndim == 1:
            sv = sv.reshape(-1, 1)
        if sv.shape[1] != b.size - 2:
            raise ValueError(
                f"Expected {b.size - 2} state variables, got {sv.shape[1]}"
            )
        fitted = fitted + sv @ b[2:]
    elif b.size != 2:
        raise ValueError(f"Coefficients expect {b.size - 2} state variables, none given")

    return fitted


def calculate_covar(
    market,
    firm,
    firm_var,
    a: float,
    state_variables: Optional[np.ndarray] = None,
) -> CoVaRResult:
    """Compute CoVaR and Delta-CoVaR for one firm.

    Args:
        market: Demeaned market returns (length T)
        firm: Demeaned firm returns (length T)
        firm_var: Firm VaR series in return units (length T, negative)
        a: Tail probability
        state_variables: Lagged state variables (T x S) or None

    Returns:
        CoVaRResult (all series in return units, negative in the loss tail)
    """
    market = np.asarray(market, dtype=float)
    firm = np.asarray(firm, dtype=float)
    firm_var = np.asarray(firm_var, dtype=float)

    if not (market.shape == firm.shape == firm_var.shape):
        raise ValueError(
            f"Series lengths differ: market {market.shape}, firm {firm.shape}, VaR {firm_var.shape}"
        )

    if state_variables is None:
        X = firm.reshape(-1, 1)
    else:
        sv = np.asarray(state_variables, dtype=float)
        if sv.ndim == 1:
            sv = sv.reshape(-1, 1)
        if sv.shape[0] != firm.shape[0]:
            raise ValueError(
                f"State variable rows {sv.shape[0]} don't match series length {firm.shape[0]}"
            )
        state_variables = sv
        X = np.column_stack([firm, sv])

    coefficients = fit_quantile_regression(market, X, a)

    median_state = np.full_like(firm, empirical_quantile(firm, 0.5))

    covar = conditional_quantile(coefficients, firm_var, state_variables)
    covar_median = conditional_quantile(coefficients, median_state, state_variables)
    dcovar = covar - covar_median

    logger.debug(
        "calculate_covar: quantile regression fitted",
        a=a,
        intercept=float(coefficients[0]),
        firm_coefficient=float(coefficients[1]),
        num_state_variables=int(coefficients.size - 2),
    )

    return CoVaRResult(
        covar=covar,
        covar_median=covar_median,
        dcovar=dcovar,
        coefficients=coefficients,
    )
