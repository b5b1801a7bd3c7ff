"""
Tail Quantile Module

Empirical quantile of standardized firm residuals and the resulting
time-varying firm VaR.
"""

import numpy as np
import structlog

logger = structlog.get_logger(__name__)

# Midpoint interpolation (Hazen): p_k = (k - 0.5) / n
QUANTILE_METHOD = "hazen"


def _check_probability(a: float) -> None:
    if not 0 < a < 1:
        raise ValueError(f"Tail probability must be between 0 and 1, got {a}")


def empirical_quantile(values, a: float) -> float:
    """Sample quantile at probability ``a`` (midpoint interpolation).

    Args:
        values: 1-D array-like sample
        a: Probability in (0, 1)

    Returns:
        Quantile value
    """
    _check_probability(a)
    sample = np.asarray(values, dtype=float)

    if sample.size == 0:
        raise ValueError("Cannot compute quantile of empty sample")

    if not np.all(np.isfinite(sample)):
        raise ValueError("NaN or infinite values detected in sample")

    return float(np.quantile(sample, a, method=QUANTILE_METHOD))


def tail_quantile(standardized_residuals, a: float) -> float:
    """Left-tail quantile of standardized residuals (negative for a < 0.5)."""
    return empirical_quantile(standardized_residuals, a)


def firm_value_at_risk(
    firm_residuals,
    firm_volatility,
    a: float,
) -> np.ndarray:
    """Time-varying firm VaR: sigma_x,t * q_a(eps_x / sigma_x).

    The result keeps the return sign (negative in the loss tail); callers
    negate it when storing VaR as a loss magnitude.

    Args:
        firm_residuals: Demeaned firm returns (length T)
        firm_volatility: Fitted conditional volatility (length T)
        a: Tail probability

    Returns:
        VaR series (length T), in return units
    """
    eps = np.asarray(firm_residuals, dtype=float)
    vol = np.asarray(firm_volatility, dtype=float)

    if eps.shape != vol.shape:
        raise ValueError(
            f"Residual length {eps.shape} doesn't match volatility length {vol.shape}"
        )

    if np.any(vol <= 0):
        raise ValueError("Volatility must be strictly positive")

    q = tail_quantile(eps / vol, a)

    logger.debug("firm_value_at_risk: quantile computed", a=a, quantile=q)

    return vol * q
