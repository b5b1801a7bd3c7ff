"""
Marginal Expected Shortfall Module

Brownlees-Engle MES from the fitted DCC-GJR-GARCH dynamics and the
Acharya-Engle-Richardson long-run MES approximation.

With u_m = r_m / sigma_m, u_x = r_x / sigma_x and the idiosyncratic shock
xi = (u_x - rho * u_m) / sqrt(1 - rho^2), the firm return conditional on the
market falling below its VaR c decomposes as

    MES_t = sigma_x,t * (rho_t * E[u_m | u_m < kappa_t]
                         + sqrt(1 - rho_t^2) * E[xi | u_m < kappa_t])

with kappa_t = c / sigma_m,t.  Both tail expectations are Gaussian-kernel
estimates over the sample of innovations.  Long-run MES over a crisis in
which the market falls by at least d is

    LRMES_t = 1 - exp(log(1 - d) * beta_t)
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import structlog
from scipy import stats

from systemic_risk.errors import ModelFitError
from systemic_risk.risk.quantile import empirical_quantile

logger = structlog.get_logger(__name__)

_CHUNK_SIZE = 512
_IQR_TO_SIGMA = 1.349


@dataclass
class MESResult:
    """MES in return units (negative in the loss tail) and LRMES fraction."""

    mes: np.ndarray
    lrmes: np.ndarray


def kernel_bandwidth(sample) -> float:
    """Silverman rule-of-thumb bandwidth: min(sd, IQR/1.349) * (4 / 3n)^(1/5)."""
    x = np.asarray(sample, dtype=float)
    n = x.size

    if n < 2:
        raise ValueError(f"Need at least 2 observations, got {n}")

    spread = min(float(np.std(x, ddof=1)), float(stats.iqr(x)) / _IQR_TO_SIGMA)
    if spread <= 0:
        spread = float(np.std(x, ddof=1))

    return spread * (4.0 / (3.0 * n)) ** 0.2


def kernel_tail_expectations(
    u_market: np.ndarray,
    targets: np.ndarray,
    thresholds: np.ndarray,
    bandwidth: float,
) -> np.ndarray:
    """Kernel estimates of E[target | u_m < threshold_t] for every t.

    Each observation i is weighted by Phi((threshold_t - u_m,i) / h), a
    smoothed version of the indicator 1[u_m,i < threshold_t].

    Args:
        u_market: Market innovations (length n)
        targets: n x K matrix of quantities to average
        thresholds: Tail thresholds per date (length T)
        bandwidth: Kernel bandwidth h

    Returns:
        T x K matrix of conditional expectations

    Raises:
        ModelFitError: If a threshold lies so far in the tail that every
            kernel weight underflows
    """
    if bandwidth <= 0:
        raise ValueError(f"Bandwidth must be positive, got {bandwidth}")

    n_dates = thresholds.shape[0]
    out = np.empty((n_dates, targets.shape[1]))

    for start in range(0, n_dates, _CHUNK_SIZE):
        stop = min(start + _CHUNK_SIZE, n_dates)
        weights = stats.norm.cdf((thresholds[start:stop, None] - u_market[None, :]) / bandwidth)
        totals = weights.sum(axis=1)

        if np.any(totals <= 0):
            raise ModelFitError("Kernel tail weights vanished: no innovations in the market tail")

        out[start:stop] = (weights @ targets) / totals[:, None]

    return out


def calculate_lrmes(beta, d: float) -> np.ndarray:
    """Long-run MES for a crisis where the market falls by at least d.

    Args:
        beta: Time-varying firm beta (length T)
        d: Crisis decline threshold in (0, 1)

    Returns:
        LRMES as a fraction of equity value (unclipped)
    """
    if not 0 < d < 1:
        raise ValueError(f"Crisis threshold must be between 0 and 1, got {d}")

    beta = np.asarray(beta, dtype=float)
    return 1.0 - np.exp(np.log(1.0 - d) * beta)


def calculate_mes(
    market,
    market_volatility,
    firm,
    firm_volatility,
    beta,
    correlation,
    a: float,
    d: float,
) -> MESResult:
    """Compute MES and LRMES for one firm.

    Args:
        market: Demeaned market returns (length T)
        market_volatility: Fitted market volatility (length T)
        firm: Demeaned firm returns (length T)
        firm_volatility: Fitted firm volatility (length T)
        beta: Time-varying beta (length T)
        correlation: DCC correlation (length T)
        a: Tail probability defining the market tail event
        d: Crisis decline threshold for LRMES

    Returns:
        MESResult with MES (return units) and LRMES (fraction)
    """
    market = np.asarray(market, dtype=float)
    s_m = np.asarray(market_volatility, dtype=float)
    firm = np.asarray(firm, dtype=float)
    s_x = np.asarray(firm_volatility, dtype=float)
    rho = np.asarray(correlation, dtype=float)

    shapes = {market.shape, s_m.shape, firm.shape, s_x.shape, rho.shape, np.shape(beta)}
    if len(shapes) != 1:
        raise ValueError(f"All MES inputs must share one length, got shapes {sorted(shapes)}")

    if np.any(s_m <= 0) or np.any(s_x <= 0):
        raise ValueError("Volatility must be strictly positive")

    u_m = market / s_m
    u_x = firm / s_x

    idio_scale = np.sqrt(np.clip(1.0 - rho ** 2, 0.0, None))
    xi = np.divide(
        u_x - rho * u_m,
        idio_scale,
        out=np.zeros_like(u_x),
        where=idio_scale > 1e-8,
    )

    c = empirical_quantile(market, a)
    kappa = c / s_m
    h = kernel_bandwidth(u_m)

    expectations = kernel_tail_expectations(u_m, np.column_stack([u_m, xi]), kappa, h)
    k1 = expectations[:, 0]
    k2 = expectations[:, 1]

    mes = s_x * (rho * k1 + idio_scale * k2)
    lrmes = calculate_lrmes(beta, d)

    logger.debug(
        "calculate_mes: measures computed",
        market_var=c,
        bandwidth=h,
        mean_mes=float(mes.mean()),
        mean_lrmes=float(lrmes.mean()),
    )

    return MESResult(mes=mes, lrmes=lrmes)
