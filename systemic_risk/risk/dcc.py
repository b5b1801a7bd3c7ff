"""
Dynamic Conditional Correlation Module

Bivariate DCC(1,1) (Engle, 2002) on GJR-GARCH standardized residuals:

    Q_t = (1 - a - b) * Qbar + a * u_{t-1} u_{t-1}' + b * Q_{t-1}
    R_t = diag(Q_t)^(-1/2) Q_t diag(Q_t)^(-1/2)

Qbar is the sample correlation of the standardized residuals (correlation
targeting); a and b are estimated from the correlation part of the Gaussian
quasi log-likelihood subject to a, b >= 0 and a + b < 1.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import structlog
from scipy.signal import lfilter

from systemic_risk.errors import ModelFitError
from systemic_risk.risk.garch import GJRGarchFit, fit_gjr_garch
from systemic_risk.risk.optimizer import Optimizer, ScipyOptimizer

logger = structlog.get_logger(__name__)

STATIONARITY_LIMIT = 1.0 - 1e-6
DEGENERATE_CORRELATION = 1.0 - 1e-8

_PENALTY = 1e10
_MIN_DETERMINANT = 1e-12


@dataclass(frozen=True)
class DCCParams:
    """DCC(1,1) news (a) and decay (b) coefficients."""

    a: float
    b: float


@dataclass
class DCCFit:
    """Fitted DCC model and the conditional correlation path."""

    params: DCCParams
    correlation: np.ndarray
    target: float
    log_likelihood: Optional[float]
    iterations: int = 0
    degenerate: bool = False


@dataclass
class DynamicsFit:
    """Fitted market/firm dynamics used by every downstream measure."""

    market_fit: GJRGarchFit
    firm_fit: GJRGarchFit
    dcc_fit: DCCFit

    @property
    def market_volatility(self) -> np.ndarray:
        return self.market_fit.volatility

    @property
    def firm_volatility(self) -> np.ndarray:
        return self.firm_fit.volatility

    @property
    def correlation(self) -> np.ndarray:
        return self.dcc_fit.correlation

    @property
    def beta(self) -> np.ndarray:
        """Time-varying beta: rho_t * sigma_x,t / sigma_m,t."""
        return self.correlation * (self.firm_volatility / self.market_volatility)


def _filter(drive: np.ndarray, b: float) -> np.ndarray:
    return lfilter([1.0], [1.0, -b], drive)


def dcc_correlation(
    u_market: np.ndarray,
    u_firm: np.ndarray,
    params: DCCParams,
    target: float,
) -> np.ndarray:
    """Run the bivariate DCC recursion and normalise to correlations.

    Args:
        u_market: Standardized market residuals (length T)
        u_firm: Standardized firm residuals (length T)
        params: DCC coefficients
        target: Unconditional correlation Qbar_12 (Q_0 = Qbar)

    Returns:
        Conditional correlation series in [-1, 1] (length T)
    """
    a, b = params.a, params.b
    c = 1.0 - a - b

    q11_drive = np.empty_like(u_market)
    q22_drive = np.empty_like(u_market)
    q12_drive = np.empty_like(u_market)

    q11_drive[0] = 1.0
    q22_drive[0] = 1.0
    q12_drive[0] = target
    q11_drive[1:] = c + a * u_market[:-1] ** 2
    q22_drive[1:] = c + a * u_firm[:-1] ** 2
    q12_drive[1:] = c * target + a * u_market[:-1] * u_firm[:-1]

    q11 = _filter(q11_drive, b)
    q22 = _filter(q22_drive, b)
    q12 = _filter(q12_drive, b)

    rho = q12 / np.sqrt(q11 * q22)
    return np.clip(rho, -1.0, 1.0)


def _correlation_nll(rho: np.ndarray, u_market: np.ndarray, u_firm: np.ndarray) -> float:
    det = 1.0 - rho ** 2
    if not np.all(np.isfinite(rho)) or np.any(det <= _MIN_DETERMINANT):
        return _PENALTY

    quad = (u_market ** 2 + u_firm ** 2 - 2.0 * rho * u_market * u_firm) / det
    return float(0.5 * np.mean(np.log(det) + quad - (u_market ** 2 + u_firm ** 2)))


def _stationarity(theta: np.ndarray) -> float:
    return STATIONARITY_LIMIT - (theta[0] + theta[1])


def fit_dcc(
    u_market,
    u_firm,
    optimizer: Optional[Optimizer] = None,
) -> DCCFit:
    """Estimate DCC(1,1) on a pair of standardized residual series.

    Args:
        u_market: Standardized market residuals (length T)
        u_firm: Standardized firm residuals (length T)
        optimizer: Constrained minimiser (defaults to SLSQP)

    Returns:
        DCCFit with the conditional correlation path

    Raises:
        ValueError: If the inputs are mismatched or contain NaN
        ModelFitError: If the target is not a valid correlation or the
            optimizer fails
    """
    u_m = np.asarray(u_market, dtype=float)
    u_x = np.asarray(u_firm, dtype=float)

    if u_m.ndim != 1 or u_m.shape != u_x.shape:
        raise ValueError(
            f"Standardized residuals must be 1-D with equal length, got {u_m.shape} and {u_x.shape}"
        )

    if u_m.size < 2:
        raise ValueError(f"Need at least 2 observations, got {u_m.size}")

    if not (np.all(np.isfinite(u_m)) and np.all(np.isfinite(u_x))):
        raise ValueError("NaN or infinite values detected in standardized residuals")

    if np.std(u_m) == 0 or np.std(u_x) == 0:
        raise ModelFitError("DCC target correlation is undefined for constant residuals")

    target = float(np.corrcoef(u_m, u_x)[0, 1])

    if not np.isfinite(target) or abs(target) > 1.0 + 1e-12:
        raise ModelFitError(f"DCC target correlation is not positive definite: {target}")

    n_obs = u_m.size

    if abs(target) >= DEGENERATE_CORRELATION:
        # Residuals are collinear: Q_t never leaves the rank-one target.
        logger.info(
            "fit_dcc: collinear residuals, using constant correlation",
            target=target,
        )
        return DCCFit(
            params=DCCParams(a=0.0, b=0.0),
            correlation=np.full(n_obs, float(np.clip(target, -1.0, 1.0))),
            target=target,
            log_likelihood=None,
            degenerate=True,
        )

    def objective(theta: np.ndarray) -> float:
        rho = dcc_correlation(u_m, u_x, DCCParams(a=theta[0], b=theta[1]), target)
        return _correlation_nll(rho, u_m, u_x)

    optimizer = optimizer or ScipyOptimizer()
    result = optimizer.minimize(
        objective,
        np.array([0.05, 0.90]),
        [(0.0, 1.0), (0.0, 1.0)],
        [_stationarity],
    )

    if not result.success:
        logger.warning(
            "fit_dcc: optimizer did not converge",
            message=result.message,
            iterations=result.iterations,
        )
        raise ModelFitError(f"DCC optimizer did not converge: {result.message}")

    a, b = (float(v) for v in result.x)

    if min(a, b) < -1e-10 or a + b >= 1.0:
        raise ModelFitError(f"DCC constraint violated: a={a:.6f}, b={b:.6f}")

    params = DCCParams(a=max(a, 0.0), b=max(b, 0.0))
    correlation = dcc_correlation(u_m, u_x, params, target)

    if not np.all(np.isfinite(correlation)):
        raise ModelFitError("DCC produced non-finite correlations")

    log_likelihood = -n_obs * _correlation_nll(correlation, u_m, u_x)

    logger.debug(
        "fit_dcc: model fitted",
        a=params.a,
        b=params.b,
        target=target,
        mean_correlation=float(correlation.mean()),
    )

    return DCCFit(
        params=params,
        correlation=correlation,
        target=target,
        log_likelihood=log_likelihood,
        iterations=result.iterations,
    )


def fit_dcc_gjrgarch(
    market,
    firm,
    optimizer: Optional[Optimizer] = None,
) -> DynamicsFit:
    """Fit GJR-GARCH to each series and DCC to the standardized pair.

    Args:
        market: Demeaned market returns (length T)
        firm: Demeaned firm returns (length T)
        optimizer: Constrained minimiser shared by all three estimations;
            when omitted `arch` fits the volatilities and SLSQP the correlation

    Returns:
        DynamicsFit holding variances, volatilities and correlations
    """
    market = np.asarray(market, dtype=float)
    firm = np.asarray(firm, dtype=float)

    if market.shape != firm.shape:
        raise ValueError(
            f"Market length {market.shape} doesn't match firm length {firm.shape}"
        )

    market_fit = fit_gjr_garch(market, optimizer)
    firm_fit = fit_gjr_garch(firm, optimizer)

    u_market = market / market_fit.volatility
    u_firm = firm / firm_fit.volatility

    dcc_fit = fit_dcc(u_market, u_firm, optimizer)

    return DynamicsFit(market_fit=market_fit, firm_fit=firm_fit, dcc_fit=dcc_fit)
