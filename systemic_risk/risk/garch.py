"""
GJR-GARCH Volatility Module

Univariate asymmetric GARCH(1,1) (Glosten-Jagannathan-Runkle) estimated by
Gaussian quasi maximum likelihood:

    sigma2_t = omega + (alpha + gamma * 1[eps_{t-1} < 0]) * eps_{t-1}^2 + beta * sigma2_{t-1}

subject to omega > 0, alpha >= 0, alpha + gamma >= 0, beta >= 0 and
alpha + beta + gamma / 2 < 1. The first variance is built from the backcast
in place of the unobserved previous shock and variance.

The default engine is `arch`; any `Optimizer` can be passed instead to
minimise the same likelihood directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import structlog
from arch import arch_model
from scipy.signal import lfilter

from systemic_risk.errors import ModelFitError
from systemic_risk.risk.optimizer import OptimizationResult, Optimizer

logger = structlog.get_logger(__name__)

MIN_OBSERVATIONS = 10
STATIONARITY_LIMIT = 1.0 - 1e-6

# Persistence overshoot still attributed to constraint tolerance
_STATIONARITY_SLACK = 1e-6

_LOG_2PI = float(np.log(2.0 * np.pi))
_PENALTY = 1e10

# Starting point on the unit-variance scale
_START_ALPHA = 0.05
_START_GAMMA = 0.05
_START_BETA = 0.85


@dataclass(frozen=True)
class GJRGarchParams:
    """GJR-GARCH(1,1) coefficients."""

    omega: float
    alpha: float
    gamma: float
    beta: float

    @property
    def persistence(self) -> float:
        """alpha + beta + gamma / 2 (must stay below one)."""
        return self.alpha + self.beta + 0.5 * self.gamma

    @property
    def unconditional_variance(self) -> float:
        if self.persistence >= 1.0:
            return float("inf")
        return self.omega / (1.0 - self.persistence)


@dataclass
class GJRGarchFit:
    """Fitted GJR-GARCH model and its conditional variance path."""

    params: GJRGarchParams
    variance: np.ndarray
    log_likelihood: float
    iterations: int

    @property
    def volatility(self) -> np.ndarray:
        return np.sqrt(self.variance)


def _variance_path(
    residuals: np.ndarray,
    omega: float,
    alpha: float,
    gamma: float,
    beta: float,
    backcast: float,
) -> np.ndarray:
    # Shocks are observed, so the recursion is a first-order linear filter
    # driven by omega + (alpha + gamma * neg) * eps^2 of the previous period.
    lagged = residuals[:-1]
    shock_weight = alpha + gamma * (lagged < 0)

    drive = np.empty_like(residuals)
    drive[0] = omega + (alpha + 0.5 * gamma + beta) * backcast
    drive[1:] = omega + shock_weight * lagged ** 2

    return lfilter([1.0], [1.0, -beta], drive)


def gjr_garch_variance(
    residuals,
    params: GJRGarchParams,
    backcast: Optional[float] = None,
) -> np.ndarray:
    """Run the conditional variance recursion for given parameters.

    Args:
        residuals: Zero-mean residual series (length T)
        params: Model coefficients
        backcast: Stand-in for the pre-sample squared shock and variance
            (defaults to mean squared residual)

    Returns:
        Conditional variance series (length T)
    """
    eps = np.asarray(residuals, dtype=float)

    if eps.ndim != 1 or eps.size == 0:
        raise ValueError(f"Residuals must be a non-empty 1-D array, got shape {eps.shape}")

    if backcast is None:
        backcast = float(np.mean(eps ** 2))

    return _variance_path(eps, params.omega, params.alpha, params.gamma, params.beta, backcast)


def gjr_garch_log_likelihood(residuals, variance) -> float:
    """Gaussian log-likelihood of residuals under a conditional variance path."""
    eps = np.asarray(residuals, dtype=float)
    var = np.asarray(variance, dtype=float)
    return float(-0.5 * np.sum(_LOG_2PI + np.log(var) + eps ** 2 / var))


def _negative_log_likelihood(theta: np.ndarray, z: np.ndarray, backcast: float) -> float:
    omega, alpha, gamma, beta = theta
    variance = _variance_path(z, omega, alpha, gamma, beta, backcast)

    if not np.all(np.isfinite(variance)) or np.any(variance <= 0):
        return _PENALTY

    return float(0.5 * np.mean(_LOG_2PI + np.log(variance) + z ** 2 / variance))


def _stationarity(theta: np.ndarray) -> float:
    return STATIONARITY_LIMIT - (theta[1] + theta[3] + 0.5 * theta[2])


def _estimate_with_arch(z: np.ndarray, backcast: float) -> OptimizationResult:
    am = arch_model(
        z,
        mean="Zero",
        vol="GARCH",
        p=1,
        o=1,
        q=1,
        dist="normal",
        rescale=False,
    )

    res = am.fit(
        disp="off",
        update_freq=0,
        show_warning=False,
        backcast=backcast,
        options={"maxiter": 1000},
    )

    theta = np.array([
        res.params["omega"],
        res.params["alpha[1]"],
        res.params["gamma[1]"],
        res.params["beta[1]"],
    ], dtype=float)

    opt = res.optimization_result

    return OptimizationResult(
        x=theta,
        fun=float(-res.loglikelihood),
        success=res.convergence_flag == 0,
        message=str(opt.message),
        iterations=int(opt.nit),
    )


def _estimate_with_optimizer(z: np.ndarray, backcast: float, optimizer: Optimizer) -> OptimizationResult:
    start_persistence = _START_ALPHA + _START_BETA + 0.5 * _START_GAMMA
    x0 = np.array([1.0 - start_persistence, _START_ALPHA, _START_GAMMA, _START_BETA])
    bounds = [(1e-8, 10.0), (0.0, 1.0), (0.0, 1.0), (0.0, 1.0)]

    return optimizer.minimize(
        lambda theta: _negative_log_likelihood(theta, z, backcast),
        x0,
        bounds,
        [_stationarity],
    )


def _checked_params(theta: np.ndarray, mean_square: float) -> GJRGarchParams:
    omega_z, alpha, gamma, beta = (float(v) for v in theta)

    if omega_z <= 0 or min(alpha, beta, alpha + gamma) < -1e-10:
        raise ModelFitError(
            f"GJR-GARCH positivity constraint violated: omega={omega_z:.3g}, "
            f"alpha={alpha:.3g}, gamma={gamma:.3g}, beta={beta:.3g}"
        )

    alpha = max(alpha, 0.0)
    beta = max(beta, 0.0)
    gamma = max(gamma, -alpha)

    persistence = alpha + beta + 0.5 * gamma

    if persistence >= 1.0 + _STATIONARITY_SLACK:
        raise ModelFitError(
            f"GJR-GARCH stationarity constraint violated: persistence={persistence:.6f}"
        )

    if persistence >= STATIONARITY_LIMIT:
        # Boundary solution: pull the dynamics back inside the stationary region
        shrink = STATIONARITY_LIMIT * (1.0 - 1e-9) / persistence
        logger.warning(
            "fit_gjr_garch: persistence on the stationarity boundary",
            persistence=persistence,
            shrink=shrink,
        )
        alpha, gamma, beta = alpha * shrink, gamma * shrink, beta * shrink

    return GJRGarchParams(omega=omega_z * mean_square, alpha=alpha, gamma=gamma, beta=beta)


def _prepare(residuals) -> Tuple[np.ndarray, float]:
    eps = np.asarray(residuals, dtype=float)

    if eps.ndim != 1:
        raise ValueError(f"Residuals must be one-dimensional, got shape {eps.shape}")

    if eps.size < MIN_OBSERVATIONS:
        raise ValueError(f"Need at least {MIN_OBSERVATIONS} observations, got {eps.size}")

    if not np.all(np.isfinite(eps)):
        raise ValueError("NaN or infinite values detected in residuals")

    mean_square = float(np.mean(eps ** 2))
    if mean_square <= 0:
        raise ModelFitError("fit_gjr_garch: residual series has zero variance")

    return eps, mean_square


def fit_gjr_garch(
    residuals,
    optimizer: Optional[Optimizer] = None,
) -> GJRGarchFit:
    """Estimate a GJR-GARCH(1,1) model by quasi maximum likelihood.

    Estimation runs on the residuals rescaled to unit mean square so that
    the optimizer sees the same problem regardless of the return units;
    omega is mapped back to the original scale afterwards.

    Args:
        residuals: Zero-mean residual series (length T)
        optimizer: Constrained minimiser for the likelihood; `arch` does the
            estimation when omitted

    Returns:
        GJRGarchFit with parameters on the original scale

    Raises:
        ValueError: If the input is too short or contains NaN
        ModelFitError: If the estimation fails or the fitted model is invalid
    """
    eps, mean_square = _prepare(residuals)

    z = eps / np.sqrt(mean_square)
    backcast = float(np.mean(z ** 2))

    if optimizer is None:
        result = _estimate_with_arch(z, backcast)
    else:
        result = _estimate_with_optimizer(z, backcast, optimizer)

    if not result.success:
        logger.warning(
            "fit_gjr_garch: optimizer did not converge",
            message=result.message,
            iterations=result.iterations,
        )
        raise ModelFitError(f"GJR-GARCH optimizer did not converge: {result.message}")

    params = _checked_params(result.x, mean_square)

    variance = gjr_garch_variance(eps, params, backcast=mean_square)

    if not np.all(np.isfinite(variance)) or np.any(variance <= 0):
        raise ModelFitError("GJR-GARCH produced non-positive or non-finite variances")

    log_likelihood = gjr_garch_log_likelihood(eps, variance)

    logger.debug(
        "fit_gjr_garch: model fitted",
        omega=params.omega,
        alpha=params.alpha,
        gamma=params.gamma,
        beta=params.beta,
        persistence=params.persistence,
        log_likelihood=log_likelihood,
    )

    return GJRGarchFit(
        params=params,
        variance=variance,
        log_likelihood=log_likelihood,
        iterations=result.iterations,
    )
