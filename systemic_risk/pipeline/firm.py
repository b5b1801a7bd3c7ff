"""
Per-firm computation.

compute_firm_measures is a pure function of the index series, one firm's
series and the run parameters.  It touches no shared state, so firms can be
evaluated in any order or concurrently and merged afterwards.
"""

from typing import Optional

import numpy as np
import structlog

from systemic_risk.config import ModelParameters
from systemic_risk.errors import ModelFitError
from systemic_risk.pipeline.results import FirmMeasures
from systemic_risk.risk.covar import calculate_covar
from systemic_risk.risk.dcc import fit_dcc_gjrgarch
from systemic_risk.risk.mes import calculate_mes
from systemic_risk.risk.optimizer import Optimizer
from systemic_risk.risk.quantile import firm_value_at_risk
from systemic_risk.risk.returns import demean_pair
from systemic_risk.risk.srisk import calculate_srisk

logger = structlog.get_logger(__name__)


def compute_firm_measures(
    position: int,
    firm: str,
    index_returns: np.ndarray,
    firm_returns: np.ndarray,
    liabilities: np.ndarray,
    market_caps: np.ndarray,
    params: ModelParameters,
    state_variables: Optional[np.ndarray] = None,
    optimizer: Optional[Optimizer] = None,
) -> FirmMeasures:
    """Estimate Beta, VaR, CoVaR, DCoVaR, MES and SRISK for one firm.

    VaR, CoVaR, DCoVaR and MES are returned as positive loss magnitudes.

    Args:
        position: Column of the firm in the result matrices
        firm: Firm name
        index_returns: Index log returns (length T)
        firm_returns: Firm log returns (length T)
        liabilities: Firm liabilities (length T)
        market_caps: Firm market capitalization (length T)
        params: Run parameters
        state_variables: Already-lagged state variables (T x S) or None
        optimizer: Minimiser for the volatility and correlation fits

    Returns:
        FirmMeasures for the firm

    Raises:
        ModelFitError: If the dynamics cannot be fitted or a measure is not finite
    """
    log = logger.bind(firm=firm, position=position)
    a = params.tail_probability

    market, returns = demean_pair(index_returns, firm_returns)

    try:
        dynamics = fit_dcc_gjrgarch(market, returns, optimizer)

        var = firm_value_at_risk(returns, dynamics.firm_volatility, a)
        covar = calculate_covar(market, returns, var, a, state_variables)
        mes = calculate_mes(
            market,
            dynamics.market_volatility,
            returns,
            dynamics.firm_volatility,
            dynamics.beta,
            dynamics.correlation,
            a,
            params.crisis_threshold,
        )
    except ModelFitError as e:
        log.error("compute_firm_measures: model fit failed", error=str(e))
        raise ModelFitError(f"{firm}: {e}", firm=firm) from e

    srisk = calculate_srisk(mes.lrmes, liabilities, market_caps, params.capital_ratio)

    measures = FirmMeasures(
        firm=firm,
        position=position,
        beta=dynamics.beta,
        var=-var,
        covar=-covar.covar,
        dcovar=-covar.dcovar,
        mes=-mes.mes,
        srisk=srisk,
    )

    for name, series in measures.as_dict().items():
        if not np.all(np.isfinite(series)):
            log.error("compute_firm_measures: non-finite measure", measure=name)
            raise ModelFitError(f"{firm}: {name} contains non-finite values", firm=firm)

    log.info(
        "compute_firm_measures: firm complete",
        degenerate_correlation=dynamics.dcc_fit.degenerate,
        mean_beta=float(measures.beta.mean()),
        mean_srisk=float(measures.srisk.mean()),
    )

    return measures
