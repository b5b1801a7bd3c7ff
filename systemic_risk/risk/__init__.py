"""
Systemic Risk Estimators

Pure computation modules operating on numpy arrays and pandas DataFrames.

Modules:
- returns: Log returns, demeaning and state-variable lagging
- optimizer: Pluggable constrained minimizer (scipy by default)
- garch: GJR-GARCH(1,1) conditional variance
- dcc: DCC(1,1) dynamic correlation and time-varying beta
- quantile: Empirical quantiles and firm VaR
- covar: Quantile-regression CoVaR and Delta CoVaR
- mes: Marginal expected shortfall and long-run MES
- srisk: Conditional capital shortfall
- aggregation: Capitalization-weighted cross-firm averages
- correlation: Index statistics and correlation of the averages
"""

# Returns module
from .returns import (
    compute_log_returns,
    demean,
    demean_pair,
    lag_state_variables,
)

# Optimizer module
from .optimizer import (
    OptimizationResult,
    Optimizer,
    ScipyOptimizer,
)

# Volatility and correlation dynamics
from .garch import (
    GJRGarchParams,
    GJRGarchFit,
    gjr_garch_variance,
    gjr_garch_log_likelihood,
    fit_gjr_garch,
)
from .dcc import (
    DCCParams,
    DCCFit,
    DynamicsFit,
    dcc_correlation,
    fit_dcc,
    fit_dcc_gjrgarch,
)

# Tail measures
from .quantile import (
    empirical_quantile,
    tail_quantile,
    firm_value_at_risk,
)
from .covar import (
    CoVaRResult,
    fit_quantile_regression,
    conditional_quantile,
    calculate_covar,
)
from .mes import (
    MESResult,
    kernel_bandwidth,
    kernel_tail_expectations,
    calculate_lrmes,
    calculate_mes,
)
from .srisk import (
    clip_lrmes,
    calculate_srisk,
)

# Aggregation and analysis
from .aggregation import (
    AVERAGE_COLUMNS,
    capitalization_weights,
    aggregate_measures,
)
from .correlation import (
    index_summary,
    correlation_with_pvalues,
    top_correlated_pairs,
    analyse_results,
)

__all__ = [
    # Returns
    'compute_log_returns',
    'demean',
    'demean_pair',
    'lag_state_variables',
    # Optimizer
    'OptimizationResult',
    'Optimizer',
    'ScipyOptimizer',
    # GJR-GARCH
    'GJRGarchParams',
    'GJRGarchFit',
    'gjr_garch_variance',
    'gjr_garch_log_likelihood',
    'fit_gjr_garch',
    # DCC
    'DCCParams',
    'DCCFit',
    'DynamicsFit',
    'dcc_correlation',
    'fit_dcc',
    'fit_dcc_gjrgarch',
    # Quantiles
    'empirical_quantile',
    'tail_quantile',
    'firm_value_at_risk',
    # CoVaR
    'CoVaRResult',
    'fit_quantile_regression',
    'conditional_quantile',
    'calculate_covar',
    # MES
    'MESResult',
    'kernel_bandwidth',
    'kernel_tail_expectations',
    'calculate_lrmes',
    'calculate_mes',
    # SRISK
    'clip_lrmes',
    'calculate_srisk',
    # Aggregation
    'AVERAGE_COLUMNS',
    'capitalization_weights',
    'aggregate_measures',
    # Analysis
    'index_summary',
    'correlation_with_pvalues',
    'top_correlated_pairs',
    'analyse_results',
]
