"""
Shared test fixtures for the systemic risk test suite.

Provides consistent test data across all test modules:
- GJR-GARCH simulated market returns
- Correlated firm returns built on the market factor
- Price, liability and market cap frames for dataset construction
- Ready-built Dataset panels (short and long)
"""

import pytest
import numpy as np
import pandas as pd

from systemic_risk.config import ModelParameters
from systemic_risk.data.dataset import build_dataset

FIRMS = ['BANK_A', 'BANK_B', 'INSURER_C']
FIRM_LOADINGS = [1.2, 0.9, 0.6]


def simulate_gjr_garch(n, omega=1e-5, alpha=0.05, gamma=0.10, beta=0.85, seed=42):
    """Simulate a zero-mean GJR-GARCH(1,1) series.

    Returns:
        Tuple (residuals, conditional variances), both length n
    """
    rng = np.random.RandomState(seed)
    z = rng.standard_normal(n)

    eps = np.empty(n)
    var = np.empty(n)
    var[0] = omega / (1.0 - alpha - beta - 0.5 * gamma)
    eps[0] = np.sqrt(var[0]) * z[0]

    for t in range(1, n):
        neg = 1.0 if eps[t - 1] < 0 else 0.0
        var[t] = omega + (alpha + gamma * neg) * eps[t - 1] ** 2 + beta * var[t - 1]
        eps[t] = np.sqrt(var[t]) * z[t]

    return eps, var


def make_price_frames(n_returns, seed=7):
    """Index/firm prices plus balance-sheet frames covering n_returns + 1 dates."""
    dates = pd.bdate_range('2020-01-01', periods=n_returns + 1)

    market, _ = simulate_gjr_garch(n_returns, seed=seed)

    firm_returns = {}
    for i, (name, loading) in enumerate(zip(FIRMS, FIRM_LOADINGS)):
        idio, _ = simulate_gjr_garch(n_returns, omega=5e-6, seed=seed + 100 + i)
        firm_returns[name] = 0.0002 + loading * market + idio

    def to_prices(returns, base):
        return base * np.exp(np.concatenate([[0.0], np.cumsum(returns)]))

    index_prices = pd.Series(to_prices(market + 0.0003, 3000.0), index=dates, name='MARKET')
    firm_prices = pd.DataFrame(
        {name: to_prices(r, 50.0 + 10 * i) for i, (name, r) in enumerate(firm_returns.items())},
        index=dates,
    )

    shares = np.array([2.0e9, 1.5e9, 0.8e9])
    market_caps = firm_prices * shares

    growth = np.linspace(1.0, 1.05, len(dates))[:, None]
    liabilities = pd.DataFrame(
        np.array([9.0e11, 4.0e11, 1.5e11]) * growth,
        index=dates,
        columns=FIRMS,
    )

    return index_prices, firm_prices, liabilities, market_caps


@pytest.fixture
def gjr_simulator():
    """The GJR-GARCH simulator, for tests that need their own parameters."""
    return simulate_gjr_garch


@pytest.fixture
def market_residuals():
    """GJR-GARCH market residuals (1500 observations) and their true variance."""
    return simulate_gjr_garch(1500, seed=42)


@pytest.fixture
def independent_residuals():
    """Two independent GJR-GARCH series with the same parameters."""
    market, _ = simulate_gjr_garch(1000, seed=11)
    firm, _ = simulate_gjr_garch(1000, seed=12)
    return market, firm


@pytest.fixture
def correlated_innovations():
    """Standard normal pair with correlation 0.6 (1000 observations)."""
    np.random.seed(42)
    u_m = np.random.normal(0, 1, 1000)
    u_x = 0.6 * u_m + 0.8 * np.random.normal(0, 1, 1000)
    return u_m, u_x


@pytest.fixture
def price_frames():
    """Price and balance-sheet frames for 250 return observations."""
    return make_price_frames(250)


@pytest.fixture
def dataset(price_frames):
    """Validated 3-firm Dataset with 250 observations and balance sheet."""
    index_prices, firm_prices, liabilities, market_caps = price_frames
    return build_dataset(index_prices, firm_prices, liabilities=liabilities, market_caps=market_caps)


@pytest.fixture
def short_dataset():
    """Validated 3-firm Dataset with 50 observations and balance sheet."""
    index_prices, firm_prices, liabilities, market_caps = make_price_frames(50, seed=3)
    return build_dataset(index_prices, firm_prices, liabilities=liabilities, market_caps=market_caps)


@pytest.fixture
def params():
    """Default model parameters."""
    return ModelParameters()
