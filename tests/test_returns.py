"""
Unit tests for returns.py - Return Preparation Module

Tests cover:
- Log return computation and validation
- Demeaning of index/firm series
- State variable lagging
"""

import pytest
import numpy as np
import pandas as pd
from numpy.testing import assert_allclose

from systemic_risk.risk.returns import (
    compute_log_returns,
    demean,
    demean_pair,
    lag_state_variables,
)


class TestComputeLogReturns:
    """Tests for compute_log_returns function."""

    def test_log_returns_values(self):
        """Log return should equal ln(P_t / P_{t-1})."""
        dates = pd.bdate_range('2023-01-01', periods=3)
        prices = pd.DataFrame({'A': [100.0, 110.0, 99.0]}, index=dates)

        returns = compute_log_returns(prices)

        assert len(returns) == 2
        assert returns.index[0] == dates[1]
        assert_allclose(returns['A'].values, [np.log(1.1), np.log(0.9)], rtol=1e-12)

    def test_log_returns_negative_prices(self):
        """Zero or negative prices should raise ValueError."""
        prices = pd.DataFrame({'A': [100.0, 0.0, 101.0]}, index=pd.bdate_range('2023-01-01', periods=3))

        with pytest.raises(ValueError, match="negative prices"):
            compute_log_returns(prices)

    def test_log_returns_empty(self):
        """Empty price matrix should raise ValueError."""
        with pytest.raises(ValueError, match="empty"):
            compute_log_returns(pd.DataFrame())


class TestDemean:
    """Tests for demean and demean_pair."""

    def test_demean_zero_mean(self):
        """Demeaned series should have zero mean and keep its shape."""
        np.random.seed(42)
        r = np.random.normal(0.001, 0.02, 200)

        out = demean(r)

        assert out.shape == r.shape
        assert abs(out.mean()) < 1e-12
        assert_allclose(out, r - r.mean(), rtol=1e-12)

    def test_demean_rejects_nan(self):
        with pytest.raises(ValueError, match="NaN"):
            demean([0.01, np.nan, 0.02])

    def test_demean_rejects_matrix(self):
        with pytest.raises(ValueError, match="one-dimensional"):
            demean(np.zeros((3, 2)))

    def test_demean_pair_length_mismatch(self):
        with pytest.raises(ValueError, match="doesn't match"):
            demean_pair(np.zeros(10), np.zeros(9))

    def test_demean_pair_independent_means(self):
        """Each series is demeaned with its own sample mean."""
        market, firm = demean_pair([1.0, 2.0, 3.0], [10.0, 20.0, 60.0])

        assert_allclose(market, [-1.0, 0.0, 1.0])
        assert_allclose(firm, [-20.0, -10.0, 30.0])


class TestLagStateVariables:
    """Tests for lag_state_variables function."""

    def test_lag_one(self):
        """Row t holds row t-1; the first row repeats the first observation."""
        sv = np.array([[1.0, 10.0], [2.0, 20.0], [3.0, 30.0], [4.0, 40.0]])

        lagged = lag_state_variables(sv, lag=1)

        expected = np.array([[1.0, 10.0], [1.0, 10.0], [2.0, 20.0], [3.0, 30.0]])
        assert_allclose(lagged, expected)

    def test_lag_two_vector(self):
        """A 1-D series is treated as a single state variable."""
        lagged = lag_state_variables(np.array([1.0, 2.0, 3.0, 4.0, 5.0]), lag=2)

        assert lagged.shape == (5, 1)
        assert_allclose(lagged[:, 0], [1.0, 1.0, 1.0, 2.0, 3.0])

    def test_lag_none(self):
        assert lag_state_variables(None, lag=1) is None

    def test_lag_must_be_positive(self):
        with pytest.raises(ValueError, match="Lag must be"):
            lag_state_variables(np.ones((5, 1)), lag=0)

    def test_lag_longer_than_sample(self):
        with pytest.raises(ValueError, match="Need more than"):
            lag_state_variables(np.ones((3, 1)), lag=3)

    def test_lag_does_not_modify_input(self):
        sv = np.arange(6, dtype=float).reshape(3, 2)
        original = sv.copy()

        lag_state_variables(sv, lag=1)

        assert_allclose(sv, original)
