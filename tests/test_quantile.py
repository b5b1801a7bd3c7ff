"""
Unit tests for quantile.py - Tail Quantile Module
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from systemic_risk.risk.quantile import (
    empirical_quantile,
    firm_value_at_risk,
    tail_quantile,
)


class TestEmpiricalQuantile:
    """Tests for empirical_quantile function."""

    @pytest.mark.parametrize("a, expected", [
        (0.25, 3.0),   # midpoint position n * a + 0.5 = 3
        (0.50, 5.5),
        (0.05, 1.0),
        (0.01, 1.0),   # below the first midpoint clamps to the minimum
        (0.99, 10.0),
    ])
    def test_midpoint_definition(self, a, expected):
        values = np.arange(1.0, 11.0)

        assert empirical_quantile(values, a) == pytest.approx(expected)

    def test_order_independent(self):
        np.random.seed(42)
        values = np.random.normal(size=101)

        assert empirical_quantile(values, 0.1) == empirical_quantile(values[::-1], 0.1)

    @pytest.mark.parametrize("a", [0.0, 1.0, -0.1, 1.5])
    def test_probability_out_of_range(self, a):
        with pytest.raises(ValueError, match="between 0 and 1"):
            empirical_quantile([1.0, 2.0], a)

    def test_empty_sample(self):
        with pytest.raises(ValueError, match="empty"):
            empirical_quantile([], 0.05)

    def test_tail_quantile_negative(self):
        np.random.seed(42)
        u = np.random.normal(size=500)

        assert tail_quantile(u, 0.05) < 0


class TestFirmValueAtRisk:
    """Tests for firm_value_at_risk function."""

    def test_constant_volatility(self):
        """With constant volatility VaR is the raw residual quantile."""
        np.random.seed(42)
        eps = np.random.normal(0, 0.02, 300)
        vol = np.full(300, 0.02)

        var = firm_value_at_risk(eps, vol, 0.05)

        assert_allclose(var, empirical_quantile(eps, 0.05), rtol=1e-12)

    def test_scales_with_volatility(self):
        np.random.seed(42)
        vol = np.random.uniform(0.01, 0.03, 300)
        eps = vol * np.random.normal(size=300)

        var = firm_value_at_risk(eps, vol, 0.05)

        q = empirical_quantile(eps / vol, 0.05)
        assert_allclose(var, vol * q, rtol=1e-12)
        assert np.all(var < 0)

    @pytest.mark.parametrize("a", [0.01, 0.05, 0.10])
    def test_deeper_tail_is_larger_loss(self, a):
        np.random.seed(42)
        eps = np.random.normal(0, 0.02, 500)
        vol = np.full(500, 0.02)

        assert np.all(firm_value_at_risk(eps, vol, a) <= firm_value_at_risk(eps, vol, 0.2))

    def test_length_mismatch(self):
        with pytest.raises(ValueError, match="doesn't match"):
            firm_value_at_risk(np.zeros(10), np.ones(9), 0.05)

    def test_non_positive_volatility(self):
        with pytest.raises(ValueError, match="strictly positive"):
            firm_value_at_risk(np.zeros(3), np.array([0.1, 0.0, 0.1]), 0.05)
