"""
Unit tests for mes.py - Marginal Expected Shortfall Module
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose
from scipy import stats

from systemic_risk.errors import ModelFitError
from systemic_risk.risk.mes import (
    calculate_lrmes,
    calculate_mes,
    kernel_bandwidth,
    kernel_tail_expectations,
)


@pytest.fixture
def innovations():
    np.random.seed(42)
    return np.random.normal(size=800)


class TestKernelBandwidth:
    """Tests for kernel_bandwidth function."""

    def test_silverman_rule(self, innovations):
        n = len(innovations)
        spread = min(np.std(innovations, ddof=1), stats.iqr(innovations) / 1.349)

        assert kernel_bandwidth(innovations) == pytest.approx(spread * (4.0 / (3.0 * n)) ** 0.2)

    def test_shrinks_with_sample_size(self, innovations):
        assert kernel_bandwidth(innovations) < kernel_bandwidth(innovations[:100])

    def test_too_short(self):
        with pytest.raises(ValueError, match="at least 2"):
            kernel_bandwidth([1.0])


class TestKernelTailExpectations:
    """Tests for kernel_tail_expectations function."""

    def test_far_threshold_gives_sample_mean(self, innovations):
        """A threshold far above the sample weights every observation equally."""
        targets = np.column_stack([innovations, innovations ** 2])

        out = kernel_tail_expectations(innovations, targets, np.array([1e6]), 0.3)

        assert_allclose(out[0], targets.mean(axis=0), rtol=1e-10)

    def test_tail_expectation_monotone(self, innovations):
        """E[u | u < k] increases with k and stays below k + bandwidth."""
        thresholds = np.array([-2.0, -1.0, 0.0, 1.0])

        out = kernel_tail_expectations(innovations, innovations[:, None], thresholds, 0.2)

        assert np.all(np.diff(out[:, 0]) > 0)
        assert out[0, 0] < -2.0 + 0.2

    def test_chunked_matches_direct(self, innovations):
        """Results do not depend on how thresholds are chunked."""
        thresholds = np.linspace(-2.5, 0.5, 1100)
        h = 0.25

        out = kernel_tail_expectations(innovations, innovations[:, None], thresholds, h)

        weights = stats.norm.cdf((thresholds[:, None] - innovations[None, :]) / h)
        expected = (weights @ innovations) / weights.sum(axis=1)
        assert_allclose(out[:, 0], expected, rtol=1e-10)

    def test_vanishing_weights(self, innovations):
        with pytest.raises(ModelFitError, match="vanished"):
            kernel_tail_expectations(innovations, innovations[:, None], np.array([-1e6]), 0.2)

    def test_invalid_bandwidth(self, innovations):
        with pytest.raises(ValueError, match="Bandwidth"):
            kernel_tail_expectations(innovations, innovations[:, None], np.array([0.0]), 0.0)


class TestCalculateLRMES:
    """Tests for calculate_lrmes function."""

    def test_known_values(self):
        lrmes = calculate_lrmes(np.array([0.0, 1.0, 2.0]), 0.4)

        assert_allclose(lrmes, [0.0, 0.4, 1.0 - 0.36])

    def test_increasing_in_beta(self):
        lrmes = calculate_lrmes(np.linspace(0.1, 3.0, 20), 0.4)

        assert np.all(np.diff(lrmes) > 0)
        assert np.all((lrmes > 0) & (lrmes < 1))

    @pytest.mark.parametrize("d", [0.0, 1.0, -0.2])
    def test_invalid_threshold(self, d):
        with pytest.raises(ValueError, match="Crisis threshold"):
            calculate_lrmes(np.ones(3), d)


class TestCalculateMES:
    """Tests for calculate_mes function."""

    def test_perfect_correlation(self, innovations):
        """With rho = 1 MES is sigma_x times the market tail expectation."""
        s_m = np.full(len(innovations), 0.01)
        s_x = np.full(len(innovations), 0.02)
        market = innovations * s_m
        firm = innovations * s_x
        rho = np.ones(len(innovations))
        beta = rho * s_x / s_m

        result = calculate_mes(market, s_m, firm, s_x, beta, rho, 0.05, 0.4)

        assert np.all(result.mes < 0)
        assert_allclose(result.mes, result.mes[0])
        assert_allclose(result.lrmes, 1.0 - 0.6 ** 2)

    def test_loss_tail_sign(self, independent_residuals):
        market, noise = independent_residuals
        s = np.full(len(market), market.std())
        firm = 0.8 * market + 0.6 * noise
        rho = np.full(len(market), 0.8)

        result = calculate_mes(market, s, firm, s, rho, rho, 0.05, 0.4)

        assert np.all(result.mes < 0)
        assert result.mes.shape == market.shape

    def test_uncorrelated_firm_has_small_mes(self, independent_residuals):
        market, firm = independent_residuals
        s_m = np.full(len(market), market.std())
        s_x = np.full(len(firm), firm.std())
        rho = np.zeros(len(market))

        result = calculate_mes(market, s_m, firm, s_x, rho, rho, 0.05, 0.4)

        assert np.all(np.abs(result.mes) < 0.5 * firm.std())
        assert_allclose(result.lrmes, 0.0)

    def test_shape_mismatch(self, innovations):
        v = np.ones(len(innovations))

        with pytest.raises(ValueError, match="share one length"):
            calculate_mes(innovations, v, innovations, v, v, v[:-1], 0.05, 0.4)
