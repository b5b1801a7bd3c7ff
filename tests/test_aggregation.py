"""
Unit tests for aggregation.py - Panel Aggregation Module
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from systemic_risk.errors import PreconditionError
from systemic_risk.risk.aggregation import (
    AVERAGE_COLUMNS,
    aggregate_measures,
    capitalization_weights,
)


@pytest.fixture
def caps():
    """Two dates, two firms: current and lagged market caps."""
    current = np.array([[30.0, 70.0], [50.0, 50.0]])
    lagged = np.array([[25.0, 75.0], [40.0, 60.0]])
    return current, lagged


@pytest.fixture
def measures():
    return {
        "Beta": np.array([[1.0, 2.0], [1.5, 0.5]]),
        "VaR": np.array([[0.02, 0.04], [0.03, 0.01]]),
        "CoVaR": np.array([[0.03, 0.05], [0.04, 0.02]]),
        "DCoVaR": np.array([[0.01, 0.02], [0.015, 0.005]]),
        "MES": np.array([[0.01, 0.03], [0.02, 0.01]]),
        "SRISK": np.array([[100.0, -20.0], [80.0, 10.0]]),
    }


class TestCapitalizationWeights:
    """Tests for capitalization_weights function."""

    def test_rows_sum_to_one(self, caps):
        _, lagged = caps

        weights = capitalization_weights(lagged)

        assert_allclose(weights.sum(axis=1), 1.0, rtol=1e-12)
        assert_allclose(weights, [[0.25, 0.75], [0.4, 0.6]])

    def test_random_panel_rows_sum_to_one(self):
        np.random.seed(42)
        lagged = np.random.uniform(0.0, 1e9, size=(100, 7))

        weights = capitalization_weights(lagged)

        assert_allclose(weights.sum(axis=1), 1.0, rtol=1e-12)
        assert np.all(weights >= 0)

    def test_zero_total_capitalization(self):
        lagged = np.array([[1.0, 2.0], [0.0, 0.0]])

        with pytest.raises(PreconditionError, match="weights are undefined"):
            capitalization_weights(lagged)

    def test_rejects_nan(self):
        with pytest.raises(PreconditionError, match="NaN"):
            capitalization_weights(np.array([[1.0, np.nan]]))

    def test_rejects_vector(self):
        with pytest.raises(PreconditionError, match="T x N"):
            capitalization_weights(np.array([1.0, 2.0]))


class TestAggregateMeasures:
    """Tests for aggregate_measures function."""

    def test_hand_computed(self, measures, caps):
        current, lagged = caps

        averages = aggregate_measures(measures, current, lagged)

        assert averages.shape == (2, len(AVERAGE_COLUMNS))

        # Beta: (0.25 * 1 + 0.75 * 2) * 100, (0.4 * 1.5 + 0.6 * 0.5) * 100
        assert_allclose(averages[:, 0], [175.0, 90.0])
        # VaR: (0.25 * 0.02 + 0.75 * 0.04) * 100
        assert averages[0, 1] == pytest.approx(3.5)
        # SRISK is not scaled by total capitalization
        assert_allclose(averages[:, 5], [0.25 * 100 - 0.75 * 20, 0.4 * 80 + 0.6 * 10])

    def test_column_order(self):
        assert AVERAGE_COLUMNS == ("Beta", "VaR", "CoVaR", "DCoVaR", "MES", "SRISK")

    def test_missing_measure(self, measures, caps):
        current, lagged = caps
        del measures["MES"]

        with pytest.raises(PreconditionError, match="Missing measure"):
            aggregate_measures(measures, current, lagged)

    def test_not_fully_populated(self, measures, caps):
        current, lagged = caps
        measures["CoVaR"][1, 0] = np.nan

        with pytest.raises(PreconditionError, match="not fully populated"):
            aggregate_measures(measures, current, lagged)

    def test_shape_mismatch(self, measures, caps):
        current, lagged = caps
        measures["Beta"] = np.ones((3, 2))

        with pytest.raises(PreconditionError, match="doesn't match"):
            aggregate_measures(measures, current, lagged)
