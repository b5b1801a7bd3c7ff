"""
Unit tests for config.py - model parameters and settings
"""

import pytest
from pydantic import ValidationError

from systemic_risk.config import ModelParameters, Settings
from systemic_risk.pipeline.results import SHORT_LABELS, measure_labels


class TestModelParameters:
    """Tests for ModelParameters validation."""

    def test_defaults(self):
        params = ModelParameters()

        assert params.confidence_level == 0.95
        assert params.crisis_threshold == 0.40
        assert params.capital_ratio == 0.08
        assert params.state_variables_lag == 1
        assert params.run_analysis is False
        assert params.tail_probability == pytest.approx(0.05)

    @pytest.mark.parametrize("field, value", [
        ("confidence_level", 0.89),
        ("confidence_level", 0.995),
        ("crisis_threshold", 0.04),
        ("crisis_threshold", 1.0),
        ("capital_ratio", 0.04),
        ("capital_ratio", 0.21),
        ("state_variables_lag", 0),
    ])
    def test_out_of_range_rejected(self, field, value):
        with pytest.raises(ValidationError):
            ModelParameters(**{field: value})

    @pytest.mark.parametrize("k", [0.90, 0.99])
    def test_range_bounds_accepted(self, k):
        assert ModelParameters(confidence_level=k).confidence_level == k

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            ModelParameters(capital_ratio=0.5)

    def test_frozen(self):
        params = ModelParameters()

        with pytest.raises(ValidationError):
            params.capital_ratio = 0.10


class TestSettings:
    """Tests for environment-driven Settings."""

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv("CONFIDENCE_LEVEL", "0.99")
        monkeypatch.setenv("CAPITAL_RATIO", "0.10")
        monkeypatch.setenv("RUN_ANALYSIS", "true")
        monkeypatch.setenv("N_JOBS", "4")

        settings = Settings(_env_file=None)
        params = settings.model_parameters()

        assert settings.N_JOBS == 4
        assert params.confidence_level == 0.99
        assert params.capital_ratio == 0.10
        assert params.run_analysis is True

    def test_invalid_environment_value(self, monkeypatch):
        monkeypatch.setenv("CRISIS_THRESHOLD", "1.5")

        settings = Settings(_env_file=None)

        with pytest.raises(ValidationError):
            settings.model_parameters()


class TestMeasureLabels:
    """Tests for display labels."""

    def test_default_labels(self):
        labels = measure_labels(ModelParameters())

        assert labels == [
            "Beta",
            "VaR (k=95%)",
            "CoVaR (k=95%)",
            "DCoVaR (k=95%)",
            "MES (k=95%)",
            "SRISK (d=40% l=8%)",
            "Averages",
        ]

    def test_labels_follow_parameters(self):
        labels = measure_labels(ModelParameters(confidence_level=0.99, crisis_threshold=0.3, capital_ratio=0.1))

        assert labels[1] == "VaR (k=99%)"
        assert labels[5] == "SRISK (d=30% l=10%)"

    def test_short_labels(self):
        assert SHORT_LABELS == ("Beta", "VaR", "CoVaR", "DCoVaR", "MES", "SRISK", "Averages")
