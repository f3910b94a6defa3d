"""
Tests for reporting configuration loading.

Covers:
- Shipped configuration sets parse into ReportingConfig
- Threshold coercion and validation
- Malformed documents raise ConfigurationError
- Checksum determinism and the PORTFOLIO_CONFIG_TRACE audit event
"""

from decimal import Decimal

import pytest

from portfolio_config import get_active_config
from portfolio_config.loader import compute_checksum, load_config, load_yaml_file
from portfolio_config.schema import ReportingConfig, ReportingThresholds
from portfolio_kernel.exceptions import ConfigurationError, InvalidThresholdError


class TestConfigurationSets:
    """Shipped YAML sets."""

    def test_default_set(self):
        config = get_active_config()

        assert config == ReportingConfig()
        assert config.thresholds.forecast_accuracy_tolerance == Decimal("0.10")
        assert config.thresholds.forecast_deviation_threshold == Decimal("0.50")
        assert config.thresholds.spend_outlier_multiplier == Decimal("3")

    def test_strict_set(self):
        config = get_active_config("strict")

        assert config.entity_name == "Finance Reporting (month-end review)"
        assert config.thresholds.forecast_accuracy_tolerance == Decimal("0.05")
        assert config.thresholds.spend_outlier_multiplier == Decimal("2")

    def test_missing_set(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config("quarterly", config_dir=tmp_path)

    def test_config_trace_logged(self, captured_logs):
        get_active_config("strict")

        (trace,) = [r for r in captured_logs() if r["message"] == "PORTFOLIO_CONFIG_TRACE"]
        assert trace["config_name"] == "strict"
        assert len(trace["checksum"]) == 64

    def test_custom_directory(self, tmp_path):
        (tmp_path / "board.yaml").write_text(
            "name: board\ncurrency: EUR\nthresholds:\n  spend_outlier_multiplier: 4\n"
        )

        config = get_active_config("board", config_dir=tmp_path)

        assert config.currency == "EUR"
        assert config.thresholds.spend_outlier_multiplier == Decimal("4")
        assert config.thresholds.forecast_accuracy_tolerance == Decimal("0.10")


class TestThresholds:
    """Every threshold is a positive Decimal."""

    def test_strings_and_floats_coerced(self):
        thresholds = ReportingThresholds(
            forecast_accuracy_tolerance="0.2",
            spend_outlier_multiplier=2.5,
        )
        assert thresholds.forecast_accuracy_tolerance == Decimal("0.2")
        assert thresholds.spend_outlier_multiplier == Decimal("2.5")

    @pytest.mark.parametrize("value", [0, "-0.1", "abc", True, "NaN", "Infinity"])
    def test_invalid_threshold(self, value):
        with pytest.raises(InvalidThresholdError) as exc_info:
            ReportingThresholds(forecast_deviation_threshold=value)
        assert exc_info.value.name == "forecast_deviation_threshold"
        assert exc_info.value.code == "INVALID_THRESHOLD"

    def test_invalid_threshold_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            ReportingConfig.from_dict({"thresholds": {"spend_outlier_multiplier": -3}})


class TestReportingConfig:
    """Presentation settings and dictionary parsing."""

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Invalid reporting config"):
            ReportingConfig.from_dict({"entity": "x"})

    def test_unknown_threshold_key(self):
        with pytest.raises(ConfigurationError):
            ReportingConfig.from_dict({"thresholds": {"outlier": "3"}})

    @pytest.mark.parametrize("kwargs", [
        {"currency": "DOLLARS"},
        {"display_precision": -1},
    ])
    def test_invalid_presentation(self, kwargs):
        with pytest.raises(ConfigurationError):
            ReportingConfig(**kwargs)

    def test_with_defaults(self):
        assert ReportingConfig.with_defaults() == ReportingConfig()


class TestLoader:
    """YAML files and checksums."""

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            load_yaml_file(path)

    def test_empty_document_is_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        config, _ = load_config(path)

        assert config == ReportingConfig()

    def test_checksum_ignores_key_order(self):
        assert compute_checksum({"a": 1, "b": {"c": "2"}}) == compute_checksum({"b": {"c": "2"}, "a": 1})
        assert compute_checksum({"a": 1}) != compute_checksum({"a": 2})
