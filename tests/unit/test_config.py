"""Unit tests for configuration loading and logging setup."""

import os

import pytest
import yaml
from loguru import logger
from pydantic import ValidationError

from test_intelligence.config import TestIntelligenceConfig, load_config
from test_intelligence.logging_config import setup_logging


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Run every test without TEST_INTEL_* variables or a stray .env file."""
    for name in list(os.environ):
        if name.upper().startswith("TEST_INTEL_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


class TestTestIntelligenceConfig:
    """Test configuration defaults and validation."""

    def test_defaults(self):
        config = TestIntelligenceConfig()

        assert config.flaky_report_threshold == 0.3
        assert config.flaky_recent_window == 10
        assert config.flaky_history_window == 20
        assert config.flaky_recent_history_window == 5
        assert config.flaky_min_history == 3
        assert config.flaky_min_alternation_results == 3
        assert config.duration_variability_cap_ms == 1000.0
        assert config.trend_window == 5
        assert config.trend_threshold == 0.1
        assert config.historical_data_limit == 100
        assert config.merged_suite_name == "Merged Test Suite"
        assert config.default_language == "typescript"
        assert config.log_level == "INFO"
        assert config.log_json is False

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("TEST_INTEL_HISTORICAL_DATA_LIMIT", "50")
        monkeypatch.setenv("TEST_INTEL_LOG_LEVEL", "debug")

        config = TestIntelligenceConfig()

        assert config.historical_data_limit == 50
        assert config.log_level == "DEBUG"

    def test_invalid_values(self):
        with pytest.raises(ValidationError):
            TestIntelligenceConfig(flaky_report_threshold=1.5)
        with pytest.raises(ValidationError):
            TestIntelligenceConfig(historical_data_limit=0)
        with pytest.raises(ValidationError):
            TestIntelligenceConfig(log_level="LOUD")
        with pytest.raises(ValidationError):
            TestIntelligenceConfig(merged_suite_name="  ")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            TestIntelligenceConfig(flaky_treshold=0.5)


class TestLoadConfig:
    """Test loading configuration from YAML."""

    def test_no_file(self):
        assert load_config() == TestIntelligenceConfig()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump({"trend_window": 3, "merged_suite_name": "Nightly"}),
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.trend_window == 3
        assert config.merged_suite_name == "Nightly"
        assert config.flaky_report_threshold == 0.3

    def test_empty_yaml_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == TestIntelligenceConfig()

    def test_environment_beats_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("trend_window: 3\n", encoding="utf-8")
        monkeypatch.setenv("TEST_INTEL_TREND_WINDOW", "7")

        assert load_config(path).trend_window == 7

    def test_environment_equal_to_default_beats_file(self, tmp_path, monkeypatch):
        """Test an environment value matching the default still wins over the file."""
        path = tmp_path / "config.yaml"
        path.write_text("flaky_report_threshold: 0.5\n", encoding="utf-8")
        monkeypatch.setenv("TEST_INTEL_FLAKY_REPORT_THRESHOLD", "0.3")

        assert load_config(path).flaky_report_threshold == 0.3

    def test_overrides_beat_everything(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("trend_window: 3\n", encoding="utf-8")
        monkeypatch.setenv("TEST_INTEL_TREND_WINDOW", "7")

        assert load_config(path, trend_window=9).trend_window == 9

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ValueError, match="must contain a mapping"):
            load_config(path)

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("unknown_key: 1\n", encoding="utf-8")

        with pytest.raises(ValidationError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.yaml")


class TestSetupLogging:
    """Test loguru sink configuration."""

    def test_installs_single_sink(self, capsys):
        handler_id = setup_logging(TestIntelligenceConfig(log_level="WARNING"))
        try:
            logger.info("hidden message")
            logger.warning("visible message")
        finally:
            logger.remove(handler_id)

        err = capsys.readouterr().err
        assert "visible message" in err
        assert "hidden message" not in err

    def test_json_output(self, capsys):
        handler_id = setup_logging(TestIntelligenceConfig(log_json=True))
        try:
            logger.info("structured message")
        finally:
            logger.remove(handler_id)

        err = capsys.readouterr().err
        assert '"message": "structured message"' in err
