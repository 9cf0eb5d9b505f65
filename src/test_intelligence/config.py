"""
Configuration for the test intelligence engine.

Values come from (highest precedence first) explicit keyword arguments,
``TEST_INTEL_*`` environment variables, an optional ``.env`` file, an optional
YAML file passed to ``load_config`` and finally the defaults below. The
resulting object is handed to the recorder and analyzers at construction.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


class TestIntelligenceConfig(BaseSettings):
    """Thresholds and windows used by the analyzers and recorder."""

    model_config = SettingsConfigDict(
        env_prefix="TEST_INTEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="forbid",
    )

    # Flakiness
    flaky_report_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    flaky_recent_window: int = Field(default=10, gt=0)
    flaky_history_window: int = Field(default=20, gt=0)
    flaky_recent_history_window: int = Field(default=5, gt=0)
    flaky_min_history: int = Field(default=3, gt=0)
    flaky_min_alternation_results: int = Field(default=3, gt=0)
    duration_variability_cap_ms: float = Field(default=1000.0, gt=0.0)

    # Performance
    trend_window: int = Field(default=5, gt=0)
    trend_threshold: float = Field(default=0.1, ge=0.0, le=1.0)
    historical_data_limit: int = Field(default=100, gt=0)

    # Ingestion
    merged_suite_name: str = "Merged Test Suite"
    default_language: str = "typescript"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("merged_suite_name")
    @classmethod
    def _validate_suite_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("merged_suite_name cannot be empty")
        return value


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def load_config(
    path: Optional[Union[str, Path]] = None, **overrides: Any
) -> TestIntelligenceConfig:
    """
    Load configuration from an optional YAML file.

    Environment variables take precedence over values in the file, and
    keyword ``overrides`` take precedence over both.

    Args:
        path: YAML file with any of the ``TestIntelligenceConfig`` field names
        **overrides: Explicit field values

    Returns:
        Validated configuration

    Raises:
        FileNotFoundError: If ``path`` does not exist
        pydantic.ValidationError: If a value is invalid or a key is unknown
    """
    file_values: Dict[str, Any] = {}
    if path is not None:
        file_values = _read_yaml(Path(path))

    # Init kwargs win over env in pydantic-settings, so only pass file values
    # the environment does not already set.
    env_fields = TestIntelligenceConfig().model_fields_set
    merged = {k: v for k, v in file_values.items() if k not in env_fields}
    merged.update(overrides)
    return TestIntelligenceConfig(**merged)
