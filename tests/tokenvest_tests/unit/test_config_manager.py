"""
Comprehensive test coverage for VestingConfigManager

Tests for:
- Section dataclass defaults and validation
- Environment detection
- Configuration file loading (YAML/JSON)
- Environment variable handling
- CLI override handling
- Singleton pattern
"""

import json

import pytest
import yaml

from tokenvest import config_manager as config_module
from tokenvest.config_manager import (
    Environment,
    LoggingConfig,
    MetricsConfig,
    ScheduleConfig,
    VestingConfigManager,
    get_config_manager,
)
from tokenvest.core.vesting_exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Strip TOKENVEST_* variables so host settings do not leak in"""
    import os

    for key in list(os.environ):
        if key.startswith("TOKENVEST_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config_module, "load_dotenv", lambda *a, **k: False)


class TestSections:
    """Section dataclasses"""

    def test_schedule_defaults(self):
        config = ScheduleConfig()
        assert config.day_length == 86400
        assert config.half_day_offset == 43200
        assert config.window_length == 31557600
        config.validate()

    def test_schedule_offset_outside_day(self):
        with pytest.raises(ConfigurationError):
            ScheduleConfig(day_length=3600, half_day_offset=3600).validate()

    def test_schedule_non_positive_window(self):
        with pytest.raises(ConfigurationError):
            ScheduleConfig(window_length=0).validate()

    def test_logging_invalid_level(self):
        with pytest.raises(ConfigurationError):
            LoggingConfig(level="LOUD").validate()

    @pytest.mark.parametrize("level", [10, None, True])
    def test_logging_non_string_level(self, level):
        with pytest.raises(ConfigurationError):
            LoggingConfig(level=level).validate()

    def test_logging_small_rotation(self):
        with pytest.raises(ConfigurationError):
            LoggingConfig(max_log_size=10).validate()

    def test_metrics_default_enabled(self):
        assert MetricsConfig().enabled is True


class TestEnvironment:
    """Environment detection"""

    def test_default_is_development(self, tmp_path):
        manager = VestingConfigManager(config_dir=str(tmp_path))
        assert manager.environment is Environment.DEVELOPMENT

    def test_alias(self, tmp_path):
        manager = VestingConfigManager(environment="prod", config_dir=str(tmp_path))
        assert manager.environment is Environment.PRODUCTION

    def test_from_environment_variable(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TOKENVEST_ENVIRONMENT", "staging")
        manager = VestingConfigManager(config_dir=str(tmp_path))
        assert manager.environment is Environment.STAGING

    def test_unknown_falls_back_to_development(self, tmp_path):
        manager = VestingConfigManager(environment="qa", config_dir=str(tmp_path))
        assert manager.environment is Environment.DEVELOPMENT


class TestFileLoading:
    """Config file precedence"""

    def test_empty_directory_uses_builtin_defaults(self, tmp_path):
        manager = VestingConfigManager(config_dir=str(tmp_path))
        assert manager.schedule == ScheduleConfig()
        assert manager.logging == LoggingConfig()

    def test_environment_file_overrides_default(self, tmp_path):
        (tmp_path / "default.yaml").write_text(yaml.safe_dump({
            "schedule": {"window_length": 1000},
            "logging": {"level": "DEBUG"},
        }))
        (tmp_path / "production.yaml").write_text(yaml.safe_dump({
            "logging": {"level": "ERROR"},
        }))

        manager = VestingConfigManager(environment="production", config_dir=str(tmp_path))

        assert manager.schedule.window_length == 1000
        assert manager.logging.level == "ERROR"
        assert manager.get("schedule.window_length") == 1000

    def test_json_file(self, tmp_path):
        (tmp_path / "default.json").write_text(json.dumps({"metrics": {"enabled": False}}))
        manager = VestingConfigManager(config_dir=str(tmp_path))
        assert manager.metrics.enabled is False

    def test_unknown_key_rejected(self, tmp_path):
        (tmp_path / "default.yaml").write_text(yaml.safe_dump({"schedule": {"week_length": 7}}))
        with pytest.raises(ConfigurationError):
            VestingConfigManager(config_dir=str(tmp_path))

    def test_invalid_value_rejected(self, tmp_path):
        (tmp_path / "default.yaml").write_text(yaml.safe_dump({"schedule": {"day_length": -1}}))
        with pytest.raises(ConfigurationError):
            VestingConfigManager(config_dir=str(tmp_path))

    def test_packaged_production_config(self):
        manager = VestingConfigManager(environment="production")
        assert manager.logging.level == "WARNING"
        assert manager.logging.enable_file_logging is True


class TestOverrides:
    """Environment variables and CLI overrides"""

    def test_env_variable_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TOKENVEST_SCHEDULE_WINDOW_LENGTH", "3600")
        monkeypatch.setenv("TOKENVEST_METRICS_ENABLED", "off")
        manager = VestingConfigManager(config_dir=str(tmp_path))
        assert manager.schedule.window_length == 3600
        assert manager.metrics.enabled is False

    def test_unrelated_env_variables_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TOKENVEST_HOME", "/tmp")
        monkeypatch.setenv("TOKENVEST_API_KEY", "secret")
        manager = VestingConfigManager(config_dir=str(tmp_path))
        assert manager.get("api") is None

    def test_cli_override_beats_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TOKENVEST_LOGGING_LEVEL", "DEBUG")
        manager = VestingConfigManager(
            config_dir=str(tmp_path),
            cli_overrides={"logging.level": "ERROR"},
        )
        assert manager.logging.level == "ERROR"

    def test_numeric_env_log_level_rejected(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TOKENVEST_LOGGING_LEVEL", "10")
        with pytest.raises(ConfigurationError):
            VestingConfigManager(config_dir=str(tmp_path))

    def test_invalid_cli_override(self, tmp_path):
        with pytest.raises(ConfigurationError):
            VestingConfigManager(config_dir=str(tmp_path), cli_overrides={"logging.level": "LOUD"})

    def test_parse_env_value(self, tmp_path):
        manager = VestingConfigManager(config_dir=str(tmp_path))
        assert manager._parse_env_value("yes") is True
        assert manager._parse_env_value("False") is False
        assert manager._parse_env_value("42") == 42
        assert manager._parse_env_value("1.5") == 1.5
        assert manager._parse_env_value("INFO") == "INFO"


class TestManagerApi:
    def test_to_dict(self, tmp_path):
        data = VestingConfigManager(environment="staging", config_dir=str(tmp_path)).to_dict()
        assert data["environment"] == "staging"
        assert set(data) == {"environment", "schedule", "logging", "metrics"}

    def test_get_default(self, tmp_path):
        manager = VestingConfigManager(config_dir=str(tmp_path))
        assert manager.get("schedule.missing", "fallback") == "fallback"

    def test_reload_picks_up_changes(self, tmp_path):
        manager = VestingConfigManager(config_dir=str(tmp_path))
        (tmp_path / "default.yaml").write_text(yaml.safe_dump({"schedule": {"window_length": 77}}))
        manager.reload()
        assert manager.schedule.window_length == 77

    def test_repr(self, tmp_path):
        manager = VestingConfigManager(config_dir=str(tmp_path))
        assert repr(manager) == "VestingConfigManager(environment=development)"

    def test_singleton(self, tmp_path, monkeypatch):
        monkeypatch.setattr(config_module, "_config_manager", None)
        first = get_config_manager(config_dir=str(tmp_path))
        assert get_config_manager() is first
        assert get_config_manager(config_dir=str(tmp_path), force_reload=True) is not first
