"""
tokenvest Configuration Manager

Centralized configuration management supporting:
- Environment-based configs (dev/staging/prod)
- Config file loading (YAML/JSON)
- Command-line override support
- Environment variable support (TOKENVEST_*)
- Config validation
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from .core.constants import HALF_DAY_OFFSET, SECONDS_PER_DAY, SECONDS_PER_YEAR
from .core.vesting_exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent / "config"
ENV_PREFIX = "TOKENVEST_"


class Environment(Enum):
    """Environment types"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


@dataclass
class ScheduleConfig:
    """Schedule timing used when constructing vesters"""
    day_length: int = SECONDS_PER_DAY
    half_day_offset: int = HALF_DAY_OFFSET
    window_length: int = SECONDS_PER_YEAR

    def validate(self):
        if self.day_length <= 0:
            raise ConfigurationError(f"Invalid day_length: {self.day_length}. Must be > 0")
        if not (0 <= self.half_day_offset < self.day_length):
            raise ConfigurationError(
                f"Invalid half_day_offset: {self.half_day_offset}. "
                f"Must be within [0, {self.day_length})"
            )
        if self.window_length <= 0:
            raise ConfigurationError(f"Invalid window_length: {self.window_length}. Must be > 0")


@dataclass
class LoggingConfig:
    """Logging configuration settings"""
    level: str = "INFO"
    enable_file_logging: bool = False
    log_file: str = "logs/tokenvest.json"
    max_log_size: int = 10485760  # 10MB
    backup_count: int = 5
    enable_console_logging: bool = True

    def validate(self):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if not isinstance(self.level, str) or self.level.upper() not in valid_levels:
            raise ConfigurationError(f"Invalid log level: {self.level}. Must be one of {valid_levels}")
        if self.max_log_size < 1024:
            raise ConfigurationError(f"Invalid max_log_size: {self.max_log_size}. Must be >= 1024")
        if self.backup_count < 0:
            raise ConfigurationError(f"Invalid backup_count: {self.backup_count}. Must be >= 0")


@dataclass
class MetricsConfig:
    """Prometheus metrics settings"""
    enabled: bool = True

    def validate(self):
        pass


class VestingConfigManager:
    """
    Configuration Manager for tokenvest

    Sources, highest priority first:
    1. Command-line arguments
    2. Environment variables (TOKENVEST_*)
    3. Environment-specific config file
    4. Default config file
    5. Built-in defaults
    """

    def __init__(self,
                 environment: Optional[str] = None,
                 config_dir: Optional[str] = None,
                 cli_overrides: Optional[Dict[str, Any]] = None):
        load_dotenv()

        self.environment = self._determine_environment(environment)
        self.config_dir = Path(config_dir).resolve() if config_dir else DEFAULT_CONFIG_DIR
        self.cli_overrides = cli_overrides or {}

        self.schedule: ScheduleConfig = None
        self.logging: LoggingConfig = None
        self.metrics: MetricsConfig = None

        self._raw_config: Dict[str, Any] = {}

        self._load_configuration()

    def _determine_environment(self, environment: Optional[str]) -> Environment:
        """
        Determine the environment to use

        Priority:
        1. Passed environment parameter
        2. TOKENVEST_ENVIRONMENT environment variable
        3. Default to DEVELOPMENT
        """
        if environment:
            env_str = environment.lower()
        else:
            env_str = os.getenv("TOKENVEST_ENVIRONMENT", "development").lower()

        env_mapping = {
            "dev": Environment.DEVELOPMENT,
            "development": Environment.DEVELOPMENT,
            "staging": Environment.STAGING,
            "stage": Environment.STAGING,
            "prod": Environment.PRODUCTION,
            "production": Environment.PRODUCTION,
        }

        return env_mapping.get(env_str, Environment.DEVELOPMENT)

    def _load_configuration(self):
        """Load configuration from all sources with proper precedence"""
        default_config = self._load_config_file("default")
        env_config = self._load_config_file(self.environment.value)
        merged_config = self._merge_configs(default_config, env_config)
        merged_config = self._apply_env_variables(merged_config)
        merged_config = self._apply_cli_overrides(merged_config)

        self._raw_config = merged_config

        self._parse_configuration(merged_config)
        self._validate_configuration()

        logger.debug(
            "Configuration loaded",
            extra={"event": "config.loaded", "environment": self.environment.value},
        )

    def _load_config_file(self, filename: str) -> Dict[str, Any]:
        """Load a config file (YAML first, then JSON); missing files yield {}"""
        yaml_path = self.config_dir / f"{filename}.yaml"
        if yaml_path.exists():
            with open(yaml_path, "r") as f:
                return yaml.safe_load(f) or {}

        json_path = self.config_dir / f"{filename}.json"
        if json_path.exists():
            with open(json_path, "r") as f:
                return json.load(f)

        return {}

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries"""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _apply_env_variables(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply environment variable overrides

        Format: TOKENVEST_SECTION_KEY=value, e.g. TOKENVEST_SCHEDULE_WINDOW_LENGTH=31536000
        """
        result = {k: dict(v) if isinstance(v, dict) else v for k, v in config.items()}

        for key, value in os.environ.items():
            if not key.startswith(ENV_PREFIX) or key == "TOKENVEST_ENVIRONMENT":
                continue

            parts = key[len(ENV_PREFIX):].lower().split("_")
            if len(parts) < 2:
                continue

            section = parts[0]
            config_key = "_".join(parts[1:])

            if section not in ("schedule", "logging", "metrics"):
                continue
            if not isinstance(result.get(section), dict):
                result[section] = {}
            result[section][config_key] = self._parse_env_value(value)

        return result

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool]:
        """Parse an environment variable value to the narrowest matching type"""
        if value.lower() in ("true", "yes", "on"):
            return True
        if value.lower() in ("false", "no", "off"):
            return False

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def _apply_cli_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply command-line overrides given as dotted keys ("schedule.day_length")"""
        result = config.copy()

        for key, value in self.cli_overrides.items():
            parts = key.split(".")

            if len(parts) == 1:
                result[key] = value
            elif len(parts) == 2:
                section, config_key = parts
                if not isinstance(result.get(section), dict):
                    result[section] = {}
                else:
                    result[section] = dict(result[section])
                result[section][config_key] = value

        return result

    def _parse_configuration(self, config: Dict[str, Any]):
        """Parse configuration into typed section objects"""
        try:
            self.schedule = ScheduleConfig(**config.get("schedule", {}))
            self.logging = LoggingConfig(**config.get("logging", {}))
            self.metrics = MetricsConfig(**config.get("metrics", {}))
        except TypeError as exc:
            raise ConfigurationError(f"Unknown configuration key: {exc}") from exc

    def _validate_configuration(self):
        """Validate all configuration sections"""
        self.schedule.validate()
        self.logging.validate()
        self.metrics.validate()

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key ("schedule.window_length")"""
        parts = key.split(".")
        value = self._raw_config

        for part in parts:
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default

        return value

    def to_dict(self) -> Dict[str, Any]:
        """Export the effective configuration"""
        return {
            "environment": self.environment.value,
            "schedule": asdict(self.schedule),
            "logging": asdict(self.logging),
            "metrics": asdict(self.metrics),
        }

    def reload(self):
        """Reload configuration from files"""
        self._load_configuration()

    def __repr__(self) -> str:
        return f"VestingConfigManager(environment={self.environment.value})"


# Singleton instance
_config_manager: Optional[VestingConfigManager] = None


def get_config_manager(
    environment: Optional[str] = None,
    config_dir: Optional[str] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
    force_reload: bool = False
) -> VestingConfigManager:
    """Get or create the VestingConfigManager singleton"""
    global _config_manager

    if _config_manager is None or force_reload:
        _config_manager = VestingConfigManager(
            environment=environment,
            config_dir=config_dir,
            cli_overrides=cli_overrides
        )

    return _config_manager
