# Copyright 2025 Ilya Makarov
#
# Licensed under the Business Source License 1.1
# Change Date: 2028-11-05
# Change License: Apache License 2.0

"""
regshell Configuration System

Centralized configuration management supporting:
- Environment variables (REGSHELL_*)
- Config files (~/.regshell/config.yaml, ./.regshell.yaml)
- Programmatic defaults
- Pydantic validation
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from regshell.core.exceptions import ConfigError

logger = logging.getLogger("regshell.config")

CONFIG_FILE_NAME = ".regshell.yaml"


# ============================================================================
# Configuration Models
# ============================================================================


class PathsConfig(BaseModel):
    """Path configuration"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    home: Path = Field(
        default_factory=lambda: Path.home() / ".regshell",
        description="regshell home directory",
    )
    log_dir: Path = Field(
        default_factory=lambda: Path.home() / ".regshell" / "logs",
        description="Log files directory",
    )

    @field_validator("*", mode="before")
    @classmethod
    def ensure_path(cls, v):
        """Convert strings to Path objects"""
        if isinstance(v, str):
            return Path(v).expanduser()
        return v


class RegistryConfig(BaseModel):
    """reg.exe invocation defaults"""

    system_root: Optional[str] = Field(
        default=None,
        description="Windows directory holding system32 (defaults to %SystemRoot%)",
    )
    encoding: Optional[str] = Field(
        default=None,
        description="Codec for reg.exe output when not in UTF-8 mode",
    )
    arch: Optional[str] = Field(
        default=None, description="Default registry view (x86 or x64)"
    )
    utf8: bool = Field(
        default=False, description="Switch the console code page to 65001"
    )

    @field_validator("arch")
    @classmethod
    def validate_arch(cls, v):
        """Validate registry view"""
        if v is None or v == "":
            return None
        if v not in ("x86", "x64"):
            raise ValueError("Invalid arch. Must be one of: ['x86', 'x64']")
        return v


class ObservabilityConfig(BaseModel):
    """Observability configuration"""

    log_level: str = Field(default="WARNING", description="Logging level")
    debug_output: bool = Field(
        default=False,
        description="Emit command lines, exit codes and parsed lines at DEBUG",
    )
    log_to_file: bool = Field(
        default=False, description="Also write logs to paths.log_dir"
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level"""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper


class RegShellConfig(BaseModel):
    """Complete regshell configuration"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    paths: PathsConfig = Field(
        default_factory=PathsConfig, description="Path configuration"
    )
    registry: RegistryConfig = Field(
        default_factory=RegistryConfig, description="reg.exe configuration"
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )


# ============================================================================
# Configuration Loader
# ============================================================================


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class ConfigLoader:
    """Load configuration from multiple sources"""

    @staticmethod
    def load_from_env() -> Dict[str, Any]:
        """Load configuration from environment variables"""
        config: Dict[str, Any] = {}

        # Paths
        home = os.getenv("REGSHELL_HOME")
        if home:
            config.setdefault("paths", {})["home"] = home

        log_dir = os.getenv("REGSHELL_LOG_DIR")
        if log_dir:
            config.setdefault("paths", {})["log_dir"] = log_dir

        # Registry
        system_root = os.getenv("REGSHELL_SYSTEM_ROOT")
        if system_root:
            config.setdefault("registry", {})["system_root"] = system_root

        encoding = os.getenv("REGSHELL_ENCODING")
        if encoding:
            config.setdefault("registry", {})["encoding"] = encoding

        arch = os.getenv("REGSHELL_ARCH")
        if arch:
            config.setdefault("registry", {})["arch"] = arch

        utf8 = os.getenv("REGSHELL_UTF8")
        if utf8:
            config.setdefault("registry", {})["utf8"] = _as_bool(utf8)

        # Observability
        log_level = os.getenv("REGSHELL_LOG_LEVEL")
        if log_level:
            config.setdefault("observability", {})["log_level"] = log_level

        debug = os.getenv("REGSHELL_DEBUG")
        if debug:
            config.setdefault("observability", {})["debug_output"] = _as_bool(debug)

        log_to_file = os.getenv("REGSHELL_LOG_TO_FILE")
        if log_to_file:
            config.setdefault("observability", {})["log_to_file"] = _as_bool(
                log_to_file
            )

        return config

    @staticmethod
    def load_from_file(file_path: Path) -> Dict[str, Any]:
        """Load configuration from a YAML file"""
        if not file_path.exists():
            return {}

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(
                f"Failed to load config file {file_path}", cause=e
            ) from e

        if not isinstance(data, dict):
            raise ConfigError(
                f"Config file {file_path} must contain a mapping",
                details={"type": type(data).__name__},
            )
        return data

    @staticmethod
    def merge_configs(*configs: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge multiple configuration dictionaries"""
        result: Dict[str, Any] = {}
        for config in configs:
            for key, value in config.items():
                if (
                    key in result
                    and isinstance(result[key], dict)
                    and isinstance(value, dict)
                ):
                    result[key] = ConfigLoader.merge_configs(result[key], value)
                else:
                    result[key] = value
        return result


# ============================================================================
# Global Configuration Instance
# ============================================================================

_config: Optional[RegShellConfig] = None


def get_config() -> RegShellConfig:
    """
    Get global regshell configuration

    Configuration is loaded from (in order of precedence):
    1. Environment variables (REGSHELL_*)
    2. .regshell.yaml in current directory
    3. ~/.regshell/config.yaml
    4. Default values

    Returns:
        RegShellConfig instance
    """
    global _config

    if _config is None:
        _config = load_config()

    return _config


def load_config(
    config_file: Optional[Path] = None, env_override: bool = True
) -> RegShellConfig:
    """
    Load configuration from all sources

    Args:
        config_file: Optional specific config file, used instead of
            ./.regshell.yaml
        env_override: Whether environment variables override file config

    Returns:
        RegShellConfig instance

    Raises:
        ConfigError: If a config file cannot be read or a value is invalid
    """
    configs = []

    # 1. User-wide config
    user_config = Path.home() / ".regshell" / "config.yaml"
    user_data = ConfigLoader.load_from_file(user_config)
    if user_data:
        configs.append(user_data)
        logger.debug(f"Loaded config from {user_config}")

    # 2. Project config or explicit file
    local_config = Path(config_file) if config_file else Path.cwd() / CONFIG_FILE_NAME
    local_data = ConfigLoader.load_from_file(local_config)
    if local_data:
        configs.append(local_data)
        logger.debug(f"Loaded config from {local_config}")

    # 3. Environment variables
    if env_override:
        env_data = ConfigLoader.load_from_env()
        if env_data:
            configs.append(env_data)
            logger.debug("Loaded config from environment")

    merged = ConfigLoader.merge_configs(*configs) if configs else {}

    try:
        return RegShellConfig(**merged)
    except PydanticValidationError as e:
        messages = []
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            messages.append(f"{field}: {error['msg']}")
        raise ConfigError(
            f"Config validation failed: {'; '.join(messages)}", cause=e
        ) from e


def set_config(config: Optional[RegShellConfig]):
    """Replace the global configuration (None forces a reload on next access)"""
    global _config
    _config = config


def reload_config(config_file: Optional[Path] = None) -> RegShellConfig:
    """Reload global configuration"""
    global _config
    _config = load_config(config_file)
    logger.info("Configuration reloaded")
    return _config

