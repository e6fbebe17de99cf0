"""Configuration loader for ask-finance.

This module provides functionality for loading YAML and JSON configurations
with environment variable expansion support.
"""

import json
import os
import re
from pathlib import Path
from typing import Any, Optional

import yaml

from .schemas import EngineConfig, validate_engine_config

# Pattern for environment variable substitution: ${VAR_NAME} or ${VAR_NAME:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

CONFIG_DIR_ENV = "ASK_FINANCE_HOME"
CONFIG_FILE_NAME = "config.yaml"


def _expand_env_vars(value: Any) -> Any:
    """Recursively expand environment variables in a value.

    Supports ${VAR} and ${VAR:-default} syntax.

    Args:
        value: The value to expand (can be str, dict, list)

    Returns:
        The value with environment variables expanded
    """
    if isinstance(value, str):
        def replace_env_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default)

        return ENV_VAR_PATTERN.sub(replace_env_var, value)

    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]

    return value


def get_default_config_dir() -> Path:
    """Get the default configuration directory path.

    Honours ``$ASK_FINANCE_HOME``; otherwise ``~/.ask-finance/``. The directory
    is not created.

    Returns:
        Path to the default configuration directory
    """
    override = os.environ.get(CONFIG_DIR_ENV)
    if override:
        return Path(override)
    return Path.home() / ".ask-finance"


def load_config_file(
    file_path: str | Path,
    config_type: str = "auto",
    expand_env: bool = True,
) -> dict[str, Any]:
    """Load a configuration file (YAML or JSON) with optional environment variable expansion.

    Args:
        file_path: Path to the configuration file
        config_type: Type of config ("yaml", "json", or "auto" to detect from extension)
        expand_env: Whether to expand environment variables

    Returns:
        Dictionary containing the configuration

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file type is unsupported or invalid
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {file_path}")

    if config_type == "auto":
        suffix = path.suffix.lower()
        if suffix in [".yaml", ".yml"]:
            config_type = "yaml"
        elif suffix == ".json":
            config_type = "json"
        else:
            raise ValueError(f"Cannot detect config type from extension: {suffix}")

    with open(path, "r", encoding="utf-8") as f:
        if config_type == "yaml":
            config = yaml.safe_load(f) or {}
        elif config_type == "json":
            config = json.load(f)
        else:
            raise ValueError(f"Unsupported config type: {config_type}")

    if not isinstance(config, dict):
        raise ValueError(f"Configuration root must be a mapping: {file_path}")

    if expand_env:
        config = _expand_env_vars(config)

    return config


def load_engine_config(file_path: Optional[str | Path] = None) -> EngineConfig:
    """Load and validate the engine configuration.

    Args:
        file_path: Explicit configuration file. When omitted, the default
            ``config.yaml`` is used if it exists, otherwise defaults apply.

    Returns:
        Validated EngineConfig object

    Raises:
        FileNotFoundError: If an explicit file doesn't exist
        ValidationError: If the configuration is invalid
    """
    if file_path is None:
        default_path = get_default_config_dir() / CONFIG_FILE_NAME
        if not default_path.exists():
            return EngineConfig()
        file_path = default_path

    return validate_engine_config(load_config_file(file_path))
