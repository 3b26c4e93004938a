"""Configuration loader with YAML parsing and environment variable substitution."""

import os
import re
from pathlib import Path

import yaml

from .schema import StacktraceConfig


def substitute_env_vars(text: str) -> str:
    """
    Replace ${VAR_NAME} patterns with environment variable values.

    Args:
        text: Text containing ${VAR_NAME} patterns

    Returns:
        Text with environment variables substituted

    Raises:
        ValueError: If a referenced environment variable is not found
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(f"Environment variable {var_name} not found")
        return value

    return re.sub(r"\$\{([^}]+)\}", replacer, text)


def load_config(path: Path | None = None) -> StacktraceConfig:
    """
    Load configuration from a YAML file with environment variable substitution.

    Without a path, the configuration comes from defaults and
    VIM_STACKTRACE_* environment variables only.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated StacktraceConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If environment variables are missing or config is invalid
        ValidationError: If config doesn't match schema
    """
    if path is None:
        return StacktraceConfig()

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with path.open() as f:
        raw_yaml = f.read()

    # Substitute environment variables
    yaml_with_env = substitute_env_vars(raw_yaml)

    # An empty file is a valid, all-defaults configuration
    config_dict = yaml.safe_load(yaml_with_env) or {}
    if not isinstance(config_dict, dict):
        raise ValueError(f"Configuration must be a mapping: {path}")

    return StacktraceConfig.model_validate(config_dict)
