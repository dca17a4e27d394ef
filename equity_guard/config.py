"""
Configuration management for Equity Guard.

Loads thresholds from a JSON or YAML file. Unlike most settings, the
hysteresis parameters have no safe defaults: a missing or invalid file is
fatal and stops the run before any state is touched.
"""

import json
import logging
import os

from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError
from .types import GuardConfig, HysteresisParams

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "./equity_guard_config.json"
CONFIG_ENV_VAR = "EQUITY_GUARD_CONFIG"

YAML_SUFFIXES = (".yml", ".yaml")

DEFAULT_PARAMETERS: dict[str, Any] = {
    "T_enter_major": 0.50,
    "T_enter_standard": 0.60,
    "T_exit": 0.65,
    "consecutive_required_standard": 3,
    "cooldown_snapshots_after_exit": 1,
}


def resolve_config_path(config_path: str | None = None) -> str:
    """
    Resolve which config file to read.

    Priority:
    1. Explicit config_path argument
    2. EQUITY_GUARD_CONFIG environment variable
    3. Default path (./equity_guard_config.json)
    """
    return config_path or os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)


def load_config(config_path: str | None = None) -> GuardConfig:
    """
    Load and validate configuration.

    Raises:
        ConfigurationError: If the file is missing, unparseable, or the
            parameters violate their invariants.
    """
    path = Path(resolve_config_path(config_path))

    if not path.exists():
        raise ConfigurationError(f"config file not found: {path}")

    data = _read_config_file(path)
    config = GuardConfig.from_dict(data)

    logger.info(
        f"Loaded config from {path}: "
        f"params_version={config.params.version or 'unversioned'}"
    )
    return config


def save_config(config: GuardConfig, config_path: str | None = None) -> None:
    """
    Save configuration to file. The format follows the file suffix.
    """
    path = Path(config_path or DEFAULT_CONFIG_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", encoding="utf-8") as f:
        if path.suffix in YAML_SUFFIXES:
            yaml.safe_dump(config.to_dict(), f, sort_keys=False)
        else:
            json.dump(config.to_dict(), f, indent=2)


def create_default_config_file(path: str = DEFAULT_CONFIG_PATH) -> None:
    """Create a default configuration file for users to customize."""
    save_config(GuardConfig(params=HysteresisParams.from_dict(DEFAULT_PARAMETERS)), path)
    print(f"Created default config at: {path}")


def _read_config_file(path: Path) -> dict[str, Any]:
    """Parse a JSON or YAML config file into a mapping."""
    try:
        with open(path, encoding="utf-8") as f:
            if path.suffix in YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"cannot read config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"config {path} must contain a mapping")
    return data
