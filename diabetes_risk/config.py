"""
Configuration loading for the diabetes risk pipeline.

Two files are involved:
- the settings file (``config/appsettings.yaml``) which carries the database
  connection string,
- the training config (``config/training_config.yaml``) which carries the
  split, seed, model and experiment tracking options.

The connection string is resolved and checked before any database access.
"""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# ============================================================
# Reproducibility
# ============================================================

RANDOM_SEED: int = 42
TEST_FRACTION: float = 0.2

CONNECTION_STRING_ENV = "DIABETES_DB_CONNECTION"
CONNECTION_STRING_NAME = "db_connection"

DEFAULT_SETTINGS_PATH = Path("config/appsettings.yaml")
DEFAULT_CONFIG_PATH = Path("config/training_config.yaml")

DEFAULT_CONFIG: Dict[str, Any] = {
    "random_seed": RANDOM_SEED,
    "split": {
        "test_fraction": TEST_FRACTION,
        "seed": RANDOM_SEED,
    },
    "model": {
        "algorithm": "random_forest",
        "random_forest": {
            "n_estimators": 100,
            "min_samples_leaf": 2,
        },
        "lightgbm": {
            "n_estimators": 200,
            "learning_rate": 0.05,
            "num_leaves": 31,
            "verbose": -1,
        },
        "xgboost": {
            "n_estimators": 200,
            "learning_rate": 0.05,
            "max_depth": 6,
        },
    },
    "experiment_tracking": {
        "backend": "none",
    },
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read settings file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Malformed YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a mapping at the top of {path}, got {type(data).__name__}")
    return data


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load the training config and merge it over DEFAULT_CONFIG.

    A missing path returns the defaults. A path that is given but does not
    exist is an error.
    """
    if config_path is None:
        logger.info("No training config given, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Training config not found: {path}")

    config = _deep_merge(DEFAULT_CONFIG, _read_yaml(path))
    logger.info(f"Training config loaded from {path}")
    return config


def load_connection_string(
    settings_path: Optional[Union[str, Path]] = None,
    name: str = CONNECTION_STRING_NAME,
) -> str:
    """
    Resolve the named database connection string.

    The DIABETES_DB_CONNECTION environment variable wins over the settings
    file. Raises ConfigurationError when neither yields a non-empty string.
    """
    from_env = os.getenv(CONNECTION_STRING_ENV)
    if from_env:
        logger.info(f"Using connection string from ${CONNECTION_STRING_ENV}")
        return from_env.strip()

    path = Path(settings_path) if settings_path is not None else DEFAULT_SETTINGS_PATH
    if not path.exists():
        raise ConfigurationError(
            f"Settings file not found: {path} (and ${CONNECTION_STRING_ENV} is not set)"
        )

    settings = _read_yaml(path)
    section = settings.get("connection_strings")
    if not isinstance(section, dict):
        raise ConfigurationError(f"'connection_strings' section missing or malformed in {path}")

    value = section.get(name)
    if not isinstance(value, str) or not value.strip():
        raise ConfigurationError(f"Connection string '{name}' missing or empty in {path}")

    return value.strip()
