"""Configuration loading utilities with JSON and YAML support."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from hairswap.core.config.models import AppConfig
from hairswap.core.utils import logging as logging_utils

logger = logging.getLogger(__name__)

API_KEY_ENV_VAR = "OPENROUTER_API_KEY"


def detect_format(file_path: Path | str) -> str:
    """Detect config file format from extension.

    Args:
        file_path: Path to config file

    Returns:
        Format string: "json" or "yaml"

    Raises:
        ValueError: If format cannot be determined

    Example:
        >>> detect_format("config.json")
        'json'
        >>> detect_format("config.yml")
        'yaml'
    """
    suffix = Path(file_path).suffix.lower()

    if suffix == ".json":
        return "json"
    elif suffix in [".yaml", ".yml"]:
        return "yaml"
    else:
        raise ValueError(f"Unsupported config format: {suffix}")


def load_config(path: str | Path) -> dict[str, Any]:
    """Load and return a raw configuration dictionary.

    Args:
        path: Path to config file (.json, .yaml, or .yml)

    Returns:
        Raw configuration dictionary

    Raises:
        FileNotFoundError: If config file does not exist
        ValueError: If format is not supported or file content is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    fmt = detect_format(path)

    if fmt == "json":
        try:
            with path.open("r", encoding="utf-8") as f:
                content = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        try:
            with path.open("r", encoding="utf-8") as f:
                # safe_load returns None for empty files
                content = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(content, dict):
        raise ValueError(f"Config root must be a mapping in {path}")
    return content


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration.

    A missing file yields defaults. The API key is read from
    ``OPENROUTER_API_KEY`` when the config does not set one.

    Args:
        path: Path to app config file. Defaults to config.json

    Returns:
        Validated AppConfig instance

    Raises:
        pydantic.ValidationError: If config is invalid
    """
    if path is None:
        path = AppConfig.default_path()

    if Path(path).exists():
        config = AppConfig.model_validate(load_config(path))
    else:
        logger.debug(f"No config at {path}, using defaults")
        config = AppConfig()

    return _load_env_vars_into_config(config)


def configure_logging(config: AppConfig | None = None) -> None:
    """Configure Python logging from app config.

    Args:
        config: AppConfig instance (loads default if None)
    """
    if config is None:
        config = load_app_config()

    logging_utils.configure_logging(
        level=config.logging.level,
        format_string=config.logging.format,
        filename=config.logging.filename,
        structured=config.logging.structured,
    )


def _load_env_vars_into_config(config: AppConfig) -> AppConfig:
    if config.endpoint.api_key is not None:
        return config

    api_key = os.getenv(API_KEY_ENV_VAR)
    if not api_key:
        return config

    logger.debug(f"Loaded {API_KEY_ENV_VAR} from environment")
    endpoint = config.endpoint.model_copy(update={"api_key": api_key})
    return config.model_copy(update={"endpoint": endpoint})
