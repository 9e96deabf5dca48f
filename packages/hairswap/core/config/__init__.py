"""Configuration management for hairswap."""

from hairswap.core.config.loader import (
    configure_logging,
    detect_format,
    load_app_config,
    load_config,
)
from hairswap.core.config.models import (
    AppConfig,
    ConfigBase,
    EndpointConfig,
    LoggingConfig,
    SynthesisConfig,
    TransitionConfig,
)

__all__ = [
    # Loaders
    "configure_logging",
    "detect_format",
    "load_app_config",
    "load_config",
    # Models
    "AppConfig",
    "ConfigBase",
    "EndpointConfig",
    "LoggingConfig",
    "SynthesisConfig",
    "TransitionConfig",
]
