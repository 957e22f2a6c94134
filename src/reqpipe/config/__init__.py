"""Configuration helpers."""

from .loader import ConfigError, get_default_config_path, load_config
from .models import (
    FaultToleranceConfig,
    LoggingConfig,
    MatchConfig,
    PipelineConfig,
    ServerConfig,
    TransportConfig,
)

__all__ = [
    "ConfigError",
    "FaultToleranceConfig",
    "LoggingConfig",
    "MatchConfig",
    "PipelineConfig",
    "ServerConfig",
    "TransportConfig",
    "get_default_config_path",
    "load_config",
]
