"""Configuration management for the operator library."""

from .settings import (
    FDOpsConfig, OperatorConfig, LoggingConfig, get_config, set_config,
    create_default_config, create_exact_config, create_parallel_config
)

__all__ = [
    "FDOpsConfig",
    "OperatorConfig",
    "LoggingConfig",
    "get_config",
    "set_config",
    "create_default_config",
    "create_exact_config",
    "create_parallel_config",
]
