"""Configuration classes for operator settings."""

import json
import yaml
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional, Union
from pathlib import Path
import logging

logger = logging.getLogger(__name__)


@dataclass
class OperatorConfig:
    """Configuration for operator construction and application."""
    dtype: str = "float64"
    check_dimensions: bool = True
    upwind_workers: int = 1
    upwind_chunk_size: int = 4096

    def validate(self) -> None:
        """Validate operator configuration."""
        if self.dtype not in ["float32", "float64", "single", "double", "exact", "object"]:
            raise ValueError(f"Unsupported dtype: {self.dtype}")

        if self.upwind_workers < 1:
            raise ValueError("Upwind workers must be positive")

        if self.upwind_chunk_size < 1:
            raise ValueError("Upwind chunk size must be positive")

        if not self.check_dimensions:
            logger.warning("Dimension checks disabled: mismatched operands fail on first apply")


@dataclass
class LoggingConfig:
    """Configuration for logging."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_output: Optional[str] = None
    console_output: bool = True

    def validate(self) -> None:
        """Validate logging configuration."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if self.level not in valid_levels:
            raise ValueError(f"Invalid logging level: {self.level}")


@dataclass
class FDOpsConfig:
    """Complete configuration for the operator library."""
    operators: OperatorConfig = None
    logging: LoggingConfig = None

    def __post_init__(self):
        """Initialize default configurations if not provided."""
        if self.operators is None:
            self.operators = OperatorConfig()
        if self.logging is None:
            self.logging = LoggingConfig()

    def validate(self) -> None:
        """Validate all configuration sections."""
        self.operators.validate()
        self.logging.validate()

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'FDOpsConfig':
        """Create configuration from dictionary."""
        config = cls()

        if 'operators' in config_dict:
            config.operators = OperatorConfig(**config_dict['operators'])

        if 'logging' in config_dict:
            config.logging = LoggingConfig(**config_dict['logging'])

        return config

    @classmethod
    def from_json(cls, json_path: Union[str, Path]) -> 'FDOpsConfig':
        """Load configuration from JSON file."""
        json_path = Path(json_path)

        if not json_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {json_path}")

        with open(json_path, 'r') as f:
            config_dict = json.load(f)

        config = cls.from_dict(config_dict)
        config.validate()

        logger.info(f"Loaded configuration from {json_path}")
        return config

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> 'FDOpsConfig':
        """Load configuration from YAML file."""
        yaml_path = Path(yaml_path)

        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path, 'r') as f:
            config_dict = yaml.safe_load(f) or {}

        config = cls.from_dict(config_dict)
        config.validate()

        logger.info(f"Loaded configuration from {yaml_path}")
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            'operators': asdict(self.operators),
            'logging': asdict(self.logging)
        }

    def to_json(self, json_path: Union[str, Path], indent: int = 2) -> None:
        """Save configuration to JSON file."""
        json_path = Path(json_path)
        json_path.parent.mkdir(parents=True, exist_ok=True)

        with open(json_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=indent)

        logger.info(f"Saved configuration to {json_path}")

    def to_yaml(self, yaml_path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        yaml_path = Path(yaml_path)
        yaml_path.parent.mkdir(parents=True, exist_ok=True)

        with open(yaml_path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, indent=2)

        logger.info(f"Saved configuration to {yaml_path}")

    def setup_logging(self) -> None:
        """Setup logging based on configuration."""
        from ..utils.logging_utils import setup_logging

        numeric_level = getattr(logging, self.logging.level.upper(), None)
        if not isinstance(numeric_level, int):
            raise ValueError(f'Invalid log level: {self.logging.level}')

        setup_logging(
            level=numeric_level,
            format_string=self.logging.format,
            log_file=self.logging.file_output,
            console_output=self.logging.console_output,
            colored_console=False
        )

    def __str__(self) -> str:
        """String representation of configuration."""
        return (f"FDOpsConfig(dtype={self.operators.dtype}, "
                f"check_dimensions={self.operators.check_dimensions}, "
                f"upwind_workers={self.operators.upwind_workers})")

    def __repr__(self) -> str:
        """Detailed representation of configuration."""
        return f"FDOpsConfig(operators={self.operators}, logging={self.logging})"


_active_config = FDOpsConfig()


def get_config() -> FDOpsConfig:
    """Return the process-wide active configuration."""
    return _active_config


def set_config(config: FDOpsConfig) -> FDOpsConfig:
    """
    Replace the process-wide active configuration.

    Args:
        config: New configuration (validated before activation)

    Returns:
        The previously active configuration
    """
    global _active_config
    config.validate()
    previous = _active_config
    _active_config = config
    logger.debug(f"Activated configuration: {config}")
    return previous


def create_default_config() -> FDOpsConfig:
    """Create default configuration."""
    return FDOpsConfig()


def create_exact_config() -> FDOpsConfig:
    """Create configuration deriving coefficients in exact rational arithmetic."""
    config = FDOpsConfig()
    config.operators.dtype = "exact"
    return config


def create_parallel_config(workers: int = 4) -> FDOpsConfig:
    """Create configuration fanning upwind convolutions out over worker threads."""
    config = FDOpsConfig()
    config.operators.upwind_workers = workers
    config.operators.upwind_chunk_size = 1024
    config.logging.level = "WARNING"
    return config
