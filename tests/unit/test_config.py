"""Unit tests for configuration handling."""

import json
import logging
import pytest
import sys
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from fdops.config.settings import (
    FDOpsConfig, OperatorConfig, LoggingConfig, get_config, set_config,
    create_default_config, create_exact_config, create_parallel_config
)
from fdops.utils.logging_utils import LoggingContext, debug_logging, get_logger


class TestOperatorConfig:
    """Test cases for OperatorConfig."""

    def test_defaults(self):
        """Test default configuration values."""
        config = OperatorConfig()
        config.validate()

        assert config.dtype == "float64"
        assert config.check_dimensions is True
        assert config.upwind_workers == 1

    @pytest.mark.parametrize("field,value", [
        ("dtype", "float16"),
        ("upwind_workers", 0),
        ("upwind_chunk_size", 0),
    ])
    def test_validation(self, field, value):
        """Invalid settings are rejected."""
        config = OperatorConfig(**{field: value})
        with pytest.raises(ValueError):
            config.validate()

    def test_invalid_logging_level(self):
        """Unknown logging levels are rejected."""
        with pytest.raises(ValueError, match="Invalid logging level"):
            LoggingConfig(level="VERBOSE").validate()


class TestFDOpsConfig:
    """Test cases for the complete configuration."""

    def test_dict_round_trip(self):
        """Dictionaries restore every section."""
        config = create_parallel_config(workers=3)
        restored = FDOpsConfig.from_dict(config.to_dict())

        assert restored.operators.upwind_workers == 3
        assert restored.logging.level == "WARNING"

    def test_json_file(self, tmp_path):
        """JSON files are written and validated on load."""
        path = tmp_path / "config.json"
        create_exact_config().to_json(path)

        assert json.loads(path.read_text())["operators"]["dtype"] == "exact"
        assert FDOpsConfig.from_json(path).operators.dtype == "exact"

    def test_yaml_file(self, tmp_path):
        """YAML files are written and validated on load."""
        path = tmp_path / "nested" / "config.yaml"
        config = create_default_config()
        config.operators.check_dimensions = False
        config.to_yaml(path)

        assert FDOpsConfig.from_yaml(path).operators.check_dimensions is False

    def test_missing_file(self, tmp_path):
        """Missing files raise FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            FDOpsConfig.from_yaml(tmp_path / "absent.yaml")

    def test_invalid_file_rejected(self, tmp_path):
        """Loaded configurations are validated."""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"operators": {"upwind_workers": -1}}))
        with pytest.raises(ValueError):
            FDOpsConfig.from_json(path)

    def test_set_config_returns_previous(self):
        """Activating a configuration hands back the old one."""
        original = get_config()
        replacement = create_exact_config()

        previous = set_config(replacement)
        try:
            assert previous is original
            assert get_config() is replacement
        finally:
            set_config(original)

    def test_set_config_validates(self):
        """Invalid configurations are never activated."""
        original = get_config()
        config = FDOpsConfig()
        config.operators.upwind_workers = 0

        with pytest.raises(ValueError):
            set_config(config)
        assert get_config() is original

    def test_string_representation(self):
        """Summary string names the operator settings."""
        assert "dtype=float64" in str(FDOpsConfig())


class TestLoggingUtilities:
    """Test cases for logging helpers."""

    def test_logging_context_restores_level(self):
        """Temporary levels are undone on exit."""
        logger = get_logger("fdops.test")
        logger.setLevel(logging.WARNING)

        with LoggingContext(logging.DEBUG, "fdops.test"):
            assert logger.level == logging.DEBUG
        assert logger.level == logging.WARNING

    def test_debug_logging_captures_operator_messages(self, caplog):
        """Operator construction logs at debug level."""
        from fdops.operators.derivative import DerivativeOperator

        with debug_logging(), caplog.at_level(logging.DEBUG, logger="fdops"):
            DerivativeOperator(2, 2, 1.0, 10)

        assert any("D2" in record.getMessage() for record in caplog.records)

    def test_silence_logger(self, caplog):
        """Silenced loggers drop even error records."""
        from fdops.utils.logging_utils import silence_logger

        with silence_logger("fdops.test.silent"):
            with caplog.at_level(logging.DEBUG):
                logging.getLogger("fdops.test.silent").error("hidden")
        assert not any(record.getMessage() == "hidden" for record in caplog.records)


class TestVersion:
    """Test cases for version information."""

    def test_version_info(self):
        """Version string and components agree."""
        import fdops
        from fdops._version import get_version_info, is_stable_release

        info = get_version_info()
        assert info["version"] == fdops.__version__
        assert ".".join(str(part) for part in info["version_info"]) == fdops.__version__
        assert is_stable_release() == (info["dev_status"] == "stable")
