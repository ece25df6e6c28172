"""Unit tests for scalar precision handling."""

import numpy as np
import pytest
import sys
from fractions import Fraction
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from fdops.config.settings import FDOpsConfig, set_config
from fdops.core.precision import (
    PrecisionLevel, parse_precision, resolve_dtype, scalar_type, convert_array
)
from fdops.operators.derivative import DerivativeOperator


class TestPrecisionParsing:
    """Test cases for precision level parsing."""

    def test_names(self):
        """Test precision level parsing from names."""
        assert parse_precision("single") == PrecisionLevel.SINGLE
        assert parse_precision("float32") == PrecisionLevel.SINGLE
        assert parse_precision("Double") == PrecisionLevel.DOUBLE
        assert parse_precision("exact") == PrecisionLevel.EXACT
        assert parse_precision("fraction") == PrecisionLevel.EXACT
        assert parse_precision(PrecisionLevel.DOUBLE) == PrecisionLevel.DOUBLE

        with pytest.raises(ValueError, match="Unknown precision level"):
            parse_precision("invalid")

    def test_dtypes(self):
        """Test precision level parsing from numpy dtypes."""
        assert parse_precision(np.float32) == PrecisionLevel.SINGLE
        assert parse_precision(np.dtype(np.float64)) == PrecisionLevel.DOUBLE
        assert parse_precision(object) == PrecisionLevel.EXACT

        with pytest.raises(ValueError, match="Unsupported dtype"):
            parse_precision(np.int32)

    def test_resolve_dtype(self):
        """Test dtype resolution."""
        assert resolve_dtype("single") == np.float32
        assert resolve_dtype(PrecisionLevel.EXACT) == np.dtype(object)
        assert resolve_dtype() == np.float64

    def test_resolve_dtype_follows_configuration(self):
        """The active configuration supplies the default precision."""
        config = FDOpsConfig()
        config.operators.dtype = "float32"
        previous = set_config(config)
        try:
            assert resolve_dtype() == np.float32
            assert DerivativeOperator(2, 2, 1.0, 10).dtype == np.float32
        finally:
            set_config(previous)


class TestConversion:
    """Test cases for scalar and array conversion."""

    def test_scalar_type(self):
        """Exact storage builds fractions."""
        assert scalar_type(object) is Fraction
        assert scalar_type("float32") is np.float32
        assert scalar_type(object)(0.5) == Fraction(1, 2)

    def test_array_conversion(self):
        """Test array precision conversion."""
        original = np.array([1.0, 2.0, 3.0], dtype=np.float64)

        converted = convert_array(original, np.float32)
        assert converted.dtype == np.float32
        np.testing.assert_allclose(converted, original, rtol=1e-6)

        assert convert_array(original, np.float64) is original

    def test_exact_conversion(self):
        """Float values become exact fractions."""
        converted = convert_array(np.array([0.25, -1.5]), object)

        assert converted.dtype == np.dtype(object)
        assert all(isinstance(value, Fraction) for value in converted)
        assert list(converted) == [Fraction(1, 4), Fraction(-3, 2)]
