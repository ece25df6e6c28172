"""Unit tests for scalar coefficients."""

import numpy as np
import pytest
import sys
from fractions import Fraction
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from fdops.operators.scalar import ScalarValue


class TestScalarValue:
    """Test cases for ScalarValue."""

    def test_transparent_arithmetic(self):
        """Scalar behaves as its value in arithmetic."""
        a = ScalarValue(2.0)

        assert a + 1 == 3.0
        assert 1 + a == 3.0
        assert a - 0.5 == 1.5
        assert 5 - a == 3.0
        assert a * 3 == 6.0
        assert 3 * a == 6.0
        assert a / 4 == 0.5
        assert 1 / a == 0.5
        assert -a == -2.0
        assert abs(ScalarValue(-3)) == 3
        assert float(a) == 2.0

    def test_array_arithmetic(self):
        """Arrays on either side are scaled element-wise."""
        a = ScalarValue(2.0)
        x = np.array([1.0, 2.0, 3.0])

        np.testing.assert_array_equal(a * x, [2.0, 4.0, 6.0])
        np.testing.assert_array_equal(x * a, [2.0, 4.0, 6.0])
        assert isinstance(x * a, np.ndarray)
        assert (x * a).dtype == np.float64

    def test_scalar_with_scalar(self):
        """Two scalars combine through their values."""
        assert ScalarValue(2) * ScalarValue(3) == 6
        assert ScalarValue(2) == ScalarValue(2.0)

    def test_rejects_arrays(self):
        """Array values are not scalars."""
        with pytest.raises(TypeError, match="needs a scalar"):
            ScalarValue(np.ones(3))

    def test_constant_without_rule(self):
        """A scalar without update rule is constant."""
        a = ScalarValue(1.5)
        assert a.is_constant()

        a.update_coefficients(None, None, 3.0)
        assert a.value == 1.5

    def test_update_rule(self):
        """Update rule recomputes the value from (u, p, t)."""
        a = ScalarValue(0.0, update_func=lambda value, u, p, t: p * t)
        assert not a.is_constant()

        a.update_coefficients(None, 2.0, 3.0)
        assert a.value == 6.0

    def test_call_returns_updated_value(self):
        """Calling a scalar updates it and returns the value."""
        a = ScalarValue(0.0, update_func=lambda value, u, p, t: t ** 2)
        assert a(None, None, 3.0) == 9.0

    def test_exact_dtype(self):
        """Fractions are stored exactly."""
        a = ScalarValue(Fraction(1, 3))
        assert a.dtype == np.dtype(object)
        assert a * 3 == 1
