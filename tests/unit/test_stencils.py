"""Unit tests for finite-difference stencil weights."""

import numpy as np
import pytest
import sys
from fractions import Fraction
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from fdops.operators.stencils import (
    calculate_weights, centered_stencil_lengths, centered_coefficients,
    one_sided_coefficients, stencil_weights
)


class TestCalculateWeights:
    """Test cases for Fornberg weights."""

    def test_second_derivative_three_point(self):
        """Classic 1, -2, 1 stencil."""
        weights = calculate_weights(2, Fraction(0), [Fraction(-1), Fraction(0), Fraction(1)])
        assert weights == [1, -2, 1]

    def test_first_derivative_central(self):
        """Central first derivative is (-1/2, 0, 1/2)."""
        weights = calculate_weights(1, Fraction(0), [Fraction(k) for k in (-1, 0, 1)])
        assert weights == [Fraction(-1, 2), 0, Fraction(1, 2)]

    def test_fourth_order_second_derivative(self):
        """Five-point second derivative."""
        weights = calculate_weights(2, Fraction(0), [Fraction(k) for k in range(-2, 3)])
        assert weights == [Fraction(-1, 12), Fraction(4, 3), Fraction(-5, 2), Fraction(4, 3), Fraction(-1, 12)]

    def test_one_sided_first_derivative(self):
        """Second-order forward difference (-3/2, 2, -1/2)."""
        weights = calculate_weights(1, Fraction(0), [Fraction(k) for k in range(3)])
        assert weights == [Fraction(-3, 2), 2, Fraction(-1, 2)]

    def test_interpolation_weights(self):
        """Order zero at a node selects that node."""
        weights = calculate_weights(0, 1.0, [0.0, 1.0, 2.0])
        np.testing.assert_allclose(weights, [0.0, 1.0, 0.0], atol=1e-15)

    def test_float_matches_exact(self):
        """Floating point weights agree with exact ones."""
        exact = calculate_weights(3, Fraction(1), [Fraction(k) for k in range(6)])
        approx = calculate_weights(3, 1.0, [float(k) for k in range(6)])
        np.testing.assert_allclose(approx, [float(w) for w in exact], rtol=1e-12, atol=1e-12)

    def test_polynomial_exactness(self):
        """Weights differentiate polynomials of degree < number of nodes exactly."""
        nodes = [Fraction(k) for k in range(-2, 4)]
        x0 = Fraction(1, 2)
        weights = calculate_weights(2, x0, nodes)
        # f = x^4 -> f'' = 12 x^2
        assert sum(w * x ** 4 for w, x in zip(weights, nodes)) == 12 * x0 ** 2

    def test_too_few_nodes(self):
        """Derivative order must be below the number of nodes."""
        with pytest.raises(ValueError, match="at least 3 nodes"):
            calculate_weights(2, 0.0, [0.0, 1.0])


class TestStencilLayout:
    """Test cases for centered and one-sided stencil layouts."""

    @pytest.mark.parametrize("d,a,expected", [
        (2, 2, (3, 4, 0)),
        (1, 2, (3, 3, 0)),
        (1, 4, (5, 5, 1)),
        (4, 4, (7, 8, 2)),
        (8, 8, (15, 16, 6)),
    ])
    def test_centered_lengths(self, d, a, expected):
        """Stencil, boundary stencil and boundary row counts."""
        assert centered_stencil_lengths(d, a) == expected

    def test_centered_coefficients_shapes(self):
        """Boundary rows have the boundary stencil length."""
        stencil, low, high = centered_coefficients(4, 4, np.float64)
        assert stencil.shape == (7,)
        assert len(low) == len(high) == 2
        assert all(row.shape == (8,) for row in low + high)

    def test_high_boundary_mirrors_low(self):
        """Right rows are reflected left rows with sign (-1)^d."""
        _, low, high = centered_coefficients(1, 4, np.dtype(object))
        assert list(high[0]) == [-w for w in low[0][::-1]]

        _, low, high = centered_coefficients(4, 4, np.dtype(object))
        assert list(high[0]) == list(low[1][::-1])
        assert list(high[1]) == list(low[0][::-1])

    def test_one_sided_coefficients(self):
        """Forward and backward first-order differences."""
        up, down = one_sided_coefficients(1, 2, np.float64)
        np.testing.assert_allclose(up, [-1.0, 1.0])
        np.testing.assert_allclose(down, [-1.0, 1.0])

    def test_stencil_weights_dtype(self):
        """Weights are stored in the requested dtype."""
        weights = stencil_weights(2, 0, range(-1, 2), np.float32)
        assert weights.dtype == np.float32

        exact = stencil_weights(2, 0, range(-1, 2), np.dtype(object))
        assert exact.dtype == np.dtype(object)
        assert isinstance(exact[0], Fraction)
