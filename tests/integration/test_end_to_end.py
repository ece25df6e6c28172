"""
End-to-End Integration Tests

Builds discretized differential operators from derivative, boundary and
array operators and checks them against analytic solutions.
"""

import pytest
import numpy as np
import sys
from fractions import Fraction
from pathlib import Path

# Add src directory to path
test_dir = Path(__file__).parent.parent
src_dir = test_dir.parent / 'src'
sys.path.insert(0, str(src_dir))

from fdops import (
    DerivativeOperator, UpwindOperator, Dirichlet0BC, Neumann0BC, PeriodicBC,
    IdentityOperator, ScalarValue, FactorizedOperator, OperatorComposition,
    UnsupportedOperation, set_config, is_constant
)
from fdops.config import create_parallel_config


def interior_grid(n):
    """Interior points of [0, 1] with spacing 1 / (n + 1)."""
    dx = 1.0 / (n + 1)
    return np.arange(1, n + 1) * dx, dx


class TestPoissonProblem:
    """Test solving u'' = f with homogeneous Dirichlet conditions."""

    @pytest.mark.parametrize("approximation_order,tolerance", [(2, 1e-3), (4, 1e-5)])
    def test_sine_solution(self, approximation_order, tolerance):
        """The discrete solution converges to sin(pi x)."""
        n = 60
        x, dx = interior_grid(n)
        L = DerivativeOperator(2, approximation_order, dx, n) * Dirichlet0BC(n)

        assert isinstance(L, OperatorComposition)
        assert L.shape == (n, n)

        f = -np.pi ** 2 * np.sin(np.pi * x)
        u = L.solve(f)
        error = np.max(np.abs(u - np.sin(np.pi * x)))
        assert error < tolerance

    def test_higher_order_is_more_accurate(self):
        """Fourth-order stencils beat second-order ones on the same grid."""
        n = 40
        x, dx = interior_grid(n)
        f = -np.pi ** 2 * np.sin(np.pi * x)
        exact = np.sin(np.pi * x)

        errors = []
        for order in (2, 4):
            L = DerivativeOperator(2, order, dx, n) * Dirichlet0BC(n)
            errors.append(np.max(np.abs(L.solve(f) - exact)))
        assert errors[1] < errors[0] / 10

    def test_factorization_reused(self):
        """One factorization serves many right-hand sides."""
        n = 30
        x, dx = interior_grid(n)
        L = DerivativeOperator(2, 2, dx, n) * Dirichlet0BC(n)
        F = L.factorize()

        assert isinstance(F, FactorizedOperator)
        for k in (1, 2, 3):
            f = -(k * np.pi) ** 2 * np.sin(k * np.pi * x)
            np.testing.assert_allclose(F.solve(f), L.solve(f), rtol=1e-10, atol=1e-12)

    def test_bare_derivative_cannot_solve(self):
        """Without boundary closure the system is rectangular."""
        n = 10
        D = DerivativeOperator(2, 2, 0.1, n)
        with pytest.raises(UnsupportedOperation):
            D.solve(np.ones(n))

    def test_sparse_assembly(self):
        """Sparse assembly of the closed operator is tridiagonal."""
        n = 8
        L = DerivativeOperator(2, 2, 1.0, n) * Dirichlet0BC(n)
        expected = -2 * np.eye(n) + np.eye(n, k=1) + np.eye(n, k=-1)

        np.testing.assert_array_equal(L.to_matrix(), expected)
        np.testing.assert_array_equal(L.to_sparse().toarray(), expected)


class TestHeatEquation:
    """Test implicit time stepping of u_t = u_xx."""

    def test_backward_euler_decay(self):
        """The fundamental mode decays at rate pi^2."""
        n = 50
        x, dx = interior_grid(n)
        dt = 1e-3
        steps = 100

        A = DerivativeOperator(2, 2, dx, n) * Dirichlet0BC(n)
        stepper = (IdentityOperator(n) - dt * A).factorize()

        u = np.sin(np.pi * x)
        for _ in range(steps):
            u = stepper.solve(u)

        expected = np.exp(-np.pi ** 2 * dt * steps) * np.sin(np.pi * x)
        np.testing.assert_allclose(u, expected, rtol=2e-2, atol=1e-4)

    def test_time_dependent_diffusivity(self):
        """A scalar coefficient updated from t scales the operator."""
        n = 20
        x, dx = interior_grid(n)
        kappa = ScalarValue(1.0, update_func=lambda value, u, p, t: 1.0 + t)
        L = kappa * (DerivativeOperator(2, 2, dx, n) * Dirichlet0BC(n))
        u = np.sin(np.pi * x)

        assert not is_constant(L)
        base = (DerivativeOperator(2, 2, dx, n) * Dirichlet0BC(n)) * u
        np.testing.assert_allclose(L(u, None, 0.5), 1.5 * base)
        np.testing.assert_allclose(L(u, None, 2.0), 3.0 * base)


class TestOtherBoundaries:
    """Test Neumann and periodic closures."""

    def test_neumann_annihilates_constants(self):
        """Constants are in the null space of the Neumann Laplacian."""
        n = 16
        L = DerivativeOperator(2, 2, 0.1, n) * Neumann0BC(n)
        np.testing.assert_allclose(L * np.ones(n), np.zeros(n), atol=1e-10)

    def test_periodic_first_derivative(self):
        """Centered differences of sin on a periodic grid give cos."""
        n = 64
        h = 2 * np.pi / n
        x = np.arange(n) * h
        L = DerivativeOperator(1, 2, h, n) * PeriodicBC(n)

        np.testing.assert_allclose(L * np.sin(x), np.cos(x), atol=h ** 2)


class TestUpwindAdvection:
    """Test upwind discretization of c(x) u_x."""

    def test_directions_follow_velocity(self):
        """Rows with positive velocity use backward differences."""
        n = 12
        dx = 0.5
        velocity = np.where(np.arange(n) < n // 2, 1.0, -1.0)
        U = UpwindOperator(1, 1, dx, n, update_func=lambda directions, u, p, t: p > 0)
        L = U * PeriodicBC(n)
        u = np.arange(n, dtype=float) ** 2

        result = L(u, velocity, 0.0)

        padded = np.concatenate([[u[-1]], u, [u[0]]])
        backward = (padded[1:-1] - padded[:-2]) / dx
        forward = (padded[2:] - padded[1:-1]) / dx
        np.testing.assert_allclose(result, np.where(velocity > 0, backward, forward))

    def test_parallel_configuration(self):
        """Thread-pool upwinding matches serial upwinding on a long grid."""
        n = 5000
        rng = np.random.default_rng(7)
        directions = rng.random(n) > 0.5
        x = rng.standard_normal(n + 2)
        serial = UpwindOperator(1, 2, 0.01, n, directions=directions).apply(x)

        previous = set_config(create_parallel_config(workers=4))
        try:
            parallel = UpwindOperator(1, 2, 0.01, n, directions=directions).apply(x)
        finally:
            set_config(previous)

        np.testing.assert_allclose(parallel, serial, rtol=1e-12, atol=1e-12)


class TestExactArithmetic:
    """Test rational arithmetic through composed operators."""

    def test_exact_second_difference(self):
        """A quadratic vanishing at the ghost points has an exact constant Laplacian."""
        n = 9
        dx = Fraction(1, n + 1)
        L = DerivativeOperator(2, 2, dx, n, dtype="exact") * Dirichlet0BC(n, dtype=object)
        u = np.array([Fraction(i * (n + 1 - i)) for i in range(1, n + 1)], dtype=object)

        result = L * u
        assert all(value == -2 * (n + 1) ** 2 for value in result)
