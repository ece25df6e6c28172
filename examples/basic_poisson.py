"""
Basic example: Solve the 1D Poisson equation with composed operators.

Problem: u'' = f on (0, 1)
         u(0) = u(1) = 0

Exact solution: u(x) = sin(πx)
RHS: f(x) = -π²sin(πx)
"""

import numpy as np
import time
import sys
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fdops import DerivativeOperator, Dirichlet0BC, FDOpsConfig


def solve(n, approximation_order):
    """Solve on ``n`` interior points and return the max-norm error and timing."""
    dx = 1.0 / (n + 1)
    x = np.arange(1, n + 1) * dx

    # N x (N+2) derivative after the (N+2) x N ghost padding
    laplacian = DerivativeOperator(2, approximation_order, dx, n) * Dirichlet0BC(n)

    rhs = -np.pi**2 * np.sin(np.pi * x)
    start = time.perf_counter()
    factorization = laplacian.factorize()
    solution = factorization.solve(rhs)
    elapsed = time.perf_counter() - start

    error = np.max(np.abs(solution - np.sin(np.pi * x)))
    return error, elapsed, laplacian


def main():
    """Run a grid refinement study for several approximation orders."""

    print("=" * 60)
    print("Finite-Difference Operators - Poisson 1D Example")
    print("=" * 60)

    config = FDOpsConfig()
    config.logging.level = "WARNING"
    config.setup_logging()

    sizes = [16, 32, 64, 128]
    results = {}

    for order in (2, 4, 6):
        print(f"\nApproximation order {order}:")
        errors = []
        for n in sizes:
            error, elapsed, laplacian = solve(n, order)
            errors.append(error)
            print(f"  N={n:4d}  max error={error:.2e}  solve time={elapsed:.3f}s")

        rates = [np.log2(errors[i] / errors[i + 1]) for i in range(len(errors) - 1)]
        print(f"  Observed convergence rates: {', '.join(f'{r:.2f}' for r in rates)}")
        results[order] = errors

    print("\nOperator structure for the last grid:")
    print(f"  {laplacian}")
    print(f"  shape={laplacian.shape}, stages={len(laplacian.ops)}")

    return results


if __name__ == "__main__":
    results = main()
