"""
Finite-difference stencil weights.

Weights come from Fornberg's recursion (B. Fornberg, "Generation of finite
difference formulas on arbitrarily spaced grids", Math. Comp. 51, 1988),
evaluated either in floating point or in exact rational arithmetic.
"""

import numpy as np
from fractions import Fraction
from typing import Any, List, Sequence, Tuple, Union
import logging

from ..core.precision import scalar_type

logger = logging.getLogger(__name__)


def calculate_weights(order: int, x0: Any, x: Sequence[Any]) -> List[Any]:
    """
    Weights ``w`` such that ``sum(w[j] * f(x[j]))`` approximates the
    ``order``-th derivative of ``f`` at ``x0``.

    Arithmetic is carried out in the type of the inputs, so passing
    ``Fraction`` nodes gives exact weights.

    Args:
        order: Derivative order (0 gives interpolation weights)
        x0: Evaluation point
        x: Distinct stencil nodes

    Returns:
        List of ``len(x)`` weights
    """
    n = len(x)
    if order < 0:
        raise ValueError(f"Derivative order must be non-negative, got {order}")
    if n <= order:
        raise ValueError(f"Need at least {order + 1} nodes for derivative order {order}, got {n}")

    zero = x0 - x0
    one = zero + 1

    # c[j][k]: weight of node j for the k-th derivative
    c = [[zero] * (order + 1) for _ in range(n)]
    c[0][0] = one
    c1 = one
    c4 = x[0] - x0

    for i in range(1, n):
        mn = min(i, order)
        c2 = one
        c5 = c4
        c4 = x[i] - x0
        for j in range(i):
            c3 = x[i] - x[j]
            c2 = c2 * c3
            if j == i - 1:
                for k in range(mn, 0, -1):
                    c[i][k] = c1 * (k * c[i - 1][k - 1] - c5 * c[i - 1][k]) / c2
                c[i][0] = -c1 * c5 * c[i - 1][0] / c2
            for k in range(mn, 0, -1):
                c[j][k] = (c4 * c[j][k] - k * c[j][k - 1]) / c3
            c[j][0] = c4 * c[j][0] / c3
        c1 = c2

    return [c[j][order] for j in range(n)]


def _working_type(dtype: np.dtype):
    # Exact storage derives weights with Fractions; everything else in double
    if np.dtype(dtype) == np.dtype(object):
        return Fraction
    return float


def stencil_weights(order: int, x0: int, nodes: Sequence[int], dtype: Union[np.dtype, type, str]) -> np.ndarray:
    """
    Weights on integer-offset nodes (unit spacing) stored in ``dtype``.

    Args:
        order: Derivative order
        x0: Evaluation offset
        nodes: Integer node offsets
        dtype: Storage dtype of the result

    Returns:
        1-D array of weights
    """
    make = _working_type(dtype)
    weights = calculate_weights(order, make(x0), [make(node) for node in nodes])
    store = scalar_type(dtype)
    return np.array([store(w) for w in weights], dtype=dtype)


def centered_stencil_lengths(derivative_order: int, approximation_order: int) -> Tuple[int, int, int]:
    """
    Stencil geometry of a centered derivative operator on a ghost-padded grid.

    Returns:
        ``(stencil_length, boundary_stencil_length, boundary_point_count)``
    """
    total = derivative_order + approximation_order
    stencil_length = total - 1 + total % 2
    boundary_stencil_length = total
    # -1 for the ghost point: the last boundary-affected row already reaches it
    boundary_point_count = stencil_length // 2 - 1
    return stencil_length, boundary_stencil_length, boundary_point_count


def centered_coefficients(
    derivative_order: int,
    approximation_order: int,
    dtype: Union[np.dtype, type, str]
) -> Tuple[np.ndarray, Tuple[np.ndarray, ...], Tuple[np.ndarray, ...]]:
    """
    Interior and boundary weights of a centered derivative operator.

    The interior stencil is centered on ``-mid..mid``. Low boundary row ``i``
    (counting from 1) evaluates at offset ``i`` of the one-sided window
    ``0..boundary_stencil_length-1``; high boundary rows mirror the low ones
    with the sign ``(-1)**derivative_order``.

    Returns:
        ``(stencil_coefs, low_boundary_coefs, high_boundary_coefs)``
    """
    stencil_length, boundary_stencil_length, boundary_point_count = centered_stencil_lengths(
        derivative_order, approximation_order
    )
    mid = stencil_length // 2

    stencil_coefs = stencil_weights(derivative_order, 0, range(-mid, mid + 1), dtype)
    boundary_nodes = range(boundary_stencil_length)
    low = tuple(
        stencil_weights(derivative_order, i, boundary_nodes, dtype)
        for i in range(1, boundary_point_count + 1)
    )
    high = mirror_boundary_coefficients(low, derivative_order)

    logger.debug(f"Derived centered stencil: d={derivative_order}, a={approximation_order}, "
                 f"length={stencil_length}, boundary rows={boundary_point_count}")
    return stencil_coefs, low, high


def mirror_boundary_coefficients(low: Sequence[np.ndarray], derivative_order: int) -> Tuple[np.ndarray, ...]:
    """Right-boundary rows obtained by reflecting the left-boundary rows."""
    sign = -1 if derivative_order % 2 else 1
    return tuple(row[::-1] * sign for row in reversed(low))


def one_sided_coefficients(
    derivative_order: int,
    stencil_length: int,
    dtype: Union[np.dtype, type, str]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Forward ("up") and backward ("down") one-sided weights evaluated at 0.

    Returns:
        ``(up_stencil_coefs, down_stencil_coefs)`` on nodes
        ``0..stencil_length-1`` and ``-(stencil_length-1)..0``
    """
    up = stencil_weights(derivative_order, 0, range(stencil_length), dtype)
    down = stencil_weights(derivative_order, 0, range(-(stencil_length - 1), 1), dtype)
    return up, down
