"""Finite-difference derivative operators on regular 1-D grids."""

import numpy as np
import scipy.sparse as sp
from typing import Any, Callable, Optional, Sequence, Tuple, Union
import logging

from .base import LinearOperator
from .convolution import apply_derivative, apply_upwind
from .stencils import (
    centered_coefficients, centered_stencil_lengths, one_sided_coefficients,
    stencil_weights, mirror_boundary_coefficients
)
from ..core.precision import resolve_dtype, scalar_type, convert_array
from ..exceptions import DimensionMismatch, GridTooSmall, UnsupportedOperation

logger = logging.getLogger(__name__)


class StencilOperator(LinearOperator):
    """
    Common layout of stencil-based operators on a ghost-padded grid.

    Maps N + 2 samples (N interior points plus one ghost value on each side)
    to N outputs, so the logical shape is ``(N, N + 2)``. Subclasses define
    which padded columns each output row touches through ``_row_entries``;
    coefficients assume unit spacing and are rescaled by
    ``1 / dx**derivative_order``.
    """

    def _assign(
        self,
        derivative_order: int,
        approximation_order: int,
        dx: Any,
        dimension: int,
        dtype: np.dtype,
        stencil_length: int,
        boundary_stencil_length: int,
        low_boundary_coefs: Tuple[np.ndarray, ...],
        high_boundary_coefs: Tuple[np.ndarray, ...]
    ) -> None:
        if dx <= 0:
            raise ValueError(f"Grid spacing must be positive, got {dx}")

        make = scalar_type(dtype)
        self.derivative_order = derivative_order
        self.approximation_order = approximation_order
        self.dx = make(dx)
        self.dimension = dimension
        self._dtype = np.dtype(dtype)
        self.stencil_length = stencil_length
        self.boundary_point_count = len(low_boundary_coefs)
        self.boundary_stencil_length = boundary_stencil_length
        self.low_boundary_coefs = tuple(low_boundary_coefs)
        self.high_boundary_coefs = tuple(high_boundary_coefs)
        self.scale = 1 / self.dx ** derivative_order

        logger.debug(f"Created {self.name}: dx={dx}, stencil={stencil_length}, "
                     f"boundary rows={self.boundary_point_count}, dtype={self._dtype}")

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.dimension, self.dimension + 2)

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    def _row_entries(self, i: int) -> Tuple[int, np.ndarray]:
        """First padded column touched by output row ``i`` and its unit-spacing weights."""
        raise NotImplementedError

    def _boundary_row_entries(self, i: int) -> Optional[Tuple[int, np.ndarray]]:
        n = self.dimension
        bpc = self.boundary_point_count
        if i < bpc:
            return 0, self.low_boundary_coefs[i]
        if i >= n - bpc:
            return n + 2 - self.boundary_stencil_length, self.high_boundary_coefs[i - (n - bpc)]
        return None

    def to_matrix(self) -> np.ndarray:
        matrix = np.zeros(self.shape, dtype=self._dtype)
        for i in range(self.dimension):
            start, coefs = self._row_entries(i)
            matrix[i, start:start + len(coefs)] = coefs
        return matrix * self.scale

    def to_sparse(self) -> sp.csr_matrix:
        if self._dtype == np.dtype(object):
            raise UnsupportedOperation("to_sparse", self, "sparse storage requires a numeric dtype")

        rows, cols, data = [], [], []
        for i in range(self.dimension):
            start, coefs = self._row_entries(i)
            rows.extend([i] * len(coefs))
            cols.extend(range(start, start + len(coefs)))
            data.extend(coefs * self.scale)
        return sp.csr_matrix((data, (rows, cols)), shape=self.shape, dtype=self._dtype)

    def __getitem__(self, key):
        if isinstance(key, tuple) and len(key) == 2 and all(isinstance(k, (int, np.integer)) for k in key):
            i = _normalize_index(key[0], self.shape[0])
            j = _normalize_index(key[1], self.shape[1])
            start, coefs = self._row_entries(i)
            if start <= j < start + len(coefs):
                return coefs[j - start] * self.scale
            return np.zeros(1, dtype=self._dtype)[0]
        return self.to_matrix()[key]

    # Rectangular: no inverse of its own

    def solve_into(self, out: np.ndarray, b: np.ndarray) -> np.ndarray:
        raise UnsupportedOperation(
            "solve", self, "the operator is N x (N+2); compose it with a boundary operator first"
        )

    def rsolve(self, x: np.ndarray) -> np.ndarray:
        raise UnsupportedOperation(
            "right division", self, "the operator is N x (N+2); compose it with a boundary operator first"
        )

    def factorize(self) -> LinearOperator:
        raise UnsupportedOperation(
            "factorize", self, "the operator is N x (N+2); compose it with a boundary operator first"
        )


class DerivativeOperator(StencilOperator):
    """
    Centered finite-difference approximation of ``d^k/dx^k``.

    Interior rows use a centered stencil; the first and last
    ``boundary_point_count`` rows use one-sided boundary stencils.
    Coefficients are derived once at construction and never change.
    """

    def __init__(
        self,
        derivative_order: int,
        approximation_order: int,
        dx: Any,
        dimension: int,
        dtype: Optional[Union[np.dtype, type, str]] = None,
        name: Optional[str] = None
    ):
        """
        Initialize derivative operator.

        Args:
            derivative_order: Order of the derivative (>= 1)
            approximation_order: Order of accuracy of the interior stencil (>= 1)
            dx: Grid spacing (> 0)
            dimension: Number of interior grid points N
            dtype: Scalar storage ('float32', 'float64', 'exact'; default: active configuration)
            name: Human-readable name for the operator
        """
        _check_orders(derivative_order, approximation_order)
        dtype = resolve_dtype(dtype)
        stencil_length, boundary_stencil_length, _ = centered_stencil_lengths(
            derivative_order, approximation_order
        )
        if dimension < stencil_length:
            raise GridTooSmall(dimension, stencil_length)

        stencil_coefs, low, high = centered_coefficients(derivative_order, approximation_order, dtype)

        super().__init__(name or f"D{derivative_order}(approx={approximation_order}, N={dimension})")
        self._setup(derivative_order, approximation_order, dx, dimension, dtype,
                    stencil_coefs, low, high, boundary_stencil_length)

    @classmethod
    def from_coefficients(
        cls,
        derivative_order: int,
        approximation_order: int,
        dx: Any,
        dimension: int,
        stencil_coefs: Sequence[Any],
        low_boundary_coefs: Sequence[Sequence[Any]],
        high_boundary_coefs: Sequence[Sequence[Any]],
        dtype: Optional[Union[np.dtype, type, str]] = None,
        name: Optional[str] = None
    ) -> 'DerivativeOperator':
        """
        Build a derivative operator from precomputed unit-spacing coefficients.

        Args:
            derivative_order: Order of the derivative
            approximation_order: Nominal order of accuracy
            dx: Grid spacing
            dimension: Number of interior grid points N
            stencil_coefs: Interior stencil (odd length)
            low_boundary_coefs: One row per left boundary row
            high_boundary_coefs: One row per right boundary row
            dtype: Scalar storage (default: active configuration)
            name: Human-readable name for the operator
        """
        _check_orders(derivative_order, approximation_order)
        dtype = resolve_dtype(dtype)
        low = tuple(convert_array(np.asarray(row), dtype) for row in low_boundary_coefs)
        high = tuple(convert_array(np.asarray(row), dtype) for row in high_boundary_coefs)
        boundary_stencil_length = len(low[0]) if low else 0

        op = cls.__new__(cls)
        LinearOperator.__init__(op, name or f"D{derivative_order}(custom, N={dimension})")
        op._setup(derivative_order, approximation_order, dx, dimension, dtype,
                  convert_array(np.asarray(stencil_coefs), dtype), low, high, boundary_stencil_length)
        return op

    def _setup(
        self,
        derivative_order: int,
        approximation_order: int,
        dx: Any,
        dimension: int,
        dtype: np.dtype,
        stencil_coefs: np.ndarray,
        low_boundary_coefs: Tuple[np.ndarray, ...],
        high_boundary_coefs: Tuple[np.ndarray, ...],
        boundary_stencil_length: int
    ) -> None:
        stencil_length = len(stencil_coefs)
        if stencil_length % 2 != 1:
            raise ValueError(f"Interior stencil length must be odd, got {stencil_length}")
        if dimension < stencil_length:
            raise GridTooSmall(dimension, stencil_length)
        if len(low_boundary_coefs) != len(high_boundary_coefs):
            raise ValueError("Left and right boundaries must have the same number of rows")

        boundary_point_count = len(low_boundary_coefs)
        rows = list(low_boundary_coefs) + list(high_boundary_coefs)
        if any(len(row) != boundary_stencil_length for row in rows):
            raise ValueError(f"All boundary rows must have length {boundary_stencil_length}")
        if boundary_point_count < stencil_length // 2 - 1:
            raise ValueError(
                f"{boundary_point_count} boundary rows cannot cover a stencil of length {stencil_length}"
            )
        if boundary_stencil_length > dimension + 2 or 2 * boundary_point_count > dimension:
            raise GridTooSmall(dimension, max(boundary_stencil_length - 2, 2 * boundary_point_count))

        self.stencil_coefs = stencil_coefs
        self._assign(derivative_order, approximation_order, dx, dimension, dtype, stencil_length,
                     boundary_stencil_length, low_boundary_coefs, high_boundary_coefs)

    def apply_into(self, out: np.ndarray, x: np.ndarray) -> np.ndarray:
        return apply_derivative(out, x, self)

    def _row_entries(self, i: int) -> Tuple[int, np.ndarray]:
        entries = self._boundary_row_entries(i)
        if entries is not None:
            return entries
        return i + 1 - self.stencil_length // 2, self.stencil_coefs


class UpwindOperator(StencilOperator):
    """
    One-sided (upwind) finite-difference derivative.

    Every interior row uses either the forward ("up") stencil or the
    backward ("down") stencil, selected by a boolean ``directions`` flag per
    output row (True selects backward). Boundary rows, where one of the two
    would leave the padded grid, use one-sided boundary stencils of the same
    width. An optional ``update_func(directions, u, p, t)`` recomputes the
    flags from the state.
    """

    def __init__(
        self,
        derivative_order: int,
        approximation_order: int,
        dx: Any,
        dimension: int,
        directions: Optional[Sequence[bool]] = None,
        update_func: Optional[Callable[[np.ndarray, Any, Any, Any], Optional[np.ndarray]]] = None,
        dtype: Optional[Union[np.dtype, type, str]] = None,
        name: Optional[str] = None
    ):
        """
        Initialize upwind operator.

        Args:
            derivative_order: Order of the derivative (>= 1)
            approximation_order: Order of accuracy of the one-sided stencils (>= 1)
            dx: Grid spacing (> 0)
            dimension: Number of interior grid points N
            directions: Per-row flags, True for the backward stencil (default: all forward)
            update_func: Optional rule recomputing the flags from (u, p, t)
            dtype: Scalar storage (default: active configuration)
            name: Human-readable name for the operator
        """
        _check_orders(derivative_order, approximation_order)
        dtype = resolve_dtype(dtype)

        stencil_length = derivative_order + approximation_order
        boundary_point_count = stencil_length - 2
        required = max(stencil_length, 2 * boundary_point_count)
        if dimension < required:
            raise GridTooSmall(dimension, required)

        up, down = one_sided_coefficients(derivative_order, stencil_length, dtype)
        low = tuple(
            stencil_weights(derivative_order, i, range(stencil_length), dtype)
            for i in range(1, boundary_point_count + 1)
        )
        high = mirror_boundary_coefficients(low, derivative_order)

        super().__init__(name or f"Upwind{derivative_order}(approx={approximation_order}, N={dimension})")
        self.up_stencil_coefs = up
        self.down_stencil_coefs = down
        self.update_func = update_func
        self._assign(derivative_order, approximation_order, dx, dimension, dtype,
                     stencil_length, stencil_length, low, high)
        self.directions = self._check_directions(
            np.zeros(dimension, dtype=bool) if directions is None else directions
        )

    def _check_directions(self, directions: Sequence[bool]) -> np.ndarray:
        directions = np.array(directions, dtype=bool)
        if directions.shape != (self.dimension,):
            raise DimensionMismatch(
                f"{self.name}: expected {self.dimension} direction flags, got shape {directions.shape}",
                expected=(self.dimension,),
                actual=directions.shape
            )
        # Shared read-only by the worker threads
        directions.setflags(write=False)
        return directions

    def set_directions(self, directions: Sequence[bool]) -> None:
        """Replace the per-row stencil selection."""
        self.directions = self._check_directions(directions)

    def is_constant(self) -> bool:
        return self.update_func is None

    def update_coefficients(self, u: Any, p: Any, t: Any) -> 'UpwindOperator':
        if self.update_func is None:
            return self
        result = self.update_func(self.directions.copy(), u, p, t)
        if result is not None:
            self.set_directions(result)
        logger.debug(f"Updated upwind directions of {self.name} at t={t!r}")
        return self

    def apply_into(self, out: np.ndarray, x: np.ndarray) -> np.ndarray:
        return apply_upwind(out, x, self)

    def _row_entries(self, i: int) -> Tuple[int, np.ndarray]:
        entries = self._boundary_row_entries(i)
        if entries is not None:
            return entries
        if self.directions[i]:
            return i + 2 - self.stencil_length, self.down_stencil_coefs
        return i + 1, self.up_stencil_coefs


def _check_orders(derivative_order: int, approximation_order: int) -> None:
    if derivative_order < 1:
        raise ValueError(f"Derivative order must be at least 1, got {derivative_order}")
    if approximation_order < 1:
        raise ValueError(f"Approximation order must be at least 1, got {approximation_order}")


def _normalize_index(index: int, length: int) -> int:
    index = int(index)
    if index < 0:
        index += length
    if not 0 <= index < length:
        raise IndexError(f"Index {index} out of range for dimension of length {length}")
    return index
