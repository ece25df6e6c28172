"""Base class for linear operators."""

from abc import ABC, abstractmethod
import numbers
import numpy as np
import scipy.linalg
import scipy.sparse as sp
from typing import Any, Optional, Tuple, Union
import logging

from ..exceptions import DimensionMismatch, SingularCoefficient, UnsupportedOperation
from .scalar import ScalarValue

logger = logging.getLogger(__name__)


def is_scalar(value: Any) -> bool:
    """Check whether a value acts as a scalar coefficient."""
    if isinstance(value, (ScalarValue, numbers.Number, np.generic)):
        return True
    return isinstance(value, np.ndarray) and value.ndim == 0


def as_float_matrix(matrix: np.ndarray) -> np.ndarray:
    """Cast exact (object) matrices to float64 for LAPACK-backed routines."""
    if matrix.dtype == np.dtype(object):
        return matrix.astype(np.float64)
    return matrix


def dense_solve(matrix: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Solve ``matrix @ y = b``, in the least-squares sense when not square."""
    matrix = as_float_matrix(np.asarray(matrix))
    b = as_float_matrix(np.asarray(b))
    if matrix.shape[0] == matrix.shape[1]:
        return scipy.linalg.solve(matrix, b)
    solution, _, _, _ = scipy.linalg.lstsq(matrix, b)
    return solution


def matrix_norm(matrix: np.ndarray, p: Union[int, float, str] = 2) -> float:
    """Operator norm of a dense matrix (``p`` in 1, 2, inf or 'fro')."""
    if p not in (1, 2, np.inf, "fro"):
        raise ValueError(f"Unsupported norm order: {p}")
    return float(np.linalg.norm(as_float_matrix(np.asarray(matrix)), ord=p))


class LinearOperator(ABC):
    """
    Abstract base class for lazily composable linear operators.

    Leaf operators implement ``shape``, ``dtype`` and ``apply_into``; every
    other protocol operation has a default that goes through the dense
    matrix, which leaves may override with something cheaper. Arithmetic
    with scalars, arrays and other operators builds composite operators
    (see :mod:`fdops.operators.composite`).
    """

    # Let numpy defer to the reflected operators (x * L, x @ L, x / L)
    __array_ufunc__ = None

    def __init__(self, name: Optional[str] = None):
        """
        Initialize base operator.

        Args:
            name: Human-readable name for the operator
        """
        self.name = name or self.__class__.__name__

    @property
    @abstractmethod
    def shape(self) -> Tuple[int, int]:
        """Logical matrix shape (rows, cols)."""
        pass

    @property
    @abstractmethod
    def dtype(self) -> np.dtype:
        """Scalar storage type of the operator."""
        pass

    @abstractmethod
    def apply_into(self, out: np.ndarray, x: np.ndarray) -> np.ndarray:
        """
        Apply the operator to a vector, writing into a preallocated buffer.

        Args:
            out: Output buffer of length ``shape[0]``
            x: Input vector of length ``shape[1]``

        Returns:
            The output buffer
        """
        pass

    def size(self, dim: Optional[int] = None) -> Union[int, Tuple[int, int]]:
        """Return the shape, or one of its entries (0 = rows, 1 = cols)."""
        if dim is None:
            return self.shape
        return self.shape[dim]

    def children(self) -> tuple:
        """Direct sub-operators and coefficients (empty for leaves)."""
        return ()

    def is_constant(self) -> bool:
        """Whether the operator is independent of the (u, p, t) state."""
        return True

    def update_coefficients(self, u: Any, p: Any, t: Any) -> 'LinearOperator':
        """Push a new (u, p, t) state into mutable coefficients."""
        return self

    # ------------------------------------------------------------------
    # Application

    def _check_input(self, x: np.ndarray, length: int, operation: str) -> None:
        if x.ndim not in (1, 2) or x.shape[0] != length:
            raise DimensionMismatch(
                f"{self.name}: {operation} expects leading dimension {length}, got shape {x.shape}",
                expected=(length,),
                actual=x.shape
            )

    def _result_dtype(self, x: np.ndarray) -> np.dtype:
        return np.result_type(self.dtype, x.dtype)

    def apply(self, x: np.ndarray) -> np.ndarray:
        """
        Apply the operator to a vector or to every column of a matrix.

        Args:
            x: Input vector (length ``shape[1]``) or matrix (``shape[1]`` rows)

        Returns:
            Freshly allocated result
        """
        x = np.asarray(x)
        self._check_input(x, self.shape[1], "apply")

        if x.ndim == 1:
            out = np.empty(self.shape[0], dtype=self._result_dtype(x))
            return self.apply_into(out, x)

        out = np.empty((self.shape[0], x.shape[1]), dtype=self._result_dtype(x))
        for k in range(x.shape[1]):
            self.apply_into(out[:, k], x[:, k])
        return out

    def apply_right(self, x: np.ndarray) -> np.ndarray:
        """Multiply from the right-hand side of a row vector: ``x @ L``."""
        x = np.asarray(x)
        if x.shape[-1] != self.shape[0]:
            raise DimensionMismatch(
                f"{self.name}: right application expects trailing dimension {self.shape[0]}, "
                f"got shape {x.shape}",
                expected=(self.shape[0],),
                actual=x.shape
            )
        return x @ self.to_matrix()

    # ------------------------------------------------------------------
    # Solving

    def solve_into(self, out: np.ndarray, b: np.ndarray) -> np.ndarray:
        """
        Solve ``L y = b`` into a preallocated buffer.

        The default materializes the operator; rectangular operators are
        solved in the least-squares sense.
        """
        out[...] = dense_solve(self.to_matrix(), b)
        return out

    def solve(self, b: np.ndarray) -> np.ndarray:
        """
        Left division ``L \\ b``.

        Args:
            b: Right-hand side vector (length ``shape[0]``) or matrix

        Returns:
            Freshly allocated solution
        """
        b = np.asarray(b)
        self._check_input(b, self.shape[0], "solve")
        dtype = np.result_type(self._result_dtype(b), np.float64)

        if b.ndim == 1:
            out = np.empty(self.shape[1], dtype=dtype)
            return self.solve_into(out, b)

        out = np.empty((self.shape[1], b.shape[1]), dtype=dtype)
        for k in range(b.shape[1]):
            self.solve_into(out[:, k], b[:, k])
        return out

    def rsolve(self, x: np.ndarray) -> np.ndarray:
        """Right division ``x / L``: solve ``y @ L = x`` for the row vector ``y``."""
        x = np.asarray(x)
        return dense_solve(self.to_matrix().T, x.T).T

    def factorize(self) -> 'LinearOperator':
        """
        Precompute a factorization enabling repeated fast solves.

        The default factorizes the materialized matrix.
        """
        from .array import FactorizedOperator
        return FactorizedOperator(self.to_matrix(), name=f"factorize({self.name})")

    # ------------------------------------------------------------------
    # Queries and conversions

    def to_matrix(self) -> np.ndarray:
        """
        Materialize the operator as a dense array.

        The default applies the operator to every unit vector.
        """
        rows, cols = self.shape
        matrix = np.zeros((rows, cols), dtype=self.dtype)
        unit = np.zeros(cols, dtype=self.dtype)
        for j in range(cols):
            unit[j] = 1
            self.apply_into(matrix[:, j], unit)
            unit[j] = 0
        return matrix

    def to_sparse(self) -> sp.csr_matrix:
        """Materialize the operator as a scipy CSR matrix."""
        matrix = self.to_matrix()
        if matrix.dtype == np.dtype(object):
            raise UnsupportedOperation("to_sparse", self, "sparse storage requires a numeric dtype")
        return sp.csr_matrix(matrix)

    def to_banded(self) -> sp.dia_matrix:
        """Materialize the operator in scipy's banded (DIA) storage."""
        return sp.dia_matrix(self.to_sparse())

    def norm(self, p: Union[int, float, str] = 2) -> float:
        """Operator norm (``p`` in 1, 2, inf or 'fro')."""
        return matrix_norm(self.to_matrix(), p)

    def norm_bound(self, p: Union[int, float, str] = 2) -> float:
        """Cheap upper bound on :meth:`norm` built from the expression tree."""
        return self.norm(p)

    def __getitem__(self, key):
        return self.to_matrix()[key]

    def expm(self) -> np.ndarray:
        """Matrix exponential of the materialized operator."""
        rows, cols = self.shape
        if rows != cols:
            raise DimensionMismatch(
                f"{self.name}: matrix exponential needs a square operator, got {self.shape}",
                actual=self.shape
            )
        return scipy.linalg.expm(as_float_matrix(self.to_matrix()))

    def __pow__(self, exponent: int) -> np.ndarray:
        if not isinstance(exponent, numbers.Integral):
            return NotImplemented
        rows, cols = self.shape
        if rows != cols:
            raise DimensionMismatch(
                f"{self.name}: powers need a square operator, got {self.shape}",
                actual=self.shape
            )
        return np.linalg.matrix_power(self.to_matrix(), int(exponent))

    # ------------------------------------------------------------------
    # State-dependent evaluation

    def __call__(self, u: np.ndarray, p: Any, t: Any, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Update coefficients to (u, p, t) and apply the operator to ``u``."""
        from .coefficients import update_coefficients
        update_coefficients(self, u, p, t)
        if out is None:
            return self.apply(u)
        return self.apply_into(out, np.asarray(u))

    def materialize(self, u: Any, p: Any, t: Any) -> np.ndarray:
        """Update coefficients to (u, p, t) and return a dense snapshot."""
        from .coefficients import update_coefficients
        update_coefficients(self, u, p, t)
        return self.to_matrix()

    # ------------------------------------------------------------------
    # Arithmetic

    def __neg__(self) -> 'LinearOperator':
        from .composite import negate
        return negate(self)

    def __pos__(self) -> 'LinearOperator':
        return self

    def __add__(self, other):
        from .composite import add
        if isinstance(other, LinearOperator):
            return add(self, other)
        return NotImplemented

    def __radd__(self, other):
        # sum() starts from 0
        if is_scalar(other) and other == 0:
            return self
        return NotImplemented

    def __sub__(self, other):
        from .composite import subtract
        if isinstance(other, LinearOperator):
            return subtract(self, other)
        return NotImplemented

    def __mul__(self, other):
        from .composite import compose, scale
        if isinstance(other, LinearOperator):
            return compose(self, other)
        if is_scalar(other):
            return scale(other, self)
        if isinstance(other, (np.ndarray, list, tuple)):
            return self.apply(other)
        return NotImplemented

    def __rmul__(self, other):
        from .composite import scale
        if is_scalar(other):
            return scale(other, self)
        if isinstance(other, (np.ndarray, list, tuple)):
            return self.apply_right(other)
        return NotImplemented

    def __matmul__(self, other):
        from .composite import compose
        if isinstance(other, LinearOperator):
            return compose(self, other)
        if isinstance(other, (np.ndarray, list, tuple)):
            return self.apply(other)
        return NotImplemented

    def __rmatmul__(self, other):
        if isinstance(other, (np.ndarray, list, tuple)):
            return self.apply_right(other)
        return NotImplemented

    def __truediv__(self, other):
        from .composite import scale
        if is_scalar(other):
            if other == 0:
                raise SingularCoefficient(f"{self.name}: division by a zero coefficient", other)
            return scale(1 / other, self)
        return NotImplemented

    def __rtruediv__(self, other):
        if isinstance(other, (np.ndarray, list, tuple)):
            return self.rsolve(other)
        return NotImplemented

    def __str__(self) -> str:
        """String representation of the operator."""
        return self.name

    def __repr__(self) -> str:
        """Detailed representation of the operator."""
        return f"{self.__class__.__name__}(name='{self.name}', shape={self.shape})"
