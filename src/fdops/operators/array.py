"""Array-backed leaf operators."""

import numpy as np
import scipy.linalg
import scipy.sparse as sp
from typing import Any, Callable, Optional, Tuple, Union
import logging

from .base import LinearOperator, as_float_matrix, dense_solve, matrix_norm
from ..exceptions import DimensionMismatch
from ..utils.logging_utils import log_function_call

logger = logging.getLogger(__name__)


class ArrayOperator(LinearOperator):
    """
    Dense matrix leaf with an optional state-dependent update rule.

    ``update_func(A, u, p, t)`` may fill ``A`` in place or return a new
    array of the same shape.
    """

    def __init__(
        self,
        A: np.ndarray,
        update_func: Optional[Callable[[np.ndarray, Any, Any, Any], Optional[np.ndarray]]] = None,
        name: Optional[str] = None
    ):
        """
        Initialize array operator.

        Args:
            A: Two-dimensional array (kept by reference, not copied)
            update_func: Optional update rule
            name: Human-readable name for the operator
        """
        A = np.asarray(A)
        if A.ndim != 2:
            raise DimensionMismatch(f"ArrayOperator needs a 2-D array, got shape {A.shape}", actual=A.shape)

        super().__init__(name or f"ArrayOperator{A.shape}")
        self.A = A
        self.update_func = update_func

        logger.debug(f"Created {self.name}, constant={self.is_constant()}")

    @property
    def shape(self) -> Tuple[int, int]:
        return self.A.shape

    @property
    def dtype(self) -> np.dtype:
        return self.A.dtype

    def is_constant(self) -> bool:
        return self.update_func is None

    def update_coefficients(self, u: Any, p: Any, t: Any) -> 'ArrayOperator':
        if self.update_func is None:
            return self

        result = self.update_func(self.A, u, p, t)
        if result is not None and result is not self.A:
            result = np.asarray(result)
            if result.shape != self.A.shape:
                raise DimensionMismatch(
                    f"{self.name}: update rule returned shape {result.shape}, expected {self.A.shape}",
                    expected=self.A.shape,
                    actual=result.shape
                )
            self.A = result

        logger.debug(f"Updated {self.name} at t={t!r}")
        return self

    def apply_into(self, out: np.ndarray, x: np.ndarray) -> np.ndarray:
        out[...] = self.A @ x
        return out

    def apply_right(self, x: np.ndarray) -> np.ndarray:
        return np.asarray(x) @ self.A

    def solve_into(self, out: np.ndarray, b: np.ndarray) -> np.ndarray:
        out[...] = dense_solve(self.A, b)
        return out

    def rsolve(self, x: np.ndarray) -> np.ndarray:
        return dense_solve(self.A.T, np.asarray(x).T).T

    def factorize(self) -> 'FactorizedOperator':
        return FactorizedOperator(self.A, name=f"factorize({self.name})")

    def to_matrix(self) -> np.ndarray:
        return self.A.copy()

    def norm(self, p: Union[int, float, str] = 2) -> float:
        return matrix_norm(self.A, p)

    def __getitem__(self, key):
        return self.A[key]


class IdentityOperator(LinearOperator):
    """Identity on vectors of length ``n``."""

    def __init__(self, n: int, dtype: Union[np.dtype, type, str] = np.float64):
        if n < 1:
            raise ValueError(f"Identity size must be positive, got {n}")
        super().__init__(f"I({n})")
        self.n = n
        self._dtype = np.dtype(dtype)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.n, self.n)

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    def apply_into(self, out: np.ndarray, x: np.ndarray) -> np.ndarray:
        out[...] = x
        return out

    def apply_right(self, x: np.ndarray) -> np.ndarray:
        return np.array(x, copy=True)

    def solve_into(self, out: np.ndarray, b: np.ndarray) -> np.ndarray:
        out[...] = b
        return out

    def rsolve(self, x: np.ndarray) -> np.ndarray:
        return np.array(x, copy=True)

    def factorize(self) -> 'IdentityOperator':
        return self

    def to_matrix(self) -> np.ndarray:
        return np.eye(self.n, dtype=self._dtype)

    def to_sparse(self) -> sp.csr_matrix:
        return sp.identity(self.n, dtype=self._dtype, format="csr")

    def norm(self, p: Union[int, float, str] = 2) -> float:
        if p not in (1, 2, np.inf, "fro"):
            raise ValueError(f"Unsupported norm order: {p}")
        return float(np.sqrt(self.n)) if p == "fro" else 1.0

    def __getitem__(self, key):
        if isinstance(key, tuple) and len(key) == 2 and all(isinstance(k, (int, np.integer)) for k in key):
            i, j = (int(k) % self.n for k in key)
            return self._dtype.type(1) if i == j else self._dtype.type(0)
        return self.to_matrix()[key]


class FactorizedOperator(LinearOperator):
    """
    Precomputed factorization of a dense matrix.

    Square matrices are LU-factorized; rectangular ones keep an economic QR
    factorization and solve in the least-squares (tall) or minimum-norm
    (wide) sense.
    """

    @log_function_call
    def __init__(self, A: np.ndarray, name: Optional[str] = None):
        A = np.asarray(A)
        if A.ndim != 2:
            raise DimensionMismatch(f"Factorization needs a 2-D array, got shape {A.shape}", actual=A.shape)

        super().__init__(name or f"FactorizedOperator{A.shape}")
        self.A = A
        work = as_float_matrix(A)
        rows, cols = A.shape

        if rows == cols:
            self.kind = "lu"
            self.factors = scipy.linalg.lu_factor(work)
        elif rows > cols:
            self.kind = "qr"
            self.factors = scipy.linalg.qr(work, mode="economic")
        else:
            self.kind = "qr_transposed"
            self.factors = scipy.linalg.qr(work.T, mode="economic")

        logger.debug(f"Factorized {self.name} using {self.kind}")

    @property
    def shape(self) -> Tuple[int, int]:
        return self.A.shape

    @property
    def dtype(self) -> np.dtype:
        return self.A.dtype

    def apply_into(self, out: np.ndarray, x: np.ndarray) -> np.ndarray:
        out[...] = self.A @ x
        return out

    def solve_into(self, out: np.ndarray, b: np.ndarray) -> np.ndarray:
        b = as_float_matrix(np.asarray(b))
        if self.kind == "lu":
            out[...] = scipy.linalg.lu_solve(self.factors, b)
        elif self.kind == "qr":
            Q, R = self.factors
            out[...] = scipy.linalg.solve_triangular(R, Q.T @ b)
        else:
            Q, R = self.factors
            out[...] = Q @ scipy.linalg.solve_triangular(R, b, trans="T")
        return out

    def factorize(self) -> 'FactorizedOperator':
        return self

    def to_matrix(self) -> np.ndarray:
        return self.A.copy()

    def norm(self, p: Union[int, float, str] = 2) -> float:
        return matrix_norm(self.A, p)

    def __getitem__(self, key):
        return self.A[key]
