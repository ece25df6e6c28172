"""
Homogeneous ghost-point boundary operators.

Each operator maps the N interior values of a grid function to the N + 2
ghost-padded values a derivative operator reads, so that ``D * Q`` is a
square N x N operator that can be solved and factorized.
"""

import numpy as np
import scipy.sparse as sp
from typing import Tuple, Union
import logging

from .base import LinearOperator

logger = logging.getLogger(__name__)


class GhostPaddingBC(LinearOperator):
    """
    Linear padding ``u -> [l . u, u, r . u]`` with fixed ghost weights.

    Subclasses set ``left_weights`` and ``right_weights`` (length N).
    """

    def __init__(self, n: int, dtype: Union[np.dtype, type, str] = np.float64, name: str = None):
        if n < 1:
            raise ValueError(f"Boundary operator needs at least one interior point, got {n}")
        super().__init__(name or f"{self.__class__.__name__}({n})")
        self.n = n
        self._dtype = np.dtype(dtype)
        self.left_weights = np.zeros(n, dtype=self._dtype)
        self.right_weights = np.zeros(n, dtype=self._dtype)

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.n + 2, self.n)

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    def apply_into(self, out: np.ndarray, x: np.ndarray) -> np.ndarray:
        out[0] = np.dot(self.left_weights, x)
        out[1:-1] = x
        out[-1] = np.dot(self.right_weights, x)
        return out

    def to_matrix(self) -> np.ndarray:
        matrix = np.zeros(self.shape, dtype=self._dtype)
        matrix[0] = self.left_weights
        matrix[1:-1] = np.eye(self.n, dtype=self._dtype)
        matrix[-1] = self.right_weights
        return matrix

    def to_sparse(self) -> sp.csr_matrix:
        return sp.vstack([
            sp.csr_matrix(self.left_weights.reshape(1, -1)),
            sp.identity(self.n, dtype=self._dtype, format="csr"),
            sp.csr_matrix(self.right_weights.reshape(1, -1)),
        ], format="csr")


class Dirichlet0BC(GhostPaddingBC):
    """Zero ghost values: ``u = 0`` just outside both ends."""
    pass


class Neumann0BC(GhostPaddingBC):
    """Ghost values copy the nearest interior value (zero normal derivative)."""

    def __init__(self, n: int, dtype: Union[np.dtype, type, str] = np.float64):
        super().__init__(n, dtype)
        self.left_weights[0] = 1
        self.right_weights[-1] = 1


class PeriodicBC(GhostPaddingBC):
    """Ghost values wrap around to the opposite end."""

    def __init__(self, n: int, dtype: Union[np.dtype, type, str] = np.float64):
        super().__init__(n, dtype)
        self.left_weights[-1] = 1
        self.right_weights[0] = 1
