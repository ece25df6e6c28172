"""Scalar coefficients with optional state-dependent update rules."""

import numbers
import numpy as np
from typing import Any, Callable, Optional
import logging

logger = logging.getLogger(__name__)

UpdateRule = Callable[[Any, Any, Any, Any], Any]


class ScalarValue:
    """
    Dimensionless scalar used as an operator coefficient.

    Behaves as its wrapped value in arithmetic. When an ``update_func`` is
    given, :func:`fdops.operators.coefficients.update_coefficients` replaces
    the value with ``update_func(value, u, p, t)``.
    """

    # Let numpy defer to the reflected operators
    __array_ufunc__ = None

    def __init__(self, value: Any, update_func: Optional[UpdateRule] = None):
        if isinstance(value, ScalarValue):
            value = value.value
        if np.ndim(value) != 0:
            raise TypeError(f"ScalarValue needs a scalar, got array of shape {np.shape(value)}")
        self.value = value
        self.update_func = update_func

    @property
    def dtype(self) -> np.dtype:
        return np.asarray(self.value).dtype

    def is_constant(self) -> bool:
        return self.update_func is None

    def children(self) -> tuple:
        return ()

    def update_coefficients(self, u: Any, p: Any, t: Any) -> 'ScalarValue':
        if self.update_func is not None:
            self.value = self.update_func(self.value, u, p, t)
            logger.debug(f"Updated scalar coefficient to {self.value!r} at t={t!r}")
        return self

    def __call__(self, u: Any, p: Any, t: Any) -> Any:
        self.update_coefficients(u, p, t)
        return self.value

    @staticmethod
    def _unwrap(other: Any) -> Any:
        if isinstance(other, ScalarValue):
            return other.value
        if isinstance(other, (numbers.Number, np.generic, np.ndarray)):
            return other
        return NotImplemented

    def __add__(self, other):
        other = self._unwrap(other)
        return NotImplemented if other is NotImplemented else self.value + other

    def __radd__(self, other):
        other = self._unwrap(other)
        return NotImplemented if other is NotImplemented else other + self.value

    def __sub__(self, other):
        other = self._unwrap(other)
        return NotImplemented if other is NotImplemented else self.value - other

    def __rsub__(self, other):
        other = self._unwrap(other)
        return NotImplemented if other is NotImplemented else other - self.value

    def __mul__(self, other):
        other = self._unwrap(other)
        return NotImplemented if other is NotImplemented else self.value * other

    def __rmul__(self, other):
        other = self._unwrap(other)
        return NotImplemented if other is NotImplemented else other * self.value

    def __truediv__(self, other):
        other = self._unwrap(other)
        return NotImplemented if other is NotImplemented else self.value / other

    def __rtruediv__(self, other):
        other = self._unwrap(other)
        return NotImplemented if other is NotImplemented else other / self.value

    def __neg__(self):
        return -self.value

    def __pos__(self):
        return self.value

    def __abs__(self):
        return abs(self.value)

    def __float__(self):
        return float(self.value)

    def __complex__(self):
        return complex(self.value)

    def __bool__(self):
        return bool(self.value)

    def __eq__(self, other):
        other = self._unwrap(other)
        return NotImplemented if other is NotImplemented else self.value == other

    def __ne__(self, other):
        other = self._unwrap(other)
        return NotImplemented if other is NotImplemented else self.value != other

    __hash__ = None

    def __repr__(self) -> str:
        if self.update_func is None:
            return f"ScalarValue({self.value!r})"
        return f"ScalarValue({self.value!r}, update_func={self.update_func!r})"
