"""
Lazy composite operators.

Composite operators keep the structure of the expression that built them
(``a * A @ B + c * C`` is a combination of a scaled composition and a scaled
leaf) and implement every protocol operation by recursing into their
children. Nothing is materialized unless a conversion is requested.

Scratch buffers are owned by the composite instance: do not call
``apply_into`` / ``solve_into`` on the same instance from several threads
at once.
"""

import functools
import operator
import numpy as np
import scipy.sparse as sp
from typing import Any, Sequence, Tuple, Union
import logging

from .base import LinearOperator, is_scalar
from .scalar import ScalarValue
from .coefficients import update_children, all_constant
from ..config.settings import get_config
from ..exceptions import DimensionMismatch, SingularCoefficient, UnsupportedOperation

logger = logging.getLogger(__name__)


class CompositeOperator(LinearOperator):
    """Operator built from other operators; state updates recurse into children."""

    def is_constant(self) -> bool:
        return all_constant(self.children())

    def update_coefficients(self, u: Any, p: Any, t: Any) -> 'CompositeOperator':
        update_children(self.children(), u, p, t)
        return self


class ScaledOperator(CompositeOperator):
    """``coeff * op`` for a scalar coefficient."""

    def __init__(self, coeff: Union[ScalarValue, Any], op: LinearOperator):
        if not isinstance(coeff, ScalarValue):
            if not is_scalar(coeff):
                raise TypeError(
                    f"Scaling coefficient must be a scalar, got {type(coeff).__name__}; "
                    f"wrap arrays in an ArrayOperator"
                )
            coeff = ScalarValue(coeff)
        super().__init__(f"{coeff.value!r}*{op.name}")
        self.coeff = coeff
        self.op = op

    @property
    def shape(self) -> Tuple[int, int]:
        return self.op.shape

    @property
    def dtype(self) -> np.dtype:
        return np.result_type(self.op.dtype, self.coeff.dtype)

    def children(self) -> tuple:
        return (self.coeff, self.op)

    def _inverse_coefficient(self) -> Any:
        if self.coeff == 0:
            raise SingularCoefficient(f"{self.name}: cannot invert a zero coefficient", self.coeff.value)
        return 1 / self.coeff.value

    def apply_into(self, out: np.ndarray, x: np.ndarray) -> np.ndarray:
        self.op.apply_into(out, x)
        out *= self.coeff.value
        return out

    def apply_right(self, x: np.ndarray) -> np.ndarray:
        return self.op.apply_right(x) * self.coeff.value

    def solve_into(self, out: np.ndarray, b: np.ndarray) -> np.ndarray:
        inverse = self._inverse_coefficient()
        self.op.solve_into(out, b)
        out *= inverse
        return out

    def rsolve(self, x: np.ndarray) -> np.ndarray:
        inverse = self._inverse_coefficient()
        return inverse * self.op.rsolve(x)

    def factorize(self) -> 'ScaledOperator':
        return ScaledOperator(self.coeff, self.op.factorize())

    def to_matrix(self) -> np.ndarray:
        return self.coeff.value * self.op.to_matrix()

    def to_sparse(self) -> sp.csr_matrix:
        return (self.op.to_sparse() * self.coeff.value).tocsr()

    def norm(self, p: Union[int, float, str] = 2) -> float:
        return abs(self.coeff.value) * self.op.norm(p)

    def norm_bound(self, p: Union[int, float, str] = 2) -> float:
        return abs(self.coeff.value) * self.op.norm_bound(p)

    def __getitem__(self, key):
        return self.coeff.value * self.op[key]


class OperatorCombination(CompositeOperator):
    """
    Sum ``ops[0] + ops[1] + ...`` of operators of one shape.

    Application writes the first operand straight into the output and
    accumulates every other operand through a single shared scratch vector.
    """

    def __init__(self, ops: Sequence[LinearOperator], cache: np.ndarray = None):
        ops = tuple(ops)
        if len(ops) < 2:
            raise ValueError(f"A combination needs at least two operators, got {len(ops)}")

        if get_config().operators.check_dimensions:
            expected = ops[0].shape
            for op in ops[1:]:
                if op.shape != expected:
                    raise DimensionMismatch(
                        f"Cannot add {op.name} of shape {op.shape} to {ops[0].name} of shape {expected}",
                        expected=expected,
                        actual=op.shape
                    )

        super().__init__(" + ".join(op.name for op in ops))
        self.ops = ops
        if cache is None:
            cache = np.empty(ops[0].shape[0], dtype=self.dtype)
        self.cache = cache

        logger.debug(f"Created combination of {len(ops)} operators, shape={self.shape}")

    @property
    def shape(self) -> Tuple[int, int]:
        return self.ops[0].shape

    @property
    def dtype(self) -> np.dtype:
        # Leaves may change dtype through their update rules
        return np.result_type(*(op.dtype for op in self.ops))

    def children(self) -> tuple:
        return self.ops

    def _scratch(self, dtype: np.dtype) -> np.ndarray:
        """Shared scratch vector holding values of ``dtype``, reallocated when it changes."""
        if self.cache.dtype != dtype:
            logger.debug(f"Reallocating combination cache of {self.name}: {self.cache.dtype} -> {dtype}")
            self.cache = np.empty(self.cache.shape, dtype=dtype)
        return self.cache

    def apply_into(self, out: np.ndarray, x: np.ndarray) -> np.ndarray:
        cache = self._scratch(np.result_type(self.dtype, x.dtype))
        self.ops[0].apply_into(out, x)
        for op in self.ops[1:]:
            op.apply_into(cache, x)
            out += cache
        return out

    def apply_right(self, x: np.ndarray) -> np.ndarray:
        return functools.reduce(operator.add, (op.apply_right(x) for op in self.ops))

    def to_matrix(self) -> np.ndarray:
        return functools.reduce(operator.add, (op.to_matrix() for op in self.ops))

    def to_sparse(self) -> sp.csr_matrix:
        return functools.reduce(operator.add, (op.to_sparse() for op in self.ops)).tocsr()

    def norm_bound(self, p: Union[int, float, str] = 2) -> float:
        return sum(op.norm_bound(p) for op in self.ops)

    def __getitem__(self, key):
        return functools.reduce(operator.add, (op[key] for op in self.ops))


class OperatorComposition(CompositeOperator):
    """
    Chain ``ops[-1] ∘ ... ∘ ops[0]``, stored in order of application.

    ``A ∘ B`` (B first, then A) is stored as ``(B, A)``. Each intermediate
    stage writes into its own scratch vector; solves run the chain
    backwards through the same vectors.
    """

    def __init__(self, ops: Sequence[LinearOperator], caches: Sequence[np.ndarray] = None):
        ops = tuple(ops)
        if len(ops) < 2:
            raise ValueError(f"A composition needs at least two operators, got {len(ops)}")

        if get_config().operators.check_dimensions:
            for inner, outer in zip(ops[:-1], ops[1:]):
                if outer.shape[1] != inner.shape[0]:
                    raise DimensionMismatch(
                        f"Cannot apply {outer.name} of shape {outer.shape} after "
                        f"{inner.name} of shape {inner.shape}",
                        expected=(inner.shape[0],),
                        actual=(outer.shape[1],)
                    )

        super().__init__(" ∘ ".join(op.name for op in reversed(ops)))
        self.ops = ops
        if caches is None:
            caches = tuple(np.empty(op.shape[0], dtype=self.dtype) for op in ops[:-1])
        self.caches = tuple(caches)

        logger.debug(f"Created composition of {len(ops)} operators, shape={self.shape}")

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.ops[-1].shape[0], self.ops[0].shape[1])

    @property
    def dtype(self) -> np.dtype:
        return np.result_type(*(op.dtype for op in self.ops))

    def children(self) -> tuple:
        return self.ops

    def _stage_caches(self, dtype: np.dtype) -> Tuple[np.ndarray, ...]:
        """Intermediate vectors holding values of ``dtype``, reallocated when it changes."""
        if any(cache.dtype != dtype for cache in self.caches):
            logger.debug(f"Reallocating stage caches of {self.name} for dtype {dtype}")
            self.caches = tuple(np.empty(cache.shape, dtype=dtype) for cache in self.caches)
        return self.caches

    def apply_into(self, out: np.ndarray, x: np.ndarray) -> np.ndarray:
        caches = self._stage_caches(np.result_type(self.dtype, x.dtype))
        self.ops[0].apply_into(caches[0], x)
        for i in range(1, len(self.ops) - 1):
            self.ops[i].apply_into(caches[i], caches[i - 1])
        self.ops[-1].apply_into(out, caches[-1])
        return out

    def solve_into(self, out: np.ndarray, b: np.ndarray) -> np.ndarray:
        """
        Solve the chain stage by stage, last-applied stage first.

        Falls back to a dense solve of the whole chain when it is square but
        one of its stages has no solve of its own.
        """
        # Solutions of integer systems are fractional
        caches = self._stage_caches(np.result_type(self.dtype, b.dtype, np.float64))
        try:
            self.ops[-1].solve_into(caches[-1], b)
            for i in range(len(self.ops) - 2, 0, -1):
                self.ops[i].solve_into(caches[i - 1], caches[i])
            self.ops[0].solve_into(out, caches[0])
        except UnsupportedOperation:
            rows, cols = self.shape
            if rows != cols:
                raise
            logger.debug(f"Stagewise solve unavailable for {self.name}; solving the dense chain")
            super().solve_into(out, b)
        return out

    def apply_right(self, x: np.ndarray) -> np.ndarray:
        return functools.reduce(lambda acc, op: op.apply_right(acc), reversed(self.ops), np.asarray(x))

    def rsolve(self, x: np.ndarray) -> np.ndarray:
        return functools.reduce(lambda acc, op: op.rsolve(acc), self.ops, np.asarray(x))

    def factorize(self) -> LinearOperator:
        """
        Compose the factorizations of the individual stages.

        When a stage cannot be factorized on its own (a rectangular stencil
        operator, say) but the chain as a whole is square, the materialized
        chain is factorized instead.
        """
        try:
            return OperatorComposition(tuple(op.factorize() for op in self.ops))
        except UnsupportedOperation:
            rows, cols = self.shape
            if rows != cols:
                raise
            logger.debug(f"Stagewise factorization unavailable for {self.name}; factorizing the dense chain")
            return super().factorize()

    def to_matrix(self) -> np.ndarray:
        return functools.reduce(operator.matmul, (op.to_matrix() for op in reversed(self.ops)))

    def to_sparse(self) -> sp.csr_matrix:
        return functools.reduce(operator.matmul, (op.to_sparse() for op in reversed(self.ops))).tocsr()

    def norm(self, p: Union[int, float, str] = 2) -> float:
        """
        Product of the stage norms.

        This is the submultiplicative upper bound, not the exact norm of the
        chain; use ``matrix_norm(L.to_matrix(), p)`` when the exact value is
        needed.
        """
        return functools.reduce(operator.mul, (op.norm(p) for op in self.ops))

    def norm_bound(self, p: Union[int, float, str] = 2) -> float:
        return functools.reduce(operator.mul, (op.norm_bound(p) for op in self.ops))

    def __getitem__(self, key):
        if isinstance(key, tuple) and len(key) == 2 and all(isinstance(k, (int, np.integer)) for k in key):
            i, j = key
            unit = np.zeros(self.shape[1], dtype=self.dtype)
            unit[j] = 1
            return self.apply(unit)[i]
        return self.to_matrix()[key]


# ----------------------------------------------------------------------
# Builders

def scale(alpha: Union[ScalarValue, Any], op: LinearOperator) -> ScaledOperator:
    """``alpha * op``."""
    return ScaledOperator(alpha, op)


def negate(op: LinearOperator) -> ScaledOperator:
    """``-op``, i.e. ``ScalarValue(-1) * op``."""
    return ScaledOperator(ScalarValue(-1), op)


def add(*ops: LinearOperator) -> LinearOperator:
    """
    Sum of operators, splicing the operands of nested combinations.

    ``add(A + B, C)`` is the flat combination ``(A, B, C)``.
    """
    flat = []
    for op in ops:
        if isinstance(op, OperatorCombination):
            flat.extend(op.ops)
        else:
            flat.append(op)
    if len(flat) == 1:
        return flat[0]
    return OperatorCombination(flat)


def subtract(a: LinearOperator, b: LinearOperator) -> LinearOperator:
    """``a - b``, i.e. ``a + (-b)``."""
    return add(a, negate(b))


def compose(*ops: LinearOperator) -> LinearOperator:
    """
    Composition ``ops[0] ∘ ops[1] ∘ ...``: the last argument is applied first.

    Nested compositions are spliced, so ``compose(A, B @ C)`` is stored in
    application order as ``(C, B, A)``.
    """
    chain = []
    for op in reversed(ops):
        if isinstance(op, OperatorComposition):
            chain.extend(op.ops)
        else:
            chain.append(op)
    if len(chain) == 1:
        return chain[0]
    return OperatorComposition(chain)


def ldiv(op: LinearOperator, b: np.ndarray) -> np.ndarray:
    """Left division ``op \\ b``."""
    return op.solve(b)


def expm(op: LinearOperator) -> np.ndarray:
    """Matrix exponential through the dense representation."""
    return op.expm()
