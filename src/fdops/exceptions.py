"""Exceptions raised by the operator algebra and the stencil engine."""

from typing import Any, Optional, Tuple


class OperatorError(Exception):
    """Base exception for operator construction and application."""

    pass


class DimensionMismatch(OperatorError, ValueError):
    """Operand shapes are incompatible for the requested combination."""

    def __init__(
        self,
        message: str,
        expected: Optional[Tuple[int, ...]] = None,
        actual: Optional[Tuple[int, ...]] = None
    ):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class SingularCoefficient(OperatorError, ZeroDivisionError):
    """Division or solve by a zero scalar coefficient."""

    def __init__(self, message: str, coefficient: Any = None):
        super().__init__(message)
        self.coefficient = coefficient


class GridTooSmall(OperatorError, ValueError):
    """Grid has fewer points than the stencil footprint requires."""

    def __init__(self, dimension: int, required: int):
        super().__init__(
            f"Grid of {dimension} points is smaller than the required "
            f"stencil footprint of {required} points"
        )
        self.dimension = dimension
        self.required = required


class UnsupportedOperation(OperatorError, NotImplementedError):
    """An operation is not available for this operator kind."""

    def __init__(self, operation: str, operator: Any = None, reason: str = ""):
        name = type(operator).__name__ if operator is not None else "operator"
        message = f"{operation} is not supported by {name}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.operation = operation
        self.operator = operator
