"""Leaf and composite linear operators."""

from .base import LinearOperator, matrix_norm
from .scalar import ScalarValue
from .array import ArrayOperator, IdentityOperator, FactorizedOperator
from .derivative import StencilOperator, DerivativeOperator, UpwindOperator
from .boundary import GhostPaddingBC, Dirichlet0BC, Neumann0BC, PeriodicBC
from .composite import (
    CompositeOperator, ScaledOperator, OperatorCombination, OperatorComposition,
    scale, negate, add, subtract, compose, ldiv, expm
)
from .coefficients import update_coefficients, is_constant
from .stencils import calculate_weights

__all__ = [
    "LinearOperator",
    "matrix_norm",
    "ScalarValue",
    "ArrayOperator",
    "IdentityOperator",
    "FactorizedOperator",
    "StencilOperator",
    "DerivativeOperator",
    "UpwindOperator",
    "GhostPaddingBC",
    "Dirichlet0BC",
    "Neumann0BC",
    "PeriodicBC",
    "CompositeOperator",
    "ScaledOperator",
    "OperatorCombination",
    "OperatorComposition",
    "scale",
    "negate",
    "add",
    "subtract",
    "compose",
    "ldiv",
    "expm",
    "update_coefficients",
    "is_constant",
    "calculate_weights",
]
