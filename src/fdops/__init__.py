"""
fdops: lazily composable finite-difference operators

Derivative stencils, array operators and scalar coefficients combine into
lazy expression trees (scaled, summed, composed) that are applied
matrix-free, solved, factorized, or materialized as dense, sparse or banded
matrices on demand.
"""

# Version information
from ._version import __version__

from .exceptions import (
    OperatorError, DimensionMismatch, SingularCoefficient, GridTooSmall, UnsupportedOperation
)
from .config import FDOpsConfig, get_config, set_config
from .operators import (
    LinearOperator, ScalarValue, ArrayOperator, IdentityOperator, FactorizedOperator,
    DerivativeOperator, UpwindOperator, Dirichlet0BC, Neumann0BC, PeriodicBC,
    ScaledOperator, OperatorCombination, OperatorComposition,
    scale, negate, add, subtract, compose, ldiv, expm,
    update_coefficients, is_constant, calculate_weights
)

__all__ = [
    "OperatorError",
    "DimensionMismatch",
    "SingularCoefficient",
    "GridTooSmall",
    "UnsupportedOperation",
    "FDOpsConfig",
    "get_config",
    "set_config",
    "LinearOperator",
    "ScalarValue",
    "ArrayOperator",
    "IdentityOperator",
    "FactorizedOperator",
    "DerivativeOperator",
    "UpwindOperator",
    "Dirichlet0BC",
    "Neumann0BC",
    "PeriodicBC",
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
