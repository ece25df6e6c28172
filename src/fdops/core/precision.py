"""Scalar precision handling for operator coefficients."""

import numpy as np
from fractions import Fraction
from typing import Any, Callable, Optional, Union
from enum import Enum
import logging

logger = logging.getLogger(__name__)


class PrecisionLevel(Enum):
    """Enumeration of supported scalar precisions."""
    SINGLE = "float32"
    DOUBLE = "float64"
    EXACT = "object"


_PRECISION_ALIASES = {
    "single": PrecisionLevel.SINGLE,
    "float32": PrecisionLevel.SINGLE,
    "double": PrecisionLevel.DOUBLE,
    "float64": PrecisionLevel.DOUBLE,
    "exact": PrecisionLevel.EXACT,
    "object": PrecisionLevel.EXACT,
    "fraction": PrecisionLevel.EXACT,
}


def parse_precision(precision: Union[PrecisionLevel, str, type, np.dtype]) -> PrecisionLevel:
    """
    Parse a precision level from a name, enum member or numpy dtype.

    Args:
        precision: Precision name ('single', 'double', 'exact', ...),
            ``PrecisionLevel`` member, or a numpy dtype / scalar type

    Returns:
        Matching precision level
    """
    if isinstance(precision, PrecisionLevel):
        return precision

    if isinstance(precision, str):
        level = _PRECISION_ALIASES.get(precision.lower())
        if level is None:
            raise ValueError(f"Unknown precision level: {precision}")
        return level

    try:
        dtype = np.dtype(precision)
    except TypeError:
        raise TypeError(f"Precision must be PrecisionLevel, str or dtype, got {type(precision)}")

    if dtype == np.float32:
        return PrecisionLevel.SINGLE
    if dtype == np.float64:
        return PrecisionLevel.DOUBLE
    if dtype == np.dtype(object):
        return PrecisionLevel.EXACT
    raise ValueError(f"Unsupported dtype: {dtype}")


def resolve_dtype(precision: Optional[Union[PrecisionLevel, str, type, np.dtype]] = None) -> np.dtype:
    """
    Get the numpy dtype used to store values of the given precision.

    Args:
        precision: Precision specification (default: active configuration)

    Returns:
        Corresponding numpy dtype
    """
    if precision is None:
        from ..config.settings import get_config
        precision = get_config().operators.dtype

    level = parse_precision(precision)
    return np.dtype(level.value)


def scalar_type(dtype: Union[np.dtype, type, str]) -> Callable[[Any], Any]:
    """
    Get the constructor for a single scalar of the given storage dtype.

    Exact precision stores ``fractions.Fraction`` values inside ``object``
    arrays so that stencil weights are derived without rounding.
    """
    dtype = np.dtype(dtype)
    if dtype == np.dtype(object):
        return Fraction
    return dtype.type


def convert_array(array: np.ndarray, dtype: Union[np.dtype, type, str]) -> np.ndarray:
    """
    Convert array to target storage dtype.

    Args:
        array: Input array
        dtype: Target dtype

    Returns:
        Array in the target dtype (the input itself when already matching)
    """
    array = np.asarray(array)
    target = np.dtype(dtype)

    if array.dtype == target:
        return array

    if target == np.dtype(object):
        make = scalar_type(target)
        converted = np.empty(array.shape, dtype=object)
        for index, value in np.ndenumerate(array):
            converted[index] = make(value.item() if hasattr(value, "item") else value)
    else:
        converted = array.astype(target)

    logger.debug(f"Converted array from {array.dtype} to {target}, shape={array.shape}")
    return converted
