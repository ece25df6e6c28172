"""Core numerical helpers."""

from .precision import PrecisionLevel, parse_precision, resolve_dtype, scalar_type, convert_array

__all__ = ["PrecisionLevel", "parse_precision", "resolve_dtype", "scalar_type", "convert_array"]
