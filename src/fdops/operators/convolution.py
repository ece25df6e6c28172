"""
Matrix-free stencil application for derivative operators.

The input vector already carries the two ghost values, so
``len(x) == len(x_temp) + 2``. Application runs in three phases (left
boundary rows, interior rows, right boundary rows) followed by one global
rescale by ``1 / dx**derivative_order``; the stencil coefficients assume
unit spacing.
"""

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Optional, Union
import logging

from ..exceptions import DimensionMismatch, GridTooSmall

if TYPE_CHECKING:
    from .derivative import DerivativeOperator, UpwindOperator

logger = logging.getLogger(__name__)


def check_padded_input(x_temp: np.ndarray, x: np.ndarray, stencil_length: int) -> None:
    """Validate output/input lengths against the ghost-padded convention."""
    n = len(x_temp)
    if len(x) != n + 2:
        raise DimensionMismatch(
            f"Padded input must have {n + 2} entries for {n} output points, got {len(x)}",
            expected=(n + 2,),
            actual=(len(x),)
        )
    if n < stencil_length:
        raise GridTooSmall(n, stencil_length)


def convolve_bc_left(x_temp: np.ndarray, x: np.ndarray, op: 'Union[DerivativeOperator, UpwindOperator]') -> None:
    """Rows near the start: one-sided weights against ``x[:boundary_stencil_length]``."""
    window = x[:op.boundary_stencil_length]
    for i, coefs in enumerate(op.low_boundary_coefs):
        x_temp[i] = np.dot(coefs, window)


def convolve_interior(x_temp: np.ndarray, x: np.ndarray, op: 'DerivativeOperator') -> None:
    """
    Interior rows: the centered stencil slid along ``x``.

    Output row ``i`` (0-based) reads ``x[i + 1 - mid : i + 1 - mid + stencil_length]``
    with ``mid = stencil_length // 2``.
    """
    n = len(x_temp)
    bpc = op.boundary_point_count
    mid = op.stencil_length // 2
    windows = sliding_window_view(x, op.stencil_length)
    x_temp[bpc:n - bpc] = windows[bpc + 1 - mid:n - bpc + 1 - mid] @ op.stencil_coefs


def convolve_bc_right(x_temp: np.ndarray, x: np.ndarray, op: 'Union[DerivativeOperator, UpwindOperator]') -> None:
    """Rows near the end: mirrored weights against the trailing window of ``x``."""
    n = len(x_temp)
    start = n - op.boundary_point_count
    window = x[len(x) - op.boundary_stencil_length:]
    for i, coefs in enumerate(op.high_boundary_coefs):
        x_temp[start + i] = np.dot(coefs, window)


def rescale(x_temp: np.ndarray, op: 'Union[DerivativeOperator, UpwindOperator]') -> None:
    """Apply the grid-spacing factor ``1 / dx**derivative_order`` once."""
    x_temp *= op.scale


def apply_derivative(x_temp: np.ndarray, x: np.ndarray, op: 'DerivativeOperator') -> np.ndarray:
    """
    Discretized derivative of the padded vector ``x`` into ``x_temp``.

    Args:
        x_temp: Output buffer of length N
        x: Ghost-padded input of length N + 2
        op: Derivative operator supplying the stencils

    Returns:
        ``x_temp``
    """
    check_padded_input(x_temp, x, op.stencil_length)
    convolve_bc_left(x_temp, x, op)
    convolve_interior(x_temp, x, op)
    convolve_bc_right(x_temp, x, op)
    rescale(x_temp, op)
    return x_temp


def convolve_upwind_interior(
    x_temp: np.ndarray,
    x: np.ndarray,
    op: 'UpwindOperator',
    workers: Optional[int] = None,
    chunk_size: Optional[int] = None
) -> None:
    """
    Interior rows of an upwind operator.

    Each row picks the forward ("up") stencil, reading ``x[i + 1 : i + 1 + L]``,
    or the backward ("down") stencil, reading ``x[i + 2 - L : i + 2]``, from the
    read-only ``op.directions`` flags (True selects backward). Rows are split
    into disjoint chunks, so with ``workers > 1`` the chunks run on a thread
    pool and are joined before returning.

    Args:
        x_temp: Output buffer of length N
        x: Ghost-padded input of length N + 2
        op: Upwind operator
        workers: Worker threads (default: active configuration)
        chunk_size: Rows per task (default: active configuration)
    """
    if workers is None or chunk_size is None:
        from ..config.settings import get_config
        settings = get_config().operators
        workers = workers or settings.upwind_workers
        chunk_size = chunk_size or settings.upwind_chunk_size

    n = len(x_temp)
    bpc = op.boundary_point_count
    length = op.stencil_length
    directions = op.directions
    forward = sliding_window_view(x[1:], length)
    backward = sliding_window_view(x, length)

    def _rows(start: int, stop: int) -> None:
        up = forward[start:stop] @ op.up_stencil_coefs
        down = backward[start + 2 - length:stop + 2 - length] @ op.down_stencil_coefs
        x_temp[start:stop] = np.where(directions[start:stop], down, up)

    bounds = [
        (start, min(start + chunk_size, n - bpc))
        for start in range(bpc, n - bpc, chunk_size)
    ]

    if workers <= 1 or len(bounds) <= 1:
        for start, stop in bounds:
            _rows(start, stop)
        return

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(_rows, start, stop) for start, stop in bounds]
        for future in futures:
            future.result()

    logger.debug(f"Upwind interior computed in {len(bounds)} chunks on {workers} workers")


def apply_upwind(
    x_temp: np.ndarray,
    x: np.ndarray,
    op: 'UpwindOperator',
    workers: Optional[int] = None,
    chunk_size: Optional[int] = None
) -> np.ndarray:
    """Upwind derivative of the padded vector ``x`` into ``x_temp``."""
    check_padded_input(x_temp, x, op.stencil_length)
    convolve_bc_left(x_temp, x, op)
    convolve_upwind_interior(x_temp, x, op, workers=workers, chunk_size=chunk_size)
    convolve_bc_right(x_temp, x, op)
    rescale(x_temp, op)
    return x_temp
