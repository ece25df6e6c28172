"""Recursive coefficient updates over operator expression trees."""

from typing import Any
import logging

logger = logging.getLogger(__name__)


def update_coefficients(node: Any, u: Any, p: Any, t: Any) -> Any:
    """
    Push a new (u, p, t) state into every mutable coefficient under ``node``.

    Leaves recompute their stored values from their own update rule;
    composite nodes forward the call to each of their children. Plain
    numbers are left untouched. Always recomputes, so repeated calls with
    the same state give identical coefficients.

    Args:
        node: Operator, ScalarValue or plain number
        u: State vector
        p: Parameters
        t: Time

    Returns:
        ``node``
    """
    hook = getattr(node, "update_coefficients", None)
    if hook is not None:
        hook(u, p, t)
    return node


def is_constant(node: Any) -> bool:
    """
    Check whether ``node`` is independent of the (u, p, t) state.

    True iff no leaf reachable from ``node`` carries an update rule.
    """
    check = getattr(node, "is_constant", None)
    if check is None:
        return True
    return bool(check())


def update_children(children: tuple, u: Any, p: Any, t: Any) -> None:
    """Depth-first update of a composite node's children."""
    for child in children:
        update_coefficients(child, u, p, t)


def all_constant(children: tuple) -> bool:
    """AND-reduction of :func:`is_constant` over a composite node's children."""
    return all(is_constant(child) for child in children)
