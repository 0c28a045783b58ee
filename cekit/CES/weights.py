"""
Extended integer arithmetic for weightings and capacities.

Weights live in ``Z ∪ {⊥, ⊤}``: ``⊥`` (:data:`BOTTOM`) marks an absent arc,
``⊤`` (:data:`TOP`) an inhibiting (pre side) or exhibiting (post side) arc, and
an unbounded capacity when used as an envelope.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Union

from .exceptions import StructuralError


class Bound(Enum):
    """The two non-integer values of the extended integers."""

    BOTTOM = "⊥"
    TOP = "⊤"

    def __str__(self) -> str:
        return self.value


BOTTOM = Bound.BOTTOM
TOP = Bound.TOP

Weight = Union[int, Bound]

_TOP_TOKENS = {"inf", "top", "t", "⊤", "!", "omega", "ω"}
_BOTTOM_TOKENS = {"_", "⊥", "bot", "bottom", "none"}


def is_finite(w: Weight) -> bool:
    """Return True for plain integers (``bool`` excluded)."""
    return isinstance(w, int) and not isinstance(w, bool)


def check_weight(w: object) -> Weight:
    """
    Coerce ``w`` to a :data:`Weight` or raise.

    :param w: Integer, :class:`Bound`, or ``math.inf`` (taken as ⊤).
    :returns: The normalised weight.
    :raises StructuralError: For any other value.
    """
    if isinstance(w, Bound) or is_finite(w):
        return w  # type: ignore[return-value]
    if isinstance(w, float) and math.isinf(w) and w > 0:
        return TOP
    raise StructuralError(f"Not an extended integer: {w!r}")


def ext_add(a: Weight, b: Weight) -> Weight:
    """
    Extended addition: ``⊥`` is neutral, ``⊤`` absorbs every other value.
    """
    if a is BOTTOM:
        return b
    if b is BOTTOM:
        return a
    if a is TOP or b is TOP:
        return TOP
    return a + b  # type: ignore[operator]


def ext_mul(a: Weight, b: Weight) -> Weight:
    """
    Extended multiplication: ``⊥`` absorbs, ``0 · ⊤ = 0``, ``⊤ · n = ⊤``.
    """
    if a is BOTTOM or b is BOTTOM:
        return BOTTOM
    if a is TOP:
        return 0 if b == 0 else TOP
    if b is TOP:
        return 0 if a == 0 else TOP
    return a * b  # type: ignore[operator]


def is_canonical(pre: Weight, post: Weight) -> bool:
    """
    Canonical-consistency predicate for one (action, dot) pair.

    The product of the pre- and post-weight must be ``⊥`` or ``0`` and their
    sum must be a non-negative integer, ``⊥`` or ``⊤``.

    :param pre: Pre-weight (fork side), ``BOTTOM`` when absent.
    :param post: Post-weight (join side), ``BOTTOM`` when absent.
    :returns: True when the pair is canonical.

    .. code-block:: python

        is_canonical(1, BOTTOM)   # True
        is_canonical(1, 1)        # False, nonzero product
        is_canonical(TOP, 0)      # True, pure inhibitor
        is_canonical(-1, BOTTOM)  # False, negative sum
    """
    product = ext_mul(pre, post)
    if product is not BOTTOM and product != 0:
        return False
    total = ext_add(pre, post)
    if isinstance(total, Bound):
        return True
    return total >= 0


def parse_weight(text: str) -> Weight:
    """
    Parse ``"3"``, ``"inf"``/``"!"``/``"⊤"`` or ``"_"``/``"⊥"``.

    :raises ValueError: If the text is not an extended integer.
    """
    token = text.strip()
    low = token.lower()
    if low in _TOP_TOKENS:
        return TOP
    if low in _BOTTOM_TOKENS:
        return BOTTOM
    try:
        return int(token)
    except ValueError:
        raise ValueError(f"Not an extended integer: {text!r}") from None


def format_weight(w: Weight) -> str:
    """Render a weight for display (``⊤`` as ``inf``)."""
    if w is TOP:
        return "inf"
    if w is BOTTOM:
        return "_"
    return str(w)


def as_float(w: Weight) -> float:
    """
    Numeric view used for envelopes: ``⊤`` becomes ``inf``.

    :raises ValueError: For ``⊥``, which has no numeric view.
    """
    if w is TOP:
        return math.inf
    if w is BOTTOM:
        raise ValueError("⊥ has no numeric value")
    return float(w)  # type: ignore[arg-type]
