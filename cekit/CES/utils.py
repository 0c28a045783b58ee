from __future__ import annotations

import re
from collections import Counter
from typing import Dict, Iterable, Mapping, Optional, Union


__all__ = [
    "parse_marking",
    "format_marking",
    "split_dots",
]

_TOKEN = re.compile(r"^([A-Za-z_][\w.']*)(?:\s*[:=]\s*(\d+))?$")


def split_dots(text: str) -> list:
    """
    Split a monomial such as ``"a b  c"`` on whitespace.

    :param text: Monomial text.
    :returns: List of dot tokens, e.g. ``["a", "b", "c"]``.
    """
    return [t for t in text.split() if t]


def parse_marking(
    obj: Optional[Union[str, Iterable[str], Mapping[str, int]]],
) -> Optional[Dict[str, int]]:
    """
    Parse a marking or goal threshold given as text, list or mapping.

    :param obj: None, ``"a:6, b:4 p"`` (a bare dot means one token),
        ``["a", "a", "b"]`` or ``{"a": 2}``.
    :returns: Mapping dot -> tokens, or None.
    :raises ValueError: If a token is not ``dot`` or ``dot:count``.
    """
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return {str(k): int(v) for k, v in obj.items()}
    if isinstance(obj, str):
        out: Dict[str, int] = {}
        # allow "a: 6" as well as "a:6"
        text = re.sub(r"\s*([:=])\s*", r"\1", obj)
        for raw in re.split(r"[,\s]+", text.strip()):
            if not raw:
                continue
            m = _TOKEN.match(raw)
            if m is None:
                raise ValueError(f"Invalid marking token {raw!r} in {obj!r}")
            dot, count = m.group(1), m.group(2)
            out[dot] = out.get(dot, 0) + (int(count) if count is not None else 1)
        return out
    return dict(Counter(str(x) for x in obj))


def format_marking(counts: Mapping[str, int]) -> str:
    """
    Human-readable summary of a marking.

    :param counts: Mapping dot -> tokens.
    :returns: ``'-'`` if empty, otherwise ``'a:2, b:1'``.
    """
    items = [(k, v) for k, v in sorted(counts.items()) if v]
    return "-" if not items else ", ".join(f"{k}:{v}" for k, v in items)

