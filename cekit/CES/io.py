"""
Line-oriented ``.ces`` reader and table importers.

A ``.ces`` file holds one directive or rule per line; ``#`` starts a comment::

    name gcd
    capacity inf a b c
    start a:6 b:4 p
    goal done
    0p a b => c
    p 0a !b => q

A rule ``L => R`` relates two polynomials: monomials joined by ``+``, dots of
a monomial separated by spaces. It contributes a fork ``(x, M)`` for every dot
``x`` of ``L`` and monomial ``M`` of ``R``, and a join ``(M', y)`` for every dot
``y`` of ``R`` and monomial ``M'`` of ``L``. A dot may carry a weight prefix,
an integer or ``!`` for ⊤, which applies to its wedges from that rule.

Single wedges are declared with ``fork TIP ARM...`` and ``join TIP ARM...``;
the tip may carry a weight prefix as well.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import pandas as pd

from .core import Dot, Structure, Wedge
from .exceptions import InvalidStructureError, StructuralError
from .utils import parse_marking, split_dots
from .weights import TOP, Weight, format_weight, parse_weight

LOGGER = logging.getLogger(__name__)

_DOT = re.compile(r"^(\d+|!)?([A-Za-z_][\w]*)$")
_ARROW = "=>"

Monomial = Tuple[Dot, ...]


def _parse_polynomial(
    text: str, where: str
) -> Tuple[List[Monomial], Dict[Dot, Weight]]:
    """
    Parse ``"a b + c"`` into monomials and per-dot weights.

    :raises InvalidStructureError: On empty monomials, bad tokens or two
        different weights for one dot on the same side.
    """
    monomials: List[Monomial] = []
    weights: Dict[Dot, Weight] = {}
    for raw in text.split("+"):
        tokens = split_dots(raw)
        if not tokens:
            raise InvalidStructureError(f"{where}: empty monomial in {text.strip()!r}")
        mono: List[Dot] = []
        for tok in tokens:
            m = _DOT.match(tok)
            if m is None:
                raise InvalidStructureError(f"{where}: invalid dot {tok!r}")
            prefix, dot = m.group(1), m.group(2)
            if prefix is None:
                weight: Weight = 1
            elif prefix == "!":
                weight = TOP
            else:
                weight = int(prefix)
            if dot in weights and weights[dot] != weight and prefix is not None:
                raise InvalidStructureError(
                    f"{where}: conflicting weights for '{dot}' in {text.strip()!r}"
                )
            if prefix is not None or dot not in weights:
                weights[dot] = weight
            if dot not in mono:
                mono.append(dot)
        monomials.append(tuple(sorted(mono)))
    return monomials, weights


def add_rule(structure: Structure, line: str, where: str = "<rule>") -> None:
    """
    Add the wedges of one ``L => R`` rule to ``structure``.

    :raises InvalidStructureError: If the rule is malformed.
    :raises StructuralError: If a wedge is redeclared with another weight.
    """
    if line.count(_ARROW) != 1:
        raise InvalidStructureError(f"{where}: a rule needs exactly one '{_ARROW}'")
    lhs, rhs = line.split(_ARROW)
    causes, pre_w = _parse_polynomial(lhs, where)
    effects, post_w = _parse_polynomial(rhs, where)

    for x in sorted(pre_w):
        for mono in effects:
            structure.add_wedge(Wedge.fork(x, mono), pre_w[x])
    for y in sorted(post_w):
        for mono in causes:
            structure.add_wedge(Wedge.join(mono, y), post_w[y])


def _directive(structure: Structure, head: str, rest: str, where: str) -> None:
    if head == "name":
        if not rest:
            raise InvalidStructureError(f"{where}: 'name' needs a value")
        structure.name = rest
    elif head == "capacity":
        parts = rest.split()
        if len(parts) < 2:
            raise InvalidStructureError(f"{where}: 'capacity' needs a value and dots")
        try:
            cap = parse_weight(parts[0])
        except ValueError as exc:
            raise InvalidStructureError(f"{where}: {exc}") from None
        for dot in parts[1:]:
            structure.set_capacity(dot, cap)
    elif head in ("fork", "join"):
        # fork TIP ARM...  /  join TIP ARM...
        parts = rest.split()
        if len(parts) < 2:
            raise InvalidStructureError(f"{where}: '{head}' needs a tip and arms")
        m = _DOT.match(parts[0])
        if m is None:
            raise InvalidStructureError(f"{where}: invalid dot {parts[0]!r}")
        prefix, tip = m.group(1), m.group(2)
        weight: Weight = 1 if prefix is None else (TOP if prefix == "!" else int(prefix))
        for arm in parts[1:]:
            am = _DOT.match(arm)
            if am is None or am.group(1) is not None:
                raise InvalidStructureError(f"{where}: invalid arm {arm!r}")
        if head == "fork":
            structure.add_wedge(Wedge.fork(tip, parts[1:]), weight)
        else:
            structure.add_wedge(Wedge.join(parts[1:], tip), weight)
    elif head in ("start", "goal"):
        try:
            counts = parse_marking(rest) or {}
        except ValueError as exc:
            raise InvalidStructureError(f"{where}: {exc}") from None
        if head == "start":
            structure.add_start(counts)
        else:
            structure.add_goal(counts)
    else:
        raise InvalidStructureError(f"{where}: unknown directive {head!r}")


def structure_from_strings(
    lines: Union[str, Iterable[str]],
    name: Optional[str] = None,
    source: str = "<string>",
) -> Structure:
    """
    Build a :class:`Structure` from ``.ces`` text.

    :param lines: Whole text or an iterable of lines.
    :param name: Name used when the text declares none.
    :param source: Label used in error messages.
    :returns: Parsed structure.
    :raises InvalidStructureError: On malformed text.
    :raises StructuralError: On inconsistent wedge weights or capacities.

    .. code-block:: python

        s = structure_from_strings("a + b + a b => x + y + x y")
        len(s.weights)   # 12
    """
    if isinstance(lines, str):
        lines = lines.splitlines()
    structure = Structure(name=name or "anonymous")
    for lineno, raw in enumerate(lines, start=1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        where = f"{source}:{lineno}"
        if _ARROW in line:
            add_rule(structure, line, where)
            continue
        head, _, rest = line.partition(" ")
        _directive(structure, head.lower(), rest.strip(), where)
    LOGGER.debug("Parsed %r from %s", structure, source)
    return structure


def load_structure(path: Union[str, Path]) -> Structure:
    """
    Read a ``.ces`` file.

    :param path: File path.
    :returns: Structure named after the file stem unless it declares a name.
    :raises InvalidStructureError: If the file cannot be read or parsed.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InvalidStructureError(f"Cannot read {path}: {exc}") from exc
    structure = structure_from_strings(text, name=path.stem, source=str(path))
    structure.metadata["source"] = str(path)
    return structure


# --------------------------------------------------------------------------- #
# Tables
# --------------------------------------------------------------------------- #


def _pit(value) -> List[Dot]:
    if isinstance(value, str):
        return split_dots(value.replace(",", " "))
    return [str(v) for v in value]


def structure_from_table(df: pd.DataFrame, name: str = "table") -> Structure:
    """
    Build a :class:`Structure` from a pandas table of wedges.

    Expected columns:

    * ``polarity`` – ``"fork"`` or ``"join"``
    * ``tip`` – dot name
    * ``pit`` – ``"x y"`` or an iterable of dots
    * ``weight`` – optional, integer or ``"inf"``; default 1

    :param df: Wedge table.
    :param name: Structure name.
    :raises InvalidStructureError: On missing columns or unknown polarities.
    """
    missing = {"polarity", "tip", "pit"}.difference(df.columns)
    if missing:
        raise InvalidStructureError(
            f"Wedge table lacks columns: {', '.join(sorted(missing))}"
        )
    structure = Structure(name=name)
    for i, row in df.iterrows():
        polarity = str(row["polarity"]).strip().lower()
        weight: Weight = 1
        if "weight" in df.columns and not pd.isna(row["weight"]):
            raw = row["weight"]
            # columns with gaps come back as floats
            text = str(int(raw)) if isinstance(raw, float) and raw.is_integer() else str(raw)
            try:
                weight = parse_weight(text)
            except ValueError as exc:
                raise InvalidStructureError(f"row {i}: {exc}") from None
        pit = _pit(row["pit"])
        try:
            if polarity == "fork":
                wedge = Wedge.fork(str(row["tip"]), pit)
            elif polarity == "join":
                wedge = Wedge.join(pit, str(row["tip"]))
            else:
                raise InvalidStructureError(f"row {i}: unknown polarity {polarity!r}")
        except StructuralError as exc:
            raise InvalidStructureError(f"row {i}: {exc}") from exc
        structure.add_wedge(wedge, weight)
    return structure


def fuset_from_table(df: pd.DataFrame):
    """Fuset of :func:`structure_from_table`; weights are dropped."""
    return structure_from_table(df).fuset()


def structure_to_table(structure: Structure) -> pd.DataFrame:
    """Inverse of :func:`structure_from_table`, one row per wedge."""
    rows = [
        {
            "polarity": w.polarity.value,
            "tip": w.tip,
            "pit": " ".join(sorted(w.pit)),
            "weight": format_weight(structure.weight_of(w)),
        }
        for w in structure.wedges
    ]
    return pd.DataFrame(rows, columns=["polarity", "tip", "pit", "weight"])
