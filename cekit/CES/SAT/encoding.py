"""
Boolean encodings of the firing-component constraints.

Both encodings express the same conditions over component-membership
variables, so their models select the same wedge sets:

* **thinness**: at most one fork and at most one join per tip;
* **tightness / singularity**: every arm of a selected wedge is the tip of a
  selected wedge of the opposite polarity whose pit holds this tip;
* **nonemptiness**: something is selected.

Connectivity is not a clause: every model is split into connected florets
afterwards (see :func:`cekit.CES.Fuset.floret.split_florets`).

The ``fork-join`` encoding uses one variable per wedge. The ``port-link``
encoding treats wedges as *ports* of their tip and adds one variable per
interior *link*; a port fixes exactly the links of its pit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Sequence

import z3

from ..core import Wedge
from ..exceptions import SolverFailure
from ..Fuset.fuset import Fuset, Link


class Encoding(Enum):
    PORT_LINK = "port-link"
    FORK_JOIN = "fork-join"

    @classmethod
    def parse(cls, value: Any) -> "Encoding":
        """
        Parse ``"port-link"``/``"PL"`` or ``"fork-join"``/``"FJ"``.

        :raises SolverFailure: For any other value.
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("_", "-")
        aliases = {
            "port-link": cls.PORT_LINK,
            "pl": cls.PORT_LINK,
            "fork-join": cls.FORK_JOIN,
            "fj": cls.FORK_JOIN,
        }
        try:
            return aliases[key]
        except KeyError:
            raise SolverFailure(f"Unsupported SAT encoding: {value!r}") from None


@dataclass
class ConstraintSet:
    """
    Clauses of one encoding plus the variables needed to decode models.

    :param encoding: Encoding that produced the clauses.
    :param wedge_vars: One Boolean per wedge, in canonical wedge order.
    :param link_vars: One Boolean per interior link (port-link only).
    :param clauses: z3 Boolean expressions to assert.
    """

    encoding: Encoding
    wedge_vars: Dict[Wedge, Any]
    link_vars: Dict[Link, Any] = field(default_factory=dict)
    clauses: List[Any] = field(default_factory=list)

    def selected(self, model: Any) -> FrozenSet[Wedge]:
        """Wedges set to true in ``model``."""
        return frozenset(
            w
            for w, v in self.wedge_vars.items()
            if z3.is_true(model.eval(v, model_completion=True))
        )

    def __len__(self) -> int:
        return len(self.clauses)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _any(literals: Sequence[Any], ctx: z3.Context) -> Any:
    if not literals:
        return z3.BoolVal(False, ctx)
    if len(literals) == 1:
        return literals[0]
    return z3.Or(*literals)


def _wedge_vars(fuset: Fuset, ctx: z3.Context) -> Dict[Wedge, Any]:
    out: Dict[Wedge, Any] = {}
    for i, w in enumerate(fuset.wedges):
        tag = "f" if w.is_fork else "j"
        out[w] = z3.Bool(f"{tag}{i}:{w.tip}:{'.'.join(sorted(w.pit))}", ctx)
    return out


def _thinness(fuset: Fuset, wedge_vars: Dict[Wedge, Any]) -> List[Any]:
    clauses: List[Any] = []
    for dot in fuset.domain:
        for star in (fuset.forks_at(dot), fuset.joins_at(dot)):
            if len(star) > 1:
                clauses.append(z3.AtMost(*[wedge_vars[w] for w in star], 1))
    return clauses


# ---------------------------------------------------------------------------
# Encodings
# ---------------------------------------------------------------------------


def _fork_join_constraints(fuset: Fuset, ctx: z3.Context) -> ConstraintSet:
    wv = _wedge_vars(fuset, ctx)
    cs = ConstraintSet(Encoding.FORK_JOIN, wv)
    cs.clauses.extend(_thinness(fuset, wv))

    for w in fuset.wedges:
        for arm in sorted(w.pit):
            if w.is_fork:
                partners = [j for j in fuset.joins_at(arm) if w.tip in j.pit]
            else:
                partners = [f for f in fuset.forks_at(arm) if w.tip in f.pit]
            cs.clauses.append(z3.Implies(wv[w], _any([wv[p] for p in partners], ctx)))

    cs.clauses.append(_any(list(wv.values()), ctx))
    return cs


def _port_link_constraints(fuset: Fuset, ctx: z3.Context) -> ConstraintSet:
    wv = _wedge_vars(fuset, ctx)
    interior = sorted(fuset.interior)
    lv = {
        (x, y): z3.Bool(f"l{i}:{x}>{y}", ctx) for i, (x, y) in enumerate(interior)
    }
    cs = ConstraintSet(Encoding.PORT_LINK, wv, lv)
    cs.clauses.extend(_thinness(fuset, wv))

    out_links: Dict[str, List[Link]] = {}
    in_links: Dict[str, List[Link]] = {}
    for x, y in interior:
        out_links.setdefault(x, []).append((x, y))
        in_links.setdefault(y, []).append((x, y))

    for w in fuset.wedges:
        port = wv[w]
        wanted = set(w.links())
        own = out_links.get(w.tip, []) if w.is_fork else in_links.get(w.tip, [])
        for link in sorted(wanted):
            if link in lv:
                cs.clauses.append(z3.Implies(port, lv[link]))
            else:
                # the link has no counterpart of the other polarity
                cs.clauses.append(z3.Not(port))
        for link in own:
            if link not in wanted:
                cs.clauses.append(z3.Implies(port, z3.Not(lv[link])))

    for (x, y), link in lv.items():
        forks = [wv[f] for f in fuset.forks_at(x) if y in f.pit]
        joins = [wv[j] for j in fuset.joins_at(y) if x in j.pit]
        cs.clauses.append(z3.Implies(link, _any(forks, ctx)))
        cs.clauses.append(z3.Implies(link, _any(joins, ctx)))

    cs.clauses.append(_any(list(lv.values()), ctx))
    return cs


_BUILDERS: Dict[Encoding, Callable[[Fuset, z3.Context], ConstraintSet]] = {
    Encoding.PORT_LINK: _port_link_constraints,
    Encoding.FORK_JOIN: _fork_join_constraints,
}


def build_constraints(encoding: Any, fuset: Fuset, ctx: z3.Context) -> ConstraintSet:
    """
    Build the clauses of ``encoding`` for ``fuset`` inside ``ctx``.

    :param encoding: :class:`Encoding` or one of its textual names.
    :param fuset: Validated fuset.
    :param ctx: z3 context owning every variable.
    :returns: :class:`ConstraintSet`.
    :raises SolverFailure: If the encoding is not supported.
    """
    enc = Encoding.parse(encoding)
    try:
        builder = _BUILDERS[enc]
    except KeyError:
        raise SolverFailure(f"No constraint builder for encoding {enc.value}") from None
    return builder(fuset, ctx)
