from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

import networkx as nx
from networkx.utils import UnionFind

from ..core import Dot, Wedge
from .fuset import Fuset, Link


@dataclass(frozen=True)
class Fusor:
    """
    One matched link together with the fork and join realising it.

    :param link: The (cause, effect) pair.
    :param fork: Fork at the cause whose pit holds the effect.
    :param join: Join at the effect whose pit holds the cause.
    """

    link: Link
    fork: Wedge
    join: Wedge

    @property
    def dots(self) -> FrozenSet[Dot]:
        return self.fork.dots | self.join.dots


@dataclass(frozen=True)
class Floret:
    """
    A minimal, connected, singular and thin fuset: one firing component.

    :param wedges: The forks and joins of the component.
    :type wedges: FrozenSet[Wedge]
    """

    wedges: FrozenSet[Wedge]

    @property
    def forks(self) -> Tuple[Wedge, ...]:
        return tuple(sorted((w for w in self.wedges if w.is_fork), key=Wedge.sort_key))

    @property
    def joins(self) -> Tuple[Wedge, ...]:
        return tuple(sorted((w for w in self.wedges if not w.is_fork), key=Wedge.sort_key))

    @property
    def pre_set(self) -> Tuple[Dot, ...]:
        return tuple(sorted(w.tip for w in self.forks))

    @property
    def post_set(self) -> Tuple[Dot, ...]:
        return tuple(sorted(w.tip for w in self.joins))

    @property
    def arms(self) -> Tuple[Dot, ...]:
        out = set()
        for w in self.wedges:
            out |= w.pit
        return tuple(sorted(out))

    @property
    def span(self) -> Tuple[Dot, ...]:
        out = set()
        for w in self.wedges:
            out |= w.dots
        return tuple(sorted(out))

    @property
    def links(self) -> Tuple[Link, ...]:
        return tuple(sorted({link for w in self.forks for link in w.links()}))

    def fork_at(self, dot: Dot) -> Optional[Wedge]:
        return next((w for w in self.forks if w.tip == dot), None)

    def join_at(self, dot: Dot) -> Optional[Wedge]:
        return next((w for w in self.joins if w.tip == dot), None)

    def as_fuset(self, domain: Optional[Iterable[Dot]] = None) -> Fuset:
        return Fuset(self.wedges, domain=domain)

    def sort_key(self) -> Tuple[Tuple[Dot, ...], Tuple]:
        return (self.arms, tuple(sorted(w.sort_key() for w in self.wedges)))

    def describe(self) -> str:
        """Pre/post sets followed by the effect pit of every pre dot."""
        detail = ", ".join(
            f"{w.tip} -> {' '.join(sorted(w.pit))}" for w in self.forks
        )
        return f"{self}  [{detail}]"

    def __str__(self) -> str:
        return f"({' '.join(self.pre_set)}) => ({' '.join(self.post_set)})"


def fusors(fuset: Fuset) -> List[Fusor]:
    """
    List the fusors of a thin fuset, one per interior link.

    :param fuset: Thin fuset.
    :returns: Fusors sorted by link.
    :raises ValueError: If the fuset is not thin.
    """
    if not fuset.is_thin():
        raise ValueError("fusors are only defined for thin fusets")
    out: List[Fusor] = []
    for cause, effect in sorted(fuset.interior):
        out.append(Fusor((cause, effect), fuset.forks_at(cause)[0], fuset.joins_at(effect)[0]))
    return out


def split_components(fuset: Fuset) -> List[Fuset]:
    """
    Split a thin, tight fuset into its connected parts.

    Fusors are built bottom-up and merged through a union-find index over dot
    identifiers; each resulting class of dots carries one part.

    :param fuset: Thin and tight fuset, e.g. a SAT model.
    :returns: Sub-fusets sorted by their smallest wedge.
    :raises ValueError: If the fuset is not thin or not tight.
    """
    if not fuset.is_tight():
        raise ValueError("split_components expects a tight fuset")
    parts = UnionFind()
    for fusor in fusors(fuset):
        parts.union(*sorted(fusor.dots))

    buckets: Dict[Dot, List[Wedge]] = {}
    for w in fuset.wedges:
        buckets.setdefault(parts[w.tip], []).append(w)
    return [fuset.restrict(ws) for ws in buckets.values()]


def split_florets(fuset: Fuset) -> List[Floret]:
    """
    Extract the florets contained in a thin, tight fuset.

    Within each connected part, the sink components of the forcing graph are
    exactly the minimal tight sub-selections; each is one floret. A part that
    is itself minimal yields a single floret.

    :param fuset: Thin and tight fuset, e.g. a SAT model.
    :returns: Florets in canonical order.
    :raises ValueError: If the fuset is not thin or not tight.
    """
    florets: List[Floret] = []
    for part in split_components(fuset):
        cond = nx.condensation(part.forcing_graph())
        for node in cond.nodes:
            if cond.out_degree(node) == 0:
                florets.append(Floret(frozenset(cond.nodes[node]["members"])))
    return sorted(florets, key=Floret.sort_key)
