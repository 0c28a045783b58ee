"""
Fusets: sets of wedges over a fixed domain.

A :class:`Fuset` derives the usual structural sets from its forks and joins:

* ``pre_set`` / ``post_set``: fork tips / join tips,
* ``under_set`` / ``over_set``: union of join pits / union of fork pits,
* ``span``: every dot mentioned by a wedge,
* ``frame``: arrow pairs armed by either polarity,
* ``interior``: arrow pairs armed by both (matched links),
* ``co_interior``: ``frame − interior`` (misstips and weak followers).

Two arming relations are kept as :class:`networkx.DiGraph` objects: ``x``
*fork-arms* ``y`` when a fork at ``x`` has ``y`` in its pit, and ``x``
*join-arms* ``y`` when a join at ``y`` has ``x`` in its pit.

Everything here is polynomial in the number of declared wedges; the engine
never enumerates the space of all fusets over a domain.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import (
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Set,
    Tuple,
)

import networkx as nx

from ..core import Dot, Wedge
from ..exceptions import StructuralError
from ..weights import BOTTOM, Weight, format_weight, is_canonical, is_finite

LOGGER = logging.getLogger(__name__)

Link = Tuple[Dot, Dot]


class Star(NamedTuple):
    """Fork star and join star of a single dot."""

    forks: Tuple[Wedge, ...]
    joins: Tuple[Wedge, ...]


class Fuset:
    """
    Immutable set of wedges over a domain.

    :param wedges: Wedges of the fuset (duplicates collapse).
    :type wedges: Iterable[Wedge]
    :param domain: Optional domain; defaults to the sorted span. Must contain
        every dot of every wedge.
    :type domain: Optional[Iterable[str]]
    :raises StructuralError: If a wedge mentions a dot outside ``domain``.

    .. code-block:: python

        F = Fuset([Wedge.fork("a", {"x"}), Wedge.join({"a"}, "x")])
        F.pre_set, F.post_set      # {'a'}, {'x'}
        F.is_floret()              # True
    """

    def __init__(
        self, wedges: Iterable[Wedge], domain: Optional[Iterable[Dot]] = None
    ) -> None:
        self._wedges: FrozenSet[Wedge] = frozenset(wedges)
        span: Set[Dot] = set()
        for w in self._wedges:
            span |= w.dots
        if domain is None:
            self._domain: Tuple[Dot, ...] = tuple(sorted(span))
        else:
            self._domain = tuple(domain)
            missing = span.difference(self._domain)
            if missing:
                raise StructuralError(
                    f"Wedges mention dots outside the domain: {sorted(missing)}",
                    dot=sorted(missing)[0],
                )
        self._span = frozenset(span)

        self._forks_at: Dict[Dot, List[Wedge]] = defaultdict(list)
        self._joins_at: Dict[Dot, List[Wedge]] = defaultdict(list)
        self._fork_arming = nx.DiGraph()
        self._join_arming = nx.DiGraph()
        self._fork_arming.add_nodes_from(self._domain)
        self._join_arming.add_nodes_from(self._domain)

        for w in sorted(self._wedges, key=Wedge.sort_key):
            if w.is_fork:
                self._forks_at[w.tip].append(w)
                self._fork_arming.add_edges_from(w.links())
            else:
                self._joins_at[w.tip].append(w)
                self._join_arming.add_edges_from(w.links())

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def from_structure(cls, structure) -> "Fuset":
        return cls(structure.weights, domain=structure.dots)

    def restrict(self, wedges: Iterable[Wedge]) -> "Fuset":
        """Sub-fuset over the same domain; wedges must belong to this fuset."""
        wedges = frozenset(wedges)
        stray = wedges - self._wedges
        if stray:
            raise StructuralError(f"{sorted(map(str, stray))[0]} is not in this fuset")
        return Fuset(wedges, domain=self._domain)

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._wedges)

    def __iter__(self) -> Iterator[Wedge]:
        return iter(self.wedges)

    def __contains__(self, wedge: object) -> bool:
        return wedge in self._wedges

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fuset):
            return NotImplemented
        return self._wedges == other._wedges and set(self._domain) == set(other._domain)

    def __hash__(self) -> int:
        return hash(self._wedges)

    def __repr__(self) -> str:
        return f"Fuset(n_dots={len(self._domain)}, n_wedges={len(self._wedges)})"

    # ------------------------------------------------------------------
    # Basic views
    # ------------------------------------------------------------------
    @property
    def domain(self) -> Tuple[Dot, ...]:
        return self._domain

    @property
    def wedges(self) -> List[Wedge]:
        return sorted(self._wedges, key=Wedge.sort_key)

    @property
    def wedge_set(self) -> FrozenSet[Wedge]:
        return self._wedges

    @property
    def forks(self) -> List[Wedge]:
        return [w for w in self.wedges if w.is_fork]

    @property
    def joins(self) -> List[Wedge]:
        return [w for w in self.wedges if not w.is_fork]

    def forks_at(self, dot: Dot) -> List[Wedge]:
        return list(self._forks_at.get(dot, ()))

    def joins_at(self, dot: Dot) -> List[Wedge]:
        return list(self._joins_at.get(dot, ()))

    # ------------------------------------------------------------------
    # Derived sets
    # ------------------------------------------------------------------
    @property
    def pre_set(self) -> FrozenSet[Dot]:
        return frozenset(d for d, ws in self._forks_at.items() if ws)

    @property
    def post_set(self) -> FrozenSet[Dot]:
        return frozenset(d for d, ws in self._joins_at.items() if ws)

    @property
    def under_set(self) -> FrozenSet[Dot]:
        out: Set[Dot] = set()
        for ws in self._joins_at.values():
            for w in ws:
                out |= w.pit
        return frozenset(out)

    @property
    def over_set(self) -> FrozenSet[Dot]:
        out: Set[Dot] = set()
        for ws in self._forks_at.values():
            for w in ws:
                out |= w.pit
        return frozenset(out)

    @property
    def span(self) -> FrozenSet[Dot]:
        return self._span

    @property
    def frame(self) -> FrozenSet[Link]:
        return frozenset(self._fork_arming.edges) | frozenset(self._join_arming.edges)

    @property
    def interior(self) -> FrozenSet[Link]:
        return frozenset(self._fork_arming.edges) & frozenset(self._join_arming.edges)

    @property
    def co_interior(self) -> FrozenSet[Link]:
        return self.frame - self.interior

    # ------------------------------------------------------------------
    # Arming relations
    # ------------------------------------------------------------------
    @property
    def fork_arming(self) -> nx.DiGraph:
        return self._fork_arming.copy(as_view=True)

    @property
    def join_arming(self) -> nx.DiGraph:
        return self._join_arming.copy(as_view=True)

    def fork_effects(self, dot: Dot) -> FrozenSet[Dot]:
        """Dots fork-armed by ``dot`` (pits of its forks)."""
        if dot not in self._fork_arming:
            return frozenset()
        return frozenset(self._fork_arming.successors(dot))

    def join_effects(self, dot: Dot) -> FrozenSet[Dot]:
        """Tips of joins whose pit contains ``dot``."""
        if dot not in self._join_arming:
            return frozenset()
        return frozenset(self._join_arming.successors(dot))

    def join_causes(self, dot: Dot) -> FrozenSet[Dot]:
        """Dots join-arming ``dot`` (pits of its joins)."""
        if dot not in self._join_arming:
            return frozenset()
        return frozenset(self._join_arming.predecessors(dot))

    def fork_causes(self, dot: Dot) -> FrozenSet[Dot]:
        """Tips of forks whose pit contains ``dot``."""
        if dot not in self._fork_arming:
            return frozenset()
        return frozenset(self._fork_arming.predecessors(dot))

    def fork_closure(self) -> nx.DiGraph:
        """Transitive closure of the fork-arming relation."""
        return nx.transitive_closure(self._fork_arming, reflexive=None)

    def join_closure(self) -> nx.DiGraph:
        """Transitive closure of the join-arming relation."""
        return nx.transitive_closure(self._join_arming, reflexive=None)

    def reachable_from(self, dots: Iterable[Dot]) -> FrozenSet[Dot]:
        """
        Dots reachable from ``dots`` through either closure (``dots`` excluded).
        """
        seeds = [d for d in dots if d in self._fork_arming]
        if not seeds:
            return frozenset()
        fc = self.fork_closure()
        jc = self.join_closure()
        out: Set[Dot] = set()
        for d in seeds:
            out.update(fc.successors(d))
            out.update(jc.successors(d))
        return frozenset(out.difference(seeds))

    def misstips(self) -> List[Link]:
        """Fork links with no join counterpart."""
        return sorted(set(self._fork_arming.edges) - set(self._join_arming.edges))

    def weak_followers(self) -> List[Link]:
        """Join links with no fork counterpart."""
        return sorted(set(self._join_arming.edges) - set(self._fork_arming.edges))

    # ------------------------------------------------------------------
    # Predicates
    # ------------------------------------------------------------------
    def is_thin(self) -> bool:
        """Each dot is the tip of at most one fork and at most one join."""
        return all(len(ws) <= 1 for ws in self._forks_at.values()) and all(
            len(ws) <= 1 for ws in self._joins_at.values()
        )

    def is_coherent(self) -> bool:
        """Fork-arming and join-arming coincide."""
        return set(self._fork_arming.edges) == set(self._join_arming.edges)

    def is_tight(self) -> bool:
        """
        Every fork tip lies in the pit of every join at each of its arms,
        and every join tip lies in the pit of every fork at each of its arms.
        """
        for w in self._wedges:
            for arm in w.pit:
                partners = self._joins_at.get(arm) if w.is_fork else self._forks_at.get(arm)
                if not partners:
                    return False
                if any(w.tip not in p.pit for p in partners):
                    return False
        return True

    def is_singular(self) -> bool:
        """Nonempty, and every arm dot is itself a tip of the opposite polarity."""
        if not self._wedges:
            return False
        return self.over_set <= self.post_set and self.under_set <= self.pre_set

    def is_connected(self) -> bool:
        if not self._wedges:
            return False
        g = nx.Graph()
        g.add_nodes_from(self._span)
        for w in self._wedges:
            g.add_edges_from(w.links())
        return nx.is_connected(g)

    def forcing_graph(self) -> nx.DiGraph:
        """
        Wedge dependency graph: ``w -> v`` when ``v`` is a wedge of the
        opposite polarity at an arm of ``w`` whose pit holds the tip of ``w``.

        In a thin, tight fuset every sub-selection closed under this relation
        is again tight, so the minimal ones are the sink components.
        """
        g = nx.DiGraph()
        g.add_nodes_from(self._wedges)
        for w in self._wedges:
            for arm in w.pit:
                partners = self._joins_at.get(arm, ()) if w.is_fork else self._forks_at.get(arm, ())
                g.add_edges_from((w, p) for p in partners if w.tip in p.pit)
        return g

    def is_minimal(self) -> bool:
        """Thin, tight and without a nonempty tight proper sub-selection."""
        if not self._wedges or not (self.is_thin() and self.is_tight()):
            return False
        return nx.is_strongly_connected(self.forcing_graph())

    def is_floret(self) -> bool:
        """Thin, tight, singular, connected and minimal."""
        return (
            self.is_thin()
            and self.is_tight()
            and self.is_singular()
            and self.is_connected()
            and self.is_minimal()
        )

    # ------------------------------------------------------------------
    # Stars
    # ------------------------------------------------------------------
    def star(self, dot: Dot) -> Star:
        return Star(tuple(self.forks_at(dot)), tuple(self.joins_at(dot)))

    def star_partition(self) -> Dict[Dot, Star]:
        """
        Partition the fuset into per-dot stars.

        :returns: Mapping tip -> :class:`Star`, for every tip of a wedge. Each
            wedge occurs in exactly one star.
        """
        tips = sorted(self.pre_set | self.post_set)
        return {d: self.star(d) for d in tips}

    # ------------------------------------------------------------------
    # Weighting validation
    # ------------------------------------------------------------------
    def validate(
        self,
        weights: Mapping[Wedge, Weight],
        capacity_of: Optional[Callable[[Dot], Weight]] = None,
    ) -> None:
        """
        Enforce canonical consistency of a weighting over this fuset.

        * integer-sum rule: every wedge weight, paired with an absent partner,
          must be canonical (non-negative integer or ⊤);
        * scope-bound rule: a finite weight must not exceed the finite
          capacity of its tip;
        * nonzero-product rule: a fork and a join at the same self-armed dot
          (which may co-fire) must have a canonical weight pair.

        :param weights: Weight per wedge (missing wedges weigh 1).
        :param capacity_of: Optional capacity lookup per dot.
        :raises StructuralError: On the first violation found.
        """
        for w in self.wedges:
            weight = weights.get(w, 1)
            pair = (weight, BOTTOM) if w.is_fork else (BOTTOM, weight)
            if not is_canonical(*pair):
                raise StructuralError(
                    f"Weight {format_weight(weight)} of {w} is not canonical",
                    dot=w.tip,
                    wedge=w,
                )
            if capacity_of is not None and is_finite(weight):
                cap = capacity_of(w.tip)
                if is_finite(cap) and weight > cap:
                    raise StructuralError(
                        f"Weight {weight} of {w} exceeds capacity {cap} of '{w.tip}'",
                        dot=w.tip,
                        wedge=w,
                    )

        for dot in sorted(self.pre_set & self.post_set):
            loops_f = [f for f in self._forks_at[dot] if dot in f.pit]
            loops_j = [j for j in self._joins_at[dot] if dot in j.pit]
            for f in loops_f:
                for j in loops_j:
                    if not is_canonical(weights.get(f, 1), weights.get(j, 1)):
                        raise StructuralError(
                            f"Weights {format_weight(weights.get(f, 1))} and "
                            f"{format_weight(weights.get(j, 1))} at '{dot}' "
                            "violate the nonzero-product rule",
                            dot=dot,
                            wedge=f,
                        )
        LOGGER.debug("Validated weighting of %r", self)


@dataclass(frozen=True)
class FusetSummary:
    """Flat summary of a fuset's structural predicates."""

    n_dots: int
    n_wedges: int
    thin: bool
    tight: bool
    coherent: bool
    singular: bool
    connected: bool
    misstips: Tuple[Link, ...]
    weak_followers: Tuple[Link, ...]


def summarize_fuset(fuset: Fuset) -> FusetSummary:
    """
    Evaluate every structural predicate of ``fuset`` once.

    :param fuset: Fuset to summarise.
    :returns: :class:`FusetSummary`.
    """
    return FusetSummary(
        n_dots=len(fuset.domain),
        n_wedges=len(fuset),
        thin=fuset.is_thin(),
        tight=fuset.is_tight(),
        coherent=fuset.is_coherent(),
        singular=fuset.is_singular(),
        connected=fuset.is_connected(),
        misstips=tuple(fuset.misstips()),
        weak_followers=tuple(fuset.weak_followers()),
    )
