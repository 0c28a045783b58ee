from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import networkx as nx
import numpy as np

from ..core import Domain, Dot, Structure, Wedge
from ..exceptions import StructuralError
from ..Fuset.floret import Floret
from ..weights import BOTTOM, TOP, Weight, ext_add, format_weight, is_canonical

LOGGER = logging.getLogger(__name__)

Arc = Tuple[Dot, int, Weight]


@dataclass(frozen=True)
class Transition:
    """
    A floret paired with its weighting, ready to fire.

    Pre arcs come from the floret's forks and post arcs from its joins; each
    arc is ``(dot, index, weight)`` with ``index`` the dot's position in the
    domain vector.

    :param index: Position in the canonical transition order.
    :param floret: Underlying firing component.
    :param pre: Pre arcs sorted by dot.
    :param post: Post arcs sorted by dot.
    """

    index: int
    floret: Floret
    pre: Tuple[Arc, ...]
    post: Tuple[Arc, ...]
    _delta: np.ndarray = field(repr=False, compare=False, hash=False, default=None)

    @classmethod
    def from_floret(
        cls,
        index: int,
        floret: Floret,
        weight_of: Callable[[Wedge], Weight],
        domain: Domain,
    ) -> "Transition":
        """
        Attach weights to ``floret``.

        :raises StructuralError: If a dot's pre/post pair is not canonical.
        """
        pre = tuple((w.tip, domain.index(w.tip), weight_of(w)) for w in floret.forks)
        post = tuple((w.tip, domain.index(w.tip), weight_of(w)) for w in floret.joins)
        pre_w = {d: w for d, _, w in pre}
        post_w = {d: w for d, _, w in post}

        delta = np.zeros(len(domain), dtype=np.int64)
        for dot in sorted(set(pre_w) | set(post_w)):
            a, b = pre_w.get(dot, BOTTOM), post_w.get(dot, BOTTOM)
            if not is_canonical(a, b):
                raise StructuralError(
                    f"Transition {floret} weighs '{dot}' as "
                    f"{format_weight(a)}/{format_weight(b)}, which is not canonical",
                    dot=dot,
                )
            if ext_add(a, b) is TOP:
                continue
            i = domain.index(dot)
            if a is not BOTTOM:
                delta[i] -= a
            if b is not BOTTOM:
                delta[i] += b
        return cls(index, floret, pre, post, delta)

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------
    @property
    def pre_set(self) -> Tuple[Dot, ...]:
        return tuple(d for d, _, _ in self.pre)

    @property
    def post_set(self) -> Tuple[Dot, ...]:
        return tuple(d for d, _, _ in self.post)

    @property
    def carrier(self) -> frozenset:
        return frozenset(self.pre_set) | frozenset(self.post_set)

    @property
    def inhibit(self) -> Tuple[Dot, ...]:
        """Pre dots weighted ⊤: they must be empty."""
        return tuple(d for d, _, w in self.pre if w is TOP)

    @property
    def exhibit(self) -> Tuple[Dot, ...]:
        """Post dots weighted ⊤: they must be nonempty."""
        return tuple(d for d, _, w in self.post if w is TOP)

    def pre_weight(self, dot: Dot) -> Weight:
        return next((w for d, _, w in self.pre if d == dot), BOTTOM)

    def post_weight(self, dot: Dot) -> Weight:
        return next((w for d, _, w in self.post if d == dot), BOTTOM)

    @property
    def delta(self) -> np.ndarray:
        return self._delta.copy()

    # ------------------------------------------------------------------
    # Firing
    # ------------------------------------------------------------------
    def is_enabled(self, vector: np.ndarray, envelope: np.ndarray) -> bool:
        """
        Check the firing condition against a marking vector.

        A ⊤ pre arc needs an empty dot, any other pre arc at least
        ``max(weight, 1)`` tokens. A ⊤ post arc needs a nonempty dot, any
        other post arc room for ``weight`` tokens below the envelope.
        """
        for _, i, w in self.pre:
            if w is TOP:
                if vector[i] != 0:
                    return False
            elif vector[i] < max(w, 1):
                return False
        for _, i, w in self.post:
            if w is TOP:
                if vector[i] == 0:
                    return False
            elif envelope[i] - vector[i] < w:
                return False
        return True

    def apply(self, vector: np.ndarray) -> np.ndarray:
        """Fire in place: subtract pre weights, add post weights."""
        vector += self._delta
        return vector

    def conflicts_with(self, other: "Transition") -> bool:
        """Two distinct transitions conflict when their carriers overlap."""
        return self.index != other.index and bool(self.carrier & other.carrier)

    def __str__(self) -> str:
        return f"t{self.index}: {self.floret}"


class TransitionSystem:
    """
    Immutable, ordered transitions of a structure plus domain and envelope.

    Passes share one system and read it without locking; only their own
    marking vectors change.

    :param structure: Source structure (weights, domain, capacities).
    :param florets: Firing components in canonical order.
    """

    def __init__(self, structure: Structure, florets: Iterable[Floret]) -> None:
        self.name = structure.name
        self.domain: Domain = structure.domain
        self.envelope: np.ndarray = structure.envelope()
        self.envelope.setflags(write=False)
        self.transitions: Tuple[Transition, ...] = tuple(
            Transition.from_floret(i, fc, structure.weight_of, self.domain)
            for i, fc in enumerate(florets)
        )
        self._conflicts = nx.Graph()
        self._conflicts.add_nodes_from(range(len(self.transitions)))
        for i, t in enumerate(self.transitions):
            for u in self.transitions[i + 1 :]:
                if t.conflicts_with(u):
                    self._conflicts.add_edge(t.index, u.index)
        LOGGER.debug(
            "Built %d transitions with %d conflicts for '%s'",
            len(self.transitions),
            self._conflicts.number_of_edges(),
            self.name,
        )

    def __len__(self) -> int:
        return len(self.transitions)

    def __getitem__(self, i: int) -> Transition:
        return self.transitions[i]

    @property
    def conflict_graph(self) -> nx.Graph:
        return self._conflicts.copy(as_view=True)

    def conflicts(self, i: int, j: int) -> bool:
        return self._conflicts.has_edge(i, j)

    def enabled(self, vector: np.ndarray) -> List[int]:
        """Indices of the transitions enabled at ``vector``, in canonical order."""
        return [t.index for t in self.transitions if t.is_enabled(vector, self.envelope)]

    def fire(self, vector: np.ndarray, indices: Sequence[int]) -> np.ndarray:
        """Apply every transition of ``indices`` to a copy of ``vector``."""
        out = np.array(vector, dtype=np.int64, copy=True)
        for i in indices:
            self.transitions[i].apply(out)
        return out

    def describe(self, indices: Optional[Sequence[int]] = None) -> Dict[int, str]:
        chosen = range(len(self.transitions)) if indices is None else indices
        return {i: str(self.transitions[i].floret) for i in chosen}
