"""
Concurrency semantics and selection policies.

Under ``SEQ`` exactly one enabled transition fires per step, under ``PAR`` any
nonempty conflict-free subset of the enabled transitions, and under ``MAX`` a
conflict-free subset that cannot be extended by another enabled transition.
Which admissible choice is taken is left to an explicit
:class:`SelectionPolicy`; randomness only ever comes from a seeded policy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple

import networkx as nx
import numpy as np

from .transition import TransitionSystem

Choice = Tuple[int, ...]


class Semantics(Enum):
    SEQ = "seq"
    PAR = "par"
    MAX = "max"

    @classmethod
    def parse(cls, value: Any) -> "Semantics":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if member.value == key or member.name.lower() == key:
                return member
        if key in ("sequential", "interleaving"):
            return cls.SEQ
        if key in ("parallel", "concurrent"):
            return cls.PAR
        if key in ("maximal", "maximal-parallel"):
            return cls.MAX
        raise ValueError(f"semantics must be one of seq, par, max (got {value!r})")


# ---------------------------------------------------------------------------
# Admissible choices
# ---------------------------------------------------------------------------


def conflict_free(system: TransitionSystem, subset: Iterable[int]) -> bool:
    """True if no two transitions of ``subset`` share a carrier dot."""
    chosen = list(subset)
    return all(
        not system.conflicts(i, j)
        for k, i in enumerate(chosen)
        for j in chosen[k + 1 :]
    )


def is_maximal(system: TransitionSystem, fired: Iterable[int], enabled: Iterable[int]) -> bool:
    """
    Check that ``fired`` is conflict-free and that every other enabled
    transition conflicts with some fired one.
    """
    fired = set(fired)
    if not conflict_free(system, fired):
        return False
    for i in enabled:
        if i in fired:
            continue
        if not any(system.conflicts(i, j) for j in fired):
            return False
    return True


def _independence_graph(system: TransitionSystem, enabled: Sequence[int]) -> nx.Graph:
    sub = system.conflict_graph.subgraph(enabled)
    return nx.complement(sub)


def maximal_subsets(system: TransitionSystem, enabled: Sequence[int]) -> List[Choice]:
    """
    Maximal conflict-free subsets of ``enabled``.

    These are the maximal independent sets of the conflict graph, found as
    maximal cliques of its complement.

    :returns: Sorted tuples, in lexicographic order.
    """
    if not enabled:
        return []
    cliques = nx.find_cliques(_independence_graph(system, enabled))
    return sorted(tuple(sorted(c)) for c in cliques)


def conflict_free_subsets(system: TransitionSystem, enabled: Sequence[int]) -> List[Choice]:
    """Every nonempty conflict-free subset of ``enabled``, smallest first."""
    if not enabled:
        return []
    cliques = nx.enumerate_all_cliques(_independence_graph(system, enabled))
    return sorted((tuple(sorted(c)) for c in cliques), key=lambda c: (len(c), c))


def admissible_choices(
    system: TransitionSystem, enabled: Sequence[int], semantics: Any
) -> List[Choice]:
    """
    All choices a step may take under ``semantics``.

    :param system: Transition system.
    :param enabled: Enabled transition indices.
    :param semantics: :class:`Semantics` or its name.
    :returns: List of index tuples (empty when nothing is enabled).
    """
    mode = Semantics.parse(semantics)
    if mode is Semantics.SEQ:
        return [(i,) for i in sorted(enabled)]
    if mode is Semantics.PAR:
        return conflict_free_subsets(system, enabled)
    return maximal_subsets(system, enabled)


def _greedy(system: TransitionSystem, order: Iterable[int]) -> Choice:
    picked: List[int] = []
    for i in order:
        if all(not system.conflicts(i, j) for j in picked):
            picked.append(i)
    return tuple(sorted(picked))


# ---------------------------------------------------------------------------
# Selection policies
# ---------------------------------------------------------------------------


class SelectionPolicy(ABC):
    """Picks one admissible choice per step."""

    name = "abstract"

    @abstractmethod
    def choose(
        self, system: TransitionSystem, enabled: Sequence[int], semantics: Semantics
    ) -> Choice:
        """
        :param system: Transition system.
        :param enabled: Nonempty list of enabled indices, in canonical order.
        :param semantics: Step semantics.
        :returns: Indices to fire.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class PriorityPolicy(SelectionPolicy):
    """
    Deterministic default: lower transition indices win.

    ``SEQ`` fires the first enabled transition; ``PAR`` and ``MAX`` fire the
    greedy conflict-free subset built in index order, which is maximal.

    Under this policy ``PAR`` therefore steps exactly like ``MAX``. The two
    differ only with :class:`RandomPolicy`, which may fire any nonempty
    conflict-free subset under ``PAR``, and in :meth:`Runner.explore`, which
    branches over every admissible subset.
    """

    name = "priority"

    def choose(
        self, system: TransitionSystem, enabled: Sequence[int], semantics: Semantics
    ) -> Choice:
        order = sorted(enabled)
        if semantics is Semantics.SEQ:
            return (order[0],)
        return _greedy(system, order)


class RandomPolicy(SelectionPolicy):
    """
    Seeded random choice through a :class:`numpy.random.Generator`.

    :param seed: Seed of the generator; equal seeds give equal runs.
    """

    name = "random"

    def __init__(self, seed: Optional[int] = 0) -> None:
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def choose(
        self, system: TransitionSystem, enabled: Sequence[int], semantics: Semantics
    ) -> Choice:
        order = [int(i) for i in self.rng.permutation(sorted(enabled))]
        if semantics is Semantics.SEQ:
            return (order[0],)
        if semantics is Semantics.MAX:
            return _greedy(system, order)
        # PAR: keep the first candidate, then each compatible one with p = 1/2
        picked = [order[0]]
        for i in order[1:]:
            if self.rng.random() < 0.5 and all(not system.conflicts(i, j) for j in picked):
                picked.append(i)
        return tuple(sorted(picked))

    def __repr__(self) -> str:
        return f"RandomPolicy(seed={self.seed})"


class ExhaustivePolicy(SelectionPolicy):
    """
    Branch enumeration: :meth:`branches` lists every admissible choice.

    :meth:`choose` follows the first branch so that a single run stays
    deterministic.
    """

    name = "exhaustive"

    def branches(
        self, system: TransitionSystem, enabled: Sequence[int], semantics: Semantics
    ) -> List[Choice]:
        return admissible_choices(system, enabled, semantics)

    def choose(
        self, system: TransitionSystem, enabled: Sequence[int], semantics: Semantics
    ) -> Choice:
        return self.branches(system, enabled, semantics)[0]


def make_policy(name: Any = "priority", seed: Optional[int] = 0) -> SelectionPolicy:
    """
    Build a policy by name.

    :param name: ``"priority"``, ``"random"`` or ``"exhaustive"`` (or a policy).
    :param seed: Seed for the random policy.
    :raises ValueError: For unknown names.
    """
    if isinstance(name, SelectionPolicy):
        return name
    key = str(name).strip().lower()
    if key == "priority":
        return PriorityPolicy()
    if key == "random":
        return RandomPolicy(seed)
    if key == "exhaustive":
        return ExhaustivePolicy()
    raise ValueError(f"policy must be one of priority, random, exhaustive (got {name!r})")
