from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Tuple,
)

import numpy as np

from .exceptions import StructuralError
from .weights import TOP, Weight, as_float, check_weight, format_weight, is_finite

if TYPE_CHECKING:  # pragma: no cover
    from .Fuset.fuset import Fuset

Dot = str


# ---------------------------------------------------------------------------
# Wedges
# ---------------------------------------------------------------------------


class Polarity(Enum):
    """Side of a wedge: a fork points from its tip, a join into its tip."""

    FORK = "fork"
    JOIN = "join"


@dataclass(frozen=True)
class Wedge:
    """
    A fork ``(tip, pit)`` or a join ``(pit, tip)``.

    :param polarity: :class:`Polarity` of the wedge.
    :type polarity: Polarity
    :param tip: The dot the wedge is attached to.
    :type tip: str
    :param pit: Nonempty set of arm dots.
    :type pit: FrozenSet[str]
    :raises StructuralError: If the pit is empty.
    """

    polarity: Polarity
    tip: Dot
    pit: FrozenSet[Dot]

    def __post_init__(self) -> None:
        pit = frozenset(str(d) for d in self.pit)
        if not pit:
            raise StructuralError(
                f"Empty pit in {self.polarity.value} at '{self.tip}'", dot=self.tip
            )
        object.__setattr__(self, "pit", pit)
        object.__setattr__(self, "tip", str(self.tip))

    @classmethod
    def fork(cls, tip: Dot, pit: Iterable[Dot]) -> "Wedge":
        """Build the fork ``tip -> pit``."""
        return cls(Polarity.FORK, tip, frozenset(pit))

    @classmethod
    def join(cls, pit: Iterable[Dot], tip: Dot) -> "Wedge":
        """Build the join ``pit -> tip``."""
        return cls(Polarity.JOIN, tip, frozenset(pit))

    @property
    def is_fork(self) -> bool:
        return self.polarity is Polarity.FORK

    @property
    def dots(self) -> FrozenSet[Dot]:
        return self.pit | {self.tip}

    def links(self) -> Iterator[Tuple[Dot, Dot]]:
        """Yield the (cause, effect) arrows this wedge arms."""
        for arm in sorted(self.pit):
            if self.is_fork:
                yield (self.tip, arm)
            else:
                yield (arm, self.tip)

    def sort_key(self) -> Tuple[int, Dot, Tuple[Dot, ...]]:
        return (0 if self.is_fork else 1, self.tip, tuple(sorted(self.pit)))

    def __str__(self) -> str:
        arms = " ".join(sorted(self.pit))
        if self.is_fork:
            return f"{self.tip} -> ({arms})"
        return f"({arms}) -> {self.tip}"


# ---------------------------------------------------------------------------
# Domain and markings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Domain:
    """
    Ordered, immutable set of dots; fixes the layout of marking vectors.

    :param dots: Dots in vector order.
    :type dots: Tuple[str, ...]
    """

    dots: Tuple[Dot, ...]
    _index: Dict[Dot, int] = field(
        init=False, repr=False, compare=False, hash=False, default_factory=dict
    )

    def __post_init__(self) -> None:
        dots = tuple(str(d) for d in self.dots)
        if len(set(dots)) != len(dots):
            raise StructuralError("Duplicate dots in domain")
        object.__setattr__(self, "dots", dots)
        object.__setattr__(self, "_index", {d: i for i, d in enumerate(dots)})

    def index(self, dot: Dot) -> int:
        try:
            return self._index[dot]
        except KeyError:
            raise StructuralError(f"Unknown dot '{dot}'", dot=dot) from None

    def __len__(self) -> int:
        return len(self.dots)

    def __iter__(self) -> Iterator[Dot]:
        return iter(self.dots)

    def __contains__(self, dot: object) -> bool:
        return dot in self._index

    def vector(self, counts: Optional[Mapping[Dot, int]] = None) -> np.ndarray:
        """
        Dense integer vector with ``counts`` placed at their dot indices.

        :param counts: Optional mapping dot -> count (missing dots are 0).
        :returns: ``numpy.ndarray`` of dtype ``int64``.
        """
        vec = np.zeros(len(self.dots), dtype=np.int64)
        for dot, n in (counts or {}).items():
            vec[self.index(dot)] = int(n)
        return vec


@dataclass(frozen=True)
class Marking:
    """
    Immutable token vector over a :class:`Domain`.

    :param domain: Domain fixing the dot order.
    :param tokens: Token count per dot, in domain order.
    """

    domain: Domain
    tokens: Tuple[int, ...]

    def __post_init__(self) -> None:
        tokens = tuple(int(n) for n in self.tokens)
        if len(tokens) != len(self.domain):
            raise StructuralError(
                f"Marking has {len(tokens)} entries, domain has {len(self.domain)}"
            )
        if any(n < 0 for n in tokens):
            raise StructuralError("Negative token count in marking")
        object.__setattr__(self, "tokens", tokens)

    @classmethod
    def from_mapping(cls, domain: Domain, counts: Mapping[Dot, int]) -> "Marking":
        return cls(domain, tuple(domain.vector(counts).tolist()))

    @classmethod
    def from_vector(cls, domain: Domain, vec: np.ndarray) -> "Marking":
        return cls(domain, tuple(int(n) for n in vec))

    def vector(self) -> np.ndarray:
        return np.asarray(self.tokens, dtype=np.int64)

    def __getitem__(self, dot: Dot) -> int:
        return self.tokens[self.domain.index(dot)]

    def as_dict(self, *, nonzero: bool = True) -> Dict[Dot, int]:
        return {
            d: n for d, n in zip(self.domain.dots, self.tokens) if n or not nonzero
        }

    def key(self) -> Tuple[int, ...]:
        return self.tokens

    def satisfies(self, threshold: Mapping[Dot, int]) -> bool:
        """True if every dot of ``threshold`` holds at least that many tokens."""
        return all(self[d] >= int(n) for d, n in threshold.items())

    def within_scope(self, envelope: np.ndarray) -> bool:
        vec = self.vector()
        return bool(np.all(vec >= 0) and np.all(vec <= envelope))

    def __str__(self) -> str:
        items = self.as_dict()
        if not items:
            return "{}"
        return "{" + ", ".join(f"{d}:{n}" for d, n in items.items()) + "}"


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


@dataclass
class Structure:
    """
    Already-validated abstract c-e structure handed over by a structure provider.

    :param name: Human-readable name.
    :type name: str
    :param dots: Dots in declaration order (the domain order).
    :type dots: List[str]
    :param weights: Weight per wedge; every wedge of the structure is a key.
    :type weights: Dict[Wedge, Weight]
    :param capacities: Capacity per dot; dots not listed use ``default_capacity``.
    :type capacities: Dict[str, Weight]
    :param default_capacity: Capacity of undeclared dots (``1``, as in
        elementary c-e structures).
    :type default_capacity: Weight
    :param starts: Declared start markings.
    :type starts: List[Dict[str, int]]
    :param goals: Declared goal thresholds (a disjunction).
    :type goals: List[Dict[str, int]]
    :param metadata: Free-form provenance such as the source path.
    :type metadata: Dict[str, Any]
    """

    name: str = "anonymous"
    dots: List[Dot] = field(default_factory=list)
    weights: Dict[Wedge, Weight] = field(default_factory=dict)
    capacities: Dict[Dot, Weight] = field(default_factory=dict)
    default_capacity: Weight = 1
    starts: List[Dict[Dot, int]] = field(default_factory=list)
    goals: List[Dict[Dot, int]] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    # ------------------------------------------------------------------
    # Builders
    # ------------------------------------------------------------------
    def add_dot(self, dot: Dot) -> Dot:
        dot = str(dot)
        if dot not in self.dots:
            self.dots.append(dot)
        return dot

    def add_wedge(self, wedge: Wedge, weight: Weight = 1) -> Wedge:
        """
        Register ``wedge`` with ``weight``.

        :raises StructuralError: If the wedge is already present with a
            different weight.
        """
        weight = check_weight(weight)
        for dot in sorted(wedge.dots):
            self.add_dot(dot)
        previous = self.weights.get(wedge)
        if previous is not None and previous != weight:
            raise StructuralError(
                f"Conflicting weights {format_weight(previous)} and "
                f"{format_weight(weight)} for {wedge}",
                dot=wedge.tip,
                wedge=wedge,
            )
        self.weights[wedge] = weight
        return wedge

    def set_capacity(self, dot: Dot, capacity: Weight) -> None:
        capacity = check_weight(capacity)
        if capacity is not TOP and not (is_finite(capacity) and capacity > 0):
            raise StructuralError(
                f"Capacity of '{dot}' must be a positive integer or ⊤", dot=dot
            )
        self.capacities[self.add_dot(dot)] = capacity

    def add_start(self, counts: Mapping[Dot, int]) -> None:
        self.starts.append({self.add_dot(d): int(n) for d, n in counts.items()})

    def add_goal(self, threshold: Mapping[Dot, int]) -> None:
        self.goals.append({self.add_dot(d): int(n) for d, n in threshold.items()})

    def merge(self, other: "Structure") -> "Structure":
        """Fold ``other`` into this structure (wedges, scope, starts, goals)."""
        for dot in other.dots:
            self.add_dot(dot)
        for wedge, weight in other.weights.items():
            self.add_wedge(wedge, weight)
        for dot, cap in other.capacities.items():
            self.set_capacity(dot, cap)
        self.starts.extend(dict(s) for s in other.starts)
        self.goals.extend(dict(g) for g in other.goals)
        return self

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def domain(self) -> Domain:
        return Domain(tuple(self.dots))

    @property
    def wedges(self) -> List[Wedge]:
        return sorted(self.weights, key=Wedge.sort_key)

    def weight_of(self, wedge: Wedge) -> Weight:
        try:
            return self.weights[wedge]
        except KeyError:
            raise StructuralError(f"{wedge} is not part of '{self.name}'") from None

    def capacity_of(self, dot: Dot) -> Weight:
        return self.capacities.get(dot, self.default_capacity)

    def envelope(self) -> np.ndarray:
        """Capacity vector in domain order, ``inf`` where unbounded."""
        return np.asarray([as_float(self.capacity_of(d)) for d in self.dots])

    def fuset(self) -> "Fuset":
        from .Fuset.fuset import Fuset

        return Fuset(self.weights, domain=self.dots)

    def __repr__(self) -> str:
        return (
            f"Structure(name={self.name!r}, n_dots={len(self.dots)}, "
            f"n_wedges={len(self.weights)})"
        )
