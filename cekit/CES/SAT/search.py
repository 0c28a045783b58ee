from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Tuple, Union

from ..core import Dot, Structure, Wedge
from ..exceptions import SearchExhausted, SolverFailure
from ..Fuset.floret import Floret, split_florets
from ..Fuset.fuset import Fuset, Link
from .encoding import Encoding, build_constraints
from .solver import SatSolver, SearchHandle

LOGGER = logging.getLogger(__name__)


class Search(Enum):
    MIN = "min"
    ALL = "all"

    @classmethod
    def parse(cls, value: Any) -> "Search":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        if key in ("min", "minimal", "min-solutions"):
            return cls.MIN
        if key in ("all", "all-solutions"):
            return cls.ALL
        raise SolverFailure(f"Unsupported SAT search mode: {value!r}")


@dataclass(frozen=True)
class FiringSet:
    """
    Firing components of a structure, in canonical order.

    :param components: Florets sorted by their arm dots.
    :param encoding: Encoding used by the search.
    :param search: Search mode used.
    :param uncovered: Dots of the span that no component touches.
    """

    components: Tuple[Floret, ...]
    encoding: Encoding = Encoding.PORT_LINK
    search: Search = Search.MIN
    uncovered: Tuple[Dot, ...] = ()

    def __len__(self) -> int:
        return len(self.components)

    def __iter__(self) -> Iterator[Floret]:
        return iter(self.components)

    def __getitem__(self, i: int) -> Floret:
        return self.components[i]

    def relations(self) -> List[Tuple[Tuple[Dot, ...], Tuple[Link, ...]]]:
        """Pre-set and links per component; identical across encodings."""
        return [(fc.pre_set, fc.links) for fc in self.components]


@dataclass(frozen=True)
class DeadlockReport:
    """
    Normal result of a search that found no firing component.

    :param name: Name of the structure.
    :param blocking: Dots incident to an unmatched link.
    :param unreachable: Dots depending on blocking dots, or the whole span
        when nothing blocks explicitly.
    :param misstips: Fork links without a join counterpart.
    :param weak_followers: Join links without a fork counterpart.
    """

    name: str
    blocking: Tuple[Dot, ...]
    unreachable: Tuple[Dot, ...]
    misstips: Tuple[Link, ...] = ()
    weak_followers: Tuple[Link, ...] = ()

    def __str__(self) -> str:
        lines = [f"Structural deadlock in '{self.name}'."]
        if self.blocking:
            lines.append(f"  blocking dots: {' '.join(self.blocking)}")
        if self.unreachable:
            lines.append(f"  unreachable dots: {' '.join(self.unreachable)}")
        for x, y in self.misstips:
            lines.append(f"  misstip: {x} -> {y} has no matching join")
        for x, y in self.weak_followers:
            lines.append(f"  weak follower: {x} -> {y} has no matching fork")
        return "\n".join(lines)


SearchResult = Union[FiringSet, DeadlockReport]


def enumerate_florets(
    fuset: Fuset,
    encoding: Any = Encoding.PORT_LINK,
    search: Any = Search.MIN,
    solver: Optional[SatSolver] = None,
) -> List[Floret]:
    """
    Enumerate every floret of ``fuset`` with a SAT solver.

    ``MIN`` blocks each new floret (and thus every superset of it) after it
    is found; ``ALL`` blocks each whole model and collects the florets of
    every model. Both return the same set.

    :param fuset: Validated fuset.
    :param encoding: :class:`Encoding` or its name.
    :param search: :class:`Search` or its name.
    :param solver: Solver to drive; a fresh one if None.
    :returns: Florets in canonical order (empty on structural deadlock).
    :raises SolverFailure: On solver malfunction or cancellation.
    """
    mode = Search.parse(search)
    solver = solver or SatSolver()
    constraints = build_constraints(encoding, fuset, solver.ctx)
    solver.add(constraints.clauses)
    LOGGER.debug(
        "Encoded %r as %d %s clauses", fuset, len(constraints), constraints.encoding.value
    )

    found: Dict[FrozenSet[Wedge], Floret] = {}
    while True:
        try:
            selected = solver.next_model(constraints)
        except SearchExhausted:
            break
        for floret in split_florets(fuset.restrict(selected)):
            if floret.wedges in found:
                continue
            found[floret.wedges] = floret
            LOGGER.debug("Firing component %s", floret)
            if mode is Search.MIN:
                solver.block_superset(constraints.wedge_vars[w] for w in floret.wedges)
        if mode is Search.ALL:
            solver.block_exact(constraints, selected)

    LOGGER.info(
        "Found %d firing components in %d models", len(found), solver.num_models
    )
    return sorted(found.values(), key=Floret.sort_key)


def deadlock_report(fuset: Fuset, name: str = "anonymous") -> DeadlockReport:
    """
    Explain why ``fuset`` has no firing component.

    :param fuset: Fuset without florets.
    :param name: Structure name for the report.
    :returns: :class:`DeadlockReport`.
    """
    misstips = tuple(fuset.misstips())
    weak = tuple(fuset.weak_followers())
    blocking = sorted({d for link in misstips + weak for d in link})
    if blocking:
        unreachable = sorted(fuset.reachable_from(blocking).difference(blocking))
    else:
        unreachable = sorted(fuset.span)
    return DeadlockReport(
        name=name,
        blocking=tuple(blocking),
        unreachable=tuple(unreachable),
        misstips=misstips,
        weak_followers=weak,
    )


def start_search(
    structure: Structure,
    encoding: Any = Encoding.PORT_LINK,
    search: Any = Search.MIN,
    timeout: Optional[float] = None,
) -> SearchHandle:
    """
    Validate ``structure`` and start a cancellable search for its florets.

    :raises StructuralError: If the weighting is not canonical.
    :raises SolverFailure: If the encoding or search mode is unsupported.
    """
    enc = Encoding.parse(encoding)
    mode = Search.parse(search)
    fuset = structure.fuset()
    fuset.validate(structure.weights, structure.capacity_of)
    return SearchHandle(lambda solver: enumerate_florets(fuset, enc, mode, solver), timeout)


def find_firing_components(
    structure: Structure,
    encoding: Any = Encoding.PORT_LINK,
    search: Any = Search.MIN,
    timeout: Optional[float] = None,
) -> SearchResult:
    """
    Compute the firing components of ``structure``.

    :param structure: Structure to solve.
    :param encoding: ``port-link`` or ``fork-join``.
    :param search: ``min`` or ``all``.
    :param timeout: Overall timeout in seconds.
    :returns: :class:`FiringSet`, or :class:`DeadlockReport` when none exist.
    :raises StructuralError: If the weighting is not canonical.
    :raises SolverFailure: On solver failure, timeout or bad configuration.

    .. code-block:: python

        result = find_firing_components(structure, "fork-join", "min")
        if isinstance(result, DeadlockReport):
            print(result)
    """
    enc = Encoding.parse(encoding)
    mode = Search.parse(search)
    handle = start_search(structure, enc, mode, timeout)
    florets = handle.result()
    fuset = structure.fuset()
    if not florets:
        return deadlock_report(fuset, structure.name)
    covered = {d for fc in florets for d in fc.span}
    return FiringSet(
        components=tuple(florets),
        encoding=enc,
        search=mode,
        uncovered=tuple(sorted(fuset.span - covered)),
    )
