from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .config import RunConfig
from .core import Dot, Structure, Wedge
from .exceptions import CESError, StructuralError
from .Fuset.fuset import FusetSummary, summarize_fuset
from .Fuset.partition import DotClass, classify
from .io import load_structure, structure_from_strings
from .SAT.search import DeadlockReport, FiringSet, SearchResult, find_firing_components
from .Sim.runner import Reachability, Runner, SimulationHalt
from .Sim.sampler import PassSummary, run_passes
from .Sim.transition import TransitionSystem
from .weights import Weight

LOGGER = logging.getLogger(__name__)

Threshold = Mapping[Dot, int]


@dataclass
class CEStructure(Structure):
    """
    Convenience wrapper around :class:`Structure` with constructors and the
    solve / simulate pipeline.

    Firing components are computed once per encoding and search mode and
    cached until a builder changes the structure; passes then share the
    resulting :class:`TransitionSystem`.

    Typical usage::

        ces = CEStructure.from_file("Data/Examples/gcd.ces")
        ces.validate()
        components = ces.solve()
        halt = ces.go({"a": 6, "b": 4, "p": 1})
        halt.final["c"]   # 2
    """

    _results: Dict[Tuple[str, str], SearchResult] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    @classmethod
    def from_structure(cls, structure: Structure) -> "CEStructure":
        out = cls(name=structure.name, default_capacity=structure.default_capacity)
        out.merge(structure)
        out.metadata.update(structure.metadata)
        return out

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "CEStructure":
        return cls.from_structure(load_structure(path))

    @classmethod
    def from_files(cls, paths: Sequence[Union[str, Path]]) -> "CEStructure":
        """
        Merge several ``.ces`` files into one structure named after the first.

        :raises InvalidStructureError: If a file cannot be read or parsed.
        """
        if not paths:
            raise ValueError("from_files needs at least one path")
        out = cls.from_file(paths[0])
        for p in paths[1:]:
            out.merge(load_structure(p))
        out.metadata["sources"] = [str(p) for p in paths]
        return out

    @classmethod
    def from_strings(
        cls, lines: Union[str, Iterable[str]], name: Optional[str] = None
    ) -> "CEStructure":
        return cls.from_structure(structure_from_strings(lines, name=name))

    # ------------------------------------------------------------------
    # Builders (every change drops the cached firing components)
    # ------------------------------------------------------------------
    def add_dot(self, dot: Dot) -> Dot:
        if str(dot) not in self.dots:
            self._results.clear()
        return super().add_dot(dot)

    def add_wedge(self, wedge: Wedge, weight: Weight = 1) -> Wedge:
        self._results.clear()
        return super().add_wedge(wedge, weight)

    def set_capacity(self, dot: Dot, capacity: Weight) -> None:
        self._results.clear()
        super().set_capacity(dot, capacity)

    # ------------------------------------------------------------------
    # Fuset engine
    # ------------------------------------------------------------------
    def validate(self) -> FusetSummary:
        """
        Check the weighting and summarise the structural predicates.

        :raises StructuralError: If the weighting is not canonical.
        """
        fuset = self.fuset()
        fuset.validate(self.weights, self.capacity_of)
        return summarize_fuset(fuset)

    def classify(self) -> Dict[Dot, DotClass]:
        return classify(self.fuset())

    # ------------------------------------------------------------------
    # Firing components
    # ------------------------------------------------------------------
    def solve(self, config: Optional[RunConfig] = None) -> SearchResult:
        """
        Firing components under ``config.encoding`` and ``config.search``.

        :returns: :class:`FiringSet` or :class:`DeadlockReport`.
        :raises StructuralError: If the weighting is not canonical.
        :raises SolverFailure: On solver failure or timeout.
        """
        config = config or RunConfig()
        key = (config.encoding, config.search)
        if key not in self._results:
            self._results[key] = find_firing_components(
                self, config.encoding, config.search, config.timeout
            )
        return self._results[key]

    def transition_system(self, config: Optional[RunConfig] = None) -> TransitionSystem:
        """
        Transition system over the firing components; empty on deadlock.
        """
        result = self.solve(config)
        if isinstance(result, DeadlockReport):
            LOGGER.warning("%s", result)
            return TransitionSystem(self, [])
        return TransitionSystem(self, result.components)

    # ------------------------------------------------------------------
    # Simulation
    # ------------------------------------------------------------------
    def _starts(self, start: Optional[Threshold]) -> List[Threshold]:
        if start is not None:
            return [start]
        if self.starts:
            return list(self.starts)
        LOGGER.warning("No start marking for '%s', using the empty marking", self.name)
        return [{}]

    def _goals(self, goals: Optional[Sequence[Threshold]]) -> List[Threshold]:
        return list(self.goals if goals is None else goals)

    def go(
        self,
        start: Optional[Threshold] = None,
        goals: Optional[Sequence[Threshold]] = None,
        config: Optional[RunConfig] = None,
    ) -> SimulationHalt:
        """
        One pass from ``start`` (or the first declared start marking).

        :returns: :class:`SimulationHalt` with its trace.
        """
        config = config or RunConfig()
        runner = Runner(self.transition_system(config), config)
        return runner.run(self._starts(start)[0], self._goals(goals))

    def sample(
        self,
        starts: Optional[Sequence[Threshold]] = None,
        goals: Optional[Sequence[Threshold]] = None,
        config: Optional[RunConfig] = None,
    ) -> PassSummary:
        """``config.num_passes`` passes per start marking."""
        config = config or RunConfig()
        chosen = list(starts) if starts else self._starts(None)
        return run_passes(self.transition_system(config), chosen, self._goals(goals), config)

    def explore(
        self,
        start: Optional[Threshold] = None,
        goals: Optional[Sequence[Threshold]] = None,
        config: Optional[RunConfig] = None,
    ) -> Reachability:
        """Exhaustive branch exploration from one start marking."""
        config = config or RunConfig()
        runner = Runner(self.transition_system(config), config)
        return runner.explore(self._starts(start)[0], self._goals(goals))


# --------------------------------------------------------------------------- #
# Batch validation
# --------------------------------------------------------------------------- #


@dataclass(frozen=True)
class Diagnostic:
    """Outcome of validating one file."""

    path: str
    ok: bool
    message: str = ""
    n_dots: int = 0
    n_wedges: int = 0

    def __str__(self) -> str:
        if self.ok:
            return f"OK   {self.path} ({self.n_dots} dots, {self.n_wedges} wedges)"
        return f"FAIL {self.path}: {self.message}"


def _links(links) -> str:
    return ", ".join(f"{c}->{e}" for c, e in links)


def validate_file(path: Union[str, Path], syntax_only: bool = False) -> Diagnostic:
    """
    Load and validate one file.

    :param path: File to check.
    :param syntax_only: Stop after parsing.
    :raises CESError: If the file is unreadable or malformed.
    :raises StructuralError: If the weighting is not canonical or the
        structure is incoherent.
    """
    ces = CEStructure.from_file(path)
    if syntax_only:
        return Diagnostic(str(path), True, "", len(ces.dots), len(ces.weights))
    summary = ces.validate()
    if not summary.coherent:
        parts = []
        if summary.misstips:
            parts.append(f"misstips {_links(summary.misstips)}")
        if summary.weak_followers:
            parts.append(f"weak followers {_links(summary.weak_followers)}")
        raise StructuralError(f"Incoherent structure '{ces.name}': {'; '.join(parts)}")
    return Diagnostic(str(path), True, "", summary.n_dots, summary.n_wedges)


def validate_files(
    paths: Iterable[Union[str, Path]], abort: bool = False, syntax_only: bool = False
) -> List[Diagnostic]:
    """
    Validate every file, one :class:`Diagnostic` each.

    :param paths: Files to check.
    :param abort: Re-raise the first failure instead of recording it.
    :param syntax_only: Only parse the files.
    :raises CESError: On the first failure when ``abort`` is set.
    """
    out: List[Diagnostic] = []
    for p in paths:
        try:
            out.append(validate_file(p, syntax_only=syntax_only))
        except CESError as exc:
            if abort:
                raise
            LOGGER.info("Validation failed for %s: %s", p, exc)
            out.append(Diagnostic(str(p), False, str(exc)))
    return out


__all__ = [
    "CEStructure",
    "Diagnostic",
    "validate_file",
    "validate_files",
    "FiringSet",
    "DeadlockReport",
]
