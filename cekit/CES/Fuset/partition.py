"""
Dot classification of a fuset.

Each dot has an *out side* (its forks against the joins that list it in their
pits) and an *in side* (its joins against the forks that list it in their
pits). A side is graded

* ``STRONG`` when both neighbour sets coincide,
* weak when they differ in one direction only (``FORK_WEAK`` if the fork
  relation has the extra neighbours, ``JOIN_WEAK`` otherwise),
* ``BROKEN`` when each relation has a neighbour the other lacks,

and is absent when both neighbour sets are empty. The dot's role follows from
which sides are present (isolated, source, sink, internal). Sources and sinks
keep a coarse strong/weak/broken grade; internal dots keep the directed grade
of both sides, giving the 23-cell table of :class:`DotClass`.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

import pandas as pd

from ..core import Dot
from .fuset import Fuset


class Grade(Enum):
    STRONG = "strong"
    FORK_WEAK = "fork-weak"
    JOIN_WEAK = "join-weak"
    BROKEN = "broken"

    @property
    def coarse(self) -> str:
        if self in (Grade.FORK_WEAK, Grade.JOIN_WEAK):
            return "weak"
        return self.value


class DotClass(Enum):
    """The 23 cells of the dot partition table."""

    ISOLATED = "isolated"

    SOURCE_STRONG = "source/strong"
    SOURCE_WEAK = "source/weak"
    SOURCE_BROKEN = "source/broken"

    SINK_STRONG = "sink/strong"
    SINK_WEAK = "sink/weak"
    SINK_BROKEN = "sink/broken"

    INTERNAL_STRONG_STRONG = "internal/strong/strong"
    INTERNAL_STRONG_FORK_WEAK = "internal/strong/fork-weak"
    INTERNAL_STRONG_JOIN_WEAK = "internal/strong/join-weak"
    INTERNAL_STRONG_BROKEN = "internal/strong/broken"
    INTERNAL_FORK_WEAK_STRONG = "internal/fork-weak/strong"
    INTERNAL_FORK_WEAK_FORK_WEAK = "internal/fork-weak/fork-weak"
    INTERNAL_FORK_WEAK_JOIN_WEAK = "internal/fork-weak/join-weak"
    INTERNAL_FORK_WEAK_BROKEN = "internal/fork-weak/broken"
    INTERNAL_JOIN_WEAK_STRONG = "internal/join-weak/strong"
    INTERNAL_JOIN_WEAK_FORK_WEAK = "internal/join-weak/fork-weak"
    INTERNAL_JOIN_WEAK_JOIN_WEAK = "internal/join-weak/join-weak"
    INTERNAL_JOIN_WEAK_BROKEN = "internal/join-weak/broken"
    INTERNAL_BROKEN_STRONG = "internal/broken/strong"
    INTERNAL_BROKEN_FORK_WEAK = "internal/broken/fork-weak"
    INTERNAL_BROKEN_JOIN_WEAK = "internal/broken/join-weak"
    INTERNAL_BROKEN_BROKEN = "internal/broken/broken"

    @property
    def role(self) -> str:
        return self.value.split("/", 1)[0]

    @property
    def is_strong(self) -> bool:
        """True when the dot has a side and every present side is strong."""
        grades = self.value.split("/")[1:]
        return bool(grades) and all(p == "strong" for p in grades)


def grade_side(fork_side: FrozenSet[Dot], join_side: FrozenSet[Dot]) -> Optional[Grade]:
    """
    Grade one side of a dot from its fork- and join-armed neighbours.

    :param fork_side: Neighbours through the fork-arming relation.
    :param join_side: Neighbours through the join-arming relation.
    :returns: :class:`Grade`, or None when both sets are empty.
    """
    if not fork_side and not join_side:
        return None
    only_fork = fork_side - join_side
    only_join = join_side - fork_side
    if only_fork and only_join:
        return Grade.BROKEN
    if only_fork:
        return Grade.FORK_WEAK
    if only_join:
        return Grade.JOIN_WEAK
    return Grade.STRONG


def side_grades(fuset: Fuset, dot: Dot) -> Tuple[Optional[Grade], Optional[Grade]]:
    """Return the (out, in) grades of ``dot``."""
    out_grade = grade_side(fuset.fork_effects(dot), fuset.join_effects(dot))
    in_grade = grade_side(fuset.fork_causes(dot), fuset.join_causes(dot))
    return out_grade, in_grade


def _cell(out_grade: Optional[Grade], in_grade: Optional[Grade]) -> DotClass:
    if out_grade is None and in_grade is None:
        return DotClass.ISOLATED
    if in_grade is None:
        return DotClass[f"SOURCE_{out_grade.coarse.upper()}"]
    if out_grade is None:
        return DotClass[f"SINK_{in_grade.coarse.upper()}"]
    return DotClass[f"INTERNAL_{out_grade.name}_{in_grade.name}"]


def classify_dot(fuset: Fuset, dot: Dot) -> DotClass:
    """
    Place ``dot`` into exactly one cell of the partition table.

    :param fuset: Fuset providing the arming relations.
    :param dot: Dot of the fuset's domain.
    :returns: The :class:`DotClass` cell.
    """
    return _cell(*side_grades(fuset, dot))


def classify(fuset: Fuset) -> Dict[Dot, DotClass]:
    """Classify every dot of the domain."""
    return {d: classify_dot(fuset, d) for d in fuset.domain}


def partition_table(fuset: Fuset) -> Dict[DotClass, List[Dot]]:
    """
    Group the domain by partition cell.

    :returns: Mapping cell -> sorted dots, for nonempty cells only.
    """
    table: Dict[DotClass, List[Dot]] = {}
    for dot, cell in classify(fuset).items():
        table.setdefault(cell, []).append(dot)
    return {cell: sorted(dots) for cell, dots in table.items()}


def partition_frame(fuset: Fuset) -> pd.DataFrame:
    """
    Tabulate the classification, one row per dot.

    :returns: DataFrame with columns ``dot``, ``role``, ``out``, ``in``, ``cell``.
    """
    rows = []
    for dot in fuset.domain:
        out_grade, in_grade = side_grades(fuset, dot)
        cell = _cell(out_grade, in_grade)
        rows.append(
            {
                "dot": dot,
                "role": cell.role,
                "out": out_grade.value if out_grade else None,
                "in": in_grade.value if in_grade else None,
                "cell": cell.value,
            }
        )
    return pd.DataFrame(rows, columns=["dot", "role", "out", "in", "cell"])
