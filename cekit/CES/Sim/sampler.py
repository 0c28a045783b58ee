from __future__ import annotations

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..config import RunConfig
from ..core import Dot, Marking
from .runner import HaltReason, MarkingLike, Runner, SimulationHalt
from .semantics import make_policy
from .transition import TransitionSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PassRecord:
    """One finished pass: which start, which pass index, how it halted."""

    start_index: int
    pass_index: int
    seed: int
    halt: SimulationHalt


@dataclass
class PassSummary:
    """
    Aggregate of many passes.

    :param records: Every finished pass, ordered by start then pass index.
    """

    records: List[PassRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def reason_counts(self) -> Dict[str, int]:
        out: Dict[str, int] = {r.value: 0 for r in HaltReason}
        for rec in self.records:
            out[rec.halt.reason.value] += 1
        return out

    @property
    def reachable_markings(self) -> List[Marking]:
        """Every marking some pass went through, in order of first visit."""
        seen: Dict[Tuple[int, ...], Marking] = {}
        for rec in self.records:
            for marking in rec.halt.markings:
                seen.setdefault(marking.key(), marking)
        return list(seen.values())

    @property
    def final_markings(self) -> List[Marking]:
        """Distinct final markings, in order of first appearance."""
        seen: Dict[Tuple[int, ...], Marking] = {}
        for rec in self.records:
            seen.setdefault(rec.halt.final.key(), rec.halt.final)
        return list(seen.values())

    @property
    def step_distribution(self) -> Dict[int, int]:
        return dict(sorted(Counter(rec.halt.steps for rec in self.records).items()))

    def step_stats(self) -> Dict[str, float]:
        steps = np.asarray([rec.halt.steps for rec in self.records], dtype=float)
        if steps.size == 0:
            return {"min": 0.0, "mean": 0.0, "max": 0.0}
        return {
            "min": float(steps.min()),
            "mean": float(steps.mean()),
            "max": float(steps.max()),
        }

    def to_frame(self) -> pd.DataFrame:
        """One row per pass with its start, seed, halt reason, steps and final marking."""
        rows = [
            {
                "start": rec.start_index,
                "pass": rec.pass_index,
                "seed": rec.seed,
                "reason": rec.halt.reason.value,
                "steps": rec.halt.steps,
                "goal": rec.halt.goal_index,
                "final": str(rec.halt.final),
            }
            for rec in self.records
        ]
        return pd.DataFrame(
            rows, columns=["start", "pass", "seed", "reason", "steps", "goal", "final"]
        )

    def describe(self) -> str:
        stats = self.step_stats()
        lines = [
            f"{len(self.records)} passes, {len(self.reachable_markings)} reachable markings, "
            f"{len(self.final_markings)} distinct final markings",
            f"steps min/mean/max: {stats['min']:.0f}/{stats['mean']:.2f}/{stats['max']:.0f}",
        ]
        for reason, n in self.reason_counts.items():
            if n:
                lines.append(f"  {reason}: {n}")
        return "\n".join(lines)


# --------------------------------------------------------------------------- #
# Pass worker
# --------------------------------------------------------------------------- #


def run_pass(
    system: TransitionSystem,
    start: MarkingLike,
    goals: Sequence[Mapping[Dot, int]],
    config: RunConfig,
    pass_index: int = 0,
    start_index: int = 0,
    record_trace: bool = False,
) -> PassRecord:
    """
    Run one independent pass with its own state and policy.

    The policy is seeded with ``config.seed + pass_index``.
    """
    seed = config.seed + pass_index
    runner = Runner(system, config, make_policy(config.policy, seed))
    halt = runner.run(start, goals, record_trace=record_trace)
    return PassRecord(start_index, pass_index, seed, halt)


def _run_pass_worker(
    args: Tuple[TransitionSystem, Marking, Sequence[Mapping[Dot, int]], RunConfig, int, int],
) -> PassRecord:
    system, start, goals, config, pass_index, start_index = args
    return run_pass(system, start, goals, config, pass_index, start_index)


def run_passes(
    system: TransitionSystem,
    starts: Sequence[MarkingLike],
    goals: Sequence[Mapping[Dot, int]] = (),
    config: Optional[RunConfig] = None,
) -> PassSummary:
    """
    Run ``config.num_passes`` passes per start marking.

    With ``config.workers > 1`` passes run on a thread pool; the transition
    system is shared read-only and every pass owns its marking vector.

    :param system: Transition system.
    :param starts: Start markings.
    :param goals: Goal thresholds.
    :param config: Run settings.
    :returns: :class:`PassSummary` ordered by start and pass index.
    :raises StructuralError: If a start marking is out of scope.
    """
    config = config or RunConfig()
    binder = Runner(system, config)
    bound = [binder.marking(s) for s in starts]
    tasks = [
        (system, start, goals, config, k, si)
        for si, start in enumerate(bound)
        for k in range(config.num_passes)
    ]
    logger.info(
        "Running %d passes over %d start markings (%d workers)",
        len(tasks),
        len(bound),
        config.workers,
    )

    records: List[PassRecord] = []
    if config.workers > 1 and len(tasks) > 1:
        with ThreadPoolExecutor(max_workers=config.workers) as ex:
            records.extend(ex.map(_run_pass_worker, tasks))
    else:
        for t in tasks:
            records.append(_run_pass_worker(t))
    return PassSummary(records)
