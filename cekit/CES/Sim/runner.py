"""
Single-pass simulation and exhaustive state exploration.

Each pass walks the phases ``IDLE -> EVALUATE_ENABLED -> FIRE -> APPLY`` until
it lands in ``HALTED`` with a :class:`HaltReason`. The goal is tested before
every step, so a start marking that already meets a goal halts after zero
steps. Halting is never an exception: :meth:`Runner.run` always returns a
:class:`SimulationHalt`.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, List, Mapping, Optional, Sequence, Set, Tuple, Union

import numpy as np

from ..config import RunConfig
from ..core import Dot, Marking
from ..exceptions import StructuralError
from .semantics import Choice, SelectionPolicy, Semantics, admissible_choices, make_policy
from .transition import TransitionSystem

LOGGER = logging.getLogger(__name__)

MarkingLike = Union[Marking, Mapping[Dot, int]]


class Phase(Enum):
    IDLE = "idle"
    EVALUATE_ENABLED = "evaluate-enabled"
    FIRE = "fire"
    APPLY = "apply"
    HALTED = "halted"


class HaltReason(Enum):
    GOAL_REACHED = "goal-reached"
    MAX_STEPS = "max-steps"
    NO_ENABLED_TRANSITION = "no-enabled-transition"

    def __str__(self) -> str:
        return self.value


@dataclass
class SimulationState:
    """Mutable state owned by exactly one pass."""

    vector: np.ndarray
    step: int = 0
    phase: Phase = Phase.IDLE


@dataclass(frozen=True)
class Step:
    index: int
    fired: Choice
    marking: Marking


@dataclass
class Trace:
    """Start marking followed by one :class:`Step` per fired choice."""

    start: Marking
    steps: List[Step] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def fired(self) -> List[Choice]:
        return [s.fired for s in self.steps]

    @property
    def markings(self) -> List[Marking]:
        return [self.start] + [s.marking for s in self.steps]

    def describe(self, system: Optional[TransitionSystem] = None) -> List[str]:
        lines = [f"  0: {self.start}"]
        for s in self.steps:
            if system is None:
                names = " ".join(f"t{i}" for i in s.fired)
            else:
                names = " + ".join(str(system[i].floret) for i in s.fired)
            lines.append(f"{s.index:>3}: {names}  ->  {s.marking}")
        return lines


@dataclass(frozen=True)
class SimulationHalt:
    """
    Typed result of a pass.

    :param reason: Why the pass stopped.
    :param steps: Number of steps taken.
    :param final: Marking at the halt.
    :param goal_index: Index of the first goal met, if any.
    :param trace: Full trace when recorded.
    :param visited: Keys of every marking the pass went through, start and
        final included, in order of first visit. Kept with or without a trace.
    """

    reason: HaltReason
    steps: int
    final: Marking
    goal_index: Optional[int] = None
    trace: Optional[Trace] = None
    visited: Tuple[Tuple[int, ...], ...] = ()

    @property
    def goal_reached(self) -> bool:
        return self.reason is HaltReason.GOAL_REACHED

    @property
    def markings(self) -> List[Marking]:
        return [Marking(self.final.domain, key) for key in self.visited]

    def __str__(self) -> str:
        return f"halted ({self.reason}) after {self.steps} steps at {self.final}"


@dataclass
class Reachability:
    """
    Result of :meth:`Runner.explore`.

    :param markings: Every reached marking.
    :param goal_markings: Reached markings meeting some goal.
    :param deadlocks: Reached markings enabling nothing.
    :param truncated: True when ``max_steps`` cut the exploration short.
    :param depth: Deepest level visited.
    """

    markings: List[Marking] = field(default_factory=list)
    goal_markings: List[Marking] = field(default_factory=list)
    deadlocks: List[Marking] = field(default_factory=list)
    truncated: bool = False
    depth: int = 0

    @property
    def goal_reachable(self) -> bool:
        return bool(self.goal_markings)

    def __len__(self) -> int:
        return len(self.markings)


class Runner:
    """
    Fires transitions of a :class:`TransitionSystem` under one semantics.

    :param system: Shared, read-only transition system.
    :param config: Run settings (semantics, ``max_steps``, policy, seed).
    :param policy: Explicit policy; built from ``config`` when omitted.

    .. code-block:: python

        runner = Runner(system, RunConfig(semantics="max"))
        halt = runner.run({"a": 6, "b": 4, "p": 1}, goals=[{"done": 1}])
        halt.reason, halt.final["c"]
    """

    def __init__(
        self,
        system: TransitionSystem,
        config: Optional[RunConfig] = None,
        policy: Optional[SelectionPolicy] = None,
    ) -> None:
        self.system = system
        self.config = config or RunConfig()
        self.semantics = Semantics.parse(self.config.semantics)
        self.policy = policy or make_policy(self.config.policy, self.config.seed)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def marking(self, start: MarkingLike) -> Marking:
        """
        Bind ``start`` to the system's domain and check its scope.

        :raises StructuralError: If a dot is unknown or a count is out of scope.
        """
        if isinstance(start, Marking):
            marking = start
        else:
            marking = Marking.from_mapping(self.system.domain, start)
        if not marking.within_scope(self.system.envelope):
            raise StructuralError(f"Start marking {marking} is out of scope")
        return marking

    @staticmethod
    def _goal_index(
        marking: Marking, goals: Sequence[Mapping[Dot, int]]
    ) -> Optional[int]:
        return next((k for k, goal in enumerate(goals) if marking.satisfies(goal)), None)

    def _as_marking(self, vector: np.ndarray) -> Marking:
        return Marking.from_vector(self.system.domain, vector)

    # ------------------------------------------------------------------
    # Single pass
    # ------------------------------------------------------------------
    def run(
        self,
        start: MarkingLike,
        goals: Sequence[Mapping[Dot, int]] = (),
        record_trace: bool = True,
    ) -> SimulationHalt:
        """
        Run one pass from ``start``.

        :param start: Start marking (a :class:`Marking` or a mapping).
        :param goals: Goal thresholds, any of which ends the pass.
        :param record_trace: Keep every intermediate marking.
        :returns: :class:`SimulationHalt`.
        :raises StructuralError: If ``start`` is out of scope.
        """
        first = self.marking(start)
        state = SimulationState(first.vector())
        trace = Trace(first) if record_trace else None
        visited: Dict[Tuple[int, ...], None] = {}
        max_steps = self.config.max_steps

        while True:
            state.phase = Phase.EVALUATE_ENABLED
            current = self._as_marking(state.vector)
            visited.setdefault(current.key())
            goal = self._goal_index(current, goals)
            if goal is not None:
                reason = HaltReason.GOAL_REACHED
                break
            if state.step >= max_steps:
                reason = HaltReason.MAX_STEPS
                break
            enabled = self.system.enabled(state.vector)
            if not enabled:
                reason = HaltReason.NO_ENABLED_TRANSITION
                break

            state.phase = Phase.FIRE
            choice = self.policy.choose(self.system, enabled, self.semantics)

            state.phase = Phase.APPLY
            state.vector = self.system.fire(state.vector, choice)
            state.step += 1
            if trace is not None:
                trace.steps.append(Step(state.step, choice, self._as_marking(state.vector)))

        state.phase = Phase.HALTED
        LOGGER.debug("Pass halted: %s after %d steps", reason.value, state.step)
        return SimulationHalt(
            reason=reason,
            steps=state.step,
            final=current,
            goal_index=goal,
            trace=trace,
            visited=tuple(visited),
        )

    # ------------------------------------------------------------------
    # Exhaustive analysis
    # ------------------------------------------------------------------
    def explore(
        self, start: MarkingLike, goals: Sequence[Mapping[Dot, int]] = ()
    ) -> Reachability:
        """
        Breadth-first search over every admissible choice up to ``max_steps``.

        Goal markings are recorded but not expanded further.

        :param start: Start marking.
        :param goals: Goal thresholds.
        :returns: :class:`Reachability`.
        """
        first = self.marking(start)
        seen: Set[Tuple[int, ...]] = {first.key()}
        result = Reachability(markings=[first])
        fringe: Deque[Tuple[np.ndarray, int]] = deque([(first.vector(), 0)])
        max_steps = self.config.max_steps

        while fringe:
            vector, depth = fringe.popleft()
            result.depth = max(result.depth, depth)
            marking = self._as_marking(vector)
            if self._goal_index(marking, goals) is not None:
                result.goal_markings.append(marking)
                continue
            enabled = self.system.enabled(vector)
            if not enabled:
                result.deadlocks.append(marking)
                continue
            if depth >= max_steps:
                result.truncated = True
                continue
            for choice in admissible_choices(self.system, enabled, self.semantics):
                nxt = self.system.fire(vector, choice)
                key = tuple(int(n) for n in nxt)
                if key in seen:
                    continue
                seen.add(key)
                result.markings.append(self._as_marking(nxt))
                fringe.append((nxt, depth + 1))

        LOGGER.info(
            "Explored %d markings (%d goal, %d dead)%s",
            len(result.markings),
            len(result.goal_markings),
            len(result.deadlocks),
            " [truncated]" if result.truncated else "",
        )
        return result
