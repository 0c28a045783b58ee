from .transition import Transition, TransitionSystem
from .semantics import (
    ExhaustivePolicy,
    PriorityPolicy,
    RandomPolicy,
    SelectionPolicy,
    Semantics,
    admissible_choices,
    conflict_free,
    conflict_free_subsets,
    is_maximal,
    make_policy,
    maximal_subsets,
)
from .runner import (
    HaltReason,
    Phase,
    Reachability,
    Runner,
    SimulationHalt,
    SimulationState,
    Step,
    Trace,
)
from .sampler import PassRecord, PassSummary, run_pass, run_passes

__all__ = [
    "Transition",
    "TransitionSystem",
    "ExhaustivePolicy",
    "PriorityPolicy",
    "RandomPolicy",
    "SelectionPolicy",
    "Semantics",
    "admissible_choices",
    "conflict_free",
    "conflict_free_subsets",
    "is_maximal",
    "make_policy",
    "maximal_subsets",
    "HaltReason",
    "Phase",
    "Reachability",
    "Runner",
    "SimulationHalt",
    "SimulationState",
    "Step",
    "Trace",
    "PassRecord",
    "PassSummary",
    "run_pass",
    "run_passes",
]
