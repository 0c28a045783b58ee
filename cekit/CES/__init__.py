"""
Public API for :mod:`cekit.CES`.

Re-exported classes
-------------------
- :class:`~cekit.CES.core.Structure`, :class:`~cekit.CES.core.Wedge`
- :class:`~cekit.CES.Fuset.fuset.Fuset`, :class:`~cekit.CES.Fuset.floret.Floret`
- :class:`~cekit.CES.SAT.search.FiringSet`, :class:`~cekit.CES.SAT.search.DeadlockReport`
- :class:`~cekit.CES.Sim.runner.Runner`, :class:`~cekit.CES.Sim.runner.SimulationHalt`
- :class:`~cekit.CES.api.CEStructure`
"""

from __future__ import annotations
from typing import List

from ..version import __version__
from .weights import BOTTOM, TOP, Bound, Weight
from .core import Domain, Marking, Polarity, Structure, Wedge
from .exceptions import (
    CESError,
    InvalidStructureError,
    SearchExhausted,
    SolverFailure,
    StructuralError,
)
from .config import RunConfig
from .Fuset import DotClass, Floret, Fuset
from .SAT import DeadlockReport, Encoding, FiringSet, Search, find_firing_components
from .Sim import HaltReason, Runner, Semantics, SimulationHalt, TransitionSystem
from .io import load_structure, structure_from_strings, structure_from_table
from .api import CEStructure, Diagnostic, validate_files

__all__: List[str] = [
    "__version__",
    "BOTTOM",
    "TOP",
    "Bound",
    "Weight",
    "Domain",
    "Marking",
    "Polarity",
    "Structure",
    "Wedge",
    "CESError",
    "InvalidStructureError",
    "SearchExhausted",
    "SolverFailure",
    "StructuralError",
    "RunConfig",
    "DotClass",
    "Floret",
    "Fuset",
    "DeadlockReport",
    "Encoding",
    "FiringSet",
    "Search",
    "find_firing_components",
    "HaltReason",
    "Runner",
    "Semantics",
    "SimulationHalt",
    "TransitionSystem",
    "load_structure",
    "structure_from_strings",
    "structure_from_table",
    "CEStructure",
    "Diagnostic",
    "validate_files",
]
