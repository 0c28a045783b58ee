from __future__ import annotations

from typing import Optional


class CESError(RuntimeError):
    """Base class for all cause-effect structure errors."""


class StructuralError(CESError):
    """
    Raised when a wedge or its weighting violates canonical consistency.

    Covers empty pits, the nonzero-product rule, the integer-sum rule and the
    scope-bound rule. The offending dot (and wedge, when known) are kept for
    diagnostics.
    """

    def __init__(
        self, message: str, *, dot: Optional[str] = None, wedge: Optional[object] = None
    ) -> None:
        super().__init__(message)
        self.dot = dot
        self.wedge = wedge


class InvalidStructureError(CESError):
    """Raised when a structure description is malformed or cannot be parsed."""


class SolverFailure(CESError):
    """Raised when the SAT backend malfunctions, times out or is misconfigured."""


class SearchExhausted(CESError):
    """Raised by the solver driver when no further model exists."""
