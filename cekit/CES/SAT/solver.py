from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from concurrent.futures import wait
from typing import Any, Callable, FrozenSet, Generic, Iterable, Optional, TypeVar

import z3

from ..core import Wedge
from ..exceptions import SearchExhausted, SolverFailure
from .encoding import ConstraintSet

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

# seconds granted to a worker to notice an interrupt before the caller moves on
_CANCEL_GRACE = 5.0


class SatSolver:
    """
    One private z3 context and solver, driven model by model.

    The context is never shared, so :meth:`interrupt` only stops this
    search.

    :param timeout: Optional per-check timeout in seconds.
    :type timeout: Optional[float]
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        self.ctx = z3.Context()
        self._solver = z3.Solver(ctx=self.ctx)
        if timeout is not None:
            self._solver.set("timeout", max(1, int(timeout * 1000)))
        self._interrupted = False
        self.num_checks = 0
        self.num_models = 0

    def add(self, clauses: Iterable[Any]) -> None:
        for clause in clauses:
            self._solver.add(clause)

    def next_model(self, constraints: ConstraintSet) -> FrozenSet[Wedge]:
        """
        Solve once and decode the selected wedges.

        :raises SearchExhausted: When the clauses are unsatisfiable.
        :raises SolverFailure: When the solver was interrupted, timed out or
            failed internally.
        """
        if self._interrupted:
            raise SolverFailure("SAT search was cancelled")
        self.num_checks += 1
        try:
            outcome = self._solver.check()
        except z3.Z3Exception as exc:
            raise SolverFailure(f"SAT solver error: {exc}") from exc

        if outcome == z3.sat:
            self.num_models += 1
            return constraints.selected(self._solver.model())
        if outcome == z3.unsat:
            raise SearchExhausted(f"no further models after {self.num_models}")
        if self._interrupted:
            raise SolverFailure("SAT search was cancelled")
        raise SolverFailure(f"SAT solver gave up: {self._solver.reason_unknown()}")

    def block_superset(self, literals: Iterable[Any]) -> None:
        """Forbid every model containing all of ``literals``."""
        self._solver.add(z3.Or(*[z3.Not(v) for v in literals], self.ctx))

    def block_exact(self, constraints: ConstraintSet, selected: FrozenSet[Wedge]) -> None:
        """Forbid exactly the wedge assignment ``selected``."""
        self._solver.add(
            z3.Or(
                *[
                    z3.Not(v) if w in selected else v
                    for w, v in constraints.wedge_vars.items()
                ],
                self.ctx,
            )
        )

    def interrupt(self) -> None:
        self._interrupted = True
        self.ctx.interrupt()

    @property
    def interrupted(self) -> bool:
        return self._interrupted


class SearchHandle(Generic[T]):
    """
    Runs a blocking search on a worker thread, bound to an overall timeout.

    :param search: Callable receiving the private :class:`SatSolver`.
    :type search: Callable[[SatSolver], T]
    :param timeout: Overall timeout in seconds (None waits indefinitely).
    :type timeout: Optional[float]

    .. code-block:: python

        handle = SearchHandle(lambda solver: enumerate_florets(F, enc, mode, solver), 10)
        florets = handle.result()   # raises SolverFailure after 10 s
    """

    def __init__(self, search: Callable[[SatSolver], T], timeout: Optional[float] = None) -> None:
        self.timeout = timeout
        self.solver = SatSolver(timeout=timeout)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="cekit-sat")
        self._future: Future = executor.submit(search, self.solver)
        executor.shutdown(wait=False)

    def done(self) -> bool:
        return self._future.done()

    def cancel(self) -> bool:
        """Interrupt the solver; return True once the worker has stopped."""
        LOGGER.debug("Cancelling SAT search")
        self.solver.interrupt()
        self._future.cancel()
        done, _ = wait([self._future], timeout=_CANCEL_GRACE)
        return bool(done)

    def result(self, timeout: Optional[float] = None) -> T:
        """
        Wait for the search result.

        :param timeout: Overrides the handle's timeout.
        :raises SolverFailure: On timeout (after cancelling the solver) or
            when the search itself failed.
        """
        limit = self.timeout if timeout is None else timeout
        try:
            return self._future.result(timeout=limit)
        except FutureTimeout as exc:
            LOGGER.warning("SAT search exceeded %.3gs, cancelling", limit)
            self.cancel()
            raise SolverFailure(f"SAT search timed out after {limit}s") from exc
