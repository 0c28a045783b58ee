import time
import unittest

from cekit.CES.core import Wedge
from cekit.CES.exceptions import SearchExhausted, SolverFailure
from cekit.CES.Fuset.fuset import Fuset
from cekit.CES.io import structure_from_strings
from cekit.CES.SAT.encoding import build_constraints
from cekit.CES.SAT.search import find_firing_components, start_search
from cekit.CES.SAT.solver import SatSolver, SearchHandle


def _wait_for_interrupt(solver):
    while not solver.interrupted:
        time.sleep(0.01)
    raise SolverFailure("stopped")


class TestSatSolver(unittest.TestCase):

    def setUp(self):
        self.arrow = [Wedge.fork("a", ["x"]), Wedge.join(["a"], "x")]
        self.fuset = Fuset(self.arrow)

    def test_single_model_then_exhausted(self):
        solver = SatSolver()
        cs = build_constraints("fork-join", self.fuset, solver.ctx)
        solver.add(cs.clauses)
        model = solver.next_model(cs)
        self.assertEqual(model, frozenset(self.arrow))
        solver.block_exact(cs, model)
        with self.assertRaises(SearchExhausted):
            solver.next_model(cs)
        self.assertEqual(solver.num_models, 1)
        self.assertEqual(solver.num_checks, 2)

    def test_block_superset(self):
        solver = SatSolver()
        cs = build_constraints("port-link", self.fuset, solver.ctx)
        solver.add(cs.clauses)
        model = solver.next_model(cs)
        solver.block_superset(cs.wedge_vars[w] for w in model)
        with self.assertRaises(SearchExhausted):
            solver.next_model(cs)

    def test_interrupted_solver_refuses_to_run(self):
        solver = SatSolver()
        cs = build_constraints("fork-join", self.fuset, solver.ctx)
        solver.interrupt()
        self.assertTrue(solver.interrupted)
        with self.assertRaises(SolverFailure):
            solver.next_model(cs)


class TestSearchHandle(unittest.TestCase):

    def test_result(self):
        handle = SearchHandle(lambda solver: 42)
        self.assertEqual(handle.result(), 42)
        self.assertTrue(handle.done())

    def test_failure_propagates(self):
        def broken(solver):
            raise SolverFailure("boom")

        handle = SearchHandle(broken)
        with self.assertRaises(SolverFailure):
            handle.result()

    def test_timeout_cancels_worker(self):
        handle = SearchHandle(_wait_for_interrupt, timeout=0.1)
        with self.assertRaises(SolverFailure):
            handle.result()
        self.assertTrue(handle.solver.interrupted)
        self.assertTrue(handle.done())

    def test_cancel(self):
        handle = SearchHandle(_wait_for_interrupt)
        self.assertTrue(handle.cancel())
        self.assertTrue(handle.done())


class TestSolverTimeout(unittest.TestCase):
    """Enumerating every partial matching of a 7x7 biclique outlasts one second."""

    RULE = "a + b + c + d + e + f + g => p + q + r + s + t + u + v"

    def test_find_firing_components_times_out(self):
        structure = structure_from_strings(self.RULE)
        began = time.monotonic()
        with self.assertRaises(SolverFailure):
            find_firing_components(structure, "fork-join", "all", timeout=1.0)
        self.assertLess(time.monotonic() - began, 10.0)

    def test_running_search_is_interrupted(self):
        handle = start_search(structure_from_strings(self.RULE), "fork-join", "all", 1.0)
        with self.assertRaises(SolverFailure):
            handle.result()
        self.assertTrue(handle.solver.interrupted)
        self.assertTrue(handle.done())
        self.assertGreater(handle.solver.num_checks, 0)


if __name__ == "__main__":
    unittest.main()
