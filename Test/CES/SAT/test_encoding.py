import unittest

import z3

from cekit.CES.exceptions import SolverFailure
from cekit.CES.io import structure_from_strings
from cekit.CES.SAT.encoding import Encoding, build_constraints


class TestEncodingNames(unittest.TestCase):

    def test_aliases(self):
        self.assertIs(Encoding.parse("PL"), Encoding.PORT_LINK)
        self.assertIs(Encoding.parse("port-link"), Encoding.PORT_LINK)
        self.assertIs(Encoding.parse("fj"), Encoding.FORK_JOIN)
        self.assertIs(Encoding.parse("fork_join"), Encoding.FORK_JOIN)
        self.assertIs(Encoding.parse(Encoding.FORK_JOIN), Encoding.FORK_JOIN)

    def test_unsupported(self):
        with self.assertRaises(SolverFailure):
            Encoding.parse("bdd")


class TestConstraints(unittest.TestCase):

    def setUp(self):
        self.biclique = structure_from_strings("a + b + a b => x + y + x y").fuset()
        self.deadlock = structure_from_strings(
            ["fork a x", "fork b x y", "join x b"]
        ).fuset()

    def _solve(self, encoding, fuset):
        ctx = z3.Context()
        cs = build_constraints(encoding, fuset, ctx)
        solver = z3.Solver(ctx=ctx)
        for clause in cs.clauses:
            solver.add(clause)
        return cs, solver

    def test_fork_join_variables(self):
        cs = build_constraints("fork-join", self.biclique, z3.Context())
        self.assertIs(cs.encoding, Encoding.FORK_JOIN)
        self.assertEqual(len(cs.wedge_vars), 12)
        self.assertEqual(cs.link_vars, {})
        self.assertGreater(len(cs), 0)

    def test_port_link_variables(self):
        cs = build_constraints("port-link", self.biclique, z3.Context())
        self.assertEqual(len(cs.wedge_vars), 12)
        self.assertEqual(
            sorted(cs.link_vars), [("a", "x"), ("a", "y"), ("b", "x"), ("b", "y")]
        )

    def test_models_are_thin_and_tight(self):
        for encoding in ("port-link", "fork-join"):
            cs, solver = self._solve(encoding, self.biclique)
            self.assertEqual(solver.check(), z3.sat)
            selected = self.biclique.restrict(cs.selected(solver.model()))
            self.assertTrue(len(selected) > 0)
            self.assertTrue(selected.is_thin())
            self.assertTrue(selected.is_tight())

    def test_deadlock_is_unsatisfiable(self):
        for encoding in ("port-link", "fork-join"):
            _, solver = self._solve(encoding, self.deadlock)
            self.assertEqual(solver.check(), z3.unsat)


if __name__ == "__main__":
    unittest.main()
