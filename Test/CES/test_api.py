import tempfile
import unittest
from pathlib import Path

from cekit.CES.api import CEStructure, Diagnostic, validate_file, validate_files
from cekit.CES.config import RunConfig
from cekit.CES.core import Wedge
from cekit.CES.exceptions import InvalidStructureError, StructuralError
from cekit.CES.Fuset.partition import DotClass
from cekit.CES.io import structure_from_strings
from cekit.CES.SAT.search import DeadlockReport, FiringSet
from cekit.CES.Sim.runner import HaltReason

EXAMPLES = Path(__file__).resolve().parents[2] / "Data" / "Examples"


class TestCEStructureGcd(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.ces = CEStructure.from_file(EXAMPLES / "gcd.ces")

    def test_loaded(self):
        self.assertEqual(self.ces.name, "gcd")
        self.assertEqual(len(self.ces.starts), 3)
        self.assertEqual(self.ces.goals, [{"done": 1}])

    def test_validate(self):
        summary = self.ces.validate()
        self.assertEqual(summary.n_dots, 7)
        self.assertEqual(summary.n_wedges, 27)
        self.assertTrue(summary.coherent)
        self.assertFalse(summary.thin)

    def test_solve_is_cached(self):
        result = self.ces.solve()
        self.assertIsInstance(result, FiringSet)
        self.assertEqual(len(result), 8)
        self.assertIs(self.ces.solve(), result)
        self.assertIsNot(self.ces.solve(RunConfig(encoding="fork-join")), result)

    def test_go_uses_declared_start_and_goal(self):
        halt = self.ces.go()
        self.assertIs(halt.reason, HaltReason.GOAL_REACHED)
        self.assertEqual(halt.final["c"], 2)

    def test_go_from_marking(self):
        halt = self.ces.go({"a": 9, "b": 6, "p": 1}, config=RunConfig(semantics="max"))
        self.assertEqual(halt.final["c"], 3)

    def test_sample_every_start(self):
        summary = self.ces.sample(config=RunConfig(num_passes=2))
        self.assertEqual(len(summary), 6)
        self.assertEqual(summary.reason_counts["goal-reached"], 6)
        finals = sorted(m["c"] for m in summary.final_markings)
        self.assertEqual(finals, [1, 2, 3])

    def test_explore(self):
        reach = self.ces.explore({"a": 2, "b": 2, "p": 1})
        self.assertTrue(reach.goal_reachable)
        self.assertEqual(reach.goal_markings[0]["c"], 2)

    def test_classify(self):
        cells = self.ces.classify()
        self.assertEqual(set(cells), {"a", "b", "c", "p", "q", "r", "done"})
        self.assertIs(cells["done"], DotClass.SINK_STRONG)


class TestCEStructureOther(unittest.TestCase):

    def test_deadlock(self):
        ces = CEStructure.from_file(EXAMPLES / "deadlock.ces")
        self.assertIsInstance(ces.solve(), DeadlockReport)
        self.assertEqual(len(ces.transition_system()), 0)
        halt = ces.go({})
        self.assertIs(halt.reason, HaltReason.NO_ENABLED_TRANSITION)
        self.assertEqual(halt.steps, 0)

    def test_from_files_merges(self):
        ces = CEStructure.from_files([EXAMPLES / "biclique.ces", EXAMPLES / "arrows.ces"])
        self.assertEqual(ces.name, "biclique")
        self.assertEqual(len(ces.metadata["sources"]), 2)
        self.assertEqual(len(ces.solve()), 14)
        self.assertEqual(ces.capacity_of("z"), 3)

    def test_from_files_needs_paths(self):
        with self.assertRaises(ValueError):
            CEStructure.from_files([])

    def test_from_strings(self):
        ces = CEStructure.from_strings(["a => x", "start a"], name="tiny")
        self.assertEqual(ces.name, "tiny")
        self.assertEqual(ces.go().final.as_dict(), {"x": 1})

    def test_merge_refreshes_components(self):
        ces = CEStructure.from_strings("a => x")
        self.assertEqual(len(ces.solve()), 1)
        ces.merge(structure_from_strings("b => y"))
        self.assertEqual(len(ces.solve()), 2)
        halt = ces.go({"a": 1, "b": 1}, config=RunConfig(semantics="max"))
        self.assertEqual(halt.final.as_dict(), {"x": 1, "y": 1})

    def test_builders_drop_cached_components(self):
        ces = CEStructure.from_strings("a => x")
        first = ces.solve()
        ces.set_capacity("x", 2)
        self.assertIsNot(ces.solve(), first)
        second = ces.solve()
        ces.add_wedge(Wedge.fork("x", ["y"]))
        third = ces.solve()
        self.assertIsNot(third, second)
        self.assertEqual(third.uncovered, ("y",))

    def test_missing_start_uses_empty_marking(self):
        ces = CEStructure.from_strings("a => x")
        with self.assertLogs("cekit.CES.api", level="WARNING"):
            halt = ces.go()
        self.assertEqual(halt.steps, 0)


class TestValidateFiles(unittest.TestCase):

    def test_mixed_batch(self):
        with tempfile.TemporaryDirectory() as tmp:
            bad = Path(tmp) / "bad.ces"
            bad.write_text("a => => x\n", encoding="utf-8")
            paths = [EXAMPLES / "gcd.ces", EXAMPLES / "deadlock.ces", bad, Path(tmp) / "none.ces"]
            diags = validate_files(paths)
        self.assertEqual([d.ok for d in diags], [True, False, False, False])
        self.assertTrue(str(diags[0]).startswith("OK   "))
        self.assertTrue(str(diags[2]).startswith("FAIL "))

    def test_incoherent_file_fails(self):
        with self.assertRaises(StructuralError) as ctx:
            validate_file(EXAMPLES / "deadlock.ces")
        self.assertIn("misstips a->x, b->y", str(ctx.exception))
        self.assertNotIn("weak followers", str(ctx.exception))

    def test_incoherent_file_aborts(self):
        with self.assertRaises(StructuralError):
            validate_files([EXAMPLES / "deadlock.ces", EXAMPLES / "gcd.ces"], abort=True)

    def test_weak_followers_reported(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "weak.ces"
            path.write_text("fork a x\njoin x a b\n", encoding="utf-8")
            diags = validate_files([path])
        self.assertFalse(diags[0].ok)
        self.assertIn("weak followers b->x", diags[0].message)

    def test_syntax_only(self):
        d = validate_file(EXAMPLES / "deadlock.ces", syntax_only=True)
        self.assertTrue(d.ok)
        self.assertEqual((d.n_dots, d.n_wedges), (4, 3))

    def test_abort(self):
        with self.assertRaises(InvalidStructureError):
            validate_files([EXAMPLES / "gcd.ces", "/nonexistent/x.ces"], abort=True)

    def test_single_file(self):
        d = validate_file(EXAMPLES / "biclique.ces")
        self.assertEqual(d, Diagnostic(str(EXAMPLES / "biclique.ces"), True, "", 4, 12))


if __name__ == "__main__":
    unittest.main()
