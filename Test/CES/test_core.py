import unittest

import numpy as np

from cekit.CES.core import Domain, Marking, Polarity, Structure, Wedge
from cekit.CES.exceptions import StructuralError
from cekit.CES.weights import TOP


class TestWedge(unittest.TestCase):

    def test_empty_pit_rejected(self):
        with self.assertRaises(StructuralError):
            Wedge.fork("a", [])

    def test_fork_links(self):
        w = Wedge.fork("a", ["y", "x"])
        self.assertEqual(list(w.links()), [("a", "x"), ("a", "y")])
        self.assertTrue(w.is_fork)
        self.assertEqual(str(w), "a -> (x y)")

    def test_join_links(self):
        w = Wedge.join(["x", "y"], "b")
        self.assertEqual(list(w.links()), [("x", "b"), ("y", "b")])
        self.assertIs(w.polarity, Polarity.JOIN)
        self.assertEqual(str(w), "(x y) -> b")

    def test_equality_and_hash(self):
        self.assertEqual(Wedge.fork("a", {"x"}), Wedge.fork("a", ["x"]))
        self.assertNotEqual(Wedge.fork("a", {"x"}), Wedge.join({"x"}, "a"))
        self.assertEqual(len({Wedge.fork("a", "x"), Wedge.fork("a", ["x"])}), 1)

    def test_sort_key_orders_forks_first(self):
        ws = [Wedge.join(["a"], "x"), Wedge.fork("b", ["x"]), Wedge.fork("a", ["x"])]
        ordered = sorted(ws, key=Wedge.sort_key)
        self.assertEqual(ordered[0], Wedge.fork("a", ["x"]))
        self.assertFalse(ordered[-1].is_fork)


class TestDomainAndMarking(unittest.TestCase):

    def setUp(self):
        self.domain = Domain(("a", "b", "c"))

    def test_duplicate_dots(self):
        with self.assertRaises(StructuralError):
            Domain(("a", "a"))

    def test_unknown_dot(self):
        with self.assertRaises(StructuralError):
            self.domain.index("z")

    def test_vector(self):
        vec = self.domain.vector({"c": 2})
        self.assertEqual(vec.tolist(), [0, 0, 2])
        self.assertEqual(vec.dtype, np.int64)

    def test_marking_roundtrip(self):
        m = Marking.from_mapping(self.domain, {"a": 1, "c": 3})
        self.assertEqual(m["c"], 3)
        self.assertEqual(m.as_dict(), {"a": 1, "c": 3})
        self.assertEqual(m.key(), (1, 0, 3))
        self.assertEqual(str(m), "{a:1, c:3}")
        self.assertEqual(Marking.from_vector(self.domain, m.vector()), m)

    def test_negative_marking(self):
        with self.assertRaises(StructuralError):
            Marking(self.domain, (0, -1, 0))

    def test_satisfies(self):
        m = Marking.from_mapping(self.domain, {"a": 2})
        self.assertTrue(m.satisfies({"a": 2}))
        self.assertFalse(m.satisfies({"a": 1, "b": 1}))

    def test_within_scope(self):
        m = Marking.from_mapping(self.domain, {"a": 2})
        self.assertTrue(m.within_scope(np.array([2.0, 1.0, 1.0])))
        self.assertFalse(m.within_scope(np.array([1.0, 1.0, 1.0])))


class TestStructure(unittest.TestCase):

    def test_add_wedge_registers_dots(self):
        s = Structure(name="t")
        s.add_wedge(Wedge.fork("a", ["x"]))
        self.assertEqual(s.dots, ["a", "x"])
        self.assertEqual(s.weight_of(Wedge.fork("a", ["x"])), 1)

    def test_conflicting_weight(self):
        s = Structure()
        s.add_wedge(Wedge.fork("a", ["x"]), 1)
        s.add_wedge(Wedge.fork("a", ["x"]), 1)
        with self.assertRaises(StructuralError):
            s.add_wedge(Wedge.fork("a", ["x"]), 2)

    def test_capacity_defaults_to_one(self):
        s = Structure()
        s.add_wedge(Wedge.fork("a", ["x"]))
        s.set_capacity("x", TOP)
        self.assertEqual(s.capacity_of("a"), 1)
        self.assertIs(s.capacity_of("x"), TOP)
        self.assertEqual(s.envelope().tolist(), [1.0, float("inf")])

    def test_invalid_capacity(self):
        s = Structure()
        with self.assertRaises(StructuralError):
            s.set_capacity("a", 0)

    def test_marking_out_of_scope(self):
        s = Structure()
        s.add_wedge(Wedge.fork("a", ["x"]))
        self.assertFalse(Marking.from_mapping(s.domain, {"a": 2}).within_scope(s.envelope()))
        self.assertTrue(Marking.from_mapping(s.domain, {"a": 1}).within_scope(s.envelope()))

    def test_merge(self):
        s1 = Structure(name="one")
        s1.add_wedge(Wedge.fork("a", ["x"]))
        s2 = Structure(name="two")
        s2.add_wedge(Wedge.join(["a"], "x"))
        s2.add_start({"a": 1})
        s1.merge(s2)
        self.assertEqual(len(s1.weights), 2)
        self.assertEqual(s1.starts, [{"a": 1}])
        self.assertEqual(s1.name, "one")

    def test_fuset(self):
        s = Structure()
        s.add_wedge(Wedge.fork("a", ["x"]))
        s.add_wedge(Wedge.join(["a"], "x"))
        self.assertTrue(s.fuset().is_floret())


if __name__ == "__main__":
    unittest.main()
