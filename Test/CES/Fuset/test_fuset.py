import unittest

from cekit.CES.core import Wedge
from cekit.CES.exceptions import StructuralError
from cekit.CES.Fuset.fuset import Fuset, summarize_fuset
from cekit.CES.weights import TOP


def _arrow(x, y):
    return [Wedge.fork(x, [y]), Wedge.join([x], y)]


class TestFusetSets(unittest.TestCase):

    def setUp(self):
        # a => x plus an unmatched fork b -> x
        self.fuset = Fuset(_arrow("a", "x") + [Wedge.fork("b", ["x"])])

    def test_tip_and_pit_sets(self):
        self.assertEqual(self.fuset.pre_set, {"a", "b"})
        self.assertEqual(self.fuset.post_set, {"x"})
        self.assertEqual(self.fuset.over_set, {"x"})
        self.assertEqual(self.fuset.under_set, {"a"})
        self.assertEqual(self.fuset.span, {"a", "b", "x"})

    def test_frame_and_interior(self):
        self.assertEqual(self.fuset.frame, {("a", "x"), ("b", "x")})
        self.assertEqual(self.fuset.interior, {("a", "x")})
        self.assertEqual(self.fuset.co_interior, {("b", "x")})

    def test_misstips(self):
        self.assertEqual(self.fuset.misstips(), [("b", "x")])
        self.assertEqual(self.fuset.weak_followers(), [])
        self.assertFalse(self.fuset.is_coherent())

    def test_predicates(self):
        self.assertTrue(self.fuset.is_thin())
        self.assertFalse(self.fuset.is_tight())
        self.assertFalse(self.fuset.is_floret())

    def test_domain_must_cover_span(self):
        with self.assertRaises(StructuralError):
            Fuset(_arrow("a", "x"), domain=["a"])

    def test_default_domain_is_sorted_span(self):
        self.assertEqual(self.fuset.domain, ("a", "b", "x"))

    def test_restrict(self):
        sub = self.fuset.restrict(_arrow("a", "x"))
        self.assertEqual(len(sub), 2)
        self.assertEqual(sub.domain, self.fuset.domain)

    def test_star_partition(self):
        stars = self.fuset.star_partition()
        self.assertEqual(sorted(stars), ["a", "b", "x"])
        self.assertEqual(stars["x"].joins, (Wedge.join(["a"], "x"),))
        self.assertEqual(stars["x"].forks, ())


class TestFloretPredicates(unittest.TestCase):

    def test_arrow_is_floret(self):
        F = Fuset(_arrow("a", "x"))
        self.assertTrue(F.is_singular())
        self.assertTrue(F.is_connected())
        self.assertTrue(F.is_minimal())
        self.assertTrue(F.is_floret())

    def test_empty_fuset(self):
        F = Fuset([])
        self.assertFalse(F.is_singular())
        self.assertFalse(F.is_connected())
        self.assertFalse(F.is_floret())

    def test_two_cycle_is_not_minimal(self):
        F = Fuset(_arrow("a", "x") + _arrow("x", "a"))
        self.assertTrue(F.is_thin())
        self.assertTrue(F.is_tight())
        self.assertTrue(F.is_connected())
        self.assertFalse(F.is_minimal())
        self.assertFalse(F.is_floret())

    def test_disjoint_arrows_not_connected(self):
        F = Fuset(_arrow("a", "x") + _arrow("b", "y"))
        self.assertFalse(F.is_connected())

    def test_two_forks_not_thin(self):
        F = Fuset([Wedge.fork("a", ["x"]), Wedge.fork("a", ["y"])])
        self.assertFalse(F.is_thin())

    def test_forcing_graph(self):
        F = Fuset(_arrow("a", "x"))
        g = F.forcing_graph()
        self.assertTrue(g.has_edge(Wedge.fork("a", ["x"]), Wedge.join(["a"], "x")))
        self.assertTrue(g.has_edge(Wedge.join(["a"], "x"), Wedge.fork("a", ["x"])))


class TestReachability(unittest.TestCase):

    def test_reachable_from(self):
        F = Fuset([Wedge.fork("a", ["b"]), Wedge.fork("b", ["c"]), Wedge.join(["d"], "e")])
        self.assertEqual(F.reachable_from(["a"]), {"b", "c"})
        self.assertEqual(F.reachable_from(["d"]), {"e"})
        self.assertEqual(F.reachable_from(["c"]), frozenset())

    def test_unknown_seed(self):
        F = Fuset(_arrow("a", "x"))
        self.assertEqual(F.reachable_from(["zz"]), frozenset())


class TestWeightValidation(unittest.TestCase):

    def test_valid_weighting(self):
        F = Fuset(_arrow("a", "x"))
        F.validate({w: 1 for w in F}, lambda d: 1)

    def test_negative_weight(self):
        F = Fuset(_arrow("a", "x"))
        weights = {Wedge.fork("a", ["x"]): -1, Wedge.join(["a"], "x"): 1}
        with self.assertRaises(StructuralError) as ctx:
            F.validate(weights)
        self.assertEqual(ctx.exception.dot, "a")

    def test_weight_exceeds_capacity(self):
        F = Fuset(_arrow("a", "x"))
        weights = {Wedge.fork("a", ["x"]): 2, Wedge.join(["a"], "x"): 1}
        with self.assertRaises(StructuralError):
            F.validate(weights, lambda d: 1)
        F.validate(weights, lambda d: TOP)

    def test_nonzero_product(self):
        F = Fuset([Wedge.fork("a", ["a"]), Wedge.join(["a"], "a")])
        with self.assertRaises(StructuralError):
            F.validate({})

    def test_self_loop_with_zero_weight(self):
        F = Fuset([Wedge.fork("a", ["a"]), Wedge.join(["a"], "a")])
        F.validate({Wedge.fork("a", ["a"]): 0})


class TestSummary(unittest.TestCase):

    def test_summary_fields(self):
        F = Fuset(_arrow("a", "x") + [Wedge.join(["b"], "x")], domain=["a", "b", "x", "z"])
        s = summarize_fuset(F)
        self.assertEqual(s.n_dots, 4)
        self.assertEqual(s.n_wedges, 3)
        self.assertTrue(s.thin)
        self.assertFalse(s.coherent)
        self.assertEqual(s.weak_followers, (("b", "x"),))
        self.assertEqual(s.misstips, ())


if __name__ == "__main__":
    unittest.main()
