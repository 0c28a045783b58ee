import math
import unittest

from cekit.CES.exceptions import StructuralError
from cekit.CES.weights import (
    BOTTOM,
    TOP,
    as_float,
    check_weight,
    ext_add,
    ext_mul,
    format_weight,
    is_canonical,
    is_finite,
    parse_weight,
)


class TestExtendedArithmetic(unittest.TestCase):

    def test_add_bottom_is_neutral(self):
        self.assertEqual(ext_add(BOTTOM, 3), 3)
        self.assertEqual(ext_add(3, BOTTOM), 3)
        self.assertIs(ext_add(BOTTOM, BOTTOM), BOTTOM)

    def test_add_top_absorbs(self):
        self.assertIs(ext_add(TOP, 3), TOP)
        self.assertIs(ext_add(0, TOP), TOP)
        self.assertIs(ext_add(TOP, BOTTOM), TOP)

    def test_add_integers(self):
        self.assertEqual(ext_add(2, -5), -3)

    def test_mul_bottom_absorbs(self):
        self.assertIs(ext_mul(BOTTOM, TOP), BOTTOM)
        self.assertIs(ext_mul(4, BOTTOM), BOTTOM)

    def test_mul_zero_times_top(self):
        self.assertEqual(ext_mul(0, TOP), 0)
        self.assertEqual(ext_mul(TOP, 0), 0)

    def test_mul_top_times_nonzero(self):
        self.assertIs(ext_mul(TOP, 2), TOP)
        self.assertIs(ext_mul(TOP, TOP), TOP)

    def test_mul_integers(self):
        self.assertEqual(ext_mul(2, 3), 6)


class TestCanonicalPredicate(unittest.TestCase):

    def test_single_sided_weights(self):
        self.assertTrue(is_canonical(1, BOTTOM))
        self.assertTrue(is_canonical(BOTTOM, 5))
        self.assertTrue(is_canonical(0, BOTTOM))
        self.assertTrue(is_canonical(TOP, BOTTOM))

    def test_nonzero_product_rejected(self):
        self.assertFalse(is_canonical(1, 1))
        self.assertFalse(is_canonical(TOP, 2))

    def test_pure_inhibitor(self):
        self.assertTrue(is_canonical(TOP, 0))

    def test_negative_sum_rejected(self):
        self.assertFalse(is_canonical(-1, BOTTOM))

    def test_both_absent(self):
        self.assertTrue(is_canonical(BOTTOM, BOTTOM))


class TestWeightText(unittest.TestCase):

    def test_parse(self):
        self.assertIs(parse_weight("inf"), TOP)
        self.assertIs(parse_weight("!"), TOP)
        self.assertIs(parse_weight("⊤"), TOP)
        self.assertIs(parse_weight("_"), BOTTOM)
        self.assertEqual(parse_weight(" 3 "), 3)

    def test_parse_invalid(self):
        with self.assertRaises(ValueError):
            parse_weight("three")

    def test_format(self):
        self.assertEqual(format_weight(TOP), "inf")
        self.assertEqual(format_weight(BOTTOM), "_")
        self.assertEqual(format_weight(7), "7")

    def test_check_weight(self):
        self.assertIs(check_weight(math.inf), TOP)
        self.assertEqual(check_weight(2), 2)
        with self.assertRaises(StructuralError):
            check_weight(1.5)
        with self.assertRaises(StructuralError):
            check_weight("2")

    def test_is_finite_excludes_bool(self):
        self.assertTrue(is_finite(0))
        self.assertFalse(is_finite(True))
        self.assertFalse(is_finite(TOP))

    def test_as_float(self):
        self.assertEqual(as_float(TOP), math.inf)
        self.assertEqual(as_float(3), 3.0)
        with self.assertRaises(ValueError):
            as_float(BOTTOM)


if __name__ == "__main__":
    unittest.main()
