import dataclasses
import unittest

from cekit.CES.config import RunConfig
from cekit.CES.SAT.encoding import Encoding


class TestRunConfig(unittest.TestCase):

    def test_defaults(self):
        cfg = RunConfig()
        self.assertEqual(cfg.encoding, "port-link")
        self.assertEqual(cfg.search, "min")
        self.assertEqual(cfg.semantics, "seq")
        self.assertEqual(cfg.max_steps, 1000)
        self.assertEqual(cfg.num_passes, 1)
        self.assertEqual(cfg.policy, "priority")
        self.assertIsNone(cfg.timeout)
        self.assertFalse(cfg.exhaustive)

    def test_aliases_are_normalised(self):
        self.assertEqual(RunConfig(encoding="PL").encoding, "port-link")
        self.assertEqual(RunConfig(encoding="fork_join").encoding, "fork-join")
        self.assertEqual(RunConfig(encoding=Encoding.FORK_JOIN).encoding, "fork-join")
        self.assertEqual(RunConfig(semantics="MAX").semantics, "max")

    def test_invalid_values(self):
        with self.assertRaises(ValueError):
            RunConfig(semantics="lazy")
        with self.assertRaises(ValueError):
            RunConfig(encoding="bdd")
        with self.assertRaises(ValueError):
            RunConfig(num_passes=0)
        with self.assertRaises(ValueError):
            RunConfig(max_steps=-1)
        with self.assertRaises(ValueError):
            RunConfig(workers=0)
        with self.assertRaises(ValueError):
            RunConfig(timeout=0)

    def test_overrides_skip_none(self):
        cfg = RunConfig(seed=3).with_overrides(seed=None, num_passes=4, semantics="par")
        self.assertEqual(cfg.seed, 3)
        self.assertEqual(cfg.num_passes, 4)
        self.assertEqual(cfg.semantics, "par")

    def test_overrides_are_validated(self):
        with self.assertRaises(ValueError):
            RunConfig().with_overrides(policy="fastest")

    def test_frozen(self):
        with self.assertRaises(dataclasses.FrozenInstanceError):
            RunConfig().seed = 1

    def test_as_dict(self):
        d = RunConfig().as_dict()
        self.assertEqual(d["encoding"], "port-link")
        self.assertIn("verbosity", d)


if __name__ == "__main__":
    unittest.main()
