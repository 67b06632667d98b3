import unittest
import os
import sys
import gzip
import json
import tempfile

# This allows the script to be run from anywhere and still find the smpsreader package
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(BASE_DIR, os.pardir))
sys.path.append(PROJECT_ROOT)

from smpsreader import read_from_file, TwoStageStochasticProgram
from smpsreader.sof_writer import to_sof_dict, write_to_file

BASE_NAME = os.path.join(PROJECT_ROOT, "smps_data", "toy", "toy")


class TestSOFWriter(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.program = TwoStageStochasticProgram.from_smps(read_from_file(BASE_NAME))
        cls.sof = to_sof_dict(cls.program)

    def test_lattice(self):
        self.assertEqual(self.sof["root"]["name"], "0")
        self.assertEqual(set(self.sof["nodes"]), {"1", "2"})
        self.assertEqual([(e["from"], e["to"]) for e in self.sof["edges"]], [("0", "1"), ("1", "2")])
        self.assertEqual(len(self.sof["root"]["state_variables"]), self.program.n1)

    def test_first_stage_node(self):
        node = self.sof["nodes"]["1"]
        self.assertEqual(node["random_variables"], [])
        constraints = node["subproblem"]["constraints"]
        # n1 nonnegativity constraints followed by the m1 rows of A x = b
        self.assertEqual(len(constraints), self.program.n1 + self.program.m1)
        self.assertEqual(constraints[-1]["set"], {"type": "EqualTo", "value": 10.0})

    def test_second_stage_random_variables(self):
        node = self.sof["nodes"]["2"]
        self.assertEqual(set(node["random_variables"]), {"dq[0]", "dq[1]", "dh[0]", "dT[1,1]", "dW[0,0]"})
        self.assertEqual(len(node["realizations"]), self.program.num_scenarios)

        first = node["realizations"][0]
        self.assertAlmostEqual(first["probability"], 0.035)
        self.assertEqual(first["support"], {"dq[0]": -1.0, "dq[1]": 0.0, "dh[0]": 2.0,
                                            "dT[1,1]": -1.0, "dW[0,0]": 1.0})

    def test_second_stage_objective_is_quadratic(self):
        objective = self.sof["nodes"]["2"]["subproblem"]["objective"]
        self.assertEqual(objective["sense"], "min")
        self.assertEqual(objective["function"]["type"], "ScalarQuadraticFunction")

    def test_write_plain_and_gzip(self):
        with tempfile.TemporaryDirectory() as tmp:
            plain = os.path.join(tmp, "toy.sof.json")
            packed = os.path.join(tmp, "toy.sof.json.gz")
            write_to_file(self.program, plain)
            write_to_file(self.program, packed)

            with open(plain) as f:
                from_plain = json.load(f)
            with gzip.open(packed, "rt") as f:
                from_gzip = json.load(f)

        self.assertEqual(from_plain, from_gzip)
        self.assertEqual(from_plain["version"], {"major": 0, "minor": 1})
        self.assertEqual(len(from_plain["nodes"]["2"]["realizations"]), 12)


if __name__ == "__main__":
    unittest.main()
