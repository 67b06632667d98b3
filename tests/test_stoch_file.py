import unittest
import os
import sys

# This allows the script to be run from anywhere and still find the smpsreader package
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(BASE_DIR, os.pardir))
sys.path.append(PROJECT_ROOT)

from smpsreader.stoch_file import (
    BlockDiscrete,
    ScalarDiscrete,
    ScalarNormal,
    ScalarUniform,
    parse_stoch_lines,
    read_stoch_file,
)
from smpsreader.errors import (
    DuplicateEntryError,
    SMPSSyntaxError,
    UnexpectedEndOfInputError,
    UnknownSectionError,
    UnsupportedDistributionError,
    UnsupportedSectionError,
)

DATA_DIR = os.path.join(PROJECT_ROOT, "smps_data", "test")


class TestIndepDiscrete(unittest.TestCase):
    """INDEP DISCRETE entries accumulate into one variable per (row, col)."""

    @classmethod
    def setUpClass(cls):
        cls.sdat = read_stoch_file(os.path.join(DATA_DIR, "test1.sto"))

    def test_name(self):
        self.assertEqual(self.sdat.name, "TEST1")

    def test_variables(self):
        self.assertEqual(len(self.sdat.indeps), 2)
        self.assertEqual(len(self.sdat.blocks), 0)

        X1, X2 = self.sdat.indeps
        self.assertIsInstance(X1, ScalarDiscrete)
        self.assertEqual(X1.row_name, "R000001")
        self.assertEqual(X1.col_name, "X0001")
        self.assertEqual(X1.support, [6.0, 8.0])
        self.assertEqual(X1.probability, [0.5, 0.5])

        self.assertIsInstance(X2, ScalarDiscrete)
        self.assertEqual(X2.row_name, "R000002")
        self.assertEqual(X2.col_name, "X0002")
        self.assertEqual(X2.support, [1.0, 2.0, 3.0])
        self.assertEqual(X2.probability, [0.1, 0.5, 0.4])

    def test_period_label_may_be_omitted(self):
        sdat = parse_stoch_lines(["STOCH S", "INDEP DISCRETE", "  RHS R1 5.0 0.25", "  RHS R1 7.0 0.75", "ENDATA"])
        self.assertEqual(sdat.indeps[0].support, [5.0, 7.0])
        self.assertEqual(sdat.indeps[0].probability, [0.25, 0.75])


class TestBlocksDiscrete(unittest.TestCase):
    """BL lines with a known block name append a new realization."""

    @classmethod
    def setUpClass(cls):
        cls.sdat = read_stoch_file(os.path.join(DATA_DIR, "test2.sto"))

    def test_name(self):
        self.assertEqual(self.sdat.name, "TEST2")

    def test_first_block(self):
        self.assertEqual(len(self.sdat.blocks), 2)
        b1 = self.sdat.blocks[0]
        self.assertIsInstance(b1, BlockDiscrete)
        self.assertEqual(b1.name, "BLOCK1")
        self.assertEqual(len(b1.support), 2)
        self.assertEqual(b1.probability, [0.6, 0.4])
        self.assertEqual(b1.support[0], [
            ("C000001", "X0001", 1.1), ("C000002", "X0001", 1.2),
            ("C000001", "X0002", 2.1), ("C000002", "X0002", 2.2),
            ("C000001", "X0003", 3.1), ("C000002", "X0003", 3.2),
        ])
        self.assertEqual(b1.support[1], [
            ("C000001", "X0001", 11.1), ("C000002", "X0001", 11.2),
            ("C000001", "X0002", 12.1), ("C000002", "X0002", 12.2),
        ])

    def test_second_block(self):
        b2 = self.sdat.blocks[1]
        self.assertEqual(b2.name, "BLOCK2")
        self.assertEqual(len(b2.support), 3)
        self.assertEqual(b2.probability, [0.25, 0.35, 0.4])
        self.assertEqual(b2.support[0], [
            ("C000001", "RIGHT", 1.0), ("C000002", "RIGHT", 2.0),
            ("C000003", "RIGHT", 3.0), ("C000004", "RIGHT", 4.0),
        ])
        self.assertEqual(b2.support[1], [
            ("C000001", "RIGHT", 1.1), ("C000002", "RIGHT", 2.1),
            ("C000003", "RIGHT", 3.1),
        ])
        self.assertEqual(b2.support[2], [
            ("C000001", "RIGHT", 1.2), ("C000002", "RIGHT", 2.2),
            ("C000003", "RIGHT", 3.2),
        ])

    def test_two_bl_lines_append(self):
        lines = [
            "STOCH S",
            "BLOCKS DISCRETE",
            " BL B1 P2 0.5",
            "    X1  R1  1.0",
            " BL B1 P2 0.5",
            "    X1  R1  2.0  R2  3.0",
            "ENDATA",
        ]
        block = parse_stoch_lines(lines).blocks[0]
        self.assertEqual(len(block.support), 2)
        self.assertEqual(len(block.probability), 2)
        self.assertEqual(block.support[0], [("R1", "X1", 1.0)])
        self.assertEqual(block.support[1], [("R1", "X1", 2.0), ("R2", "X1", 3.0)])

    def test_bl_line_without_period(self):
        lines = [
            "STOCH S",
            "BLOCKS DISCRETE",
            " BL B1 0.25",
            "    X1  R1  1.0",
            "ENDATA",
        ]
        block = parse_stoch_lines(lines).blocks[0]
        self.assertEqual(block.name, "B1")
        self.assertEqual(block.probability, [0.25])
        self.assertEqual(block.support, [[("R1", "X1", 1.0)]])


class TestContinuousDistributions(unittest.TestCase):

    def test_uniform_and_normal(self):
        lines = [
            "STOCH S",
            "INDEP UNIFORM",
            "    RHS  R1  1.0  P2  3.0",
            "INDEP NORMAL",
            "    RHS  R2  5.0  P2  0.25",
            "ENDATA",
        ]
        U, N = parse_stoch_lines(lines).indeps
        self.assertIsInstance(U, ScalarUniform)
        self.assertEqual((U.row_name, U.col_name, U.lower, U.upper), ("R1", "RHS", 1.0, 3.0))
        self.assertIsInstance(N, ScalarNormal)
        self.assertEqual((N.row_name, N.col_name, N.mean, N.variance), ("R2", "RHS", 5.0, 0.25))

    def test_duplicate_uniform(self):
        lines = ["STOCH S", "INDEP UNIFORM", "  RHS R1 1.0 P2 3.0", "  RHS R1 2.0 P2 4.0", "ENDATA"]
        with self.assertRaises(DuplicateEntryError):
            parse_stoch_lines(lines)

    def test_duplicate_normal(self):
        lines = ["STOCH S", "INDEP NORMAL", "  RHS R1 1.0 P2 3.0", "  RHS R1 2.0 P2 4.0", "ENDATA"]
        with self.assertRaises(DuplicateEntryError):
            parse_stoch_lines(lines)


class TestStochErrors(unittest.TestCase):

    def test_scenarios_rejected(self):
        with self.assertRaises(UnsupportedSectionError):
            parse_stoch_lines(["STOCH S", "SCENARIOS DISCRETE", "ENDATA"])

    def test_indep_sub_rejected(self):
        with self.assertRaises(UnsupportedDistributionError):
            parse_stoch_lines(["STOCH S", "INDEP SUB", "ENDATA"])

    def test_blocks_linear_transformation_rejected(self):
        with self.assertRaises(UnsupportedDistributionError):
            parse_stoch_lines(["STOCH S", "BLOCKS LINTR", "ENDATA"])

    def test_blocks_uniform_rejected(self):
        with self.assertRaises(UnsupportedDistributionError):
            parse_stoch_lines(["STOCH S", "BLOCKS UNIFORM", "ENDATA"])

    def test_unknown_section(self):
        with self.assertRaises(UnknownSectionError):
            parse_stoch_lines(["STOCH S", "DISTRIB", "ENDATA"])

    def test_missing_endata(self):
        with self.assertRaises(UnexpectedEndOfInputError):
            parse_stoch_lines(["STOCH S", "INDEP DISCRETE", "  RHS R1 1.0 P2 1.0"])

    def test_block_entry_before_bl(self):
        with self.assertRaises(SMPSSyntaxError):
            parse_stoch_lines(["STOCH S", "BLOCKS DISCRETE", "    X1  R1  1.0", "ENDATA"])

    def test_bad_number(self):
        with self.assertRaises(SMPSSyntaxError):
            parse_stoch_lines(["STOCH S", "INDEP DISCRETE", "  RHS R1 abc P2 1.0", "ENDATA"])

    def test_short_line(self):
        with self.assertRaises(SMPSSyntaxError):
            parse_stoch_lines(["STOCH S", "INDEP DISCRETE", "  RHS R1 1.0", "ENDATA"])

    def test_empty_name(self):
        self.assertEqual(parse_stoch_lines(["STOCH", "ENDATA"]).name, "")


if __name__ == "__main__":
    unittest.main()
