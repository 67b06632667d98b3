# smps_reader.py

import logging
import os
from typing import NamedTuple, Optional

from .core_file import MatrixData, read_core_file
from .stoch_file import StochData, read_stoch_file
from .time_file import TimeSectionData, read_time_file
from .tssp import TwoStageStochasticProgram

# --- Setup Logger ---
logger = logging.getLogger(__name__)
if not logger.hasHandlers():
    logger.addHandler(logging.NullHandler())


class SMPSFile(NamedTuple):
    """The three parsed parts of an SMPS instance."""
    cor: MatrixData
    tim: TimeSectionData
    sto: StochData


def _join_filename(base: str, specific: str, extension: str) -> str:
    if specific:
        return specific
    if base:
        return f"{base}.{extension}"
    raise ValueError(f"Cannot have base filename and specific filename for {extension} both be empty.")


def read_from_file(filename: str = "", cor_filename: str = "",
                   tim_filename: str = "", sto_filename: str = "") -> SMPSFile:
    """
    Reads a collection of SMPS files.

    If only `filename` is passed, the .cor, .tim and .sto files are taken to
    be `filename` plus the corresponding extension. Files not meeting this
    convention can be given explicitly, e.g.

        smps = read_from_file("AIRL", sto_filename="AIRL.sto.second")

    Returns:
        SMPSFile with fields `cor`, `tim` and `sto`.
    """
    core_file = _join_filename(filename, cor_filename, "cor")
    time_file = _join_filename(filename, tim_filename, "tim")
    sto_file = _join_filename(filename, sto_filename, "sto")

    if not os.path.exists(core_file): raise FileNotFoundError(f"Core file not found: {core_file}")
    if not os.path.exists(time_file): raise FileNotFoundError(f"Time file not found: {time_file}")
    if not os.path.exists(sto_file): raise FileNotFoundError(f"Sto file not found: {sto_file}")

    cor = read_core_file(core_file)
    tim = read_time_file(time_file)
    sto = read_stoch_file(sto_file)
    return SMPSFile(cor, tim, sto)


class SMPSReader:
    """
    Reads a two-stage stochastic linear program from SMPS format files and
    assembles it into a TwoStageStochasticProgram.

    Attributes:
        core_file (str): Path to the .cor (free MPS) file.
        time_file (str): Path to the .tim file.
        sto_file (str): Path to the .sto file.
        smps (SMPSFile): Parsed files, set by load_and_extract().
        program (TwoStageStochasticProgram): Assembled program, set by load_and_extract().
    """

    def __init__(self, core_file: str, time_file: str, sto_file: str):
        if not os.path.exists(core_file): raise FileNotFoundError(f"Core file not found: {core_file}")
        if not os.path.exists(time_file): raise FileNotFoundError(f"Time file not found: {time_file}")
        if not os.path.exists(sto_file): raise FileNotFoundError(f"Sto file not found: {sto_file}")

        self.core_file = core_file
        self.time_file = time_file
        self.sto_file = sto_file

        self.smps: Optional[SMPSFile] = None
        self.program: Optional[TwoStageStochasticProgram] = None

        logger.info(f"Initialized SMPSReader for core='{os.path.basename(core_file)}', "
                    f"time='{os.path.basename(time_file)}', sto='{os.path.basename(sto_file)}'")

    @classmethod
    def from_base_name(cls, base: str) -> "SMPSReader":
        return cls(f"{base}.cor", f"{base}.tim", f"{base}.sto")

    def load_and_extract(self) -> TwoStageStochasticProgram:
        """Reads all SMPS files and assembles the two-stage program."""
        self.smps = read_from_file(cor_filename=self.core_file,
                                   tim_filename=self.time_file,
                                   sto_filename=self.sto_file)
        try:
            self.program = TwoStageStochasticProgram.from_smps(self.smps)
        except Exception as e:
            logger.error(f"Error assembling two-stage program: {e}")
            raise
        logger.info("SMPSReader extraction complete.")
        return self.program

    def print_summary(self):
        """Prints a summary of the loaded problem structure."""
        print("\n--- SMPS Problem Summary ---")
        if self.program is None:
            print("WARNING: Data has not been loaded. Call load_and_extract() first.")
            return

        print(f"Core File: {self.core_file}")
        print(f"Time File: {self.time_file}")
        print(f"Sto File : {self.sto_file}")
        print("-" * 30)
        print(f"Independent random variables: {len(self.smps.sto.indeps)}")
        print(f"Random blocks:                {len(self.smps.sto.blocks)}")
        self.program.print_summary()
