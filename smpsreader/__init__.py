"""Read SMPS (.cor/.tim/.sto) files into a two-stage stochastic program."""

from .core_file import MatrixData, parse_core_lines, read_core_file
from .errors import (
    DuplicateEntryError,
    InvalidPartitionError,
    MalformedScenarioEntryError,
    NotTwoStageError,
    SMPSError,
    SMPSSyntaxError,
    UnexpectedEndOfInputError,
    UnknownSectionError,
    UnsupportedBoundsError,
    UnsupportedDistributionError,
    UnsupportedFormatError,
    UnsupportedRowBoundsError,
    UnsupportedSectionError,
)
from .smps_reader import SMPSFile, SMPSReader, read_from_file
from .stoch_file import (
    BlockDiscrete,
    ScalarDiscrete,
    ScalarNormal,
    ScalarUniform,
    StochData,
    parse_stoch_lines,
    read_stoch_file,
)
from .time_file import TimeSectionData, parse_time_lines, read_time_file
from .tssp import Scenario, TwoStageStochasticProgram, all_realizations, build_two_stage_program

__version__ = "0.1.0"
