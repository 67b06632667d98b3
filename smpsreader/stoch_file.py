# stoch_file.py

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .errors import (
    DuplicateEntryError,
    SMPSSyntaxError,
    UnexpectedEndOfInputError,
    UnknownSectionError,
    UnsupportedDistributionError,
    UnsupportedSectionError,
)

# --- Setup Logger ---
logger = logging.getLogger(__name__)
if not logger.hasHandlers():
    logger.addHandler(logging.NullHandler())

INDEP_DISTRIBUTIONS = ("DISCRETE", "UNIFORM", "NORMAL")
BLOCKS_DISTRIBUTIONS = ("DISCRETE",)

# (row name, column name, value)
Entry = Tuple[str, str, float]


@dataclass
class ScalarDiscrete:
    """Scalar random variable with a finite discrete distribution."""
    row_name: str
    col_name: str
    support: List[float] = field(default_factory=list)
    probability: List[float] = field(default_factory=list)


@dataclass
class ScalarUniform:
    """Scalar random variable distributed as U[lower, upper]."""
    row_name: str
    col_name: str
    lower: float
    upper: float


@dataclass
class ScalarNormal:
    """Scalar random variable distributed as N(mean, variance)."""
    row_name: str
    col_name: str
    mean: float
    variance: float


@dataclass
class BlockDiscrete:
    """
    Discrete random vector read from a BLOCKS section.

    Each entry of `support` lists every (row, col, value) perturbation that
    occurs together in one realization; `probability` is aligned with it.
    By convention the first realization is the reference one.
    """
    name: str
    support: List[List[Entry]] = field(default_factory=list)
    probability: List[float] = field(default_factory=list)


RandomVariable = Union[ScalarDiscrete, ScalarUniform, ScalarNormal]
RandomElement = Union[ScalarDiscrete, ScalarUniform, ScalarNormal, BlockDiscrete]


@dataclass
class StochData:
    """Random data read from a .sto file."""
    name: str = ""
    indeps: List[RandomVariable] = field(default_factory=list)
    blocks: List[BlockDiscrete] = field(default_factory=list)


class _Section(Enum):
    NONE = "NONE"
    INDEP = "INDEP"
    BLOCKS = "BLOCKS"


def _parse_float(token: str, line_num: int) -> float:
    try:
        return float(token)
    except ValueError:
        raise SMPSSyntaxError(f"Expected a number, got '{token}' (line {line_num})") from None


def parse_stoch_lines(lines: Iterable[str]) -> StochData:
    """
    Parses the lines of a .sto file.

    Supports INDEP DISCRETE/UNIFORM/NORMAL and BLOCKS DISCRETE. Parsing must
    reach ENDATA.

    Args:
        lines: Any iterable of text lines (an open file works).

    Returns:
        The parsed StochData.
    """
    data = StochData()
    section = _Section.NONE
    dist = ""
    current_block: Optional[str] = None
    finished = False

    # Scratch lookup tables, discarded once parsing is done
    indeps_indices: Dict[Tuple[str, str], int] = {}
    blocks_indices: Dict[str, int] = {}

    for line_num, line in enumerate(lines, 1):
        line = line.rstrip("\r\n")
        if not line.strip() or line.startswith("*"):
            continue

        parts = line.split()

        # --- Section headers ---
        if not line[0].isspace():
            keyword = parts[0]
            if keyword == "STOCH":
                data.name = parts[1] if len(parts) > 1 else ""
            elif keyword in ("INDEP", "BLOCKS"):
                if len(parts) < 2:
                    raise SMPSSyntaxError(f"{keyword} header requires a distribution (line {line_num})")
                dist = parts[1]
                supported = INDEP_DISTRIBUTIONS if keyword == "INDEP" else BLOCKS_DISTRIBUTIONS
                if dist not in supported:
                    raise UnsupportedDistributionError(
                        f"Distribution '{dist}' is not supported in {keyword} section (line {line_num})")
                section = _Section(keyword)
                current_block = None
                logger.debug(f"Found {keyword} {dist} section.")
            elif keyword == "SCENARIOS":
                raise UnsupportedSectionError(f"SCENARIOS section is not supported (line {line_num})")
            elif keyword == "ENDATA":
                finished = True
                break
            else:
                raise UnknownSectionError(f"Unknown section header: {keyword} (line {line_num})")
            continue

        # --- Data lines ---
        if section is _Section.INDEP:
            if len(parts) < 4:
                raise SMPSSyntaxError(f"Malformed INDEP line {line_num}: {line.strip()}")
            col, row = parts[0], parts[1]
            v1 = _parse_float(parts[2], line_num)
            # parts[3] is the period label when present
            v2 = _parse_float(parts[4] if len(parts) >= 5 else parts[3], line_num)

            idx = indeps_indices.get((row, col))
            if dist == "DISCRETE":
                if idx is not None:
                    var = data.indeps[idx]
                    if not isinstance(var, ScalarDiscrete):
                        raise DuplicateEntryError(
                            f"Index pair ({row}, {col}) already holds a {type(var).__name__} (line {line_num})")
                    var.support.append(v1)
                    var.probability.append(v2)
                else:
                    data.indeps.append(ScalarDiscrete(row, col, [v1], [v2]))
                    indeps_indices[(row, col)] = len(data.indeps) - 1
            else:
                if idx is not None:
                    raise DuplicateEntryError(
                        f"Invalid index pair ({row}, {col}): entry already exists (line {line_num})")
                if dist == "UNIFORM":
                    data.indeps.append(ScalarUniform(row, col, v1, v2))
                else:
                    data.indeps.append(ScalarNormal(row, col, v1, v2))
                indeps_indices[(row, col)] = len(data.indeps) - 1

        elif section is _Section.BLOCKS:
            if parts[0] == "BL":
                if len(parts) < 3:
                    raise SMPSSyntaxError(f"Malformed BL line {line_num}: {line.strip()}")
                current_block = parts[1]
                prob = _parse_float(parts[3] if len(parts) >= 4 else parts[2], line_num)

                idx = blocks_indices.get(current_block)
                if idx is not None:
                    block = data.blocks[idx]
                    block.probability.append(prob)
                    block.support.append([])
                else:
                    data.blocks.append(BlockDiscrete(current_block, [[]], [prob]))
                    blocks_indices[current_block] = len(data.blocks) - 1
            else:
                if current_block is None:
                    raise SMPSSyntaxError(f"Block entry before any BL line (line {line_num}): {line.strip()}")
                if len(parts) < 3:
                    raise SMPSSyntaxError(f"Malformed BLOCKS line {line_num}: {line.strip()}")
                entries = data.blocks[blocks_indices[current_block]].support[-1]

                col = parts[0]
                entries.append((parts[1], col, _parse_float(parts[2], line_num)))
                if len(parts) >= 5:
                    entries.append((parts[3], col, _parse_float(parts[4], line_num)))

        else:
            raise SMPSSyntaxError(f"Data line outside of INDEP/BLOCKS section (line {line_num}): {line.strip()}")

    if not finished:
        raise UnexpectedEndOfInputError("File ended before reaching ENDATA")

    return data


def read_stoch_file(filename: str) -> StochData:
    """Reads a .sto file from disk and returns a StochData."""
    logger.info(f"Parsing stochastic file: {filename}...")
    try:
        with open(filename, 'r') as f:
            data = parse_stoch_lines(f)
    except Exception as e:
        logger.error(f"Error parsing sto file {filename}: {e}")
        raise

    logger.info(f"Stochastic file '{os.path.basename(filename)}': "
                f"{len(data.indeps)} independent variables, {len(data.blocks)} blocks.")
    return data
