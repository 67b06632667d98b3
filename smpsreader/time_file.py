# time_file.py

import logging
import os
from dataclasses import dataclass, field
from typing import Iterable, List

from .errors import (
    SMPSSyntaxError,
    UnknownSectionError,
    UnsupportedFormatError,
    UnsupportedSectionError,
)

# --- Setup Logger ---
logger = logging.getLogger(__name__)
if not logger.hasHandlers():
    logger.addHandler(logging.NullHandler())


@dataclass
class TimeSectionData:
    """
    Period boundaries read from a .tim file (implicit format).

    Attributes:
        name (str): Problem name from the TIME header ('' when absent).
        cols (List[str]): Name of the first column in each period.
        rows (List[str]): Name of the first row in each period.
    """
    name: str = ""
    cols: List[str] = field(default_factory=list)
    rows: List[str] = field(default_factory=list)

    @property
    def nperiods(self) -> int:
        return len(self.rows)


def parse_time_lines(lines: Iterable[str]) -> TimeSectionData:
    """
    Parses the lines of a .tim file.

    Header lines start with a non-blank character; data lines start with a
    blank and hold `<first column> <first row>` for one period.

    Args:
        lines: Any iterable of text lines (an open file works).

    Returns:
        The parsed TimeSectionData.
    """
    data = TimeSectionData()
    section = ""

    for line_num, line in enumerate(lines, 1):
        line = line.rstrip("\r\n")
        if not line.strip() or line.startswith("*"):
            continue

        parts = line.split()

        if not line[0].isspace():
            section = parts[0]
            if section == "TIME":
                data.name = parts[1] if len(parts) > 1 else ""
            elif section == "PERIODS":
                # No problem type means LP
                if len(parts) > 1 and parts[1] != "LP":
                    raise UnsupportedFormatError(f"Unsupported format: {parts[1]} (line {line_num})")
                logger.debug("Found PERIODS section.")
            elif section == "ENDATA":
                break
            elif section in ("ROWS", "COLUMNS"):
                raise UnsupportedSectionError(
                    f"Explicit time format section '{section}' is not supported (line {line_num})")
            else:
                raise UnknownSectionError(f"Unknown section header in time file: {section} (line {line_num})")
            continue

        if section != "PERIODS":
            raise SMPSSyntaxError(f"Data line outside of PERIODS section (line {line_num}): {line.strip()}")
        if len(parts) < 2:
            raise SMPSSyntaxError(f"Malformed PERIODS line {line_num}: {line.strip()}")

        data.cols.append(parts[0])
        data.rows.append(parts[1])

    assert len(data.cols) == len(data.rows)
    return data


def read_time_file(filename: str) -> TimeSectionData:
    """Reads a .tim file from disk and returns a TimeSectionData."""
    logger.info(f"Parsing time file: {filename}...")
    try:
        with open(filename, 'r') as f:
            data = parse_time_lines(f)
    except Exception as e:
        logger.error(f"Error parsing time file {filename}: {e}")
        raise

    logger.info(f"Time file '{os.path.basename(filename)}' has {data.nperiods} periods.")
    return data
