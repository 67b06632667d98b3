# core_file.py

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

import numpy as np
import scipy.sparse as sp

from .errors import SMPSSyntaxError, UnknownSectionError

# --- Setup Logger ---
logger = logging.getLogger(__name__)
if not logger.hasHandlers():
    logger.addHandler(logging.NullHandler())

MPS_SECTIONS = ("NAME", "OBJSENSE", "ROWS", "COLUMNS", "RHS", "RANGES", "BOUNDS", "ENDATA")
ROW_TYPES = ("N", "L", "G", "E")
VALUELESS_BOUNDS = ("FR", "MI", "PL", "BV")
VALUED_BOUNDS = ("UP", "LO", "FX", "LI", "UI")


@dataclass
class MatrixData:
    """
    Linear program read from a free-format MPS (.cor) file.

        min  c'x + obj_constant
        s.t. lcon <= A x <= ucon
             lvar <=  x  <= uvar

    A is stored as coordinate triples (arows, acols, avals). Row and column
    indices are 0-based and follow the order of appearance in the file.

    Attributes:
        name (str): Problem name from the NAME header.
        obj_name (Optional[str]): Name of the objective (first N) row.
        rhs_name (Optional[str]): Name of the RHS set in use.
        objsense (str): 'MIN' or 'MAX'.
        obj_constant (float): Constant term of the objective.
        row_names (List[str]): Constraint names (objective excluded).
        col_names (List[str]): Variable names.
        con_indices (Dict[str, int]): Constraint name to index.
        var_indices (Dict[str, int]): Variable name to index.
        var_types (List[str]): 'C' for continuous, 'I' for integer.
    """
    name: str = ""
    obj_name: Optional[str] = None
    rhs_name: Optional[str] = None
    objsense: str = "MIN"
    obj_constant: float = 0.0
    row_names: List[str] = field(default_factory=list)
    col_names: List[str] = field(default_factory=list)
    con_indices: Dict[str, int] = field(default_factory=dict)
    var_indices: Dict[str, int] = field(default_factory=dict)
    arows: np.ndarray = field(default_factory=lambda: np.array([], dtype=int))
    acols: np.ndarray = field(default_factory=lambda: np.array([], dtype=int))
    avals: np.ndarray = field(default_factory=lambda: np.array([], dtype=np.float64))
    c: np.ndarray = field(default_factory=lambda: np.array([], dtype=np.float64))
    lcon: np.ndarray = field(default_factory=lambda: np.array([], dtype=np.float64))
    ucon: np.ndarray = field(default_factory=lambda: np.array([], dtype=np.float64))
    lvar: np.ndarray = field(default_factory=lambda: np.array([], dtype=np.float64))
    uvar: np.ndarray = field(default_factory=lambda: np.array([], dtype=np.float64))
    var_types: List[str] = field(default_factory=list)

    @property
    def ncon(self) -> int:
        return len(self.row_names)

    @property
    def nvar(self) -> int:
        return len(self.col_names)

    def constraint_matrix(self) -> sp.csr_matrix:
        """Returns A as a CSR matrix (duplicate coordinates are summed)."""
        return sp.coo_matrix((self.avals, (self.arows, self.acols)),
                             shape=(self.ncon, self.nvar)).tocsr()


def _parse_float(token: str, line_num: int) -> float:
    try:
        return float(token)
    except ValueError:
        raise SMPSSyntaxError(f"Expected a number, got '{token}' (line {line_num})") from None


def _split_set_pairs(parts: List[str], line_num: int) -> Tuple[str, List[Tuple[str, str]]]:
    """Splits an RHS/RANGES line into (set name, [(row, value token), ...])."""
    if len(parts) % 2 == 1:
        set_name, rest = parts[0], parts[1:]
    else:
        set_name, rest = "", parts
    if not rest:
        raise SMPSSyntaxError(f"Missing row/value pair (line {line_num})")
    return set_name, list(zip(rest[0::2], rest[1::2]))


def parse_core_lines(lines: Iterable[str]) -> MatrixData:
    """
    Parses the lines of a free-format MPS file.

    Args:
        lines: Any iterable of text lines (an open file works).

    Returns:
        The parsed MatrixData.
    """
    data = MatrixData()
    section = ""

    row_types: List[str] = []
    ignored_rows: Set[str] = set()
    rows, cols, vals = [], [], []
    c: List[float] = []
    lvar: List[float] = []
    uvar: List[float] = []
    integer_marker = False

    rhs: Dict[int, float] = {}
    ranges: Dict[int, float] = {}
    range_name: Optional[str] = None
    bound_name: Optional[str] = None
    skipped_sets: Set[Tuple[str, str]] = set()

    def _keep_set(kind: str, set_name: str, current: Optional[str]) -> bool:
        if current is None or set_name == current:
            return True
        if (kind, set_name) not in skipped_sets:
            skipped_sets.add((kind, set_name))
            logger.warning(f"Ignoring additional {kind} set '{set_name}' (using '{current}').")
        return False

    def _row_index(row: str, line_num: int) -> int:
        idx = data.con_indices.get(row)
        if idx is None:
            raise SMPSSyntaxError(f"Unknown row '{row}' (line {line_num})")
        return idx

    def _col_index(col: str, line_num: int) -> int:
        idx = data.var_indices.get(col)
        if idx is None:
            raise SMPSSyntaxError(f"Unknown column '{col}' (line {line_num})")
        return idx

    for line_num, line in enumerate(lines, 1):
        line = line.rstrip("\r\n")
        if not line.strip() or line.startswith("*"):
            continue

        parts = line.split()

        # --- Section headers ---
        if not line[0].isspace():
            section = parts[0]
            if section not in MPS_SECTIONS:
                raise UnknownSectionError(f"Unknown section header in core file: {section} (line {line_num})")
            if section == "NAME":
                data.name = parts[1] if len(parts) > 1 else ""
            elif section == "OBJSENSE" and len(parts) > 1:
                data.objsense = "MAX" if parts[1].startswith("MAX") else "MIN"
            elif section == "ENDATA":
                break
            continue

        # --- Data lines ---
        if section == "OBJSENSE":
            data.objsense = "MAX" if parts[0].startswith("MAX") else "MIN"

        elif section == "ROWS":
            if len(parts) < 2 or parts[0] not in ROW_TYPES:
                raise SMPSSyntaxError(f"Malformed ROWS line {line_num}: {line.strip()}")
            row_type, row_name = parts[0], parts[1]
            if row_type == "N":
                if data.obj_name is None:
                    data.obj_name = row_name
                else:
                    logger.warning(f"Ignoring additional objective row '{row_name}'.")
                    ignored_rows.add(row_name)
                continue
            if row_name in data.con_indices:
                raise SMPSSyntaxError(f"Duplicate row '{row_name}' (line {line_num})")
            data.con_indices[row_name] = len(data.row_names)
            data.row_names.append(row_name)
            row_types.append(row_type)

        elif section == "COLUMNS":
            if len(parts) >= 3 and parts[1] == "'MARKER'":
                if parts[2] == "'INTORG'":
                    integer_marker = True
                elif parts[2] == "'INTEND'":
                    integer_marker = False
                continue
            if len(parts) < 3 or len(parts) % 2 == 0:
                raise SMPSSyntaxError(f"Malformed COLUMNS line {line_num}: {line.strip()}")

            col_name = parts[0]
            j = data.var_indices.get(col_name)
            if j is None:
                j = len(data.col_names)
                data.var_indices[col_name] = j
                data.col_names.append(col_name)
                data.var_types.append("I" if integer_marker else "C")
                c.append(0.0)
                lvar.append(0.0)
                uvar.append(np.inf)

            for row_name, val_str in zip(parts[1::2], parts[2::2]):
                value = _parse_float(val_str, line_num)
                if row_name == data.obj_name:
                    c[j] = value
                elif row_name in ignored_rows:
                    continue
                else:
                    rows.append(_row_index(row_name, line_num))
                    cols.append(j)
                    vals.append(value)

        elif section == "RHS":
            set_name, pairs = _split_set_pairs(parts, line_num)
            if not _keep_set("RHS", set_name, data.rhs_name):
                continue
            data.rhs_name = set_name
            for row_name, val_str in pairs:
                value = _parse_float(val_str, line_num)
                if row_name == data.obj_name:
                    logger.warning(f"RHS on objective row '{row_name}': setting objective constant to {-value}.")
                    data.obj_constant = -value
                elif row_name in ignored_rows:
                    continue
                else:
                    rhs[_row_index(row_name, line_num)] = value

        elif section == "RANGES":
            set_name, pairs = _split_set_pairs(parts, line_num)
            if not _keep_set("RANGES", set_name, range_name):
                continue
            range_name = set_name
            for row_name, val_str in pairs:
                ranges[_row_index(row_name, line_num)] = _parse_float(val_str, line_num)

        elif section == "BOUNDS":
            bound_type = parts[0]
            if bound_type in VALUELESS_BOUNDS:
                if len(parts) >= 3:
                    set_name, col_name = parts[1], parts[2]
                elif len(parts) == 2:
                    set_name, col_name = "", parts[1]
                else:
                    raise SMPSSyntaxError(f"Malformed BOUNDS line {line_num}: {line.strip()}")
                value = 0.0
            elif bound_type in VALUED_BOUNDS:
                if len(parts) >= 4:
                    set_name, col_name, val_str = parts[1], parts[2], parts[3]
                elif len(parts) == 3:
                    set_name, col_name, val_str = "", parts[1], parts[2]
                else:
                    raise SMPSSyntaxError(f"Malformed BOUNDS line {line_num}: {line.strip()}")
                value = _parse_float(val_str, line_num)
            else:
                raise SMPSSyntaxError(f"Unknown bound type '{bound_type}' (line {line_num})")

            if not _keep_set("BOUNDS", set_name, bound_name):
                continue
            bound_name = set_name
            j = _col_index(col_name, line_num)

            if bound_type == "UP":
                uvar[j] = value
                if value < 0 and lvar[j] == 0.0:
                    logger.warning(f"Negative upper bound on '{col_name}' with zero lower bound; "
                                   f"setting lower bound to -inf.")
                    lvar[j] = -np.inf
            elif bound_type == "LO":
                lvar[j] = value
            elif bound_type == "FX":
                lvar[j] = uvar[j] = value
            elif bound_type == "FR":
                lvar[j], uvar[j] = -np.inf, np.inf
            elif bound_type == "MI":
                lvar[j] = -np.inf
            elif bound_type == "PL":
                uvar[j] = np.inf
            elif bound_type == "BV":
                lvar[j], uvar[j] = 0.0, 1.0
                data.var_types[j] = "I"
            elif bound_type == "LI":
                lvar[j] = value
                data.var_types[j] = "I"
            elif bound_type == "UI":
                uvar[j] = value
                data.var_types[j] = "I"

        else:
            raise SMPSSyntaxError(f"Data line outside of a section (line {line_num}): {line.strip()}")

    # --- Row bounds from row types, RHS and RANGES ---
    lcon = np.empty(data.ncon, dtype=np.float64)
    ucon = np.empty(data.ncon, dtype=np.float64)
    for i, row_type in enumerate(row_types):
        b = rhs.get(i, 0.0)
        r = ranges.get(i)
        if row_type == "L":
            lcon[i], ucon[i] = -np.inf, b
            if r is not None:
                lcon[i] = b - abs(r)
        elif row_type == "G":
            lcon[i], ucon[i] = b, np.inf
            if r is not None:
                ucon[i] = b + abs(r)
        else:
            lcon[i], ucon[i] = b, b
            if r is not None:
                if r > 0:
                    ucon[i] = b + r
                else:
                    lcon[i] = b + r

    if data.objsense == "MAX":
        logger.warning("Core file declares OBJSENSE MAX; coefficients are kept as read.")

    data.arows = np.array(rows, dtype=int)
    data.acols = np.array(cols, dtype=int)
    data.avals = np.array(vals, dtype=np.float64)
    data.c = np.array(c, dtype=np.float64)
    data.lvar = np.array(lvar, dtype=np.float64)
    data.uvar = np.array(uvar, dtype=np.float64)
    data.lcon = lcon
    data.ucon = ucon
    return data


def read_core_file(filename: str) -> MatrixData:
    """Reads a free-format MPS (.cor) file from disk and returns a MatrixData."""
    logger.info(f"Loading core file: {filename}...")
    try:
        with open(filename, 'r') as f:
            data = parse_core_lines(f)
    except Exception as e:
        logger.error(f"Error reading core file {filename}: {e}")
        raise

    logger.info(f"Core file '{os.path.basename(filename)}' read successfully. Model '{data.name}' has "
                f"{data.nvar} vars, {data.ncon} constraints, {len(data.avals)} nonzeros.")
    return data
