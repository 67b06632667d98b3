# tssp.py

"""
Two-stage stochastic program assembled from SMPS data.

Reference formulation:

    min    c'x + q'y
    s.t.   A x       = b
           T x + W y = h
             x,    y >= 0

For the k-th scenario:

    min    c'x  + q_k'y
    s.t.   A x          = b
           T_k x + W_k y = h_k
               x,     y >= 0

where q_k = q + dq[k], h_k = h + dh[k], T_k = T + dT[k] and W_k = W + dW[k].
Inequality rows of the core file are turned into equalities by appending
slack columns, so n1 and n2 include the slacks of their stage.
"""

import itertools
import logging
from dataclasses import dataclass
from typing import Iterator, List, NamedTuple, Sequence, Tuple

import numpy as np
import scipy.sparse as sp

from .core_file import MatrixData
from .errors import (
    InvalidPartitionError,
    MalformedScenarioEntryError,
    NotTwoStageError,
    UnsupportedBoundsError,
    UnsupportedRowBoundsError,
)
from .stoch_file import BlockDiscrete, Entry, RandomElement, ScalarDiscrete, StochData
from .time_file import TimeSectionData

# --- Setup Logger ---
logger = logging.getLogger(__name__)
if not logger.hasHandlers():
    logger.addHandler(logging.NullHandler())

# One realization of a random element: the entries it sets and their probability
Realization = Tuple[List[Entry], float]


class Scenario(NamedTuple):
    """Realized second-stage data of a single scenario."""
    T: sp.csr_matrix
    W: sp.csr_matrix
    q: np.ndarray
    h: np.ndarray
    probability: float


def all_realizations(element: RandomElement) -> List[Realization]:
    """
    Lists every (entries, probability) pair of a discrete random element.

    Uniform and normal variables have no finite support and yield nothing.
    """
    if isinstance(element, ScalarDiscrete):
        return [([(element.row_name, element.col_name, x)], p)
                for x, p in zip(element.support, element.probability)]
    if isinstance(element, BlockDiscrete):
        return list(zip(element.support, element.probability))
    return []


def _from_coordinates(rows: Sequence[int], cols: Sequence[int], values: Sequence[float],
                      shape: Tuple[int, int]) -> sp.csr_matrix:
    return sp.coo_matrix(
        (np.asarray(values, dtype=np.float64),
         (np.asarray(rows, dtype=int), np.asarray(cols, dtype=int))),
        shape=shape).tocsr()


def _sparse_vector(indices: Sequence[int], values: Sequence[float], n: int) -> sp.csr_matrix:
    return _from_coordinates(np.zeros(len(indices), dtype=int), indices, values, (1, n))


@dataclass(frozen=True, eq=False)
class TwoStageStochasticProgram:
    """
    Matrix form of a two-stage stochastic LP with finitely many scenarios.

    Attributes:
        name (str): Problem name.
        m1, n1 (int): Stage 1 constraint / variable counts (slacks included).
        m2, n2 (int): Stage 2 constraint / variable counts (slacks included).
        nslack1, nslack2 (int): Number of slack columns per stage.
        A (sp.csr_matrix): m1 x n1 stage 1 matrix.
        T (sp.csr_matrix): m2 x n1 technology matrix.
        W (sp.csr_matrix): m2 x n2 recourse matrix.
        c, q (np.ndarray): Stage 1 / stage 2 costs.
        b, h (np.ndarray): Stage 1 / stage 2 right-hand sides.
        delta_T, delta_W (List[sp.csr_matrix]): Per-scenario matrix deltas.
        delta_q (List[sp.csr_matrix]): Per-scenario 1 x n2 cost deltas.
        delta_h (List[sp.csr_matrix]): Per-scenario 1 x m2 RHS deltas.
        probability (np.ndarray): Scenario probabilities.
    """
    name: str
    m1: int
    n1: int
    m2: int
    n2: int
    nslack1: int
    nslack2: int
    A: sp.csr_matrix
    T: sp.csr_matrix
    W: sp.csr_matrix
    c: np.ndarray
    q: np.ndarray
    b: np.ndarray
    h: np.ndarray
    delta_T: List[sp.csr_matrix]
    delta_W: List[sp.csr_matrix]
    delta_q: List[sp.csr_matrix]
    delta_h: List[sp.csr_matrix]
    probability: np.ndarray

    @property
    def num_scenarios(self) -> int:
        return len(self.probability)

    @classmethod
    def from_smps(cls, smps) -> "TwoStageStochasticProgram":
        """Builds the program from an SMPSFile bundle."""
        return build_two_stage_program(smps.cor, smps.tim, smps.sto)

    def scenario(self, k: int) -> Scenario:
        """Returns the realized (T, W, q, h, probability) of scenario k."""
        if not 0 <= k < self.num_scenarios:
            raise IndexError(f"Scenario index {k} out of range [0, {self.num_scenarios})")
        return Scenario(
            T=(self.T + self.delta_T[k]).tocsr(),
            W=(self.W + self.delta_W[k]).tocsr(),
            q=self.q + self.delta_q[k].toarray().ravel(),
            h=self.h + self.delta_h[k].toarray().ravel(),
            probability=float(self.probability[k]),
        )

    def scenarios(self) -> Iterator[Scenario]:
        for k in range(self.num_scenarios):
            yield self.scenario(k)

    def extensive_form(self) -> Tuple[np.ndarray, sp.csr_matrix, np.ndarray]:
        """
        Builds the deterministic equivalent  min c'z  s.t.  A z = b, z >= 0.

        The variables are z = (x, y_1, ..., y_K) and the rows are the stage 1
        block followed by one stage 2 block per scenario:

            [ A                    ]
            [ T_1  W_1             ]
            [ T_2       W_2        ]
            [ ...            ...   ]

        Returns:
            Tuple (cost vector, constraint matrix in CSR, right-hand side).
        """
        K = self.num_scenarios
        total_vars = self.n1 + K * self.n2
        total_cons = self.m1 + K * self.m2

        rows, cols, data = [], [], []
        A = self.A.tocoo()
        rows.append(A.row)
        cols.append(A.col)
        data.append(A.data)

        costs = [self.c]
        rhs = [self.b]
        for k, scen in enumerate(self.scenarios()):
            row_offset = self.m1 + k * self.m2
            col_offset = self.n1 + k * self.n2
            T_k = scen.T.tocoo()
            W_k = scen.W.tocoo()
            rows.extend([T_k.row + row_offset, W_k.row + row_offset])
            cols.extend([T_k.col, W_k.col + col_offset])
            data.extend([T_k.data, W_k.data])
            costs.append(scen.probability * scen.q)
            rhs.append(scen.h)

        matrix = sp.coo_matrix(
            (np.concatenate(data), (np.concatenate(rows), np.concatenate(cols))),
            shape=(total_cons, total_vars)).tocsr()
        logger.info(f"Extensive form constructed. Shape: {matrix.shape}, NNZ: {matrix.nnz}")
        return np.concatenate(costs), matrix, np.concatenate(rhs)

    def print_summary(self):
        """Prints a summary of the program structure."""
        print("\n--- Two-Stage Stochastic Program Summary ---")
        print(f"Name: {self.name}")
        print("-" * 30)
        print(f"Stage 1 Variables (x): {self.n1} ({self.nslack1} slacks)")
        print(f"Stage 1 Constraints:   {self.m1}")
        print(f"Stage 2 Variables (y): {self.n2} ({self.nslack2} slacks)")
        print(f"Stage 2 Constraints:   {self.m2}")
        print("-" * 30)
        print(f"Matrix A shape: {self.A.shape}, nnz: {self.A.nnz}")
        print(f"Matrix T shape: {self.T.shape}, nnz: {self.T.nnz}")
        print(f"Matrix W shape: {self.W.shape}, nnz: {self.W.nnz}")
        print("-" * 30)
        print(f"Scenarios: {self.num_scenarios} (total probability {self.probability.sum():.6f})")
        print("-" * 30)


def build_two_stage_program(cor: MatrixData, tim: TimeSectionData, sto: StochData) -> TwoStageStochasticProgram:
    """
    Assembles a TwoStageStochasticProgram from parsed .cor, .tim and .sto data.

    Raises:
        NotTwoStageError: The time data does not have exactly two periods.
        InvalidPartitionError: Period boundaries do not match the core file.
        UnsupportedBoundsError: A variable bound other than [0, +inf).
        UnsupportedRowBoundsError: A ranged or free constraint row.
        MalformedScenarioEntryError: A perturbation that does not fit.
    """
    if len(tim.rows) != 2:
        raise NotTwoStageError(f"Expected a two stage problem. Got {len(tim.rows)}.")

    # --- Partition rows and columns into 1st and 2nd periods ---
    try:
        j1 = cor.var_indices[tim.cols[0]]
        j2 = cor.var_indices[tim.cols[1]]
        i1 = cor.con_indices[tim.rows[0]]
        i2 = cor.con_indices[tim.rows[1]]
    except KeyError as e:
        raise InvalidPartitionError(f"Period start {e} not found in core file.") from None

    if i1 != 0 or j1 != 0:
        raise InvalidPartitionError(
            f"First period must start at the first row and column; got row '{tim.rows[0]}' "
            f"(index {i1}) and column '{tim.cols[0]}' (index {j1}).")

    m1, n1 = i2, j2
    m2, n2 = cor.ncon - m1, cor.nvar - n1
    logger.info(f"Stage 2 starts at var index {j2}, constraint index {i2}.")

    # --- Variable bounds ---
    if np.any(cor.lvar != 0):
        bad = cor.col_names[int(np.flatnonzero(cor.lvar != 0)[0])]
        raise UnsupportedBoundsError(f"Expected lower bound of 0 for decision variables (variable '{bad}').")
    if np.any(cor.uvar != np.inf):
        bad = cor.col_names[int(np.flatnonzero(cor.uvar != np.inf)[0])]
        raise UnsupportedBoundsError(f"Expected no upper bound on decision variables (variable '{bad}').")

    # --- Slack columns and right-hand sides ---
    nslack1 = 0
    nslack2 = 0
    srows, scols, svals = [], [], []
    rhs = np.zeros(cor.ncon)
    for i, (lo, up) in enumerate(zip(cor.lcon, cor.ucon)):
        first_period = i < m1
        if lo == -np.inf and np.isfinite(up):  # a'x <= up
            slack_value = 1.0
            rhs[i] = up
        elif np.isfinite(lo) and up == np.inf:  # a'x >= lo
            slack_value = -1.0
            rhs[i] = lo
        elif lo == up:  # a'x == lo
            rhs[i] = lo
            continue
        else:
            raise UnsupportedRowBoundsError(f"Unsupported bounds for row '{cor.row_names[i]}': [{lo}, {up}]")

        srows.append(i)
        scols.append(nslack1 + nslack2)
        svals.append(slack_value)
        if first_period:
            nslack1 += 1
        else:
            nslack2 += 1

    # --- Template data ---
    M = cor.constraint_matrix()
    S = _from_coordinates(srows, scols, svals, (cor.ncon, nslack1 + nslack2))

    A = sp.hstack([M[:m1, :n1], S[:m1, :nslack1]], format="csr")
    T = sp.hstack([M[m1:, :n1], sp.csr_matrix((m2, nslack1))], format="csr")
    W = sp.hstack([M[m1:, n1:], S[m1:, nslack1:]], format="csr")
    c = np.concatenate([cor.c[:n1], np.zeros(nslack1)])
    q = np.concatenate([cor.c[n1:], np.zeros(nslack2)])
    b = rhs[:m1].copy()
    h = rhs[m1:].copy()

    n1_full, n2_full = n1 + nslack1, n2 + nslack2
    logger.info(f"Stage 1: {n1_full} vars ({nslack1} slacks), {m1} constraints.")
    logger.info(f"Stage 2: {n2_full} vars ({nslack2} slacks), {m2} constraints.")

    # --- Scenario enumeration ---
    elements: List[RandomElement] = list(sto.indeps) + list(sto.blocks)
    skipped = [e for e in elements if not isinstance(e, (ScalarDiscrete, BlockDiscrete))]
    if skipped:
        logger.warning(f"{len(skipped)} continuous random variables have no finite support "
                       f"and are left out of the scenario set.")
    realizations = [all_realizations(e) for e in elements
                    if isinstance(e, (ScalarDiscrete, BlockDiscrete))]

    T_lookup = T.todok()
    W_lookup = W.todok()

    delta_T, delta_W, delta_q, delta_h = [], [], [], []
    probability = []
    for combination in itertools.product(*realizations):
        # Perturbations are collected as coordinates, sparse objects are built at the end
        trows, tcols, tvals = [], [], []
        wrows, wcols, wvals = [], [], []
        qind, qval = [], []
        hind, hval = [], []
        p = 1.0
        for entries, prob in combination:
            p *= prob
            for row_name, col_name, z in entries:
                is_obj = row_name == cor.obj_name
                is_rhs = col_name == cor.rhs_name
                if not is_obj and row_name not in cor.con_indices:
                    raise MalformedScenarioEntryError(f"Unknown row '{row_name}'")
                if not is_rhs and col_name not in cor.var_indices:
                    raise MalformedScenarioEntryError(f"Unknown variable '{col_name}'")

                if is_obj and not is_rhs:
                    j = cor.var_indices[col_name]
                    if j < n1:
                        raise MalformedScenarioEntryError(
                            f"Objective perturbation on first-stage variable '{col_name}'")
                    qind.append(j - n1)
                    qval.append(z - q[j - n1])
                elif is_rhs and not is_obj:
                    i = cor.con_indices[row_name]
                    if i < m1:
                        raise MalformedScenarioEntryError(
                            f"Right-hand side perturbation on first-stage row '{row_name}'")
                    hind.append(i - m1)
                    hval.append(z - h[i - m1])
                elif not is_obj and not is_rhs:
                    i = cor.con_indices[row_name]
                    j = cor.var_indices[col_name]
                    if i < m1:
                        raise MalformedScenarioEntryError(
                            f"Coefficient perturbation on first-stage row '{row_name}'")
                    if j < n1:
                        trows.append(i - m1)
                        tcols.append(j)
                        tvals.append(z - T_lookup.get((i - m1, j), 0.0))
                    else:
                        wrows.append(i - m1)
                        wcols.append(j - n1)
                        wvals.append(z - W_lookup.get((i - m1, j - n1), 0.0))
                else:
                    raise MalformedScenarioEntryError(
                        f"Entry ({row_name}, {col_name}) is neither an objective, RHS nor matrix coefficient")

        delta_T.append(_from_coordinates(trows, tcols, tvals, (m2, n1_full)))
        delta_W.append(_from_coordinates(wrows, wcols, wvals, (m2, n2_full)))
        delta_q.append(_sparse_vector(qind, qval, n2_full))
        delta_h.append(_sparse_vector(hind, hval, m2))
        probability.append(p)

    logger.info(f"Built {len(probability)} scenarios from {len(realizations)} random elements.")

    return TwoStageStochasticProgram(
        name=sto.name or tim.name or cor.name,
        m1=m1,
        n1=n1_full,
        m2=m2,
        n2=n2_full,
        nslack1=nslack1,
        nslack2=nslack2,
        A=A,
        T=T,
        W=W,
        c=c,
        q=q,
        b=b,
        h=h,
        delta_T=delta_T,
        delta_W=delta_W,
        delta_q=delta_q,
        delta_h=delta_h,
        probability=np.array(probability, dtype=np.float64),
    )
