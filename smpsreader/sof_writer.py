# sof_writer.py

"""
Writer for the StochOptFormat (SOF) scenario-lattice interchange format.

The lattice has three nodes: the root "0" holding the initial value of the
state variables, node "1" with the first-stage subproblem and node "2" with
the second-stage subproblem, whose random variables take one listed value
per scenario. Subproblems are MathOptFormat models encoded as plain dicts.
"""

import gzip
import json
import logging
from typing import Any, Dict, List, Tuple

from .tssp import TwoStageStochasticProgram

# --- Setup Logger ---
logger = logging.getLogger(__name__)
if not logger.hasHandlers():
    logger.addHandler(logging.NullHandler())

SOF_VERSION = {"major": 0, "minor": 1}
MOF_VERSION = {"major": 1, "minor": 2}


def _affine(terms: List[Tuple[float, str]], constant: float = 0.0) -> Dict[str, Any]:
    return {
        "type": "ScalarAffineFunction",
        "terms": [{"coefficient": float(a), "variable": v} for a, v in terms],
        "constant": constant,
    }


def _quadratic(affine_terms: List[Tuple[float, str]], quadratic_terms: List[Tuple[float, str, str]],
               constant: float = 0.0) -> Dict[str, Any]:
    return {
        "type": "ScalarQuadraticFunction",
        "affine_terms": [{"coefficient": float(a), "variable": v} for a, v in affine_terms],
        "quadratic_terms": [{"coefficient": float(a), "variable_1": v1, "variable_2": v2}
                            for a, v1, v2 in quadratic_terms],
        "constant": constant,
    }


def _nonnegative(name: str) -> Dict[str, Any]:
    return {"function": {"type": "Variable", "name": name}, "set": {"type": "GreaterThan", "lower": 0.0}}


def _model(variables: List[str], objective: Dict[str, Any], constraints: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "version": MOF_VERSION,
        "variables": [{"name": v} for v in variables],
        "objective": {"sense": "min", "function": objective},
        "constraints": constraints,
    }


def _first_stage_node(problem: TwoStageStochasticProgram) -> Dict[str, Any]:
    x_in = [f"x[{i}]" for i in range(problem.n1)]
    x_out = [f"x_out[{i}]" for i in range(problem.n1)]

    constraints = [_nonnegative(v) for v in x_out]
    terms: List[List[Tuple[float, str]]] = [[] for _ in range(problem.m1)]
    A = problem.A.tocoo()
    for i, j, v in zip(A.row, A.col, A.data):
        terms[i].append((v, x_out[j]))
    for aff, b_i in zip(terms, problem.b):
        constraints.append({"function": _affine(aff), "set": {"type": "EqualTo", "value": float(b_i)}})

    objective = _affine(list(zip(problem.c, x_out)))
    return {
        "state_variables": {str(i): {"in": x_in[i], "out": x_out[i]} for i in range(problem.n1)},
        "random_variables": [],
        "subproblem": _model(x_in + x_out, objective, constraints),
        "realizations": [],
    }


def _second_stage_node(problem: TwoStageStochasticProgram) -> Dict[str, Any]:
    x = [f"x[{i}]" for i in range(problem.n1)]
    y = [f"y[{j}]" for j in range(problem.n2)]
    variables = x + y
    constraints = [_nonnegative(v) for v in y]

    # y doubles as the outgoing state unless there are fewer y than x
    extra_out = [f"x_out[{i}]" for i in range(max(problem.n1 - problem.n2, 0))]
    variables += extra_out
    constraints += [_nonnegative(v) for v in extra_out]
    outgoing = y + extra_out

    # --- Random variables, one per perturbed entry ---
    random_variables: List[str] = []
    support: List[Dict[str, float]] = [{} for _ in range(problem.num_scenarios)]
    dq_vars: Dict[int, str] = {}
    dh_vars: Dict[int, str] = {}
    dT_vars: Dict[Tuple[int, int], str] = {}
    dW_vars: Dict[Tuple[int, int], str] = {}

    def _random_variable(table, key, label: str) -> str:
        if key not in table:
            name = f"{label}[{key[0]},{key[1]}]" if isinstance(key, tuple) else f"{label}[{key}]"
            table[key] = name
            random_variables.append(name)
        return table[key]

    for k, dq in enumerate(problem.delta_q):
        dq = dq.tocoo()
        for j, v in zip(dq.col, dq.data):
            support[k][_random_variable(dq_vars, int(j), "dq")] = float(v)
    for k, dh in enumerate(problem.delta_h):
        dh = dh.tocoo()
        for i, v in zip(dh.col, dh.data):
            support[k][_random_variable(dh_vars, int(i), "dh")] = float(v)
    for k, dT in enumerate(problem.delta_T):
        dT = dT.tocoo()
        for i, j, v in zip(dT.row, dT.col, dT.data):
            support[k][_random_variable(dT_vars, (int(i), int(j)), "dT")] = float(v)
    for k, dW in enumerate(problem.delta_W):
        dW = dW.tocoo()
        for i, j, v in zip(dW.row, dW.col, dW.data):
            support[k][_random_variable(dW_vars, (int(i), int(j)), "dW")] = float(v)

    # SMPS omits entries equal to the template, so fill them with zero
    for omega in support:
        for name in random_variables:
            omega.setdefault(name, 0.0)
    variables += random_variables

    # --- Objective: q'y + dq'y ---
    q_terms = list(zip(problem.q, y))
    if dq_vars:
        objective = _quadratic(q_terms, [(1.0, w, y[j]) for j, w in dq_vars.items()])
    else:
        objective = _affine(q_terms)

    # --- Constraints: T x + W y - dh + dT x + dW y = h ---
    aff_terms: List[List[Tuple[float, str]]] = [[] for _ in range(problem.m2)]
    T = problem.T.tocoo()
    for i, j, v in zip(T.row, T.col, T.data):
        aff_terms[i].append((v, x[j]))
    W = problem.W.tocoo()
    for i, j, v in zip(W.row, W.col, W.data):
        aff_terms[i].append((v, y[j]))
    for i, w in dh_vars.items():
        aff_terms[i].append((-1.0, w))

    quad_terms: List[List[Tuple[float, str, str]]] = [[] for _ in range(problem.m2)]
    for (i, j), w in dT_vars.items():
        quad_terms[i].append((1.0, w, x[j]))
    for (i, j), w in dW_vars.items():
        quad_terms[i].append((1.0, w, y[j]))

    for aff, quad, h_i in zip(aff_terms, quad_terms, problem.h):
        function = _quadratic(aff, quad) if quad else _affine(aff)
        constraints.append({"function": function, "set": {"type": "EqualTo", "value": float(h_i)}})

    return {
        "state_variables": {str(i): {"in": x[i], "out": outgoing[i]} for i in range(problem.n1)},
        "random_variables": random_variables,
        "subproblem": _model(variables, objective, constraints),
        "realizations": [
            {"probability": float(p), "support": omega}
            for p, omega in zip(problem.probability, support)
        ],
    }


def to_sof_dict(problem: TwoStageStochasticProgram) -> Dict[str, Any]:
    """Builds the StochOptFormat document of `problem` as a dict."""
    return {
        "version": SOF_VERSION,
        "root": {
            "name": "0",
            "state_variables": {str(i): {"initial_value": 0.0} for i in range(problem.n1)},
        },
        "nodes": {
            "1": _first_stage_node(problem),
            "2": _second_stage_node(problem),
        },
        "edges": [
            {"from": "0", "to": "1", "probability": 1.0},
            {"from": "1", "to": "2", "probability": 1.0},
        ],
        "test_scenarios": [],
    }


def write_to_file(problem: TwoStageStochasticProgram, filename: str):
    """
    Writes `problem` to a StochOptFormat file (conventionally `.sof.json`).

    The output is gzip-compressed when `filename` ends in `.gz`.
    """
    logger.info(f"Writing StochOptFormat file: {filename}...")
    data = to_sof_dict(problem)
    opener = gzip.open if filename.endswith(".gz") else open
    with opener(filename, 'wt') as f:
        json.dump(data, f)
    logger.info(f"Wrote {problem.num_scenarios} realizations to {filename}.")
