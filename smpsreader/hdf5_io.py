# hdf5_io.py

import logging
import os
from typing import List

import h5py
import numpy as np
import scipy.sparse as sp

from .tssp import TwoStageStochasticProgram

# --- Setup Logger ---
logger = logging.getLogger(__name__)
if not logger.hasHandlers():
    logger.addHandler(logging.NullHandler())


def _save_csr(group: h5py.Group, name: str, matrix: sp.csr_matrix):
    grp = group.create_group(name)
    grp.attrs['shape'] = matrix.shape
    grp.create_dataset("data", data=matrix.data, compression="gzip")
    grp.create_dataset("indices", data=matrix.indices, compression="gzip")
    grp.create_dataset("indptr", data=matrix.indptr, compression="gzip")


def _load_csr(group: h5py.Group, name: str) -> sp.csr_matrix:
    grp = group[name]
    shape = tuple(int(s) for s in grp.attrs['shape'])
    return sp.csr_matrix((grp["data"][:], grp["indices"][:], grp["indptr"][:]), shape=shape)


def _save_stacked_matrices(group: h5py.Group, name: str, matrices: List[sp.csr_matrix]):
    """Stores a list of same-shape sparse matrices as one COO table with a scenario column."""
    scenario, rows, cols, vals = [], [], [], []
    for k, m in enumerate(matrices):
        m = m.tocoo()
        scenario.append(np.full(m.nnz, k, dtype=np.int64))
        rows.append(m.row)
        cols.append(m.col)
        vals.append(m.data)
    grp = group.create_group(name)
    grp.create_dataset("scenario", data=np.concatenate(scenario) if scenario else np.array([], dtype=np.int64),
                       compression="gzip")
    grp.create_dataset("row", data=np.concatenate(rows).astype(np.int64) if rows else np.array([], dtype=np.int64),
                       compression="gzip")
    grp.create_dataset("col", data=np.concatenate(cols).astype(np.int64) if cols else np.array([], dtype=np.int64),
                       compression="gzip")
    grp.create_dataset("value", data=np.concatenate(vals) if vals else np.array([], dtype=np.float64),
                       compression="gzip")


def _load_stacked_matrices(group: h5py.Group, name: str, num_scenarios: int, shape) -> List[sp.csr_matrix]:
    grp = group[name]
    scenario = grp["scenario"][:]
    rows, cols, vals = grp["row"][:], grp["col"][:], grp["value"][:]
    matrices = []
    for k in range(num_scenarios):
        mask = scenario == k
        matrices.append(sp.coo_matrix((vals[mask], (rows[mask], cols[mask])), shape=shape).tocsr())
    return matrices


def _save_stacked_vectors(group: h5py.Group, name: str, vectors: List[sp.csr_matrix]):
    """Stores a list of 1 x n sparse row vectors as one (scenario, index, value) table."""
    scenario, index, vals = [], [], []
    for k, v in enumerate(vectors):
        v = v.tocoo()
        scenario.append(np.full(v.nnz, k, dtype=np.int64))
        index.append(v.col.astype(np.int64))
        vals.append(v.data)
    grp = group.create_group(name)
    grp.create_dataset("scenario", data=np.concatenate(scenario) if scenario else np.array([], dtype=np.int64),
                       compression="gzip")
    grp.create_dataset("index", data=np.concatenate(index) if index else np.array([], dtype=np.int64),
                       compression="gzip")
    grp.create_dataset("value", data=np.concatenate(vals) if vals else np.array([], dtype=np.float64),
                       compression="gzip")


def _load_stacked_vectors(group: h5py.Group, name: str, num_scenarios: int, n: int) -> List[sp.csr_matrix]:
    grp = group[name]
    scenario = grp["scenario"][:]
    index, vals = grp["index"][:], grp["value"][:]
    vectors = []
    for k in range(num_scenarios):
        mask = scenario == k
        cols = index[mask]
        vectors.append(sp.coo_matrix((vals[mask], (np.zeros(len(cols), dtype=np.int64), cols)),
                                     shape=(1, n)).tocsr())
    return vectors


def save_hdf5(problem: TwoStageStochasticProgram, filepath: str):
    """
    Saves an assembled program to an HDF5 file.

    Layout:
        /metadata   attrs: name, m1, n1, m2, n2, nslack1, nslack2, num_scenarios
        /template   A, T, W (CSR parts) and c, q, b, h
        /scenarios  probability, (scenario, row, col, value) tables dT, dW
                    and (scenario, index, value) tables dq, dh
    """
    logger.info(f"Saving program to HDF5 file: {filepath}...")
    try:
        with h5py.File(filepath, 'w') as f:
            meta_grp = f.create_group("metadata")
            meta_grp.attrs['name'] = problem.name
            meta_grp.attrs['m1'] = problem.m1
            meta_grp.attrs['n1'] = problem.n1
            meta_grp.attrs['m2'] = problem.m2
            meta_grp.attrs['n2'] = problem.n2
            meta_grp.attrs['nslack1'] = problem.nslack1
            meta_grp.attrs['nslack2'] = problem.nslack2
            meta_grp.attrs['num_scenarios'] = problem.num_scenarios

            tmpl_grp = f.create_group("template")
            _save_csr(tmpl_grp, "A", problem.A)
            _save_csr(tmpl_grp, "T", problem.T)
            _save_csr(tmpl_grp, "W", problem.W)
            for name in ("c", "q", "b", "h"):
                tmpl_grp.create_dataset(name, data=getattr(problem, name))

            scen_grp = f.create_group("scenarios")
            scen_grp.create_dataset("probability", data=problem.probability, compression="gzip")
            _save_stacked_matrices(scen_grp, "dT", problem.delta_T)
            _save_stacked_matrices(scen_grp, "dW", problem.delta_W)
            _save_stacked_vectors(scen_grp, "dq", problem.delta_q)
            _save_stacked_vectors(scen_grp, "dh", problem.delta_h)
    except Exception as e:
        logger.error(f"Error saving HDF5 file {filepath}: {e}")
        raise
    logger.info(f"Saved {problem.num_scenarios} scenarios to {os.path.basename(filepath)}.")


def load_hdf5(filepath: str) -> TwoStageStochasticProgram:
    """Loads a program previously written by save_hdf5()."""
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"HDF5 file not found: {filepath}")

    logger.info(f"Loading program from HDF5 file: {filepath}...")
    with h5py.File(filepath, 'r') as f:
        meta = f['/metadata'].attrs
        m1, n1, m2, n2 = (int(meta[k]) for k in ('m1', 'n1', 'm2', 'n2'))
        num_scenarios = int(meta['num_scenarios'])
        name = meta['name']
        if isinstance(name, bytes):
            name = name.decode()

        tmpl = f['/template']
        scen = f['/scenarios']
        return TwoStageStochasticProgram(
            name=str(name),
            m1=m1,
            n1=n1,
            m2=m2,
            n2=n2,
            nslack1=int(meta['nslack1']),
            nslack2=int(meta['nslack2']),
            A=_load_csr(tmpl, "A"),
            T=_load_csr(tmpl, "T"),
            W=_load_csr(tmpl, "W"),
            c=tmpl["c"][:],
            q=tmpl["q"][:],
            b=tmpl["b"][:],
            h=tmpl["h"][:],
            delta_T=_load_stacked_matrices(scen, "dT", num_scenarios, (m2, n1)),
            delta_W=_load_stacked_matrices(scen, "dW", num_scenarios, (m2, n2)),
            delta_q=_load_stacked_vectors(scen, "dq", num_scenarios, n2),
            delta_h=_load_stacked_vectors(scen, "dh", num_scenarios, m2),
            probability=scen["probability"][:],
        )
