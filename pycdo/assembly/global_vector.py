"""pycdo.assembly.global_vector
Mesh-wide source terms: right-hand side assembly and DoF values of a term.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import scipy.sparse as sp

from pycdo.assembly.source_term import compute_cellwise
from pycdo.core.cell import CellScratch
from pycdo.core.context import SourceTermContext
from pycdo.errors import UnsupportedConfiguration
from pycdo.source.definitions import ArrayLocation, DefinitionKind, SupportKind
from pycdo.source.dispatch import select_evaluator
from pycdo.source.mask import NO_MASK, build_cell_mask
from pycdo.source.registry import check_array_size
from pycdo.source.schemes import SpaceScheme, SystemFlag

logger = logging.getLogger(__name__)

__all__ = ["SourceVector", "assemble_source_vector", "compute_source_values"]


@dataclass
class SourceVector:
    vertex_values: np.ndarray
    cell_values: Optional[np.ndarray] = None     # only for the vertex+cell scheme


@dataclass
class _ChunkResult:
    v_rows: List[np.ndarray]
    v_blocks: List[np.ndarray]
    c_rows: List[int]
    c_blocks: List[np.ndarray]


def _scatter(rows, blocks, n_rows: int, shape) -> np.ndarray:
    """Sum ``blocks`` into ``n_rows`` rows (duplicated rows are added)."""
    k = int(np.prod(shape)) if shape else 1
    if not blocks:
        return np.zeros((n_rows,) + tuple(shape))
    r = np.concatenate([np.asarray(x, dtype=np.int64).ravel() for x in rows])
    data = np.concatenate([np.asarray(b).reshape(-1, k) for b in blocks])
    R = np.repeat(r, k)
    C = np.tile(np.arange(k), r.shape[0])
    M = sp.coo_matrix((data.ravel(), (R, C)), shape=(n_rows, k))
    return M.toarray().reshape((n_rows,) + tuple(shape))


def _hodge_support(scheme: SpaceScheme) -> SupportKind:
    return SupportKind.VERTEX_CELL_POTENTIAL if scheme.has_cell_dof else SupportKind.VERTEX_POTENTIAL


def assemble_source_vector(context: SourceTermContext, registry, dispatch, mask=NO_MASK,
                           *, n_workers: int = 1, chunk_size: Optional[int] = None) -> SourceVector:
    """
    Loop over all cells, accumulate the cellwise source terms and scatter
    them into a vertex vector (and a cell vector for the vertex+cell scheme).

    With ``n_workers > 1`` chunks of cells are processed by a thread pool,
    each chunk owning its scratch. The first failure aborts the whole pass.

    Without a mask, one is built from the registry as soon as a term is
    restricted to a subset of cells.
    """
    registry.check_sizes(context.n_cells, context.n_vertices)
    if mask is NO_MASK and not all(st.is_full_domain for st in registry.terms):
        mask = build_cell_mask(registry, context.n_cells)
    n_terms = len(dispatch)
    flags = dispatch.flags
    shape = registry.terms[0].value_shape if n_terms else ()
    need_hodge = bool(flags & SystemFlag.HLOC_CONF)
    if need_hodge and context.hodge is None:
        raise RuntimeError("Potential source terms require a local Hodge operator provider in the context.")
    hodge_support = _hodge_support(dispatch.scheme)

    def _run(cell_ids) -> _ChunkResult:
        scratch = CellScratch(t_cur=context.t_cur)
        res = _ChunkResult([], [], [], [])
        for c_id in cell_ids:
            cell = context.cell_geometry(int(c_id))
            if need_hodge:
                scratch.set_hodge(cell.c_id, context.hodge(cell, hodge_support))
            out = np.zeros((dispatch.n_dofs(cell),) + shape)
            compute_cellwise(n_terms, registry, cell, flags, mask, dispatch, scratch, out)
            res.v_rows.append(cell.v_ids)
            res.v_blocks.append(out[:cell.n_vc])
            if dispatch.scheme.has_cell_dof:
                res.c_rows.append(cell.c_id)
                res.c_blocks.append(out[cell.n_vc])
        return res

    all_cells = np.arange(context.n_cells)
    if n_workers <= 1:
        results = [_run(all_cells)]
    else:
        size = chunk_size or max(1, -(-context.n_cells // (4 * n_workers)))
        chunks = [all_cells[i:i + size] for i in range(0, context.n_cells, size)]
        with ThreadPoolExecutor(max_workers=n_workers) as pool:
            futures = [pool.submit(_run, chunk) for chunk in chunks]
            results = []
            try:
                for fut in futures:
                    results.append(fut.result())
            except Exception:
                for fut in futures:
                    fut.cancel()
                raise
    logger.debug(f"Assembled source terms over {context.n_cells} cells with {max(1, n_workers)} worker(s).")

    v_rows = [r for res in results for r in res.v_rows]
    v_blocks = [b for res in results for b in res.v_blocks]
    vec = SourceVector(_scatter(v_rows, v_blocks, context.n_vertices, shape))
    if dispatch.scheme.has_cell_dof:
        c_rows = [r for res in results for r in res.c_rows]
        c_blocks = [b for res in results for b in res.c_blocks]
        vec.cell_values = _scatter(c_rows, c_blocks, context.n_cells, shape)
    return vec


def _potential_at(st, t_cur: float, points: np.ndarray, ids: np.ndarray,
                  location: ArrayLocation) -> np.ndarray:
    d = st.definition
    if st.def_kind is DefinitionKind.VALUE:
        return np.broadcast_to(d.value, (ids.shape[0],) + st.value_shape)
    if st.def_kind is DefinitionKind.ANALYTIC:
        return d.evaluate(t_cur, points, st.value_shape)
    if d.location is not location:
        raise UnsupportedConfiguration(
            f"Source term {st.name!r}: array located at {d.location.value} cannot be "
            f"sampled at {location.value}.")
    return np.asarray(d.data)[ids]


def compute_source_values(context: SourceTermContext, st, location: ArrayLocation) -> np.ndarray:
    """
    DoF values of one source term over the whole mesh.

    Potentials are sampled at vertices or cell centers. Densities are
    integrated over dual cells (``VERTICES``) or primal cells (``CELLS``).
    Entities outside the subset of the term are left to zero.
    """
    if not isinstance(location, ArrayLocation):
        raise UnsupportedConfiguration(f"Invalid location {location!r} to compute a source term.")
    check_array_size(st, context.n_cells, context.n_vertices)
    n_ent = context.n_vertices if location is ArrayLocation.VERTICES else context.n_cells
    values = np.zeros((n_ent,) + st.value_shape)
    cell_ids = st.subset.elements(context.n_cells)

    if st.support.is_potential:
        if location is ArrayLocation.VERTICES:
            if context.vertex_coords is None:
                raise RuntimeError("Vertex coordinates are needed to sample a potential at vertices.")
            ids = np.unique(np.concatenate(
                [context.cell_geometry(int(c)).v_ids for c in cell_ids])) if cell_ids.size else cell_ids
            pts = context.vertex_coords[ids]
        else:
            ids = cell_ids
            pts = np.array([context.cell_geometry(int(c)).xc for c in ids]).reshape(-1, 3)
        values[ids] = _potential_at(st, context.t_cur, pts, ids, location)
        return values

    # densities are integrated cellwise with the vertex-based evaluators
    compute = select_evaluator(SpaceScheme.CDOVB, st)
    scratch = CellScratch(t_cur=context.t_cur)
    for c_id in cell_ids:
        cell = context.cell_geometry(int(c_id))
        contrib = np.zeros((cell.n_vc,) + st.value_shape)
        compute(st, cell, scratch, contrib)
        if location is ArrayLocation.VERTICES:
            np.add.at(values, cell.v_ids, contrib)
        else:
            values[cell.c_id] += contrib.sum(axis=0)
    return values
