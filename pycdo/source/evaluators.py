"""pycdo.source.evaluators
Cellwise contributions of one source term.

Every evaluator has the signature ``evaluator(st, cell, scratch, values)``
and *adds* its contribution to ``values`` (shape ``(n_dofs,) + value_shape``).

Density terms are integrated over dual cells, i.e. over the sub-tetrahedra
(x_v, x_e, x_f, x_c) attached to each vertex:

=================  ==========================================  ========
quadrature         evaluation points                           exact on
=================  ==========================================  ========
BARYCENTRIC        barycenter of each dual cell                P1
SUBDIVIDED_1PT     centroid of each sub-tetrahedron            P1
ORDER2             4 corners + 6 edge midpoints per sub-tet    P2
ORDER3             5 points per sub-tet                        P3
=================  ==========================================  ========

Potential terms are evaluated at vertices (and at the cell center for the
vertex+cell scheme) and multiplied by the local Hodge operator attached to
the scratch.
"""
import numpy as np

from pycdo.core.cell import CellGeometry, CellScratch
from pycdo.errors import NumericalDegeneracy
from pycdo.integration.tetrahedra import SubTetrahedra, tet_5pts, tet_10pts, tet_centroid

__all__ = [
    "vertex_potential_by_value", "vertex_potential_by_analytic", "vertex_potential_by_array",
    "vertex_cell_potential_by_value", "vertex_cell_potential_by_analytic",
    "dual_density_by_value", "dual_density_by_array",
    "dual_density_bary_by_analytic", "dual_density_subdiv_by_analytic",
    "dual_density_order2_by_analytic", "dual_density_order3_by_analytic",
]

# Relative threshold below which a volume is considered to vanish: the cell
# volume w.r.t. the cube of its extent, a dual volume w.r.t. the cell volume.
DEGENERACY_TOL = 1e-14


def _bcast(w: np.ndarray, shape) -> np.ndarray:
    return w.reshape(w.shape + (1,) * len(shape))


def _analytic(st, scratch: CellScratch, points: np.ndarray) -> np.ndarray:
    return st.definition.evaluate(scratch.t_cur, points, st.value_shape)


def _dual_divisor(cell: CellGeometry, tets: SubTetrahedra):
    """
    Summed sub-tetrahedra volume of each dual cell and the vertices whose
    dual cell is not empty. A flat cell cannot be normalized at all.
    """
    extent = float(np.ptp(cell.xv, axis=0).max()) if cell.n_vc else 0.0
    if cell.vol_c <= DEGENERACY_TOL * extent**3:
        raise NumericalDegeneracy(
            f"Cell {cell.c_id} has a zero volume ({cell.vol_c:.3e}); "
            "cannot normalize the source-term quadrature.", c_id=cell.c_id)
    dual = tets.dual_volumes(cell.n_vc)
    return dual, dual > DEGENERACY_TOL * cell.vol_c


def _integrate_on_tets(st, cell, scratch, tets: SubTetrahedra, rule) -> np.ndarray:
    """Apply ``rule`` on every sub-tetrahedron and gather results per vertex."""
    shape = st.value_shape
    out = np.zeros((cell.n_vc,) + shape)
    if len(tets) == 0:
        return out
    pts, w = rule(tets.corners)
    n_t, n_q = pts.shape[:2]
    f = _analytic(st, scratch, pts.reshape(-1, 3)).reshape((n_t, n_q) + shape)
    per_tet = _bcast(tets.vol, shape) * np.tensordot(w, f, axes=([0], [1]))
    np.add.at(out, tets.vertex, per_tet)
    return out


# -------------------------------------------------------------------------
# Potentials: evaluation at DoF locations then local Hodge product
# -------------------------------------------------------------------------
def _add_hodge_product(cell, scratch, eval_dofs, values):
    n_dofs = eval_dofs.shape[0]
    hdg = scratch.hodge_for(cell, n_dofs)
    values[:n_dofs] += np.tensordot(hdg, eval_dofs, axes=1)


def vertex_potential_by_value(st, cell: CellGeometry, scratch: CellScratch, values):
    """Constant potential at primal vertices."""
    ev = np.broadcast_to(st.definition.value, (cell.n_vc,) + st.value_shape)
    _add_hodge_product(cell, scratch, ev, values)


def vertex_potential_by_analytic(st, cell: CellGeometry, scratch: CellScratch, values):
    """Analytic potential at primal vertices."""
    _add_hodge_product(cell, scratch, _analytic(st, scratch, cell.xv), values)


def vertex_potential_by_array(st, cell: CellGeometry, scratch: CellScratch, values):
    """Potential read from an array located at mesh vertices."""
    ev = np.asarray(st.definition.data)[cell.v_ids]
    _add_hodge_product(cell, scratch, ev, values)


def vertex_cell_potential_by_value(st, cell: CellGeometry, scratch: CellScratch, values):
    """Constant potential at primal vertices and at the cell center."""
    ev = np.broadcast_to(st.definition.value, (cell.n_vc + 1,) + st.value_shape)
    _add_hodge_product(cell, scratch, ev, values)


def vertex_cell_potential_by_analytic(st, cell: CellGeometry, scratch: CellScratch, values):
    """Analytic potential at primal vertices and at the cell center."""
    pts = np.vstack([cell.xv, np.asarray(cell.xc).reshape(1, 3)])
    _add_hodge_product(cell, scratch, _analytic(st, scratch, pts), values)


# -------------------------------------------------------------------------
# Densities on dual cells
# -------------------------------------------------------------------------
def dual_density_by_value(st, cell: CellGeometry, scratch: CellScratch, values):
    """Constant density: exact by construction."""
    n = cell.n_vc
    values[:n] += _bcast(cell.dual_volumes(), st.value_shape) * st.definition.value


def dual_density_by_array(st, cell: CellGeometry, scratch: CellScratch, values):
    """Piecewise constant density read from an array located at cells."""
    n = cell.n_vc
    val = np.asarray(st.definition.data)[cell.c_id]
    values[:n] += _bcast(cell.dual_volumes(), st.value_shape) * val


def dual_density_bary_by_analytic(st, cell: CellGeometry, scratch: CellScratch, values):
    """
    One evaluation per dual cell, at its barycenter. Exact for affine
    functions. An empty dual cell gets no contribution.
    """
    n = cell.n_vc
    tets = scratch.sub_tetrahedra(cell)
    divisor, filled = _dual_divisor(cell, tets)

    xg = np.zeros((n, 3))
    np.add.at(xg, tets.vertex, tets.vol[:, None] * tets.centroids())
    xg[filled] /= divisor[filled, None]
    xg[~filled] = cell.xv[~filled]

    result = _analytic(st, scratch, xg)
    dual = np.where(filled, cell.dual_volumes(), 0.0)
    values[:n] += _bcast(dual, st.value_shape) * result


def dual_density_subdiv_by_analytic(st, cell: CellGeometry, scratch: CellScratch, values):
    """One evaluation per sub-tetrahedron, at its centroid. Exact for affine functions."""
    n = cell.n_vc
    values[:n] += _integrate_on_tets(st, cell, scratch, scratch.sub_tetrahedra(cell), tet_centroid)


def dual_density_order2_by_analytic(st, cell: CellGeometry, scratch: CellScratch, values):
    """
    Ten-point rule on each sub-tetrahedron. Exact for quadratic functions.

    Contributions are then scaled so that the measure attached to each vertex
    is the dual volume of the cell (``wvc * vol_c``). This matters when
    ``wvc`` comes from a geometry provider other than the sub-tetrahedra.
    """
    n = cell.n_vc
    tets = scratch.sub_tetrahedra(cell)
    divisor, filled = _dual_divisor(cell, tets)
    contrib = _integrate_on_tets(st, cell, scratch, tets, tet_10pts)
    scale = np.zeros(n)
    scale[filled] = cell.dual_volumes()[filled] / divisor[filled]
    values[:n] += _bcast(scale, st.value_shape) * contrib


def dual_density_order3_by_analytic(st, cell: CellGeometry, scratch: CellScratch, values):
    """
    Five-point rule on each sub-tetrahedron. Exact for cubic functions.
    Needs 10 evaluations per (face, edge) pair of the cell: use with care.
    """
    n = cell.n_vc
    values[:n] += _integrate_on_tets(st, cell, scratch, scratch.sub_tetrahedra(cell), tet_5pts)
