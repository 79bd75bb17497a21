"""pycdo.core.cell
Cellwise view of the mesh consumed by the source-term evaluators.
"""
import numpy as np
from dataclasses import dataclass, field
from typing import Optional

from pycdo.integration.tetrahedra import SubTetrahedra, decompose


@dataclass(slots=True)
class CellGeometry:
    """
    Read-only geometric description of one polyhedral cell.

    All connectivity is local to the cell: ``e2v`` holds local vertex ids and
    the face → edge map is stored in CSR form (``f2e_idx``, ``f2e_ids``) so
    that it can be handed to Numba kernels unchanged.
    """
    c_id: int
    xv: np.ndarray              # (n_vc, 3) vertex coordinates
    v_ids: np.ndarray           # (n_vc,) global vertex ids
    e2v: np.ndarray             # (n_ec, 2) local vertex ids of each edge
    xe: np.ndarray              # (n_ec, 3) edge centers
    f2e_idx: np.ndarray         # (n_fc + 1,) CSR offsets
    f2e_ids: np.ndarray         # local edge ids of each face
    xf: np.ndarray              # (n_fc, 3) face centers
    xc: np.ndarray              # (3,) cell center
    vol_c: float
    wvc: np.ndarray             # (n_vc,) dual volume fractions, sum to 1

    @property
    def n_vc(self) -> int:
        return int(self.xv.shape[0])

    @property
    def n_ec(self) -> int:
        return int(self.e2v.shape[0])

    @property
    def n_fc(self) -> int:
        return int(self.xf.shape[0])

    def face_edges(self, f: int) -> np.ndarray:
        return self.f2e_ids[self.f2e_idx[f]:self.f2e_idx[f + 1]]

    def dual_volumes(self) -> np.ndarray:
        """Volume of the portion of the cell attached to each vertex."""
        return self.vol_c * self.wvc


@dataclass
class CellScratch:
    """
    Per-worker temporaries. One instance is never shared between threads.

    The local Hodge operator of a cell must be attached with ``set_hodge``
    before any potential-type term is evaluated on that cell. The
    sub-tetrahedra of the last cell seen are kept so that several analytic
    terms on the same cell decompose it once.
    """
    t_cur: float = 0.0
    hodge: Optional[np.ndarray] = None
    c_id: int = -1
    _tets_cell: Optional[CellGeometry] = field(default=None, repr=False)
    _tets: Optional[SubTetrahedra] = field(default=None, repr=False)

    def set_hodge(self, c_id: int, hodge) -> None:
        self.c_id = int(c_id)
        self.hodge = np.asarray(hodge, dtype=float)

    def hodge_for(self, cell: CellGeometry, n_dofs: int) -> np.ndarray:
        if self.hodge is None or self.c_id != cell.c_id:
            raise RuntimeError(
                f"No local Hodge operator attached for cell {cell.c_id}; "
                "it has to be computed before evaluating a potential source term.")
        if self.hodge.shape != (n_dofs, n_dofs):
            raise RuntimeError(
                f"Local Hodge operator of cell {cell.c_id} has shape {self.hodge.shape}, "
                f"expected {(n_dofs, n_dofs)}.")
        return self.hodge

    def sub_tetrahedra(self, cell: CellGeometry) -> SubTetrahedra:
        # keyed on the geometry object: cell ids are not unique across providers
        if self._tets_cell is not cell:
            self._tets = decompose(cell)
            self._tets_cell = cell
        return self._tets
