"""pycdo.integration.tetrahedra
Sub-tetrahedral decomposition of polyhedral cells and tetrahedral rules.

A cell is split into elementary tetrahedra (x_v, x_e, x_f, x_c): one per
(face, edge, edge-vertex) triple, where x_e, x_f and x_c are the edge, face
and cell centers. Every sub-tetrahedron belongs to the dual cell of its
vertex, so rules applied on it integrate over dual cells.
"""
import numpy as np
import numba as _nb
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pycdo.core.cell import CellGeometry

__all__ = ["SubTetrahedra", "decompose", "tet_centroid", "tet_5pts", "tet_10pts"]


# -------------------------------------------------------------------------
# Batched kernels
# -------------------------------------------------------------------------
@_nb.njit(cache=True, fastmath=True)
def _pef_volumes(XV1, XV2, XF, xc, out):
    """|T(v1, v2, f, c)| for every (face, edge) pair."""
    n = XV1.shape[0]
    for i in range(n):
        a0 = XV2[i, 0] - XV1[i, 0]; a1 = XV2[i, 1] - XV1[i, 1]; a2 = XV2[i, 2] - XV1[i, 2]
        b0 = XF[i, 0] - XV1[i, 0];  b1 = XF[i, 1] - XV1[i, 1];  b2 = XF[i, 2] - XV1[i, 2]
        c0 = xc[0] - XV1[i, 0];     c1 = xc[1] - XV1[i, 1];     c2 = xc[2] - XV1[i, 2]
        det = a0 * (b1 * c2 - b2 * c1) - a1 * (b0 * c2 - b2 * c0) + a2 * (b0 * c1 - b1 * c0)
        out[i] = abs(det) / 6.0
    return out


@dataclass(slots=True)
class SubTetrahedra:
    vertex: np.ndarray      # (n_t,) local vertex id owning the tetrahedron
    edge: np.ndarray        # (n_t,) local edge id
    face: np.ndarray        # (n_t,) local face id
    corners: np.ndarray     # (n_t, 4, 3) ordered as (x_v, x_e, x_f, x_c)
    vol: np.ndarray         # (n_t,)

    def __len__(self):
        return int(self.vol.shape[0])

    def dual_volumes(self, n_vc: int) -> np.ndarray:
        """Sum of sub-tetrahedra volumes attached to each vertex."""
        return np.bincount(self.vertex, weights=self.vol, minlength=n_vc)

    def centroids(self) -> np.ndarray:
        return self.corners.mean(axis=1)


def decompose(cell: "CellGeometry") -> SubTetrahedra:
    """Split ``cell`` into its (vertex, edge, face, cell) tetrahedra."""
    counts = np.diff(cell.f2e_idx)
    fe_f = np.repeat(np.arange(cell.n_fc, dtype=np.int64), counts)
    fe_e = np.asarray(cell.f2e_ids, dtype=np.int64)
    v1 = cell.e2v[fe_e, 0].astype(np.int64)
    v2 = cell.e2v[fe_e, 1].astype(np.int64)

    xv = np.asarray(cell.xv, dtype=float)
    pef_vol = np.empty(fe_e.shape[0])
    _pef_volumes(np.ascontiguousarray(xv[v1]),
                 np.ascontiguousarray(xv[v2]),
                 np.ascontiguousarray(cell.xf[fe_f], dtype=float),
                 np.asarray(cell.xc, dtype=float),
                 pef_vol)

    # x_e is the midpoint of (v1, v2): each half has half the volume
    vertex = np.concatenate([v1, v2])
    edge = np.concatenate([fe_e, fe_e])
    face = np.concatenate([fe_f, fe_f])
    vol = 0.5 * np.concatenate([pef_vol, pef_vol])

    corners = np.empty((vertex.shape[0], 4, 3))
    corners[:, 0] = xv[vertex]
    corners[:, 1] = cell.xe[edge]
    corners[:, 2] = cell.xf[face]
    corners[:, 3] = cell.xc
    return SubTetrahedra(vertex=vertex, edge=edge, face=face, corners=corners, vol=vol)


# -------------------------------------------------------------------------
# Tetrahedral rules. Each returns (points (n_t, q, 3), weights (q,)) with
# weights relative to the tetrahedron volume (they sum to 1).
# -------------------------------------------------------------------------
def tet_centroid(corners: np.ndarray):
    """One-point rule, exact for affine functions."""
    return corners.mean(axis=1)[:, None, :], np.ones(1)


_W5_CENTER = -0.8           # -4/5
_W5_SIDE = 0.45             # 9/20
_A5, _B5 = 0.5, 1.0 / 6.0


def tet_5pts(corners: np.ndarray):
    """Five-point rule, exact for cubic functions."""
    n_t = corners.shape[0]
    pts = np.empty((n_t, 5, 3))
    pts[:, 0] = corners.mean(axis=1)
    total = corners.sum(axis=1)
    for i in range(4):
        pts[:, i + 1] = _B5 * total + (_A5 - _B5) * corners[:, i]
    w = np.array([_W5_CENTER, _W5_SIDE, _W5_SIDE, _W5_SIDE, _W5_SIDE])
    return pts, w


_PAIRS = ((0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3))


def tet_10pts(corners: np.ndarray):
    """Ten-point rule on corners (-1/20) and edge midpoints (1/5), exact for quadratics."""
    n_t = corners.shape[0]
    pts = np.empty((n_t, 10, 3))
    pts[:, :4] = corners
    for k, (i, j) in enumerate(_PAIRS):
        pts[:, 4 + k] = 0.5 * (corners[:, i] + corners[:, j])
    w = np.concatenate([np.full(4, -0.05), np.full(6, 0.2)])
    return pts, w
