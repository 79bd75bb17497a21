"""pycdo.utils.meshgen
Cells and meshes for quick tests.
"""
import numpy as np
from scipy.spatial import ConvexHull
from typing import Optional, Sequence, Tuple

from pycdo.core.cell import CellGeometry
from pycdo.core.mesh import PolyhedralMesh, build_cell_geometry

__all__ = ["hexahedron_cell", "tetrahedron_cell", "convex_cell", "polyhedron_cell", "structured_hex_mesh"]

# Local faces of a hexahedron with corners numbered
# 0:(0,0,0) 1:(1,0,0) 2:(1,1,0) 3:(0,1,0) then the same at z=1
_HEX_FACES = ((0, 3, 2, 1), (4, 5, 6, 7), (0, 1, 5, 4),
              (1, 2, 6, 5), (2, 3, 7, 6), (3, 0, 4, 7))
_TET_FACES = ((0, 2, 1), (0, 1, 3), (1, 2, 3), (0, 3, 2))


def _hex_corners(lo, hi) -> np.ndarray:
    (x0, y0, z0), (x1, y1, z1) = lo, hi
    return np.array([[x0, y0, z0], [x1, y0, z0], [x1, y1, z0], [x0, y1, z0],
                     [x0, y0, z1], [x1, y0, z1], [x1, y1, z1], [x0, y1, z1]], dtype=float)


def hexahedron_cell(lo=(0.0, 0.0, 0.0), hi=(1.0, 1.0, 1.0), *, c_id: int = 0) -> CellGeometry:
    """Axis-aligned box [lo, hi]."""
    return build_cell_geometry(c_id, _hex_corners(lo, hi), _HEX_FACES)


def tetrahedron_cell(vertices, *, c_id: int = 0) -> CellGeometry:
    xv = np.asarray(vertices, dtype=float).reshape(4, 3)
    return build_cell_geometry(c_id, xv, _TET_FACES)


def convex_cell(points, *, c_id: int = 0) -> CellGeometry:
    """Convex hull of ``points`` with triangulated faces."""
    pts = np.asarray(points, dtype=float)
    hull = ConvexHull(pts)
    used = np.unique(hull.simplices)
    local = {int(v): i for i, v in enumerate(used)}
    faces = [[local[int(v)] for v in tri] for tri in hull.simplices]
    return build_cell_geometry(c_id, pts[used], faces)


def structured_hex_mesh(Lx: float, Ly: float, Lz: float, *, nx: int, ny: int, nz: int,
                        offset: Optional[Tuple[float, float, float]] = None) -> PolyhedralMesh:
    """
    ``nx * ny * nz`` hexahedra on [0, Lx] x [0, Ly] x [0, Lz]. Vertices and
    cells are numbered lexicographically (x fastest).
    """
    x = np.linspace(0.0, Lx, nx + 1)
    y = np.linspace(0.0, Ly, ny + 1)
    z = np.linspace(0.0, Lz, nz + 1)
    Z, Y, X = np.meshgrid(z, y, x, indexing="ij")
    vertices = np.column_stack([X.ravel(), Y.ravel(), Z.ravel()])
    if offset is not None:
        vertices += np.asarray(offset, dtype=float)

    def vid(i, j, k):
        return (k * (ny + 1) + j) * (nx + 1) + i

    cells = []
    for k in range(nz):
        for j in range(ny):
            for i in range(nx):
                corners = (vid(i, j, k), vid(i + 1, j, k), vid(i + 1, j + 1, k), vid(i, j + 1, k),
                           vid(i, j, k + 1), vid(i + 1, j, k + 1), vid(i + 1, j + 1, k + 1),
                           vid(i, j + 1, k + 1))
                cells.append([[corners[c] for c in face] for face in _HEX_FACES])
    return PolyhedralMesh(vertices, cells)


def polyhedron_cell(vertices, faces: Sequence[Sequence[int]], *, c_id: int = 0) -> CellGeometry:
    """Cell from explicit vertex coordinates and face loops (local ids)."""
    return build_cell_geometry(c_id, vertices, faces)

