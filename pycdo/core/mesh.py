"""pycdo.core.mesh
Reference mesh-geometry provider and mesh subsets.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from pycdo.core.cell import CellGeometry
from pycdo.integration.tetrahedra import decompose
from pycdo.utils.bitset import BitSet

logger = logging.getLogger(__name__)

__all__ = ["SubsetLocation", "MeshSubset", "build_cell_geometry", "PolyhedralMesh"]


class SubsetLocation(Enum):
    CELLS = "cells"
    FACES = "faces"
    VERTICES = "vertices"


@dataclass
class MeshSubset:
    """
    Named selection of mesh entities. ``ids=None`` selects every entity of
    the location, which lets consumers skip membership checks altogether.
    """
    name: str
    ids: Optional[np.ndarray] = None
    location: SubsetLocation = SubsetLocation.CELLS

    def __post_init__(self):
        if self.ids is not None:
            self.ids = np.asarray(self.ids, dtype=np.int64).ravel()

    @classmethod
    def all_cells(cls, name: str = "cells") -> "MeshSubset":
        return cls(name)

    @property
    def is_full(self) -> bool:
        return self.ids is None

    def elements(self, n_entities: int) -> np.ndarray:
        if self.ids is None:
            return np.arange(n_entities, dtype=np.int64)
        return self.ids

    def bitset(self, n_entities: int) -> BitSet:
        if self.ids is None:
            return BitSet(np.ones(n_entities, dtype=bool))
        return BitSet.from_indices(self.ids, n_entities)

    def __repr__(self):
        size = "all" if self.ids is None else len(self.ids)
        return f"MeshSubset({self.name!r}, {self.location.value}, n={size})"


def build_cell_geometry(c_id: int,
                        xv,
                        faces: Sequence[Sequence[int]],
                        v_ids=None) -> CellGeometry:
    """
    Build the cellwise quantities of a polyhedron from its vertex coordinates
    and its faces (closed loops of local vertex ids).

    Face and cell centers are vertex averages. The cell volume and the dual
    weights are obtained by summing the (vertex, edge, face, cell)
    sub-tetrahedra, so they are consistent with the quadrature rules.
    """
    xv = np.asarray(xv, dtype=float)
    n_vc = xv.shape[0]
    if v_ids is None:
        v_ids = np.arange(n_vc, dtype=np.int64)

    edge_ids: Dict[Tuple[int, int], int] = {}
    f2e_idx = [0]
    f2e_ids: List[int] = []
    for face in faces:
        loop = [int(v) for v in face]
        for i in range(len(loop)):
            key = tuple(sorted((loop[i], loop[(i + 1) % len(loop)])))
            if key not in edge_ids:
                edge_ids[key] = len(edge_ids)
            f2e_ids.append(edge_ids[key])
        f2e_idx.append(len(f2e_ids))

    e2v = np.array(list(edge_ids.keys()), dtype=np.int64).reshape(-1, 2)
    xe = 0.5 * (xv[e2v[:, 0]] + xv[e2v[:, 1]])
    xf = np.array([xv[list(face)].mean(axis=0) for face in faces])
    xc = xv.mean(axis=0)

    cell = CellGeometry(c_id=int(c_id), xv=xv, v_ids=np.asarray(v_ids, dtype=np.int64),
                        e2v=e2v, xe=xe,
                        f2e_idx=np.asarray(f2e_idx, dtype=np.int64),
                        f2e_ids=np.asarray(f2e_ids, dtype=np.int64),
                        xf=xf, xc=xc, vol_c=0.0, wvc=np.zeros(n_vc))

    tets = decompose(cell)
    cell.vol_c = float(tets.vol.sum())
    if cell.vol_c > 0.0:
        cell.wvc = tets.dual_volumes(n_vc) / cell.vol_c
    else:
        logger.warning(f"Cell {c_id} has zero volume; using uniform dual weights.")
        cell.wvc = np.full(n_vc, 1.0 / n_vc)
    return cell


class PolyhedralMesh:
    """
    Minimal polyhedral mesh: global vertex coordinates and, for each cell,
    its faces given as loops of global vertex ids. All cellwise geometric
    quantities are computed once at construction.
    """

    def __init__(self, vertices, cells: Sequence[Sequence[Sequence[int]]]):
        self.vertices = np.asarray(vertices, dtype=float)
        self.cells_faces = [[tuple(int(v) for v in face) for face in cell] for cell in cells]
        self._geometry: List[CellGeometry] = []
        self._build_geometry()

    def _build_geometry(self):
        for c_id, faces in enumerate(self.cells_faces):
            v_ids: List[int] = []
            for face in faces:
                for v in face:
                    if v not in v_ids:
                        v_ids.append(v)
            local = {v: i for i, v in enumerate(v_ids)}
            local_faces = [[local[v] for v in face] for face in faces]
            self._geometry.append(build_cell_geometry(
                c_id, self.vertices[v_ids], local_faces, v_ids=v_ids))
        logger.debug(f"Built geometry of {self.n_cells} cells over {self.n_vertices} vertices.")

    @property
    def n_cells(self) -> int:
        return len(self.cells_faces)

    @property
    def n_vertices(self) -> int:
        return int(self.vertices.shape[0])

    def cell_geometry(self, c_id: int) -> CellGeometry:
        return self._geometry[c_id]

    def cell_centers(self) -> np.ndarray:
        return np.array([g.xc for g in self._geometry]).reshape(-1, 3)

    def cell_volumes(self) -> np.ndarray:
        return np.array([g.vol_c for g in self._geometry])
