"""pycdo.core.context
Explicit state shared by the registry, the mask, the dispatch and the
assembly: mesh sizes, cellwise geometry, local Hodge operators and time.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Optional

import numpy as np

from pycdo.core.cell import CellGeometry

if TYPE_CHECKING:
    from pycdo.core.mesh import PolyhedralMesh
    from pycdo.source.definitions import SupportKind


@dataclass
class TimeStep:
    t_cur: float = 0.0
    nt_cur: int = 0

    def advance(self, dt: float) -> float:
        self.t_cur += float(dt)
        self.nt_cur += 1
        return self.t_cur


@dataclass
class SourceTermContext:
    """
    Everything the source-term machinery reads from the rest of the solver.

    ``cell_geometry`` maps a cell id to its :class:`CellGeometry`; ``hodge``
    maps (cell, support) to the dense local Hodge operator and is only
    required when potential-type terms are configured.
    """
    n_cells: int
    n_vertices: int
    cell_geometry: Callable[[int], CellGeometry]
    time_step: TimeStep = field(default_factory=TimeStep)
    hodge: Optional[Callable[[CellGeometry, "SupportKind"], np.ndarray]] = None
    vertex_coords: Optional[np.ndarray] = None

    @classmethod
    def from_mesh(cls, mesh: "PolyhedralMesh", *, time_step: TimeStep | None = None,
                  hodge=None) -> "SourceTermContext":
        return cls(n_cells=mesh.n_cells,
                   n_vertices=mesh.n_vertices,
                   cell_geometry=mesh.cell_geometry,
                   time_step=time_step if time_step is not None else TimeStep(),
                   hodge=hodge,
                   vertex_coords=mesh.vertices)

    @property
    def t_cur(self) -> float:
        return self.time_step.t_cur
