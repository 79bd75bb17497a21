"""pycdo.core.hodge
Lumped local Hodge operators for vertex and vertex+cell potentials.
"""
import numpy as np

from pycdo.core.cell import CellGeometry
from pycdo.source.definitions import SupportKind


def lumped_hodge(cell: CellGeometry, support: SupportKind, *, cell_fraction: float = 0.25) -> np.ndarray:
    """
    Diagonal mass operator built on dual volumes.

    For vertex+cell potentials a fraction ``cell_fraction`` of the cell volume
    is moved to the cell DoF, the remainder being split among the vertices
    with the dual weights.
    """
    dual = cell.dual_volumes()
    if support is SupportKind.VERTEX_POTENTIAL:
        return np.diag(dual)
    if support is SupportKind.VERTEX_CELL_POTENTIAL:
        if not 0.0 <= cell_fraction < 1.0:
            raise ValueError(f"cell_fraction must lie in [0, 1), got {cell_fraction}.")
        diag = np.empty(cell.n_vc + 1)
        diag[:-1] = (1.0 - cell_fraction) * dual
        diag[-1] = cell_fraction * cell.vol_c
        return np.diag(diag)
    raise ValueError(f"No Hodge operator is associated with support {support.name}.")
