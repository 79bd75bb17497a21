from .cell import CellGeometry, CellScratch
from .mesh import MeshSubset, SubsetLocation, PolyhedralMesh, build_cell_geometry
from .context import SourceTermContext, TimeStep
__all__ = ['CellGeometry', 'CellScratch', 'MeshSubset', 'SubsetLocation',
           'PolyhedralMesh', 'build_cell_geometry', 'SourceTermContext', 'TimeStep']
