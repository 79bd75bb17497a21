from .tetrahedra import SubTetrahedra, decompose, tet_centroid, tet_5pts, tet_10pts
__all__ = ['SubTetrahedra', 'decompose', 'tet_centroid', 'tet_5pts', 'tet_10pts']
