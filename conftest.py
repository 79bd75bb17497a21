# conftest.py
import numpy as np
import pytest

from pycdo.utils.meshgen import convex_cell, hexahedron_cell, tetrahedron_cell

SKEW_TET = ((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), (0.2, 1.5, 0.0), (0.3, 0.4, 1.2))


@pytest.fixture
def unit_cube():
    """Unit cube [0,1]^3 as a single hexahedral cell."""
    return hexahedron_cell()


@pytest.fixture
def skew_tet():
    return tetrahedron_cell(SKEW_TET)


@pytest.fixture
def convex_blob():
    """Convex polyhedron without any symmetry plane."""
    rng = np.random.default_rng(7)
    pts = rng.random((14, 3)) * np.array([1.0, 1.3, 0.8]) + np.array([0.1, -0.2, 0.3])
    return convex_cell(pts)
