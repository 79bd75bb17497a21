import logging

import numpy as np
import pytest

from pycdo.core import MeshSubset, SubsetLocation
from pycdo.errors import InvalidConfiguration, UnsupportedConfiguration
from pycdo.source import (AnalyticFunction, ArrayLocation, DefinitionKind, QuadratureType,
                          SpaceScheme, SupportKind, TermRegistry, ValueKind, default_support)
from pycdo.source.definitions import x, y
from pycdo.source.registry import MAX_SOURCE_TERMS

ALL = MeshSubset.all_cells()


def test_define_and_read_back():
    reg = TermRegistry()
    left = MeshSubset("left", [0, 2])
    reg.define_by_value(0, ValueKind.SCALAR, ALL, 1.0, name="heat")
    reg.define_by_analytic(1, ValueKind.SCALAR, left, x + y)
    assert reg.n_terms == len(reg) == 2
    assert reg.get_name(0) == "heat"
    assert reg.get_name(1) == "sourceterm_01"
    assert reg.get_name(5) is None

    flag = reg.get_flag(1)
    assert flag.support is SupportKind.DUAL_CELL_DENSITY
    assert flag.value_kind is ValueKind.SCALAR
    assert not flag.full_domain and reg.get_flag(0).full_domain
    assert reg[1].def_kind is DefinitionKind.ANALYTIC
    assert reg[1].quadrature is QuadratureType.BARYCENTRIC
    assert [st.st_id for st in reg] == [0, 1]


def test_redefinition_replaces_term():
    reg = TermRegistry()
    reg.define_by_value(0, ValueKind.SCALAR, ALL, 1.0)
    reg.define_by_value(0, ValueKind.SCALAR, ALL, 3.0)
    assert reg.n_terms == 1
    assert float(reg[0].definition.value) == 3.0
    with pytest.raises(InvalidConfiguration, match="cannot become"):
        reg.define_by_value(0, ValueKind.VECTOR, ALL, [1.0, 0.0, 0.0])


@pytest.mark.parametrize("st_id", [-1, MAX_SOURCE_TERMS, 1.5])
def test_invalid_id(st_id):
    with pytest.raises(InvalidConfiguration):
        TermRegistry().define_by_value(st_id, ValueKind.SCALAR, ALL, 1.0)


def test_custom_max_terms():
    reg = TermRegistry(max_terms=2)
    reg.define_by_value(1, ValueKind.SCALAR, ALL, 1.0)
    with pytest.raises(InvalidConfiguration, match="limitation"):
        reg.define_by_value(2, ValueKind.SCALAR, ALL, 1.0)


def test_invalid_definitions():
    reg = TermRegistry()
    with pytest.raises(InvalidConfiguration):
        reg.define_by_value(0, "scalar", ALL, 1.0)
    with pytest.raises(InvalidConfiguration, match="cell-based"):
        reg.define_by_value(0, ValueKind.SCALAR, MeshSubset("wall", [1], SubsetLocation.FACES), 1.0)
    with pytest.raises(InvalidConfiguration, match="shape"):
        reg.define_by_value(0, ValueKind.VECTOR, ALL, 1.0)
    with pytest.raises(InvalidConfiguration):
        reg.define_by_array(0, ValueKind.SCALAR, ALL, np.zeros(4), "cells")
    with pytest.raises(InvalidConfiguration):
        reg.define_by_array(0, ValueKind.VECTOR, ALL, np.zeros(4), ArrayLocation.CELLS)
    with pytest.raises(InvalidConfiguration):
        reg.define_by_value(0, ValueKind.SCALAR, ALL, 1.0, support="density")
    with pytest.raises(InvalidConfiguration, match="not defined"):
        reg[3]
    assert reg.n_terms == 0


def test_array_ownership():
    borrowed = np.ones((4, 3))
    reg = TermRegistry()
    reg.define_by_array(0, ValueKind.VECTOR, ALL, borrowed, ArrayLocation.CELLS)
    reg.define_by_array(1, ValueKind.VECTOR, ALL, np.zeros((4, 3)), ArrayLocation.CELLS, owner=True)
    assert not reg.get_flag(0).owner and reg.get_flag(1).owner
    assert reg[0].definition.data is borrowed

    owned = reg[1].definition
    reg.destroy()
    assert owned.data is None
    assert np.all(borrowed == 1.0)
    assert reg.n_terms == 0
    reg.destroy()
    assert reg.n_terms == 0


def test_set_quadrature():
    reg = TermRegistry()
    reg.define_by_analytic(0, ValueKind.SCALAR, ALL, x)
    reg.set_quadrature(0, QuadratureType.ORDER3)
    assert reg[0].quadrature is QuadratureType.ORDER3
    with pytest.raises(InvalidConfiguration):
        reg.set_quadrature(0, 3)
    with pytest.raises(InvalidConfiguration):
        reg.set_quadrature(1, QuadratureType.ORDER2)


def test_set_reduction():
    reg = TermRegistry()
    reg.define_by_value(0, ValueKind.SCALAR, ALL, 1.0)
    reg.set_reduction(0, SupportKind.VERTEX_POTENTIAL)
    assert reg[0].support is SupportKind.VERTEX_POTENTIAL
    reg.set_reduction(0, SupportKind.VERTEX_POTENTIAL)
    reg.set_reduction(0, SupportKind.DUAL_CELL_DENSITY)
    assert reg[0].support is SupportKind.DUAL_CELL_DENSITY
    with pytest.raises(InvalidConfiguration):
        reg.set_reduction(0, SupportKind.VERTEX_CELL_POTENTIAL)


def test_default_support():
    assert default_support(SpaceScheme.CDOVB) is SupportKind.DUAL_CELL_DENSITY
    assert default_support(SpaceScheme.CDOVCB) is SupportKind.VERTEX_CELL_POTENTIAL
    with pytest.raises(UnsupportedConfiguration):
        default_support("cdofb")
    reg = TermRegistry(scheme=SpaceScheme.CDOVCB)
    assert reg.define_by_value(0, ValueKind.SCALAR, ALL, 1.0).support is SupportKind.VERTEX_CELL_POTENTIAL


def test_check_contiguous():
    reg = TermRegistry()
    reg.define_by_value(0, ValueKind.SCALAR, ALL, 1.0)
    reg.check_contiguous()
    reg.define_by_value(2, ValueKind.SCALAR, ALL, 1.0)
    with pytest.raises(InvalidConfiguration, match="contiguous"):
        reg.check_contiguous()


def test_analytic_definitions():
    reg = TermRegistry()
    f = AnalyticFunction(lambda time, pts: pts[:, 0])
    assert reg.define_by_analytic(0, ValueKind.SCALAR, ALL, f).definition is f
    st = reg.define_by_analytic(1, ValueKind.VECTOR, ALL, [x, 2 * y, 1])
    pts = np.array([[1.0, 2.0, 3.0], [0.0, 0.5, 0.0]])
    assert np.allclose(st.definition.evaluate(0.0, pts, (3,)), [[1.0, 4.0, 1.0], [0.0, 1.0, 1.0]])
    assert st.definition.expr == [x, 2 * y, 1]


def test_summary(caplog):
    reg = TermRegistry()
    with caplog.at_level(logging.INFO, logger="pycdo.source.registry"):
        reg.summary("Laplace")
    assert "<Laplace/NULL>" in caplog.text

    reg.define_by_value(0, ValueKind.SCALAR, ALL, 1.0, name="s0")
    reg.define_by_analytic(1, ValueKind.SCALAR, ALL, x, name="s1")
    caplog.clear()
    with caplog.at_level(logging.INFO, logger="pycdo.source.registry"):
        reg.summary("Laplace")
    assert "<Laplace/s0> Definition: by value" in caplog.text
    assert "<Laplace/s1> Quadrature: barycentric" in caplog.text
    assert "<Laplace/s0> Quadrature" not in caplog.text


def test_terms_follow_redefinitions():
    reg = TermRegistry()
    reg.define_by_value(1, ValueKind.SCALAR, ALL, 1.0)
    assert reg.terms is reg.terms
    reg.define_by_value(0, ValueKind.SCALAR, ALL, 2.0, name="first")
    assert [st.name for st in reg.terms] == ["first", "sourceterm_01"]
    reg.destroy()
    assert reg.terms == []


def test_check_sizes():
    reg = TermRegistry()
    reg.define_by_value(0, ValueKind.SCALAR, ALL, 1.0)
    reg.define_by_array(1, ValueKind.VECTOR, ALL, np.zeros((5, 3)), ArrayLocation.VERTICES)
    reg.check_sizes(n_cells=2, n_vertices=5)
    with pytest.raises(InvalidConfiguration, match="vertices"):
        reg.check_sizes(n_cells=2, n_vertices=6)
