"""pycdo.source.dispatch
Resolution of one cellwise evaluator per source term.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from pycdo.core.cell import CellGeometry
from pycdo.errors import UnsupportedConfiguration
from pycdo.source import evaluators as ev
from pycdo.source.definitions import ArrayLocation, DefinitionKind, QuadratureType, SupportKind
from pycdo.source.schemes import SpaceScheme, SystemFlag

logger = logging.getLogger(__name__)

__all__ = ["DispatchTable", "resolve", "select_evaluator", "DECISION_TABLE"]

Q = QuadratureType
VB, VCB = SpaceScheme.CDOVB, SpaceScheme.CDOVCB
PV, PVC, DCD = SupportKind.VERTEX_POTENTIAL, SupportKind.VERTEX_CELL_POTENTIAL, SupportKind.DUAL_CELL_DENSITY
VAL, ANA, ARR = DefinitionKind.VALUE, DefinitionKind.ANALYTIC, DefinitionKind.ARRAY

# (scheme, support, definition, quadrature) → evaluator.
# ``None`` as quadrature means the evaluator does not depend on it.
DECISION_TABLE: Dict[Tuple, Callable] = {
    (VB, DCD, VAL, None): ev.dual_density_by_value,
    (VB, DCD, ARR, None): ev.dual_density_by_array,
    (VB, DCD, ANA, Q.BARYCENTRIC): ev.dual_density_bary_by_analytic,
    (VB, DCD, ANA, Q.SUBDIVIDED_1PT): ev.dual_density_subdiv_by_analytic,
    (VB, DCD, ANA, Q.ORDER2): ev.dual_density_order2_by_analytic,
    (VB, DCD, ANA, Q.ORDER3): ev.dual_density_order3_by_analytic,
    (VB, PV, VAL, None): ev.vertex_potential_by_value,
    (VB, PV, ANA, None): ev.vertex_potential_by_analytic,
    (VB, PV, ARR, None): ev.vertex_potential_by_array,
    (VCB, PVC, VAL, None): ev.vertex_cell_potential_by_value,
    (VCB, PVC, ANA, None): ev.vertex_cell_potential_by_analytic,
    # vertex potentials are extended to the cell DoF by the hybrid scheme
    (VCB, PV, VAL, None): ev.vertex_cell_potential_by_value,
    (VCB, PV, ANA, None): ev.vertex_cell_potential_by_analytic,
}

# Arrays must be located where the evaluator reads them
_ARRAY_LOCATION = {
    ev.dual_density_by_array: ArrayLocation.CELLS,
    ev.vertex_potential_by_array: ArrayLocation.VERTICES,
}


@dataclass
class DispatchTable:
    scheme: SpaceScheme
    handles: List[Optional[Callable]]
    flags: SystemFlag = SystemFlag.NONE

    def __len__(self):
        return len(self.handles)

    def __getitem__(self, st_id: int) -> Optional[Callable]:
        return self.handles[st_id]

    def n_dofs(self, cell: CellGeometry) -> int:
        return cell.n_vc + 1 if self.scheme.has_cell_dof else cell.n_vc


def select_evaluator(scheme: SpaceScheme, st) -> Callable:
    key = (scheme, st.support, st.def_kind)
    handle = DECISION_TABLE.get(key + (st.quadrature,)) or DECISION_TABLE.get(key + (None,))
    if handle is None:
        if scheme is VCB and st.support is DCD:
            reason = "densities are not handled by the vertex+cell scheme"
        else:
            reason = "no evaluator is available"
        raise UnsupportedConfiguration(
            f"Source term {st.name!r}: {reason} ({scheme.value}, {st.support.name}, "
            f"{st.def_kind.value}, quadrature {st.quadrature.name}).")
    needed = _ARRAY_LOCATION.get(handle)
    if needed is not None and st.definition.location is not needed:
        raise UnsupportedConfiguration(
            f"Source term {st.name!r}: array located at {st.definition.location.value}, "
            f"expected {needed.value} for support {st.support.name}.")
    return handle


def resolve(scheme: SpaceScheme, registry) -> DispatchTable:
    """
    Select the evaluator of every term and the flags of the cellwise system.
    Raises UnsupportedConfiguration for any combination without evaluator.
    """
    registry.check_contiguous()
    terms = registry.terms
    table = DispatchTable(scheme=scheme, handles=[None] * len(terms))
    if not terms:
        return table

    kinds = {st.value_kind for st in terms}
    if len(kinds) > 1:
        raise UnsupportedConfiguration(
            f"Source terms of one equation must share a value kind, got {sorted(k.name for k in kinds)}.")

    table.flags |= SystemFlag.SOURCETERM
    for st in terms:
        if st.support.is_potential:
            table.flags |= SystemFlag.HLOC_CONF | SystemFlag.SOURCES_HLOC
        table.handles[st.st_id] = select_evaluator(scheme, st)
        logger.debug(f"Source term {st.name!r} → {table.handles[st.st_id].__name__}")
    return table
