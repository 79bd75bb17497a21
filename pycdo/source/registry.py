"""pycdo.source.registry
Definition and bookkeeping of the source terms attached to one equation.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Union

import numpy as np
import sympy as sp

from pycdo.core.mesh import MeshSubset, SubsetLocation
from pycdo.errors import InvalidConfiguration, UnsupportedConfiguration
from pycdo.source.definitions import (
    AnalyticFunction, ArrayLocation, ConstantValue, DefinitionKind, ExternalArray,
    QuadratureType, SupportKind, ValueKind,
)
from pycdo.source.schemes import SpaceScheme

logger = logging.getLogger(__name__)

__all__ = ["SourceTermDescriptor", "TermRegistry", "default_support", "check_array_size", "MAX_SOURCE_TERMS"]

MAX_SOURCE_TERMS = int(os.getenv("PYCDO_MAX_SOURCE_TERMS", "64"))

Definition = Union[ConstantValue, AnalyticFunction, ExternalArray]


def default_support(scheme: SpaceScheme) -> SupportKind:
    """Support used when a term is defined without an explicit one."""
    if scheme is SpaceScheme.CDOVB:
        return SupportKind.DUAL_CELL_DENSITY
    if scheme is SpaceScheme.CDOVCB:
        return SupportKind.VERTEX_CELL_POTENTIAL
    raise UnsupportedConfiguration(f"Invalid space scheme {scheme!r} to set a source term.")


@dataclass
class SourceTermDescriptor:
    st_id: int
    name: str
    subset: MeshSubset
    support: SupportKind
    value_kind: ValueKind
    definition: Definition
    quadrature: QuadratureType = QuadratureType.BARYCENTRIC

    @property
    def def_kind(self) -> DefinitionKind:
        return self.definition.kind

    @property
    def is_full_domain(self) -> bool:
        return self.subset.is_full

    @property
    def value_shape(self):
        return self.value_kind.shape


def check_array_size(st: SourceTermDescriptor, n_cells: int, n_vertices: int) -> None:
    """An array-defined term must hold one value per entity of its location."""
    if st.def_kind is not DefinitionKind.ARRAY:
        return
    d = st.definition
    if d.data is None:
        raise InvalidConfiguration(f"Source term {st.name!r}: its array has been released.")
    n_ent = n_vertices if d.location is ArrayLocation.VERTICES else n_cells
    shape = np.shape(d.data)
    if not shape or shape[0] != n_ent:
        raise InvalidConfiguration(
            f"Source term {st.name!r}: array of shape {shape} does not hold one value "
            f"per entity at {d.location.value} ({n_ent}).")


@dataclass(frozen=True)
class TermFlag:
    """Metadata read back from a term."""
    support: SupportKind
    value_kind: ValueKind
    full_domain: bool
    owner: bool = False


@dataclass
class TermRegistry:
    """
    Ordered collection of source terms, indexed by ``st_id`` in
    ``[0, max_terms)``. Built once at setup; the cell mask and the dispatch
    table are derived from it.
    """
    scheme: SpaceScheme = SpaceScheme.CDOVB
    max_terms: int = MAX_SOURCE_TERMS
    _terms: Dict[int, SourceTermDescriptor] = field(default_factory=dict, repr=False)
    _ordered: Optional[List[SourceTermDescriptor]] = field(default=None, init=False, repr=False)

    # ------------------------------------------------------------------
    # definitions
    # ------------------------------------------------------------------
    def define_by_value(self, st_id: int, value_kind: ValueKind, subset: MeshSubset, value,
                        *, name: Optional[str] = None,
                        support: Optional[SupportKind] = None) -> SourceTermDescriptor:
        vk = self._check(st_id, value_kind, subset)
        val = np.asarray(value, dtype=float)
        if val.shape != vk.shape:
            raise InvalidConfiguration(
                f"Source term {st_id}: value of shape {val.shape} does not match "
                f"a {vk.name.lower()} term (expected {vk.shape}).")
        return self._store(st_id, name, subset, support, vk, ConstantValue(val))

    def define_by_analytic(self, st_id: int, value_kind: ValueKind, subset: MeshSubset, func,
                           *, name: Optional[str] = None,
                           support: Optional[SupportKind] = None) -> SourceTermDescriptor:
        vk = self._check(st_id, value_kind, subset)
        if isinstance(func, AnalyticFunction):
            ana = func
        elif callable(func) and not isinstance(func, sp.Basic):
            ana = AnalyticFunction(func)
        else:
            ana = AnalyticFunction.from_sympy(func, vk.shape)
        return self._store(st_id, name, subset, support, vk, ana)

    def define_by_array(self, st_id: int, value_kind: ValueKind, subset: MeshSubset, data,
                        location: ArrayLocation, *, owner: bool = False,
                        name: Optional[str] = None,
                        support: Optional[SupportKind] = None) -> SourceTermDescriptor:
        vk = self._check(st_id, value_kind, subset)
        if not isinstance(location, ArrayLocation):
            raise InvalidConfiguration(f"Source term {st_id}: invalid array location {location!r}.")
        arr = np.asarray(data, dtype=float) if owner else data
        if np.shape(arr)[1:] != vk.shape:
            raise InvalidConfiguration(
                f"Source term {st_id}: array of shape {np.shape(arr)} does not hold "
                f"{vk.name.lower()} values.")
        return self._store(st_id, name, subset, support, vk, ExternalArray(arr, location, owner))

    def set_quadrature(self, st_id: int, quadrature: QuadratureType) -> None:
        if not isinstance(quadrature, QuadratureType):
            raise InvalidConfiguration(f"Invalid type of quadrature {quadrature!r}.")
        self[st_id].quadrature = quadrature

    def set_reduction(self, st_id: int, support: SupportKind) -> None:
        """
        Switch a term between a potential at primal vertices and a density on
        dual cells. Other transitions are rejected.
        """
        st = self[st_id]
        if st.support is support:
            return
        allowed = {SupportKind.VERTEX_POTENTIAL, SupportKind.DUAL_CELL_DENSITY}
        if st.support not in allowed or support not in allowed:
            raise InvalidConfiguration(
                f"Cannot change the support of source term {st.name!r} from "
                f"{st.support.name} to {support.name}.")
        st.support = support

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def get_flag(self, st_id: int) -> TermFlag:
        st = self[st_id]
        owner = isinstance(st.definition, ExternalArray) and st.definition.owner
        return TermFlag(st.support, st.value_kind, st.is_full_domain, owner)

    def get_name(self, st_id: int) -> Optional[str]:
        st = self._terms.get(st_id)
        return None if st is None else st.name

    @property
    def n_terms(self) -> int:
        return len(self._terms)

    @property
    def terms(self) -> List[SourceTermDescriptor]:
        """Terms in id order. Built once per configuration, read per cell."""
        if self._ordered is None:
            self._ordered = [self._terms[i] for i in sorted(self._terms)]
        return self._ordered

    def check_contiguous(self) -> None:
        ids = sorted(self._terms)
        if ids != list(range(len(ids))):
            raise InvalidConfiguration(f"Source term ids must be contiguous from 0, got {ids}.")

    def check_sizes(self, n_cells: int, n_vertices: int) -> None:
        for st in self.terms:
            check_array_size(st, n_cells, n_vertices)

    def __getitem__(self, st_id: int) -> SourceTermDescriptor:
        try:
            return self._terms[st_id]
        except KeyError:
            raise InvalidConfiguration(f"Source term {st_id} is not defined.") from None

    def __iter__(self) -> Iterator[SourceTermDescriptor]:
        return iter(self.terms)

    def __len__(self):
        return self.n_terms

    def summary(self, eqname: Optional[str] = None) -> None:
        eqn = eqname or "Equation"
        if not self._terms:
            logger.info(f"  <{eqn}/NULL>")
            return
        for st in self.terms:
            logger.info(f"  <{eqn}/{st.name}> support: {st.support.value}; "
                        f"mesh_location: {st.subset.name}")
            logger.info(f"  <{eqn}/{st.name}> Definition: {st.def_kind.value}")
            if st.def_kind is DefinitionKind.ANALYTIC:
                logger.info(f"  <{eqn}/{st.name}> Quadrature: {st.quadrature.value}")

    def destroy(self) -> None:
        """Release owned arrays and forget every definition."""
        for st in self._terms.values():
            if isinstance(st.definition, ExternalArray):
                st.definition.release()
        self._terms.clear()
        self._ordered = None

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _check(self, st_id, value_kind, subset) -> ValueKind:
        if not isinstance(st_id, (int, np.integer)) or not 0 <= st_id < self.max_terms:
            raise InvalidConfiguration(
                f"Source term id {st_id!r} is outside [0, {self.max_terms}); "
                f"limitation to {self.max_terms} source terms has been reached.")
        if not isinstance(value_kind, ValueKind):
            raise InvalidConfiguration(f"Invalid type of source term {value_kind!r}.")
        if not isinstance(subset, MeshSubset) or subset.location is not SubsetLocation.CELLS:
            raise InvalidConfiguration(
                f"Source term {st_id} must be defined on a cell-based mesh subset, got {subset!r}.")
        prev = self._terms.get(int(st_id))
        if prev is not None and prev.value_kind is not value_kind:
            raise InvalidConfiguration(
                f"Source term {st_id} was defined as {prev.value_kind.name}; "
                f"it cannot become {value_kind.name}.")
        return value_kind

    def _store(self, st_id, name, subset, support, value_kind, definition) -> SourceTermDescriptor:
        st_id = int(st_id)
        if support is None:
            support = default_support(self.scheme)
        elif not isinstance(support, SupportKind):
            raise InvalidConfiguration(f"Invalid support {support!r} for source term {st_id}.")
        st = SourceTermDescriptor(
            st_id=st_id,
            name=name if name is not None else f"sourceterm_{st_id:02d}",
            subset=subset,
            support=support,
            value_kind=value_kind,
            definition=definition,
        )
        self._terms[st_id] = st
        self._ordered = None
        logger.debug(f"Defined source term {st.name!r} ({definition.kind.value}) on {subset!r}.")
        return st
