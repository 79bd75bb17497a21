from .definitions import (SupportKind, ValueKind, QuadratureType, DefinitionKind, ArrayLocation,
                          ConstantValue, AnalyticFunction, ExternalArray)
from .schemes import SpaceScheme, SystemFlag
from .registry import TermRegistry, SourceTermDescriptor, default_support
from .mask import CellMask, NO_MASK, build_cell_mask
from .dispatch import DispatchTable, resolve
__all__ = ['SupportKind', 'ValueKind', 'QuadratureType', 'DefinitionKind', 'ArrayLocation',
           'ConstantValue', 'AnalyticFunction', 'ExternalArray', 'SpaceScheme', 'SystemFlag',
           'TermRegistry', 'SourceTermDescriptor', 'default_support',
           'CellMask', 'NO_MASK', 'build_cell_mask', 'DispatchTable', 'resolve']
