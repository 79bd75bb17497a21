"""pycdo.source.schemes"""
from enum import Enum, IntFlag


class SpaceScheme(Enum):
    CDOVB = "CDO vertex-based"
    CDOVCB = "CDO vertex+cell-based"

    @property
    def has_cell_dof(self) -> bool:
        return self is SpaceScheme.CDOVCB


class SystemFlag(IntFlag):
    """Metadata about the cellwise algebraic system."""
    NONE = 0
    SOURCETERM = 1          # at least one source term is defined
    HLOC_CONF = 2           # a local Hodge operator has to be built
    SOURCES_HLOC = 4        # ... and it is used by a source term
