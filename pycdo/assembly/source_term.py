"""pycdo.assembly.source_term
Cellwise accumulation of all source terms active on a cell.
"""
from pycdo.core.cell import CellGeometry, CellScratch
from pycdo.source.mask import NO_MASK
from pycdo.source.schemes import SystemFlag

__all__ = ["compute_cellwise"]


def compute_cellwise(n_terms: int, registry, cell: CellGeometry, flags: SystemFlag,
                     mask, dispatch, scratch: CellScratch, out):
    """
    Reset ``out[:n_dofs]`` and add the contribution of every source term
    defined on ``cell``. ``mask`` is either ``NO_MASK`` or a CellMask.
    Returns ``out``.
    """
    n_dofs = dispatch.n_dofs(cell)
    out[:n_dofs] = 0.0
    if not flags & SystemFlag.SOURCETERM:
        return out

    terms = registry.terms
    for st_id in range(n_terms):
        if mask is not NO_MASK and not mask.is_set(cell.c_id, st_id):
            continue
        compute = dispatch[st_id]
        assert compute is not None, f"No evaluator resolved for active source term {st_id}."
        compute(terms[st_id], cell, scratch, out)   # contrib is updated inside
    return out
