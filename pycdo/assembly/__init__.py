from .source_term import compute_cellwise
from .global_vector import SourceVector, assemble_source_vector, compute_source_values
__all__ = ['compute_cellwise', 'SourceVector', 'assemble_source_vector', 'compute_source_values']
