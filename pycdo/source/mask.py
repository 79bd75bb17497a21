"""pycdo.source.mask
Compact per-cell record of which source terms are active.
"""
from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from pycdo.errors import InvalidConfiguration
from pycdo.utils.bitset import BitSet

logger = logging.getLogger(__name__)

__all__ = ["CellMask", "NO_MASK", "build_cell_mask"]

# Every term applies on every cell: callers skip membership checks.
NO_MASK = None

_WORD_BITS = 64


class CellMask:
    """
    One bit-field per cell, stored as ``(n_cells, n_words)`` unsigned 64-bit
    words so that the number of terms is not bounded by a word width.
    Bit ``st_id`` of cell ``c`` is set iff term ``st_id`` applies on ``c``.
    """

    def __init__(self, n_cells: int, n_terms: int):
        self.n_cells = int(n_cells)
        self.n_terms = int(n_terms)
        self.n_words = max(1, -(-self.n_terms // _WORD_BITS))
        self.words = np.zeros((self.n_cells, self.n_words), dtype=np.uint64)

    @classmethod
    def full(cls, n_cells: int, n_terms: int) -> "CellMask":
        """Explicit mask with every term active on every cell."""
        mask = cls(n_cells, n_terms)
        for st_id in range(n_terms):
            mask.set_cells(st_id, np.arange(n_cells))
        return mask

    @staticmethod
    def _locate(st_id: int):
        return st_id // _WORD_BITS, np.uint64(1) << np.uint64(st_id % _WORD_BITS)

    def set_cells(self, st_id: int, cell_ids) -> None:
        word, bit = self._locate(st_id)
        self.words[np.asarray(cell_ids, dtype=np.int64), word] |= bit

    def is_set(self, c_id: int, st_id: int) -> bool:
        word, bit = self._locate(st_id)
        return bool(self.words[c_id, word] & bit)

    def terms_in(self, c_id: int) -> np.ndarray:
        return np.array([i for i in range(self.n_terms) if self.is_set(c_id, i)], dtype=np.int64)

    def count(self, c_id: int) -> int:
        return int(sum(bin(int(w)).count("1") for w in self.words[c_id]))

    def cell_bitset(self, st_id: int) -> BitSet:
        word, bit = self._locate(st_id)
        return BitSet((self.words[:, word] & bit) != 0)

    def __repr__(self):
        return f"<CellMask {self.n_cells} cells x {self.n_terms} terms>"


def build_cell_mask(registry, n_cells: int) -> Optional[CellMask]:
    """
    Return ``NO_MASK`` when every term is defined on the whole mesh,
    otherwise a :class:`CellMask` with one bit per (cell, term).
    """
    registry.check_contiguous()
    terms = registry.terms
    if all(st.is_full_domain for st in terms):
        return NO_MASK

    mask = CellMask(n_cells, len(terms))
    for st in terms:
        ids = st.subset.elements(n_cells)
        if ids.size and (ids.min() < 0 or ids.max() >= n_cells):
            raise InvalidConfiguration(
                f"Source term {st.name!r}: subset {st.subset.name!r} refers to cells "
                f"outside [0, {n_cells}).")
        mask.set_cells(st.st_id, st.subset.bitset(n_cells).to_indices())

    logger.debug(f"Built source-term mask over {n_cells} cells for {len(terms)} terms.")
    return mask
