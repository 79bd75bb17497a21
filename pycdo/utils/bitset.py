"""pycdo.utils.bitset
Packed membership sets over mesh cells.
"""
from __future__ import annotations

import numpy as np


class BitSet:
    """
    Set of cell ids in ``[0, size)`` stored as packed bits (``np.packbits``).
    Set operations work on the packed bytes directly.
    """

    __slots__ = ("size", "bits")

    def __init__(self, mask):
        mask = np.asarray(mask, dtype=bool).ravel()
        self.size = int(mask.shape[0])
        self.bits = np.packbits(mask)

    @classmethod
    def from_indices(cls, indices, size: int) -> "BitSet":
        mask = np.zeros(int(size), dtype=bool)
        idx = np.asarray(indices, dtype=np.int64)
        if idx.size and (idx.min() < 0 or idx.max() >= size):
            raise IndexError(f"Cell ids outside [0, {size}) in BitSet.")
        mask[idx] = True
        return cls(mask)

    @classmethod
    def _packed(cls, bits: np.ndarray, size: int) -> "BitSet":
        out = cls.__new__(cls)
        out.size, out.bits = size, bits
        return out

    def _check(self, other: "BitSet"):
        if other.size != self.size:
            raise ValueError(f"BitSet sizes differ: {self.size} vs {other.size}.")

    def union(self, other):
        self._check(other)
        return BitSet._packed(self.bits | other.bits, self.size)

    def intersect(self, other):
        self._check(other)
        return BitSet._packed(self.bits & other.bits, self.size)

    def diff(self, other):
        self._check(other)
        return BitSet._packed(self.bits & ~other.bits, self.size)

    __or__ = union
    __and__ = intersect
    __sub__ = diff

    @property
    def array(self) -> np.ndarray:
        """Unpacked boolean mask of length ``size``."""
        return np.unpackbits(self.bits, count=self.size).astype(bool)

    def to_indices(self) -> np.ndarray:
        return np.flatnonzero(self.array)

    def cardinality(self) -> int:
        return int(np.unpackbits(self.bits, count=self.size).sum())

    def is_full(self) -> bool:
        return self.cardinality() == self.size

    def __len__(self):
        return self.size

    def __contains__(self, c_id):
        c_id = int(c_id)
        if not 0 <= c_id < self.size:
            return False
        return bool(self.bits[c_id >> 3] & (0x80 >> (c_id & 7)))

    def __eq__(self, other):
        return isinstance(other, BitSet) and self.size == other.size and np.array_equal(self.bits, other.bits)

    def __repr__(self):
        return f"<BitSet {self.cardinality()}/{self.size}>"
