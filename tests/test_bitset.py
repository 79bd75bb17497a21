import numpy as np
import pytest

from pycdo.core import MeshSubset
from pycdo.utils.bitset import BitSet


def test_bitset():
    a = BitSet([True, False, True])
    b = BitSet([True, True, False])
    assert (a & b).to_indices().tolist() == [0]
    assert (a | b).cardinality() == 3
    assert (a - b).to_indices().tolist() == [2]


def test_bitset_from_indices():
    s = BitSet.from_indices([1, 3, 3, 10], 11)
    assert s.to_indices().tolist() == [1, 3, 10]
    assert 10 in s and 0 not in s and 11 not in s
    assert len(s) == 11 and not s.is_full()
    assert BitSet.from_indices(range(9), 9).is_full()
    assert s == BitSet.from_indices([10, 3, 1], 11)
    assert np.array_equal(s.array, np.isin(np.arange(11), [1, 3, 10]))
    with pytest.raises(IndexError):
        BitSet.from_indices([11], 11)
    with pytest.raises(ValueError):
        s | BitSet.from_indices([0], 5)


def test_subset_bitset():
    assert MeshSubset("all").bitset(6).is_full()
    part = MeshSubset("part", [4, 0]).bitset(6)
    assert part.to_indices().tolist() == [0, 4]
    assert (MeshSubset("all").bitset(6) - part).cardinality() == 4
