"""Tests for weighted distances between composites and plain hashes."""

import numpy as np
import pytest
from hypothesis import given, strategies as st

from hashcluster.errors import IncompatibilityError
from hashcluster.fuzzy import distance as kernels
from hashcluster.fuzzy.composite import CompositeHash
from hashcluster.hashing.bits import Hash


@st.composite
def compatible_hashes(draw, min_size=1, max_size=8):
    length = draw(st.integers(min_value=1, max_value=32))
    values = draw(st.lists(
        st.integers(min_value=0, max_value=2 ** length - 1),
        min_size=min_size,
        max_size=max_size,
    ))
    return [Hash(value=value, bit_length=length, algorithm_id=2) for value in values]


class TestWeightedDistance:
    def test_weighted_distance_to_member(self, three_hashes):
        composite = CompositeHash(*three_hashes)

        assert composite.weighted_distance(three_hashes[0]) == pytest.approx(0.25)
        assert composite.weighted_distance(three_hashes[2]) == pytest.approx(0.25)

    def test_weighted_distance_to_resolved(self, three_hashes):
        composite = CompositeHash(*three_hashes)
        assert composite.weighted_distance(composite.resolved_hash) == pytest.approx(1 / 6)

    def test_weighted_distance_to_inverse(self, three_hashes):
        composite = CompositeHash(*three_hashes)
        assert composite.weighted_distance(Hash.from_string("0100", 7)) == pytest.approx(5 / 6)

    def test_identical_members_have_zero_distance(self):
        h = Hash.from_string("110010", 4)
        composite = CompositeHash(h, h, h)

        assert composite.weighted_distance(h) == 0.0

    def test_weighted_distance_length_mismatch(self, three_hashes):
        composite = CompositeHash(*three_hashes)

        with pytest.raises(IncompatibilityError):
            composite.weighted_distance(Hash.from_string("101", 7))

    def test_weighted_distance_between_composites(self, three_hashes):
        composite = CompositeHash(*three_hashes)
        single = CompositeHash(Hash.from_string("1011", 7))

        assert composite.weighted_distance(single) == pytest.approx(1 / 6)
        assert single.weighted_distance(composite) == pytest.approx(1 / 6)

    def test_composite_distance_to_itself(self, three_hashes):
        composite = CompositeHash(*three_hashes)
        assert composite.weighted_distance(composite) == 0.0

    def test_weighted_distance_empty_composites(self):
        assert CompositeHash().weighted_distance(CompositeHash()) == 0.0

    @given(compatible_hashes(min_size=1), st.data())
    def test_weighted_distance_in_range(self, hashes, data):
        composite = CompositeHash(*hashes)
        value = data.draw(st.integers(min_value=0, max_value=2 ** composite.bit_length - 1))
        target = Hash(value=value, bit_length=composite.bit_length, algorithm_id=2)

        assert 0.0 <= composite.weighted_distance(target) <= 1.0
        assert 0.0 <= composite.squared_weighted_distance(target) <= 1.0

    @given(compatible_hashes(min_size=1, max_size=1))
    def test_single_member_matches_normalized_hamming(self, hashes):
        """With one member every bit is certain, so both distances agree."""
        composite = CompositeHash(*hashes)
        target = Hash(value=0, bit_length=composite.bit_length, algorithm_id=2)

        assert composite.weighted_distance(target) == pytest.approx(
            composite.normalized_hamming_distance(target)
        )


class TestSquaredWeightedDistance:
    def test_squared_distance_to_resolved(self, three_hashes):
        composite = CompositeHash(*three_hashes)
        assert composite.squared_weighted_distance(composite.resolved_hash) == pytest.approx(1 / 18)

    def test_squared_distance_between_composites(self, three_hashes):
        composite = CompositeHash(*three_hashes)
        single = CompositeHash(Hash.from_string("1011", 7))

        assert composite.squared_weighted_distance(single) == pytest.approx(1 / 18)

    def test_squared_never_exceeds_linear(self, three_hashes):
        composite = CompositeHash(*three_hashes)
        for h in three_hashes:
            assert composite.squared_weighted_distance(h) <= composite.weighted_distance(h)

    def test_squared_distance_length_mismatch(self, three_hashes):
        composite = CompositeHash(*three_hashes)

        with pytest.raises(IncompatibilityError):
            composite.squared_weighted_distance(CompositeHash(Hash.from_string("1", 7)))


class TestMaximalError:
    def test_maximal_error_three_hashes(self, three_hashes):
        composite = CompositeHash(*three_hashes)
        assert composite.maximal_error() == pytest.approx(5 / 6)

    def test_maximal_error_empty_composite(self):
        """An empty composite has no error."""
        assert CompositeHash().maximal_error() == 0

    def test_maximal_error_after_removing_all_members(self):
        h = Hash.from_string("1100", 1)
        composite = CompositeHash(h)
        composite.subtract(h)

        assert composite.maximal_error() == 0

    @given(compatible_hashes(min_size=1), st.data())
    def test_maximal_error_bounds_weighted_distance(self, hashes, data):
        composite = CompositeHash(*hashes)
        value = data.draw(st.integers(min_value=0, max_value=2 ** composite.bit_length - 1))
        target = Hash(value=value, bit_length=composite.bit_length, algorithm_id=2)

        assert composite.weighted_distance(target) <= composite.maximal_error() + 1e-12


class TestHammingAgainstComposite:
    def test_hamming_uses_resolved_hash(self, three_hashes):
        composite = CompositeHash(*three_hashes)

        assert composite.hamming_distance(Hash.from_string("1011", 7)) == 0
        assert composite.hamming_distance(Hash.from_string("0100", 7)) == 4
        assert composite.normalized_hamming_distance(Hash.from_string("1001", 7)) == 0.25

    def test_hamming_between_composites(self, three_hashes):
        a = CompositeHash(*three_hashes)
        b = CompositeHash(Hash.from_string("0011", 7))

        assert a.hamming_distance(b) == 1


class TestKernels:
    def test_empty_arrays(self):
        empty = np.zeros(0)

        assert kernels.weighted_distance_to_bits(empty, np.zeros(0, dtype=bool)) == 0.0
        assert kernels.weighted_distance_between(empty, empty) == 0.0
        assert kernels.maximal_error(empty) == 0.0

    def test_squared_between(self):
        a = np.array([0.0, 0.5])
        b = np.array([1.0, 0.0])

        assert kernels.squared_weighted_distance_between(a, b) == pytest.approx(0.625)
        assert kernels.weighted_distance_between(a, b) == pytest.approx(0.75)
