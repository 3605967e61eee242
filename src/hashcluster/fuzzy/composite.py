"""
Composite (fuzzy) hashes aggregating many plain hashes into one centroid.

A composite keeps one signed vote counter per bit position: +1 for every
merged member with that bit set, -1 for every member with it cleared. The
resolved hash, per-bit certainty and per-bit distance-to-one are projections
of these votes, cached independently and rebuilt on the first read after any
mutation.

Combining three hashes::

    H1:  1001
    H2:  1011
    H3:  1111
    ---------
    Res: 1011

The first and last bit are certain; the middle bits agree in two of three
members. Weighted distances take those certainties into account, while the
plain Hamming distances compare against the resolved hash.

Instances are not thread safe. Reading a derived view fills its cache, so
even concurrent readers need external locking. Equality is identity based:
a composite changes as members are merged, so compare with the distance
methods instead.
"""

import uuid
from typing import Iterable, Optional, Sequence, Union

import numpy as np

from ..errors import EmptyInputError, IncompatibilityError
from ..hashing.bits import BitVector, Hash, bits_array, is_compatible
from ..hashing.distance import hamming_distance, normalized_hamming_distance
from ..logging import get_logger
from . import distance as kernels

logger = get_logger(__name__)

_INT32_RANGE = 1 << 32


def _to_int32(value: int) -> int:
    return ((value + (1 << 31)) % _INT32_RANGE) - (1 << 31)


def _readonly(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


def _compute_certainty(votes: np.ndarray, member_count: int) -> np.ndarray:
    if member_count == 0:
        return np.zeros(votes.shape, dtype=float)
    n = float(member_count)
    v = votes.astype(float)
    more_ones = ((n - v) / 2 + v) / n
    more_zeros = -(((n + v) / 2 - v) / n)
    return np.where(v > 0, more_ones, np.where(v < 0, more_zeros, 0.0))


def _compute_distance_to_one(votes: np.ndarray, member_count: int) -> np.ndarray:
    if member_count == 0:
        # Nothing merged: every bit is equally far from 0 and 1
        return np.full(votes.shape, 0.5)
    n = float(member_count)
    v = votes.astype(float)
    more_ones = (n - v) / (2 * n)
    otherwise = ((n + v) / 2 - v) / n
    return np.where(v > 0, more_ones, otherwise)


def _filtered_algorithm_id(algorithm_id: Optional[int], positions: Sequence[int]) -> int:
    code = algorithm_id if algorithm_id is not None else 0
    for position in positions:
        code = _to_int32(31 * code + int(position))
    return _to_int32(31 * code + len(positions))


class CompositeHash:
    """
    Statistical centroid of a set of compatible hashes.

    The algorithm id and bit length are adopted from the first hash merged
    and never change afterwards. Validated operations (``merge``,
    ``subtract``, ``merge_many`` ...) reject incompatible hashes with
    ``IncompatibilityError`` and leave the composite untouched. The
    ``*_unchecked`` variants skip validation entirely: feeding them
    incompatible hashes, or subtracting hashes that were never merged,
    leaves the composite in a state whose query results are unspecified.
    """

    def __init__(self, *hashes: BitVector) -> None:
        self.uid = uuid.uuid4().hex
        self._algorithm_id: Optional[int] = None
        self._bit_length = 0
        self._votes = np.zeros(0, dtype=np.int64)
        self._member_count = 0

        # Derived views; None marks a view as dirty
        self._resolved: Optional[np.ndarray] = None
        self._certainty: Optional[np.ndarray] = None
        self._distance: Optional[np.ndarray] = None

        if hashes:
            self.merge_many(hashes)

    @classmethod
    def from_votes(
        cls,
        algorithm_id: Optional[int],
        bit_length: int,
        vote_counts: Iterable[int],
        member_count: int,
    ) -> "CompositeHash":
        """
        Rebuild a composite from its raw fields.

        Raises:
            ValueError: If the number of votes does not match bit_length
        """
        votes = np.array(list(vote_counts), dtype=np.int64)
        if votes.ndim != 1 or votes.size != bit_length:
            raise ValueError(f"expected {bit_length} vote counts, got {votes.size}")
        if algorithm_id is None and bit_length != 0:
            raise ValueError("a composite with bits needs an algorithm id")

        composite = cls()
        composite._algorithm_id = algorithm_id
        composite._bit_length = bit_length
        composite._votes = votes
        composite._member_count = int(member_count)
        return composite

    # Raw state

    @property
    def algorithm_id(self) -> Optional[int]:
        """Algorithm id of the merged hashes, None before the first merge."""
        return self._algorithm_id

    @property
    def bit_length(self) -> int:
        return self._bit_length

    @property
    def member_count(self) -> int:
        """Number of hashes currently folded into this composite."""
        return self._member_count

    @property
    def vote_counts(self) -> np.ndarray:
        """Copy of the per-bit votes, index 0 being the least significant bit."""
        return self._votes.copy()

    @property
    def is_empty(self) -> bool:
        return self._algorithm_id is None

    def copy(self) -> "CompositeHash":
        """Independent composite with the same votes and member count."""
        return CompositeHash.from_votes(
            self._algorithm_id, self._bit_length, self._votes, self._member_count
        )

    # Mutation

    def _initialize(self, algorithm_id: int, bit_length: int) -> None:
        self._algorithm_id = algorithm_id
        self._bit_length = bit_length
        self._votes = np.zeros(bit_length, dtype=np.int64)

    def _invalidate(self) -> None:
        self._resolved = None
        self._certainty = None
        self._distance = None

    def _check_mergeable(self, hash: BitVector, operation: str) -> None:
        if hash.algorithm_id is None:
            logger.warning(f"Rejected {operation} of a hash without an algorithm id")
            raise IncompatibilityError(f"Can't {operation} a hash without an algorithm id")
        if self.is_empty:
            self._initialize(hash.algorithm_id, hash.bit_length)
        elif not is_compatible(self, hash):
            logger.warning(
                f"Rejected {operation} of hash (length {hash.bit_length}, algorithm {hash.algorithm_id}) "
                f"into composite (length {self._bit_length}, algorithm {self._algorithm_id})"
            )
            raise IncompatibilityError(
                f"Can't {operation} hashes with unequal length or algorithm ids"
            )

    def _apply(self, hash: BitVector, sign: int) -> None:
        if self.is_empty:
            self._initialize(hash.algorithm_id, hash.bit_length)
        bits = bits_array(hash, self._bit_length)
        self._votes += np.where(bits, sign, -sign)
        self._member_count += sign
        self._invalidate()

    def merge(self, hash: BitVector) -> None:
        """
        Merge a hash into this composite.

        Every bit set in ``hash`` adds a vote for 1, every cleared bit a vote
        for 0. The first merged hash fixes the algorithm id and bit length.

        Raises:
            IncompatibilityError: If the hash differs in length or algorithm id,
                or has no algorithm id (an empty composite)
        """
        self._check_mergeable(hash, "merge")
        self._apply(hash, 1)

    def merge_unchecked(self, hash: BitVector) -> None:
        """Merge without validating length or algorithm id."""
        self._apply(hash, 1)

    def merge_many(self, hashes: Iterable[BitVector]) -> None:
        """
        Merge hashes one after another in input order.

        Not atomic: if a hash is rejected, the hashes before it stay merged.

        Raises:
            EmptyInputError: If no hashes are given
            IncompatibilityError: On the first incompatible hash
        """
        merged = 0
        for hash in hashes:
            self.merge(hash)
            merged += 1
        if merged == 0:
            raise EmptyInputError("Please provide at least 1 hash to merge")
        logger.debug(f"Merged {merged} hashes, composite now holds {self._member_count}")

    def merge_many_unchecked(self, hashes: Iterable[BitVector]) -> None:
        """Bulk form of merge_unchecked.

        Raises:
            EmptyInputError: If no hashes are given
        """
        merged = 0
        for hash in hashes:
            self.merge_unchecked(hash)
            merged += 1
        if merged == 0:
            raise EmptyInputError("Please provide at least 1 hash to merge")

    def merge_composite(self, other: "CompositeHash") -> None:
        """
        Fold another composite's votes and member count into this one.

        Unlike merging ``other`` as a plain hash this keeps the strength of
        its internal agreement, so clusters of clusters lose no precision.
        Merging an empty composite changes nothing.

        Raises:
            IncompatibilityError: If the composites differ in length or algorithm id
        """
        if other.is_empty:
            return
        self._check_mergeable(other, "merge")
        self._votes += other._votes
        self._member_count += other._member_count
        self._invalidate()
        logger.debug(
            f"Merged composite of {other._member_count} members, composite now holds {self._member_count}"
        )

    def subtract(self, hash: BitVector) -> None:
        """
        Remove a previously merged hash.

        Only length and algorithm id are validated; subtracting a hash that
        was never merged is not detected and leaves an unspecified state.

        Raises:
            IncompatibilityError: If the hash differs in length or algorithm id
        """
        self._check_mergeable(hash, "subtract")
        self._apply(hash, -1)

    def subtract_unchecked(self, hash: BitVector) -> None:
        """Subtract without validating length or algorithm id."""
        self._apply(hash, -1)

    def subtract_many(self, hashes: Iterable[BitVector]) -> None:
        """
        Subtract hashes one after another in input order. Not atomic.

        Raises:
            EmptyInputError: If no hashes are given
            IncompatibilityError: On the first incompatible hash
        """
        subtracted = 0
        for hash in hashes:
            self.subtract(hash)
            subtracted += 1
        if subtracted == 0:
            raise EmptyInputError("Please provide at least 1 hash to subtract")

    def subtract_many_unchecked(self, hashes: Iterable[BitVector]) -> None:
        subtracted = 0
        for hash in hashes:
            self.subtract_unchecked(hash)
            subtracted += 1
        if subtracted == 0:
            raise EmptyInputError("Please provide at least 1 hash to subtract")

    def reset(self) -> None:
        """
        Forget all history and keep only the current resolved hash.

        Afterwards the composite behaves as if its resolved hash had been
        merged into an empty composite. Resetting an empty composite does
        nothing.
        """
        if self.is_empty:
            return
        resolved = self._resolved_view()
        self._votes = np.where(resolved, 1, -1).astype(np.int64)
        self._member_count = 1
        self._invalidate()
        self._resolved_view()
        self._certainty_view()
        self._distance_view()
        logger.debug(f"Reset composite {self.uid} to {self}")

    # Derived views

    def _resolved_view(self) -> np.ndarray:
        if self._resolved is None:
            self._resolved = _readonly(self._votes > 0)
        return self._resolved

    def _certainty_view(self) -> np.ndarray:
        if self._certainty is None:
            self._certainty = _readonly(_compute_certainty(self._votes, self._member_count))
        return self._certainty

    def _distance_view(self) -> np.ndarray:
        if self._distance is None:
            self._distance = _readonly(_compute_distance_to_one(self._votes, self._member_count))
        return self._distance

    def bit(self, index: int) -> bool:
        """Resolved value of a single bit; ties resolve to 0."""
        return bool(self._votes[index] > 0)

    @property
    def resolved_hash(self) -> Hash:
        """Majority vote of all members as a plain hash."""
        return Hash.from_bits(self._resolved_view(), self._algorithm_id)

    @property
    def hash_value(self) -> int:
        return self.resolved_hash.value

    @property
    def bit_certainty(self) -> np.ndarray:
        """
        Signed agreement per bit in [-1, 1].

        -1 means every member has a 0 bit, 1 that every member has a 1 bit
        and 0 that both values are equally likely.
        """
        return self._certainty_view()

    @property
    def bit_distance_to_one(self) -> np.ndarray:
        """Per-bit distance in [0, 1] to a fully certain 1 bit."""
        return self._distance_view()

    def certainty(self, index: int) -> float:
        return float(self._certainty_view()[index])

    def weighted_bit_distance(self, index: int, bit: bool) -> float:
        """
        Distance of a single bit to a certain 1 (``bit=True``) or 0 bit.

        Returns:
            Distance in range [0, 1]
        """
        distance_to_one = float(self._distance_view()[index])
        return distance_to_one if bit else 1.0 - distance_to_one

    def max_uncertainty(self, index: int) -> float:
        """Distance to whichever of the 0 or 1 bit is further away."""
        return self.weighted_bit_distance(index, bool(self._votes[index] < 0))

    def uncertainty_mask(self, threshold: float) -> np.ndarray:
        """
        Mark bits whose certainty magnitude does not exceed ``threshold``.

        Args:
            threshold: Certainty in [0, 1]; bits more certain than this are excluded

        Returns:
            Bool array, True for bits too evenly split to be discriminative
        """
        return np.abs(self._certainty_view()) <= threshold

    def derive_filtered_hash(self, source: BitVector, threshold: float) -> Hash:
        """
        Keep only the bits of ``source`` at this composite's uncertain positions.

        Retained bits keep their relative order, the lowest retained position
        becoming bit 0 of the result. Hashes filtered with the same
        mask share an algorithm id and can be compared with each other.

        Args:
            source: A hash compatible with this composite
            threshold: Certainty threshold passed to uncertainty_mask

        Raises:
            IncompatibilityError: If source differs in bit length
        """
        self._check_comparable(source)
        positions = np.flatnonzero(self.uncertainty_mask(threshold))
        source_bits = bits_array(source, self._bit_length)
        return Hash.from_bits(
            source_bits[positions].tolist(),
            _filtered_algorithm_id(self._algorithm_id, positions),
        )

    def uncertainty_hash(self, threshold: float) -> Hash:
        """Filtered version of this composite's own resolved hash."""
        return self.derive_filtered_hash(self, threshold)

    # Distances

    def _check_comparable(self, other: BitVector) -> None:
        if other.bit_length != self._bit_length:
            logger.error(
                f"Can't compare composite of length {self._bit_length} with hash of length {other.bit_length}"
            )
            raise IncompatibilityError(
                f"Can't compare hashes of length {self._bit_length} and {other.bit_length}"
            )

    def weighted_distance(self, other: Union[BitVector, "CompositeHash"]) -> float:
        """
        Normalized distance taking per-bit certainty into account.

        Against a plain hash each bit contributes its distance to the target
        bit value. Against another composite each bit contributes the absolute
        difference of the two distance-to-one values. Much more expensive
        than a plain Hamming distance.

        Returns:
            Distance in range [0, 1]

        Raises:
            IncompatibilityError: If the bit lengths differ
        """
        self._check_comparable(other)
        if isinstance(other, CompositeHash):
            return kernels.weighted_distance_between(self._distance_view(), other._distance_view())
        return kernels.weighted_distance_to_bits(
            self._distance_view(), bits_array(other, self._bit_length)
        )

    def squared_weighted_distance(self, other: Union[BitVector, "CompositeHash"]) -> float:
        """Like weighted_distance with each per-bit term squared before averaging."""
        self._check_comparable(other)
        if isinstance(other, CompositeHash):
            return kernels.squared_weighted_distance_between(
                self._distance_view(), other._distance_view()
            )
        return kernels.squared_weighted_distance_to_bits(
            self._distance_view(), bits_array(other, self._bit_length)
        )

    def maximal_error(self) -> float:
        """Upper bound on the error of any weighted distance against this composite."""
        if self._member_count == 0:
            return 0.0
        return kernels.maximal_error(self._distance_view())

    def hamming_distance(self, other: BitVector) -> int:
        """Hamming distance between the resolved hash and ``other``."""
        if isinstance(other, CompositeHash):
            other = other.resolved_hash
        return hamming_distance(self.resolved_hash, other)

    def normalized_hamming_distance(self, other: BitVector) -> float:
        if isinstance(other, CompositeHash):
            other = other.resolved_hash
        return normalized_hamming_distance(self.resolved_hash, other)

    def __str__(self) -> str:
        return str(self.resolved_hash)

    def __repr__(self) -> str:
        return (
            f"CompositeHash(algorithm_id={self._algorithm_id}, bit_length={self._bit_length}, "
            f"member_count={self._member_count}, resolved={self})"
        )
