"""Plain bit-vector hashes and the capability the aggregation engine consumes."""

from dataclasses import dataclass
from typing import Iterable, Protocol, runtime_checkable

import imagehash
import numpy as np

from ..errors import IncompatibilityError


@runtime_checkable
class BitVector(Protocol):
    """
    Read-only view of a fixed-length hash.

    Bit index 0 is the least significant bit of the hash value.
    """

    @property
    def bit_length(self) -> int: ...

    @property
    def algorithm_id(self) -> int: ...

    def bit(self, index: int) -> bool: ...


@dataclass(frozen=True)
class Hash:
    """An immutable plain hash produced by a single hashing algorithm."""
    value: int
    bit_length: int
    algorithm_id: int

    def __post_init__(self) -> None:
        if self.bit_length < 0:
            raise ValueError(f"bit_length must be non-negative, got {self.bit_length}")
        if self.value < 0:
            raise ValueError(f"hash value must be non-negative, got {self.value}")
        if self.value.bit_length() > self.bit_length:
            raise ValueError(
                f"hash value needs {self.value.bit_length()} bits but bit_length is {self.bit_length}"
            )

    def bit(self, index: int) -> bool:
        return bool((self.value >> index) & 1)

    def to_array(self) -> np.ndarray:
        """Return the bits as a bool array where element i is bit i."""
        return np.array([self.bit(i) for i in range(self.bit_length)], dtype=bool)

    @classmethod
    def from_bits(cls, bits: Iterable[bool], algorithm_id: int) -> "Hash":
        """
        Build a hash from bits in index order (element i becomes bit i).

        Args:
            bits: Bit values, least significant first
            algorithm_id: Identifier of the producing algorithm

        Returns:
            Hash holding the given bits
        """
        value = 0
        length = 0
        for index, bit in enumerate(bits):
            if bit:
                value |= 1 << index
            length = index + 1
        return cls(value=value, bit_length=length, algorithm_id=algorithm_id)

    @classmethod
    def from_string(cls, text: str, algorithm_id: int) -> "Hash":
        """Parse a binary string written most significant bit first."""
        text = text.strip()
        if text and set(text) - {"0", "1"}:
            raise ValueError(f"not a binary string: {text!r}")
        value = int(text, 2) if text else 0
        return cls(value=value, bit_length=len(text), algorithm_id=algorithm_id)

    @classmethod
    def from_image_hash(cls, image_hash: imagehash.ImageHash, algorithm_id: int) -> "Hash":
        """
        Convert an imagehash result into a plain hash.

        The flattened hash matrix is read row-major with its first cell as the
        most significant bit, matching imagehash's own hex rendering.
        """
        flat = np.asarray(image_hash.hash, dtype=bool).flatten()
        return cls.from_bits(flat[::-1], algorithm_id)

    def __str__(self) -> str:
        if self.bit_length == 0:
            return ""
        return format(self.value, f"0{self.bit_length}b")


def is_compatible(a: BitVector, b: BitVector) -> bool:
    """Check whether two hashes share bit length and algorithm id."""
    return a.bit_length == b.bit_length and a.algorithm_id == b.algorithm_id


def check_compatible(a: BitVector, b: BitVector) -> None:
    """
    Raise if two hashes cannot be combined or compared.

    Raises:
        IncompatibilityError: If bit length or algorithm id differ
    """
    if not is_compatible(a, b):
        raise IncompatibilityError(
            f"Incompatible hashes: length {a.bit_length} vs {b.bit_length}, "
            f"algorithm {a.algorithm_id} vs {b.algorithm_id}"
        )


def bits_array(hash: BitVector, length: int) -> np.ndarray:
    """
    Read the first ``length`` bits of a hash into a bool array.

    Positions past the end of a shorter hash read as 0 bits, so callers that
    skip validation never index out of range.
    """
    if isinstance(hash, Hash) and hash.bit_length == length:
        return hash.to_array()
    available = min(length, hash.bit_length)
    return np.fromiter(
        (hash.bit(i) if i < available else False for i in range(length)),
        dtype=bool,
        count=length,
    )
