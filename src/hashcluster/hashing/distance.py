"""Distance metrics for plain perceptual hash comparison."""

import numpy as np

from .bits import BitVector, Hash, bits_array
from ..errors import IncompatibilityError


def hamming_distance(a: BitVector, b: BitVector) -> int:
    """
    Calculate Hamming distance between two hashes.

    Args:
        a: First hash
        b: Second hash

    Returns:
        Hamming distance (number of differing bits)

    Raises:
        IncompatibilityError: If the hashes differ in bit length
    """
    if a.bit_length != b.bit_length:
        raise IncompatibilityError(
            f"Can't compare hashes of length {a.bit_length} and {b.bit_length}"
        )
    if isinstance(a, Hash) and isinstance(b, Hash):
        return bin(a.value ^ b.value).count("1")
    length = a.bit_length
    return int(np.count_nonzero(bits_array(a, length) != bits_array(b, length)))


def normalized_hamming_distance(a: BitVector, b: BitVector) -> float:
    """
    Calculate the Hamming distance divided by the bit length.

    Returns:
        Distance in range [0, 1]; 0.0 for two empty hashes
    """
    distance = hamming_distance(a, b)
    if a.bit_length == 0:
        return 0.0
    return distance / a.bit_length
