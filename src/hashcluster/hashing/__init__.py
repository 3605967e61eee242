"""Plain hashes, plain distances and the image hashing adapter."""

from .bits import BitVector, Hash, is_compatible, check_compatible
from .distance import hamming_distance, normalized_hamming_distance
from .compute import HashAlgorithm, HashComputationError, algorithm_id_for, compute_hash

__all__ = [
    "BitVector",
    "Hash",
    "is_compatible",
    "check_compatible",
    "hamming_distance",
    "normalized_hamming_distance",
    "HashAlgorithm",
    "HashComputationError",
    "algorithm_id_for",
    "compute_hash",
]
