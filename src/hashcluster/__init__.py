"""Aggregate noisy perceptual hashes into composite cluster hashes."""

from .errors import (
    HashClusterError,
    IncompatibilityError,
    EmptyInputError,
    MalformedSnapshotError,
)
from .hashing import BitVector, Hash
from .fuzzy import CompositeHash

__version__ = "0.1.0"

__all__ = [
    "HashClusterError",
    "IncompatibilityError",
    "EmptyInputError",
    "MalformedSnapshotError",
    "BitVector",
    "Hash",
    "CompositeHash",
]
