"""Perceptual hash computation feeding the aggregation engine."""

from enum import Enum
from pathlib import Path

import imagehash
from PIL import Image

from .bits import Hash
from ..errors import HashClusterError
from ..logging import get_logger

logger = get_logger(__name__)


class HashAlgorithm(Enum):
    """Hashing algorithms provided by imagehash."""
    AVERAGE = "average"
    DIFFERENCE = "difference"
    PERCEPTUAL = "perceptual"


_ALGORITHM_CODES = {
    HashAlgorithm.AVERAGE: 1,
    HashAlgorithm.DIFFERENCE: 2,
    HashAlgorithm.PERCEPTUAL: 3,
}

_HASH_FUNCTIONS = {
    HashAlgorithm.AVERAGE: imagehash.average_hash,
    HashAlgorithm.DIFFERENCE: imagehash.dhash,
    HashAlgorithm.PERCEPTUAL: imagehash.phash,
}


class HashComputationError(HashClusterError):
    """Raised when hash computation fails."""


def algorithm_id_for(algorithm: HashAlgorithm, hash_size: int) -> int:
    """Stable id so that hashes from different algorithms or sizes never mix."""
    return (_ALGORITHM_CODES[algorithm] << 16) | hash_size


def compute_hash(
    image_path: Path,
    algorithm: HashAlgorithm = HashAlgorithm.PERCEPTUAL,
    hash_size: int = 8,
) -> Hash:
    """
    Load image from disk and compute a perceptual hash.

    Args:
        image_path: Path to image file
        algorithm: Which imagehash algorithm to apply
        hash_size: Side length of the hash matrix (bit length is its square)

    Returns:
        Plain Hash tagged with the algorithm id

    Raises:
        HashComputationError: If image cannot be loaded or hash computed
    """
    algorithm = HashAlgorithm(algorithm)
    try:
        with Image.open(image_path) as img:
            # Convert to RGB if needed for consistent hashing
            if img.mode != 'RGB':
                img = img.convert('RGB')

            image_hash = _HASH_FUNCTIONS[algorithm](img, hash_size=hash_size)

    except Exception as exc:
        raise HashComputationError(f"Failed to compute hash for {image_path}: {exc}") from exc

    logger.debug(f"Computed {algorithm.value} hash for {image_path}: {image_hash}")
    return Hash.from_image_hash(image_hash, algorithm_id_for(algorithm, hash_size))
