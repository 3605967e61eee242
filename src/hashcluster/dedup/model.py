"""Public API for aggregating known groups of images."""

from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Union

from ..config import DEFAULT_SETTINGS
from ..fuzzy.composite import CompositeHash
from ..hashing.bits import Hash
from ..hashing.compute import HashAlgorithm, HashComputationError, compute_hash
from ..logging import get_logger

logger = get_logger(__name__)


def aggregate_image_groups(
    groups: Mapping[str, Sequence[Path]],
    algorithm: Union[HashAlgorithm, str, None] = None,
    hash_size: Optional[int] = None,
) -> Dict[str, CompositeHash]:
    """
    Hash every image of each known group and merge each group into a composite.

    Args:
        groups: Mapping of group_id -> image paths belonging together
        algorithm: Hashing algorithm, defaults to the configured one
        hash_size: Hash matrix side length, defaults to the configured one

    Returns:
        Mapping from group_id to CompositeHash (only for groups with at least
        one image that could be hashed)
    """
    algorithm = HashAlgorithm(algorithm or DEFAULT_SETTINGS.algorithm)
    hash_size = hash_size or DEFAULT_SETTINGS.hash_size

    result = {}
    for group_id, paths in groups.items():
        hashes: List[Hash] = []
        for image_path in paths:
            image_path = Path(image_path)
            try:
                hashes.append(compute_hash(image_path, algorithm, hash_size))
            except HashComputationError as exc:
                logger.warning(f"Failed to compute hash for {image_path} in group {group_id}: {exc}")
                continue

        if not hashes:
            logger.warning(f"No hashable images in group {group_id}, skipping")
            continue

        composite = CompositeHash()
        composite.merge_many(hashes)
        result[group_id] = composite

    logger.info(f"Aggregated {len(result)} of {len(groups)} image groups")
    return result
