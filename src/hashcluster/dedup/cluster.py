"""Aggregation of known duplicate groups into composite hashes."""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from ..config import DEFAULT_SETTINGS
from ..errors import EmptyInputError
from ..fuzzy.composite import CompositeHash
from ..hashing.bits import BitVector
from ..hashing.distance import normalized_hamming_distance
from ..logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClusterSummary:
    """A known group of hashes summarized by its composite."""
    group_id: str
    member_ids: List[str]
    representative_id: str
    member_count: int
    maximal_error: float


def build_cluster_hash(members: Mapping[str, BitVector]) -> CompositeHash:
    """
    Merge all members of a group into one composite.

    Args:
        members: Mapping of member_id -> hash, all from the same algorithm

    Returns:
        Composite holding every member

    Raises:
        EmptyInputError: If the group has no members
        IncompatibilityError: If members differ in length or algorithm
    """
    composite = CompositeHash()
    # Sorted for deterministic logging; votes do not depend on order
    composite.merge_many(members[member_id] for member_id in sorted(members))
    return composite


def select_representative(composite: CompositeHash, members: Mapping[str, BitVector]) -> str:
    """
    Select the member closest to the composite.

    Selection criteria (in order):
    1. Lowest weighted distance to the composite
    2. Lexicographically smallest member id (for deterministic results)

    Raises:
        EmptyInputError: If there are no members to choose from
    """
    if not members:
        raise EmptyInputError("Can't select a representative from an empty group")
    return min(
        members,
        key=lambda member_id: (composite.weighted_distance(members[member_id]), member_id),
    )


def is_near_duplicate(
    composite: CompositeHash,
    candidate: BitVector,
    threshold: Optional[float] = None,
) -> bool:
    """
    Check whether a candidate hash lies within ``threshold`` of the composite.

    Args:
        composite: Cluster composite
        candidate: Hash to test
        threshold: Maximum weighted distance, defaults to the configured value
    """
    if threshold is None:
        threshold = DEFAULT_SETTINGS.near_duplicate_threshold
    distance = composite.weighted_distance(candidate)
    logger.debug(f"Weighted distance of candidate to cluster {composite.uid}: {distance:.4f}")
    return distance <= threshold


def compare_uncertain_bits(
    composite: CompositeHash,
    a: BitVector,
    b: BitVector,
    threshold: Optional[float] = None,
) -> float:
    """
    Compare two cluster members on the bits the cluster disagrees about.

    Bits the cluster is certain about are identical for most members and say
    little about which members are closest to each other, so only bits whose
    certainty magnitude is at most ``threshold`` are compared.

    Returns:
        Normalized Hamming distance between the filtered hashes, 0.0 when no
        bit is uncertain
    """
    if threshold is None:
        threshold = DEFAULT_SETTINGS.uncertainty_threshold
    filtered_a = composite.derive_filtered_hash(a, threshold)
    filtered_b = composite.derive_filtered_hash(b, threshold)
    return normalized_hamming_distance(filtered_a, filtered_b)


def summarize_groups(groups: Mapping[str, Mapping[str, BitVector]]) -> List[ClusterSummary]:
    """
    Summarize known groups of hashes.

    Args:
        groups: Mapping of any group key -> (member_id -> hash)

    Returns:
        ClusterSummary objects ordered by smallest member id, with sequential
        group ids; empty groups are skipped
    """
    composites: Dict[str, CompositeHash] = {}
    for key, members in groups.items():
        if not members:
            logger.warning(f"Skipping empty group {key}")
            continue
        composites[key] = build_cluster_hash(members)

    # Sort groups by smallest member id for deterministic ordering
    ordered_keys = sorted(composites, key=lambda key: min(groups[key]))

    summaries = []
    for counter, key in enumerate(ordered_keys, start=1):
        members = groups[key]
        composite = composites[key]
        summary = ClusterSummary(
            group_id=f"grp_{counter:03d}",
            member_ids=sorted(members),
            representative_id=select_representative(composite, members),
            member_count=composite.member_count,
            maximal_error=composite.maximal_error(),
        )
        summaries.append(summary)
        logger.info(
            f"Summarized group {summary.group_id} with {summary.member_count} members, "
            f"representative: {summary.representative_id}"
        )

    return summaries
