"""Helpers for aggregating groups of near-duplicate hashes."""

from .model import aggregate_image_groups
from .cluster import (
    ClusterSummary,
    build_cluster_hash,
    select_representative,
    is_near_duplicate,
    compare_uncertain_bits,
    summarize_groups,
)

__all__ = [
    "aggregate_image_groups",
    "ClusterSummary",
    "build_cluster_hash",
    "select_representative",
    "is_near_duplicate",
    "compare_uncertain_bits",
    "summarize_groups",
]
