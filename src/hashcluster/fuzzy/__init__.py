"""Composite hash aggregation engine."""

from .composite import CompositeHash
from .snapshot import (
    encode_snapshot,
    decode_snapshot,
    snapshot_to_dict,
    snapshot_from_dict,
    save_snapshot,
    load_snapshot,
)

__all__ = [
    "CompositeHash",
    "encode_snapshot",
    "decode_snapshot",
    "snapshot_to_dict",
    "snapshot_from_dict",
    "save_snapshot",
    "load_snapshot",
]
