"""
Versioned persistence of composite hashes.

Only the raw fields are stored: algorithm id, bit length, vote counts and
member count. Derived views are rebuilt after loading, so a decoded composite
behaves exactly like the one that was encoded.

Binary layout (big-endian)::

    magic         4 bytes  b"FZHS"
    version       uint8    1
    algorithm_id  int32    0x7FFFFFFF when unset
    bit_length    uint32
    vote_counts   int32 x bit_length
    member_count  int32
"""

import json
import struct
from pathlib import Path
from typing import Any, Dict, Union

import numpy as np

from ..errors import MalformedSnapshotError
from ..logging import get_logger
from .composite import CompositeHash

logger = get_logger(__name__)

MAGIC = b"FZHS"
FORMAT_VERSION = 1
UNSET_ALGORITHM_ID = 0x7FFFFFFF

_HEADER = struct.Struct(">4sBiI")
_MEMBER_COUNT = struct.Struct(">i")
_VOTE_DTYPE = np.dtype(">i4")
_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


def _check_int32(name: str, value: int) -> None:
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ValueError(f"{name} {value} does not fit the snapshot format")


def encode_snapshot(composite: CompositeHash) -> bytes:
    """
    Serialize a composite into the binary snapshot format.

    Raises:
        ValueError: If a field does not fit into 32 bits
    """
    algorithm_id = composite.algorithm_id
    if algorithm_id is None:
        algorithm_id = UNSET_ALGORITHM_ID
    elif algorithm_id == UNSET_ALGORITHM_ID:
        raise ValueError(f"algorithm id {UNSET_ALGORITHM_ID} is reserved for unset composites")
    _check_int32("algorithm id", algorithm_id)
    _check_int32("member count", composite.member_count)

    votes = composite.vote_counts
    if votes.size and (votes.min() < _INT32_MIN or votes.max() > _INT32_MAX):
        raise ValueError("vote counts do not fit the snapshot format")

    return b"".join([
        _HEADER.pack(MAGIC, FORMAT_VERSION, algorithm_id, composite.bit_length),
        votes.astype(_VOTE_DTYPE).tobytes(),
        _MEMBER_COUNT.pack(composite.member_count),
    ])


def decode_snapshot(data: bytes) -> CompositeHash:
    """
    Rebuild a composite from the binary snapshot format.

    Raises:
        MalformedSnapshotError: If the data is truncated, has trailing bytes,
            an unknown magic or version, or a vote array whose length
            disagrees with the declared bit length
    """
    if len(data) < _HEADER.size:
        raise MalformedSnapshotError(f"Snapshot too short: {len(data)} bytes")

    magic, version, algorithm_id, bit_length = _HEADER.unpack_from(data)
    if magic != MAGIC:
        raise MalformedSnapshotError(f"Not a composite hash snapshot (magic {magic!r})")
    if version != FORMAT_VERSION:
        raise MalformedSnapshotError(f"Unsupported snapshot version {version}")

    votes_size = len(data) - _HEADER.size - _MEMBER_COUNT.size
    expected = bit_length * _VOTE_DTYPE.itemsize
    if votes_size != expected:
        raise MalformedSnapshotError(
            f"Snapshot declares {bit_length} bits ({expected} vote bytes) but holds {max(votes_size, 0)} vote bytes"
        )

    votes = np.frombuffer(data, dtype=_VOTE_DTYPE, count=bit_length, offset=_HEADER.size)
    (member_count,) = _MEMBER_COUNT.unpack_from(data, _HEADER.size + expected)

    return _build(
        None if algorithm_id == UNSET_ALGORITHM_ID else algorithm_id,
        bit_length,
        votes.astype(np.int64),
        member_count,
    )


def snapshot_to_dict(composite: CompositeHash) -> Dict[str, Any]:
    """Convert to dictionary for JSON serialization."""
    return {
        "version": FORMAT_VERSION,
        "algorithm_id": composite.algorithm_id,
        "bit_length": composite.bit_length,
        "vote_counts": composite.vote_counts.tolist(),
        "member_count": composite.member_count,
    }


def snapshot_from_dict(data: Dict[str, Any]) -> CompositeHash:
    """
    Rebuild a composite from the dictionary snapshot form.

    Raises:
        MalformedSnapshotError: If fields are missing, mistyped or inconsistent
    """
    try:
        version = data["version"]
        algorithm_id = data["algorithm_id"]
        bit_length = data["bit_length"]
        vote_counts = data["vote_counts"]
        member_count = data["member_count"]
    except (KeyError, TypeError) as exc:
        raise MalformedSnapshotError(f"Snapshot is missing field {exc}") from exc

    if version != FORMAT_VERSION:
        raise MalformedSnapshotError(f"Unsupported snapshot version {version}")
    if algorithm_id is not None and not _is_int(algorithm_id):
        raise MalformedSnapshotError(f"algorithm_id must be an integer, got {algorithm_id!r}")
    if not _is_int(bit_length) or bit_length < 0:
        raise MalformedSnapshotError(f"bit_length must be a non-negative integer, got {bit_length!r}")
    if not _is_int(member_count):
        raise MalformedSnapshotError(f"member_count must be an integer, got {member_count!r}")
    if not isinstance(vote_counts, list) or not all(_is_int(v) for v in vote_counts):
        raise MalformedSnapshotError("vote_counts must be a list of integers")
    if len(vote_counts) != bit_length:
        raise MalformedSnapshotError(
            f"Snapshot declares {bit_length} bits but holds {len(vote_counts)} vote counts"
        )
    if not all(_INT64_MIN <= v <= _INT64_MAX for v in [member_count, *vote_counts]):
        raise MalformedSnapshotError("member_count and vote_counts must fit into 64 bits")

    return _build(algorithm_id, bit_length, vote_counts, member_count)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _build(algorithm_id, bit_length, vote_counts, member_count) -> CompositeHash:
    try:
        return CompositeHash.from_votes(algorithm_id, bit_length, vote_counts, member_count)
    except (ValueError, OverflowError) as exc:
        raise MalformedSnapshotError(str(exc)) from exc


def save_snapshot(composite: CompositeHash, path: Union[str, Path]) -> Path:
    """
    Write a composite to disk.

    A ``.json`` suffix selects the JSON form, anything else the binary form.

    Returns:
        Path that was written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".json":
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(snapshot_to_dict(composite), f, indent=2)
    else:
        path.write_bytes(encode_snapshot(composite))
    logger.info(f"Saved composite hash ({composite.member_count} members) to {path}")
    return path


def load_snapshot(path: Union[str, Path]) -> CompositeHash:
    """
    Read a composite written by save_snapshot.

    Raises:
        MalformedSnapshotError: If the file content is not a valid snapshot
    """
    path = Path(path)
    if path.suffix.lower() == ".json":
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise MalformedSnapshotError(f"Invalid JSON snapshot {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise MalformedSnapshotError(f"Snapshot {path} does not hold an object")
        composite = snapshot_from_dict(data)
    else:
        composite = decode_snapshot(path.read_bytes())
    logger.debug(f"Loaded composite hash ({composite.member_count} members) from {path}")
    return composite
