"""
Weighted distance kernels over per-bit distance-to-one arrays.

A distance-to-one array holds, for every bit position, the probability style
distance of a composite's bit to a fully certain 1 bit. The distance to a 0
bit is its complement. All functions return the mean over bit positions and
0.0 for empty arrays.
"""

import numpy as np


def _mean(terms: np.ndarray) -> float:
    if terms.size == 0:
        return 0.0
    return float(terms.mean())


def _per_bit_against_bits(distance_to_one: np.ndarray, bits: np.ndarray) -> np.ndarray:
    return np.where(bits, distance_to_one, 1.0 - distance_to_one)


def weighted_distance_to_bits(distance_to_one: np.ndarray, bits: np.ndarray) -> float:
    """
    Average distance between a probability model and a crisp bit vector.

    Args:
        distance_to_one: Per-bit distance to a 1 bit, values in [0, 1]
        bits: Bool array of the same length

    Returns:
        Distance in range [0, 1]
    """
    return _mean(_per_bit_against_bits(distance_to_one, bits))


def squared_weighted_distance_to_bits(distance_to_one: np.ndarray, bits: np.ndarray) -> float:
    """Like weighted_distance_to_bits, squaring each per-bit term."""
    return _mean(np.square(_per_bit_against_bits(distance_to_one, bits)))


def weighted_distance_between(a: np.ndarray, b: np.ndarray) -> float:
    """Average absolute difference between two distance-to-one arrays."""
    return _mean(np.abs(a - b))


def squared_weighted_distance_between(a: np.ndarray, b: np.ndarray) -> float:
    """Average squared difference between two distance-to-one arrays."""
    return _mean(np.square(a - b))


def maximal_error(distance_to_one: np.ndarray) -> float:
    """Average of the larger of the distances to 0 and to 1 for each bit."""
    return _mean(np.maximum(distance_to_one, 1.0 - distance_to_one))
