"""Chunk geometry for fixed-length period datasets.

Chunks always tile the dataset exactly: chunk_length * chunk_count == total_length.
The chunk length is the divisor of total_length closest to TARGET_CHUNK_BYTES,
preferring the largest divisor below the target unless it is much smaller.
"""

from __future__ import annotations

import math

from h5series.storage.format import ELEMENT_SIZE, TARGET_CHUNK_BYTES

# A divisor below target / MIN_FILL_RATIO makes too many small chunks
MIN_FILL_RATIO = 8


def _divisors(n: int) -> list[int]:
    small = []
    large = []
    for i in range(1, math.isqrt(n) + 1):
        if n % i == 0:
            small.append(i)
            if i != n // i:
                large.append(n // i)
    return small + large[::-1]


def plan_chunks(
    total_length: int,
    target_bytes: int = TARGET_CHUNK_BYTES,
    element_size: int = ELEMENT_SIZE,
) -> tuple[int, int]:
    """Compute (chunk_length, chunk_count) for a dataset of total_length elements.

    Args:
        total_length: Number of elements in the dataset.
        target_bytes: Preferred chunk size in bytes.
        element_size: Size of one element in bytes.

    Returns:
        (chunk_length, chunk_count), both 0 if total_length is 0.
    """
    if total_length < 0:
        raise ValueError(f"total_length must be non-negative, got {total_length}")
    if total_length == 0:
        return 0, 0

    target_length = max(target_bytes // element_size, 1)
    if total_length <= target_length:
        return total_length, 1

    divisors = _divisors(total_length)
    below = max(d for d in divisors if d <= target_length)
    if below * MIN_FILL_RATIO >= target_length:
        chunk_length = below
    else:
        chunk_length = min(d for d in divisors if d > target_length)

    return chunk_length, total_length // chunk_length
