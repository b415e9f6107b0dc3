"""Summary statistics over duration samples."""

import math
from collections.abc import Iterable


def median(values: Iterable[float]) -> float | None:
    """Return the median of the values, or None when there are none."""
    ordered = sorted(values)
    size = len(ordered)
    if size == 0:
        return None
    center = size // 2
    if size % 2 == 0:
        return (ordered[center - 1] + ordered[center]) / 2.0
    return ordered[center]


def percentile(values: Iterable[float], p: float) -> float | None:
    """Return the p-th percentile using linear interpolation between closest ranks.

    Args:
        values: Samples in any order.
        p: Percentile between 0 and 100.

    Returns:
        Interpolated value, or None when there are no samples.

    Raises:
        ValueError: If p is outside [0, 100].
    """
    if not 0 <= p <= 100:
        raise ValueError(f"percentile must be between 0 and 100, got {p}")
    ordered = sorted(values)
    if not ordered:
        return None
    rank = (p / 100) * (len(ordered) - 1)
    lower = ordered[math.floor(rank)]
    upper = ordered[math.ceil(rank)]
    return lower + (upper - lower) * (rank - math.floor(rank))


def average(values: Iterable[float]) -> float | None:
    """Return the arithmetic mean, or None when there are no samples."""
    samples = list(values)
    if not samples:
        return None
    return sum(samples) / len(samples)
