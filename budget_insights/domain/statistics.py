"""Numeric primitives shared by every analysis component"""

import math
from typing import Sequence


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean, 0.0 for an empty sequence"""
    if not values:
        return 0.0
    return sum(values) / len(values)


def variance(values: Sequence[float]) -> float:
    """Population variance, 0.0 for fewer than two samples"""
    if len(values) < 2:
        return 0.0
    avg = mean(values)
    return max(0.0, sum((v - avg) ** 2 for v in values) / len(values))


def std_dev(values: Sequence[float]) -> float:
    return math.sqrt(variance(values))


def pearson_correlation(xs: Sequence[float], ys: Sequence[float]) -> float:
    """
    Pearson's r between two equal-length series.

    Returns 0.0 ("no detectable correlation") for fewer than two pairs or when
    either series is constant, instead of failing on the zero denominator.

    Raises:
        ValueError: If the series lengths differ
    """
    if len(xs) != len(ys):
        raise ValueError(f"Series lengths differ: {len(xs)} != {len(ys)}")
    if len(xs) < 2:
        return 0.0

    mean_x = mean(xs)
    mean_y = mean(ys)
    cov = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys))
    ss_x = sum((x - mean_x) ** 2 for x in xs)
    ss_y = sum((y - mean_y) ** 2 for y in ys)

    denominator = math.sqrt(ss_x * ss_y)
    if denominator == 0 or math.isclose(ss_x, 0.0, abs_tol=1e-12) or math.isclose(ss_y, 0.0, abs_tol=1e-12):
        return 0.0

    return clamp(cov / denominator, -1.0, 1.0)
