"""Descriptive statistics for a single numeric column."""

import math
from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np

from lumipath.analysis.models import ColumnStats, NormalRange
from lumipath.workbook import parse_float


def _valid_values(values: Iterable[Any]) -> list[float]:
    return [f for f in map(parse_float, values) if f is not None]


def calculate_median(sorted_values: Sequence[float]) -> float:
    n = len(sorted_values)
    if n == 0:
        return float("nan")
    mid = n // 2
    if n % 2:
        return sorted_values[mid]
    return (sorted_values[mid - 1] + sorted_values[mid]) / 2


def calculate_variance(values: Sequence[float], mean: float) -> float:
    """Population variance (divides by n), rounded to 4 dp."""
    arr = np.asarray(values, dtype=float)
    return round(float(np.mean((arr - mean) ** 2)), 4)


def calculate_standard_deviation(values: Sequence[float], mean: float) -> float:
    return round(math.sqrt(calculate_variance(values, mean)), 4)


def detect_outliers(values: Sequence[float]) -> list[float]:
    """Values outside Q1 - 1.5*IQR .. Q3 + 1.5*IQR, ascending.

    Quartiles are the medians of the lower and upper halves of the sorted
    data (the middle value is left out of both halves for odd n).
    """
    s = sorted(values)
    n = len(s)
    if n < 2:
        return []
    q1 = calculate_median(s[: n // 2])
    q3 = calculate_median(s[math.ceil(n / 2):])
    iqr = q3 - q1
    lower = q1 - 1.5 * iqr
    upper = q3 + 1.5 * iqr
    return [v for v in s if v < lower or v > upper]


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Index-lookup percentile: sorted[floor(n * p)], no interpolation."""
    idx = min(math.floor(len(sorted_values) * p), len(sorted_values) - 1)
    return sorted_values[idx]


def calculate_normal_range(values: Sequence[float]) -> NormalRange:
    s = sorted(values)
    q1 = percentile(s, 0.25)
    q3 = percentile(s, 0.75)
    iqr = q3 - q1
    return NormalRange(
        q1=q1,
        q3=q3,
        iqr=iqr,
        lower_fence=q1 - 1.5 * iqr,
        upper_fence=q3 + 1.5 * iqr,
    )


def calculate_basic_stats(values: Sequence[Any]) -> ColumnStats | None:
    """Summary statistics over the numeric entries of `values`.

    None, NaN and non-numeric entries are dropped first and reported as
    missing_count. Returns None when nothing numeric is left.
    """
    if not values:
        return None
    valid = sorted(_valid_values(values))
    if not valid:
        return None

    mean = float(np.mean(valid))
    return ColumnStats(
        count=len(valid),
        mean=round(mean, 4),
        median=calculate_median(valid),
        min=valid[0],
        max=valid[-1],
        standard_deviation=calculate_standard_deviation(valid, mean),
        variance=calculate_variance(valid, mean),
        missing_count=len(values) - len(valid),
        outliers=detect_outliers(valid),
    )
