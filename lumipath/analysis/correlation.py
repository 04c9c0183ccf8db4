"""Pairwise Pearson correlation across numeric columns."""

import math
import warnings
from collections.abc import Sequence
from typing import Any

import numpy as np
from scipy import stats

from lumipath.workbook import parse_float


def _paired(x: Sequence[Any], y: Sequence[Any]) -> tuple[np.ndarray, np.ndarray]:
    """Keep only rows where both sides are numeric."""
    xs, ys = [], []
    for a, b in zip(x, y):
        fa, fb = parse_float(a), parse_float(b)
        if fa is None or fb is None:
            continue
        xs.append(fa)
        ys.append(fb)
    return np.asarray(xs, dtype=float), np.asarray(ys, dtype=float)


def pearson_correlation(x: Sequence[Any], y: Sequence[Any]) -> float:
    """Pearson r over the paired rows, rounded to 4 dp.

    Returns 0.0 for mismatched lengths, fewer than two pairs, or a
    constant column.
    """
    if len(x) != len(y):
        return 0.0
    xs, ys = _paired(x, y)
    if len(xs) < 2:
        return 0.0
    dx = xs - xs.mean()
    dy = ys - ys.mean()
    denom = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denom == 0:
        return 0.0
    r = float(np.sum(dx * dy)) / denom
    # clamp float noise so self-correlation reports exactly 1.0
    return round(max(-1.0, min(1.0, r)), 4)


def correlation_matrix(columns: dict[str, Sequence[Any]]) -> dict[str, dict[str, float]]:
    """Symmetric matrix of every column against every column, itself included."""
    names = list(columns)
    matrix: dict[str, dict[str, float]] = {name: {} for name in names}
    for i, a in enumerate(names):
        for b in names[i:]:
            r = pearson_correlation(columns[a], columns[b])
            matrix[a][b] = r
            matrix[b][a] = r
    return matrix


def correlation_p_value(x: Sequence[Any], y: Sequence[Any]) -> float | None:
    """Two-sided p-value for the Pearson r, or None if it is undefined."""
    if len(x) != len(y):
        return None
    xs, ys = _paired(x, y)
    if len(xs) < 3 or np.ptp(xs) == 0 or np.ptp(ys) == 0:
        return None
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        _, p = stats.pearsonr(xs, ys)
    p = float(p)
    return None if math.isnan(p) else round(p, 6)


def correlation_p_values(
    columns: dict[str, Sequence[Any]],
) -> dict[str, dict[str, float | None]]:
    names = list(columns)
    out: dict[str, dict[str, float | None]] = {name: {} for name in names}
    for i, a in enumerate(names):
        for b in names[i:]:
            p = correlation_p_value(columns[a], columns[b])
            out[a][b] = p
            out[b][a] = p
    return out
