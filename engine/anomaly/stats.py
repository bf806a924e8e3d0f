"""
Numeric helpers shared by the detectors: population moments, index-based
quartiles, least-squares slope and a trailing moving average.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Sequence, Tuple, Union

import numpy as np

ArrayLike = Union[Sequence[float], np.ndarray]


def as_array(values: ArrayLike) -> np.ndarray:
    return np.asarray(values, dtype=float)


def mean_std(values: ArrayLike) -> Tuple[float, float]:
    arr = as_array(values)
    if arr.size == 0:
        return 0.0, 0.0
    return float(arr.mean()), float(arr.std())


def quartiles(values: ArrayLike) -> Tuple[float, float]:
    # nearest-rank at floor(n * p), no interpolation
    arr = np.sort(as_array(values))
    n = arr.size
    if n == 0:
        return 0.0, 0.0
    q1 = float(arr[min(n - 1, int(np.floor(n * 0.25)))])
    q3 = float(arr[min(n - 1, int(np.floor(n * 0.75)))])
    return q1, q3


def ols_slope(values: ArrayLike) -> float:
    y = as_array(values)
    n = y.size
    if n < 2:
        return 0.0
    x = np.arange(n, dtype=float)
    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = float(np.dot(x, y))
    sum_xx = float(np.dot(x, x))
    denom = n * sum_xx - sum_x * sum_x
    if denom == 0:
        return 0.0
    return float((n * sum_xy - sum_x * sum_y) / denom)


def moving_average(values: ArrayLike, size: int) -> np.ndarray:
    arr = as_array(values)
    size = max(1, int(size))
    if arr.size < size:
        return np.array([], dtype=float)
    kernel = np.ones(size, dtype=float) / size
    return np.convolve(arr, kernel, mode="valid")


def residual_std(values: ArrayLike) -> float:
    """Standard deviation of the residuals around a least-squares line."""
    y = as_array(values)
    if y.size < 3:
        return 0.0
    x = np.arange(y.size, dtype=float)
    slope, intercept = np.polyfit(x, y, 1)
    resid = y - (slope * x + intercept)
    return float(np.sqrt(np.dot(resid, resid) / (y.size - 2)))


def slope_standard_error(sigma: float, n: int) -> float:
    """Standard error of an OLS slope over ``n`` evenly spaced points with noise ``sigma``."""
    if n < 2 or sigma <= 0:
        return 0.0
    sxx = n * (n * n - 1) / 12.0
    return float(sigma / np.sqrt(sxx))
