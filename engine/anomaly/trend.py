"""
Trend detection: a trailing moving average provides the expected value and a
least-squares slope over the most recent points measures how far the newest
sample bends the established trend.

The deviation ratio compares the slope including the newest sample with the
slope of the points just before it. The change is measured against the size of
that baseline slope plus the slope jitter expected from the noise in the
history, so ordinary noise and tiny steps on a flat series stay below typical
thresholds. A small epsilon keeps the ratio finite, and an unchanged series
yields exactly zero.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from api.requests import DetectionConfig
from api.responses import AnomalyResult
from config import settings
from engine.anomaly.base import Detector, build_result
from engine.anomaly.stats import moving_average, ols_slope, residual_std, slope_standard_error
from engine.enums import AnomalyType


def moving_average_size(n: int) -> int:
    return max(1, min(settings.trend_moving_average_max, n // 3))


def slope_noise(history: np.ndarray, points: int, floor_ratio: float | None = None) -> float:
    """Expected slope jitter for ``points`` samples given the noise seen in ``history``.

    Noise is the residual spread of ``history`` around its own least-squares line,
    floored at ``floor_ratio`` of the history's level so that a perfectly flat or
    perfectly linear history does not make a negligible wiggle look significant.
    """
    if floor_ratio is None:
        floor_ratio = settings.trend_noise_floor_ratio
    if history.size == 0:
        return 0.0
    sigma = max(residual_std(history), abs(float(history.mean())) * floor_ratio)
    return slope_standard_error(sigma, min(points, history.size))


def trend_deviation(values: np.ndarray, points: int | None = None, epsilon: float | None = None) -> tuple[float, float, float]:
    """Return ``(slope, baseline_slope, deviation)`` for the newest sample of ``values``."""
    if points is None:
        points = settings.trend_slope_points
    if epsilon is None:
        epsilon = settings.trend_epsilon
    if values.size < 2:
        return 0.0, 0.0, 0.0

    slope = ols_slope(values[-points:])
    baseline = ols_slope(values[-points - 1:-1])
    noise = slope_noise(values[:-1], points)
    deviation = abs(slope - baseline) / (abs(baseline) + noise + epsilon)
    return slope, baseline, float(deviation)


class TrendDetector(Detector):
    name = "time_series"

    def detect(self, metric: str, values: np.ndarray, config: DetectionConfig) -> List[AnomalyResult]:
        arr = np.asarray(values, dtype=float)
        found: List[AnomalyResult] = []

        trend = self._trend_anomaly(metric, arr, config)
        if trend is not None:
            found.append(trend)

        seasonal = self._seasonal_anomaly(metric, arr, config)
        if seasonal is not None:
            found.append(seasonal)
        return found

    def _trend_anomaly(self, metric: str, arr: np.ndarray, config: DetectionConfig) -> Optional[AnomalyResult]:
        if arr.size < 2:
            return None
        current = float(arr[-1])
        window = moving_average_size(arr.size)
        averages = moving_average(arr, window)
        last_average = float(averages[-1]) if averages.size else float(arr.mean())

        slope, baseline, deviation = trend_deviation(arr)
        if deviation <= config.threshold:
            return None

        direction = "increasing" if slope > baseline else "decreasing"
        return build_result(
            metric=metric,
            value=current,
            predicted_value=last_average,
            score=deviation,
            confidence=min(settings.trend_confidence_cap, deviation / settings.trend_confidence_divisor),
            anomaly_type=AnomalyType.trend,
            algorithm="time_series_trend",
            config=config,
            context={
                "trend": slope,
                "baseline_trend": baseline,
                "moving_average": last_average,
                "trend_deviation": deviation,
                "window_size": window,
            },
            explanation=f"Trend deviation detected: {direction} trend with {deviation:.2f} deviation",
        )

    def _seasonal_anomaly(self, metric: str, arr: np.ndarray, config: DetectionConfig) -> Optional[AnomalyResult]:
        # seasonal decomposition is not implemented; this test never fires
        return None
