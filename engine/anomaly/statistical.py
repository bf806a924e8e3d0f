"""
Point-anomaly tests for the newest sample of a window: a Z-score test against
the population mean and standard deviation, and an independent IQR fence test.
Either sub-test is skipped when its spread is zero.

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
from engine.anomaly.stats import mean_std, quartiles
from engine.enums import AnomalyType


def zscore_anomaly(metric: str, values: np.ndarray, config: DetectionConfig) -> Optional[AnomalyResult]:
    if values.size == 0:
        return None
    current = float(values[-1])
    mean, std = mean_std(values)
    if std <= 0:
        return None

    z = abs(current - mean) / std
    if z <= config.threshold:
        return None

    return build_result(
        metric=metric,
        value=current,
        predicted_value=mean,
        score=z,
        confidence=min(settings.zscore_confidence_cap, z / settings.zscore_confidence_divisor),
        anomaly_type=AnomalyType.point,
        algorithm="statistical_zscore",
        config=config,
        context={
            "mean": mean,
            "std_dev": std,
            "z_score": z,
            "sample_count": int(values.size),
        },
        explanation=f"Value {current:g} is {z:.2f} standard deviations from mean {mean:.2f}",
    )


def iqr_anomaly(metric: str, values: np.ndarray, config: DetectionConfig) -> Optional[AnomalyResult]:
    if values.size == 0:
        return None
    current = float(values[-1])
    q1, q3 = quartiles(values)
    iqr = q3 - q1
    if iqr <= 0:
        return None

    k = settings.iqr_multiplier
    lower = q1 - k * iqr
    upper = q3 + k * iqr
    if lower <= current <= upper:
        return None

    midpoint = (q1 + q3) / 2
    score = abs(current - midpoint) / iqr
    return build_result(
        metric=metric,
        value=current,
        predicted_value=midpoint,
        score=score,
        confidence=settings.iqr_confidence,
        anomaly_type=AnomalyType.point,
        algorithm="statistical_iqr",
        config=config,
        context={
            "q1": q1,
            "q3": q3,
            "iqr": iqr,
            "lower_bound": lower,
            "upper_bound": upper,
        },
        explanation=f"Value {current:g} is outside IQR bounds [{lower:.2f}, {upper:.2f}]",
    )


class StatisticalDetector(Detector):
    name = "statistical"

    def detect(self, metric: str, values: np.ndarray, config: DetectionConfig) -> List[AnomalyResult]:
        arr = np.asarray(values, dtype=float)
        found: List[AnomalyResult] = []
        for test in (zscore_anomaly, iqr_anomaly):
            result = test(metric, arr, config)
            if result is not None:
                found.append(result)
        return found
