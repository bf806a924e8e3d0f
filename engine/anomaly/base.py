"""
Common detector capability and the algorithm registry: given a metric's window
(oldest first, newest sample last) and its configuration, a detector returns
zero or more candidate anomalies.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import numpy as np

from api.requests import DetectionConfig
from api.responses import AnomalyResult
from engine.actions import suggested_actions
from engine.enums import AnomalyType, Severity

log = logging.getLogger(__name__)


class Detector(ABC):
    name: str = "detector"

    @abstractmethod
    def detect(self, metric: str, values: np.ndarray, config: DetectionConfig) -> List[AnomalyResult]:
        ...

    def safe_detect(self, metric: str, values: np.ndarray, config: DetectionConfig) -> List[AnomalyResult]:
        try:
            return self.detect(metric, values, config)
        except Exception:
            log.exception("%s detection failed for %s", self.name, metric)
            return []


def _non_negative(value: float) -> float:
    if value is None or math.isnan(value):
        return 0.0
    return max(0.0, float(value))


def build_result(
    *,
    metric: str,
    value: float,
    score: float,
    confidence: float,
    anomaly_type: AnomalyType,
    algorithm: str,
    config: DetectionConfig,
    explanation: str,
    context: Optional[Dict[str, Any]] = None,
    predicted_value: Optional[float] = None,
    severity: Optional[Severity] = None,
) -> AnomalyResult:
    score = _non_negative(score)
    return AnomalyResult(
        metric=metric,
        value=float(value),
        predicted_value=None if predicted_value is None else float(predicted_value),
        anomaly_score=score,
        confidence=confidence,
        severity=severity or Severity.from_score(score, config.sensitivity),
        type=anomaly_type,
        algorithm=algorithm,
        context=context or {},
        explanation=explanation,
        suggested_actions=suggested_actions(metric),
    )


_registry: Dict[str, Detector] = {}


def register_detector(algorithm: str, detector: Detector) -> None:
    _registry[str(algorithm).lower()] = detector


def get_detector(algorithm: str) -> Detector:
    key = str(algorithm).lower()
    detector = _registry.get(key)
    if detector is None:
        raise ValueError(f"Unknown detection algorithm '{key}'. Registered: {sorted(_registry)}")
    return detector


def registered_algorithms() -> List[str]:
    return sorted(_registry)
