"""
Ensemble voting across independent detectors. Each member detector that flags
the newest sample casts one vote carrying its strongest candidate; enough
votes produce a single collective anomaly whose score and confidence are the
means of the votes.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

import numpy as np

from api.requests import DetectionConfig
from api.responses import AnomalyResult
from config import settings
from engine.anomaly.base import Detector, build_result, get_detector
from engine.enums import Algorithm, AnomalyType

DEFAULT_MEMBERS: tuple[str, ...] = (
    Algorithm.statistical.value,
    Algorithm.time_series.value,
    Algorithm.pattern.value,
)


def _strongest(candidates: Sequence[AnomalyResult]) -> AnomalyResult:
    return max(candidates, key=lambda a: (a.anomaly_score, a.confidence))


def combine(
    metric: str,
    value: float,
    votes: Sequence[AnomalyResult],
    config: DetectionConfig,
    min_agreement: Optional[int] = None,
) -> Optional[AnomalyResult]:
    if min_agreement is None:
        min_agreement = settings.ensemble_min_agreement
    if len(votes) < max(1, min_agreement):
        return None

    scores = [v.anomaly_score for v in votes]
    confidences = [v.confidence for v in votes]
    avg_score = float(np.mean(scores))
    avg_confidence = float(np.mean(confidences))

    return build_result(
        metric=metric,
        value=value,
        score=avg_score,
        confidence=avg_confidence,
        anomaly_type=AnomalyType.collective,
        algorithm=Algorithm.ensemble.value,
        config=config,
        context={
            "algorithm_count": len(votes),
            "algorithms": [v.algorithm for v in votes],
            "individual_scores": scores,
            "individual_confidences": confidences,
        },
        explanation=(
            f"Ensemble detection: {len(votes)} algorithms detected anomaly "
            f"with average score {avg_score:.2f}"
        ),
    )


class EnsembleDetector(Detector):
    name = "ensemble"

    def __init__(self, members: Iterable[str] = DEFAULT_MEMBERS, min_agreement: Optional[int] = None) -> None:
        self.members = list(members)
        self.min_agreement = min_agreement

    def _member_detectors(self) -> List[Detector]:
        return [get_detector(name) for name in self.members]

    def votes(self, metric: str, values: np.ndarray, config: DetectionConfig) -> List[AnomalyResult]:
        collected: List[AnomalyResult] = []
        for detector in self._member_detectors():
            candidates = detector.safe_detect(metric, values, config)
            if candidates:
                collected.append(_strongest(candidates))
        return collected

    def detect(self, metric: str, values: np.ndarray, config: DetectionConfig) -> List[AnomalyResult]:
        arr = np.asarray(values, dtype=float)
        if arr.size == 0:
            return []
        collective = combine(metric, float(arr[-1]), self.votes(metric, arr, config), config, self.min_agreement)
        return [collective] if collective is not None else []
