"""
Pattern catalog and the rule registry used by the pattern matcher. Each rule is
an independent function keyed by pattern id that inspects a metric window and
returns a match (score, confidence) or nothing; rules for catalog entries
without a registered function never match.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from api.requests import DetectionConfig
from api.responses import AnomalyResult
from config import settings
from engine.anomaly.base import Detector, build_result
from engine.anomaly.stats import mean_std, ols_slope
from engine.enums import AnomalyType, Severity

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnomalyPattern:
    id: str
    name: str
    description: str
    pattern: str
    frequency: float
    severity: Severity
    examples: Tuple[str, ...]
    detection_rules: Tuple[str, ...]


@dataclass(frozen=True)
class PatternMatch:
    score: float
    confidence: float


PATTERNS: Tuple[AnomalyPattern, ...] = (
    AnomalyPattern(
        id="spike_pattern",
        name="Sudden Spike",
        description="Sudden increase in metric value",
        pattern="spike",
        frequency=0.1,
        severity=Severity.high,
        examples=("Error rate jumps from 1% to 15%", "Response time increases by 500%"),
        detection_rules=("value > mean + 3 * std", "rate_of_change > threshold"),
    ),
    AnomalyPattern(
        id="drop_pattern",
        name="Sudden Drop",
        description="Sudden decrease in metric value",
        pattern="drop",
        frequency=0.05,
        severity=Severity.medium,
        examples=("Throughput drops to zero", "Memory usage drops unexpectedly"),
        detection_rules=("value < 0.5 * min(history)", "rate_of_change < -threshold"),
    ),
    AnomalyPattern(
        id="trend_pattern",
        name="Trend Change",
        description="Change in trend direction",
        pattern="trend",
        frequency=0.15,
        severity=Severity.medium,
        examples=("Gradual increase in error rate", "Declining performance over time"),
        detection_rules=("trend_slope_changes", "moving_average_divergence"),
    ),
    AnomalyPattern(
        id="seasonal_pattern",
        name="Seasonal Anomaly",
        description="Deviation from seasonal patterns",
        pattern="seasonal",
        frequency=0.08,
        severity=Severity.low,
        examples=("Unusual traffic pattern", "Off-hours activity spike"),
        detection_rules=("deviates_from_seasonal", "time_based_anomaly"),
    ),
    AnomalyPattern(
        id="collective_pattern",
        name="Collective Anomaly",
        description="Multiple related metrics show anomalies",
        pattern="collective",
        frequency=0.03,
        severity=Severity.critical,
        examples=("Multiple services failing", "Cascade failure pattern"),
        detection_rules=("multiple_metrics_anomalous", "correlation_high"),
    ),
)

PatternRule = Callable[[np.ndarray], Optional[PatternMatch]]
_rules: Dict[str, PatternRule] = {}


def pattern_rule(pattern_id: str) -> Callable[[PatternRule], PatternRule]:
    def decorator(func: PatternRule) -> PatternRule:
        _rules[pattern_id] = func
        return func

    return decorator


def get_rule(pattern_id: str) -> Optional[PatternRule]:
    return _rules.get(pattern_id)


def get_pattern(pattern_id: str) -> Optional[AnomalyPattern]:
    for pattern in PATTERNS:
        if pattern.id == pattern_id:
            return pattern
    return None


@pattern_rule("spike_pattern")
def _spike(values: np.ndarray) -> Optional[PatternMatch]:
    current = float(values[-1])
    mean, std = mean_std(values)
    if std <= 0:
        return None
    z = (current - mean) / std
    if z > settings.pattern_spike_zscore:
        return PatternMatch(score=z, confidence=min(settings.zscore_confidence_cap, z / settings.zscore_confidence_divisor))
    return None


@pattern_rule("drop_pattern")
def _drop(values: np.ndarray) -> Optional[PatternMatch]:
    history = values[:-1]
    if history.size == 0:
        return None
    current = float(values[-1])
    floor = float(history.min())
    # a drop is measured relative to a positive floor
    if floor <= 0:
        return None
    if current < floor * settings.pattern_drop_ratio:
        return PatternMatch(score=(floor - current) / floor, confidence=settings.pattern_drop_confidence)
    return None


@pattern_rule("trend_pattern")
def _trend(values: np.ndarray) -> Optional[PatternMatch]:
    history = values[:-1]
    slope = ols_slope(history[-settings.trend_slope_points:])
    if abs(slope) > settings.pattern_trend_slope:
        return PatternMatch(score=abs(slope), confidence=settings.pattern_trend_confidence)
    return None


class PatternDetector(Detector):
    name = "pattern"

    def __init__(self, patterns: Tuple[AnomalyPattern, ...] = PATTERNS) -> None:
        self.patterns = patterns

    def detect(self, metric: str, values: np.ndarray, config: DetectionConfig) -> List[AnomalyResult]:
        arr = np.asarray(values, dtype=float)
        if arr.size == 0:
            return []
        current = float(arr[-1])
        found: List[AnomalyResult] = []

        for pattern in self.patterns:
            rule = get_rule(pattern.id)
            if rule is None:
                continue
            try:
                match = rule(arr)
            except Exception:
                log.exception("Pattern rule %s failed for %s", pattern.id, metric)
                continue
            if match is None:
                continue

            found.append(build_result(
                metric=metric,
                value=current,
                score=match.score,
                confidence=match.confidence,
                severity=pattern.severity,
                anomaly_type=AnomalyType.pattern,
                algorithm=f"pattern_{pattern.id}",
                config=config,
                context={
                    "pattern": pattern.name,
                    "pattern_id": pattern.id,
                    "match_score": match.score,
                },
                explanation=f'Pattern "{pattern.name}" detected: {pattern.description}',
            ))
        return found
