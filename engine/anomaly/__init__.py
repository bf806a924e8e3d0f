"""
Anomaly detectors for metric windows: statistical (Z-score, IQR), trend
(moving average and least-squares slope), pattern rules and an ensemble vote
across them, each registered under the algorithm name used by detection
configurations.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from engine.anomaly.base import Detector, build_result, get_detector, register_detector, registered_algorithms
from engine.anomaly.ensemble import EnsembleDetector, combine
from engine.anomaly.patterns import PATTERNS, AnomalyPattern, PatternDetector, PatternMatch, get_pattern
from engine.anomaly.statistical import StatisticalDetector
from engine.anomaly.trend import TrendDetector
from engine.enums import Algorithm


def _register_defaults() -> None:
    register_detector(Algorithm.statistical.value, StatisticalDetector())
    register_detector(Algorithm.time_series.value, TrendDetector())
    register_detector(Algorithm.pattern.value, PatternDetector())
    register_detector(Algorithm.ensemble.value, EnsembleDetector())


_register_defaults()

__all__ = [
    "AnomalyPattern",
    "Detector",
    "EnsembleDetector",
    "PATTERNS",
    "PatternDetector",
    "PatternMatch",
    "StatisticalDetector",
    "TrendDetector",
    "build_result",
    "combine",
    "get_detector",
    "get_pattern",
    "register_detector",
    "registered_algorithms",
]
