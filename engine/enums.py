"""
Enumerations for Severity, Sensitivity, Detection Algorithms and Anomaly Types

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Union

from config import SEVERITY_CUTOFFS, SEVERITY_WEIGHTS


class Sensitivity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class Severity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"

    @classmethod
    def from_score(cls, score: float, sensitivity: Union[Sensitivity, str] = Sensitivity.medium) -> Severity:
        # cutoffs live in config so that tiers can be tuned without touching
        # this logic; an unknown tier falls back to medium.
        try:
            tier = Sensitivity(sensitivity)
        except ValueError:
            tier = Sensitivity.medium
        cutoffs = SEVERITY_CUTOFFS[tier.value]

        if score is None or math.isnan(score):
            return cls.low
        if score >= cutoffs["critical"]:
            return cls.critical
        if score >= cutoffs["high"]:
            return cls.high
        if score >= cutoffs["medium"]:
            return cls.medium
        return cls.low

    def weight(self) -> int:
        return SEVERITY_WEIGHTS[self.value]


class Algorithm(str, Enum):
    statistical = "statistical"
    time_series = "time_series"
    pattern = "pattern"
    ensemble = "ensemble"


class AnomalyType(str, Enum):
    point = "point"
    trend = "trend"
    pattern = "pattern"
    collective = "collective"
