"""
Response models for API endpoints and internal data structures.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_serializer

from engine.enums import AnomalyType, Severity


def _coerce(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: _coerce(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_coerce(v) for v in obj]
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    return obj


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NpModel(BaseModel):

    @model_serializer(mode="wrap")
    def _serialize(self, handler: Any) -> Any:
        return _coerce(handler(self))


class AnomalyResult(NpModel):

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=_utcnow)
    metric: str
    value: float
    predicted_value: Optional[float] = None
    anomaly_score: float = Field(ge=0.0, allow_inf_nan=False)
    confidence: float = Field(ge=0.0, le=1.0)
    severity: Severity
    type: AnomalyType
    algorithm: str
    context: Dict[str, Any] = Field(default_factory=dict)
    explanation: str = ""
    suggested_actions: List[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v: Any) -> float:
        value = float(v)
        if math.isnan(value):
            return 0.0
        return min(1.0, max(0.0, value))


class DetectionStatistics(NpModel):

    total_anomalies: int
    counts_by_severity: Dict[str, int] = Field(default_factory=dict)
    counts_by_algorithm: Dict[str, int] = Field(default_factory=dict)
    counts_by_metric: Dict[str, int] = Field(default_factory=dict)
    average_confidence: float = 0.0


class PatternView(NpModel):

    id: str
    name: str
    description: str
    frequency: float
    severity: Severity
    examples: List[str]
    detection_rules: List[str]


class DetectionStatus(NpModel):

    running: bool
    cycles_completed: int
    last_cycle_started_at: Optional[datetime] = None
    last_cycle_finished_at: Optional[datetime] = None
    last_cycle_anomalies: int = 0
    interval_seconds: float
