"""
Rolling per-metric sample windows, refreshed each detection cycle from the
metric source and bounded by sample count rather than wall-clock age.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterable, List

import numpy as np


@dataclass(frozen=True)
class MetricSample:
    metric: str
    timestamp: float
    value: float
    metadata: Dict[str, Any] = field(default_factory=dict)


class RollingWindowStore:
    def __init__(self) -> None:
        self._windows: Dict[str, Deque[MetricSample]] = {}

    def refresh(self, metric: str, window_size: int, samples: Iterable[MetricSample]) -> List[MetricSample]:
        """Replace the cached window for ``metric`` with the newest ``window_size`` samples.

        Samples are kept oldest first; non-finite values are dropped.
        """
        size = max(1, int(window_size))
        ordered = sorted(
            (s for s in samples if math.isfinite(s.value) and math.isfinite(s.timestamp)),
            key=lambda s: s.timestamp,
        )
        window: Deque[MetricSample] = deque(ordered, maxlen=size)
        self._windows[metric] = window
        return list(window)

    def values(self, metric: str) -> np.ndarray:
        return np.array([s.value for s in self._windows.get(metric, ())], dtype=float)

