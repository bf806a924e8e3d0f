"""
Bounded in-memory history of detected anomalies and the statistics derived
from it. Oldest entries are evicted once the configured capacity is reached.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from collections import Counter, deque
from typing import Deque, Iterable, List, Optional

import numpy as np

from api.responses import AnomalyResult, DetectionStatistics
from config import settings


class AnomalyHistory:
    def __init__(self, max_items: Optional[int] = None) -> None:
        cap = settings.anomaly_history_max if max_items is None else max_items
        self._items: Deque[AnomalyResult] = deque(maxlen=max(1, int(cap)))

    @property
    def capacity(self) -> int:
        return int(self._items.maxlen or 0)

    def __len__(self) -> int:
        return len(self._items)

    def append(self, anomaly: AnomalyResult) -> None:
        self._items.append(anomaly)

    def extend(self, anomalies: Iterable[AnomalyResult]) -> None:
        self._items.extend(anomalies)

    def recent(self, limit: Optional[int] = None) -> List[AnomalyResult]:
        """Most recent first."""
        if limit is None:
            limit = settings.anomaly_recent_default_limit
        if limit <= 0:
            return []
        out: List[AnomalyResult] = []
        for anomaly in reversed(self._items):
            out.append(anomaly)
            if len(out) >= limit:
                break
        return out

    def statistics(self) -> DetectionStatistics:
        items = list(self._items)
        if not items:
            return DetectionStatistics(total_anomalies=0)
        return DetectionStatistics(
            total_anomalies=len(items),
            counts_by_severity=dict(Counter(a.severity.value for a in items)),
            counts_by_algorithm=dict(Counter(a.algorithm for a in items)),
            counts_by_metric=dict(Counter(a.metric for a in items)),
            average_confidence=float(np.mean([a.confidence for a in items])),
        )

    def clear(self) -> None:
        self._items.clear()
