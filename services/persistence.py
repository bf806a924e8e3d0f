"""
Anomaly persistence: the store interface used by the detection service and
its SQLAlchemy implementation writing to ``anomaly_detections``.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from api.responses import AnomalyResult
from database import get_db_session
from db_models import AnomalyDetection
from engine.enums import AnomalyType, Severity
from engine.exceptions import PersistenceError


class AnomalyStore(ABC):
    @abstractmethod
    async def save_anomaly(self, anomaly: AnomalyResult) -> None: ...

    async def recent(self, limit: int = 50) -> List[AnomalyResult]:
        """Most recently stored anomalies, newest first. Stores without reads return nothing."""
        return []


class NullAnomalyStore(AnomalyStore):
    async def save_anomaly(self, anomaly: AnomalyResult) -> None:
        return None


def _to_row(anomaly: AnomalyResult) -> AnomalyDetection:
    payload = anomaly.model_dump(mode="json")
    return AnomalyDetection(
        id=anomaly.id,
        timestamp=anomaly.timestamp,
        metric=anomaly.metric,
        value=anomaly.value,
        predicted_value=anomaly.predicted_value,
        anomaly_score=anomaly.anomaly_score,
        confidence=anomaly.confidence,
        severity=anomaly.severity.value,
        type=anomaly.type.value,
        algorithm=anomaly.algorithm,
        context=payload["context"],
        explanation=anomaly.explanation,
        suggested_actions=list(anomaly.suggested_actions),
    )


def _from_row(row: AnomalyDetection) -> AnomalyResult:
    return AnomalyResult(
        id=row.id,
        timestamp=row.timestamp,
        metric=row.metric,
        value=row.value,
        predicted_value=row.predicted_value,
        anomaly_score=row.anomaly_score,
        confidence=row.confidence,
        severity=Severity(row.severity),
        type=AnomalyType(row.type),
        algorithm=row.algorithm,
        context=dict(row.context or {}),
        explanation=row.explanation or "",
        suggested_actions=list(row.suggested_actions or []),
    )


class SqlAnomalyStore(AnomalyStore):

    def _save_sync(self, anomaly: AnomalyResult) -> None:
        with get_db_session() as db:
            db.merge(_to_row(anomaly))

    def _recent_sync(self, limit: int) -> List[AnomalyResult]:
        with get_db_session() as db:
            rows = db.scalars(
                select(AnomalyDetection).order_by(AnomalyDetection.timestamp.desc()).limit(limit)
            ).all()
            return [_from_row(row) for row in rows]

    async def save_anomaly(self, anomaly: AnomalyResult) -> None:
        try:
            await asyncio.to_thread(self._save_sync, anomaly)
        except (SQLAlchemyError, RuntimeError) as exc:
            raise PersistenceError(f"failed to persist anomaly {anomaly.id}: {exc}") from exc

    async def recent(self, limit: int = 50) -> List[AnomalyResult]:
        try:
            return await asyncio.to_thread(self._recent_sync, max(0, int(limit)))
        except (SQLAlchemyError, RuntimeError) as exc:
            raise PersistenceError(f"failed to load anomalies: {exc}") from exc
