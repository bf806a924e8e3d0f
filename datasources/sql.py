"""
Metric source backed by the ``system_metrics`` table.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from database import get_db_session
from datasources.base import MetricSource
from datasources.exceptions import DataSourceUnavailable, InvalidQuery
from datasources.helpers import to_epoch_seconds
from datasources.retry import retry
from db_models import SystemMetric
from engine.window import MetricSample

log = logging.getLogger(__name__)


def _to_sample(row: SystemMetric) -> MetricSample:
    return MetricSample(
        metric=row.metric_type,
        timestamp=to_epoch_seconds(row.timestamp),
        value=float(row.value),
        metadata=dict(row.labels or {}),
    )


class SqlMetricSource(MetricSource):
    name = "database"

    @retry(exceptions=(OperationalError,))
    def _recent_sync(self, since: float) -> List[MetricSample]:
        cutoff = datetime.fromtimestamp(since, tz=timezone.utc)
        with get_db_session() as db:
            rows = db.scalars(
                select(SystemMetric)
                .where(SystemMetric.timestamp >= cutoff)
                .order_by(SystemMetric.timestamp.desc())
            ).all()
            return [_to_sample(row) for row in rows]

    @retry(exceptions=(OperationalError,))
    def _history_sync(self, metric: str, window_size: int) -> List[MetricSample]:
        with get_db_session() as db:
            rows = db.scalars(
                select(SystemMetric)
                .where(SystemMetric.metric_type == metric)
                .order_by(SystemMetric.timestamp.desc())
                .limit(window_size)
            ).all()
            return [_to_sample(row) for row in reversed(rows)]

    async def list_recent_metrics(self, since: float) -> List[MetricSample]:
        try:
            return await asyncio.to_thread(self._recent_sync, since)
        except OperationalError as exc:
            raise DataSourceUnavailable(f"system_metrics unavailable: {exc}") from exc
        except SQLAlchemyError as exc:
            raise InvalidQuery(f"system_metrics query failed: {exc}") from exc

    async def get_history(self, metric: str, window_size: int) -> List[MetricSample]:
        if window_size <= 0:
            return []
        try:
            return await asyncio.to_thread(self._history_sync, metric, int(window_size))
        except OperationalError as exc:
            raise DataSourceUnavailable(f"system_metrics unavailable: {exc}") from exc
        except SQLAlchemyError as exc:
            raise InvalidQuery(f"history query failed for {metric}: {exc}") from exc

    def _ping_sync(self) -> bool:
        with get_db_session() as db:
            db.execute(text("SELECT 1"))
        return True

    async def ping(self) -> bool:
        try:
            return await asyncio.to_thread(self._ping_sync)
        except (SQLAlchemyError, RuntimeError) as exc:
            log.debug("system_metrics ping failed: %s", exc)
            return False
