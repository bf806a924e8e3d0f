"""
Anomaly history routes: recent anomalies, persisted anomalies and aggregate
detection statistics.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Query

from api.responses import AnomalyResult, DetectionStatistics
from api.routes.common import DetectionServiceDep
from api.routes.exception import handle_exceptions
from config import settings

router = APIRouter(tags=["Anomalies"])


@router.get("/anomalies", response_model=List[AnomalyResult], summary="Recent anomalies, newest first")
@handle_exceptions
async def recent_anomalies(
    service: DetectionServiceDep,
    limit: Annotated[Optional[int], Query(ge=1, le=1000)] = None,
    metric: Optional[str] = None,
) -> List[AnomalyResult]:
    if metric is None:
        return service.get_recent_anomalies(limit)
    # filter before limiting so a busy metric does not hide a quiet one
    matching = [a for a in service.get_recent_anomalies(service.history.capacity) if a.metric == metric]
    return matching[: limit if limit is not None else settings.anomaly_recent_default_limit]


@router.get("/anomalies/statistics", response_model=DetectionStatistics, summary="Detection statistics")
@handle_exceptions
async def anomaly_statistics(service: DetectionServiceDep) -> DetectionStatistics:
    return service.get_detection_statistics()


@router.get("/anomalies/stored", response_model=List[AnomalyResult], summary="Persisted anomalies, newest first")
@handle_exceptions
async def stored_anomalies(
    service: DetectionServiceDep,
    limit: Annotated[Optional[int], Query(ge=1, le=1000)] = None,
) -> List[AnomalyResult]:
    return await service.get_stored_anomalies(limit)
