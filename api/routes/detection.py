"""
Detection loop control: start and stop the periodic loop, run a single tick on
demand and report loop status.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Any, Dict

from fastapi import APIRouter

from api.responses import DetectionStatus
from api.routes.common import DetectionServiceDep
from api.routes.exception import handle_exceptions

router = APIRouter(prefix="/detection", tags=["Detection"])


@router.get("/status", response_model=DetectionStatus, summary="Detection loop status")
@handle_exceptions
async def detection_status(service: DetectionServiceDep) -> DetectionStatus:
    return service.status()


@router.post("/start", summary="Start the detection loop")
@handle_exceptions
async def start_detection(service: DetectionServiceDep) -> Dict[str, Any]:
    started = service.start()
    return {"started": started, "status": service.status().model_dump(mode="json")}


@router.post("/stop", summary="Stop the detection loop after the current tick")
@handle_exceptions
async def stop_detection(service: DetectionServiceDep) -> Dict[str, Any]:
    stopped = await service.stop()
    return {"stopped": stopped, "status": service.status().model_dump(mode="json")}


@router.post("/run", summary="Run one detection tick now")
@handle_exceptions
async def run_detection(service: DetectionServiceDep) -> Dict[str, Any]:
    anomalies = await service.run_cycle()
    return {
        "count": len(anomalies),
        "anomalies": [a.model_dump(mode="json") for a in anomalies],
    }
