"""
Detection configuration and pattern catalog routes.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import List

from fastapi import APIRouter, HTTPException

from api.requests import DetectionConfig, DetectionConfigUpdate
from api.responses import PatternView
from api.routes.common import DetectionServiceDep
from api.routes.exception import handle_exceptions

router = APIRouter(tags=["Configuration"])


@router.get("/configs", response_model=List[DetectionConfig], summary="All detection configurations")
@handle_exceptions
async def list_configs(service: DetectionServiceDep) -> List[DetectionConfig]:
    return service.get_configs()


@router.get("/configs/{metric}", response_model=DetectionConfig, summary="Detection configuration for a metric")
@handle_exceptions
async def get_config(metric: str, service: DetectionServiceDep) -> DetectionConfig:
    config = service.get_config(metric)
    if config is None:
        raise HTTPException(status_code=404, detail=f"No detection configuration for metric '{metric}'")
    return config


@router.patch("/configs/{metric}", response_model=DetectionConfig, summary="Update a metric's detection configuration")
@handle_exceptions
async def update_config(metric: str, update: DetectionConfigUpdate, service: DetectionServiceDep) -> DetectionConfig:
    merged = await service.update_config(metric, update)
    if merged is None:
        raise HTTPException(status_code=404, detail=f"No detection configuration for metric '{metric}'")
    return merged


@router.delete("/configs/{metric}", response_model=DetectionConfig, summary="Reset a metric's detection configuration to its default")
@handle_exceptions
async def reset_config(metric: str, service: DetectionServiceDep) -> DetectionConfig:
    restored = await service.reset_config(metric)
    if restored is None:
        raise HTTPException(status_code=404, detail=f"No detection configuration for metric '{metric}'")
    return restored


@router.get("/patterns", response_model=List[PatternView], summary="Known anomaly patterns")
@handle_exceptions
async def list_patterns(service: DetectionServiceDep) -> List[PatternView]:
    return service.get_patterns()
