"""
Shared dependencies for API route modules.

The detection service is built once in the application lifespan and kept on
``app.state``; routes receive it through :func:`get_detection_service` so that
handlers stay thin and tests can pass a service built from fakes.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from services.detection_service import AnomalyDetectionService


def get_detection_service(request: Request) -> AnomalyDetectionService:
    service = getattr(request.app.state, "detection_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Detection service is not initialized")
    return service


DetectionServiceDep = Annotated[AnomalyDetectionService, Depends(get_detection_service)]
