"""
Health check route to verify service, metric source and store connectivity.

Copyright (c) 2026 Stefan Kumarasinghe
Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Any, Dict

from fastapi import APIRouter

from api.routes.common import DetectionServiceDep
from api.routes.exception import handle_exceptions
from store.client import get_redis, is_using_fallback

router = APIRouter(tags=["Health"])


@router.get("/health")
@handle_exceptions
async def health(service: DetectionServiceDep) -> Dict[str, Any]:
    await get_redis()
    source_ok = await service.source.ping()
    return {
        "status": "ok" if source_ok else "degraded",
        "store": "fallback" if is_using_fallback() else "redis",
        "metrics_source": service.source.name,
        "metrics_source_reachable": source_ok,
        "detection_running": service.running,
    }
