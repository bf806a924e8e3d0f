"""
Entry point for the Sentinel anomaly detection API server.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from api.routes import router
from config import settings
from database import dispose_database, init_database, init_db
from datasources.base import MetricSource
from datasources.exceptions import BackendStartupTimeout
from datasources.factory import DataSourceFactory
from services.alerting import build_alert_channel
from services.detection_service import AnomalyDetectionService
from services.persistence import AnomalyStore, NullAnomalyStore, SqlAnomalyStore
from store.client import close_redis

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    stream=sys.stdout,
)
log = logging.getLogger(__name__)

_backend_ready = False
_backend_status: Dict[str, str] = {}


async def wait_for(source: MetricSource, timeout: float, interval: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    attempt = 0
    while time.monotonic() < deadline:
        attempt += 1
        try:
            if await source.ping():
                log.info("%s ready (attempt %d)", source.name, attempt)
                return
            log.debug("%s probe failed (attempt %d)", source.name, attempt)
        except Exception as exc:
            log.debug("%s not reachable (attempt %d): %s", source.name, attempt, exc)
        await asyncio.sleep(interval)
    raise BackendStartupTimeout(f"{source.name} did not become ready within {timeout}s")


async def _wait_for_backend_bg(source: MetricSource, timeout: float) -> None:
    global _backend_ready

    log.info("Metric source readiness check starting (timeout=%ds) ...", timeout)
    _backend_status[source.name] = "waiting"
    try:
        await wait_for(source, timeout)
    except Exception as exc:
        log.error("%s failed readiness: %s", source.name, exc)
        _backend_status[source.name] = f"failed: {exc}"
        _backend_ready = False
        return
    _backend_status[source.name] = "ready"
    _backend_ready = True
    log.info("Metric source ready, detection fully operational")


def build_service() -> AnomalyDetectionService:
    store: AnomalyStore = NullAnomalyStore()
    if settings.database_url:
        init_database(settings.database_url)
        init_db()
        store = SqlAnomalyStore()
    source = DataSourceFactory.create_metrics(settings)
    return AnomalyDetectionService(source, store=store, alerts=build_alert_channel())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    service = build_service()
    await service.load_persisted_configs()
    app.state.detection_service = service

    readiness_task = asyncio.create_task(_wait_for_backend_bg(service.source, settings.startup_timeout))
    if settings.detection_enabled:
        service.start()
    try:
        yield
    finally:
        readiness_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await readiness_task
        await service.aclose()
        await close_redis()
        dispose_database()


app = FastAPI(
    title="Sentinel Anomaly Detection Engine",
    description="Statistical, trend, pattern and ensemble anomaly detection over collected system metrics.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router, prefix="/api/v1")


@app.get("/api/v1/ready", tags=["health"], summary="Metric source readiness probe")
async def ready() -> JSONResponse:
    code = 200 if _backend_ready else 503
    return JSONResponse(
        status_code=code,
        content={"ready": _backend_ready, "backends": _backend_status},
    )


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        access_log=True,
    )
