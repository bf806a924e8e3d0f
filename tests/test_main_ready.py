"""
Readiness behavior tests for the API server and service wiring.
"""

from __future__ import annotations

import json

import pytest

import main as app_main
from connectors.telemetry import TelemetryConnector
from datasources.exceptions import BackendStartupTimeout
from services.persistence import NullAnomalyStore


class StubSource:
    name = "telemetry"

    def __init__(self, healthy):
        self.healthy = healthy

    async def ping(self):
        return self.healthy


@pytest.mark.asyncio
async def test_ready_endpoint_returns_503_with_backend_details_when_not_ready():
    app_main._backend_ready = False
    app_main._backend_status = {"telemetry": "failed: timeout"}
    response = await app_main.ready()
    payload = json.loads(response.body.decode("utf-8"))
    assert response.status_code == 503
    assert payload["ready"] is False
    assert payload["backends"]["telemetry"].startswith("failed:")


@pytest.mark.asyncio
async def test_wait_for_times_out_on_unhealthy_source():
    with pytest.raises(BackendStartupTimeout):
        await app_main.wait_for(StubSource(False), timeout=0.05, interval=0.01)
    await app_main.wait_for(StubSource(True), timeout=0.05, interval=0.01)


@pytest.mark.asyncio
async def test_background_readiness_records_status(monkeypatch):
    async def failing_wait_for(source, timeout, interval=2.0):
        raise RuntimeError("collector down")

    monkeypatch.setattr(app_main, "wait_for", failing_wait_for)
    app_main._backend_ready = True
    app_main._backend_status.clear()

    await app_main._wait_for_backend_bg(StubSource(False), 1)
    assert app_main._backend_ready is False
    assert app_main._backend_status["telemetry"].startswith("failed:")

    monkeypatch.undo()
    await app_main._wait_for_backend_bg(StubSource(True), 1)
    assert app_main._backend_ready is True
    assert app_main._backend_status["telemetry"] == "ready"


def test_build_service_with_http_backend(monkeypatch):
    monkeypatch.setattr(app_main.settings, "metrics_backend", "http")
    monkeypatch.setattr(app_main.settings, "database_url", None)
    service = app_main.build_service()
    assert isinstance(service.source, TelemetryConnector)
    assert isinstance(service.store, NullAnomalyStore)


def test_default_settings_build_a_service(monkeypatch):
    import os

    from config import Settings

    if "SENTINEL_METRICS_BACKEND" in os.environ:
        pytest.skip("metrics backend overridden by the environment")
    monkeypatch.setattr(app_main.settings, "metrics_backend", Settings.model_fields["metrics_backend"].default)
    monkeypatch.setattr(app_main.settings, "database_url", None)

    service = app_main.build_service()
    assert service.source.name == "telemetry"
