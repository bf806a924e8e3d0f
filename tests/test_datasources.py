"""
Test Suite for metric sources: payload coercion, the telemetry connector,
the SQL-backed source and the source factory.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

import connectors.telemetry as telemetry
from api.responses import AnomalyResult
from connectors.telemetry import TelemetryConnector
from database import dispose_database, get_db_session, init_database, init_db
from datasources.exceptions import InvalidPayload
from datasources.factory import DataSourceFactory
from datasources.helpers import to_epoch_seconds, to_sample
from datasources.sql import SqlMetricSource
from db_models import SystemMetric
from engine.enums import AnomalyType, Severity
from services.persistence import SqlAnomalyStore


def test_to_epoch_seconds_formats():
    assert to_epoch_seconds(1_700_000_000) == 1_700_000_000.0
    assert to_epoch_seconds(1_700_000_000_000) == 1_700_000_000.0
    assert to_epoch_seconds("2024-01-01T00:00:00Z") == 1_704_067_200.0
    assert to_epoch_seconds(datetime(2024, 1, 1)) == 1_704_067_200.0


def test_to_sample_skips_bad_records():
    good = to_sample({"metric_type": "cpu", "timestamp": 10, "value": "3.5", "metadata": {"host": "a"}})
    assert (good.metric, good.value, good.metadata) == ("cpu", 3.5, {"host": "a"})
    assert to_sample({"metric": "cpu", "timestamp": 10}) is None
    assert to_sample({"metric": "cpu", "timestamp": "yesterday", "value": 1}) is None
    assert to_sample({"metric": "cpu", "timestamp": 10, "value": "nan"}) is None
    assert to_sample({"timestamp": 10, "value": 1}) is None


@pytest.mark.asyncio
async def test_telemetry_recent_metrics(monkeypatch):
    calls = []

    async def fake_fetch(url, params=None, **kwargs):
        calls.append((url, params))
        return {"data": [
            {"metric": "cpu", "timestamp": 100, "value": 1.0},
            {"metric": "mem", "timestamp": 101, "value": "bad"},
        ]}

    monkeypatch.setattr(telemetry, "fetch_json", fake_fetch)
    connector = TelemetryConnector("http://collector:8080/")
    found = await connector.list_recent_metrics(1_700_000_000.7)

    assert [s.metric for s in found] == ["cpu"]
    assert calls == [("http://collector:8080/metrics/recent", {"since": 1_700_000_000})]


@pytest.mark.asyncio
async def test_telemetry_history_sorted_and_trimmed(monkeypatch):
    async def fake_fetch(url, params=None, **kwargs):
        assert url.endswith("/metrics/response%20time/history")
        return [{"timestamp": ts, "value": ts / 10} for ts in (30, 10, 20, 40)]

    monkeypatch.setattr(telemetry, "fetch_json", fake_fetch)
    found = await TelemetryConnector("http://collector").get_history("response time", 3)
    assert [s.timestamp for s in found] == [20.0, 30.0, 40.0]
    assert all(s.metric == "response time" for s in found)


@pytest.mark.asyncio
async def test_telemetry_rejects_unexpected_payload(monkeypatch):
    async def fake_fetch(url, params=None, **kwargs):
        return {"data": "nope"}

    monkeypatch.setattr(telemetry, "fetch_json", fake_fetch)
    with pytest.raises(InvalidPayload):
        await TelemetryConnector("http://collector").get_history("cpu", 5)


def test_factory_selects_backend():
    http = DataSourceFactory.create_metrics(SimpleNamespace(
        metrics_backend="http", telemetry_url="http://collector", connector_timeout=5, database_url=None,
    ))
    assert isinstance(http, TelemetryConnector)
    assert http.timeout == 5

    db = DataSourceFactory.create_metrics(SimpleNamespace(metrics_backend="database", database_url="sqlite://"))
    assert isinstance(db, SqlMetricSource)

    with pytest.raises(ValueError):
        DataSourceFactory.create_metrics(SimpleNamespace(metrics_backend="database", database_url=None))
    with pytest.raises(ValueError):
        DataSourceFactory.create_metrics(SimpleNamespace(metrics_backend="graphite", database_url=None))


@pytest.fixture
def sqlite_db(tmp_path):
    dispose_database()
    init_database(f"sqlite:///{tmp_path / 'sentinel.db'}")
    init_db()
    yield
    dispose_database()


@pytest.mark.asyncio
async def test_sql_source_reads_system_metrics(sqlite_db):
    now = datetime.now(timezone.utc).replace(microsecond=0)
    with get_db_session() as db:
        for i in range(6):
            db.add(SystemMetric(metric_type="cpu_usage_percent", value=float(i), timestamp=now - timedelta(minutes=6 - i)))
        db.add(SystemMetric(metric_type="error_rate", value=0.5, timestamp=now - timedelta(days=3), labels={"svc": "api"}))

    source = SqlMetricSource()
    history = await source.get_history("cpu_usage_percent", 4)
    assert [s.value for s in history] == [2.0, 3.0, 4.0, 5.0]
    assert history[-1].timestamp == pytest.approx(now.timestamp())

    recent = await source.list_recent_metrics((now - timedelta(days=1)).timestamp())
    assert {s.metric for s in recent} == {"cpu_usage_percent"}
    assert await source.ping() is True


@pytest.mark.asyncio
async def test_sql_anomaly_store_persists_records(sqlite_db):
    anomaly = AnomalyResult(
        metric="cpu_usage_percent",
        value=95.0,
        anomaly_score=4.2,
        confidence=0.84,
        severity=Severity.critical,
        type=AnomalyType.point,
        algorithm="statistical_zscore",
        context={"mean": 40.0},
        suggested_actions=["Check for CPU-intensive operations"],
    )
    store = SqlAnomalyStore()
    await store.save_anomaly(anomaly)
    await store.save_anomaly(anomaly)

    stored = await store.recent(10)
    assert len(stored) == 1
    assert stored[0].id == anomaly.id
    assert stored[0].severity == Severity.critical
    assert stored[0].context == {"mean": 40.0}
