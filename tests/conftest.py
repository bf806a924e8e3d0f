import os
import sys
from typing import List

import pytest

# ensure workspace root is on sys.path so our application packages can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from api.requests import DetectionConfig
from datasources.base import MetricSource
from engine.window import MetricSample
from store.client import _fallback


@pytest.fixture(autouse=True)
def clear_fallback(monkeypatch):
    """Wipe the in-memory redis fallback before and after each test and override
    the redis helpers so they always operate on the in-memory store.
    """
    _fallback.clear()

    import store.client as client

    async def fake_get(key: str):
        return _fallback.get(key)

    async def fake_set(key: str, value: str, ttl=None):
        _fallback.set(key, value, ttl)

    async def fake_delete(key: str):
        _fallback.pop(key, None)

    async def fake_scan(pattern: str):
        return _fallback.match(pattern)

    fakes = {
        "redis_get": fake_get,
        "redis_set": fake_set,
        "redis_delete": fake_delete,
        "redis_scan": fake_scan,
    }
    for name, fake in fakes.items():
        monkeypatch.setattr(client, name, fake)

    # also update modules that imported the helpers by name
    import store.configs as cstore
    for name, fake in fakes.items():
        if hasattr(cstore, name):
            monkeypatch.setattr(cstore, name, fake)

    yield

    _fallback.clear()


def samples(metric: str, values, start: float = 1_700_000_000.0, step: float = 60.0) -> List[MetricSample]:
    return [MetricSample(metric=metric, timestamp=start + i * step, value=float(v)) for i, v in enumerate(values)]


class FakeMetricSource(MetricSource):
    """Serves fixed sample series; ``failures`` maps a metric to the exception its history fetch raises."""

    name = "fake"

    def __init__(self, series=None, failures=None, delays=None):
        self.series = dict(series or {})
        self.failures = dict(failures or {})
        self.delays = dict(delays or {})
        self.history_calls: List[str] = []
        self.recent_calls = 0
        self.recent_error = None

    async def list_recent_metrics(self, since: float) -> List[MetricSample]:
        self.recent_calls += 1
        if self.recent_error is not None:
            raise self.recent_error
        return [samples(metric, values[-1:])[0] for metric, values in self.series.items() if values]

    async def get_history(self, metric: str, window_size: int) -> List[MetricSample]:
        import asyncio

        self.history_calls.append(metric)
        if metric in self.delays:
            await asyncio.sleep(self.delays[metric])
        if metric in self.failures:
            raise self.failures[metric]
        return samples(metric, self.series.get(metric, []))[-window_size:]


@pytest.fixture
def make_samples():
    return samples


@pytest.fixture
def make_source():
    return FakeMetricSource


@pytest.fixture
def make_config():
    def _make(metric: str = "cpu_usage_percent", **overrides) -> DetectionConfig:
        base = {
            "algorithm": "statistical",
            "sensitivity": "medium",
            "window_size": 100,
            "threshold": 2.0,
            "min_samples": 5,
            "enabled": True,
        }
        base.update(overrides)
        return DetectionConfig(metric=metric, **base)

    return _make


def pytest_ignore_collect(collection_path, config):
    if os.path.sep + "engine" + os.path.sep in str(collection_path):
        return True
    return None
