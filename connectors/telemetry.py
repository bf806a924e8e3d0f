"""
Telemetry collector connector: reads recent samples and per-metric history from
a collector's JSON API.

    GET {base}/metrics/recent?since=<unix seconds>
    GET {base}/metrics/{metric}/history?limit=<window size>

Both endpoints answer with either a bare list of sample records or an object
wrapping the list under ``data``; each record carries ``metric`` (or
``metric_type``), ``timestamp``, ``value`` and optional ``metadata``.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from config import settings
from datasources.base import BaseConnector
from datasources.exceptions import DataSourceUnavailable, InvalidPayload, QueryTimeout
from datasources.helpers import fetch_json, to_samples
from datasources.retry import retry
from engine.window import MetricSample

HEALTH_PATH = "/health"

_RETRYABLE = (DataSourceUnavailable, QueryTimeout, httpx.RequestError, httpx.TimeoutException)


def _records(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, dict):
        payload = payload.get("data", [])
    if not isinstance(payload, list):
        raise InvalidPayload("telemetry response must be a list of samples")
    return payload


class TelemetryConnector(BaseConnector):
    name = "telemetry"
    health_path = HEALTH_PATH

    def __init__(
        self,
        base_url: str,
        timeout: int = settings.connector_timeout,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(base_url, timeout, headers)

    @retry(exceptions=_RETRYABLE)
    async def list_recent_metrics(self, since: float) -> List[MetricSample]:
        payload = await fetch_json(
            f"{self.base_url}/metrics/recent",
            params={"since": int(since)},
            headers=self._headers(),
            timeout=self.timeout,
            invalid_msg="Telemetry recent metrics query failed",
            timeout_msg="Telemetry recent metrics query timed out",
            unavailable_msg="Cannot reach telemetry collector at",
        )
        return to_samples(_records(payload))

    @retry(exceptions=_RETRYABLE)
    async def get_history(self, metric: str, window_size: int) -> List[MetricSample]:
        payload = await fetch_json(
            f"{self.base_url}/metrics/{quote(metric, safe='')}/history",
            params={"limit": int(window_size)},
            headers=self._headers(),
            timeout=self.timeout,
            invalid_msg=f"Telemetry history query failed for {metric}",
            timeout_msg=f"Telemetry history query timed out for {metric}",
            unavailable_msg="Cannot reach telemetry collector at",
        )
        samples = to_samples(_records(payload), metric)
        samples.sort(key=lambda s: s.timestamp)
        return samples[-int(window_size):] if window_size > 0 else []

    async def ping(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=3.0) as client:
                resp = await client.get(self.health_url, headers=self._headers())
                return resp.status_code < 500
        except httpx.HTTPError:
            return False
