"""
Shared helper functions for metric sources: JSON fetching with error
translation and coercion of raw sample records.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

import httpx

from datasources.exceptions import DataSourceUnavailable, InvalidPayload, InvalidQuery, QueryTimeout
from engine.window import MetricSample


async def fetch_json(
    url: str,
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    timeout: int = 30,
    invalid_msg: str = "query failed",
    timeout_msg: str = "query timed out",
    unavailable_msg: str = "Cannot reach data source at",
) -> Any:
    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            resp = await client.get(url, params=params, headers=headers)
            resp.raise_for_status()
            return resp.json()
    except httpx.HTTPStatusError as e:
        raise InvalidQuery(f"{invalid_msg} [{e.response.status_code}]: {e.response.text}") from e
    except httpx.TimeoutException as e:
        raise QueryTimeout(timeout_msg) from e
    except httpx.RequestError as e:
        raise DataSourceUnavailable(f"{unavailable_msg} {url}") from e
    except ValueError as e:
        raise InvalidPayload(f"{invalid_msg}: response is not JSON") from e


def to_epoch_seconds(value: Any) -> float:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, (int, float)):
        ts = float(value)
        # millisecond epochs are common in collector payloads
        return ts / 1000.0 if ts > 1e11 else ts
    if isinstance(value, str):
        text = value.strip()
        try:
            return to_epoch_seconds(float(text))
        except ValueError:
            pass
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return to_epoch_seconds(datetime.fromisoformat(text))
    raise ValueError(f"unsupported timestamp: {value!r}")


def to_sample(raw: Mapping[str, Any], metric: Optional[str] = None) -> Optional[MetricSample]:
    name = metric or raw.get("metric") or raw.get("metric_type")
    if not name:
        return None
    try:
        value = float(raw["value"])
        timestamp = to_epoch_seconds(raw["timestamp"])
    except (KeyError, TypeError, ValueError):
        return None
    if not (math.isfinite(value) and math.isfinite(timestamp)):
        return None
    metadata = raw.get("metadata")
    return MetricSample(
        metric=str(name),
        timestamp=timestamp,
        value=value,
        metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
    )


def to_samples(rows: Iterable[Mapping[str, Any]], metric: Optional[str] = None) -> List[MetricSample]:
    samples: List[MetricSample] = []
    for row in rows:
        if not isinstance(row, Mapping):
            continue
        sample = to_sample(row, metric)
        if sample is not None:
            samples.append(sample)
    return samples
