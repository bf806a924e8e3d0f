"""
Persisted detection configuration overrides, reloaded on startup so that live
updates survive a restart.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from api.requests import DetectionConfig
from config import CONFIG_TTL
from store import keys
from store.client import redis_delete, redis_get, redis_scan, redis_set

log = logging.getLogger(__name__)


def _parse(raw: Optional[str]) -> Optional[DetectionConfig]:
    if not raw:
        return None
    try:
        return DetectionConfig.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as exc:
        log.debug("Ignoring malformed stored config: %s", exc)
        return None


async def load_all() -> List[DetectionConfig]:
    found: List[DetectionConfig] = []
    try:
        for key in await redis_scan(keys.detection_config_pattern()):
            config = _parse(await redis_get(key))
            if config is not None:
                found.append(config)
    except Exception as exc:
        log.debug("Config scan failed: %s", exc)
    return found


async def save(config: DetectionConfig) -> None:
    try:
        await redis_set(
            keys.detection_config(config.metric),
            json.dumps(config.model_dump(mode="json")),
            ttl=CONFIG_TTL or None,
        )
    except Exception as exc:
        log.debug("Config save failed %s: %s", config.metric, exc)


async def delete(metric: str) -> None:
    try:
        await redis_delete(keys.detection_config(metric))
    except Exception as exc:
        log.debug("Config delete failed %s: %s", metric, exc)
