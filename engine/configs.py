"""
Registry of per-metric detection configurations, seeded from the defaults in
config and updated live through partial merges.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from api.requests import DetectionConfig, DetectionConfigUpdate
from config import DEFAULT_DETECTION_CONFIGS

log = logging.getLogger(__name__)


def default_configs() -> Dict[str, DetectionConfig]:
    return {
        metric: DetectionConfig(metric=metric, **raw)
        for metric, raw in DEFAULT_DETECTION_CONFIGS.items()
    }


def _partial_fields(partial: Union[DetectionConfigUpdate, Mapping[str, Any]]) -> Dict[str, Any]:
    if isinstance(partial, DetectionConfigUpdate):
        return partial.model_dump(exclude_none=True)
    fields = dict(partial)
    # the metric a config belongs to is its identity, never part of an update
    fields.pop("metric", None)
    return {k: v for k, v in fields.items() if v is not None}


class DetectionConfigRegistry:
    def __init__(self, configs: Optional[Mapping[str, DetectionConfig]] = None) -> None:
        self._configs: Dict[str, DetectionConfig] = dict(configs) if configs is not None else default_configs()
        self._defaults: Dict[str, DetectionConfig] = dict(self._configs)
        log.info("Anomaly detection configurations initialized (count=%d)", len(self._configs))

    def get(self, metric: str) -> Optional[DetectionConfig]:
        return self._configs.get(metric)

    def all(self) -> List[DetectionConfig]:
        return list(self._configs.values())

    def update(
        self,
        metric: str,
        partial: Union[DetectionConfigUpdate, Mapping[str, Any]],
    ) -> Optional[DetectionConfig]:
        current = self._configs.get(metric)
        if current is None:
            log.debug("Ignoring config update for unconfigured metric %s", metric)
            return None
        merged = DetectionConfig(**{**current.model_dump(), **_partial_fields(partial), "metric": metric})
        self._configs[metric] = merged
        log.info("Detection configuration updated for %s: %s", metric, merged.model_dump(mode="json"))
        return merged

    def register(self, config: DetectionConfig) -> None:
        self._configs[config.metric] = config

    def reset(self, metric: str) -> Optional[DetectionConfig]:
        """Restore the configuration the registry was seeded with; ``None`` for unknown metrics."""
        default = self._defaults.get(metric)
        if default is None:
            return None
        self._configs[metric] = default
        log.info("Detection configuration for %s reset to defaults", metric)
        return default
