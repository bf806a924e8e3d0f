"""
Monitoring sink for detection counters.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional, Tuple

log = logging.getLogger(__name__)

CounterKey = Tuple[str, Tuple[Tuple[str, str], ...]]


class MonitoringSink(ABC):
    @abstractmethod
    def record_counter(self, name: str, amount: float = 1, tags: Optional[Mapping[str, str]] = None) -> None: ...


class InMemoryMonitoringSink(MonitoringSink):
    def __init__(self) -> None:
        self._counters: Dict[CounterKey, float] = {}

    @staticmethod
    def _key(name: str, tags: Optional[Mapping[str, str]]) -> CounterKey:
        return name, tuple(sorted((str(k), str(v)) for k, v in (tags or {}).items()))

    def record_counter(self, name: str, amount: float = 1, tags: Optional[Mapping[str, str]] = None) -> None:
        key = self._key(name, tags)
        self._counters[key] = self._counters.get(key, 0) + amount
        log.debug("counter %s %s += %s", name, dict(key[1]), amount)

    def get(self, name: str, tags: Optional[Mapping[str, str]] = None) -> float:
        return self._counters.get(self._key(name, tags), 0)

    def total(self, name: str) -> float:
        return sum(v for (n, _), v in self._counters.items() if n == name)
