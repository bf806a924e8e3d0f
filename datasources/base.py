"""
Base metric sources and shared connector plumbing.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from engine.window import MetricSample


class MetricSource(ABC):
    """Where metric samples come from.

    ``since`` is a unix timestamp in seconds. ``get_history`` returns at most
    ``window_size`` of the newest samples for ``metric``; ordering is not
    guaranteed and callers sort by timestamp.
    """

    name: str = "metrics"

    @abstractmethod
    async def list_recent_metrics(self, since: float) -> List[MetricSample]: ...

    @abstractmethod
    async def get_history(self, metric: str, window_size: int) -> List[MetricSample]: ...

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None


class BaseConnector(MetricSource):
    health_path: str = ""

    def __init__(self, base_url: str, timeout: int = 30, headers: Optional[Dict[str, str]] = None):
        self.base_url = str(base_url).rstrip("/")
        self.timeout = timeout
        self.headers = headers or {}

    @property
    def health_url(self) -> str:
        if not self.health_path:
            raise NotImplementedError("connector must define health_path")
        return f"{self.base_url}{self.health_path}"

    def _headers(self) -> Dict[str, str]:
        """Basic header set applied to every outbound request."""
        return {"Accept": "application/json", **self.headers}
