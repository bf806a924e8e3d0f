"""
Alert channels for high-severity anomalies. Delivery is best effort: callers log
failures and move on, nothing is retried.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

import httpx

from api.responses import AnomalyResult
from config import settings
from engine.exceptions import AlertDispatchError

log = logging.getLogger(__name__)


def format_alert(anomaly: AnomalyResult) -> str:
    actions = "\n".join(f"- {action}" for action in anomaly.suggested_actions)
    return (
        "ANOMALY DETECTED\n"
        f"Metric: {anomaly.metric}\n"
        f"Severity: {anomaly.severity.value.upper()}\n"
        f"Value: {anomaly.value:g}\n"
        f"Anomaly Score: {anomaly.anomaly_score:.2f}\n"
        f"Confidence: {anomaly.confidence * 100:.1f}%\n"
        f"Algorithm: {anomaly.algorithm}\n"
        f"Explanation: {anomaly.explanation}\n"
        "\n"
        "Suggested Actions:\n"
        f"{actions}"
    )


class AlertChannel(ABC):
    @abstractmethod
    async def dispatch(self, anomaly: AnomalyResult) -> None: ...

    async def aclose(self) -> None:
        return None


class LoggingAlertChannel(AlertChannel):
    async def dispatch(self, anomaly: AnomalyResult) -> None:
        log.warning("Anomaly alert\n%s", format_alert(anomaly))


class WebhookAlertChannel(AlertChannel):
    def __init__(self, url: str, timeout: Optional[float] = None, client: Optional[httpx.AsyncClient] = None) -> None:
        self.url = url
        self.timeout = settings.alert_webhook_timeout if timeout is None else timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def dispatch(self, anomaly: AnomalyResult) -> None:
        body = {
            "text": format_alert(anomaly),
            "anomaly": anomaly.model_dump(mode="json"),
        }
        try:
            resp = await self._get_client().post(self.url, json=body)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise AlertDispatchError(f"webhook rejected alert [{exc.response.status_code}]") from exc
        except httpx.HTTPError as exc:
            raise AlertDispatchError(f"webhook unreachable at {self.url}: {exc}") from exc

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None


class CompositeAlertChannel(AlertChannel):
    """Fans an alert out to every channel; one failing channel does not block the rest."""

    def __init__(self, channels: Iterable[AlertChannel]) -> None:
        self.channels: List[AlertChannel] = list(channels)

    async def dispatch(self, anomaly: AnomalyResult) -> None:
        failures: List[str] = []
        for channel in self.channels:
            try:
                await channel.dispatch(anomaly)
            except Exception as exc:
                failures.append(f"{type(channel).__name__}: {exc}")
        if failures:
            raise AlertDispatchError("; ".join(failures))

    async def aclose(self) -> None:
        for channel in self.channels:
            await channel.aclose()


def build_alert_channel(webhook_url: Optional[str] = None) -> AlertChannel:
    channels: List[AlertChannel] = [LoggingAlertChannel()]
    url = webhook_url if webhook_url is not None else settings.alert_webhook_url
    if url:
        channels.append(WebhookAlertChannel(url))
    return channels[0] if len(channels) == 1 else CompositeAlertChannel(channels)
